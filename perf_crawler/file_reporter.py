"""
Plain-Text Run Outputs
======================
Newline-delimited URL files in the output directory (``URLs/`` by default):

    urls-crawled.txt   — appended as each successful visit completes
    urls-failed.txt    — timeouts, general errors, auth failures
    urls-404.txt       — HTTP 404
    urls-500.txt       — HTTP 500
    slowest-pages.txt  — slowest fraction of extracted pages by total time

In compare mode each failure entry is tagged with the environment that
failed (``url (DXP)``); ``load_urls_from_file`` drops the tag, so any of
these files can be fed straight back in as a ``--urls-file`` for a retry.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd

from .exceptions import ReportWriteError
from .models import Environment, PerformanceRecord, RunAggregate
from .report_analysis import TOTAL_COLUMN, slowest_pages

logger = logging.getLogger(__name__)

CRAWLED_FILE = "urls-crawled.txt"
FAILED_FILE = "urls-failed.txt"
NOT_FOUND_FILE = "urls-404.txt"
SERVER_ERROR_FILE = "urls-500.txt"
SLOWEST_FILE = "slowest-pages.txt"


class FileReporter:
    """Writes the crawled log, the failure lists and the slowest-pages list."""

    def __init__(self, output_dir: str):
        self.output_dir = Path(output_dir)

    # ------------------------------------------------------------------
    # During the run
    # ------------------------------------------------------------------

    async def record_crawled(self, url: str, environment: Optional[Environment] = None) -> None:
        """Append *url* (tagged with the environment, if given) to the crawled log."""
        line = f"{url} ({environment.value})" if environment else url
        await asyncio.to_thread(self._append_line, CRAWLED_FILE, line)

    def _append_line(self, name: str, line: str) -> None:
        path = self.output_dir / name
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as exc:
            raise ReportWriteError(f"Cannot append to {path}: {exc}") from exc

    # ------------------------------------------------------------------
    # End of run
    # ------------------------------------------------------------------

    def write_failure_lists(self, aggregate: RunAggregate) -> List[Path]:
        """Write each non-empty failure list; return the paths written."""
        written = []
        for name, urls, label in (
            (FAILED_FILE, aggregate.failed_urls, "Failed"),
            (NOT_FOUND_FILE, aggregate.not_found_urls, "404 Not Found"),
            (SERVER_ERROR_FILE, aggregate.server_error_urls, "500 Server Error"),
        ):
            if not urls:
                continue
            path = self._write_lines(name, urls)
            logger.info(f"[REPORT] {label} URLs saved to '{path}' ({len(urls)})")
            written.append(path)
        return written

    def write_slowest_pages(
        self,
        records: Iterable[PerformanceRecord],
        fraction: float,
        label_environment: bool = False,
    ) -> Optional[Path]:
        """Write the slowest ``fraction`` of *records* as ``url - 3.45 seconds`` lines."""
        rows = [
            {
                "URL": (f"{r.url} ({r.environment.value})"
                        if label_environment and r.environment else r.url),
                TOTAL_COLUMN: r.total_time,
            }
            for r in records
            if r.total_time is not None
        ]
        if not rows:
            return None

        slowest = slowest_pages(pd.DataFrame(rows), fraction, TOTAL_COLUMN)
        if slowest.empty:
            return None
        lines = [f"{row[0]} - {row[1]:.2f} seconds" for row in slowest.itertuples(index=False)]
        path = self._write_lines(SLOWEST_FILE, lines)
        logger.info(f"[REPORT] Slowest pages (top {fraction:.0%}) saved to '{path}'")
        return path

    def _write_lines(self, name: str, lines: List[str]) -> Path:
        path = self.output_dir / name
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as exc:
            raise ReportWriteError(f"Cannot write {path}: {exc}") from exc
        return path

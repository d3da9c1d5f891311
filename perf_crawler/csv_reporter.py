"""
CSV Performance Reports
=======================
Append-only CSV streams for the performance results.

The report shape is chosen once, when the writer is created:

    ReportMode.SINGLE      — one row per extracted ``PerformanceRecord``
    ReportMode.COMPARISON  — one row per ``ComparisonRecord`` (PROD vs DXP)

Every ``write()`` appends, flushes and fsyncs before returning, so a run
that is interrupted keeps every row written so far and rows appear in the
order the orchestrator produced them.
"""

from __future__ import annotations

import asyncio
import csv
import logging
import os
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .exceptions import ReportWriteError
from .models import ComparisonRecord, PerformanceRecord

logger = logging.getLogger(__name__)

Record = Union[PerformanceRecord, ComparisonRecord]


SINGLE_HEADERS = [
    "URL",
    "Total Time (s)",
    "System Time (s)",
    "Queries Time (s)",
    "Queries Count",
    "Timestamp",
]

COMPARISON_HEADERS = [
    "URL",
    "PROD Total Time (s)",
    "PROD System Time (s)",
    "PROD Queries Time (s)",
    "PROD Queries Count",
    "DXP Total Time (s)",
    "DXP System Time (s)",
    "DXP Queries Time (s)",
    "DXP Queries Count",
    "Time Difference (s)",
    "Timestamp",
]


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------

def format_decimal(value: Optional[float], separator: str = ",") -> str:
    """Render *value* with *separator* as the decimal mark ('' for None).

    Up to four decimals are kept; trailing zeros are dropped.
    """
    if value is None:
        return ""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text.replace(".", separator)


def _format_count(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def clean_domain(domain: str) -> str:
    """``https://www.example.com`` → ``example.com`` (filesystem-safe)."""
    text = re.sub(r"^https?://", "", domain.strip())
    text = re.sub(r"^www\.", "", text)
    text = text.rstrip("/")
    return re.sub(r"[^\w.-]", "-", text)


def report_filename(domain: str, label: str, now: Optional[datetime] = None) -> str:
    """``<clean-domain>-<label>-<YYYY-MM-DD>-<HHMM>.csv``"""
    now = now or datetime.now()
    return f"{clean_domain(domain)}-{label}-{now:%Y-%m-%d}-{now:%H%M}.csv"


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def _single_row(record: PerformanceRecord, separator: str) -> Dict[str, str]:
    return {
        "URL": record.url,
        "Total Time (s)": format_decimal(record.total_time, separator),
        "System Time (s)": format_decimal(record.system_time, separator),
        "Queries Time (s)": format_decimal(record.queries_time, separator),
        "Queries Count": _format_count(record.queries_count),
        "Timestamp": record.timestamp,
    }


def _comparison_row(record: ComparisonRecord, separator: str) -> Dict[str, str]:
    row = {"URL": record.url}
    for prefix, side in (("PROD", record.prod), ("DXP", record.dxp)):
        row[f"{prefix} Total Time (s)"] = format_decimal(side.total_time if side else None, separator)
        row[f"{prefix} System Time (s)"] = format_decimal(side.system_time if side else None, separator)
        row[f"{prefix} Queries Time (s)"] = format_decimal(side.queries_time if side else None, separator)
        row[f"{prefix} Queries Count"] = _format_count(side.queries_count if side else None)
    row["Time Difference (s)"] = format_decimal(record.time_difference, separator)
    row["Timestamp"] = record.timestamp
    return row


class ReportMode(Enum):
    """Report shape: a fixed header list bound to its row builder."""
    SINGLE = (tuple(SINGLE_HEADERS), _single_row)
    COMPARISON = (tuple(COMPARISON_HEADERS), _comparison_row)

    @property
    def headers(self) -> List[str]:
        return list(self.value[0])

    @property
    def build_row(self) -> Callable[[Record, str], Dict[str, str]]:
        return self.value[1]


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

class CsvReporter:
    """
    One CSV report stream.

    Usage::

        reporter = CsvReporter(config.reports_dir, config.domain, "prod",
                               ReportMode.SINGLE, config.decimal_separator)
        await reporter.initialize()
        await reporter.write(record)
    """

    def __init__(
        self,
        reports_dir: str,
        domain: str,
        label: str,
        mode: ReportMode = ReportMode.SINGLE,
        decimal_separator: str = ",",
        now: Optional[datetime] = None,
    ):
        self.mode = mode
        self.label = label
        self.decimal_separator = decimal_separator
        self.path = Path(reports_dir) / report_filename(domain, label, now)
        self.rows_written = 0
        self._initialized = False

    async def initialize(self) -> Path:
        """Create the reports directory and write the header row."""
        await asyncio.to_thread(self._write_header)
        self._initialized = True
        logger.info(f"[REPORT] {self.label} report: {self.path}")
        return self.path

    async def write(self, record: Record) -> None:
        """Append one row; returns only after the row is on disk."""
        if not self._initialized:
            await self.initialize()
        row = self.mode.build_row(record, self.decimal_separator)
        await asyncio.to_thread(self._append_row, row)
        self.rows_written += 1

    # ------------------------------------------------------------------
    # Blocking file I/O (run in a worker thread)
    # ------------------------------------------------------------------

    def _write_header(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", newline="", encoding="utf-8") as f:
                csv.DictWriter(f, fieldnames=self.mode.headers).writeheader()
        except OSError as exc:
            raise ReportWriteError(f"Cannot create report {self.path}: {exc}") from exc

    def _append_row(self, row: Dict[str, str]) -> None:
        try:
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                csv.DictWriter(f, fieldnames=self.mode.headers).writerow(row)
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            raise ReportWriteError(f"Cannot append to report {self.path}: {exc}") from exc

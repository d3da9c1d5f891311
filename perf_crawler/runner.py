"""
Run Driver
==========
Wires a complete run together: browser launch, report streams, the
orchestrator for the selected mode, operator interrupts and the
end-of-run outputs.

Modes:
    prod     — single-environment crawl, PROD session
    dxp      — single-environment crawl, DXP session (routing cookie + marker check)
    compare  — both environments per URL, concurrently
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from typing import Dict, List, Tuple, Union

from .auth import CredentialSet
from .comparison_crawler import ComparisonCrawler
from .crawler import PerformanceCrawler
from .csv_reporter import CsvReporter, ReportMode
from .exceptions import PerfCrawlerError, ReportWriteError
from .file_reporter import FileReporter
from .models import Environment, RunAggregate
from .monitor import format_summary
from .run_config import RunConfig
from .session import close_browser, launch_browser

logger = logging.getLogger(__name__)

MODES = ("prod", "dxp", "compare")

Crawler = Union[PerformanceCrawler, ComparisonCrawler]


def required_environments(mode: str) -> Tuple[Environment, ...]:
    if mode == "compare":
        return (Environment.PROD, Environment.DXP)
    if mode in MODES:
        return (Environment(mode.upper()),)
    raise ValueError(f"Unknown mode {mode!r} (expected one of {', '.join(MODES)})")


async def _open_reporters(config: RunConfig, mode: str) -> Dict[str, CsvReporter]:
    """Create and initialise the CSV streams the mode needs."""
    labels = ["prod", "dxp", "comparison"] if mode == "compare" else [mode]
    reporters = {}
    for label in labels:
        report_mode = ReportMode.COMPARISON if label == "comparison" else ReportMode.SINGLE
        reporter = CsvReporter(
            config.reports_dir, config.domain, label, report_mode, config.decimal_separator
        )
        await reporter.initialize()
        reporters[label] = reporter
    return reporters


def _install_stop_handler(crawler: Crawler) -> bool:
    """Route SIGINT to ``crawler.stop()``; False where signals are unsupported."""
    loop = asyncio.get_running_loop()

    def _on_interrupt():
        logger.warning("⚠️ Interrupt received, finishing the current URL then stopping...")
        crawler.stop()

    try:
        loop.add_signal_handler(signal.SIGINT, _on_interrupt)
    except (NotImplementedError, RuntimeError):
        return False
    return True


def _write_end_of_run(
    config: RunConfig, mode: str, aggregate: RunAggregate, file_reporter: FileReporter
) -> None:
    try:
        file_reporter.write_failure_lists(aggregate)
        file_reporter.write_slowest_pages(
            aggregate.records, config.slowest_fraction, label_environment=mode == "compare"
        )
    except ReportWriteError as exc:
        logger.error(f"[REPORT] {exc}")
        aggregate.fatal_error = aggregate.fatal_error or str(exc)


async def run_performance(
    config: RunConfig, mode: str, urls: List[str], credentials: CredentialSet
) -> RunAggregate:
    """Run one crawl and always write the end-of-run outputs.

    Raises:
        ConfigurationError: credentials for the mode are incomplete.
        AuthenticationError: single-environment login failed.
    """
    environments = required_environments(mode)
    credentials.require(environments)
    config.log_summary(mode, len(urls))

    started = time.monotonic()
    file_reporter = FileReporter(config.output_dir)
    reporters = await _open_reporters(config, mode)
    playwright, browser = await launch_browser(config)

    if mode == "compare":
        crawler: Crawler = ComparisonCrawler(
            config,
            browser,
            reporters["comparison"],
            {Environment.PROD: reporters["prod"], Environment.DXP: reporters["dxp"]},
            file_reporter,
        )
    else:
        crawler = PerformanceCrawler(config, reporters[mode], file_reporter)

    handler_installed = _install_stop_handler(crawler)
    try:
        if mode == "compare":
            await crawler.crawl_comparison(urls, credentials.prod, credentials.dxp)
        else:
            environment = environments[0]
            await crawler.run(browser, environment, credentials.for_environment(environment), urls)
    except ReportWriteError as exc:
        logger.error(f"[REPORT] ❌ {exc}")
        crawler.aggregate.fatal_error = str(exc)
    except (KeyboardInterrupt, asyncio.CancelledError):
        crawler.aggregate.stopped_early = True
        raise
    finally:
        if handler_installed:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
        await close_browser(playwright, browser)
        aggregate = crawler.aggregate
        _write_end_of_run(config, mode, aggregate, file_reporter)
        print(format_summary(aggregate, time.monotonic() - started, mode))

    return aggregate


def execute(config: RunConfig, mode: str, urls: List[str], credentials: CredentialSet) -> int:
    """Synchronous entry point; returns the process exit status."""
    try:
        aggregate = asyncio.run(run_performance(config, mode, urls, credentials))
    except PerfCrawlerError as exc:
        logger.error(f"❌ {exc}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    return 1 if aggregate.fatal_error else 0

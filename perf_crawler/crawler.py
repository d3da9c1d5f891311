"""
Single-Environment Performance Crawler
======================================
Visits an explicit URL list, one URL at a time, in one authenticated
session and streams each extracted record to the CSV report.

Per URL:
    navigate → classify status (404 / 500 skip extraction) → extract →
    await the report write → log progress

A failing URL is classified, counted and skipped; only a report write
failure (``ReportWriteError``) ends the run early.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from playwright.async_api import Browser, Page

from .auth import BaseAuthHandler, Credentials, MatrixAuthHandler
from .csv_reporter import CsvReporter
from .exceptions import AuthenticationError
from .extractor import PerformanceExtractor
from .file_reporter import FileReporter
from .models import (
    Environment,
    FailureKind,
    FetchOutcome,
    RunAggregate,
    classify_exception,
    classify_status,
)
from .monitor import log_progress
from .run_config import RunConfig
from .session import environment_session

logger = logging.getLogger(__name__)


async def visit_url(
    page: Page,
    url: str,
    config: RunConfig,
    extractor: PerformanceExtractor,
    environment: Optional[Environment] = None,
) -> FetchOutcome:
    """Navigate *page* to *url*, classify the response and extract telemetry.

    Always returns a ``FetchOutcome``; navigation errors are classified,
    never raised.
    """
    tag = f"[{environment.value}] " if environment else ""
    try:
        response = await page.goto(
            url, wait_until="domcontentloaded", timeout=config.page_timeout_ms
        )
    except Exception as exc:
        kind = classify_exception(exc)
        if kind == FailureKind.TIMEOUT:
            logger.warning(f"[CRAWL] {tag}⚠️ Timeout on {url}. Skipping...")
        else:
            logger.error(f"[CRAWL] {tag}🚨 Error on {url}: {exc}. Skipping...")
        return FetchOutcome.failed(url, kind, str(exc), environment)

    status = response.status if response is not None else None
    kind = classify_status(status) if status is not None else None
    if kind == FailureKind.NOT_FOUND:
        logger.warning(f"[CRAWL] {tag}❌ 404 Not Found: {url}")
        return FetchOutcome.failed(url, kind, "HTTP 404", environment)
    if kind == FailureKind.SERVER_ERROR:
        logger.warning(f"[CRAWL] {tag}🚨 500 Internal Server Error: {url}")
        return FetchOutcome.failed(url, kind, "HTTP 500", environment)

    record = await extractor.extract(page, url, environment)
    return FetchOutcome.ok(url, record, environment)


class PerformanceCrawler:
    """
    Sequential crawler for one environment.

    Usage::

        crawler = PerformanceCrawler(config, reporter, file_reporter)
        aggregate = await crawler.run(browser, Environment.PROD, creds, urls)
    """

    def __init__(
        self,
        config: RunConfig,
        reporter: CsvReporter,
        file_reporter: Optional[FileReporter] = None,
        extractor: Optional[PerformanceExtractor] = None,
        authenticator: Optional[BaseAuthHandler] = None,
        environment: Optional[Environment] = None,
    ):
        self.config = config
        self.reporter = reporter
        self.file_reporter = file_reporter
        self.extractor = extractor or PerformanceExtractor(config)
        self.authenticator = authenticator or MatrixAuthHandler(config)
        self.environment = environment
        self.aggregate = RunAggregate()
        self._stop_requested = False

    def stop(self) -> None:
        """Finish the current URL, then dispatch no more."""
        self._stop_requested = True

    async def run(
        self, browser: Browser, environment: Environment, creds: Credentials, urls: List[str]
    ) -> RunAggregate:
        """Open a session for *environment*, log in and crawl *urls*."""
        self.environment = environment
        async with environment_session(browser, self.config, environment) as page:
            outcome = await self.authenticator.authenticate(
                page, creds, verify_marker=environment == Environment.DXP
            )
            if not outcome.success:
                raise AuthenticationError(
                    f"{environment.value} login failed: {outcome.failure_reason}"
                )
            return await self.crawl(page, urls)

    async def crawl(self, page: Page, urls: List[str]) -> RunAggregate:
        """Visit *urls* in order on an already authenticated *page*."""
        aggregate = RunAggregate(total_urls=len(urls))
        self.aggregate = aggregate
        total = len(urls)
        started = time.monotonic()
        logger.info(f"[CRAWL] 🚀 Starting to crawl {total} URLs...")

        for index, url in enumerate(urls, 1):
            if self._stop_requested:
                aggregate.stopped_early = True
                logger.warning(f"[CRAWL] Stop requested, {total - index + 1} URLs not dispatched")
                break

            aggregate.crawled_count += 1
            logger.info(f"[CRAWL] 📍 [{index}/{total}] Crawling: {url}")

            outcome = await visit_url(page, url, self.config, self.extractor, self.environment)
            if outcome.success:
                await self.reporter.write(outcome.record)
                if self.file_reporter:
                    await self.file_reporter.record_crawled(url)
            aggregate.record_outcome(outcome)

            log_progress(index, total, time.monotonic() - started)

        logger.info("[CRAWL] ✅ Crawling completed")
        return aggregate

"""
PROD vs DXP Comparison Crawler
==============================
Measures every URL in both environments at the same time.

For each URL two tasks run concurrently, one per environment.  Each task
owns a fresh browser context (the DXP routing cookie lives only in the DXP
context), logs in, visits the URL and extracts telemetry, then closes its
context.  A task always resolves to a ``FetchOutcome``; nothing it does
touches the aggregate or the reports.

After both tasks have resolved, the crawler (and only the crawler):
    1. appends each successful side to that environment's CSV stream
    2. folds both outcomes into the ``RunAggregate``
    3. appends a ``ComparisonRecord`` when at least one side succeeded
    4. logs progress at URL granularity
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional

from playwright.async_api import Browser

from .auth import BaseAuthHandler, Credentials, MatrixAuthHandler
from .crawler import visit_url
from .csv_reporter import CsvReporter
from .extractor import PerformanceExtractor
from .file_reporter import FileReporter
from .models import (
    ComparisonRecord,
    Environment,
    FailureKind,
    FetchOutcome,
    RunAggregate,
    classify_exception,
)
from .monitor import log_progress
from .run_config import RunConfig
from .session import environment_session

logger = logging.getLogger(__name__)


class ComparisonCrawler:
    """
    Dual-environment crawler.

    Usage::

        crawler = ComparisonCrawler(config, browser, comparison_reporter,
                                    {Environment.PROD: prod_reporter,
                                     Environment.DXP: dxp_reporter})
        aggregate = await crawler.crawl_comparison(urls, prod_creds, dxp_creds)
    """

    def __init__(
        self,
        config: RunConfig,
        browser: Browser,
        comparison_reporter: CsvReporter,
        environment_reporters: Dict[Environment, CsvReporter],
        file_reporter: Optional[FileReporter] = None,
        extractor: Optional[PerformanceExtractor] = None,
        authenticator: Optional[BaseAuthHandler] = None,
    ):
        self.config = config
        self.browser = browser
        self.comparison_reporter = comparison_reporter
        self.environment_reporters = environment_reporters
        self.file_reporter = file_reporter
        self.extractor = extractor or PerformanceExtractor(config)
        self.authenticator = authenticator or MatrixAuthHandler(config)
        self.aggregate = RunAggregate()
        self._stop_requested = False

    def stop(self) -> None:
        """Finish the current URL pair, then dispatch no more."""
        self._stop_requested = True

    async def crawl_comparison(
        self, urls: List[str], prod_creds: Credentials, dxp_creds: Credentials
    ) -> RunAggregate:
        aggregate = RunAggregate(total_urls=len(urls), tag_failures=True)
        self.aggregate = aggregate
        total = len(urls)
        started = time.monotonic()
        logger.info(f"[COMPARE] 🔀 Comparing {total} URLs (PROD vs DXP)...")

        for index, url in enumerate(urls, 1):
            if self._stop_requested:
                aggregate.stopped_early = True
                logger.warning(f"[COMPARE] Stop requested, {total - index + 1} URLs not dispatched")
                break

            aggregate.crawled_count += 1
            logger.info(f"[COMPARE] 📍 [{index}/{total}] {url}")

            # ── Fork: one task per environment ──────────────────────
            results = await asyncio.gather(
                self._fetch(Environment.PROD, url, prod_creds),
                self._fetch(Environment.DXP, url, dxp_creds),
                return_exceptions=True,
            )

            # ── Join: only the orchestrator touches shared state ────
            prod, dxp = (
                result if isinstance(result, FetchOutcome)
                else FetchOutcome.failed(url, classify_exception(result), str(result), env)
                for env, result in zip((Environment.PROD, Environment.DXP), results)
            )
            logger.info(
                f"[COMPARE]    PROD: {'✅' if prod.success else '❌'} | "
                f"DXP: {'✅' if dxp.success else '❌'}"
            )
            await self._persist(url, prod, dxp, aggregate)

            log_progress(index, total, time.monotonic() - started)

        logger.info("[COMPARE] ✅ Comparison completed")
        return aggregate

    async def _persist(
        self, url: str, prod: FetchOutcome, dxp: FetchOutcome, aggregate: RunAggregate
    ) -> None:
        for outcome in (prod, dxp):
            if outcome.success:
                await self.environment_reporters[outcome.environment].write(outcome.record)
                if self.file_reporter:
                    await self.file_reporter.record_crawled(url, outcome.environment)
            else:
                logger.warning(
                    f"[COMPARE]    {outcome.environment.value} failed "
                    f"({outcome.failure.value}): {outcome.message}"
                )
            aggregate.record_outcome(outcome)

        if not (prod.success or dxp.success):
            return
        comparison = ComparisonRecord.from_pair(
            url,
            prod.record if prod.success else None,
            dxp.record if dxp.success else None,
        )
        await self.comparison_reporter.write(comparison)
        aggregate.comparisons.append(comparison)
        if comparison.time_difference is not None:
            logger.info(
                f"[COMPARE]    Δ {comparison.time_difference:+.3f}s "
                f"({comparison.percent_difference:+.2f}%)"
            )

    async def _fetch(self, environment: Environment, url: str, creds: Credentials) -> FetchOutcome:
        """One environment's visit, from context creation to teardown."""
        try:
            async with environment_session(self.browser, self.config, environment) as page:
                auth = await self.authenticator.authenticate(
                    page, creds, verify_marker=environment == Environment.DXP
                )
                if not auth.success:
                    return FetchOutcome.failed(
                        url, FailureKind.AUTH_FAILURE, auth.failure_reason or "", environment
                    )
                return await visit_url(page, url, self.config, self.extractor, environment)
        except Exception as exc:
            return FetchOutcome.failed(url, classify_exception(exc), str(exc), environment)

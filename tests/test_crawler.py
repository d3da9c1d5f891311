"""
Tests for the single-environment crawler: status classification, failure
handling, write-then-continue ordering and stop requests.
"""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from conftest import FakeBrowser, FakePage, RecordingReporter, StubAuthenticator, StubExtractor
from perf_crawler.auth import Credentials
from perf_crawler.crawler import PerformanceCrawler
from perf_crawler.exceptions import AuthenticationError, ReportWriteError
from perf_crawler.models import AuthOutcome, Environment

URLS = [
    "https://www.example.ac.uk/a/_performance",
    "https://www.example.ac.uk/b/_performance",
    "https://www.example.ac.uk/c/_performance",
]


def _crawler(config, reporter=None, extractor=None, **kwargs):
    return PerformanceCrawler(
        config,
        reporter or RecordingReporter(),
        extractor=extractor or StubExtractor(),
        **kwargs,
    )


class TestStatusClassification:

    def test_404_is_not_found_only(self, config):
        reporter = RecordingReporter()
        extractor = StubExtractor()
        page = FakePage(responses={URLS[0]: 404})

        aggregate = asyncio.run(_crawler(config, reporter, extractor).crawl(page, URLS[:1]))

        assert aggregate.not_found_count == 1
        assert aggregate.successful_count == 0
        assert aggregate.not_found_urls == [URLS[0]]
        assert aggregate.failed_urls == []
        assert aggregate.server_error_urls == []
        assert reporter.records == []
        assert extractor.events == []

    def test_500_is_server_error_only(self, config):
        reporter = RecordingReporter()
        extractor = StubExtractor()
        page = FakePage(responses={URLS[1]: 500})

        aggregate = asyncio.run(_crawler(config, reporter, extractor).crawl(page, URLS))

        assert aggregate.server_error_count == 1
        assert aggregate.server_error_urls == [URLS[1]]
        assert aggregate.successful_count == 2
        assert [r.url for r in reporter.records] == [URLS[0], URLS[2]]
        assert ("extract", URLS[1]) not in extractor.events

    def test_timeout_and_general_error(self, config):
        page = FakePage(responses={
            URLS[0]: PlaywrightTimeout("Timeout 60000ms exceeded"),
            URLS[1]: PlaywrightError("net::ERR_NAME_NOT_RESOLVED"),
        })

        aggregate = asyncio.run(_crawler(config).crawl(page, URLS))

        assert aggregate.timeout_count == 1
        assert aggregate.error_count == 1
        assert aggregate.successful_count == 1
        assert aggregate.crawled_count == 3
        assert aggregate.failed_urls == URLS[:2]

    def test_timeout_detected_from_message(self, config):
        page = FakePage(responses={URLS[0]: RuntimeError("navigation timeout of 60000 ms")})
        aggregate = asyncio.run(_crawler(config).crawl(page, URLS[:1]))
        assert aggregate.timeout_count == 1
        assert aggregate.error_count == 0


class TestOrdering:

    def test_rows_follow_input_order(self, config):
        reporter = RecordingReporter()
        aggregate = asyncio.run(_crawler(config, reporter).crawl(FakePage(), URLS))
        assert [r.url for r in reporter.records] == URLS
        assert [r.url for r in aggregate.records] == URLS

    def test_write_completes_before_next_url(self, config):
        events = []
        reporter = RecordingReporter(events=events)
        extractor = StubExtractor(events=events)

        asyncio.run(_crawler(config, reporter, extractor).crawl(FakePage(), URLS[:2]))

        assert events == [
            ("extract", URLS[0]), ("write", URLS[0]),
            ("extract", URLS[1]), ("write", URLS[1]),
        ]

    def test_report_write_error_stops_the_run(self, config):
        reporter = RecordingReporter(fail_on=ReportWriteError("disk full"))
        crawler = _crawler(config, reporter)
        with pytest.raises(ReportWriteError):
            asyncio.run(crawler.crawl(FakePage(), URLS))
        assert crawler.aggregate.crawled_count == 1


class TestStop:

    def test_stop_prevents_further_dispatch(self, config):
        crawler = _crawler(config)

        class StoppingReporter(RecordingReporter):
            async def write(self, record):
                await super().write(record)
                crawler.stop()

        crawler.reporter = StoppingReporter()
        page = FakePage()
        aggregate = asyncio.run(crawler.crawl(page, URLS))

        assert aggregate.stopped_early
        assert aggregate.crawled_count == 1
        assert page.visited == URLS[:1]


class TestRun:

    def test_login_failure_aborts(self, config):
        auth = StubAuthenticator(prod=AuthOutcome(False, "bad password"))
        crawler = _crawler(config, authenticator=auth)
        browser = FakeBrowser()

        with pytest.raises(AuthenticationError, match="bad password"):
            asyncio.run(crawler.run(browser, Environment.PROD, Credentials("u", "p"), URLS))
        assert browser.contexts[0].closed

    def test_dxp_run_uses_cookie_and_marker(self, config):
        auth = StubAuthenticator()
        browser = FakeBrowser()
        crawler = _crawler(config, authenticator=auth)

        aggregate = asyncio.run(crawler.run(browser, Environment.DXP, Credentials("u", "p"), URLS))

        assert aggregate.successful_count == 3
        assert auth.calls == [True]
        context = browser.contexts[0]
        assert context.cookies[0]["name"] == "SUP_COOKIE"
        assert context.cookies[0]["domain"] == "www.example.ac.uk"
        assert context.closed

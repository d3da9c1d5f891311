"""
Shared fixtures: small in-memory stand-ins for the Playwright objects the
crawler touches (page, frame, locator, context, browser).
"""

from typing import Dict, List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

from perf_crawler.models import AuthOutcome, PerformanceRecord
from perf_crawler.run_config import RunConfig, Selectors

SELECTORS = Selectors()
SAMPLE_SUMMARY = "Total Time: 3.45s System: 1.20s Queries: 0.80s (12)"


class FakeElement:
    def __init__(self, text: str):
        self._text = text

    async def text_content(self):
        return self._text


class FakeFrame:
    """Frame that may or may not contain the performance summary."""

    def __init__(self, name: str = "", url: str = "about:blank", summary: Optional[str] = None):
        self.name = name
        self.url = url
        self.summary = summary

    async def wait_for_selector(self, selector, timeout=None):
        if selector == SELECTORS.performance_summary and self.summary is not None:
            return FakeElement(self.summary)
        raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")


class FakeLocator:
    def __init__(self, text: Optional[str]):
        self._text = text

    async def wait_for(self, state="visible", timeout=None):
        if self._text is None:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded")

    async def text_content(self, timeout=None):
        if self._text is None:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded")
        return self._text


class FakeFrameLocator:
    def __init__(self, text: Optional[str]):
        self._text = text

    def locator(self, selector):
        return FakeLocator(self._text)


class FakeResponse:
    def __init__(self, status: int):
        self.status = status


class _Navigation:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakePage:
    """
    Configurable page.

    ``elements`` maps top-level selectors to their text (present);
    anything absent times out.  ``responses`` maps URLs to an HTTP status
    or to an exception raised by ``goto``.
    """

    def __init__(
        self,
        elements: Optional[Dict[str, str]] = None,
        responses: Optional[Dict[str, object]] = None,
        named_frames: Optional[Dict[str, FakeFrame]] = None,
        frames: Optional[List[FakeFrame]] = None,
        frame_locator_text: Optional[str] = None,
        scan_text: Optional[str] = None,
        scan_error: Optional[Exception] = None,
        idle_timeout: bool = False,
    ):
        self.elements = {
            SELECTORS.username_input: "",
            SELECTORS.password_input: "",
        }
        self.elements.update(elements or {})
        self.responses = responses or {}
        self.named_frames = named_frames or {}
        self._frames = frames or []
        self.frame_locator_text = frame_locator_text
        self.scan_text = scan_text
        self.scan_error = scan_error
        self.idle_timeout = idle_timeout
        self.visited: List[str] = []
        self.filled: List[tuple] = []
        self.clicked: List[str] = []
        self.context = None

    # ---- navigation ----
    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        result = self.responses.get(url, 200)
        if isinstance(result, BaseException):
            raise result
        return FakeResponse(result)

    async def wait_for_load_state(self, state=None, timeout=None):
        if self.idle_timeout:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded")

    def expect_navigation(self, wait_until=None, timeout=None):
        return _Navigation()

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    # ---- DOM ----
    async def wait_for_selector(self, selector, timeout=None):
        text = self.elements.get(selector)
        if text is None:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return FakeElement(text)

    async def fill(self, selector, value):
        self.filled.append((selector, value))

    async def click(self, selector):
        self.clicked.append(selector)

    async def evaluate(self, script, arg=None):
        if self.scan_error is not None:
            raise self.scan_error
        return self.scan_text

    # ---- frames ----
    def frame(self, name=None, url=None):
        return self.named_frames.get(name)

    @property
    def frames(self):
        return list(self._frames)

    def frame_locator(self, selector):
        return FakeFrameLocator(self.frame_locator_text)


class FakeContext:
    def __init__(self, page: FakePage):
        self.page = page
        self.cookies: List[dict] = []
        self.closed = False
        page.context = self

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Hands out a fresh ``FakePage`` (built by *page_factory*) per context."""

    def __init__(self, page_factory=None):
        self.page_factory = page_factory or (lambda: FakePage())
        self.contexts: List[FakeContext] = []

    async def new_context(self):
        context = FakeContext(self.page_factory())
        self.contexts.append(context)
        return context


class StubAuthenticator:
    """Succeeds or fails per environment (DXP sessions ask for the marker check)."""

    def __init__(self, prod: AuthOutcome = AuthOutcome(True), dxp: AuthOutcome = AuthOutcome(True)):
        self.outcomes = {False: prod, True: dxp}
        self.calls: List[bool] = []

    async def authenticate(self, page, creds, verify_marker=False):
        self.calls.append(verify_marker)
        return self.outcomes[verify_marker]


class StubExtractor:
    """Returns a record with a fixed total time per environment."""

    def __init__(self, totals=None, events: Optional[list] = None):
        self.totals = totals or {}
        self.events = events if events is not None else []

    async def extract(self, page, url, environment=None):
        self.events.append(("extract", url))
        return PerformanceRecord(
            url=url,
            total_time=self.totals.get(environment, 1.0),
            system_time=0.5,
            queries_time=0.25,
            queries_count=3,
            environment=environment,
        )


class RecordingReporter:
    """Collects written records in memory."""

    def __init__(self, events: Optional[list] = None, fail_on: Optional[Exception] = None):
        self.records = []
        self.events = events if events is not None else []
        self.fail_on = fail_on

    async def write(self, record):
        if self.fail_on is not None:
            raise self.fail_on
        self.events.append(("write", record.url))
        self.records.append(record)


@pytest.fixture
def config(tmp_path):
    return RunConfig.for_site(
        "www.example.ac.uk",
        output_dir=str(tmp_path / "URLs"),
        reports_dir=str(tmp_path / "reports"),
    )

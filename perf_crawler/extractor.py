"""
Performance Telemetry Extractor
===============================
Pulls the CMS performance summary ("Total Time / System / Queries") out of a
rendered ``/_performance`` page.

The summary lives in a nested result frame whose loading is not
deterministic, so extraction is an ordered chain of strategies sharing one
signature ``(page) -> Optional[str]``.  ``first_match`` folds over the chain
and stops at the first strategy that returns text:

    1. Frame addressed by name
    2. Any frame whose URL contains the result fragment
    3. Frame container resolved through a frame locator
    4. Summary selector in the top-level document
    5. Generic scan of block elements for all three markers

A best-effort network-idle wait runs before the chain.  ``extract()`` never
raises: a miss on every strategy yields a record with null numerics.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .models import Environment, PerformanceRecord
from .run_config import RunConfig, TelemetryPatterns

logger = logging.getLogger(__name__)

Strategy = Callable[[Page], Awaitable[Optional[str]]]

# Innermost block element whose text contains every marker.
_GENERIC_SCAN_JS = """
(markers) => {
    const blocks = document.querySelectorAll(
        'div, p, pre, td, section, article, li, table'
    );
    let best = null;
    for (const el of blocks) {
        const text = el.textContent || '';
        if (!markers.every(m => text.includes(m))) continue;
        if (best === null || best.contains(el)) best = el;
    }
    return best ? best.textContent : null;
}
"""


# ---------------------------------------------------------------------------
# Pure parsing
# ---------------------------------------------------------------------------

_LEADING_NUMBER = re.compile(r"\d*\.?\d+")


def _to_float(value: str) -> Optional[float]:
    """Leading decimal of *value* (``"3.45."`` -> 3.45), or None."""
    match = _LEADING_NUMBER.match(value)
    if not match:
        return None
    number = float(match.group(0))
    if not math.isfinite(number) or number < 0:
        return None
    return number


def parse_performance_text(
    text: Optional[str], patterns: Optional[TelemetryPatterns] = None
) -> dict:
    """Parse summary text into the four numeric telemetry fields.

    Each pattern is applied independently; a field that does not match (or
    matches something that is not a finite number) stays ``None``.
    """
    patterns = patterns or TelemetryPatterns()
    parsed = {
        "total_time": None,
        "system_time": None,
        "queries_time": None,
        "queries_count": None,
    }
    if not text:
        return parsed

    total = re.search(patterns.total_time, text, re.IGNORECASE)
    if total:
        parsed["total_time"] = _to_float(total.group(1))

    system = re.search(patterns.system_time, text, re.IGNORECASE)
    if system:
        parsed["system_time"] = _to_float(system.group(1))

    queries = re.search(patterns.queries, text, re.IGNORECASE)
    if queries:
        parsed["queries_time"] = _to_float(queries.group(1))
        parsed["queries_count"] = int(queries.group(2))

    return parsed


async def first_match(
    strategies: Sequence[Tuple[str, Strategy]], page: Page
) -> Tuple[Optional[str], Optional[str]]:
    """Run *strategies* in order; return ``(name, text)`` of the first hit.

    Returns ``(None, None)`` when every strategy comes back empty.
    Exceptions other than Playwright timeouts/errors propagate to the caller.
    """
    for name, strategy in strategies:
        text = await strategy(page)
        if text and text.strip():
            return name, text.strip()
    return None, None


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class PerformanceExtractor:
    """
    Extracts a ``PerformanceRecord`` from a loaded performance page.

    Usage::

        extractor = PerformanceExtractor(config)
        record = await extractor.extract(page, url, Environment.PROD)
    """

    def __init__(self, config: RunConfig):
        self.config = config
        self._strategies: List[Tuple[str, Strategy]] = [
            ("named-frame", self._from_named_frame),
            ("frame-url", self._from_frame_url),
            ("frame-locator", self._from_frame_locator),
            ("main-page", self._from_main_page),
            ("generic-scan", self._from_generic_scan),
        ]

    @property
    def strategy_names(self) -> List[str]:
        return [name for name, _ in self._strategies]

    async def extract(
        self, page: Page, url: str, environment: Optional[Environment] = None
    ) -> PerformanceRecord:
        """Run the strategy chain against *page* and parse the result."""
        tag = f"[EXTRACT] [{environment.value}]" if environment else "[EXTRACT]"
        try:
            await self._wait_for_network_idle(page)
            name, text = await first_match(self._strategies, page)
        except Exception as exc:
            logger.error(f"{tag} Unexpected extraction error on {url}: {exc}")
            return PerformanceRecord(url=url, environment=environment, error=str(exc))

        if text is None:
            logger.warning(f"{tag} No performance data found on {url}")
            return PerformanceRecord(url=url, environment=environment)

        fields = parse_performance_text(text, self.config.patterns)
        logger.info(
            f"{tag} via {name}: total={fields['total_time']} "
            f"system={fields['system_time']} queries={fields['queries_time']}"
            f"({fields['queries_count']})"
        )
        return PerformanceRecord(
            url=url, raw_text=text, environment=environment, **fields
        )

    # ------------------------------------------------------------------
    # Pre-step
    # ------------------------------------------------------------------

    async def _wait_for_network_idle(self, page: Page) -> None:
        try:
            await page.wait_for_load_state(
                "networkidle", timeout=self.config.performance_wait_ms
            )
        except PlaywrightError:
            logger.debug("[EXTRACT] Network idle not reached, continuing")

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _summary_in(self, frame, timeout: int) -> Optional[str]:
        element = await frame.wait_for_selector(
            self.config.selectors.performance_summary, timeout=timeout
        )
        if element is None:
            return None
        return await element.text_content()

    async def _from_named_frame(self, page: Page) -> Optional[str]:
        frame = page.frame(name=self.config.selectors.performance_frame_name)
        if frame is None:
            return None
        try:
            return await self._summary_in(frame, self.config.performance_wait_ms)
        except PlaywrightError:
            return None

    async def _from_frame_url(self, page: Page) -> Optional[str]:
        fragment = self.config.result_path_fragment
        for frame in page.frames:
            if fragment not in (frame.url or ""):
                continue
            try:
                return await self._summary_in(frame, self.config.performance_wait_ms)
            except PlaywrightError:
                continue
        return None

    async def _from_frame_locator(self, page: Page) -> Optional[str]:
        selectors = self.config.selectors
        locator = page.frame_locator(selectors.performance_frame_container).locator(
            selectors.performance_summary
        )
        try:
            await locator.wait_for(state="attached", timeout=self.config.fallback_wait_ms)
            return await locator.text_content(timeout=self.config.fallback_wait_ms)
        except PlaywrightError:
            return None

    async def _from_main_page(self, page: Page) -> Optional[str]:
        try:
            return await self._summary_in(page, self.config.fallback_wait_ms)
        except PlaywrightError:
            return None

    async def _from_generic_scan(self, page: Page) -> Optional[str]:
        try:
            return await page.evaluate(
                _GENERIC_SCAN_JS, list(self.config.patterns.required_markers)
            )
        except PlaywrightError:
            return None

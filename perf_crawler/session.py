"""
Browser Sessions
================
Playwright browser lifecycle and per-environment browsing contexts.

Each environment session owns its own ``BrowserContext`` (cookies,
storage, pages), so the DXP routing cookie can never leak into a PROD
session and closing one context never disturbs the other.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from .models import Environment
from .run_config import RunConfig

logger = logging.getLogger(__name__)


async def launch_browser(config: RunConfig) -> Tuple[Playwright, Browser]:
    """Start Playwright and launch Chromium."""
    playwright = await async_playwright().start()
    browser = await playwright.chromium.launch(
        headless=config.headless,
        args=[
            '--disable-gpu',
            '--disable-dev-shm-usage',
            '--disable-extensions',
            '--no-first-run',
        ],
    )
    logger.info(f"Playwright browser launched (headless={config.headless})")
    return playwright, browser


async def close_browser(playwright: Optional[Playwright], browser: Optional[Browser]) -> None:
    """Close browser and Playwright, tolerating an already-closed target."""
    if browser:
        try:
            await browser.close()
        except Exception as e:
            if 'TargetClosedError' not in type(e).__name__:
                logger.error(f"Error closing browser: {e}")
    if playwright:
        try:
            await playwright.stop()
        except Exception as e:
            logger.debug(f"Error stopping Playwright: {e}")
    # Give in-flight Playwright futures a chance to settle
    await asyncio.sleep(0.1)


async def new_environment_context(
    browser: Browser, config: RunConfig, environment: Environment
) -> Tuple[BrowserContext, Page]:
    """Create an isolated context + page for *environment*.

    DXP contexts get the routing cookie scoped to the target domain before
    any navigation happens; PROD contexts get no cookie.
    """
    context = await browser.new_context()
    try:
        if environment == Environment.DXP:
            await context.add_cookies([config.dxp_cookie.for_domain(config.domain)])
            logger.debug(f"[SESSION] {config.dxp_cookie.name} cookie added for {config.domain}")
        page = await context.new_page()
        page.set_default_timeout(config.default_timeout_ms)
        page.set_default_navigation_timeout(config.navigation_timeout_ms)
    except BaseException:
        await context.close()
        raise
    return context, page


@asynccontextmanager
async def environment_session(
    browser: Browser, config: RunConfig, environment: Environment
) -> AsyncIterator[Page]:
    """``async with`` wrapper that always closes the environment's context."""
    context, page = await new_environment_context(browser, config, environment)
    try:
        yield page
    finally:
        try:
            await context.close()
        except Exception as e:
            logger.debug(f"[SESSION] {environment.value} context close failed: {e}")

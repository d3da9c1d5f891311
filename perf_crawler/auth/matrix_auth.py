"""
Matrix Login Handler
====================
Playwright login flow for the CMS admin interface.

Handles:
    - Navigation to the backup-login admin URL
    - Version-marker verification (is this session really on the DXP stack?)
    - The two-field username/password form and its submit control
    - Waiting for the post-login navigation to settle

Security:
    - Credentials are never logged or printed.
    - Only the admin URL and success/failure status appear in logs.
"""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from ..models import AuthOutcome
from ..run_config import RunConfig
from .base_auth import BaseAuthHandler, Credentials

logger = logging.getLogger(__name__)


class MatrixAuthHandler(BaseAuthHandler):
    """Logs a browser session into the CMS admin interface.

    Usage::

        handler = MatrixAuthHandler(config)
        outcome = await handler.authenticate(page, creds, verify_marker=True)
        if not outcome.success:
            ...
    """

    def __init__(self, config: RunConfig):
        self.config = config

    @property
    def portal_name(self) -> str:
        return "Matrix"

    async def authenticate(
        self, page: Page, creds: Credentials, verify_marker: bool = False
    ) -> AuthOutcome:
        """Execute the full login flow.

        Steps:
            1. Reject incomplete credentials
            2. Navigate to the admin URL
            3. Verify the version marker (DXP sessions only)
            4. Fill username + password and submit
            5. Wait for the post-login navigation
        """
        if not creds.is_complete:
            return self._fail("Missing username or password in credentials")

        selectors = self.config.selectors
        admin_url = self.config.admin_url

        # ── Step 1: Navigate to the admin login ─────────────────────
        logger.info(f"[AUTH] Navigating to login page: {admin_url[:80]}")
        try:
            await page.goto(
                admin_url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_timeout_ms,
            )
        except PlaywrightTimeout:
            return self._fail("Timeout navigating to login page")
        except PlaywrightError as exc:
            return self._fail(f"Could not open login page: {exc}")

        # ── Step 2: Version marker ──────────────────────────────────
        if verify_marker:
            reason = await self._verify_version_marker(page)
            if reason:
                return self._fail(reason)

        # ── Step 3: Fill the form ───────────────────────────────────
        try:
            await page.wait_for_selector(
                selectors.username_input, timeout=self.config.login_field_timeout_ms
            )
            await page.wait_for_selector(
                selectors.password_input, timeout=self.config.login_field_timeout_ms
            )
        except PlaywrightTimeout:
            return self._fail("Login form fields not found")

        try:
            await page.fill(selectors.username_input, "")
            await page.fill(selectors.username_input, creds.username)
            await page.fill(selectors.password_input, "")
            await page.fill(selectors.password_input, creds.password)
            logger.info("[AUTH] Credentials filled")

            # ── Step 4: Submit and wait for the navigation ──────────
            async with page.expect_navigation(
                wait_until="domcontentloaded",
                timeout=self.config.login_timeout_ms,
            ):
                await page.click(selectors.login_button)
        except PlaywrightTimeout:
            return self._fail("Timeout waiting for post-login navigation")
        except PlaywrightError as exc:
            return self._fail(f"Login form error: {exc}")

        logger.info("[AUTH] ✅ Login successful")
        return AuthOutcome(success=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _verify_version_marker(self, page: Page) -> Optional[str]:
        """Return a failure reason, or None when the marker names an accepted version."""
        try:
            marker = await page.wait_for_selector(
                self.config.selectors.version_markers,
                timeout=self.config.marker_timeout_ms,
            )
        except PlaywrightTimeout:
            return "Verification failed: version marker not found"

        text = (await marker.text_content() or "") if marker else ""
        if not any(version in text for version in self.config.accepted_versions):
            accepted = " or ".join(self.config.accepted_versions)
            return f"Verification failed: not on the correct DXP version ({accepted})"

        logger.info(f"[AUTH] Version marker verified: {text.strip()[:60]}")
        return None

    @staticmethod
    def _fail(reason: str) -> AuthOutcome:
        logger.error(f"[AUTH] ❌ Login failed: {reason}")
        return AuthOutcome(success=False, failure_reason=reason)

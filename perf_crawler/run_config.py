"""
Unified Run Configuration
=========================
Single source of truth for every timeout, selector, cookie and pattern the
crawler uses.

The config is built ONCE per run (from CLI flags or interactive prompts)
and handed explicitly to every component that needs it.  It is frozen:
nothing mutates it mid-run, so the target domain and admin URL can never
drift between the two environment sessions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "headless": True,
    # Timeouts (ms unless noted)
    "default_timeout_ms": 30_000,
    "navigation_timeout_ms": 30_000,
    "page_timeout_ms": 60_000,          # navigation to each target URL
    "performance_wait_ms": 20_000,      # frame selector waits + network idle
    "fallback_wait_ms": 5_000,          # frame-locator / top-level reads
    "marker_timeout_ms": 10_000,
    "login_field_timeout_ms": 10_000,
    "login_timeout_ms": 30_000,         # navigation after the login submit
    "sitemap_timeout_s": 10,
    # URL patterns
    "admin_path": "/_admin/?FORCE_BACKUP_LOGIN=1",
    "performance_suffix": "/_performance",
    "result_path_fragment": "performance_result",
    # Output
    "decimal_separator": ",",
    "output_dir": "URLs",
    "reports_dir": "reports",
    "slowest_fraction": 0.1,
}


@dataclass(frozen=True)
class CookieSpec:
    """Shape of the routing cookie that pins a session to the DXP stack."""
    name: str = "SUP_COOKIE"
    value: str = "new"
    path: str = "/"
    http_only: bool = True
    secure: bool = False

    def for_domain(self, domain: str) -> Dict[str, object]:
        """Return the cookie in the dict shape ``BrowserContext.add_cookies`` expects."""
        return {
            "name": self.name,
            "value": self.value,
            "domain": domain,
            "path": self.path,
            "httpOnly": self.http_only,
            "secure": self.secure,
        }


@dataclass(frozen=True)
class Selectors:
    """DOM selectors for the admin login form and the performance summary."""
    username_input: str = 'input[name="SQ_LOGIN_USERNAME"]'
    password_input: str = 'input[name="SQ_LOGIN_PASSWORD"]'
    login_button: str = 'input[type="submit"][value="Log In"]'
    version_markers: str = "#switched-ui-marker, #streamline-ui-marker"
    performance_frame_name: str = "result_frame"
    performance_frame_container: str = "#result_frame"
    performance_summary: str = "#perfSummary .perfTotal"


@dataclass(frozen=True)
class TelemetryPatterns:
    """Regular expressions applied (case-insensitively) to the summary text."""
    total_time: str = r"Total Time[^\d]*([\d.]+)"
    system_time: str = r"System[^\d]*([\d.]+)"
    queries: str = r"Queries:[^\d]*([\d.]+)[^\d]*\((\d+)\)"
    required_markers: Tuple[str, ...] = ("Total Time", "System", "Queries")


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable configuration consumed by every crawler subsystem.

    Build via:
      - ``RunConfig.for_site("www.example.ac.uk")``       → all defaults
      - ``RunConfig.for_site(site, headless=False)``       → override one value
      - ``RunConfig.from_cli_args(ns)``                    → from argparse Namespace
    """

    # ---- Target site ----
    domain: str = ""
    base_url: str = ""

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]

    # ---- Timeouts ----
    default_timeout_ms: int = _DEFAULTS["default_timeout_ms"]
    navigation_timeout_ms: int = _DEFAULTS["navigation_timeout_ms"]
    page_timeout_ms: int = _DEFAULTS["page_timeout_ms"]
    performance_wait_ms: int = _DEFAULTS["performance_wait_ms"]
    fallback_wait_ms: int = _DEFAULTS["fallback_wait_ms"]
    marker_timeout_ms: int = _DEFAULTS["marker_timeout_ms"]
    login_field_timeout_ms: int = _DEFAULTS["login_field_timeout_ms"]
    login_timeout_ms: int = _DEFAULTS["login_timeout_ms"]
    sitemap_timeout_s: int = _DEFAULTS["sitemap_timeout_s"]

    # ---- URL patterns ----
    admin_path: str = _DEFAULTS["admin_path"]
    performance_suffix: Optional[str] = _DEFAULTS["performance_suffix"]
    result_path_fragment: str = _DEFAULTS["result_path_fragment"]

    # ---- Environment verification ----
    dxp_cookie: CookieSpec = field(default_factory=CookieSpec)
    accepted_versions: Tuple[str, ...] = ("Matrix DXP", "DXP SaaS")

    # ---- Page structure ----
    selectors: Selectors = field(default_factory=Selectors)
    patterns: TelemetryPatterns = field(default_factory=TelemetryPatterns)

    # ---- Output ----
    decimal_separator: str = _DEFAULTS["decimal_separator"]
    output_dir: str = _DEFAULTS["output_dir"]
    reports_dir: str = _DEFAULTS["reports_dir"]
    slowest_fraction: float = _DEFAULTS["slowest_fraction"]

    @property
    def admin_url(self) -> str:
        return f"{self.base_url}{self.admin_path}"

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def for_site(cls, site: str, **overrides) -> "RunConfig":
        """Build a config for *site* (``www.example.com`` or a full URL)."""
        domain, base_url = resolve_site(site)
        return cls(domain=domain, base_url=base_url, **overrides)

    @classmethod
    def from_cli_args(cls, args) -> "RunConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        overrides = {}
        if getattr(args, "headed", False):
            overrides["headless"] = False
        if getattr(args, "no_performance_suffix", False):
            overrides["performance_suffix"] = None
        for name in ("decimal_separator", "output_dir", "reports_dir"):
            value = getattr(args, name, None)
            if value:
                overrides[name] = value
        return cls.for_site(args.site, **overrides)

    def with_overrides(self, **changes) -> "RunConfig":
        """Return a copy with *changes* applied (the original is untouched)."""
        return replace(self, **changes)

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, mode: str, url_count: int) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("PERFORMANCE RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  Domain:           {self.domain}")
        logger.info(f"  Admin URL:        {self.admin_url}")
        logger.info(f"  Mode:             {mode}")
        logger.info(f"  URLs:             {url_count}")
        logger.info(f"  Headless:         {self.headless}")
        logger.info(f"  Page timeout:     {self.page_timeout_ms / 1000:.0f}s")
        logger.info(f"  Telemetry wait:   {self.performance_wait_ms / 1000:.0f}s")
        if self.performance_suffix:
            logger.info(f"  URL suffix:       {self.performance_suffix}")
        logger.info(f"  Decimal sep:      '{self.decimal_separator}'")
        logger.info(f"  Reports dir:      {self.reports_dir}")
        logger.info("=" * 60)


def resolve_site(user_input: str) -> Tuple[str, str]:
    """Derive ``(domain, base_url)`` from a bare host or a full URL.

    ``www.example.com``             → (``www.example.com``, ``https://www.example.com``)
    ``http://www.example.com/a/b``  → (``www.example.com``, ``http://www.example.com``)
    """
    text = (user_input or "").strip()
    if not text:
        raise ValueError("A domain or URL is required")

    if "://" in text:
        parsed = urlparse(text)
        if not parsed.hostname:
            raise ValueError(f"Cannot parse a host from {user_input!r}")
        domain = parsed.hostname
        base_url = f"{parsed.scheme}://{parsed.hostname}"
        if parsed.port:
            base_url = f"{base_url}:{parsed.port}"
        return domain, base_url

    domain = text.split("/", 1)[0]
    return domain, f"https://{domain}"

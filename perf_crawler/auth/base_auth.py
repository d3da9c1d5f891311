"""
Base Authentication Handler (Abstract)
======================================
Defines the contract that CMS login handlers implement, plus the shared
credential resolution logic.

Design principles:
    - The orchestrators never fill login forms themselves; they call
      ``authenticate()`` and gate on the returned ``AuthOutcome``
    - A handler never raises for an ordinary login failure; the reason is
      carried in the outcome so a sibling environment session is unaffected
    - Credentials are resolved once at startup and never mutated afterwards
"""

from __future__ import annotations

import getpass
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional

from playwright.async_api import Page

from ..exceptions import ConfigurationError
from ..models import AuthOutcome, Environment

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Credentials container
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Credentials:
    """Plain credential container for one environment."""
    username: str = ""
    password: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class CredentialSet:
    """Credentials for both environments (either half may be empty)."""
    prod: Credentials = field(default_factory=Credentials)
    dxp: Credentials = field(default_factory=Credentials)

    def for_environment(self, environment: Environment) -> Credentials:
        return self.prod if environment == Environment.PROD else self.dxp

    def require(self, environments: Iterable[Environment]) -> None:
        """Raise ``ConfigurationError`` unless every listed half is complete."""
        missing = [
            env.value for env in environments
            if not self.for_environment(env).is_complete
        ]
        if missing:
            raise ConfigurationError(
                f"Missing username or password for: {', '.join(missing)}"
            )


# ---------------------------------------------------------------------------
# Credential resolution (shared logic)
# ---------------------------------------------------------------------------

def load_credentials_file(path: Optional[str]) -> Dict[str, Credentials]:
    """Read ``{"prod": {...}, "dxp": {...}}`` from a JSON file.

    A missing file yields an empty mapping; a malformed one is a startup
    error.
    """
    if not path:
        return {}
    file_path = Path(path)
    if not file_path.exists():
        logger.info(f"[AUTH] No credentials file at {file_path}")
        return {}

    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigurationError(f"Unreadable credentials file {file_path}: {exc}") from exc

    if not isinstance(data, dict) or not ({"prod", "dxp"} & set(data)):
        raise ConfigurationError(
            "Invalid credential structure - missing 'prod' and 'dxp' sections"
        )

    loaded: Dict[str, Credentials] = {}
    for key in ("prod", "dxp"):
        section = data.get(key) or {}
        loaded[key] = Credentials(
            username=str(section.get("username", "") or ""),
            password=str(section.get("password", "") or ""),
        )
    logger.info(f"[AUTH] Credentials file loaded: {file_path}")
    return loaded


def resolve_credentials(
    environment: Environment,
    creds: Optional[Credentials] = None,
    *,
    file_credentials: Optional[Dict[str, Credentials]] = None,
    interactive: bool = True,
) -> Credentials:
    """Build ``Credentials`` for *environment*.

    Resolution order:
        1. Existing *creds* (CLI flags) if complete
        2. Credentials file section (``prod`` / ``dxp``)
        3. Environment variables ``{ENV}_USERNAME`` / ``{ENV}_PASSWORD``
        4. Interactive terminal prompt (if *interactive* is True)

    Fields are filled independently, so a username from the file can be
    combined with a password from the environment.
    """
    username = creds.username if creds else ""
    password = creds.password if creds else ""

    from_file = (file_credentials or {}).get(environment.label)
    if from_file:
        username = username or from_file.username
        password = password or from_file.password

    prefix = environment.value
    username = username or os.environ.get(f"{prefix}_USERNAME", "")
    password = password or os.environ.get(f"{prefix}_PASSWORD", "")

    if username and password:
        logger.info(f"[AUTH] {environment.value} credentials resolved")
        return Credentials(username=username, password=password)

    if interactive:
        return _prompt_credentials(environment, username, password)

    return Credentials(username=username, password=password)


def _prompt_credentials(environment: Environment, username: str, password: str) -> Credentials:
    """Prompt for missing credentials in the terminal (``getpass`` for the password)."""
    print(f"\n{'=' * 55}")
    print(f"  {environment.value} Authentication Required")
    print(f"{'=' * 55}")

    if not username:
        username = input(f"  {environment.value} Username: ").strip()
    else:
        print(f"  Username: {username}")

    if not password:
        password = getpass.getpass(f"  {environment.value} Password: ")

    print(f"{'=' * 55}\n")
    return Credentials(username=username, password=password)


# ---------------------------------------------------------------------------
# Abstract Base Handler
# ---------------------------------------------------------------------------

class BaseAuthHandler(ABC):
    """Abstract base for CMS login handlers.

    Subclasses MUST implement:
        - ``portal_name``   — human readable name
        - ``authenticate(page, creds, verify_marker)`` — full login flow
    """

    @property
    @abstractmethod
    def portal_name(self) -> str:
        """Human-readable portal name."""
        ...

    @abstractmethod
    async def authenticate(
        self, page: Page, creds: Credentials, verify_marker: bool = False
    ) -> AuthOutcome:
        """Log *page*'s browser context in.

        Args:
            page:          A fresh page in the session's own context.
            creds:         Resolved credentials for this environment.
            verify_marker: Check the version marker before logging in.

        Returns:
            An ``AuthOutcome``; session cookies are usable only on success.
        """
        ...

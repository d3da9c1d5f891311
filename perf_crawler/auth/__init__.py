"""
Authentication Module
=====================
Login handling for the CMS admin interface.

Architecture:
    - ``BaseAuthHandler``   — abstract base for login handlers
    - ``MatrixAuthHandler`` — admin backup-login form + version-marker check
    - ``Credentials``       — one environment's username/password
    - ``CredentialSet``     — PROD + DXP credentials, resolved at startup

Usage::

    from perf_crawler.auth import MatrixAuthHandler, resolve_credentials

    creds = resolve_credentials(Environment.DXP, interactive=False)
    outcome = await MatrixAuthHandler(config).authenticate(page, creds, verify_marker=True)
"""

from .base_auth import (
    BaseAuthHandler,
    CredentialSet,
    Credentials,
    load_credentials_file,
    resolve_credentials,
)
from .matrix_auth import MatrixAuthHandler

__all__ = [
    "BaseAuthHandler",
    "CredentialSet",
    "Credentials",
    "MatrixAuthHandler",
    "load_credentials_file",
    "resolve_credentials",
]

"""Exception hierarchy for run-level (non per-URL) failures."""


class PerfCrawlerError(Exception):
    """Base class for errors that end a run."""


class ConfigurationError(PerfCrawlerError):
    """Startup configuration is unusable (missing credentials, no URLs, bad site)."""


class AuthenticationError(PerfCrawlerError):
    """Login or environment verification failed for a single-environment run."""


class ReportWriteError(PerfCrawlerError):
    """A report row could not be persisted."""

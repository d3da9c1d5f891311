"""
Run Data Model
==============
Value objects passed between the extractor, the orchestrators and the
report writers.

``PerformanceRecord``, ``ComparisonRecord`` and ``FetchOutcome`` are frozen:
they are created once per URL visit and never touched again.
``RunAggregate`` is the only long-lived mutable state of a run and is owned
by the orchestrator that created it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeout


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision (``...Z``)."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class Environment(str, Enum):
    PROD = "PROD"
    DXP = "DXP"

    @property
    def label(self) -> str:
        return self.value.lower()


class FailureKind(str, Enum):
    """Why a single URL visit did not produce a record."""
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    TIMEOUT = "TIMEOUT"
    AUTH_FAILURE = "AUTH_FAILURE"
    GENERAL_ERROR = "GENERAL_ERROR"


def classify_exception(exc: BaseException) -> FailureKind:
    """Map a navigation/extraction exception onto the failure taxonomy."""
    if isinstance(exc, (PlaywrightTimeout, TimeoutError)):
        return FailureKind.TIMEOUT
    message = str(exc).lower()
    if "timeouterror" in message or "timeout" in message:
        return FailureKind.TIMEOUT
    return FailureKind.GENERAL_ERROR


def classify_status(status: int) -> Optional[FailureKind]:
    """Return the failure kind for statuses that skip extraction, else None."""
    if status == 404:
        return FailureKind.NOT_FOUND
    if status == 500:
        return FailureKind.SERVER_ERROR
    return None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthOutcome:
    success: bool
    failure_reason: Optional[str] = None


@dataclass(frozen=True)
class PerformanceRecord:
    """Telemetry extracted from one page in one environment."""
    url: str
    total_time: Optional[float] = None
    system_time: Optional[float] = None
    queries_time: Optional[float] = None
    queries_count: Optional[int] = None
    raw_text: Optional[str] = None
    environment: Optional[Environment] = None
    timestamp: str = field(default_factory=utc_timestamp)
    error: Optional[str] = None

    @property
    def has_telemetry(self) -> bool:
        return any(
            v is not None
            for v in (self.total_time, self.system_time, self.queries_time, self.queries_count)
        )


@dataclass(frozen=True)
class ComparisonRecord:
    """PROD and DXP results for the same URL, plus the delta when both exist."""
    url: str
    prod: Optional[PerformanceRecord] = None
    dxp: Optional[PerformanceRecord] = None
    time_difference: Optional[float] = None
    percent_difference: Optional[float] = None
    timestamp: str = field(default_factory=utc_timestamp)

    @classmethod
    def from_pair(
        cls,
        url: str,
        prod: Optional[PerformanceRecord],
        dxp: Optional[PerformanceRecord],
    ) -> "ComparisonRecord":
        """Build the record, computing deltas only when both totals exist."""
        time_difference = None
        percent_difference = None
        if (prod is not None and dxp is not None
                and prod.total_time is not None and dxp.total_time is not None):
            time_difference = dxp.total_time - prod.total_time
            if prod.total_time > 0:
                percent_difference = round(time_difference / prod.total_time * 100, 2)
            else:
                percent_difference = 0.0
        return cls(
            url=url,
            prod=prod,
            dxp=dxp,
            time_difference=time_difference,
            percent_difference=percent_difference,
        )

    @property
    def is_paired(self) -> bool:
        return self.prod is not None and self.dxp is not None


@dataclass(frozen=True)
class FetchOutcome:
    """Tagged result of visiting one URL in one environment."""
    url: str
    environment: Optional[Environment] = None
    success: bool = False
    record: Optional[PerformanceRecord] = None
    failure: Optional[FailureKind] = None
    message: str = ""

    @classmethod
    def ok(cls, url: str, record: PerformanceRecord,
           environment: Optional[Environment] = None) -> "FetchOutcome":
        return cls(url=url, environment=environment, success=True, record=record)

    @classmethod
    def failed(cls, url: str, failure: FailureKind, message: str = "",
               environment: Optional[Environment] = None) -> "FetchOutcome":
        return cls(url=url, environment=environment, failure=failure, message=message)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

@dataclass
class EnvironmentTally:
    """Per-environment counters (comparison mode)."""
    successful: int = 0
    failed: int = 0
    timeouts: int = 0
    not_found: int = 0
    server_error: int = 0


@dataclass
class RunAggregate:
    """Counters, failure lists and records for one run."""
    total_urls: int = 0
    crawled_count: int = 0
    successful_count: int = 0
    timeout_count: int = 0
    error_count: int = 0
    not_found_count: int = 0
    server_error_count: int = 0

    failed_urls: List[str] = field(default_factory=list)
    not_found_urls: List[str] = field(default_factory=list)
    server_error_urls: List[str] = field(default_factory=list)

    records: List[PerformanceRecord] = field(default_factory=list)
    comparisons: List[ComparisonRecord] = field(default_factory=list)
    per_environment: Dict[Environment, EnvironmentTally] = field(default_factory=dict)

    stopped_early: bool = False
    fatal_error: Optional[str] = None
    # compare mode: failure entries carry their environment, e.g. "url (DXP)"
    tag_failures: bool = False

    def tally(self, environment: Environment) -> EnvironmentTally:
        if environment not in self.per_environment:
            self.per_environment[environment] = EnvironmentTally()
        return self.per_environment[environment]

    def record_outcome(self, outcome: FetchOutcome) -> None:
        """Fold one classified outcome into the counters and lists.

        Only the owning orchestrator calls this, after the visit (or the
        comparison join) has completed.
        """
        tally = self.tally(outcome.environment) if outcome.environment else None
        entry = outcome.url
        if self.tag_failures and outcome.environment:
            entry = f"{outcome.url} ({outcome.environment.value})"

        if outcome.success:
            self.successful_count += 1
            if outcome.record is not None:
                self.records.append(outcome.record)
            if tally:
                tally.successful += 1
            return

        if outcome.failure == FailureKind.NOT_FOUND:
            self.not_found_count += 1
            _append_unique(self.not_found_urls, entry)
            if tally:
                tally.not_found += 1
        elif outcome.failure == FailureKind.SERVER_ERROR:
            self.server_error_count += 1
            _append_unique(self.server_error_urls, entry)
            if tally:
                tally.server_error += 1
        elif outcome.failure == FailureKind.TIMEOUT:
            self.timeout_count += 1
            _append_unique(self.failed_urls, entry)
            if tally:
                tally.timeouts += 1
        else:
            # AUTH_FAILURE and GENERAL_ERROR both count as plain failures
            self.error_count += 1
            _append_unique(self.failed_urls, entry)
            if tally:
                tally.failed += 1

    @property
    def paired_comparisons(self) -> List[ComparisonRecord]:
        return [c for c in self.comparisons if c.time_difference is not None]


def _append_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)

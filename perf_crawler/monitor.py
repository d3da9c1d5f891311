"""
Progress Monitor
================
Throughput / ETA estimation and the end-of-run summary.

The estimate is a pure function of ``(completed, total, elapsed)`` and is
recomputed from scratch on every tick; nothing is accumulated between
calls, so it cannot drift.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .models import Environment, RunAggregate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEstimate:
    """Snapshot of run progress. ``None`` means "unavailable"."""
    completed: int
    total: int
    throughput_per_min: Optional[float]
    eta_seconds: Optional[float]

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.completed)

    def format(self) -> str:
        speed = (f"{self.throughput_per_min:.2f} URLs/min"
                 if self.throughput_per_min is not None else "n/a")
        eta = (f"{self.eta_seconds / 60:.1f} min"
               if self.eta_seconds is not None else "n/a")
        return (f"[PROGRESS] {self.completed}/{self.total} "
                f"| {speed} | ETA {eta} | {self.remaining} remaining")


def estimate_progress(completed: int, total: int, elapsed_seconds: float) -> ProgressEstimate:
    """Throughput in items/minute and ETA in seconds."""
    throughput = None
    eta = None
    if elapsed_seconds > 0:
        throughput = completed / elapsed_seconds * 60
        if throughput > 0:
            eta = max(0, total - completed) / (throughput / 60)
        else:
            throughput = None
    return ProgressEstimate(
        completed=completed,
        total=total,
        throughput_per_min=throughput,
        eta_seconds=eta,
    )


def log_progress(completed: int, total: int, elapsed_seconds: float) -> ProgressEstimate:
    estimate = estimate_progress(completed, total, elapsed_seconds)
    logger.info(estimate.format())
    return estimate


def format_summary(aggregate: RunAggregate, elapsed_seconds: float, mode: str) -> str:
    """Format a human-readable end-of-run summary.

    In compare mode the outcome counters count environment visits (two per
    URL), so the success line is labelled accordingly.
    """
    success_label = "Environment visits OK:" if mode == "compare" else "Fully loaded:"
    lines = [
        "=" * 65,
        f"  PERFORMANCE CRAWL SUMMARY ({mode})",
        "=" * 65,
        f"  URLs in list:        {aggregate.total_urls}",
        f"  URLs crawled:        {aggregate.crawled_count}",
        f"  {success_label:<20} {aggregate.successful_count}",
        f"  Timeouts:            {aggregate.timeout_count}",
        f"  Errors:              {aggregate.error_count}",
        f"  404 Not Found:       {aggregate.not_found_count}",
        f"  500 Server Error:    {aggregate.server_error_count}",
    ]

    for env in (Environment.PROD, Environment.DXP):
        if env not in aggregate.per_environment:
            continue
        tally = aggregate.per_environment[env]
        lines += [
            "-" * 65,
            f"  {env.value}",
            f"    Successful:        {tally.successful}",
            f"    Failed:            {tally.failed}",
            f"    Timeouts:          {tally.timeouts}",
            f"    404 Not Found:     {tally.not_found}",
            f"    500 Server Error:  {tally.server_error}",
        ]

    if aggregate.comparisons:
        paired = aggregate.paired_comparisons
        lines += ["-" * 65, f"  Comparisons:         {len(aggregate.comparisons)}",
                  f"  Paired (both sides): {len(paired)}"]
        if paired:
            avg = sum(c.time_difference for c in paired) / len(paired)
            lines.append(f"  Avg DXP-PROD diff:   {avg:+.3f} s")

    lines.append("-" * 65)
    if aggregate.stopped_early:
        lines.append("  Stopped early:       yes (interrupted)")
    if aggregate.fatal_error:
        lines.append(f"  Fatal error:         {aggregate.fatal_error}")
    lines += [
        f"  Total time:          {elapsed_seconds / 60:.2f} minutes",
        "=" * 65,
    ]
    return "\n".join(lines)

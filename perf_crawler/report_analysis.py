"""
Report Analysis
===============
pandas helpers for reading finished performance reports back in.

Reports are written with a configurable decimal separator (``,`` by
default, the same character as the CSV delimiter, so such values are
quoted).  ``load_report`` reads every cell as text and converts the
numeric columns itself, which works for either separator.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

TOTAL_COLUMN = "Total Time (s)"
PROD_TOTAL_COLUMN = "PROD Total Time (s)"
DXP_TOTAL_COLUMN = "DXP Total Time (s)"


def _numeric_columns(frame: pd.DataFrame):
    return [c for c in frame.columns if c.endswith("(s)") or c.endswith("Queries Count")]


def load_report(path: Union[str, Path], decimal_separator: str = ",") -> pd.DataFrame:
    """Read a single or comparison report into a DataFrame.

    Time columns become floats (``NaN`` where the cell was empty); the
    query count columns become nullable integers.
    """
    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    for column in _numeric_columns(frame):
        values = frame[column].str.strip()
        if decimal_separator != ".":
            values = values.str.replace(decimal_separator, ".", regex=False)
        numbers = pd.to_numeric(values, errors="coerce")
        if column.endswith("Queries Count"):
            numbers = numbers.astype("Int64")
        frame[column] = numbers
    logger.info(f"[REPORT] Loaded {len(frame)} rows from {path}")
    return frame


def is_comparison_report(frame: pd.DataFrame) -> bool:
    return PROD_TOTAL_COLUMN in frame.columns and DXP_TOTAL_COLUMN in frame.columns


def slowest_pages(
    frame: pd.DataFrame, fraction: float = 0.1, column: Optional[str] = None
) -> pd.DataFrame:
    """Return the slowest ``ceil(rows * fraction)`` rows by *column*, slowest first.

    *column* defaults to the total time (DXP total for comparison reports).
    Rows without a value in *column* are ignored.
    """
    if column is None:
        column = DXP_TOTAL_COLUMN if is_comparison_report(frame) else TOTAL_COLUMN
    timed = frame.dropna(subset=[column])
    if timed.empty or fraction <= 0:
        return timed.iloc[0:0][["URL", column]]
    count = math.ceil(len(timed) * fraction)
    return timed.nlargest(count, column)[["URL", column]].reset_index(drop=True)


def _mean(series: pd.Series) -> Optional[float]:
    return None if series.empty else round(float(series.mean()), 4)


def summarize_comparison(frame: pd.DataFrame) -> Dict[str, object]:
    """Headline numbers for a comparison report."""
    paired = frame.dropna(subset=[PROD_TOTAL_COLUMN, DXP_TOTAL_COLUMN])
    difference = paired[DXP_TOTAL_COLUMN] - paired[PROD_TOTAL_COLUMN]
    return {
        "rows": len(frame),
        "paired": len(paired),
        "mean_prod_total": _mean(paired[PROD_TOTAL_COLUMN]),
        "mean_dxp_total": _mean(paired[DXP_TOTAL_COLUMN]),
        "mean_difference": _mean(difference),
        "dxp_slower": paired.loc[difference > 0, "URL"].tolist(),
    }


def summarize_single(frame: pd.DataFrame) -> Dict[str, object]:
    """Headline numbers for a single-environment report."""
    timed = frame.dropna(subset=[TOTAL_COLUMN])
    return {
        "rows": len(frame),
        "with_telemetry": len(timed),
        "mean_total": _mean(timed[TOTAL_COLUMN]),
        "max_total": None if timed.empty else float(timed[TOTAL_COLUMN].max()),
    }


def format_analysis(frame: pd.DataFrame, fraction: float = 0.1) -> str:
    """Text block printed by ``python -m perf_crawler --analyze``."""
    if is_comparison_report(frame):
        summary = summarize_comparison(frame)
        lines = [
            "=" * 60,
            "  COMPARISON REPORT ANALYSIS",
            "=" * 60,
            f"  Rows:                {summary['rows']}",
            f"  Paired rows:         {summary['paired']}",
            f"  Mean PROD total:     {summary['mean_prod_total']}",
            f"  Mean DXP total:      {summary['mean_dxp_total']}",
            f"  Mean difference:     {summary['mean_difference']}",
            f"  DXP slower on:       {len(summary['dxp_slower'])} URL(s)",
        ]
    else:
        summary = summarize_single(frame)
        lines = [
            "=" * 60,
            "  REPORT ANALYSIS",
            "=" * 60,
            f"  Rows:                {summary['rows']}",
            f"  With telemetry:      {summary['with_telemetry']}",
            f"  Mean total time:     {summary['mean_total']}",
            f"  Max total time:      {summary['max_total']}",
        ]

    slowest = slowest_pages(frame, fraction)
    lines.append("-" * 60)
    lines.append(f"  Slowest {fraction:.0%}:")
    column = slowest.columns[-1]
    for row in slowest.itertuples(index=False):
        lines.append(f"    {row[0]} - {row[1]:.2f} seconds")
    if slowest.empty:
        lines.append(f"    (no rows with {column})")
    lines.append("=" * 60)
    return "\n".join(lines)

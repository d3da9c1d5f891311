"""Tests for reading finished reports back with pandas."""

import asyncio

import pandas as pd
import pytest

from perf_crawler.csv_reporter import CsvReporter, ReportMode
from perf_crawler.models import ComparisonRecord, PerformanceRecord
from perf_crawler.report_analysis import (
    format_analysis,
    is_comparison_report,
    load_report,
    slowest_pages,
    summarize_comparison,
)


def _write_comparison_report(tmp_path, separator):
    reporter = CsvReporter(str(tmp_path), "example.com", "comparison",
                           ReportMode.COMPARISON, separator)
    pairs = [
        ("https://a.com/1", 2.0, 2.5),
        ("https://a.com/2", 1.0, 0.5),
        ("https://a.com/3", 3.0, None),
    ]

    async def run():
        for url, prod, dxp in pairs:
            await reporter.write(ComparisonRecord.from_pair(
                url,
                PerformanceRecord(url, total_time=prod, queries_count=4),
                PerformanceRecord(url, total_time=dxp) if dxp is not None else None,
            ))

    asyncio.run(run())
    return reporter.path


@pytest.mark.parametrize("separator", [",", "."])
def test_load_comparison_report(tmp_path, separator):
    frame = load_report(_write_comparison_report(tmp_path, separator), separator)

    assert is_comparison_report(frame)
    assert frame["PROD Total Time (s)"].tolist() == [2.0, 1.0, 3.0]
    assert frame["DXP Total Time (s)"].isna().tolist() == [False, False, True]
    assert frame["PROD Queries Count"].tolist() == [4, 4, 4]


def test_summarize_comparison(tmp_path):
    frame = load_report(_write_comparison_report(tmp_path, ","), ",")
    summary = summarize_comparison(frame)

    assert summary["rows"] == 3
    assert summary["paired"] == 2
    assert summary["mean_prod_total"] == 1.5
    assert summary["mean_dxp_total"] == 1.5
    assert summary["mean_difference"] == 0.0
    assert summary["dxp_slower"] == ["https://a.com/1"]


def test_slowest_pages_ceil():
    frame = pd.DataFrame({
        "URL": [f"u{i}" for i in range(11)],
        "Total Time (s)": [float(i) for i in range(11)],
    })
    slowest = slowest_pages(frame, 0.1)
    assert slowest["URL"].tolist() == ["u10", "u9"]


def test_format_analysis_single(tmp_path):
    reporter = CsvReporter(str(tmp_path), "example.com", "prod")

    async def run():
        await reporter.write(PerformanceRecord("https://a.com/1", total_time=1.25))
        await reporter.write(PerformanceRecord("https://a.com/2"))

    asyncio.run(run())
    text = format_analysis(load_report(reporter.path, ","))

    assert "REPORT ANALYSIS" in text
    assert "With telemetry:      1" in text
    assert "https://a.com/1 - 1.25 seconds" in text

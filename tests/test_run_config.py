"""Tests for the immutable run configuration and the data model."""

import argparse
import dataclasses

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

from perf_crawler.models import (
    ComparisonRecord,
    Environment,
    FailureKind,
    FetchOutcome,
    PerformanceRecord,
    RunAggregate,
    classify_exception,
    classify_status,
)
from perf_crawler.run_config import RunConfig, resolve_site


# ====================================================================
# Run configuration
# ====================================================================

class TestResolveSite:

    @pytest.mark.parametrize("value,expected", [
        ("www.example.com", ("www.example.com", "https://www.example.com")),
        ("www.example.com/", ("www.example.com", "https://www.example.com")),
        ("https://www.example.com/news/a", ("www.example.com", "https://www.example.com")),
        ("http://staging.example.com:8080/", ("staging.example.com", "http://staging.example.com:8080")),
    ])
    def test_variants(self, value, expected):
        assert resolve_site(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty(self, value):
        with pytest.raises(ValueError):
            resolve_site(value)


class TestRunConfig:

    def test_defaults(self):
        config = RunConfig.for_site("www.example.ac.uk")
        assert config.admin_url == "https://www.example.ac.uk/_admin/?FORCE_BACKUP_LOGIN=1"
        assert config.page_timeout_ms == 60_000
        assert config.performance_suffix == "/_performance"
        assert config.decimal_separator == ","
        assert config.accepted_versions == ("Matrix DXP", "DXP SaaS")

    def test_frozen(self):
        config = RunConfig.for_site("www.example.ac.uk")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.domain = "other.example.com"

    def test_with_overrides_leaves_original(self):
        config = RunConfig.for_site("www.example.ac.uk")
        headed = config.with_overrides(headless=False)
        assert config.headless and not headed.headless

    def test_cookie_shape(self):
        cookie = RunConfig().dxp_cookie.for_domain("www.example.ac.uk")
        assert cookie == {
            "name": "SUP_COOKIE",
            "value": "new",
            "domain": "www.example.ac.uk",
            "path": "/",
            "httpOnly": True,
            "secure": False,
        }

    def test_from_cli_args(self):
        args = argparse.Namespace(
            site="https://www.example.ac.uk/", headed=True, no_performance_suffix=True,
            decimal_separator=".", output_dir=None, reports_dir="out",
        )
        config = RunConfig.from_cli_args(args)
        assert config.domain == "www.example.ac.uk"
        assert not config.headless
        assert config.performance_suffix is None
        assert config.decimal_separator == "."
        assert config.output_dir == "URLs"
        assert config.reports_dir == "out"


# ====================================================================
# Data model
# ====================================================================

class TestComparisonRecord:

    def test_delta(self):
        record = ComparisonRecord.from_pair(
            "u", PerformanceRecord("u", total_time=4.0), PerformanceRecord("u", total_time=3.0)
        )
        assert record.time_difference == -1.0
        assert record.percent_difference == -25.0
        assert record.is_paired

    def test_zero_baseline(self):
        record = ComparisonRecord.from_pair(
            "u", PerformanceRecord("u", total_time=0.0), PerformanceRecord("u", total_time=1.5)
        )
        assert record.time_difference == 1.5
        assert record.percent_difference == 0.0

    @pytest.mark.parametrize("prod,dxp", [
        (PerformanceRecord("u", total_time=1.0), None),
        (None, PerformanceRecord("u", total_time=1.0)),
        (PerformanceRecord("u", total_time=1.0), PerformanceRecord("u")),
    ])
    def test_no_delta_without_both_totals(self, prod, dxp):
        record = ComparisonRecord.from_pair("u", prod, dxp)
        assert record.time_difference is None
        assert record.percent_difference is None


class TestClassification:

    def test_status(self):
        assert classify_status(404) == FailureKind.NOT_FOUND
        assert classify_status(500) == FailureKind.SERVER_ERROR
        assert classify_status(200) is None
        assert classify_status(503) is None

    def test_exceptions(self):
        assert classify_exception(PlaywrightTimeout("Timeout 1ms exceeded")) == FailureKind.TIMEOUT
        assert classify_exception(TimeoutError()) == FailureKind.TIMEOUT
        assert classify_exception(RuntimeError("TimeoutError: waiting")) == FailureKind.TIMEOUT
        assert classify_exception(RuntimeError("boom")) == FailureKind.GENERAL_ERROR


def test_aggregate_deduplicates_failure_lists():
    aggregate = RunAggregate()
    for env in (Environment.PROD, Environment.DXP):
        aggregate.record_outcome(FetchOutcome.failed("u", FailureKind.NOT_FOUND, "", env))
    aggregate.record_outcome(FetchOutcome.failed("v", FailureKind.AUTH_FAILURE, "", Environment.DXP))

    assert aggregate.not_found_count == 2
    assert aggregate.not_found_urls == ["u"]
    assert aggregate.error_count == 1
    assert aggregate.failed_urls == ["v"]
    assert aggregate.tally(Environment.DXP).failed == 1
    assert aggregate.tally(Environment.DXP).not_found == 1

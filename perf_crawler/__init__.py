"""
Performance Crawler Package
Measures CMS server-side render times for an explicit URL list, in PROD,
in DXP, or in both environments side by side.

CLI Usage:
    python -m perf_crawler [options]

    Options:
        --site          Domain or URL of the site
        --mode          prod | dxp | compare
        --urls-file     Text file with one URL per line
        --sitemap       Sitemap URL
        --headed        Show the browser window
        --analyze       Summarise a finished CSV report
"""

from .run_config import RunConfig, resolve_site
from .models import (
    ComparisonRecord,
    Environment,
    FailureKind,
    FetchOutcome,
    PerformanceRecord,
    RunAggregate,
)
from .extractor import PerformanceExtractor, parse_performance_text
from .crawler import PerformanceCrawler
from .comparison_crawler import ComparisonCrawler
from .csv_reporter import CsvReporter, ReportMode
from .monitor import estimate_progress

__all__ = [
    'RunConfig',
    'resolve_site',
    # Data model
    'ComparisonRecord',
    'Environment',
    'FailureKind',
    'FetchOutcome',
    'PerformanceRecord',
    'RunAggregate',
    # Extraction + crawling
    'PerformanceExtractor',
    'parse_performance_text',
    'PerformanceCrawler',
    'ComparisonCrawler',
    # Reporting
    'CsvReporter',
    'ReportMode',
    'estimate_progress',
]

__version__ = '1.0.0'

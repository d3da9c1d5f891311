#!/usr/bin/env python3
"""
Interactive CLI for the Performance Crawler
===========================================
Measures CMS render times (``/_performance``) for an explicit URL list in
PROD, in DXP, or in both side by side.

Anything not given as a flag (site, mode, URL source, credentials) is
prompted for, unless ``--non-interactive`` is set.

Run with: python -m perf_crawler
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env (credentials) before anything reads the environment
_env_path = Path(__file__).resolve().parent.parent / '.env'
if _env_path.exists():
    load_dotenv(_env_path)
else:
    load_dotenv()  # tries CWD

from .auth import CredentialSet, Credentials, load_credentials_file, resolve_credentials
from .exceptions import ConfigurationError
from .models import Environment
from .run_config import RunConfig
from .runner import MODES, execute, required_environments
from .url_source import apply_suffix, fetch_sitemap_urls, load_urls_from_file, merge_unique

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

URLS_FILE_NAME = "urls.txt"


# ---------------------------------------------------------------------------
# Prompt helpers
# ---------------------------------------------------------------------------

def get_user_input(prompt: str, default: str = None) -> str:
    """Get user input with optional default value."""
    if default:
        full_prompt = f"{prompt} [{default}]: "
    else:
        full_prompt = f"{prompt}: "
    response = input(full_prompt).strip()
    return response if response else default


def get_choice(prompt: str, options: list, default: int = 1) -> int:
    """Get user choice from numbered options."""
    print(f"\n{prompt}")
    for i, option in enumerate(options, 1):
        marker = " (default)" if i == default else ""
        print(f"  {i}) {option}{marker}")
    while True:
        response = input(f"Enter choice [1-{len(options)}]: ").strip()
        if not response:
            return default
        try:
            choice = int(response)
            if 1 <= choice <= len(options):
                return choice
        except ValueError:
            pass
        print(f"Please enter a number between 1 and {len(options)}")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='perf_crawler',
        description='CMS performance crawler - PROD, DXP or side-by-side comparison',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m perf_crawler                                        # Interactive mode
  python -m perf_crawler --site www.example.ac.uk --mode compare --urls-file URLs/urls.txt
  python -m perf_crawler --site www.example.ac.uk --mode dxp --sitemap https://www.example.ac.uk/sitemap.xml
  python -m perf_crawler --analyze reports/example.ac.uk-comparison-2025-01-31-0930.csv
        """
    )

    parser.add_argument('--site', type=str, help='Domain or URL of the site (e.g. www.example.com)')
    parser.add_argument('--mode', choices=MODES, help='prod, dxp or compare')

    # ── URL source ────────────────────────────────────────────────
    source_group = parser.add_argument_group('URL source')
    source_group.add_argument('--urls-file', type=str, metavar='PATH',
                              help='Text file with one URL per line')
    source_group.add_argument('--sitemap', type=str, metavar='URL',
                              help='Sitemap (or sitemap index) URL')
    source_group.add_argument('--suffix', type=str,
                              help='Extra path suffix added to every URL (e.g. /_nocache)')
    source_group.add_argument('--no-performance-suffix', action='store_true',
                              help="Do not append '/_performance' to the URLs")

    # ── Authentication ────────────────────────────────────────────
    auth_group = parser.add_argument_group(
        'Authentication',
        'Credentials are resolved from flags, the credentials file, '
        'PROD_/DXP_USERNAME and PROD_/DXP_PASSWORD env vars (.env supported), '
        'then prompted for.')
    auth_group.add_argument('--credentials-file', type=str, default='credentials.json',
                            metavar='PATH', help='JSON credentials file (default: credentials.json)')
    auth_group.add_argument('--prod-username', type=str, help='PROD login username')
    auth_group.add_argument('--prod-password', type=str, help='PROD login password')
    auth_group.add_argument('--dxp-username', type=str, help='DXP login username')
    auth_group.add_argument('--dxp-password', type=str, help='DXP login password')

    # ── Output ────────────────────────────────────────────────────
    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--output-dir', type=str,
                              help='Directory for URL lists (default: URLs)')
    output_group.add_argument('--reports-dir', type=str,
                              help='Directory for CSV reports (default: reports)')
    output_group.add_argument('--decimal-separator', type=str,
                              help="Decimal separator in CSV reports (default: ',')")

    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--non-interactive', action='store_true',
                        help='Never prompt; fail if something required is missing')
    parser.add_argument('--analyze', type=str, metavar='REPORT',
                        help='Print an analysis of a finished CSV report and exit')
    return parser


# ---------------------------------------------------------------------------
# Interactive resolution of missing options
# ---------------------------------------------------------------------------

def _resolve_site_and_mode(args, interactive: bool) -> None:
    if not args.site:
        if not interactive:
            raise ConfigurationError("--site is required with --non-interactive")
        args.site = get_user_input(
            "\nEnter the domain or URL (e.g., www.example.com or https://www.example.com/)"
        )
    if not args.mode:
        if not interactive:
            raise ConfigurationError("--mode is required with --non-interactive")
        choice = get_choice(
            "Which environment do you want to measure?",
            ["PROD", "DXP", "Compare PROD vs DXP"],
            default=3,
        )
        args.mode = MODES[choice - 1]


def _collect_urls(args, config: RunConfig, interactive: bool) -> List[str]:
    """Load, merge and suffix the URL list."""
    urls_file = args.urls_file
    sitemap = args.sitemap

    if not urls_file and not sitemap:
        if not interactive:
            raise ConfigurationError("--urls-file or --sitemap is required with --non-interactive")
        default_file = str(Path(config.output_dir) / URLS_FILE_NAME)
        choice = get_choice(
            "How do you want to crawl?",
            [f"From URLs file ({default_file})", "From a sitemap URL", "Both (file & sitemap)"],
        )
        if choice in (1, 3):
            urls_file = get_user_input("URLs file", default_file)
        if choice in (2, 3):
            sitemap = get_user_input("Enter the sitemap URL")

    sources = []
    if urls_file:
        sources.append(load_urls_from_file(urls_file))
    if sitemap:
        sources.append(fetch_sitemap_urls(sitemap, timeout=config.sitemap_timeout_s))
    urls = merge_unique(*sources)
    if not urls:
        raise ConfigurationError("No URLs found")
    logger.info(f"✅ Loaded {len(urls)} URLs")

    suffix = args.suffix
    if suffix is None and interactive:
        if (get_user_input("Do you want to add a suffix to each URL? (y/n)", "n") or "").lower() == "y":
            suffix = get_user_input("Enter the suffix to add (e.g. /_nocache)")
    if suffix:
        logger.info(f"🔧 Adding suffix \"{suffix}\" to all URLs")
        urls = apply_suffix(urls, suffix)

    # /news and /news/ collapse to the same page once suffixed
    return merge_unique(apply_suffix(urls, config.performance_suffix))


def _collect_credentials(args, mode: str, interactive: bool) -> CredentialSet:
    file_credentials = load_credentials_file(args.credentials_file)
    explicit = {
        Environment.PROD: Credentials(args.prod_username or "", args.prod_password or ""),
        Environment.DXP: Credentials(args.dxp_username or "", args.dxp_password or ""),
    }
    resolved = {
        env: resolve_credentials(
            env, explicit[env], file_credentials=file_credentials, interactive=interactive
        )
        for env in required_environments(mode)
    }
    credentials = CredentialSet(
        prod=resolved.get(Environment.PROD, Credentials()),
        dxp=resolved.get(Environment.DXP, Credentials()),
    )
    credentials.require(required_environments(mode))
    return credentials


def _run_analysis(path: str, decimal_separator: Optional[str]) -> int:
    from .report_analysis import format_analysis, load_report

    if not Path(path).exists():
        logger.error(f"Report not found: {path}")
        return 1
    frame = load_report(path, decimal_separator or RunConfig().decimal_separator)
    print(format_analysis(frame, RunConfig().slowest_fraction))
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_cli_with_args(argv: Optional[List[str]] = None) -> int:
    """Parse argv, resolve everything missing, run. Returns the exit status."""
    args = build_parser().parse_args(argv)

    if args.analyze:
        return _run_analysis(args.analyze, args.decimal_separator)

    interactive = not args.non_interactive and sys.stdin.isatty()
    try:
        _resolve_site_and_mode(args, interactive)
        config = RunConfig.from_cli_args(args)
        credentials = _collect_credentials(args, args.mode, interactive)
        urls = _collect_urls(args, config, interactive)
    except (ConfigurationError, ValueError) as exc:
        logger.error(f"❌ {exc}")
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.")
        return 130

    return execute(config, args.mode, urls, credentials)


def main():
    sys.exit(run_cli_with_args())


if __name__ == "__main__":
    main()

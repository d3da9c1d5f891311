"""
URL Sources
===========
Builds the explicit, ordered URL list a run works through.

Sources:
    - a text file, one URL per line (``#`` comments and blanks ignored)
    - an XML sitemap (``<urlset>`` or ``<sitemapindex>``, followed up to
      ``MAX_SITEMAP_DEPTH`` levels)

No link discovery happens anywhere: only listed URLs are visited.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import urlparse, urlunparse

import requests

logger = logging.getLogger(__name__)

SITEMAP_NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}
MAX_SITEMAP_DEPTH = 3

# "(PROD)" / "(DXP)" suffix written by compare-mode logs and failure lists
_ENVIRONMENT_TAG = re.compile(r"\s+\((?:PROD|DXP)\)$")


def load_urls_from_file(path: str) -> List[str]:
    """Read URLs from *path*; a missing file yields an empty list.

    A trailing environment tag (``url (DXP)``) is dropped, so compare-mode
    failure lists can be fed straight back in.
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.warning(f"[URLS] URL file not found: {file_path}")
        return []
    urls = []
    for line in file_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            urls.append(_ENVIRONMENT_TAG.sub("", line))
    logger.info(f"[URLS] 📂 Loaded {len(urls)} URLs from {file_path}")
    return urls


def _fetch_sitemap_content(url: str, timeout: float) -> str:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.text


def parse_sitemap_xml(xml_content: str, timeout: float = 10, _depth: int = 0) -> List[str]:
    """Extract page URLs from sitemap XML, following index files."""
    if _depth >= MAX_SITEMAP_DEPTH:
        logger.warning(f"[SITEMAP] Max sitemap depth ({MAX_SITEMAP_DEPTH}) reached, stopping recursion")
        return []

    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as exc:
        logger.error(f"[SITEMAP] Malformed sitemap XML: {exc}")
        return []

    root_tag = root.tag.split("}")[-1]
    urls: List[str] = []

    if root_tag == "sitemapindex":
        locs = root.findall("sm:sitemap/sm:loc", SITEMAP_NS) or root.findall("sitemap/loc")
        for loc in locs:
            child_url = (loc.text or "").strip()
            if not child_url:
                continue
            logger.info(f"[SITEMAP] Following child sitemap: {child_url}")
            try:
                child_content = _fetch_sitemap_content(child_url, timeout)
            except requests.RequestException as exc:
                logger.error(f"[SITEMAP] Failed to fetch child sitemap {child_url}: {exc}")
                continue
            urls.extend(parse_sitemap_xml(child_content, timeout, _depth + 1))
    else:
        locs = root.findall("sm:url/sm:loc", SITEMAP_NS) or root.findall("url/loc")
        for loc in locs:
            text = (loc.text or "").strip()
            if text:
                urls.append(text)

    return urls


def fetch_sitemap_urls(sitemap_url: str, timeout: float = 10) -> List[str]:
    """Download and parse *sitemap_url*; failures are logged and yield ``[]``."""
    logger.info(f"[SITEMAP] 📥 Loading URLs from sitemap: {sitemap_url}")
    try:
        content = _fetch_sitemap_content(sitemap_url, timeout)
    except requests.RequestException as exc:
        logger.error(f"[SITEMAP] ❌ Error fetching sitemap: {exc}")
        return []
    urls = parse_sitemap_xml(content, timeout)
    logger.info(f"[SITEMAP] Found {len(urls)} URLs")
    return urls


def merge_unique(*sources: Iterable[str]) -> List[str]:
    """Concatenate *sources*, keeping the first occurrence of each URL."""
    seen = set()
    merged = []
    for source in sources:
        for url in source:
            if url not in seen:
                seen.add(url)
                merged.append(url)
    return merged


def apply_suffix(urls: Iterable[str], suffix: Optional[str]) -> List[str]:
    """Append *suffix* to the path of every URL (query and fragment kept).

    ``https://a.com/news/?p=1`` + ``/_performance`` →
    ``https://a.com/news/_performance?p=1``
    """
    if not suffix:
        return list(urls)
    suffixed = []
    for url in urls:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            logger.warning(f"[URLS] Cannot add suffix to {url!r}, keeping it unchanged")
            suffixed.append(url)
            continue
        path = parsed.path.rstrip("/")
        if not path.endswith(suffix.rstrip("/")):
            path = path + suffix
        suffixed.append(urlunparse(parsed._replace(path=path)))
    return suffixed

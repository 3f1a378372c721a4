"""
Discover the current schedule PDF for every pool.

The Swimming Pools listing on sfrecpark.org links to one facility page per
pool, and each facility page links to a handful of documents (schedule, pool
rules, party rentals, the citywide aquatics flyer). The schedule is picked
from the page's "Documents" row when there is one, otherwise by scoring the
document links.

If the listing no longer lines up with the pool registry (a pool page was
added, removed or renamed) the step fails, since that needs a human to update
pool_mapping.py.
"""

import logging
import re
import time
import traceback
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from constants import (
    DISCOVERED_FILE,
    POOL_LIST_URL,
    REQUEST_DELAY_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    USER_AGENT,
)
from errors import DiscoveryError
from pool_mapping import REGISTRY
from schedule_cache import write_json_atomic

logger = logging.getLogger(__name__)

HEADERS = {"User-Agent": USER_AGENT}

FACILITY_PATH = "/Facilities/Facility/Details/"
DOCUMENT_PATH = "/DocumentCenter/View/"

TRAILING_ID = re.compile(r"-\d+$")


@dataclass
class DiscoveryResult:
    pools: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    structural_errors: list = field(default_factory=list)

    @property
    def success(self):
        return not self.structural_errors


def fetch_text(url, session=requests):
    response = session.get(url, headers=HEADERS, timeout=REQUEST_TIMEOUT_SECONDS)
    response.raise_for_status()
    return response.text


def find_pool_pages(html, base_url=POOL_LIST_URL):
    """Facility page links on the listing page as (absolute url, link text), first occurrence only."""
    soup = BeautifulSoup(html, 'html.parser')
    pages = []
    seen = set()
    for link in soup.find_all('a', href=lambda href: href and FACILITY_PATH in href):
        url = urljoin(base_url, link.get('href'))
        if url in seen:
            continue
        seen.add(url)
        pages.append((url, link.get_text(" ", strip=True)))
    return pages


def slug_from_url(page_url):
    """e.g. 'Martin-Luther-King-Jr-Pool-216'"""
    parts = [p for p in urlparse(page_url).path.split("/") if p]
    return parts[-1] if parts else ""


def slug_tokens(slug):
    return [t for t in TRAILING_ID.sub("", slug).lower().split("-") if t]


def resolve_pool_page(page_url, link_text, page_overrides=None, registry=REGISTRY):
    """Pool id for a facility page: curated pageUrl first, then the link text, then the URL slug."""
    page_overrides = page_overrides or {}
    if page_url in page_overrides:
        return page_overrides[page_url]
    pool = registry.find_pool(link_text)
    if pool is None:
        pool = registry.find_pool(" ".join(slug_tokens(slug_from_url(page_url))))
    return pool.id if pool else None


def _is_document_link(href):
    return bool(href) and DOCUMENT_PATH in href


def score_pdf_link(text, href, tokens):
    text = text.lower()
    href = href.lower()
    score = 0
    if "schedule" in text:
        score += 4
    if "pool" in text:
        score += 1
    if href.endswith(".pdf") or text.endswith("pdf"):
        score += 1

    token_matches = sum(1 for t in tokens if len(t) >= 3 and (t in text or t in href))
    if token_matches > 0:
        score += token_matches
    else:
        score -= 3

    if "citywide" in text:
        score -= 4
    if "aquatics" in text and "pool" not in text:
        score -= 2
    if "rules" in text:
        score -= 2
    if "party" in text:
        score -= 2
    if "mission" in text and "mission" not in tokens:
        score -= 3
    return score


def pick_best_pdf_link(html, page_url, slug):
    """Absolute URL of the most likely schedule PDF on a facility page, or None."""
    soup = BeautifulSoup(html, 'html.parser')
    context = soup.select_one(".details") or soup

    for th in context.find_all('th'):
        if th.get_text(strip=True).lower() == "documents":
            row = th.find_parent('tr')
            link = row.find('a', href=_is_document_link) if row else None
            if link:
                return urljoin(page_url, link.get('href'))

    tokens = slug_tokens(slug)
    best_url = None
    best_score = None
    for link in context.find_all('a', href=_is_document_link):
        url = urljoin(page_url, link.get('href'))
        score = score_pdf_link(link.get_text(strip=True), url, tokens)
        # strictly greater keeps the first link on ties
        if best_score is None or score > best_score:
            best_url = url
            best_score = score
    return best_url


def discover(session=requests, page_overrides=None, registry=REGISTRY, delay=REQUEST_DELAY_SECONDS):
    """
    Scrape the listing and every pool page.

    page_overrides maps a facility page URL to a pool id, for pages whose
    link text and slug don't resolve on their own.
    """
    result = DiscoveryResult()

    print(f"Scraping pool listing: {POOL_LIST_URL}")
    pages = find_pool_pages(fetch_text(POOL_LIST_URL, session=session))
    print(f"Found {len(pages)} pool pages")

    expected_ids = registry.all_ids()
    if len(pages) != len(expected_ids):
        result.structural_errors.append(
            f"Pool count mismatch: expected {len(expected_ids)}, found {len(pages)}")

    resolved = []
    seen_ids = set()
    for page_url, link_text in pages:
        pool_id = resolve_pool_page(page_url, link_text, page_overrides, registry)
        if pool_id is None or pool_id in seen_ids:
            result.structural_errors.append(f"Unexpected pool page URL: {page_url}")
            continue
        seen_ids.add(pool_id)
        resolved.append((pool_id, page_url))

    for pool_id in expected_ids:
        if pool_id not in seen_ids:
            pool = registry.get_pool_by_id(pool_id)
            result.structural_errors.append(f"Missing pool page for {pool.short_name}")

    for pool_id, page_url in resolved:
        pool = registry.get_pool_by_id(pool_id)
        pdf_url = None
        try:
            if delay:
                time.sleep(delay)
            html = fetch_text(page_url, session=session)
            pdf_url = pick_best_pdf_link(html, page_url, slug_from_url(page_url))
        except requests.RequestException as e:
            result.errors.append(f"Failed to scrape {pool.short_name}: {e}")
            traceback.print_exc()

        if pdf_url:
            lowered = pdf_url.lower()
            if "rules" in lowered or "facility" in lowered:
                result.errors.append(
                    f"Suspicious PDF URL for {pool.short_name}: {pdf_url} (looks like rules/facility doc)")
        else:
            result.errors.append(f"No PDF found for {pool.short_name}")

        result.pools.append({
            "poolId": pool_id,
            "poolName": pool.display_name,
            "pageUrl": page_url,
            "pdfUrl": pdf_url,
        })
        print(f"  {pool.short_name} -> {pdf_url or '(no pdf found)'}")

    return result


def run_discovery(output_file=DISCOVERED_FILE, session=requests, page_overrides=None, delay=REQUEST_DELAY_SECONDS):
    """Discover, write the discovered file, and raise DiscoveryError on structural drift."""
    result = discover(session=session, page_overrides=page_overrides, delay=delay)
    write_json_atomic(output_file, result.pools)
    print(f"Wrote {output_file}")

    for problem in result.structural_errors:
        logger.error(problem)
    for problem in result.errors:
        logger.warning(problem)

    if not result.success:
        raise DiscoveryError("Pool structure has changed; update pool_mapping.py if this is expected",
                             errors=result.structural_errors)
    return result

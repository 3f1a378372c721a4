"""
Scrape closure notices and other alerts from sfrecpark.org.

Alerts are free text in the page body, so anything that mentions an alert
keyword and isn't known boilerplate counts. New alerts are the ones that were
not in the previous alerts.json.
"""

import datetime
import logging
import re
import time
import traceback
from zoneinfo import ZoneInfo

import requests
from bs4 import BeautifulSoup

from constants import ALERTS_FILE, DISCOVERED_FILE, POOL_LIST_URL, REQUEST_DELAY_SECONDS, TIMEZONE
from download_pdfs import load_discovered
from notify import notify_new_alerts
from schedule_cache import load_json, write_json_atomic
from scrape_pool_info import fetch_text

logger = logging.getLogger(__name__)

ALERT_KEYWORDS = [
    "closed",
    "closure",
    "cancelled",
    "canceled",
    "suspended",
    "temporarily",
    "until further notice",
    "out of service",
    "broken",
    "emergency",
    "please note",
    "attention",
    "important notice",
    "advisory",
    "warning",
]

EXCLUDE_PATTERNS = [
    "report a maintenance issue",
    "call 311",
    "click here to report",
    "this pool offers",
    "playground is located",
    "the project includes",
    "register at sfrecpark.org",
    "pre-registration required",
]

MIN_ALERT_LENGTH = 20
MAX_ALERT_LENGTH = 500


def is_real_alert(text):
    lower = text.lower()
    if not any(keyword in lower for keyword in ALERT_KEYWORDS):
        return False
    return not any(pattern in lower for pattern in EXCLUDE_PATTERNS)


def clean_text(text):
    return re.sub(r"\s+", " ", text.replace("\u00a0", " ")).strip()


def _in_page_chrome(element):
    for parent in element.parents:
        classes = parent.get("class") or []
        if any(c in ("footer", "nav", "header", "cp-Splash") for c in classes):
            return True
    return False


def extract_alerts(html, item_tags):
    """Alert texts found in the page's rich-text areas, in document order, without duplicates."""
    soup = BeautifulSoup(html, 'html.parser')
    alerts = []
    for area in soup.select(".fr-view"):
        if _in_page_chrome(area):
            continue
        for item in area.find_all(item_tags):
            text = clean_text(item.get_text(" ", strip=True))
            if len(text) < MIN_ALERT_LENGTH or len(text) > MAX_ALERT_LENGTH:
                continue
            if is_real_alert(text) and text not in alerts:
                alerts.append(text)
    return alerts


def scrape_site_wide_alerts(session=requests):
    print(f"Scraping site-wide alerts from: {POOL_LIST_URL}")
    return extract_alerts(fetch_text(POOL_LIST_URL, session=session), ["li", "p"])


def scrape_pool_alerts(discovered, session=requests, delay=REQUEST_DELAY_SECONDS, now=None):
    now = now or datetime.datetime.now(tz=ZoneInfo(TIMEZONE)).isoformat()
    alerts = []
    for pool in discovered:
        if not pool.get("pageUrl"):
            continue
        try:
            if delay:
                time.sleep(delay)
            print(f"Checking alerts for: {pool['poolName']}")
            html = fetch_text(pool["pageUrl"], session=session)
        except requests.RequestException as e:
            print(f"Failed to check alerts for {pool['poolName']}: {e}")
            traceback.print_exc()
            continue

        for text in extract_alerts(html, ["p", "strong", "span"]):
            alerts.append({
                "poolId": pool.get("poolId"),
                "poolName": pool["poolName"],
                "pageUrl": pool["pageUrl"],
                "alertText": text,
                "scrapedAt": now,
            })
    return alerts


def find_new_alerts(previous, current):
    """(new site-wide alerts, new pool alerts) compared with the previous alerts data."""
    if not previous:
        return current["siteWideAlerts"], current["poolAlerts"]

    new_site_wide = [a for a in current["siteWideAlerts"] if a not in previous.get("siteWideAlerts", [])]
    seen = {(a["poolName"], a["alertText"]) for a in previous.get("poolAlerts", [])}
    new_pool_alerts = [a for a in current["poolAlerts"] if (a["poolName"], a["alertText"]) not in seen]
    return new_site_wide, new_pool_alerts


def run_alerts(notify=False, alerts_file=ALERTS_FILE, discovered_file=DISCOVERED_FILE, session=requests,
               delay=REQUEST_DELAY_SECONDS):
    previous = load_json(alerts_file, None)
    try:
        discovered = load_discovered(discovered_file)
    except FileNotFoundError:
        logger.warning("Could not load discovered pools from %s, run discover first", discovered_file)
        discovered = []

    current = {
        "siteWideAlerts": scrape_site_wide_alerts(session=session),
        "poolAlerts": scrape_pool_alerts(discovered, session=session, delay=delay),
        "lastUpdated": datetime.datetime.now(tz=ZoneInfo(TIMEZONE)).isoformat(),
    }
    print(f"Site-wide alerts: {len(current['siteWideAlerts'])}")
    print(f"Pool alerts: {len(current['poolAlerts'])}")

    new_site_wide, new_pool_alerts = find_new_alerts(previous, current)
    if new_site_wide or new_pool_alerts:
        print(f"🆕 New alerts: {len(new_site_wide)} site-wide, {len(new_pool_alerts)} pool")
        if notify:
            notify_new_alerts(new_site_wide, new_pool_alerts)

    write_json_atomic(alerts_file, current)
    print(f"Wrote: {alerts_file}")
    return current, new_site_wide, new_pool_alerts

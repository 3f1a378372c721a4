"""
Download the schedule PDFs listed in discovered_pool_schedules.json.

A PDF is fetched again only when discovery found a different URL for the pool
or when the local copy no longer matches the hash in the manifest. Set
FORCE_DOWNLOAD=1 to fetch everything.
"""

import json
import logging
import os
import time
import traceback

import requests

from constants import (
    DISCOVERED_FILE,
    FORCE_DOWNLOAD,
    PDF_DIR,
    REQUEST_DELAY_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    USER_AGENT,
)
from errors import DownloadError
from schedule_cache import ManifestStore, sha256_hex

logger = logging.getLogger(__name__)

HEADERS = {"User-Agent": USER_AGENT}


def load_discovered(path=DISCOVERED_FILE):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def pdf_filename(pool_id):
    return f"{pool_id}.pdf"


def download_pdf(pdf_url, output_path, session=requests, timeout=REQUEST_TIMEOUT_SECONDS):
    """
    Download a PDF to output_path and return its bytes.

    The file is written to a temporary name first and moved into place, so a
    failed download never leaves a truncated PDF behind.
    """
    tmp_path = f"{output_path}.part"
    try:
        response = session.get(pdf_url, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
        content = response.content
        if not content:
            raise DownloadError(f"Empty response from {pdf_url}")

        with open(tmp_path, 'wb') as f:
            f.write(content)
        os.replace(tmp_path, output_path)
        return content
    except requests.RequestException as e:
        raise DownloadError(f"Failed to download {pdf_url}: {e}", cause=e)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def download_all(discovered, manifest, pdf_dir=PDF_DIR, force=FORCE_DOWNLOAD,
                 session=requests, delay=REQUEST_DELAY_SECONDS):
    """
    Fetch every discovered PDF that isn't already up to date.

    The manifest is only updated for successful downloads. Returns counts of
    downloaded, skipped and failed pools.
    """
    os.makedirs(pdf_dir, exist_ok=True)
    summary = {"downloaded": 0, "skipped": 0, "failed": 0}

    for entry in discovered:
        pool_id = entry.get("poolId")
        pdf_url = entry.get("pdfUrl")
        if not pool_id or not pdf_url:
            print(f"Skipping {entry.get('poolName')}: no schedule PDF")
            summary["skipped"] += 1
            continue

        if not force and manifest.is_current(pool_id, pdf_url, pdf_dir):
            print(f"{pool_id}: unchanged, using cached PDF")
            summary["skipped"] += 1
            continue

        filename = pdf_filename(pool_id)
        print(f"{pool_id}: downloading {pdf_url}")
        try:
            content = download_pdf(pdf_url, os.path.join(pdf_dir, filename), session=session)
        except DownloadError as e:
            print(f"Error downloading PDF for {pool_id}: {e}")
            traceback.print_exc()
            summary["failed"] += 1
            continue

        if not content.startswith(b"%PDF"):
            logger.warning("%s does not look like a PDF", pdf_url)
        manifest.record(pool_id, pdf_url, sha256_hex(content), filename)
        summary["downloaded"] += 1

        if delay:
            time.sleep(delay)

    return summary


def run_fetch(discovered_file=DISCOVERED_FILE, pdf_dir=PDF_DIR, force=FORCE_DOWNLOAD):
    discovered = load_discovered(discovered_file)
    manifest = ManifestStore.load()
    summary = download_all(discovered, manifest, pdf_dir=pdf_dir, force=force)
    manifest.save()
    print(f"Download complete: {summary['downloaded']} downloaded, "
          f"{summary['skipped']} skipped, {summary['failed']} failed")
    return summary

"""
On-disk stores that let a run skip work done by the previous one.

ManifestStore     pool id -> the PDF last downloaded for it (url, sha256, file)
ExtractionCache   pool id -> extraction result for a given PDF hash

Both are loaded once when a step starts and saved once when it ends.
"""

import datetime
import hashlib
import json
import logging
import os
from zoneinfo import ZoneInfo

from constants import EXTRACTION_CACHE_FILE, MANIFEST_FILE, TIMEZONE

logger = logging.getLogger(__name__)


def sha256_hex(data):
    return hashlib.sha256(data).hexdigest()


def file_sha256(path):
    """SHA-256 of a file's contents, or None if it can't be read."""
    try:
        with open(path, 'rb') as f:
            return sha256_hex(f.read())
    except OSError:
        return None


def now_iso():
    return datetime.datetime.now(tz=ZoneInfo(TIMEZONE)).isoformat()


def load_json(path, default):
    try:
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s: %s", path, e)
    return default


def write_json_atomic(path, data):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = f"{path}.tmp"
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp_path, path)


class ManifestStore:

    def __init__(self, path=MANIFEST_FILE):
        self.path = path
        self.entries = {}

    @classmethod
    def load(cls, path=MANIFEST_FILE):
        store = cls(path)
        store.entries = load_json(path, {})
        return store

    def save(self):
        write_json_atomic(self.path, self.entries)

    def get(self, pool_id):
        return self.entries.get(pool_id)

    def record(self, pool_id, document_url, content_hash, filename, downloaded_at=None):
        self.entries[pool_id] = {
            "documentUrl": document_url,
            "contentHash": content_hash,
            "filename": filename,
            "lastDownloaded": downloaded_at or now_iso(),
        }

    def is_current(self, pool_id, document_url, directory):
        """True when the stored file still matches what the manifest says was downloaded from document_url."""
        entry = self.get(pool_id)
        if not entry or entry.get("documentUrl") != document_url:
            return False
        path = os.path.join(directory, entry.get("filename", ""))
        return file_sha256(path) == entry.get("contentHash")


class ExtractionCache:

    def __init__(self, path=EXTRACTION_CACHE_FILE):
        self.path = path
        self.entries = {}

    @classmethod
    def load(cls, path=EXTRACTION_CACHE_FILE):
        cache = cls(path)
        cache.entries = load_json(path, {})
        return cache

    def save(self):
        write_json_atomic(self.path, self.entries)

    def get(self, pool_id, content_hash):
        """Cached raw schedules (list of dicts) for this exact PDF, or None."""
        entry = self.entries.get(pool_id)
        if entry and entry.get("contentHash") == content_hash:
            return entry.get("schedules")
        return None

    def put(self, pool_id, content_hash, schedules, extracted_at=None, extracted_on=None):
        extracted_at = extracted_at or now_iso()
        self.entries[pool_id] = {
            "contentHash": content_hash,
            "extractedAt": extracted_at,
            "extractedOn": extracted_on or extracted_at[:10],
            "schedules": schedules,
        }

    def extracted_on(self, pool_id):
        """Day (YYYY-MM-DD) the cached extraction was made, used as its lastUpdated default."""
        entry = self.entries.get(pool_id) or {}
        return entry.get("extractedOn") or (entry.get("extractedAt") or "")[:10] or None

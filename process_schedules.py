"""
Process downloaded PDFs into all_schedules.json and the changelog.

For every pool in the download manifest:
  1. reuse the cached extraction if the PDF hash hasn't changed, otherwise
     send the PDF to the extractor
  2. reconcile the extracted pools against the pool registry
Pools whose PDF is missing or whose extraction failed keep their previous
record. The changelog is computed against the previous aggregate after that,
so a failed pool never shows up as removed.
"""

import logging
import os
import traceback
from dataclasses import dataclass, field

from aggregate import (
    load_previous_schedules,
    load_static_metadata,
    order_records,
    preserve_unprocessed,
    write_all_schedules,
)
from changelog import DEFAULT_THRESHOLDS, compute_changelog, format_changelog_summary, save_changelog
from constants import (
    ALL_SCHEDULES_FILE,
    CHANGELOG_DIR,
    DISCOVERED_FILE,
    EXTRACTION_CACHE_FILE,
    FORCE_EXTRACT,
    MANIFEST_FILE,
    PDF_DIR,
    POOLS_FILE,
)
from download_pdfs import load_discovered
from errors import ExtractionError
from pdf_parser import ScheduleExtractor, validate_extraction
from pool_mapping import REGISTRY
from reconcile import merge_duplicates, reconcile, today_pacific
from schedule_cache import ExtractionCache, ManifestStore, sha256_hex

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    records: list
    changelog: dict
    changelog_path: str = None
    processed: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    preserved: list = field(default_factory=list)


def _manifest_order(manifest):
    known = [pool_id for pool_id in REGISTRY.all_ids() if pool_id in manifest.entries]
    others = sorted(pool_id for pool_id in manifest.entries if pool_id not in known)
    return known + others


def _load_hints(path):
    if not os.path.exists(path):
        return {}
    return {entry["poolId"]: entry for entry in load_discovered(path) if entry.get("poolId")}


class ScheduleProcessor:

    def __init__(self, extractor=None, force_extract=FORCE_EXTRACT, pdf_dir=PDF_DIR,
                 manifest_file=MANIFEST_FILE, cache_file=EXTRACTION_CACHE_FILE,
                 discovered_file=DISCOVERED_FILE, pools_file=POOLS_FILE,
                 output_file=ALL_SCHEDULES_FILE, changelog_dir=CHANGELOG_DIR,
                 thresholds=DEFAULT_THRESHOLDS):
        self._extractor = extractor
        self.force_extract = force_extract
        self.pdf_dir = pdf_dir
        self.manifest_file = manifest_file
        self.cache_file = cache_file
        self.discovered_file = discovered_file
        self.pools_file = pools_file
        self.output_file = output_file
        self.changelog_dir = changelog_dir
        self.thresholds = thresholds

    @property
    def extractor(self):
        # created on first use so a fully cached run needs no API key
        if self._extractor is None:
            self._extractor = ScheduleExtractor()
        return self._extractor

    def extract_pool(self, pool_id, manifest_entry, hints, cache, today):
        """
        Raw ExtractedPool list for one downloaded PDF, from the cache when possible.

        Returns (pools, extracted_on). A cache hit keeps the day of the original
        extraction, so an unchanged PDF keeps its lastUpdated.
        """
        path = os.path.join(self.pdf_dir, manifest_entry["filename"])
        with open(path, 'rb') as f:
            pdf_bytes = f.read()
        content_hash = sha256_hex(pdf_bytes)
        if content_hash != manifest_entry.get("contentHash"):
            logger.warning("%s no longer matches the manifest hash", path)

        if not self.force_extract:
            cached = cache.get(pool_id, content_hash)
            if cached is not None:
                print(f"  Using cached extraction ({content_hash[:12]})")
                return validate_extraction(cached), cache.extracted_on(pool_id)

        print(f"  Extracting schedule from {path}...")
        extracted = self.extractor.extract(pdf_bytes, {
            "pdfScheduleUrl": hints.get("pdfUrl"),
            "sfRecParkUrl": hints.get("pageUrl"),
        })
        cache.put(pool_id, content_hash, [p.model_dump() for p in extracted], extracted_on=today)
        return extracted, today

    def run(self, today=None, now=None):
        # fails before any extraction if the previous aggregate is unreadable
        previous = load_previous_schedules(self.output_file)
        manifest = ManifestStore.load(self.manifest_file)
        cache = ExtractionCache.load(self.cache_file)
        hints_by_id = _load_hints(self.discovered_file)
        static_metadata = load_static_metadata(self.pools_file)
        today = today or today_pacific()

        fresh = []
        processed = []
        failed = []
        for pool_id in _manifest_order(manifest):
            entry = manifest.get(pool_id)
            print(f"Processing {pool_id}")
            hints = dict(hints_by_id.get(pool_id) or {"poolId": pool_id})
            # the document actually processed is the one in the manifest
            hints["pdfUrl"] = entry.get("documentUrl") or hints.get("pdfUrl")
            try:
                extracted, extracted_on = self.extract_pool(pool_id, entry, hints, cache, today)
            except (OSError, ExtractionError) as e:
                print(f"Error processing {pool_id}: {e}")
                traceback.print_exc()
                failed.append(pool_id)
                continue

            for raw_pool in extracted:
                fresh.append(reconcile(raw_pool, hints, static_metadata, extracted_on))
            processed.append(pool_id)

        cache.save()

        fresh = merge_duplicates(fresh)
        records, preserved = preserve_unprocessed(previous, fresh)
        records = order_records(records)

        entry = compute_changelog(previous, records, self.thresholds, now)
        write_all_schedules(records, self.output_file)
        changelog_path = save_changelog(entry, self.changelog_dir)

        print(f"\nProcessed {len(processed)} pool(s), {len(failed)} failed, {len(preserved)} preserved")
        if preserved:
            print(f"Kept previous data for: {', '.join(preserved)}")
        print(format_changelog_summary(entry))
        if changelog_path:
            print(f"Wrote changelog: {changelog_path}")

        return ProcessResult(
            records=records,
            changelog=entry,
            changelog_path=changelog_path,
            processed=processed,
            failed=failed,
            preserved=preserved,
        )

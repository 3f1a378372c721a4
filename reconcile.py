"""
Turn raw extracted pools into aggregate records.

The extractor's guesses are treated as the lowest-priority source: curated
static metadata (schedule_data/pools.json) wins over them, and the URLs found
by discovery for this run win over both.
"""

import datetime
import logging
from zoneinfo import ZoneInfo

from constants import TIMEZONE
from pool_mapping import REGISTRY
from program_taxonomy import normalize_program_name, to_title_case
from schedule import PoolSchedule, ProgramEntry, normalize_time

logger = logging.getLogger(__name__)


def today_pacific():
    return datetime.datetime.now(tz=ZoneInfo(TIMEZONE)).strftime('%Y-%m-%d')


def reconcile_program(raw_program):
    name = raw_program.programName.strip()
    return ProgramEntry(
        category=normalize_program_name(name),
        categoryOriginal=raw_program.programName,
        dayOfWeek=raw_program.dayOfWeek,
        startTime=normalize_time(raw_program.startTime),
        endTime=normalize_time(raw_program.endTime),
        lanes=raw_program.lanes,
        notes=raw_program.notes or None,
    )


def reconcile(raw_record, hints=None, static_metadata=None, today=None, registry=REGISTRY):
    """
    Build a PoolSchedule from one ExtractedPool.

    hints is the discovery entry for the document ({poolId, pageUrl, pdfUrl}),
    static_metadata maps pool id to curated fields ({address, pageUrl}).
    Never raises for a record that passed schema validation.
    """
    hints = hints or {}
    static_metadata = static_metadata or {}

    raw_name = (raw_record.poolName or "").strip()
    pool_id = registry.resolve(raw_name)
    pool = registry.get_pool_by_id(pool_id)
    if pool is None:
        display_name = short_name = to_title_case(raw_name)
    else:
        display_name = pool.display_name
        short_name = pool.short_name

    hinted_id = hints.get("poolId")
    if hinted_id and pool_id and hinted_id != pool_id:
        logger.warning('"%s" resolved to %s but was discovered as %s', raw_name, pool_id, hinted_id)

    record = PoolSchedule(
        id=pool_id,
        name=raw_name,
        shortName=short_name,
        displayName=display_name,
        needsReview=pool_id is None,
        address=raw_record.address,
        sourceDocumentUrl=raw_record.pdfScheduleUrl,
        facilityPageUrl=raw_record.sfRecParkUrl,
        lastUpdated=raw_record.scheduleLastUpdated or today or today_pacific(),
        season=raw_record.scheduleSeason,
        startDate=raw_record.scheduleStartDate,
        endDate=raw_record.scheduleEndDate,
        laneCount=raw_record.lanes,
        programs=[reconcile_program(p) for p in raw_record.programs],
    )

    static = static_metadata.get(pool_id) if pool_id else None
    if static:
        record.address = static.get("address") or record.address
        record.facilityPageUrl = static.get("pageUrl") or record.facilityPageUrl

    record.sourceDocumentUrl = hints.get("pdfUrl") or record.sourceDocumentUrl
    record.facilityPageUrl = hints.get("pageUrl") or record.facilityPageUrl

    record.sort_programs()
    return record


def merge_duplicates(records):
    """
    Collapse records that resolved to the same id into the first one.

    Unresolved records (id None) are never merged.
    """
    merged = []
    by_id = {}
    for record in records:
        if record.id is None:
            merged.append(record)
            continue
        first = by_id.get(record.id)
        if first is None:
            by_id[record.id] = record
            merged.append(record)
            continue
        logger.warning('Duplicate schedule for %s ("%s"), merging programs into "%s"',
                       record.id, record.name, first.name)
        first.programs.extend(record.programs)
        first.sort_programs()
    return merged

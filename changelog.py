"""
Changelog between two versions of all_schedules.json.

Programs are compared per pool in two passes. The first pass pairs programs
that are identical (category, day, start, end). The second pass pairs what is
left on category and day only, which is reported as a time modification.
Everything still unpaired is an addition (current side) or a removal
(previous side). Each program is paired at most once, so duplicate programs
are counted, and for every pool added - removed equals the change in program
count.
"""

import datetime
import json
import os
from collections import defaultdict
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from constants import (
    ANOMALY_MIN_PREVIOUS_PROGRAMS,
    CHANGELOG_DIR,
    MAJOR_CHANGE_PERCENT,
    MAJOR_MIN_CHANGES,
    MINOR_MAX_CHANGES,
    TIMEZONE,
    WHOLESALE_CHANGE_PERCENT,
    WHOLESALE_MIN_CHANGES,
)

NONE = "none"
MINOR = "minor"
MODERATE = "moderate"
MAJOR = "major"
WHOLESALE = "wholesale"

SEVERITIES = [NONE, MINOR, MODERATE, MAJOR, WHOLESALE]

ADDED = "added"
REMOVED = "removed"
MODIFIED = "modified"


@dataclass(frozen=True)
class SeverityThresholds:
    minor_max_changes: int = MINOR_MAX_CHANGES
    major_min_changes: int = MAJOR_MIN_CHANGES
    wholesale_min_changes: int = WHOLESALE_MIN_CHANGES
    major_change_percent: float = MAJOR_CHANGE_PERCENT
    wholesale_change_percent: float = WHOLESALE_CHANGE_PERCENT
    anomaly_min_previous_programs: int = ANOMALY_MIN_PREVIOUS_PROGRAMS


DEFAULT_THRESHOLDS = SeverityThresholds()


def classify_severity(total_changes, change_percent, thresholds=DEFAULT_THRESHOLDS):
    if total_changes <= 0:
        return NONE
    if change_percent > thresholds.wholesale_change_percent or total_changes > thresholds.wholesale_min_changes:
        return WHOLESALE
    if change_percent > thresholds.major_change_percent or total_changes > thresholds.major_min_changes:
        return MAJOR
    if total_changes > thresholds.minor_max_changes:
        return MODERATE
    return MINOR


def severity_rank(severity):
    return SEVERITIES.index(severity) if severity in SEVERITIES else -1


def _change(change_type, program, old=None, new=None):
    change = {"type": change_type, "program": program.category, "day": program.dayOfWeek}
    if old is not None:
        change["oldTime"] = old.time_range()
    if new is not None:
        change["newTime"] = new.time_range()
    return change


def diff_programs(previous_programs, current_programs):
    """Program-level changes between two program lists of the same pool."""
    unmatched_previous = list(previous_programs)
    leftover_current = []

    by_exact = defaultdict(list)
    for i, program in enumerate(unmatched_previous):
        by_exact[program.exact_key()].append(i)
    consumed = set()

    for program in current_programs:
        candidates = by_exact.get(program.exact_key())
        if candidates:
            consumed.add(candidates.pop(0))
        else:
            leftover_current.append(program)

    by_slot = defaultdict(list)
    for i, program in enumerate(unmatched_previous):
        if i not in consumed:
            by_slot[program.slot_key()].append(i)

    changes = []
    for program in leftover_current:
        candidates = by_slot.get(program.slot_key())
        if candidates:
            i = candidates.pop(0)
            consumed.add(i)
            changes.append(_change(MODIFIED, program, old=unmatched_previous[i], new=program))
        else:
            changes.append(_change(ADDED, program, new=program))

    for i, program in enumerate(unmatched_previous):
        if i not in consumed:
            changes.append(_change(REMOVED, program, old=program))

    return changes


def _pool_change(record, changes):
    return {
        "poolId": record.id,
        "poolName": record.displayName or record.name,
        "programsAdded": sum(1 for c in changes if c["type"] == ADDED),
        "programsRemoved": sum(1 for c in changes if c["type"] == REMOVED),
        "programsModified": sum(1 for c in changes if c["type"] == MODIFIED),
        "changes": changes,
    }


def schedule_range(records):
    """Earliest start date, latest end date and first season across records."""
    start_date = end_date = season = None
    for record in records:
        if record.startDate and (start_date is None or record.startDate < start_date):
            start_date = record.startDate
        if record.endDate and (end_date is None or record.endDate > end_date):
            end_date = record.endDate
        if record.season and season is None:
            season = record.season
    return start_date, end_date, season


def compute_changelog(previous, current, thresholds=DEFAULT_THRESHOLDS, now=None):
    """
    Compare two lists of PoolSchedule.

    Pools are keyed by id, or by raw name for unresolved pools.
    """
    if now is None:
        now = datetime.datetime.now(tz=ZoneInfo(TIMEZONE))

    previous_by_key = {}
    for record in previous:
        previous_by_key.setdefault(record.change_key, record)
    current_by_key = {}
    for record in current:
        current_by_key.setdefault(record.change_key, record)

    warnings = []
    for key, record in previous_by_key.items():
        if key not in current_by_key:
            warnings.append(f"Pool removed from data: {record.displayName or record.name}")

    pool_changes = []
    for key, record in current_by_key.items():
        old = previous_by_key.get(key)
        if old is None:
            changes = [_change(ADDED, p, new=p) for p in record.programs]
            pool_changes.append(_pool_change(record, changes))
            continue
        changes = diff_programs(old.programs, record.programs)
        if changes:
            pool_changes.append(_pool_change(record, changes))

    total_previous = sum(len(r.programs) for r in previous)
    total_current = sum(len(r.programs) for r in current)
    change_percent = abs(total_current - total_previous) / total_previous if total_previous > 0 else 0

    if change_percent > thresholds.major_change_percent and total_previous > thresholds.anomaly_min_previous_programs:
        warnings.append(
            f"Large change detected: {total_previous} → {total_current} programs "
            f"({change_percent * 100:.1f}% change)"
        )

    total_added = sum(p["programsAdded"] for p in pool_changes)
    total_removed = sum(p["programsRemoved"] for p in pool_changes)
    total_modified = sum(p["programsModified"] for p in pool_changes)
    total_changes = total_added + total_removed + total_modified

    start_date, end_date, season = schedule_range(current)

    return {
        "date": now.strftime('%Y-%m-%d'),
        "timestamp": now.isoformat(),
        "poolsChanged": len(pool_changes),
        "totalProgramsAdded": total_added,
        "totalProgramsRemoved": total_removed,
        "totalProgramsModified": total_modified,
        "totalChanges": total_changes,
        "changeSeverity": classify_severity(total_changes, change_percent, thresholds),
        "scheduleStartDate": start_date,
        "scheduleEndDate": end_date,
        "scheduleSeason": season,
        "pools": pool_changes,
        "warnings": warnings,
    }


def has_changes(entry):
    return entry["poolsChanged"] > 0 or len(entry["warnings"]) > 0


def save_changelog(entry, changelog_dir=CHANGELOG_DIR):
    """Write the entry to <date>.json. Returns the path, or None when there was nothing to record."""
    if not has_changes(entry):
        return None

    os.makedirs(changelog_dir, exist_ok=True)
    path = os.path.join(changelog_dir, f"{entry['date']}.json")
    if os.path.exists(path):
        ts = entry["timestamp"].replace(":", "-").replace(".", "-")
        path = os.path.join(changelog_dir, f"{entry['date']}_{ts}.json")

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(entry, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def load_latest_changelog(changelog_dir=CHANGELOG_DIR):
    """Most recently written changelog entry, or None."""
    if not os.path.isdir(changelog_dir):
        return None
    filenames = sorted(name for name in os.listdir(changelog_dir) if name.endswith(".json"))
    if not filenames:
        return None
    with open(os.path.join(changelog_dir, filenames[-1]), 'r', encoding='utf-8') as f:
        return json.load(f)


def format_changelog_summary(entry):
    if not has_changes(entry):
        return "No changes detected."

    lines = [
        f"Schedule changes for {entry['date']}:",
        f"  Pools changed: {entry['poolsChanged']}",
        f"  Programs added: {entry['totalProgramsAdded']}",
        f"  Programs removed: {entry['totalProgramsRemoved']}",
        f"  Programs modified: {entry['totalProgramsModified']}",
        f"  Severity: {entry['changeSeverity']}",
    ]

    if entry["warnings"]:
        lines.append("")
        lines.append("⚠️  Warnings:")
        for warning in entry["warnings"]:
            lines.append(f"  - {warning}")

    if 0 < len(entry["pools"]) <= 5:
        lines.append("")
        lines.append("Details:")
        for pool in entry["pools"]:
            lines.append(f"  {pool['poolName']}:")
            for c in pool["changes"][:10]:
                if c["type"] == ADDED:
                    lines.append(f"    + {c['program']} ({c['day']}) {c['newTime']}")
                elif c["type"] == REMOVED:
                    lines.append(f"    - {c['program']} ({c['day']}) {c['oldTime']}")
                else:
                    lines.append(f"    ~ {c['program']} ({c['day']}) {c['oldTime']} → {c['newTime']}")
            if len(pool["changes"]) > 10:
                lines.append(f"    ... and {len(pool['changes']) - 10} more changes")

    return "\n".join(lines)

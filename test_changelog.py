import datetime
import json
import os
from zoneinfo import ZoneInfo

import pytest

from changelog import (
    SEVERITIES,
    SeverityThresholds,
    classify_severity,
    compute_changelog,
    diff_programs,
    format_changelog_summary,
    load_latest_changelog,
    save_changelog,
    severity_rank,
)

NOW = datetime.datetime(2025, 1, 6, 8, 30, 0, tzinfo=ZoneInfo("America/Los_Angeles"))


def test_time_change_is_a_single_modification(make_pool, make_program):
    previous = [make_pool("balboa", [make_program("Lap Swim", "Monday", "9:00a", "11:00a")])]
    current = [make_pool("balboa", [make_program("Lap Swim", "Monday", "9:00a", "11:30a")])]

    entry = compute_changelog(previous, current, now=NOW)

    assert entry["totalProgramsModified"] == 1
    assert entry["totalProgramsAdded"] == 0
    assert entry["totalProgramsRemoved"] == 0
    assert entry["changeSeverity"] == "minor"
    assert entry["pools"][0]["changes"] == [{
        "type": "modified",
        "program": "Lap Swim",
        "day": "Monday",
        "oldTime": "9:00a–11:00a",
        "newTime": "9:00a–11:30a",
    }]


def test_identical_schedules_have_no_changes(make_pool, make_program, tmp_path):
    records = [make_pool("balboa", [make_program("Lap Swim", "Monday", "9:00a", "11:00a")])]

    entry = compute_changelog(records, records, now=NOW)

    assert entry["poolsChanged"] == 0
    assert entry["changeSeverity"] == "none"
    assert entry["warnings"] == []
    assert save_changelog(entry, str(tmp_path)) is None
    assert os.listdir(tmp_path) == []


def test_duplicate_programs_are_counted(make_program):
    lap = ("Lap Swim", "Monday", "9:00a", "10:00a")
    changes = diff_programs([make_program(*lap), make_program(*lap)], [make_program(*lap)])
    assert [c["type"] for c in changes] == ["removed"]

    changes = diff_programs([make_program(*lap)], [make_program(*lap), make_program(*lap)])
    assert [c["type"] for c in changes] == ["added"]


def test_exact_matches_are_paired_before_modifications(make_program):
    previous = [
        make_program("Lap Swim", "Monday", "9:00a", "10:00a"),
        make_program("Lap Swim", "Monday", "6:00p", "7:00p"),
    ]
    current = [
        make_program("Lap Swim", "Monday", "8:00a", "10:00a"),
        make_program("Lap Swim", "Monday", "6:00p", "7:00p"),
    ]
    changes = diff_programs(previous, current)
    assert changes == [{
        "type": "modified", "program": "Lap Swim", "day": "Monday",
        "oldTime": "9:00a–10:00a", "newTime": "8:00a–10:00a",
    }]


@pytest.mark.parametrize("previous_slots,current_slots", [
    ([], [("Lap Swim", "Monday", "9:00a", "10:00a")]),
    ([("Lap Swim", "Monday", "9:00a", "10:00a")], []),
    ([("Lap Swim", "Monday", "9:00a", "10:00a")] * 3, [("Lap Swim", "Monday", "9:00a", "11:00a")]),
    ([("Lap Swim", "Monday", "9:00a", "10:00a"), ("Family Swim", "Friday", "1:00p", "2:00p")],
     [("Lap Swim", "Tuesday", "9:00a", "10:00a")] * 2 + [("Family Swim", "Friday", "1:00p", "3:00p")]),
])
def test_added_minus_removed_equals_count_change(make_program, previous_slots, current_slots):
    changes = diff_programs([make_program(*s) for s in previous_slots], [make_program(*s) for s in current_slots])
    added = sum(1 for c in changes if c["type"] == "added")
    removed = sum(1 for c in changes if c["type"] == "removed")
    assert added - removed == len(current_slots) - len(previous_slots)


def test_new_and_removed_pools(make_pool, make_program):
    previous = [make_pool("coffman", [make_program("Lap Swim", "Monday", "9:00a", "10:00a")], name="Coffman Pool")]
    current = [make_pool("sava", [
        make_program("Lap Swim", "Monday", "9:00a", "10:00a"),
        make_program("Family Swim", "Sunday", "1:00p", "3:00p"),
    ], name="Sava Pool")]

    entry = compute_changelog(previous, current, now=NOW)

    assert entry["warnings"] == ["Pool removed from data: Coffman Pool"]
    assert entry["poolsChanged"] == 1
    assert entry["pools"][0]["poolId"] == "sava"
    assert entry["pools"][0]["programsAdded"] == 2


def test_unresolved_pools_are_keyed_by_name(make_pool, make_program):
    records = [make_pool(None, [make_program("Lap Swim", "Monday", "9:00a", "10:00a")], name="Mystery Pool")]
    entry = compute_changelog(records, records, now=NOW)
    assert entry["poolsChanged"] == 0
    assert entry["warnings"] == []


def test_large_change_warning(make_pool, make_program):
    days = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    programs = [make_program("Lap Swim", d, f"{h}:00a", f"{h}:30a") for d in days for h in range(6, 10)]
    previous = [make_pool("hamilton", programs)]
    current = [make_pool("hamilton", programs[:10])]

    entry = compute_changelog(previous, current, now=NOW)

    assert entry["totalProgramsRemoved"] == 10
    assert entry["changeSeverity"] == "major"
    assert entry["warnings"] == ["Large change detected: 20 → 10 programs (50.0% change)"]


@pytest.mark.parametrize("total,percent,expected", [
    (0, 0, "none"),
    (1, 0, "minor"),
    (10, 0, "minor"),
    (11, 0, "moderate"),
    (50, 0, "moderate"),
    (51, 0, "major"),
    (5, 0.25, "major"),
    (100, 0, "major"),
    (101, 0, "wholesale"),
    (1, 0.6, "wholesale"),
])
def test_classify_severity(total, percent, expected):
    assert classify_severity(total, percent) == expected


def test_severity_is_monotonic():
    for percent in (0, 0.1, 0.3, 0.6):
        ranks = [severity_rank(classify_severity(total, percent)) for total in range(0, 150)]
        assert ranks == sorted(ranks)
    for total in (1, 20, 60, 120):
        ranks = [severity_rank(classify_severity(total, p / 100)) for p in range(0, 100)]
        assert ranks == sorted(ranks)


def test_thresholds_are_configurable():
    strict = SeverityThresholds(minor_max_changes=0)
    assert classify_severity(1, 0, strict) == "moderate"
    assert SEVERITIES[0] == "none"


def test_schedule_range(make_pool):
    current = [
        make_pool("balboa", season="Winter 2025", startDate="2025-01-06", endDate="2025-03-14"),
        make_pool("sava", season="Winter 2025 v2", startDate="2025-01-04", endDate="2025-03-01"),
    ]
    entry = compute_changelog([], current, now=NOW)
    assert entry["scheduleStartDate"] == "2025-01-04"
    assert entry["scheduleEndDate"] == "2025-03-14"
    assert entry["scheduleSeason"] == "Winter 2025"
    assert entry["date"] == "2025-01-06"


def test_save_changelog_adds_timestamp_when_date_is_taken(make_pool, make_program, tmp_path):
    current = [make_pool("balboa", [make_program("Lap Swim", "Monday", "9:00a", "10:00a")])]
    entry = compute_changelog([], current, now=NOW)

    first = save_changelog(entry, str(tmp_path))
    second = save_changelog(entry, str(tmp_path))

    assert os.path.basename(first) == "2025-01-06.json"
    assert os.path.basename(second) == "2025-01-06_2025-01-06T08-30-00-08-00.json"
    with open(first, encoding="utf-8") as f:
        assert json.load(f) == entry
    assert load_latest_changelog(str(tmp_path)) == entry


def test_load_latest_changelog_without_files(tmp_path):
    assert load_latest_changelog(str(tmp_path / "missing")) is None
    assert load_latest_changelog(str(tmp_path)) is None


def test_format_changelog_summary(make_pool, make_program):
    previous = [make_pool("balboa", [make_program("Lap Swim", "Monday", "9:00a", "11:00a")], name="Balboa Pool")]
    current = [make_pool("balboa", [make_program("Lap Swim", "Monday", "9:00a", "11:30a")], name="Balboa Pool")]

    summary = format_changelog_summary(compute_changelog(previous, current, now=NOW))

    assert summary.startswith("Schedule changes for 2025-01-06:")
    assert "  Programs modified: 1" in summary
    assert "    ~ Lap Swim (Monday) 9:00a–11:00a → 9:00a–11:30a" in summary
    assert format_changelog_summary(compute_changelog(current, current, now=NOW)) == "No changes detected."

"""
Schedule records as they appear in all_schedules.json, plus time helpers.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import List, Optional

MONDAY = "Monday"
TUESDAY = "Tuesday"
WEDNESDAY = "Wednesday"
THURSDAY = "Thursday"
FRIDAY = "Friday"
SATURDAY = "Saturday"
SUNDAY = "Sunday"

WEEKDAYS = [MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY]

TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m?\.?\s*$", re.IGNORECASE)
TIME_24H_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def time_to_minutes(time_str):
    """Convert a time string like '9:00a', '9:00AM' or '18:30' to minutes since midnight"""
    if not time_str:
        raise ValueError("empty time")
    if time_str.strip().upper() == "NOON":
        return 12 * 60

    match = TIME_PATTERN.match(time_str)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or 0)
        is_pm = match.group(3).lower() == "p"
        if is_pm and hours != 12:
            hours += 12
        elif not is_pm and hours == 12:
            hours = 0
        return hours * 60 + minutes

    match = TIME_24H_PATTERN.match(time_str)
    if match:
        return int(match.group(1)) * 60 + int(match.group(2))

    raise ValueError(f"unrecognized time: {time_str!r}")


def minutes_to_time(minutes):
    """Convert minutes since midnight to '9:00a' style"""
    hours = minutes // 60
    mins = minutes % 60

    suffix = "p" if hours >= 12 else "a"
    if hours > 12:
        hours -= 12
    elif hours == 0:
        hours = 12

    return f"{hours}:{mins:02d}{suffix}"


def normalize_time(time_str):
    """'09:00A' -> '9:00a'. Strings that don't parse are returned stripped."""
    try:
        return minutes_to_time(time_to_minutes(time_str))
    except ValueError:
        return (time_str or "").strip()


def format_time_range(start, end):
    return f"{start}–{end}"


def weekday_index(day):
    try:
        return WEEKDAYS.index(day)
    except ValueError:
        return len(WEEKDAYS)


def _sort_minutes(time_str):
    try:
        return time_to_minutes(time_str)
    except ValueError:
        return 24 * 60


@dataclass
class ProgramEntry:
    category: str
    categoryOriginal: str
    dayOfWeek: str
    startTime: str
    endTime: str
    lanes: Optional[int] = None
    notes: Optional[str] = None

    def sort_key(self):
        return (
            weekday_index(self.dayOfWeek),
            _sort_minutes(self.startTime),
            _sort_minutes(self.endTime),
            self.category,
        )

    def exact_key(self):
        return f"{self.category}|{self.dayOfWeek}|{self.startTime}|{self.endTime}"

    def slot_key(self):
        return f"{self.category}|{self.dayOfWeek}"

    def time_range(self):
        return format_time_range(self.startTime, self.endTime)

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(
            category=data.get("category", ""),
            categoryOriginal=data.get("categoryOriginal", data.get("category", "")),
            dayOfWeek=data.get("dayOfWeek", ""),
            startTime=data.get("startTime", ""),
            endTime=data.get("endTime", ""),
            lanes=data.get("lanes"),
            notes=data.get("notes"),
        )


@dataclass
class PoolSchedule:
    id: Optional[str]
    name: str
    shortName: str
    displayName: str
    needsReview: bool = False
    address: Optional[str] = None
    sourceDocumentUrl: Optional[str] = None
    facilityPageUrl: Optional[str] = None
    lastUpdated: Optional[str] = None
    season: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    laneCount: Optional[int] = None
    programs: List[ProgramEntry] = field(default_factory=list)

    @property
    def change_key(self):
        # unresolved pools have no id, so they are tracked by their raw name
        return self.id if self.id else self.name

    def sort_programs(self):
        self.programs.sort(key=ProgramEntry.sort_key)

    def to_dict(self):
        d = asdict(self)
        d["programs"] = [p.to_dict() for p in self.programs]
        return d

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            shortName=data.get("shortName", ""),
            displayName=data.get("displayName", ""),
            needsReview=bool(data.get("needsReview", False)),
            address=data.get("address"),
            sourceDocumentUrl=data.get("sourceDocumentUrl"),
            facilityPageUrl=data.get("facilityPageUrl"),
            lastUpdated=data.get("lastUpdated"),
            season=data.get("season"),
            startDate=data.get("startDate"),
            endDate=data.get("endDate"),
            laneCount=data.get("laneCount"),
            programs=[ProgramEntry.from_dict(p) for p in data.get("programs", [])],
        )

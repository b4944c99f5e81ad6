"""
Half-open time interval helpers.

Every instant is a timezone-aware datetime and is normalized to UTC when an
interval is built, so ordering is always on absolute instants. Wall-clock
reasoning (grid snapping, day and hour boundaries) takes an explicit tzinfo.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo

from dateutil import tz as dateutil_tz

from .config import DISPLAY_HOURS_END, DISPLAY_HOURS_START
from .errors import MalformedInterval

_EPOCH = datetime(1970, 1, 1)


def get_timezone(name: str) -> tzinfo:
    zone = dateutil_tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


def to_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise MalformedInterval(f"Naive datetime not allowed: {instant.isoformat()}")
    return instant.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    def __post_init__(self):
        start = to_utc(self.start)
        end = to_utc(self.end)
        if end < start:
            raise MalformedInterval(f"Interval ends before it starts: {start.isoformat()} > {end.isoformat()}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def starting_at(cls, start: datetime, minutes: int) -> "TimeInterval":
        start = to_utc(start)
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


def ensure_well_formed(interval: TimeInterval) -> TimeInterval:
    if interval.start >= interval.end:
        raise MalformedInterval(
            f"Interval must have start < end: {interval.start.isoformat()} >= {interval.end.isoformat()}"
        )
    return interval


def overlaps(a: TimeInterval, b: TimeInterval, inclusive: bool = False) -> bool:
    # inclusive: intervals touching at a boundary also count
    if inclusive:
        return a.start <= b.end and b.start <= a.end
    return a.start < b.end and b.start < a.end


def contains(interval: TimeInterval, instant: datetime) -> bool:
    instant = to_utc(instant)
    return interval.start <= instant < interval.end


def duration_minutes(interval: TimeInterval) -> int:
    return int((interval.end - interval.start).total_seconds() // 60)


def snap_to_grid(instant: datetime, grid_minutes: int, tz: tzinfo) -> datetime:
    """
    Round to the nearest multiple of grid_minutes on the wall clock of tz.
    Ties round up. The result keeps the input's tzinfo.
    """
    if grid_minutes <= 0:
        raise ValueError("grid_minutes must be positive")

    utc_instant = to_utc(instant)
    wall = utc_instant.replace(tzinfo=None) + utc_instant.astimezone(tz).utcoffset()

    grid = timedelta(minutes=grid_minutes)
    remainder = (wall - _EPOCH) % grid
    if remainder * 2 >= grid:
        delta = grid - remainder
    else:
        delta = -remainder

    return (utc_instant + delta).astimezone(instant.tzinfo)


def local_datetime(day: date, hour: int, minute: int, tz: tzinfo) -> datetime:
    """Wall-clock time on day in tz as a UTC instant; times skipped by DST move forward."""
    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz)
    return dateutil_tz.resolve_imaginary(local).astimezone(timezone.utc)


def wall_clock_exists(day: date, hour: int, minute: int, tz: tzinfo) -> bool:
    """False for wall-clock times skipped by a DST transition in tz."""
    return dateutil_tz.datetime_exists(datetime(day.year, day.month, day.day, hour, minute), tz)


def local_date(instant: datetime, tz: tzinfo) -> date:
    return to_utc(instant).astimezone(tz).date()


def start_of_week(instant: datetime, tz: tzinfo) -> date:
    # weeks start on Sunday
    day = local_date(instant, tz)
    return day - timedelta(days=(day.weekday() + 1) % 7)


def in_display_window(
    instant: datetime,
    tz: tzinfo,
    start_hour: int = DISPLAY_HOURS_START,
    end_hour: int = DISPLAY_HOURS_END,
) -> bool:
    hour = to_utc(instant).astimezone(tz).hour
    return start_hour <= hour < end_hour


def format_hour_label(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"

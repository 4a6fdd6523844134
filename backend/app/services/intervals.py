"""Date and interval helpers shared by the scheduling services.

All scheduling happens on naive wall-clock datetimes in the planner's
timezone. ``ensure_datetime`` is the single place where incoming values
(ORM datetimes, ``date`` objects, ISO strings, aware datetimes) are brought
into that form.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, NamedTuple
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

_FALLBACK_FORMATS = ("%m/%d/%Y", "%Y-%m-%d", "%Y-%m-%d %H:%M", "%m/%d/%Y %H:%M")


class Interval(NamedTuple):
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return minutes_between(self.start, self.end)


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Collapse possibly-overlapping intervals into a sorted disjoint cover.

    Touching intervals (one ends exactly where the next starts) are merged too.
    """
    ordered = sorted(
        (Interval(start, end) for start, end in intervals if end > start),
        key=lambda interval: interval.start,
    )
    merged: list[Interval] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def subtract_busy(
    window: Interval, busy_merged: Iterable[Interval], min_length: timedelta = timedelta(0)
) -> list[Interval]:
    """Return the free gaps of ``window`` not covered by ``busy_merged``.

    ``busy_merged`` must be sorted and disjoint (see ``merge_intervals``).
    Gaps shorter than ``min_length`` are dropped.
    """
    gaps: list[Interval] = []
    cursor = window.start
    for busy in busy_merged:
        if busy.end <= window.start or busy.start >= window.end:
            continue
        if busy.start > cursor:
            gaps.append(Interval(cursor, min(busy.start, window.end)))
        cursor = max(cursor, busy.end)
        if cursor >= window.end:
            break
    if cursor < window.end:
        gaps.append(Interval(cursor, window.end))
    return [gap for gap in gaps if gap.end - gap.start >= min_length and gap.end > gap.start]


def clip(interval: Interval, bounds: Interval) -> Interval | None:
    start = max(interval.start, bounds.start)
    end = min(interval.end, bounds.end)
    if end <= start:
        return None
    return Interval(start, end)


def day_bounds(day: date) -> Interval:
    start = datetime.combine(day, time.min)
    return Interval(start, start + timedelta(days=1))


def at(day: date, clock: time) -> datetime:
    return datetime.combine(day, clock.replace(tzinfo=None))


def align_up(moment: datetime, step_minutes: int) -> datetime:
    """Round ``moment`` up onto the ``step_minutes`` grid counted from midnight."""
    midnight = datetime.combine(moment.date(), time.min)
    elapsed = (moment - midnight).total_seconds()
    step = step_minutes * 60
    steps = -(-elapsed // step)  # ceiling division
    return midnight + timedelta(seconds=steps * step)


def to_local_naive(value: datetime, tz: ZoneInfo | None) -> datetime:
    """Convert an aware datetime to naive wall-clock time in ``tz``.

    Naive datetimes are assumed to already be local and are returned as-is.
    """
    if value.tzinfo is None:
        return value
    if tz is None:
        tz = ZoneInfo("UTC")
    return value.astimezone(tz).replace(tzinfo=None)


def _parse_string(raw: str) -> datetime | None:
    text = raw.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def ensure_datetime(
    value: Any, fallback: datetime | None = None, tz: ZoneInfo | None = None
) -> datetime | None:
    """Normalise ``value`` to a naive local datetime.

    A bare ``date`` means the end of that day. Unparsable input logs a warning
    and returns ``fallback``.
    """
    if value is None:
        return fallback
    if isinstance(value, datetime):
        return to_local_naive(value, tz)
    if isinstance(value, date):
        return datetime.combine(value, time(hour=23, minute=59))
    if isinstance(value, (int, float)):
        return to_local_naive(datetime.fromtimestamp(value, tz=timezone.utc), tz)
    if isinstance(value, str):
        parsed = _parse_string(value)
        if parsed is not None:
            if len(value.strip()) == 10 and parsed.time() == time.min:
                parsed = parsed.replace(hour=23, minute=59)
            return to_local_naive(parsed, tz)
    logger.warning(f"Could not parse datetime from {value!r}; using fallback {fallback}")
    return fallback


def ensure_time(value: Any) -> time | None:
    """Accept ``time`` objects or "HH:MM" strings."""
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            logger.warning(f"Could not parse time of day from {value!r}")
    return None

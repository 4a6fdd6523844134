from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable

from app.schemas.preferences import Preferences
from app.schemas.schedule import PlannedBlock
from app.services.intervals import (
    Interval,
    at,
    clip,
    day_bounds,
    merge_intervals,
    minutes_between,
    subtract_busy,
)
from app.services.snapshot import CalendarEvent, CourseSlot, ScheduleSnapshot

logger = logging.getLogger(__name__)


@dataclass
class DayAvailability:
    day: date
    window: Interval
    busy: list[Interval] = field(default_factory=list)
    gaps: list[Interval] = field(default_factory=list)
    fully_booked: bool = False

    @property
    def free_minutes(self) -> int:
        return sum(gap.minutes for gap in self.gaps)


def _event_days(event: CalendarEvent) -> tuple[date, date]:
    last_moment = max(event.start, event.end - timedelta(microseconds=1))
    return event.start.date(), last_moment.date()


class AvailabilityCalculator:
    """Computes busy time and free gaps for single calendar days.

    Course sessions and events are fixed for the whole run and indexed once;
    task blocks are passed per call because they grow as tasks are placed.
    """

    def __init__(
        self,
        slots: Iterable[CourseSlot],
        events: Iterable[CalendarEvent],
        preferences: Preferences,
    ) -> None:
        self.preferences = preferences
        self._slots_by_weekday: dict[int, list[CourseSlot]] = defaultdict(list)
        for slot in slots:
            self._slots_by_weekday[slot.day_of_week].append(slot)
        # Deadline markers never block time
        self._events = [event for event in events if not event.is_marker]

    @classmethod
    def from_snapshot(cls, snapshot: ScheduleSnapshot) -> "AvailabilityCalculator":
        return cls(snapshot.course_slots(), snapshot.calendar_events(), snapshot.preferences)

    def active_window(self, day: date) -> Interval:
        return Interval(
            at(day, self.preferences.day_start), at(day, self.preferences.day_end)
        )

    def events_on(self, day: date) -> list[CalendarEvent]:
        relevant = []
        for event in self._events:
            first, last = _event_days(event)
            if first <= day <= last:
                relevant.append(event)
        return relevant

    def has_blocking_commitment(self, day: date) -> bool:
        blocking_kinds = set(self.preferences.blocking_event_kinds)
        return any(
            event.all_day or event.kind in blocking_kinds for event in self.events_on(day)
        )

    def busy_intervals(self, day: date, blocks: Iterable[PlannedBlock]) -> list[Interval]:
        """Merged busy time on ``day``: classes, events and padded task blocks."""
        bounds = day_bounds(day)
        busy: list[Interval] = []

        for slot in self._slots_by_weekday.get(day.weekday(), []):
            busy.append(Interval(at(day, slot.start), at(day, slot.end)))

        for event in self.events_on(day):
            clipped = clip(Interval(event.start, event.end), bounds)
            if clipped:
                busy.append(clipped)

        pad = timedelta(minutes=self.preferences.break_minutes)
        for block in blocks:
            padded = Interval(block.start_time - pad, block.end_time + pad)
            clipped = clip(padded, bounds)
            if clipped:
                busy.append(clipped)

        return merge_intervals(busy)

    def for_day(
        self,
        day: date,
        blocks: Iterable[PlannedBlock],
        not_before: datetime | None = None,
    ) -> DayAvailability:
        window = self.active_window(day)
        if not_before and not_before > window.start:
            window = Interval(min(not_before, window.end), window.end)

        if self.has_blocking_commitment(day):
            logger.debug(f"{day} has an all-day commitment; no study time")
            return DayAvailability(day=day, window=window, busy=[window], fully_booked=True)

        busy = self.busy_intervals(day, blocks)
        gaps = subtract_busy(
            window, busy, timedelta(minutes=self.preferences.min_session_minutes)
        )
        return DayAvailability(day=day, window=window, busy=busy, gaps=gaps)


def booked_minutes(blocks: Iterable[PlannedBlock], start: date, end: date) -> int:
    """Minutes of task blocks starting within ``start``..``end`` inclusive."""
    return sum(
        minutes_between(block.start_time, block.end_time)
        for block in blocks
        if start <= block.start_time.date() <= end
    )

"""Read-only input snapshot for one scheduling run.

The engine never touches the database. Callers hand it a snapshot of tasks,
courses, events and existing blocks; each item may be an ORM row, a pydantic
model or a plain dict. Everything is normalised here so the rest of the
engine works with one shape.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Any, Sequence, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.models.event import EventKind
from app.models.time_block import BlockKind
from app.schemas.preferences import Preferences
from app.schemas.schedule import PlannedBlock
from app.services.intervals import ensure_datetime, ensure_time

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def read(obj: Any, name: str, default: Any = None) -> Any:
    """Fetch ``name`` from a mapping or an object, treating None as missing."""
    if isinstance(obj, Mapping):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def read_enum(obj: Any, name: str, enum_cls: type[E], default: E) -> E:
    raw = read(obj, name)
    if raw is None:
        return default
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(getattr(raw, "value", raw)).strip().lower())
    except ValueError:
        logger.warning(f"Unknown {name} {raw!r}; treating as {default.value}")
        return default


def id_sort_key(value: Any) -> tuple[int, float, str]:
    """Order integer ids numerically, then any other ids by their text."""
    if isinstance(value, int) and not isinstance(value, bool):
        return (0, value, "")
    return (1, 0, str(value))


def resolve_timezone(preferences: Preferences) -> ZoneInfo:
    try:
        return ZoneInfo(preferences.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {preferences.timezone!r}; falling back to UTC")
        return ZoneInfo("UTC")


@dataclass(frozen=True)
class CourseSlot:
    course_id: int | None
    day_of_week: int  # 0 = Monday
    start: time
    end: time


@dataclass(frozen=True)
class CalendarEvent:
    event_id: int | None
    kind: EventKind
    start: datetime
    end: datetime
    all_day: bool = False

    @property
    def is_marker(self) -> bool:
        return self.kind == EventKind.DEADLINE


@dataclass
class ScheduleSnapshot:
    tasks: Sequence[Any]
    courses: Sequence[Any] = field(default_factory=list)
    events: Sequence[Any] = field(default_factory=list)
    blocks: Sequence[Any] = field(default_factory=list)
    preferences: Preferences = field(default_factory=Preferences)

    @property
    def tz(self) -> ZoneInfo:
        return resolve_timezone(self.preferences)

    def identified_tasks(self) -> list[Any]:
        """Tasks that can be referenced by id; the rest are left out of the run."""
        tasks = []
        for task in self.tasks:
            if read(task, "id") is None:
                logger.warning(f"Skipping task {read(task, 'title', '<untitled>')!r} without an id")
                continue
            tasks.append(task)
        return tasks

    def course_slots(self) -> list[CourseSlot]:
        slots: list[CourseSlot] = []
        for course in self.courses:
            for session in read(course, "schedule", []) or []:
                start = ensure_time(read(session, "start_time"))
                end = ensure_time(read(session, "end_time"))
                day = read(session, "day_of_week")
                if start is None or end is None or day is None or end <= start:
                    logger.warning(
                        f"Skipping malformed session on course {read(course, 'id')}: "
                        f"day={day} start={start} end={end}"
                    )
                    continue
                slots.append(CourseSlot(read(course, "id"), int(day) % 7, start, end))
        return slots

    def calendar_events(self) -> list[CalendarEvent]:
        tz = self.tz
        events: list[CalendarEvent] = []
        for event in self.events:
            start = ensure_datetime(read(event, "start_time"), tz=tz)
            end = ensure_datetime(read(event, "end_time"), tz=tz)
            if start is None or end is None:
                logger.warning(f"Skipping event {read(event, 'id')} without usable times")
                continue
            if end <= start:
                end = start
            events.append(
                CalendarEvent(
                    event_id=read(event, "id"),
                    kind=read_enum(event, "kind", EventKind, EventKind.LECTURE),
                    start=start,
                    end=end,
                    all_day=bool(read(event, "all_day", False)),
                )
            )
        return events

    def planned_blocks(self) -> list[PlannedBlock]:
        tz = self.tz
        blocks: list[PlannedBlock] = []
        for block in self.blocks:
            if isinstance(block, PlannedBlock):
                blocks.append(block)
                continue
            start = ensure_datetime(read(block, "start_time"), tz=tz)
            end = ensure_datetime(read(block, "end_time"), tz=tz)
            if start is None or end is None or end <= start:
                logger.warning(f"Ignoring time block {read(block, 'id')} with invalid times")
                continue
            blocks.append(
                PlannedBlock(
                    id=read(block, "id"),
                    task_id=read(block, "task_id"),
                    start_time=start,
                    end_time=end,
                    kind=read_enum(block, "kind", BlockKind, BlockKind.STUDY),
                    completed=bool(read(block, "completed", False)),
                    is_manual=bool(read(block, "is_manual", False)),
                )
            )
        return blocks

"""Effort estimation and the scheduling window of a single task.

Buffer policy: a fixed number of days before the due date (per-kind
defaults, overridable per task). Effort is never inflated by a percentage.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from app.models.task import TaskKind, TaskStatus
from app.schemas.preferences import Preferences
from app.services.errors import SchedulingInvariantError
from app.services.intervals import ensure_datetime
from app.services.snapshot import read, read_enum, resolve_timezone

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY = 3
FALLBACK_DUE_IN = timedelta(days=14)


@dataclass
class PlannedTask:
    task: Any
    task_id: int | str
    title: str
    kind: TaskKind
    difficulty: int
    status: TaskStatus
    is_hard_deadline: bool
    due_date: datetime
    total_minutes: int
    buffer_days: int
    soft_deadline: datetime
    window_start: datetime
    window_end: datetime
    start_day: date
    schedulable: bool = True
    skip_reason: str | None = None

    @property
    def collapsed(self) -> bool:
        """True when the soft deadline already passed and work runs up to the due date."""
        return self.window_end > self.soft_deadline

    def days_until_due(self, reference: datetime) -> int:
        return (self.due_date.date() - reference.date()).days


def _difficulty(task: Any) -> int:
    raw = read(task, "difficulty", DEFAULT_DIFFICULTY)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Task {read(task, 'id')}: invalid difficulty {raw!r}, using {DEFAULT_DIFFICULTY}")
        return DEFAULT_DIFFICULTY
    return min(max(value, 1), 5)


def base_hours(task: Any, kind: TaskKind, preferences: Preferences) -> float:
    raw = read(task, "estimated_hours")
    try:
        hours = float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        hours = 0.0
    if hours > 0:
        return hours
    return float(preferences.default_hours.get(kind, 0.0))


def total_effort_minutes(task: Any, kind: TaskKind, difficulty: int, preferences: Preferences) -> int:
    multiplier = preferences.difficulty_multipliers.get(difficulty, 1.0)
    minutes = round(base_hours(task, kind, preferences) * multiplier * 60)
    if minutes < 0:
        raise SchedulingInvariantError(
            f"Task {read(task, 'id')} has negative effort ({minutes} minutes)"
        )
    return minutes


def buffer_days_for(task: Any, kind: TaskKind, preferences: Preferences) -> int:
    explicit = read(task, "buffer_days")
    if explicit is not None:
        try:
            return max(0, int(explicit))
        except (TypeError, ValueError):
            logger.warning(f"Task {read(task, 'id')}: invalid buffer_days {explicit!r}")
    default = preferences.buffer_days.get(kind, 2)
    if read(task, "is_hard_deadline", False):
        # Immovable deadlines get a tighter cushion
        default -= 1
    return max(0, default)


def estimate_task(task: Any, preferences: Preferences, reference: datetime) -> PlannedTask:
    """Work out how much effort ``task`` needs and the window it must fit in.

    ``reference`` is "now" as a naive local datetime.
    """
    tz = resolve_timezone(preferences)
    task_id = read(task, "id")
    kind = read_enum(task, "kind", TaskKind, TaskKind.ASSIGNMENT)
    status = read_enum(task, "status", TaskStatus, TaskStatus.NOT_STARTED)
    difficulty = _difficulty(task)

    fallback_due = reference + FALLBACK_DUE_IN
    raw_due = read(task, "due_date")
    if raw_due is None:
        logger.warning(f"Task {task_id} has no due date; assuming {fallback_due:%Y-%m-%d}")
    due_date = ensure_datetime(raw_due, fallback=fallback_due, tz=tz)

    total_minutes = total_effort_minutes(task, kind, difficulty, preferences)
    buffer_days = buffer_days_for(task, kind, preferences)
    soft_deadline = due_date - timedelta(days=buffer_days)

    # Soft deadline already gone but the task is still due: work right up to the due date
    window_end = soft_deadline if soft_deadline > reference else due_date

    days_needed = math.ceil(total_minutes / 60 / preferences.daily_max_hours) if total_minutes else 0
    ideal_start = (window_end - timedelta(days=days_needed)).date()
    start_day = max(reference.date(), ideal_start)

    planned = PlannedTask(
        task=task,
        task_id=task_id,
        title=read(task, "title", f"Task {task_id}"),
        kind=kind,
        difficulty=difficulty,
        status=status,
        is_hard_deadline=bool(read(task, "is_hard_deadline", False)),
        due_date=due_date,
        total_minutes=total_minutes,
        buffer_days=buffer_days,
        soft_deadline=soft_deadline,
        window_start=reference,
        window_end=window_end,
        start_day=start_day,
    )

    if status == TaskStatus.COMPLETED:
        planned.schedulable, planned.skip_reason = False, "completed"
    elif total_minutes <= 0:
        planned.schedulable, planned.skip_reason = False, "no effort estimated"
    elif due_date <= reference:
        planned.schedulable, planned.skip_reason = False, "due date has passed"
    return planned

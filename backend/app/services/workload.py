"""Read-only workload report over the current block collection.

Nothing here changes the schedule: it adds up hours, flags conflicts that
manual edits can introduce, lists tasks whose effort did not fit, and repeats
the low-energy warnings the allocator logs.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time
from typing import Any

from app.schemas.preferences import WEEKDAY_NAMES
from app.schemas.schedule import EnergyWarning, PlannedBlock, ScheduleConflict, WorkloadSummary
from app.services.allocator import daily_capacity_minutes, low_energy_days
from app.services.availability import AvailabilityCalculator, booked_minutes
from app.services.effort import estimate_task
from app.services.intervals import Interval, minutes_between, overlaps, to_local_naive
from app.services.snapshot import ScheduleSnapshot, read

GENERAL_COURSE = "General"


def _hours(minutes: float) -> float:
    return round(minutes / 60, 2)


def _block_overlaps(blocks: list[PlannedBlock]) -> list[ScheduleConflict]:
    conflicts: list[ScheduleConflict] = []
    ordered = sorted(blocks, key=lambda block: block.start_time)
    for idx, block in enumerate(ordered):
        current = Interval(block.start_time, block.end_time)
        for other in ordered[idx + 1:]:
            if other.start_time >= block.end_time:
                break
            if overlaps(current, Interval(other.start_time, other.end_time)):
                conflicts.append(
                    ScheduleConflict(
                        type="overlap",
                        severity="error",
                        message=(
                            f"Blocks for tasks {block.task_id} and {other.task_id} overlap "
                            f"on {block.start_time:%Y-%m-%d}"
                        ),
                        day=datetime.combine(block.start_time.date(), time.min),
                        task_ids=[t for t in (block.task_id, other.task_id) if t is not None],
                        block_ids=[b for b in (block.id, other.id) if b is not None],
                    )
                )
    return conflicts


def _commitment_overlaps(
    blocks: list[PlannedBlock], calculator: AvailabilityCalculator
) -> list[ScheduleConflict]:
    conflicts: list[ScheduleConflict] = []
    for block in blocks:
        day = block.start_time.date()
        span = Interval(block.start_time, block.end_time)
        fixed = calculator.busy_intervals(day, [])
        blocked_day = calculator.has_blocking_commitment(day)
        if blocked_day or any(overlaps(span, busy) for busy in fixed):
            conflicts.append(
                ScheduleConflict(
                    type="overlap",
                    severity="error" if not block.is_manual else "warning",
                    message=f"Block for task {block.task_id} collides with a class or event on {day}",
                    day=datetime.combine(day, time.min),
                    task_ids=[block.task_id] if block.task_id is not None else [],
                    block_ids=[block.id] if block.id is not None else [],
                )
            )
    return conflicts


def _overloaded_days(blocks: list[PlannedBlock], snapshot: ScheduleSnapshot) -> list[ScheduleConflict]:
    conflicts: list[ScheduleConflict] = []
    for day in sorted({block.start_time.date() for block in blocks}):
        booked = booked_minutes(blocks, day, day)
        cap = daily_capacity_minutes(day, snapshot.preferences)
        if booked > cap:
            conflicts.append(
                ScheduleConflict(
                    type="too-many-hours",
                    severity="warning",
                    message=f"{_hours(booked)}h booked on {day}, above the {_hours(cap)}h limit",
                    day=datetime.combine(day, time.min),
                )
            )
    return conflicts


def _unmet_effort(
    blocks: list[PlannedBlock], snapshot: ScheduleSnapshot, reference: datetime
) -> list[ScheduleConflict]:
    scheduled: dict[Any, int] = defaultdict(int)
    for block in blocks:
        scheduled[block.task_id] += block.duration_minutes

    conflicts: list[ScheduleConflict] = []
    min_session = snapshot.preferences.min_session_minutes
    for task in snapshot.identified_tasks():
        planned = estimate_task(task, snapshot.preferences, reference)
        if not planned.schedulable:
            continue
        unmet = planned.total_minutes - scheduled[planned.task_id]
        if unmet >= min_session:
            conflicts.append(
                ScheduleConflict(
                    type="insufficient-time",
                    severity="warning",
                    message=(
                        f"{planned.title}: {_hours(unmet)}h of {_hours(planned.total_minutes)}h "
                        f"not scheduled before {planned.window_end:%Y-%m-%d %H:%M}"
                    ),
                    task_ids=[planned.task_id],
                )
            )
    return conflicts


def summarize(snapshot: ScheduleSnapshot, reference: datetime | None = None) -> WorkloadSummary:
    tz = snapshot.tz
    ref = to_local_naive(reference, tz) if reference else datetime.now(tz).replace(tzinfo=None)
    blocks = snapshot.planned_blocks()

    tasks_by_id = {read(task, "id"): task for task in snapshot.identified_tasks()}
    course_names = {read(course, "id"): read(course, "name", GENERAL_COURSE) for course in snapshot.courses}

    by_kind: dict[str, float] = defaultdict(float)
    by_course: dict[str, float] = defaultdict(float)
    by_weekday: dict[str, float] = defaultdict(float)
    total_minutes = 0
    for block in blocks:
        minutes = minutes_between(block.start_time, block.end_time)
        total_minutes += minutes
        by_kind[block.kind.value] += minutes
        task = tasks_by_id.get(block.task_id)
        course = course_names.get(read(task, "course_id")) if task is not None else None
        by_course[course or GENERAL_COURSE] += minutes
        by_weekday[WEEKDAY_NAMES[block.start_time.weekday()]] += minutes

    days: set[date] = {block.start_time.date() for block in blocks}
    span_days = (max(days) - min(days)).days + 1 if days else 0

    calculator = AvailabilityCalculator.from_snapshot(snapshot)
    conflicts = (
        _block_overlaps(blocks)
        + _commitment_overlaps(blocks, calculator)
        + _overloaded_days(blocks, snapshot)
        + _unmet_effort(blocks, snapshot, ref)
    )

    energy_warnings: list[EnergyWarning] = []
    for task_id, task in tasks_by_id.items():
        planned = estimate_task(task, snapshot.preferences, ref)
        task_blocks = [block for block in blocks if block.task_id == task_id]
        for day in low_energy_days(planned.kind, task_blocks, snapshot.preferences):
            energy_warnings.append(
                EnergyWarning(
                    task_id=task_id,
                    day=datetime.combine(day, time.min),
                    weekday=WEEKDAY_NAMES[day.weekday()],
                    energy_level=snapshot.preferences.energy_for(day.weekday()),
                )
            )

    return WorkloadSummary(
        total_hours=_hours(total_minutes),
        average_per_day=_hours(total_minutes / span_days) if span_days else 0.0,
        block_count=len(blocks),
        by_kind={key: _hours(value) for key, value in by_kind.items()},
        by_course={key: _hours(value) for key, value in by_course.items()},
        by_weekday={key: _hours(value) for key, value in by_weekday.items()},
        conflicts=conflicts,
        energy_warnings=energy_warnings,
    )

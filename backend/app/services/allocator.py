"""Greedy placement of work sessions for one task.

The allocator walks forward one day at a time from the task's start day to
its soft deadline. On each day it fills free gaps (in the task kind's
preferred periods first) with sessions of at most ``session_minutes`` until
the day's effort cap, the gaps or the task's remaining effort run out.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from app.models.task import TaskKind
from app.models.time_block import BlockKind
from app.schemas.preferences import WEEKDAY_NAMES, PeriodWindow, Preferences
from app.schemas.schedule import PlannedBlock
from app.services.availability import AvailabilityCalculator, DayAvailability, booked_minutes
from app.services.effort import PlannedTask
from app.services.errors import SchedulingInvariantError
from app.services.intervals import Interval, align_up, at, clip, minutes_between, overlaps

logger = logging.getLogger(__name__)

KIND_PERIODS: dict[TaskKind, list[str]] = {
    TaskKind.EXAM: ["morning", "afternoon"],
    TaskKind.READING: ["evening", "afternoon"],
    TaskKind.PROJECT: ["afternoon", "morning"],
    TaskKind.ASSIGNMENT: ["afternoon", "evening"],
    TaskKind.LAB: ["morning", "afternoon"],
}

KIND_BLOCK = {
    TaskKind.EXAM: BlockKind.STUDY,
    TaskKind.READING: BlockKind.STUDY,
    TaskKind.PROJECT: BlockKind.WORK,
    TaskKind.ASSIGNMENT: BlockKind.WORK,
    TaskKind.LAB: BlockKind.WORK,
}

HIGH_ENERGY_KINDS = {TaskKind.EXAM, TaskKind.PROJECT}


class BlockLedger:
    """Every block committed so far in a run, in placement order.

    Later tasks see earlier placements as busy time because they are read
    from here.
    """

    def __init__(self, blocks: Iterable[PlannedBlock] = ()) -> None:
        self._blocks: list[PlannedBlock] = list(blocks)

    @property
    def blocks(self) -> list[PlannedBlock]:
        return list(self._blocks)

    def commit(self, blocks: Iterable[PlannedBlock]) -> None:
        self._blocks.extend(blocks)

    def __len__(self) -> int:
        return len(self._blocks)


def daily_capacity_minutes(day: date, preferences: Preferences) -> int:
    """Effort cap for ``day`` after applying the weekday's energy level."""
    is_weekend = day.weekday() >= 5
    base = preferences.weekend_max_hours if is_weekend else preferences.daily_max_hours
    energy_cap = preferences.daily_max_hours * preferences.energy_for(day.weekday())
    return int(round(min(base, energy_cap) * 60))


def ordered_periods(kind: TaskKind, preferences: Preferences) -> list[tuple[str, PeriodWindow]]:
    preferred = KIND_PERIODS.get(kind, [])

    def rank(item: tuple[str, PeriodWindow]) -> tuple[int, float, object]:
        name, period = item
        position = preferred.index(name) if name in preferred else len(preferred)
        return (position, -period.weight, period.start)

    enabled = [(name, period) for name, period in preferences.periods.items() if period.weight > 0]
    return sorted(enabled, key=rank)


def _remaining_capacity(
    day: date, blocks: list[PlannedBlock], preferences: Preferences
) -> int:
    left = daily_capacity_minutes(day, preferences) - booked_minutes(blocks, day, day)
    if preferences.weekly_max_hours:
        week_start = day - timedelta(days=day.weekday())
        week_end = week_start + timedelta(days=6)
        weekly_left = int(preferences.weekly_max_hours * 60) - booked_minutes(
            blocks, week_start, week_end
        )
        left = min(left, weekly_left)
    return max(0, left)


def _scan_gap(
    gap: Interval,
    remaining: int,
    cap_left: int,
    preferences: Preferences,
) -> Interval | None:
    min_len = preferences.min_session_minutes
    step = timedelta(minutes=preferences.slot_step_minutes)
    candidate = align_up(gap.start, preferences.slot_step_minutes)
    while candidate + timedelta(minutes=min_len) <= gap.end:
        length = min(
            preferences.session_minutes,
            remaining,
            cap_left,
            minutes_between(candidate, gap.end),
        )
        if length >= min_len:
            return Interval(candidate, candidate + timedelta(minutes=length))
        candidate += step
    return None


def find_slot(
    task: PlannedTask,
    availability: DayAvailability,
    remaining: int,
    cap_left: int,
    preferences: Preferences,
) -> Interval | None:
    """First fitting session for ``task`` in the day's gaps, best period first."""
    deadline_bound = Interval(datetime.min, task.window_end)
    for _, period in ordered_periods(task.kind, preferences):
        period_range = Interval(at(availability.day, period.start), at(availability.day, period.end))
        for gap in availability.gaps:
            usable = clip(gap, period_range)
            usable = clip(usable, deadline_bound) if usable else None
            if not usable:
                continue
            slot = _scan_gap(usable, remaining, cap_left, preferences)
            if slot:
                return slot
    return None


def _materialize(
    task: PlannedTask,
    slot: Interval,
    availability: DayAvailability,
    preferences: Preferences,
) -> PlannedBlock:
    minutes = minutes_between(slot.start, slot.end)
    if slot.end <= slot.start:
        raise SchedulingInvariantError(f"Block for task {task.task_id} ends before it starts: {slot}")
    if minutes < preferences.min_session_minutes:
        raise SchedulingInvariantError(
            f"Block for task {task.task_id} is {minutes}min, below the "
            f"{preferences.min_session_minutes}min minimum"
        )
    if slot.start < availability.window.start or slot.end > availability.window.end:
        raise SchedulingInvariantError(f"Block {slot} falls outside the active window {availability.window}")
    for busy in availability.busy:
        if overlaps(slot, busy):
            raise SchedulingInvariantError(f"Block {slot} overlaps busy interval {busy}")
    return PlannedBlock(
        task_id=task.task_id,
        start_time=slot.start,
        end_time=slot.end,
        kind=KIND_BLOCK.get(task.kind, BlockKind.STUDY),
        completed=False,
        is_manual=False,
    )


def _fill_day(
    task: PlannedTask,
    day: date,
    remaining: int,
    calculator: AvailabilityCalculator,
    committed: list[PlannedBlock],
    placed: list[PlannedBlock],
    reference: datetime,
) -> int:
    preferences = calculator.preferences
    min_len = preferences.min_session_minutes
    cap_left = _remaining_capacity(day, committed + placed, preferences)
    not_before = max(reference, task.window_start)

    while remaining >= min_len and cap_left >= min_len:
        availability = calculator.for_day(day, committed + placed, not_before=not_before)
        if availability.fully_booked or not availability.gaps:
            break
        slot = find_slot(task, availability, remaining, cap_left, preferences)
        if slot is None:
            break
        block = _materialize(task, slot, availability, preferences)
        placed.append(block)
        remaining -= block.duration_minutes
        cap_left -= block.duration_minutes
    return remaining


def allocate_task(
    task: PlannedTask,
    calculator: AvailabilityCalculator,
    ledger: BlockLedger,
    reference: datetime,
) -> list[PlannedBlock]:
    """Place sessions for ``task`` without committing them to ``ledger``.

    Returns the new blocks; an infeasible window simply yields fewer blocks.
    """
    preferences = calculator.preferences
    if task.total_minutes < 0:
        raise SchedulingInvariantError(f"Task {task.task_id} has negative effort")

    committed = ledger.blocks
    placed: list[PlannedBlock] = []
    remaining = task.total_minutes
    day = task.start_day
    last_day = task.window_end.date()

    while remaining >= preferences.min_session_minutes and day <= last_day:
        remaining = _fill_day(task, day, remaining, calculator, committed, placed, reference)
        day += timedelta(days=1)

    if task.kind == TaskKind.EXAM and placed:
        placed[-1] = placed[-1].model_copy(update={"kind": BlockKind.REVIEW})

    if remaining >= preferences.min_session_minutes:
        logger.info(
            f"Task {task.task_id} ({task.title}): {remaining}min could not be placed "
            f"before {task.window_end:%Y-%m-%d %H:%M}"
        )
    warn_low_energy(task, placed, preferences)
    return placed


def low_energy_days(
    kind: TaskKind, blocks: Iterable[PlannedBlock], preferences: Preferences
) -> list[date]:
    if kind not in HIGH_ENERGY_KINDS:
        return []
    days = sorted({block.start_time.date() for block in blocks})
    return [
        day for day in days
        if preferences.energy_for(day.weekday()) < preferences.energy_warning_threshold
    ]


def warn_low_energy(
    task: PlannedTask, blocks: Iterable[PlannedBlock], preferences: Preferences
) -> None:
    # Only reported; allocation is not steered away from these days
    for day in low_energy_days(task.kind, blocks, preferences):
        logger.warning(
            f"High-energy task {task.task_id} ({task.title}) scheduled on a low-energy "
            f"day ({WEEKDAY_NAMES[day.weekday()]} {day})"
        )

"""Scheduling entry points.

``schedule_task`` and ``reschedule_all`` take a read-only
``ScheduleSnapshot`` and return a ``ScheduleResult`` describing the new
block collection. They never persist anything; see
``app.services.planner_store`` for the database side.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from app.schemas.schedule import PlannedBlock, ScheduleResult, TaskOutcome
from app.services.allocator import BlockLedger, allocate_task
from app.services.availability import AvailabilityCalculator
from app.services.effort import PlannedTask, estimate_task
from app.services.intervals import to_local_naive
from app.services.prioritizer import prioritize
from app.services.snapshot import ScheduleSnapshot, id_sort_key, read

logger = logging.getLogger(__name__)


def _normalize_reference(snapshot: ScheduleSnapshot, reference: datetime | None) -> datetime:
    """Naive local "now" in the planner's timezone."""
    tz = snapshot.tz
    if reference is None:
        return datetime.now(tz).replace(tzinfo=None, microsecond=0)
    return to_local_naive(reference, tz)


def _skipped(planned: PlannedTask) -> TaskOutcome:
    return TaskOutcome(
        task_id=planned.task_id,
        title=planned.title,
        status="skipped",
        required_minutes=planned.total_minutes,
        soft_deadline=planned.soft_deadline,
        reason=planned.skip_reason,
    )


def _schedule_one(
    planned: PlannedTask,
    calculator: AvailabilityCalculator,
    ledger: BlockLedger,
    reference: datetime,
) -> tuple[list[PlannedBlock], TaskOutcome]:
    """Allocate one task and commit its blocks to ``ledger``.

    A failure is logged and leaves the ledger untouched, so the task simply
    ends up with no blocks for this run.
    """
    try:
        blocks = allocate_task(planned, calculator, ledger, reference)
    except Exception as exc:
        logger.exception(f"Scheduling failed for task {planned.task_id} ({planned.title})")
        return [], TaskOutcome(
            task_id=planned.task_id,
            title=planned.title,
            status="failed",
            required_minutes=planned.total_minutes,
            soft_deadline=planned.soft_deadline,
            reason=str(exc),
        )

    ledger.commit(blocks)
    scheduled = sum(block.duration_minutes for block in blocks)
    unmet = planned.total_minutes - scheduled
    min_session = calculator.preferences.min_session_minutes
    outcome = TaskOutcome(
        task_id=planned.task_id,
        title=planned.title,
        status="scheduled" if unmet < min_session else "partial",
        required_minutes=planned.total_minutes,
        scheduled_minutes=scheduled,
        soft_deadline=planned.soft_deadline,
        reason=None if unmet < min_session else f"{unmet} minutes did not fit before the soft deadline",
    )
    logger.info(
        f"Task {planned.task_id} ({planned.title}): {len(blocks)} blocks, "
        f"{scheduled}/{planned.total_minutes} min"
    )
    return blocks, outcome


def _estimate(task: Any, snapshot: ScheduleSnapshot, reference: datetime) -> PlannedTask | TaskOutcome:
    try:
        return estimate_task(task, snapshot.preferences, reference)
    except Exception as exc:
        logger.exception(f"Could not estimate task {read(task, 'id')}")
        return TaskOutcome(
            task_id=read(task, "id"),
            title=read(task, "title"),
            status="failed",
            reason=str(exc),
        )


def schedule_task(
    task_id: Any, snapshot: ScheduleSnapshot, reference: datetime | None = None
) -> ScheduleResult:
    """(Re)generate the automatic blocks of a single task.

    Completed, effortless or overdue tasks are left exactly as they are.
    Otherwise the task's non-manual blocks are replaced by a fresh allocation
    that treats every other block as busy.
    """
    ref = _normalize_reference(snapshot, reference)
    existing = snapshot.planned_blocks()
    task = next((t for t in snapshot.identified_tasks() if read(t, "id") == task_id), None)

    if task is None:
        logger.warning(f"Task {task_id} not found; nothing to schedule")
        return ScheduleResult(
            generated_at=ref,
            blocks=existing,
            generated=[],
            replaced_task_ids=[],
            outcomes=(
                [TaskOutcome(task_id=task_id, status="skipped", reason="task not found")]
                if task_id is not None
                else []
            ),
        )

    planned = _estimate(task, snapshot, ref)
    if isinstance(planned, TaskOutcome):
        return ScheduleResult(
            generated_at=ref, blocks=existing, generated=[], replaced_task_ids=[], outcomes=[planned]
        )
    if not planned.schedulable:
        logger.info(f"Task {task_id} not scheduled: {planned.skip_reason}")
        return ScheduleResult(
            generated_at=ref,
            blocks=existing,
            generated=[],
            replaced_task_ids=[],
            outcomes=[_skipped(planned)],
        )

    retained = [
        block for block in existing if block.is_manual or block.task_id != planned.task_id
    ]
    ledger = BlockLedger(retained)
    calculator = AvailabilityCalculator.from_snapshot(snapshot)
    generated, outcome = _schedule_one(planned, calculator, ledger, ref)

    return ScheduleResult(
        generated_at=ref,
        blocks=ledger.blocks,
        generated=generated,
        replaced_task_ids=[planned.task_id],
        outcomes=[outcome],
    )


def reschedule_all(snapshot: ScheduleSnapshot, reference: datetime | None = None) -> ScheduleResult:
    """Recompute every automatic block from scratch.

    Manual blocks and the blocks of completed tasks survive; everything else
    is regenerated in priority order, each task seeing the blocks placed
    before it as busy time. Repeated calls with the same inputs and reference
    time produce the same blocks.
    """
    ref = _normalize_reference(snapshot, reference)
    existing = snapshot.planned_blocks()
    tasks = snapshot.identified_tasks()

    outcomes: list[TaskOutcome] = []
    planned_tasks: list[PlannedTask] = []
    for task in tasks:
        planned = _estimate(task, snapshot, ref)
        if isinstance(planned, TaskOutcome):
            outcomes.append(planned)
        else:
            planned_tasks.append(planned)

    completed_ids = {p.task_id for p in planned_tasks if p.skip_reason == "completed"}
    replaced_ids = sorted(
        {read(task, "id") for task in tasks} - completed_ids,
        key=id_sort_key,
    )
    retained = [
        block for block in existing if block.is_manual or block.task_id in completed_ids
    ]

    ledger = BlockLedger(retained)
    calculator = AvailabilityCalculator.from_snapshot(snapshot)
    generated: list[PlannedBlock] = []

    for planned in planned_tasks:
        if not planned.schedulable:
            outcomes.append(_skipped(planned))

    ordered = prioritize(planned_tasks, ref)
    logger.info(f"Rescheduling {len(ordered)} of {len(tasks)} tasks")
    for planned in ordered:
        blocks, outcome = _schedule_one(planned, calculator, ledger, ref)
        generated.extend(blocks)
        outcomes.append(outcome)

    logger.info(f"Reschedule complete: {len(generated)} blocks created")
    return ScheduleResult(
        generated_at=ref,
        blocks=ledger.blocks,
        generated=generated,
        replaced_task_ids=replaced_ids,
        outcomes=outcomes,
    )

"""Database side of scheduling: load a snapshot, publish a result.

The engine in ``app.services.scheduling`` is pure. This module is the only
place that turns its ``ScheduleResult`` into rows, and it does so in a single
transaction so a failed run never leaves half-written blocks behind.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.course import Course
from app.models.event import Event, EventKind
from app.models.preferences import PlannerPreferences
from app.models.task import Task
from app.models.time_block import TimeBlock
from app.schemas.preferences import Preferences, PreferencesUpdate
from app.schemas.schedule import ScheduleResult
from app.services.intervals import ensure_datetime
from app.services.scheduling import reschedule_all, schedule_task
from app.services.snapshot import ScheduleSnapshot, resolve_timezone

logger = logging.getLogger(__name__)

PREFERENCES_ROW_ID = 1
DEADLINE_MARKER_LENGTH = timedelta(minutes=30)


def get_preferences(db: Session) -> Preferences:
    row = db.get(PlannerPreferences, PREFERENCES_ROW_ID)
    if row is None or not row.data:
        return Preferences()
    try:
        return Preferences.model_validate(row.data)
    except ValidationError as exc:
        logger.warning(f"Stored preferences are invalid, using defaults: {exc}")
        return Preferences()


def save_preferences(db: Session, payload: PreferencesUpdate) -> Preferences:
    """Merge ``payload`` into the stored preferences and persist them.

    Raises ``ValidationError`` when the merged result is inconsistent.
    """
    current = get_preferences(db)
    merged = {**current.model_dump(), **payload.dict(exclude_unset=True)}
    preferences = Preferences.model_validate(merged)

    row = db.get(PlannerPreferences, PREFERENCES_ROW_ID)
    if row is None:
        row = PlannerPreferences(id=PREFERENCES_ROW_ID)
    row.data = preferences.model_dump(mode="json")
    db.add(row)
    db.commit()
    return preferences


def to_planner_time(db: Session, value: Any) -> datetime | None:
    """Store every timestamp as naive wall-clock time in the planner's timezone."""
    if value is None:
        return None
    tz = resolve_timezone(get_preferences(db))
    return ensure_datetime(value, tz=tz)


def load_snapshot(db: Session) -> ScheduleSnapshot:
    return ScheduleSnapshot(
        tasks=db.query(Task).order_by(Task.id).all(),
        courses=db.query(Course).order_by(Course.id).all(),
        events=db.query(Event).order_by(Event.start_time).all(),
        blocks=db.query(TimeBlock).order_by(TimeBlock.start_time).all(),
        preferences=get_preferences(db),
    )


def apply_result(db: Session, result: ScheduleResult) -> list[TimeBlock]:
    """Replace the affected tasks' automatic blocks with the generated ones."""
    try:
        if result.replaced_task_ids:
            (
                db.query(TimeBlock)
                .filter(
                    TimeBlock.is_manual.is_(False),
                    TimeBlock.task_id.in_(result.replaced_task_ids),
                )
                .delete(synchronize_session=False)
            )
        rows = [
            TimeBlock(
                task_id=block.task_id,
                start_time=block.start_time,
                end_time=block.end_time,
                kind=block.kind.value,
                completed=False,
                is_manual=False,
            )
            for block in result.generated
        ]
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Publishing the schedule failed; previous blocks kept")
        raise
    db.expire_all()
    return rows


def run_schedule_task(db: Session, task_id: int, reference: datetime | None = None) -> ScheduleResult:
    result = schedule_task(task_id, load_snapshot(db), reference)
    apply_result(db, result)
    return result


def run_reschedule_all(db: Session, reference: datetime | None = None) -> ScheduleResult:
    result = reschedule_all(load_snapshot(db), reference)
    apply_result(db, result)
    return result


def after_mutation(db: Session, task_id: int | None = None) -> ScheduleResult | None:
    """Re-run the scheduler after scheduling inputs changed, when enabled."""
    if not get_settings().auto_reschedule:
        return None
    if task_id is not None:
        return run_schedule_task(db, task_id)
    return run_reschedule_all(db)


def sync_deadline_event(db: Session, task: Task) -> Event:
    """Create or refresh the non-blocking DUE marker for ``task``."""
    marker = (
        db.query(Event)
        .filter(Event.task_id == task.id, Event.kind == EventKind.DEADLINE.value)
        .first()
    )
    if marker is None:
        marker = Event(task_id=task.id, kind=EventKind.DEADLINE.value)
    marker.title = f"DUE: {task.title}"
    marker.course_id = task.course_id
    marker.start_time = task.due_date
    marker.end_time = task.due_date + DEADLINE_MARKER_LENGTH
    marker.description = f"Deadline for {task.title}"
    db.add(marker)
    return marker

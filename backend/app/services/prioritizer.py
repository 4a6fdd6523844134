from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable

from app.models.task import TaskKind
from app.services.effort import PlannedTask
from app.services.snapshot import id_sort_key

URGENCY_SHARE = 0.7
IMPORTANCE_SHARE = 0.3


def priority_score(task: PlannedTask, reference: datetime) -> float:
    """Composite urgency/importance score, higher means more pressing."""
    days = max(task.days_until_due(reference), 0)
    urgency = math.exp(-days / 7)
    importance = (task.difficulty / 5) * (2 if task.kind == TaskKind.EXAM else 1)
    return URGENCY_SHARE * urgency + IMPORTANCE_SHARE * importance


def prioritize(tasks: Iterable[PlannedTask], reference: datetime) -> list[PlannedTask]:
    """Order schedulable tasks so the most pressing claim free time first.

    Calendar days until due always dominate: a task due on an earlier day is
    never placed behind one due on a later day. Harder tasks break ties, then
    the composite score, then the exact due time and id so repeated runs
    produce the same order.
    """
    pending = [task for task in tasks if task.schedulable]
    return sorted(
        pending,
        key=lambda task: (
            task.days_until_due(reference),
            -task.difficulty,
            -priority_score(task, reference),
            task.due_date,
            id_sort_key(task.task_id),
        ),
    )

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.time_block import BlockKind

OutcomeStatus = Literal["scheduled", "partial", "skipped", "failed"]


class PlannedBlock(BaseModel):
    """A time block as seen by the scheduling engine.

    Blocks carried over from the store keep their ``id``; blocks the engine
    generates have ``id=None`` until they are persisted.
    """
    id: int | None = None
    task_id: int | str | None = None
    start_time: datetime
    end_time: datetime
    kind: BlockKind = BlockKind.STUDY
    completed: bool = False
    is_manual: bool = False

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)


class TaskOutcome(BaseModel):
    task_id: int | str
    title: str | None = None
    status: OutcomeStatus
    required_minutes: int = 0
    scheduled_minutes: int = 0
    soft_deadline: datetime | None = None
    reason: str | None = None


class ScheduleResult(BaseModel):
    generated_at: datetime
    # Complete block collection after the run (retained + generated)
    blocks: list[PlannedBlock]
    generated: list[PlannedBlock]
    replaced_task_ids: list[int | str]
    outcomes: list[TaskOutcome] = Field(default_factory=list)


class ScheduleRunResponse(BaseModel):
    generated_at: datetime
    tasks_scheduled: int
    blocks_created: int
    outcomes: list[TaskOutcome]


class ScheduleConflict(BaseModel):
    type: Literal["overlap", "insufficient-time", "too-many-hours"]
    severity: Literal["warning", "error"]
    message: str
    day: datetime | None = None
    task_ids: list[int | str] = Field(default_factory=list)
    block_ids: list[int] = Field(default_factory=list)


class EnergyWarning(BaseModel):
    task_id: int | str
    day: datetime
    weekday: str
    energy_level: float


class WorkloadSummary(BaseModel):
    total_hours: float
    average_per_day: float
    block_count: int
    by_kind: dict[str, float]
    by_course: dict[str, float]
    by_weekday: dict[str, float]
    conflicts: list[ScheduleConflict] = Field(default_factory=list)
    energy_warnings: list[EnergyWarning] = Field(default_factory=list)

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.task import TaskKind, TaskStatus


class TaskBase(BaseModel):
    title: str
    description: str | None = None
    course_id: int | None = None
    kind: TaskKind = TaskKind.ASSIGNMENT
    due_date: datetime
    difficulty: int = Field(default=3, ge=1, le=5)
    estimated_hours: float | None = Field(default=None, ge=0)  # None/0 -> kind default
    buffer_days: int | None = Field(default=None, ge=0)  # None -> kind default
    is_hard_deadline: bool = False
    status: TaskStatus = TaskStatus.NOT_STARTED


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    course_id: int | None = None
    kind: TaskKind | None = None
    due_date: datetime | None = None
    difficulty: int | None = Field(default=None, ge=1, le=5)
    estimated_hours: float | None = Field(default=None, ge=0)
    buffer_days: int | None = Field(default=None, ge=0)
    is_hard_deadline: bool | None = None
    status: TaskStatus | None = None

    class Config:
        # Allow extra fields to be ignored (frontend might send read-only fields)
        extra = "ignore"


class TaskPublic(TaskBase):
    id: int
    created_at: datetime
    updated_at: datetime
    # Computed from the task's time blocks, not stored
    scheduled_hours: float = 0.0

    class Config:
        from_attributes = True

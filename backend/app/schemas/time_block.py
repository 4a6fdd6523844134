from datetime import datetime

from pydantic import BaseModel

from app.models.time_block import BlockKind


class TimeBlockCreate(BaseModel):
    """A user-placed block; always stored as manual."""
    task_id: int
    start_time: datetime
    end_time: datetime
    kind: BlockKind = BlockKind.STUDY
    notes: str | None = None


class TimeBlockUpdate(BaseModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    completed: bool | None = None
    kind: BlockKind | None = None
    notes: str | None = None


class TimeBlockPublic(BaseModel):
    id: int
    task_id: int
    start_time: datetime
    end_time: datetime
    completed: bool
    kind: BlockKind
    is_manual: bool
    notes: str | None = None

    class Config:
        from_attributes = True

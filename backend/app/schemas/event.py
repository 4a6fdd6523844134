from datetime import datetime

from pydantic import BaseModel

from app.models.event import EventKind


class EventBase(BaseModel):
    title: str
    kind: EventKind = EventKind.LECTURE
    course_id: int | None = None
    task_id: int | None = None
    start_time: datetime
    end_time: datetime
    all_day: bool = False
    location: str | None = None
    description: str | None = None


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    title: str | None = None
    kind: EventKind | None = None
    course_id: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    all_day: bool | None = None
    location: str | None = None
    description: str | None = None


class EventPublic(EventBase):
    id: int

    class Config:
        from_attributes = True

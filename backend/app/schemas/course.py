from datetime import time

from pydantic import BaseModel, Field, model_validator

from app.models.course import SessionKind


class CourseSessionBase(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Monday, 6=Sunday")
    start_time: time
    end_time: time
    kind: SessionKind = SessionKind.LECTURE
    room: str | None = None

    @model_validator(mode="after")
    def _check_order(self) -> "CourseSessionBase":
        if self.end_time <= self.start_time:
            raise ValueError("session end_time must be after start_time")
        return self


class CourseSessionCreate(CourseSessionBase):
    pass


class CourseSessionPublic(CourseSessionBase):
    id: int
    course_id: int

    class Config:
        from_attributes = True


class CourseBase(BaseModel):
    name: str
    code: str = ""
    professor: str | None = None
    color: str = "#4B5563"
    credits: int = Field(default=3, ge=0)
    room: str | None = None


class CourseCreate(CourseBase):
    schedule: list[CourseSessionCreate] = Field(default_factory=list)


class CourseUpdate(BaseModel):
    name: str | None = None
    code: str | None = None
    professor: str | None = None
    color: str | None = None
    credits: int | None = Field(default=None, ge=0)
    room: str | None = None
    # When present, replaces the whole weekly schedule
    schedule: list[CourseSessionCreate] | None = None


class CoursePublic(CourseBase):
    id: int
    schedule: list[CourseSessionPublic] = Field(default_factory=list)

    class Config:
        from_attributes = True

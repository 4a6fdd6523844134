from datetime import datetime, time
from enum import Enum as PyEnum

from sqlalchemy import DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class SessionKind(str, PyEnum):
    LECTURE = "lecture"
    LAB = "lab"
    TUTORIAL = "tutorial"
    OFFICE_HOURS = "office-hours"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    professor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    color: Mapped[str] = mapped_column(String(32), nullable=False, default="#4B5563")
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    room: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    schedule = relationship(
        "CourseSession",
        back_populates="course",
        cascade=CASCADE_ALL_DELETE_ORPHAN,
        order_by="CourseSession.day_of_week",
    )
    tasks = relationship(
        "Task", back_populates="course", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
    events = relationship(
        "Event", back_populates="course", cascade=CASCADE_ALL_DELETE_ORPHAN
    )


class CourseSession(Base):
    """A recurring weekly meeting of a course."""

    __tablename__ = "course_sessions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"))
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Monday
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    kind: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SessionKind.LECTURE.value
    )
    room: Mapped[str | None] = mapped_column(String(64), nullable=True)

    course: Mapped[Course] = relationship("Course", back_populates="schedule")

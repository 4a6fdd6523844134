from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.db.base import Base

CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class TaskKind(str, PyEnum):
    ASSIGNMENT = "assignment"
    EXAM = "exam"
    PROJECT = "project"
    READING = "reading"
    LAB = "lab"


class TaskStatus(str, PyEnum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    # Use String for SQLite compatibility - enum values are stored as lowercase strings
    kind = Column(String(20), nullable=False, default=TaskKind.ASSIGNMENT.value)
    due_date = Column(DateTime, nullable=False)
    difficulty = Column(Integer, nullable=False, default=3)  # 1 (very easy) .. 5 (very hard)
    estimated_hours = Column(Float, nullable=True)  # None/0 -> default hours for the kind
    buffer_days = Column(Integer, nullable=True)  # None -> default buffer for the kind
    is_hard_deadline = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default=TaskStatus.NOT_STARTED.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    course = relationship("Course", back_populates="tasks")
    time_blocks = relationship(
        "TimeBlock",
        back_populates="task",
        cascade=CASCADE_ALL_DELETE_ORPHAN,
        order_by="TimeBlock.start_time",
    )
    events = relationship(
        "Event", back_populates="task", cascade=CASCADE_ALL_DELETE_ORPHAN
    )

    @property
    def scheduled_hours(self) -> float:
        """Hours currently booked for this task across all of its blocks."""
        seconds = sum(
            (block.end_time - block.start_time).total_seconds()
            for block in self.time_blocks
        )
        return round(seconds / 3600, 2)

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class EventKind(str, PyEnum):
    LECTURE = "lecture"
    CLINICAL = "clinical"
    LAB = "lab"
    EXAM = "exam"
    SIMULATION = "simulation"
    REVIEW = "review"
    DEADLINE = "deadline"  # visual marker only, never busy time


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=True
    )
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True)
    title = Column(String(255), nullable=False)
    kind = Column(String(20), nullable=False, default=EventKind.LECTURE.value)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    all_day = Column(Boolean, nullable=False, default=False)
    location = Column(String(255), nullable=True)
    description = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    course = relationship("Course", back_populates="events")
    task = relationship("Task", back_populates="events")

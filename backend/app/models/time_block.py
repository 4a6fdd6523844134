from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class BlockKind(str, PyEnum):
    STUDY = "study"
    REVIEW = "review"
    WORK = "work"


class TimeBlock(Base):
    __tablename__ = "time_blocks"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    kind = Column(String(16), nullable=False, default=BlockKind.STUDY.value)
    # Manual blocks are placed by the user and never cleared by the scheduler
    is_manual = Column(Boolean, nullable=False, default=False)
    notes = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    task = relationship("Task", back_populates="time_blocks")

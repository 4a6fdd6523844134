from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer

from app.db.base import Base


class PlannerPreferences(Base):
    """Single-row store for the planner's scheduling preferences.

    The payload is validated through ``app.schemas.preferences.Preferences``
    whenever it is read or written, so missing keys fall back to defaults.
    """

    __tablename__ = "planner_preferences"

    id = Column(Integer, primary_key=True, index=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

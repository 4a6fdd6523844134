from datetime import time

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.event import EventKind
from app.models.task import TaskKind

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

DEFAULT_ENERGY_LEVELS = {
    "monday": 0.9,
    "tuesday": 1.0,
    "wednesday": 0.95,
    "thursday": 0.85,
    "friday": 0.7,
    "saturday": 0.8,
    "sunday": 0.9,
}

DEFAULT_BUFFER_DAYS = {
    TaskKind.EXAM: 7,
    TaskKind.ASSIGNMENT: 3,
    TaskKind.PROJECT: 10,
    TaskKind.READING: 1,
    TaskKind.LAB: 2,
}

DEFAULT_HOURS = {
    TaskKind.ASSIGNMENT: 3.0,
    TaskKind.EXAM: 10.0,
    TaskKind.PROJECT: 15.0,
    TaskKind.READING: 2.0,
    TaskKind.LAB: 4.0,
}

DEFAULT_DIFFICULTY_MULTIPLIERS = {1: 0.5, 2: 0.75, 3: 1.0, 4: 1.5, 5: 2.0}


def _reject_negative(values: dict, label: str) -> dict:
    for key, value in values.items():
        if value < 0:
            raise ValueError(f"{label} for {getattr(key, 'value', key)} cannot be negative")
    return values


class PeriodWindow(BaseModel):
    """A named time-of-day period; weight 0 disables it."""
    start: time
    end: time
    weight: float = Field(default=1.0, ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "PeriodWindow":
        if self.end <= self.start:
            raise ValueError("period end must be after its start")
        return self


def _default_periods() -> dict[str, PeriodWindow]:
    return {
        "morning": PeriodWindow(start=time(hour=8), end=time(hour=12)),
        "afternoon": PeriodWindow(start=time(hour=13), end=time(hour=17)),
        "evening": PeriodWindow(start=time(hour=18), end=time(hour=22)),
    }


class Preferences(BaseModel):
    timezone: str = "UTC"
    day_start: time = time(hour=9)
    day_end: time = time(hour=22)

    daily_max_hours: float = Field(default=6.0, gt=0, le=24)
    weekend_max_hours: float = Field(default=4.0, ge=0, le=24)
    weekly_max_hours: float | None = Field(default=None, gt=0)

    session_minutes: int = Field(default=90, ge=5)
    min_session_minutes: int = Field(default=30, ge=5)
    break_minutes: int = Field(default=15, ge=0)
    slot_step_minutes: int = Field(default=30, ge=5, le=120)

    energy_levels: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_ENERGY_LEVELS)
    )
    energy_warning_threshold: float = Field(default=0.8, ge=0, le=1)
    periods: dict[str, PeriodWindow] = Field(default_factory=_default_periods)

    buffer_days: dict[TaskKind, int] = Field(
        default_factory=lambda: dict(DEFAULT_BUFFER_DAYS)
    )
    default_hours: dict[TaskKind, float] = Field(
        default_factory=lambda: dict(DEFAULT_HOURS)
    )
    difficulty_multipliers: dict[int, float] = Field(
        default_factory=lambda: dict(DEFAULT_DIFFICULTY_MULTIPLIERS)
    )
    blocking_event_kinds: list[EventKind] = Field(
        default_factory=lambda: [EventKind.CLINICAL]
    )

    @field_validator("energy_levels")
    @classmethod
    def _normalize_energy(cls, value: dict[str, float]) -> dict[str, float]:
        levels = dict(DEFAULT_ENERGY_LEVELS)
        for name, level in value.items():
            key = name.strip().lower()
            if key not in WEEKDAY_NAMES:
                raise ValueError(f"unknown weekday '{name}'")
            levels[key] = min(max(float(level), 0.0), 1.0)
        return levels

    @field_validator("buffer_days")
    @classmethod
    def _fill_buffer_days(cls, value: dict[TaskKind, int]) -> dict[TaskKind, int]:
        return {**DEFAULT_BUFFER_DAYS, **value}

    @field_validator("default_hours")
    @classmethod
    def _fill_default_hours(cls, value: dict[TaskKind, float]) -> dict[TaskKind, float]:
        return {**DEFAULT_HOURS, **_reject_negative(value, "default hours")}

    @field_validator("difficulty_multipliers")
    @classmethod
    def _fill_multipliers(cls, value: dict[int, float]) -> dict[int, float]:
        return {**DEFAULT_DIFFICULTY_MULTIPLIERS, **_reject_negative(value, "difficulty multiplier")}

    @model_validator(mode="after")
    def _check_windows(self) -> "Preferences":
        if self.day_end <= self.day_start:
            raise ValueError("day_end must be after day_start")
        if self.min_session_minutes > self.session_minutes:
            raise ValueError("min_session_minutes cannot exceed session_minutes")
        return self

    def energy_for(self, weekday: int) -> float:
        return self.energy_levels.get(WEEKDAY_NAMES[weekday], 1.0)


class PreferencesUpdate(BaseModel):
    timezone: str | None = None
    day_start: time | None = None
    day_end: time | None = None
    daily_max_hours: float | None = Field(default=None, gt=0, le=24)
    weekend_max_hours: float | None = Field(default=None, ge=0, le=24)
    weekly_max_hours: float | None = Field(default=None, gt=0)
    session_minutes: int | None = Field(default=None, ge=5)
    min_session_minutes: int | None = Field(default=None, ge=5)
    break_minutes: int | None = Field(default=None, ge=0)
    slot_step_minutes: int | None = Field(default=None, ge=5, le=120)
    energy_levels: dict[str, float] | None = None
    energy_warning_threshold: float | None = Field(default=None, ge=0, le=1)
    periods: dict[str, PeriodWindow] | None = None
    buffer_days: dict[TaskKind, int] | None = None
    default_hours: dict[TaskKind, float] | None = None
    difficulty_multipliers: dict[int, float] | None = None
    blocking_event_kinds: list[EventKind] | None = None

    @field_validator("default_hours", "difficulty_multipliers")
    @classmethod
    def _check_non_negative(cls, value: dict | None) -> dict | None:
        if value is None:
            return value
        return _reject_negative(value, "value")

    class Config:
        extra = "ignore"

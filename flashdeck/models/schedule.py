from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_EASE = 2.5
MIN_EASE = 1.3


class ReviewQuality(str, Enum):
    AGAIN = "again"  # complete failure
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


class CardStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    YOUNG = "young"
    MATURE = "mature"


class CardScheduleState(BaseModel):
    """Scheduling facts for one flashcard.

    Replaced wholesale on every review; never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    ease_factor: float = Field(default=DEFAULT_EASE, ge=MIN_EASE, allow_inf_nan=False)
    interval: int = Field(default=0, ge=0)      # days until next review
    repetitions: int = Field(default=0, ge=0)   # consecutive successful reviews
    due_date: datetime
    last_reviewed: datetime | None = None

    @field_validator("due_date", "last_reviewed")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

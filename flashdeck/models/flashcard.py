from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, StrictInt, model_validator

from flashdeck.models.schedule import CardScheduleState, CardStatus, ReviewQuality
from flashdeck.services.scheduler import quality_from_grade


class Flashcard(BaseModel):
    id: str
    deck_id: str
    front: str
    back: str
    schedule: CardScheduleState | None  # None = never reviewed, due immediately
    status: CardStatus
    version: int                        # bumped on every schedule write
    created_at: str
    updated_at: str


class FlashcardList(BaseModel):
    items: list[Flashcard]
    total: int


class FlashcardCreate(BaseModel):
    deck_id: str
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)


class FlashcardUpdate(BaseModel):
    front: str | None = Field(default=None, min_length=1)
    back: str | None = Field(default=None, min_length=1)


class ReviewRequest(BaseModel):
    """Either a four-way quality or a raw 0–5 grade, never both."""

    quality: ReviewQuality | None = None
    grade: StrictInt | None = Field(default=None, ge=0, le=5)

    @model_validator(mode="after")
    def _exactly_one(self) -> ReviewRequest:
        if (self.quality is None) == (self.grade is None):
            raise ValueError("provide exactly one of 'quality' or 'grade'")
        return self

    def resolved_quality(self) -> ReviewQuality:
        if self.quality is not None:
            return self.quality
        return quality_from_grade(self.grade)


class ReviewResult(BaseModel):
    id: str
    quality: ReviewQuality
    ease_factor: float
    interval: int
    repetitions: int
    due_date: datetime
    last_reviewed: datetime
    days_until_due: int
    status: CardStatus


class DeckStats(BaseModel):
    total_cards: int
    new_count: int
    learning_count: int
    young_count: int
    mature_count: int
    due_count: int


class ForecastDay(BaseModel):
    day: date
    count: int


class DueForecast(BaseModel):
    days: list[ForecastDay]
    total: int

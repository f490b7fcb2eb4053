"""
Quiz & Spaced Repetition router.

Endpoints:
  POST /quiz/cards           — add a card to a deck (new cards are due at once)
  GET  /quiz/cards           — list cards (optionally filtered by deck_id)
  GET  /quiz/due             — cards due now, new cards first
  GET  /quiz/forecast        — reviewed cards falling due on each upcoming day
  POST /quiz/{id}/review     — submit quality or 0–5 grade, reschedule the card
  GET  /quiz/{id}            — single card
  PATCH/quiz/{id}            — edit front / back
  DELETE /quiz/{id}          — delete card
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from flashdeck.config import settings
from flashdeck.db.sqlite import (
    create_flashcard,
    delete_flashcard,
    get_db,
    get_deck,
    get_due_flashcards,
    get_flashcard,
    list_flashcards,
    list_schedules,
    save_schedule,
    update_flashcard_content,
)
from flashdeck.models.flashcard import (
    DueForecast,
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    ForecastDay,
    ReviewRequest,
    ReviewResult,
)
from flashdeck.services.scheduler import days_until_due, schedule_review
from flashdeck.services.stats import upcoming_due

logger = logging.getLogger(__name__)
router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@router.post("/cards", response_model=Flashcard, status_code=201)
async def add_card(
    body: FlashcardCreate,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    if not await get_deck(db, body.deck_id):
        raise HTTPException(status_code=404, detail="Deck not found")
    return await create_flashcard(db, body)


@router.get("/cards", response_model=FlashcardList)
async def list_cards(
    deck_id: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    """List flashcards, optionally filtered by deck."""
    items, total = await list_flashcards(db, deck_id=deck_id, offset=offset, limit=limit)
    return FlashcardList(items=items, total=total)


@router.get("/due", response_model=FlashcardList)
async def get_due(
    limit: int | None = Query(default=None, ge=1, le=200),
    deck_id: str | None = Query(default=None),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    items = await get_due_flashcards(
        db,
        _utcnow(),
        limit=limit or settings.due_limit_default,
        deck_id=deck_id,
    )
    return FlashcardList(items=items, total=len(items))


@router.get("/forecast", response_model=DueForecast)
async def forecast(
    days: int | None = Query(default=None, ge=1, le=365),
    deck_id: str | None = Query(default=None),
    db: aiosqlite.Connection = Depends(get_db),
) -> DueForecast:
    schedules = await list_schedules(db, deck_id)
    buckets = upcoming_due(schedules, _utcnow(), days or settings.forecast_days)
    return DueForecast(
        days=[ForecastDay(day=day, count=count) for day, count in buckets.items()],
        total=sum(buckets.values()),
    )


@router.post("/{card_id}/review", response_model=ReviewResult)
async def review_card(
    card_id: str,
    body: ReviewRequest,
    db: aiosqlite.Connection = Depends(get_db),
) -> ReviewResult:
    """Submit a review for a flashcard and persist its next schedule."""
    card = await get_flashcard(db, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")

    quality = body.resolved_quality()
    now = _utcnow()
    schedule = schedule_review(card.schedule, quality, now)

    updated = await save_schedule(db, card_id, schedule, card.version)
    if not updated:
        logger.warning(
            "Review of card %s lost a concurrent update (version %s)",
            card_id, card.version,
        )
        raise HTTPException(
            status_code=409, detail="Flashcard was reviewed concurrently; reload and retry"
        )

    logger.info(
        "Reviewed card %s as %s: interval=%d reps=%d",
        card_id, quality.value, schedule.interval, schedule.repetitions,
    )
    return ReviewResult(
        id=card_id,
        quality=quality,
        ease_factor=schedule.ease_factor,
        interval=schedule.interval,
        repetitions=schedule.repetitions,
        due_date=schedule.due_date,
        last_reviewed=now,
        days_until_due=days_until_due(schedule, now),
        status=updated.status,
    )


@router.get("/{card_id}", response_model=Flashcard)
async def get_card(
    card_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    card = await get_flashcard(db, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card


@router.patch("/{card_id}", response_model=Flashcard)
async def edit_card(
    card_id: str,
    body: FlashcardUpdate,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    updated = await update_flashcard_content(db, card_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return updated


@router.delete("/{card_id}", status_code=204)
async def remove_card(
    card_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    deleted = await delete_flashcard(db, card_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Flashcard not found")

from datetime import datetime, timezone

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from flashdeck.config import settings
from flashdeck.db.sqlite import (
    create_deck,
    delete_deck,
    get_db,
    get_deck,
    list_decks,
    list_schedules,
    update_deck,
)
from flashdeck.models.deck import Deck, DeckCreate, DeckList, DeckUpdate
from flashdeck.models.flashcard import DeckStats
from flashdeck.services.stats import deck_stats

router = APIRouter()


@router.post("/", response_model=Deck, status_code=201)
async def create(body: DeckCreate, db: aiosqlite.Connection = Depends(get_db)):
    return await create_deck(db, body)


@router.get("/", response_model=DeckList)
async def list_all(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: aiosqlite.Connection = Depends(get_db),
):
    items, total = await list_decks(db, offset, limit)
    return DeckList(items=items, total=total, offset=offset, limit=limit)


@router.get("/{deck_id}", response_model=Deck)
async def get_one(deck_id: str, db: aiosqlite.Connection = Depends(get_db)):
    deck = await get_deck(db, deck_id)
    if not deck:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


@router.patch("/{deck_id}", response_model=Deck)
async def update(
    deck_id: str, body: DeckUpdate, db: aiosqlite.Connection = Depends(get_db)
):
    deck = await update_deck(db, deck_id, body)
    if not deck:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


@router.delete("/{deck_id}", status_code=204)
async def delete(deck_id: str, db: aiosqlite.Connection = Depends(get_db)):
    deleted = await delete_deck(db, deck_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Deck not found")


@router.get("/{deck_id}/stats", response_model=DeckStats)
async def stats(deck_id: str, db: aiosqlite.Connection = Depends(get_db)):
    """Card counts per learning stage plus the number due right now."""
    if not await get_deck(db, deck_id):
        raise HTTPException(status_code=404, detail="Deck not found")
    schedules = await list_schedules(db, deck_id)
    return deck_stats(
        schedules, datetime.now(timezone.utc), settings.mature_interval_days
    )

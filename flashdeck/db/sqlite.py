import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from flashdeck.config import settings
from flashdeck.models.deck import Deck, DeckCreate, DeckUpdate
from flashdeck.models.flashcard import Flashcard, FlashcardCreate, FlashcardUpdate
from flashdeck.models.schedule import CardScheduleState, as_utc
from flashdeck.services.stats import classify_card

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS decks (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS flashcards (
    id            TEXT PRIMARY KEY,
    deck_id       TEXT NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    front         TEXT NOT NULL,
    back          TEXT NOT NULL,
    ease_factor   REAL,
    interval      INTEGER,
    repetitions   INTEGER,
    due_date      TEXT,
    last_reviewed TEXT,
    version       INTEGER NOT NULL DEFAULT 0,
    created_at    TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at    TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_flashcards_deck ON flashcards(deck_id);
CREATE INDEX IF NOT EXISTS idx_flashcards_due ON flashcards(due_date);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _iso(value: datetime) -> str:
    # Fixed width so stored timestamps sort and compare as text.
    return as_utc(value).isoformat(timespec="microseconds")


# --- Decks ---


_DECK_SELECT = """SELECT d.*,
       (SELECT COUNT(*) FROM flashcards f WHERE f.deck_id = d.id) AS card_count
FROM decks d"""


def _row_to_deck(row: aiosqlite.Row) -> Deck:
    return Deck(**dict(row))


async def create_deck(db: aiosqlite.Connection, deck: DeckCreate) -> Deck:
    deck_id = str(uuid.uuid4())
    now = _now()
    await db.execute(
        """INSERT INTO decks (id, name, description, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?)""",
        (deck_id, deck.name, deck.description, now, now),
    )
    await db.commit()
    return await get_deck(db, deck_id)  # type: ignore[return-value]


async def get_deck(db: aiosqlite.Connection, deck_id: str) -> Deck | None:
    cursor = await db.execute(f"{_DECK_SELECT} WHERE d.id = ?", (deck_id,))  # noqa: S608
    row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_deck(row)


async def list_decks(
    db: aiosqlite.Connection, offset: int = 0, limit: int = 50
) -> tuple[list[Deck], int]:
    cursor = await db.execute("SELECT COUNT(*) FROM decks")
    total = (await cursor.fetchone())[0]

    cursor = await db.execute(
        f"{_DECK_SELECT} ORDER BY d.created_at DESC, d.name ASC LIMIT ? OFFSET ?",  # noqa: S608
        (limit, offset),
    )
    rows = await cursor.fetchall()
    return [_row_to_deck(r) for r in rows], total


async def update_deck(
    db: aiosqlite.Connection, deck_id: str, updates: DeckUpdate
) -> Deck | None:
    fields = updates.model_dump(exclude_none=True)
    if not fields:
        return await get_deck(db, deck_id)

    fields["updated_at"] = _now()
    set_clause = ", ".join(f"{k} = ?" for k in fields)
    values = list(fields.values()) + [deck_id]

    await db.execute(
        f"UPDATE decks SET {set_clause} WHERE id = ?",  # noqa: S608
        values,
    )
    await db.commit()
    return await get_deck(db, deck_id)


async def delete_deck(db: aiosqlite.Connection, deck_id: str) -> bool:
    cursor = await db.execute("DELETE FROM decks WHERE id = ?", (deck_id,))
    await db.commit()
    return cursor.rowcount > 0


# --- Flashcards ---


def _row_to_schedule(row: aiosqlite.Row) -> CardScheduleState | None:
    if row["last_reviewed"] is None:
        return None
    return CardScheduleState(
        ease_factor=row["ease_factor"],
        interval=row["interval"],
        repetitions=row["repetitions"],
        due_date=datetime.fromisoformat(row["due_date"]),
        last_reviewed=datetime.fromisoformat(row["last_reviewed"]),
    )


def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
    schedule = _row_to_schedule(row)
    return Flashcard(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        schedule=schedule,
        status=classify_card(schedule, settings.mature_interval_days),
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def create_flashcard(
    db: aiosqlite.Connection, card: FlashcardCreate
) -> Flashcard:
    """Insert a card with no schedule; it is due until its first review."""
    card_id = str(uuid.uuid4())
    now = _now()
    await db.execute(
        """INSERT INTO flashcards (id, deck_id, front, back, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (card_id, card.deck_id, card.front, card.back, now, now),
    )
    await db.commit()
    return await get_flashcard(db, card_id)  # type: ignore[return-value]


async def get_flashcard(db: aiosqlite.Connection, card_id: str) -> Flashcard | None:
    cursor = await db.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,))
    row = await cursor.fetchone()
    return _row_to_flashcard(row) if row else None


async def list_flashcards(
    db: aiosqlite.Connection,
    deck_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Flashcard], int]:
    if deck_id:
        cursor = await db.execute(
            "SELECT * FROM flashcards WHERE deck_id = ? ORDER BY created_at DESC, id ASC LIMIT ? OFFSET ?",
            (deck_id, limit, offset),
        )
        count_cursor = await db.execute(
            "SELECT COUNT(*) FROM flashcards WHERE deck_id = ?", (deck_id,)
        )
    else:
        cursor = await db.execute(
            "SELECT * FROM flashcards ORDER BY created_at DESC, id ASC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        count_cursor = await db.execute("SELECT COUNT(*) FROM flashcards")
    rows = await cursor.fetchall()
    count_row = await count_cursor.fetchone()
    total = count_row[0] if count_row else 0
    return [_row_to_flashcard(r) for r in rows], total


async def get_due_flashcards(
    db: aiosqlite.Connection,
    now: datetime,
    limit: int = 20,
    deck_id: str | None = None,
) -> list[Flashcard]:
    """Return new cards first, then reviewed cards due at `now`, oldest due first."""
    if deck_id:
        cursor = await db.execute(
            """SELECT * FROM flashcards
               WHERE (due_date IS NULL OR due_date <= ?)
               AND deck_id = ?
               ORDER BY due_date IS NOT NULL, due_date ASC, created_at ASC
               LIMIT ?""",
            (_iso(now), deck_id, limit),
        )
    else:
        cursor = await db.execute(
            """SELECT * FROM flashcards
               WHERE (due_date IS NULL OR due_date <= ?)
               ORDER BY due_date IS NOT NULL, due_date ASC, created_at ASC
               LIMIT ?""",
            (_iso(now), limit),
        )
    rows = await cursor.fetchall()
    return [_row_to_flashcard(r) for r in rows]


async def list_schedules(
    db: aiosqlite.Connection, deck_id: str | None = None
) -> list[CardScheduleState | None]:
    if deck_id:
        cursor = await db.execute(
            "SELECT * FROM flashcards WHERE deck_id = ?", (deck_id,)
        )
    else:
        cursor = await db.execute("SELECT * FROM flashcards")
    rows = await cursor.fetchall()
    return [_row_to_schedule(r) for r in rows]


async def save_schedule(
    db: aiosqlite.Connection,
    card_id: str,
    schedule: CardScheduleState,
    expected_version: int,
) -> Flashcard | None:
    """
    Persist a new schedule only if nobody else wrote the card since it was read.

    Returns the updated card, or None when the version check failed (or the
    card is gone).
    """
    now = _now()
    cursor = await db.execute(
        """UPDATE flashcards
           SET ease_factor = ?, interval = ?, repetitions = ?,
               due_date = ?, last_reviewed = ?,
               version = version + 1, updated_at = ?
           WHERE id = ? AND version = ?""",
        (
            schedule.ease_factor,
            schedule.interval,
            schedule.repetitions,
            _iso(schedule.due_date),
            _iso(schedule.last_reviewed),  # type: ignore[arg-type]
            now,
            card_id,
            expected_version,
        ),
    )
    await db.commit()
    if (cursor.rowcount or 0) == 0:
        return None
    return await get_flashcard(db, card_id)


async def update_flashcard_content(
    db: aiosqlite.Connection,
    card_id: str,
    update: FlashcardUpdate,
) -> Flashcard | None:
    card = await get_flashcard(db, card_id)
    if not card:
        return None
    new_front = update.front if update.front is not None else card.front
    new_back = update.back if update.back is not None else card.back
    now = _now()
    await db.execute(
        "UPDATE flashcards SET front = ?, back = ?, updated_at = ? WHERE id = ?",
        (new_front, new_back, now, card_id),
    )
    await db.commit()
    return await get_flashcard(db, card_id)


async def delete_flashcard(db: aiosqlite.Connection, card_id: str) -> bool:
    cursor = await db.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
    await db.commit()
    return (cursor.rowcount or 0) > 0

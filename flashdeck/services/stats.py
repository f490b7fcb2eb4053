from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from flashdeck.config import settings
from flashdeck.models.flashcard import DeckStats
from flashdeck.models.schedule import CardScheduleState, CardStatus, as_utc
from flashdeck.services.scheduler import is_due


def classify_card(
    state: CardScheduleState | None,
    mature_interval_days: int | None = None,
) -> CardStatus:
    """Derive the learning stage; the maturity threshold defaults to settings."""
    if mature_interval_days is None:
        mature_interval_days = settings.mature_interval_days
    if state is None:
        return CardStatus.NEW
    if state.repetitions < 2:
        return CardStatus.LEARNING
    if state.interval < mature_interval_days:
        return CardStatus.YOUNG
    return CardStatus.MATURE


def deck_stats(
    states: Iterable[CardScheduleState | None],
    now: datetime,
    mature_interval_days: int | None = None,
) -> DeckStats:
    """Count cards per status and how many are due at `now`."""
    counts = {status: 0 for status in CardStatus}
    total = 0
    due = 0
    for state in states:
        total += 1
        counts[classify_card(state, mature_interval_days)] += 1
        if is_due(state, now):
            due += 1

    return DeckStats(
        total_cards=total,
        new_count=counts[CardStatus.NEW],
        learning_count=counts[CardStatus.LEARNING],
        young_count=counts[CardStatus.YOUNG],
        mature_count=counts[CardStatus.MATURE],
        due_count=due,
    )


def upcoming_due(
    states: Iterable[CardScheduleState | None],
    now: datetime,
    days: int = 7,
) -> dict[date, int]:
    """
    Number of reviewed cards falling due on each UTC day, starting today.

    Overdue cards are counted today. New cards have no scheduled date and are
    left out, as are cards due after the window.
    """
    today = as_utc(now).date()
    buckets = {today + timedelta(days=offset): 0 for offset in range(max(days, 0))}
    if not buckets:
        return buckets

    for state in states:
        if state is None:
            continue
        # Overdue cards land on today rather than being dropped from the window.
        day = max(state.due_date.date(), today)
        if day in buckets:
            buckets[day] += 1
    return buckets

"""
Review scheduler (SM-2 with a four-bucket refinement).

Pure functions only: every call takes the card's prior state and the current
time explicitly and returns a fresh CardScheduleState. Nothing here touches
the clock, the database, or any shared state, so the functions are safe to
call concurrently.

Two entry points exist:
  schedule_review:         four-way quality, SM-2 core plus the hard/easy
                           interval adjustment (used by the API)
  schedule_numeric_review: raw 0–5 SM-2 grade, no bucket adjustment
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone

from flashdeck.models.schedule import (
    DEFAULT_EASE,
    MIN_EASE,
    CardScheduleState,
    ReviewQuality,
    as_utc,
)

logger = logging.getLogger(__name__)

# --- quality mappings ---
# Hard/Good/Easy are compressed onto 3/4/5: the ease formula is calibrated for 0–5.
_QUALITY_SCORE = {
    ReviewQuality.AGAIN: 0,
    ReviewQuality.HARD: 3,
    ReviewQuality.GOOD: 4,
    ReviewQuality.EASY: 5,
}
_FIRST_REVIEW_DAYS = {
    ReviewQuality.AGAIN: 0,
    ReviewQuality.HARD: 1,
    ReviewQuality.GOOD: 3,
    ReviewQuality.EASY: 5,
}

MIN_GRADE = 0
MAX_GRADE = 5
PASSING_GRADE = 3
MAX_INTERVAL_DAYS = 36500  # growth stops at about a century

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


class InvalidQualityError(ValueError):
    """Raised at the input boundary for a grade outside 0–5."""


def parse_grade(value: object) -> int:
    """Validate a raw SM-2 grade coming from a client."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQualityError(f"grade must be an integer, got {value!r}")
    if not MIN_GRADE <= value <= MAX_GRADE:
        raise InvalidQualityError(
            f"grade must be between {MIN_GRADE} and {MAX_GRADE}, got {value}"
        )
    return value


def quality_from_grade(value: object) -> ReviewQuality:
    """Map a 0–5 grade onto the four review buckets (0–2 are all lapses)."""
    grade = parse_grade(value)
    if grade < PASSING_GRADE:
        return ReviewQuality.AGAIN
    if grade == 3:
        return ReviewQuality.HARD
    if grade == 4:
        return ReviewQuality.GOOD
    return ReviewQuality.EASY


def round_half_up(value: float) -> int:
    """Round half away from zero; intervals are never negative."""
    return math.floor(value + 0.5)


def _next_ease(ease: float, q: int) -> float:
    ease = ease + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    return max(MIN_EASE, ease)


def _sm2_step(
    ease: float, interval: int, repetitions: int, q: int
) -> tuple[float, int, int]:
    """
    Core SM-2 transition.

    Returns (new_ease, new_interval, new_repetitions). The interval is grown
    with the prior ease; the ease update happens on lapses too.
    """
    if q < PASSING_GRADE:
        new_reps = 0
        new_interval = 0
    else:
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            new_interval = _grow(interval, ease)
        new_reps = repetitions + 1

    return _next_ease(ease, q), new_interval, new_reps


def _interval_ceiling(prior_interval: int) -> int:
    # An interval already past the cap is held, never shortened by a success.
    return max(MAX_INTERVAL_DAYS, prior_interval)


def _grow(interval: int, ease: float) -> int:
    ceiling = _interval_ceiling(interval)
    if interval >= ceiling:
        return ceiling
    grown = interval * ease
    if grown >= ceiling:
        return ceiling
    return round_half_up(grown)


def _adjust_interval(quality: ReviewQuality, interval: int) -> int:
    # Integer arithmetic: floor(x * 0.5) and floor(x * 1.3) without float error.
    if quality is ReviewQuality.AGAIN:
        return 0
    if quality is ReviewQuality.HARD:
        return max(1, interval // 2)
    if quality is ReviewQuality.EASY:
        return interval * 13 // 10
    return interval


def _due_date(now: datetime, interval: int) -> datetime:
    """now + interval days, saturating at the latest representable instant."""
    if interval > (_LATEST - now).days:
        return _LATEST
    return now + timedelta(days=interval)


def _build_state(
    ease: float, interval: int, repetitions: int, now: datetime
) -> CardScheduleState:
    return CardScheduleState(
        ease_factor=ease,
        interval=interval,
        repetitions=repetitions,
        due_date=_due_date(now, interval),
        last_reviewed=now,
    )


def schedule_review(
    prior_state: CardScheduleState | None,
    quality: ReviewQuality,
    now: datetime,
) -> CardScheduleState:
    """
    Compute the next schedule for a card after one review.

    A card with no prior state gets a fixed first-review offset (0/1/3/5 days)
    and the default ease. Otherwise the SM-2 step runs and Hard/Easy then
    shrink or stretch the resulting interval.
    """
    quality = ReviewQuality(quality)
    now = as_utc(now)

    if prior_state is None:
        interval = _FIRST_REVIEW_DAYS[quality]
        repetitions = 0 if quality is ReviewQuality.AGAIN else 1
        return _build_state(DEFAULT_EASE, interval, repetitions, now)

    ease, interval, repetitions = _sm2_step(
        prior_state.ease_factor,
        prior_state.interval,
        prior_state.repetitions,
        _QUALITY_SCORE[quality],
    )
    interval = min(
        _adjust_interval(quality, interval),
        _interval_ceiling(prior_state.interval),
    )
    logger.debug(
        "Scheduled %s review: ease=%.3f interval=%d reps=%d",
        quality.value, ease, interval, repetitions,
    )
    return _build_state(ease, interval, repetitions, now)


def schedule_numeric_review(
    prior_state: CardScheduleState | None,
    grade: int,
    now: datetime,
) -> CardScheduleState:
    """Plain SM-2 on a 0–5 grade; out-of-range grades are clamped."""
    now = as_utc(now)
    q = min(MAX_GRADE, max(MIN_GRADE, int(grade)))
    if prior_state is None:
        prior_state = CardScheduleState(due_date=now)

    ease, interval, repetitions = _sm2_step(
        prior_state.ease_factor,
        prior_state.interval,
        prior_state.repetitions,
        q,
    )
    return _build_state(ease, interval, repetitions, now)


def is_due(state: CardScheduleState | None, now: datetime) -> bool:
    if state is None:
        return True
    return state.due_date <= as_utc(now)


def days_until_due(state: CardScheduleState | None, now: datetime) -> int:
    """Whole days until the card is due, rounded up; negative when overdue."""
    if state is None:
        return 0
    remaining = state.due_date - as_utc(now)
    return math.ceil(remaining / timedelta(days=1))

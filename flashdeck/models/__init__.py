from flashdeck.models.deck import Deck, DeckCreate, DeckList, DeckUpdate
from flashdeck.models.flashcard import (
    DeckStats,
    DueForecast,
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    ForecastDay,
    ReviewRequest,
    ReviewResult,
)
from flashdeck.models.schedule import CardScheduleState, CardStatus, ReviewQuality

__all__ = [
    "CardScheduleState",
    "CardStatus",
    "Deck",
    "DeckCreate",
    "DeckList",
    "DeckStats",
    "DeckUpdate",
    "DueForecast",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardList",
    "FlashcardUpdate",
    "ForecastDay",
    "ReviewQuality",
    "ReviewRequest",
    "ReviewResult",
]

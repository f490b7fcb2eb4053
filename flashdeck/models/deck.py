from pydantic import BaseModel, Field


class DeckCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""


class DeckUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None


class Deck(BaseModel):
    id: str
    name: str
    description: str
    card_count: int = 0
    created_at: str
    updated_at: str


class DeckList(BaseModel):
    items: list[Deck]
    total: int
    offset: int
    limit: int

# model/flashcard.py
from pydantic import BaseModel, Field


class FlashcardDraft(BaseModel):
    """A card as the model (or the fallback builder) proposes it."""

    front: str
    back: str
    topic: str | None = None
    tags: list[str] | None = None


class Flashcard(BaseModel):
    id: str
    front: str
    back: str
    topic: str = "General"
    tags: list[str] = Field(default_factory=list)
    # Current review interval in days
    intervalDays: int = 1
    # SM-2 style ease factor; higher means longer intervals
    ease: float = 2.3
    # Epoch milliseconds
    dueAt: int = 0
    seen: int = 0

    def key(self) -> str:
        return f"{self.front}::{self.back}"


class FlashcardConfig(BaseModel):
    count: int = Field(default=10, ge=1, le=50)
    focus: str = ""

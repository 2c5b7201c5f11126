# model/api.py
from pydantic import BaseModel, Field
from model.flashcard import Flashcard
from model.quiz import QuizQuestion
from util.enums import Rating


class IndexStatusResponse(BaseModel):
    loaded: bool
    loading: bool
    chunks: int
    topics: int
    error: str = ""
    url: str


class TopicsResponse(BaseModel):
    topics: list[str]


class SearchRequest(BaseModel):
    query: str = ""
    topK: int = Field(default=5, ge=1, le=50)
    embedding: list[float] | None = None


class SearchHit(BaseModel):
    text: str
    page: int
    heading: str
    score: float


class SearchResponse(BaseModel):
    mode: str
    results: list[SearchHit]


class ContextPassage(BaseModel):
    text: str
    page: int
    heading: str


class ContextRequest(BaseModel):
    passages: list[ContextPassage]
    maxChars: int | None = Field(default=None, ge=0)


class ContextResponse(BaseModel):
    context: str
    chars: int
    estimatedTokens: int


class ModelStatusResponse(BaseModel):
    ready: bool
    model: str
    status: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)


class QuizResponse(BaseModel):
    questions: list[QuizQuestion]
    fallback: bool


class QuizScoreRequest(BaseModel):
    questions: list[QuizQuestion]
    answers: list[int | None]


class FlashcardsResponse(BaseModel):
    cards: list[Flashcard]
    fallback: bool


class ReviewRequest(BaseModel):
    card: Flashcard
    rating: Rating


class MergeRequest(BaseModel):
    existing: list[Flashcard] = Field(default_factory=list)
    imported: list[Flashcard] = Field(default_factory=list)


class DeckResponse(BaseModel):
    cards: list[Flashcard]

# service/flashcard_service.py
import time
import uuid
from typing import Iterable, List, Optional, Sequence
import logging

from pydantic import ValidationError

from config.settings import settings
from core.entities import IndexedPassage
from core.llm_client import LanguageModel, collect
from core.vector_index import VectorIndex
from model.flashcard import Flashcard, FlashcardConfig, FlashcardDraft
from util.enums import Rating
from util.functions import first_sentence, safe_json_array
from util.timing import timed

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHUNKS = 12
DAY_MS = 24 * 60 * 60 * 1000

GENERIC_CARDS = (
    FlashcardDraft(
        front="Why is input validation important in secure coding?",
        back="Input validation reduces malformed or malicious data entering the system and helps prevent common vulnerabilities.",
        topic="Input Validation",
        tags=["secure-coding"],
    ),
    FlashcardDraft(
        front="What is the difference between authentication and authorization?",
        back="Authentication verifies identity, while authorization determines what an authenticated user is allowed to do.",
        topic="AuthN/AuthZ",
        tags=["secure-coding"],
    ),
    FlashcardDraft(
        front="Why should sensitive data be encrypted at rest and in transit?",
        back="Encryption protects confidentiality if storage media or network traffic is exposed to unauthorized parties.",
        topic="Data Protection",
        tags=["secure-coding"],
    ),
    FlashcardDraft(
        front="What is least privilege?",
        back="Least privilege grants only the minimum access necessary, reducing blast radius if an account or process is compromised.",
        topic="Access Control",
        tags=["secure-coding"],
    ),
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def matches_focus(chunk: IndexedPassage, focus: str) -> bool:
    if not focus:
        return True
    f = focus.lower()
    return f in chunk.heading.lower() or f in chunk.text.lower()


def fallback_drafts(
    chunks: Sequence[IndexedPassage], count: int, focus: str
) -> List[FlashcardDraft]:
    """One summary card per (focus-matching) passage, topped up with generic cards."""
    target = max(1, count)
    selected = [c for c in chunks if matches_focus(c, focus)] or list(chunks)
    out: List[FlashcardDraft] = []
    for chunk in selected:
        if len(out) >= target:
            break
        summary = first_sentence(chunk.text)
        if not summary:
            continue
        out.append(
            FlashcardDraft(
                front=f"What is the key idea in {chunk.heading}?",
                back=summary,
                topic=chunk.heading,
                tags=["notes", f"page-{chunk.page}"],
            )
        )
    i = 0
    while len(out) < target:
        out.append(GENERIC_CARDS[i % len(GENERIC_CARDS)])
        i += 1
    return out[:target]


def parse_drafts(raw: str) -> List[FlashcardDraft]:
    out: List[FlashcardDraft] = []
    for item in safe_json_array(raw, key="cards"):
        try:
            out.append(FlashcardDraft.model_validate(item))
        except ValidationError:
            continue
    return out


def normalize_cards(drafts: Iterable[FlashcardDraft], now_ms: Optional[int] = None) -> List[Flashcard]:
    now = _now_ms() if now_ms is None else now_ms
    cards: List[Flashcard] = []
    for d in drafts:
        front, back = (d.front or "").strip(), (d.back or "").strip()
        if not front or not back:
            continue
        cards.append(
            Flashcard(
                id=f"{now}-{len(cards)}-{uuid.uuid4().hex[:6]}",
                front=front,
                back=back,
                topic=(d.topic or "").strip() or "General",
                tags=list(d.tags or []),
                intervalDays=1,
                ease=2.3,
                dueAt=now,
                seen=0,
            )
        )
    return cards


def review_card(card: Flashcard, rating: Rating, now_ms: Optional[int] = None) -> Flashcard:
    """
    Simplified SM-2:
      again -> interval 1 day, ease -0.2 (floor 1.5)
      good  -> interval * ease, ease +0.05 (cap 2.8)
      easy  -> interval * (ease + 0.45), at least 2 days, ease +0.1 (cap 3.0)
    """
    now = _now_ms() if now_ms is None else now_ms
    interval, ease = card.intervalDays, card.ease
    if rating == Rating.AGAIN:
        interval = 1
        ease = max(1.5, ease - 0.2)
    elif rating == Rating.GOOD:
        interval = max(1, round(interval * ease))
        ease = min(2.8, ease + 0.05)
    else:
        interval = max(2, round(interval * (ease + 0.45)))
        ease = min(3.0, ease + 0.1)
    return card.model_copy(
        update={
            "intervalDays": interval,
            "ease": round(ease, 4),
            "seen": card.seen + 1,
            "dueAt": now + interval * DAY_MS,
        }
    )


def due_cards(cards: Sequence[Flashcard], now_ms: Optional[int] = None) -> List[Flashcard]:
    now = _now_ms() if now_ms is None else now_ms
    return sorted((c for c in cards if c.dueAt <= now), key=lambda c: c.dueAt)


def merge_decks(existing: Sequence[Flashcard], imported: Sequence[Flashcard]) -> List[Flashcard]:
    """Append imported cards whose front+back pair is not already in the deck."""
    known = {c.key() for c in existing}
    merged = list(existing)
    for card in imported:
        if card.key() in known:
            continue
        known.add(card.key())
        merged.append(card)
    return merged


class FlashcardService:
    def __init__(self, index: VectorIndex, model: LanguageModel) -> None:
        self._index = index
        self._model = model

    def build_prompt(self, chunks: Sequence[IndexedPassage], config: FlashcardConfig) -> str:
        focus = config.focus.strip()
        context = (
            "\n\n".join(
                f"[{i}] ({c.heading}, p.{c.page}) {c.text}" for i, c in enumerate(chunks, start=1)
            )
            or f"No note chunks available from {settings.ARTIFACT_NAME}. Generate from course fundamentals."
        )
        focus_line = f" Focus strongly on: {focus}." if focus else ""
        return (
            f"Context:\n{context}\n\n"
            f"Generate exactly {config.count} study flashcards.{focus_line}\n"
            "Return ONLY JSON as an array of objects with this shape:\n"
            '[\n  {"front":"...","back":"...","topic":"...","tags":["..."]}\n]\n'
            "Keep each front concise and each back accurate but short."
        )

    async def generate(self, config: FlashcardConfig) -> tuple[List[Flashcard], bool]:
        """Returns (cards, used_fallback)."""
        await self._index.load()
        await self._model.init()

        chunks = list(self._index.chunks)
        focus = config.focus.strip()
        context = [c for c in chunks if matches_focus(c, focus)][:MAX_CONTEXT_CHUNKS]

        with timed(logger, "flashcards.generate", n=config.count, chunks=len(context)) as stats:
            raw = await collect(
                self._model.chat(
                    [
                        {"role": "system", "content": settings.FLASHCARD_SYSTEM_PROMPT},
                        {"role": "user", "content": self.build_prompt(context, config)},
                    ]
                )
            )
            cards = normalize_cards(parse_drafts(raw))[: config.count]
            fallback = not cards
            if fallback:
                logger.warning("flashcards.parse.invalid chars=%d fallback=summary", len(raw))
                cards = normalize_cards(fallback_drafts(chunks, config.count, focus))[: config.count]
            stats["cards"] = len(cards)
            stats["fallback"] = fallback
        return cards, fallback

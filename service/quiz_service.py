# service/quiz_service.py
import re
from typing import List, Optional, Sequence
import logging

from fastapi import status
from pydantic import ValidationError

from config.settings import settings
from core.entities import IndexedPassage
from core.llm_client import LanguageModel, collect
from core.vector_index import VectorIndex
from model.quiz import QuizConfig, QuizQuestion, QuizScore
from util.enums import Difficulty
from util.errors import AppError
from util.functions import safe_json_array
from util.prng import SeededRandom
from util.timing import timed

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHUNKS = 12
GENERIC_DISTRACTORS = ("Authentication", "Encryption", "Validation", "Authorization")
LEVELS = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_DEFINED_TERM = re.compile(r"\b([A-Z][a-zA-Z\s]{2,30})\b\s+(?:is|are|refers to|means)")
_CAPITALIZED_TERMS = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b")
_QUOTED = re.compile(r'"([^"]+)"')
_CONCEPT = re.compile(r"\b([A-Z][a-zA-Z\s]{2,25})\b\s+(?:is|are|refers to|means|provides)")
_WORD_RUN = re.compile(r"\b((?:the\s)?[a-z]+\s+[a-z]+(?:\s+[a-z]+)?)\b", re.IGNORECASE)


def resolve_difficulty(difficulty: Difficulty, n: int) -> Difficulty:
    if difficulty != Difficulty.MIXED:
        return difficulty
    return LEVELS[n % 3]


def _lettered(options: Sequence[str]) -> List[str]:
    return [f"{chr(65 + i)}) {o}" for i, o in enumerate(options)]


def extract_key_terms(chunks: Sequence[IndexedPassage]) -> List[str]:
    """Defined terms, multi-word proper phrases, quoted terms and headings."""
    terms: dict[str, None] = {}
    for chunk in chunks:
        for sentence in _SENTENCE_SPLIT.split(chunk.text):
            m = _DEFINED_TERM.search(sentence)
            if m:
                terms[m.group(1).strip()] = None
            for cap in _CAPITALIZED_TERMS.findall(sentence):
                terms[cap] = None
            for quoted in _QUOTED.findall(sentence):
                terms[quoted] = None
        if chunk.heading:
            terms[chunk.heading] = None
    return [t for t in terms if 2 < len(t) < 50]


def question_from_chunk(
    chunk: IndexedPassage,
    all_terms: Sequence[str],
    difficulty: Difficulty,
    n: int,
    rng: SeededRandom,
) -> Optional[QuizQuestion]:
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(chunk.text)]
    sentences = [s for s in sentences if len(s) > 20]
    if not sentences:
        return None

    sentence = sentences[n % len(sentences)]
    level = resolve_difficulty(difficulty, n)
    concept = _CONCEPT.search(sentence) or _WORD_RUN.search(sentence)

    if concept is None:
        # Ask which section the sentence belongs to
        others = rng.shuffled([t for t in all_terms if t != chunk.heading])[:3]
        if len(others) < 3:
            return None
        options = rng.shuffled([chunk.heading, *others])
        return QuizQuestion(
            question=f'Which topic covers the following concept: "{sentence[:100]}..."?',
            options=_lettered(options),
            correctIndex=options.index(chunk.heading),
            explanation=f'This concept is from the "{chunk.heading}" section (Page {chunk.page}).',
            topic=chunk.heading,
            difficulty=level,
        )

    key_term = concept.group(1).strip()
    blanked = sentence.replace(key_term, "________", 1)
    distractors = rng.shuffled(
        [t for t in all_terms if t.lower() != key_term.lower() and t != chunk.heading]
    )[:3]
    if len(distractors) < 3:
        distractors += [
            d for d in GENERIC_DISTRACTORS if d.lower() != key_term.lower() and d not in distractors
        ][: 3 - len(distractors)]

    options = rng.shuffled([key_term, *distractors[:3]])
    return QuizQuestion(
        question=f'Complete the following from the class notes: "{blanked}"',
        options=_lettered(options),
        correctIndex=options.index(key_term),
        explanation=f'The correct answer is "{key_term}". From: {chunk.heading} (Page {chunk.page}).',
        topic=chunk.heading,
        difficulty=level,
    )


def fallback_questions(
    chunks: Sequence[IndexedPassage], config: QuizConfig
) -> List[QuizQuestion]:
    """Deterministic cloze / topic questions; same chunks and seed, same quiz."""
    rng = SeededRandom(config.seed)
    terms = extract_key_terms(chunks)
    out: List[QuizQuestion] = []
    for n, chunk in enumerate(chunks):
        if len(out) >= config.numQuestions:
            break
        q = question_from_chunk(chunk, terms, config.difficulty, n, rng)
        if q is not None:
            out.append(q)
    return out


def parse_questions(raw: str, limit: int) -> List[QuizQuestion]:
    out: List[QuizQuestion] = []
    for item in safe_json_array(raw, key="questions"):
        try:
            q = QuizQuestion.model_validate(item)
        except ValidationError:
            continue
        if q.is_consistent():
            out.append(q)
    return out[:limit]


def score_quiz(questions: Sequence[QuizQuestion], answers: Sequence[Optional[int]]) -> QuizScore:
    total = len(questions)
    correct = sum(
        1 for i, q in enumerate(questions) if i < len(answers) and answers[i] == q.correctIndex
    )
    pct = round(correct / total * 100) if total else 0
    return QuizScore(correct=correct, total=total, percentage=pct)


class QuizService:
    def __init__(self, index: VectorIndex, model: LanguageModel) -> None:
        self._index = index
        self._model = model

    def gather_chunks(self, config: QuizConfig) -> List[IndexedPassage]:
        chunks = list(self._index.chunks)
        rng = SeededRandom(config.seed)
        if config.topics:
            wanted = [t.lower() for t in config.topics]
            filtered = [c for c in chunks if any(t in c.heading.lower() for t in wanted)]
            if filtered:
                return rng.shuffled(filtered)
        return rng.shuffled(chunks)

    def build_prompt(self, chunks: Sequence[IndexedPassage], config: QuizConfig) -> str:
        context = (
            "\n\n".join(
                f"[{i}] ({c.heading}, Page {c.page}): {c.text}"
                for i, c in enumerate(chunks[:MAX_CONTEXT_CHUNKS], start=1)
            )
            or "No extracted class-note chunks available. Generate questions based on general course content."
        )
        if config.difficulty == Difficulty.MIXED:
            level = "Mix easy, medium, and hard questions."
        else:
            level = f"All questions should be {config.difficulty.value} difficulty."
        return (
            f"Based on the following class notes context, generate exactly {config.numQuestions} "
            f"multiple choice questions. {level}\n\n"
            "Each question must have exactly 4 options (A, B, C, D) with one correct answer.\n\n"
            "Respond ONLY with valid JSON in this exact format:\n"
            "[\n"
            "  {\n"
            '    "question": "...",\n'
            '    "options": ["A) ...", "B) ...", "C) ...", "D) ..."],\n'
            '    "correctIndex": 0,\n'
            '    "explanation": "...",\n'
            '    "topic": "...",\n'
            '    "difficulty": "easy|medium|hard"\n'
            "  }\n"
            "]\n\n"
            f"Context:\n{context}"
        )

    async def generate(self, config: QuizConfig) -> tuple[List[QuizQuestion], bool]:
        """Returns (questions, used_fallback)."""
        await self._index.load()
        await self._model.init()

        chunks = self.gather_chunks(config)
        with timed(logger, "quiz.generate", n=config.numQuestions, chunks=len(chunks)) as stats:
            raw = await collect(
                self._model.chat(
                    [
                        {"role": "system", "content": settings.QUIZ_SYSTEM_PROMPT},
                        {"role": "user", "content": self.build_prompt(chunks, config)},
                    ]
                )
            )
            questions = parse_questions(raw, config.numQuestions)
            fallback = not questions
            if fallback:
                logger.warning("quiz.parse.invalid chars=%d fallback=deterministic", len(raw))
                questions = fallback_questions(chunks, config)
            stats["questions"] = len(questions)
            stats["fallback"] = fallback

        if not questions:
            raise AppError(
                "Unable to generate quiz questions from the current notes.",
                status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        return questions, fallback

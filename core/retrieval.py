# core/retrieval.py
"""
Nearest-neighbour and lexical retrieval over an in-memory passage list.

Everything here is a pure function of its inputs: the passages are never
mutated and no call raises for empty or degenerate queries.
"""

import re
from typing import List, Optional, Sequence
import logging

import numpy as np

from config.settings import settings
from core.entities import IndexedPassage, SearchResult

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> List[str]:
    return [t for t in _NON_ALNUM.sub(" ", text.lower()).split() if len(t) > 2]


def vector_norm(v) -> float:
    arr = np.asarray(v, dtype=np.float32).reshape(-1)
    return float(np.linalg.norm(arr)) if arr.size else 0.0


def fast_cosine(query: np.ndarray, query_norm: float, doc: np.ndarray, doc_norm: float) -> float:
    """Cosine using norms computed ahead of time; 0.0 when either norm is zero."""
    if query_norm == 0 or doc_norm == 0 or query.shape != doc.shape:
        return 0.0
    return float(np.dot(query, doc)) / (query_norm * doc_norm)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    va = np.asarray(a, dtype=np.float64).reshape(-1)
    vb = np.asarray(b, dtype=np.float64).reshape(-1)
    return fast_cosine(va, vector_norm(va), vb, vector_norm(vb))


def _ranked(passages: Sequence[IndexedPassage], scores: Sequence[float], top_k: int) -> List[SearchResult]:
    # stable: equal scores keep index order
    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    return [
        SearchResult(
            text=passages[i].text,
            page=passages[i].page,
            heading=passages[i].heading,
            score=float(scores[i]),
        )
        for i in order[: max(0, top_k)]
    ]


def lexical_prefilter(
    passages: Sequence[IndexedPassage], query_text: str, limit: int
) -> List[IndexedPassage]:
    """
    Passages whose haystack contains at least one query token, most hits
    first, capped at `limit`. Empty when nothing matches.
    """
    tokens = tokenize(query_text)
    if not tokens:
        return []
    hits = [sum(1 for t in tokens if t in p.haystack) for p in passages]
    keep = [i for i, h in enumerate(hits) if h > 0]
    keep.sort(key=lambda i: hits[i], reverse=True)
    return [passages[i] for i in keep[:limit]]


def search(
    passages: Sequence[IndexedPassage],
    query_embedding: Sequence[float],
    top_k: int = 5,
    query_text: Optional[str] = None,
    max_candidates: Optional[int] = None,
) -> List[SearchResult]:
    """
    Top `top_k` passages by cosine similarity. When the index holds more than
    `max_candidates` passages (default: settings.MAX_COSINE_CANDIDATES) and a
    `query_text` is given, only its lexical hits are scored.
    """
    if max_candidates is None:
        max_candidates = settings.MAX_COSINE_CANDIDATES
    if not passages or query_embedding is None or len(query_embedding) == 0:
        return []

    q = np.asarray(query_embedding, dtype=np.float32).reshape(-1)
    q_norm = vector_norm(q)

    candidates: Sequence[IndexedPassage] = passages
    if query_text and len(passages) > max_candidates:
        narrowed = lexical_prefilter(passages, query_text, max_candidates)
        if narrowed:
            candidates = narrowed
        logger.debug(
            "search.prefilter total=%d candidates=%d", len(passages), len(candidates)
        )

    scores = [fast_cosine(q, q_norm, p.embedding, p.norm) for p in candidates]
    return _ranked(candidates, scores, top_k)


def search_by_text(
    passages: Sequence[IndexedPassage], query: str, top_k: int = 5
) -> List[SearchResult]:
    if not query or not query.strip() or not passages:
        return []

    tokens = set(tokenize(query))
    if not tokens:
        return []

    matched: List[IndexedPassage] = []
    scores: List[float] = []
    for p in passages:
        n = sum(1 for t in tokens if t in p.haystack)
        if n > 0:
            matched.append(p)
            scores.append(n / len(tokens))
    return _ranked(matched, scores, top_k)

# core/token_budget.py
"""
Token estimates and context packing for the language model prompt.

The chat model's context window has to hold the system prompt, the prompt
template, the retrieved notes and the generated answer. With a 4096-token
window the notes get roughly 2500 tokens, i.e. 10000 characters at the
usual 4-characters-per-token estimate for BPE tokenizers.
"""

import math
from typing import Callable, Optional, Protocol, Sequence

CHARS_PER_TOKEN = 4
DEFAULT_CONTEXT_TOKEN_BUDGET = 2_500
DEFAULT_CONTEXT_CHAR_BUDGET = DEFAULT_CONTEXT_TOKEN_BUDGET * CHARS_PER_TOKEN
MAX_SINGLE_CHUNK_CHARS = 1_200
MIN_PARTIAL_CHARS = 200
ELLIPSIS = "…"
SEPARATOR = "\n\n"


class ContextChunk(Protocol):
    text: str
    page: int
    heading: str


class _Truncated:
    __slots__ = ("text", "page", "heading")

    def __init__(self, text: str, page: int, heading: str) -> None:
        self.text = text
        self.page = page
        self.heading = heading


Formatter = Callable[[ContextChunk, int], str]


def estimate_tokens(text: str) -> int:
    """Rounds up, so estimates err on the side of the hard limit."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def default_format(chunk: ContextChunk, index: int) -> str:
    return f"[{index}] ({chunk.heading}, p.{chunk.page}) {chunk.text}"


def truncate_text(text: str, limit: int = MAX_SINGLE_CHUNK_CHARS) -> str:
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def build_budgeted_context(
    chunks: Sequence[ContextChunk],
    max_chars: int = DEFAULT_CONTEXT_CHAR_BUDGET,
    formatter: Optional[Formatter] = None,
) -> str:
    """
    Join formatted chunks (most relevant first) without exceeding `max_chars`.

    Each chunk's text is capped at MAX_SINGLE_CHUNK_CHARS before formatting.
    The first line that does not fit is sliced in only when at least
    MIN_PARTIAL_CHARS of budget remain; packing stops there either way.
    `formatter` receives the capped chunk and its 1-based position.
    """
    fmt = formatter or default_format
    parts = []
    remaining = max_chars

    for i, chunk in enumerate(chunks, start=1):
        capped = _Truncated(truncate_text(chunk.text), chunk.page, chunk.heading)
        line = fmt(capped, i)

        if len(line) > remaining:
            if remaining >= MIN_PARTIAL_CHARS:
                parts.append(line[: remaining - 3] + ELLIPSIS)
            break

        parts.append(line)
        remaining -= len(line) + len(SEPARATOR)
        if remaining <= 0:
            break

    return SEPARATOR.join(parts)

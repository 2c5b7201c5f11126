# core/chunker.py
import re
from typing import Iterable, List, Optional, Tuple
import logging

from config.settings import settings
from core.entities import ProtoPassage
from core.headings import SENTINEL_HEADING, clean_heading, is_likely_heading
from util.timing import timed

logger = logging.getLogger(__name__)

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
TERMINAL_PUNCT = re.compile(r"[.!?,;:]$")
MAX_HEADING_CHARS = 60
# A heading only flushes the buffer once it holds this share of a chunk
HEADING_FLUSH_RATIO = 0.3


def split_fragments(page_text: str) -> List[str]:
    return SENTENCE_BOUNDARY.split(page_text)


def heading_candidate(fragment: str) -> Optional[str]:
    """
    Return the cleaned heading for `fragment` when it looks like a section
    title (short, unpunctuated, passes every heading rule), else None.
    """
    trimmed = fragment.strip()
    if not (0 < len(trimmed) < MAX_HEADING_CHARS):
        return None
    if TERMINAL_PUNCT.search(trimmed):
        return None
    if not is_likely_heading(trimmed):
        return None
    return clean_heading(trimmed) or trimmed


class _PageBuffer:
    def __init__(self, page: int, chunk_chars: int, overlap_chars: int) -> None:
        self.page = page
        self.chunk_chars = chunk_chars
        self.overlap_chars = overlap_chars
        self.raw = ""

    def flush(self, heading: str, out: List[ProtoPassage]) -> None:
        out.append(ProtoPassage(text=self.raw.strip(), page=self.page, heading=heading))
        # Seed the next chunk with the tail of this one
        self.raw = self.raw[-self.overlap_chars:] if self.overlap_chars > 0 else ""


def chunk_pages(
    pages: Iterable[Tuple[int, str]],
    chunk_chars: Optional[int] = None,
    overlap_chars: Optional[int] = None,
    min_flush_chars: Optional[int] = None,
) -> List[ProtoPassage]:
    """
    Split per-page text into overlapping, heading-tagged passages.

    The current heading carries over from page to page; the text buffer does
    not. Passages come out in page order, then flush order within a page.
    """
    chunk_chars = chunk_chars or settings.chunk_chars
    overlap_chars = settings.overlap_chars if overlap_chars is None else overlap_chars
    min_flush = settings.MIN_FLUSH_CHARS if min_flush_chars is None else min_flush_chars

    out: List[ProtoPassage] = []
    current_heading = SENTINEL_HEADING
    n_pages = 0

    with timed(logger, "chunk.pages", chunk=chunk_chars, overlap=overlap_chars) as stats:
        for page_no, text in pages:
            n_pages += 1
            buf = _PageBuffer(page_no, chunk_chars, overlap_chars)

            for fragment in split_fragments(text or ""):
                trimmed = fragment.strip()
                heading = heading_candidate(trimmed)
                if heading is not None:
                    if len(buf.raw) > chunk_chars * HEADING_FLUSH_RATIO:
                        buf.flush(current_heading, out)
                    current_heading = heading

                buf.raw += " " + trimmed

                if len(buf.raw) >= chunk_chars:
                    buf.flush(current_heading, out)

            if len(buf.raw.strip()) > min_flush:
                out.append(
                    ProtoPassage(text=buf.raw.strip(), page=page_no, heading=current_heading)
                )
        stats["pages"] = n_pages
        stats["chunks"] = len(out)

    return out

# core/pdf_text.py
from pathlib import Path
from typing import Iterator, List, Tuple, Union
import logging

import fitz

from util.timing import timed

logger = logging.getLogger(__name__)

PdfSource = Union[bytes, bytearray, str, Path]


def _open(source: PdfSource) -> "fitz.Document":
    if isinstance(source, (bytes, bytearray)):
        return fitz.open(stream=bytes(source), filetype="pdf")
    return fitz.open(str(source))


def page_text(page: "fitz.Page") -> str:
    """
    The page's text runs joined by single spaces. Sentence splitting then sees
    one stream per page and the last run (usually a footer like
    "Access Control 3 / 12") becomes its own fragment.
    """
    runs = (page.get_text("text") or "").splitlines()
    return " ".join(r.strip() for r in runs if r.strip())


def iter_pages(doc: "fitz.Document") -> Iterator[Tuple[int, str]]:
    for number, page in enumerate(doc, start=1):
        text = page_text(page)
        logger.debug("pdf.page page=%d chars=%d", number, len(text))
        yield number, text


def extract_pages_texts(source: PdfSource) -> List[Tuple[int, str]]:
    """
    Return [(page_number, page_text)] for the whole PDF, numbered from 1.
    `source` is either the raw PDF bytes or a filesystem path. Unreadable
    files raise; the builder has nothing useful to do without text.
    """
    with timed(logger, "pdf.open"):
        doc = _open(source)
    with doc, timed(logger, "pdf.parse", pages=doc.page_count) as stats:
        pages = list(iter_pages(doc))
        stats["chars"] = sum(len(t) for _, t in pages)
    return pages

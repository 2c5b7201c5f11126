# core/entities.py
from dataclasses import dataclass, field
from typing import Any, Dict, List
import numpy as np


@dataclass(frozen=True)
class ProtoPassage:
    """Chunker output: a heading-tagged span of page text, not yet embedded."""

    text: str
    page: int  # 1-based page index
    heading: str


@dataclass(frozen=True)
class Passage:
    text: str
    page: int
    heading: str
    embedding: List[float]

    def to_record(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "page": self.page,
            "heading": self.heading,
            "embedding": self.embedding,
        }


@dataclass(frozen=True)
class IndexedPassage:
    """
    Passage plus search acceleration fields. Build through `from_passage` so
    `norm` and `haystack` always match the text/heading/embedding they came from.
    """

    text: str
    page: int
    heading: str
    embedding: np.ndarray = field(repr=False, compare=False)  # (d,) float32
    norm: float
    haystack: str

    @classmethod
    def from_passage(cls, text: str, page: int, heading: str, embedding) -> "IndexedPassage":
        vec = np.asarray(embedding, dtype=np.float32).reshape(-1)
        return cls(
            text=text,
            page=page,
            heading=heading,
            embedding=vec,
            norm=float(np.linalg.norm(vec)) if vec.size else 0.0,
            haystack=f"{heading} {text}".lower(),
        )


@dataclass(frozen=True)
class SearchResult:
    text: str
    page: int
    heading: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "page": self.page,
            "heading": self.heading,
            "score": self.score,
        }

# core/vector_index.py
import asyncio
from typing import Any, Iterable, List, Optional, Sequence
import logging

import httpx

from config.settings import settings
from core import retrieval
from core.entities import IndexedPassage, SearchResult
from core.headings import is_intro_or_toc_chunk, normalize_heading, topic_vocabulary
from util.enums import ErrorMessage
from util.timing import timed

logger = logging.getLogger(__name__)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _is_raw_chunk(rec: Any) -> bool:
    return (
        isinstance(rec, dict)
        and isinstance(rec.get("text"), str)
        and _is_number(rec.get("page"))
        and isinstance(rec.get("heading"), str)
        and isinstance(rec.get("embedding"), list)
    )


def normalize_records(
    records: Iterable[Any], non_topic_names: Optional[Sequence[str]] = None
) -> List[IndexedPassage]:
    """
    Validate raw artifact records and turn the keepers into IndexedPassages.
    Drops malformed records, intro/TOC noise and embeddings whose dimension
    differs from the first kept record.
    """
    out: List[IndexedPassage] = []
    dim: Optional[int] = None
    dropped = {"shape": 0, "noise": 0, "dim": 0}

    for rec in records:
        if not _is_raw_chunk(rec):
            dropped["shape"] += 1
            continue
        text = rec["text"]
        try:
            page = int(rec["page"])
        except (ValueError, OverflowError):
            # NaN / Infinity survive json.loads
            dropped["shape"] += 1
            continue
        if is_intro_or_toc_chunk(text, page):
            dropped["noise"] += 1
            continue
        size = len(rec["embedding"])
        if dim is not None and size != dim:
            dropped["dim"] += 1
            continue
        heading = normalize_heading(rec["heading"], text, non_topic_names)
        try:
            passage = IndexedPassage.from_passage(text, page, heading, rec["embedding"])
        except (TypeError, ValueError):
            dropped["shape"] += 1
            continue
        if passage.embedding.size != size:
            dropped["shape"] += 1
            continue
        if dim is None:
            dim = size
        out.append(passage)

    if any(dropped.values()):
        logger.warning(
            "index.records.dropped shape=%d noise=%d dim=%d",
            dropped["shape"],
            dropped["noise"],
            dropped["dim"],
        )
    return out


class VectorIndex:
    """
    Load-once, read-many passage index.

    One instance is created per process and handed to every consumer. `load()`
    can be awaited from any number of tasks: the first call starts the fetch,
    the rest await the same task. Failures never propagate; they leave an
    empty index and a human-readable `load_error`.
    """

    def __init__(
        self,
        artifact_url: Optional[str] = None,
        *,
        max_candidates: Optional[int] = None,
        non_topic_names: Optional[Sequence[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._url = artifact_url or settings.artifact_url
        self._max_candidates = max_candidates or settings.MAX_COSINE_CANDIDATES
        self._non_topic_names = non_topic_names
        self._transport = transport
        self._timeout = timeout or settings.ARTIFACT_TIMEOUT_SECONDS

        self._chunks: List[IndexedPassage] = []
        self._version = 0
        self._topics: Optional[List[str]] = None
        self._topics_version = -1
        self._load_task: Optional[asyncio.Task] = None
        self.load_error: str = ""
        self.fetch_count = 0

    @classmethod
    def from_records(cls, records: Iterable[Any], **kwargs: Any) -> "VectorIndex":
        index = cls(**kwargs)
        index._set_chunks(normalize_records(records, index._non_topic_names))
        return index

    # ---------------- State ----------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def chunks(self) -> Sequence[IndexedPassage]:
        return tuple(self._chunks)

    @property
    def is_loaded(self) -> bool:
        return len(self._chunks) > 0

    @property
    def is_loading(self) -> bool:
        return self._load_task is not None and not self._load_task.done()

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def topics(self) -> List[str]:
        if self._topics is None or self._topics_version != self._version:
            self._topics = topic_vocabulary(
                (c.heading for c in self._chunks), self._non_topic_names
            )
            self._topics_version = self._version
        return list(self._topics)

    def _set_chunks(self, chunks: List[IndexedPassage]) -> None:
        self._chunks = chunks
        self._version += 1

    # ---------------- Load pipeline ----------------

    async def load(self) -> None:
        if self._chunks:
            return
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())
        task = self._load_task
        try:
            await asyncio.shield(task)
        finally:
            if task.done() and self._load_task is task:
                self._load_task = None

    async def _fetch(self) -> Any:
        self.fetch_count += 1
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            r = await client.get(self._url)
            r.raise_for_status()
            return r.json()

    async def _load(self) -> None:
        self.load_error = ""
        try:
            with timed(logger, "index.load", url=self._url) as stats:
                data = await self._fetch()
                raw = data.get("chunks") if isinstance(data, dict) else None
                chunks = normalize_records(raw, self._non_topic_names) if isinstance(raw, list) else []
                stats["chunks"] = len(chunks)
            self._set_chunks(chunks)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                self.load_error = ErrorMessage.ARTIFACT_NOT_FOUND.value.message.format(
                    url=self._url
                )
            else:
                self.load_error = str(e) or ErrorMessage.ARTIFACT_LOAD_FAILED.value.message
            logger.error("index.load.error status=%d url=%s", e.response.status_code, self._url)
            self._set_chunks([])
        except Exception as e:
            self.load_error = str(e) or ErrorMessage.ARTIFACT_LOAD_FAILED.value.message
            logger.error("index.load.error err=%s url=%s", type(e).__name__, self._url, exc_info=True)
            self._set_chunks([])

    # ---------------- Queries ----------------

    def search(
        self, query_embedding: Sequence[float], top_k: int = 5, query_text: Optional[str] = None
    ) -> List[SearchResult]:
        return retrieval.search(
            self._chunks,
            query_embedding,
            top_k=top_k,
            query_text=query_text,
            max_candidates=self._max_candidates,
        )

    def search_by_text(self, query: str, top_k: int = 5) -> List[SearchResult]:
        return retrieval.search_by_text(self._chunks, query, top_k=top_k)

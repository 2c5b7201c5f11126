# core/index_builder.py
import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple
import logging

from core.chunker import chunk_pages
from core.entities import Passage
from util.timing import timed

logger = logging.getLogger(__name__)

EmbedFn = Callable[[Sequence[str]], List[List[float]]]


def build_artifact(
    pages: Iterable[Tuple[int, str]],
    embed: EmbedFn,
    *,
    chunk_chars: int | None = None,
    overlap_chars: int | None = None,
) -> Dict[str, Any]:
    """
    Chunk `pages`, embed every passage and return the artifact payload
    {"chunks": [{text, page, heading, embedding}, ...]}.
    """
    protos = chunk_pages(pages, chunk_chars=chunk_chars, overlap_chars=overlap_chars)
    vectors = embed([p.text for p in protos]) if protos else []
    if len(vectors) != len(protos):
        raise ValueError(
            f"embedder returned {len(vectors)} vectors for {len(protos)} passages"
        )
    passages = [
        Passage(text=p.text, page=p.page, heading=p.heading, embedding=list(v))
        for p, v in zip(protos, vectors)
    ]
    logger.info("artifact.built chunks=%d", len(passages))
    return {"chunks": [p.to_record() for p in passages]}


def write_artifact(artifact: Dict[str, Any], path: Path) -> int:
    """Write compact JSON to `path`, creating parent directories. Returns bytes written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(artifact, separators=(",", ":"))
    with timed(logger, "artifact.write", path=str(path)):
        path.write_text(payload, encoding="utf-8")
    return len(payload.encode("utf-8"))

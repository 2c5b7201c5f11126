# core/streaming.py
import json
from typing import Any, AsyncIterator, Dict, Final, Optional
import logging

from util.types import EventType

LINE_SEP: Final[str] = "\n"
logger = logging.getLogger(__name__)


def ndjson_line(obj: Dict[str, object]) -> bytes:
    return (json.dumps(obj, separators=(",", ":"), ensure_ascii=False) + LINE_SEP).encode("utf-8")


def event(type_: EventType, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"type": type_, "payload": payload or {}}


async def ndjson_stream(events: AsyncIterator[Dict[str, Any]]) -> AsyncIterator[bytes]:
    """
    Encode an event stream as NDJSON lines. Always ends with a `done` line,
    even when the producer stops early or emits its own `error`.
    """
    saw_done = False
    count = 0
    async for ev in events:
        count += 1
        saw_done = saw_done or ev.get("type") == "done"
        yield ndjson_line(ev)
    if not saw_done:
        yield ndjson_line(event("done"))
    logger.debug("stream.ndjson.done events=%d", count)

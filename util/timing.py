# util/timing.py
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator
import logging


@contextmanager
def timed(
    logger: logging.Logger, name: str, level: int = logging.INFO, **kv: Any
) -> Iterator[Dict[str, Any]]:
    """
    Usage:
      with timed(logger, "index.load", url=url) as stats:
          ...
          stats["chunks"] = len(chunks)
    Emits one record on exit: "<name>.done ms=<int> key=val ..."; keys added to
    the yielded dict during the block are appended after the call-site ones.
    """
    extra: Dict[str, Any] = {}
    t0 = time.perf_counter()
    try:
        yield extra
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        merged = {**kv, **extra}
        suffix = "".join(f" {k}={v}" for k, v in merged.items())
        logger.log(level, "%s.done ms=%d%s", name, dt_ms, suffix)

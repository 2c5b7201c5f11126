# util/functions.py
import json
import re
from typing import Any, List

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")
_ARRAY = re.compile(r"\[[\s\S]*\]")
_OBJECT = re.compile(r"\{[\s\S]*\}")


def _try_parse_array(raw: str, key: str | None) -> List[Any]:
    try:
        parsed = json.loads(raw)
    except ValueError:
        return []
    if isinstance(parsed, list):
        return parsed
    if key and isinstance(parsed, dict) and isinstance(parsed.get(key), list):
        return parsed[key]
    return []


def safe_json_array(text: str, key: str | None = None) -> List[Any]:
    """
    - Pull a JSON array out of free-form model output.
    - Tries, in order: the raw text, the text without ``` fences, the first
      [...] span, the first {...} span (using `key` to unwrap {"key": [...]}).
    - Returns [] when nothing parses.
    """
    trimmed = (text or "").strip()
    direct = _try_parse_array(trimmed, key)
    if direct:
        return direct

    unfenced = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", trimmed))
    fenced = _try_parse_array(unfenced, key)
    if fenced:
        return fenced

    for pattern in (_ARRAY, _OBJECT):
        m = pattern.search(unfenced)
        if m:
            found = _try_parse_array(m.group(0), key)
            if found:
                return found
    return []


def first_sentence(text: str, min_len: int = 24, max_len: int = 200) -> str:
    """First sentence longer than `min_len`, capped at `max_len` characters."""
    for s in re.split(r"[.!?]+", text):
        s = s.strip()
        if len(s) > min_len:
            return s[:max_len].strip()
    return text[:180].strip()

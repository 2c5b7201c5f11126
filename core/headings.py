# core/headings.py
"""
Heading and topic normalisation.

Extracted PDF text yields noisy "headings": page numbers, "3 / 12" page
fractions, emoji bullets, author bylines and table-of-contents dot leaders.
The helpers here decide which strings are usable as topic labels and derive
a label from passage text when the declared heading is not.
"""

import re
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence

from config.settings import settings

SENTINEL_HEADING = "General"

# Covers the pictographic, symbol, dingbat and flag blocks plus joiners and
# variation selectors, which is what emoji bullets in lecture notes use.
_EMOJI_CLASS = (
    "\U0001F000-\U0001FAFF"
    "\u2600-\u27BF"
    "\u2B00-\u2BFF"
    "\u2300-\u23FF"
    "\uFE0E\uFE0F\u200D\u20E3"
)
LEADING_EMOJI = re.compile(rf"^[{_EMOJI_CLASS}\s]+")
TRAILING_PAGE_FRACTION = re.compile(r"\s+\d+\s*/\s*\d+\s*$")
BARE_NUMBER_OR_FRACTION = re.compile(r"^\s*\d+\s*(/\s*\d+)?\s*$")
PAGE_FRACTION = re.compile(r"^\s*\d+\s*/\s*\d+\s*$")
BARE_NUMBER = re.compile(r"^\s*\d+\s*$")
DOT_LEADERS = re.compile(r"\.{2,}")
NON_ALPHA = re.compile(r"[^a-zA-Z]")
CONNECTIVE_START = re.compile(
    r"^(for |the |a |an |if |but |so |or |and |it |this |that |is |are |was |were )",
    re.IGNORECASE,
)
DEFINITIONAL = re.compile(
    r"definition|principle|theorem|concept|rule|law|property", re.IGNORECASE
)

_PART_MARKER = re.compile(r"(?:Part\s+\d+[:.]\s*)([A-Z][A-Za-z\s]+)")
_NUMBERED_MARKER = re.compile(r"\d+\.\d+\.?\s+([A-Z][A-Za-z\s]{4,40})")
_LEAD_PHRASE = re.compile(r"^(?:.*?\s{2,})?([A-Z][A-Za-z\s]{4,50}?)(?:\s{2,}|[.!?])")


def dot_leader_chars(text: str) -> int:
    """Number of characters sitting in runs of two or more dots."""
    return sum(len(m) for m in DOT_LEADERS.findall(text))


def alpha_count(text: str) -> int:
    return len(NON_ALPHA.sub("", text))


def clean_heading(heading: str) -> str:
    """Strip a trailing " 2 / 12" page fraction and leading emoji/whitespace."""
    out = TRAILING_PAGE_FRACTION.sub("", heading)
    out = LEADING_EMOJI.sub("", out)
    return out.strip()


def is_valid_topic(
    heading: str, non_topic_names: Optional[Iterable[str]] = None
) -> bool:
    if BARE_NUMBER_OR_FRACTION.match(heading):
        return False
    if alpha_count(heading) < 4:
        return False
    lower = heading.lower()
    if lower == SENTINEL_HEADING.lower():
        return False
    names = settings.NON_TOPIC_NAMES if non_topic_names is None else non_topic_names
    if any(n and n.lower() in lower for n in names):
        return False
    return True


def infer_heading_from_text(text: str, default: Optional[str] = None) -> str:
    m = _PART_MARKER.search(text) or _NUMBERED_MARKER.search(text)
    if m and m.group(1).strip():
        return m.group(1).strip()
    m = _LEAD_PHRASE.search(text)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return default or settings.DEFAULT_TOPIC_LABEL


def normalize_heading(
    heading: str, text: str, non_topic_names: Optional[Iterable[str]] = None
) -> str:
    cleaned = clean_heading(heading)
    if is_valid_topic(cleaned, non_topic_names):
        return cleaned
    return infer_heading_from_text(text)


def is_intro_or_toc_chunk(text: str, page: int) -> bool:
    # Page 1 is the title / author page
    if page == 1:
        return True
    if dot_leader_chars(text) > len(text) * 0.35:
        return True
    stripped = re.sub(r"[.\s]", "", text)
    if page <= 3 and len(stripped) < 60:
        return True
    return False


def topic_vocabulary(
    headings: Iterable[str], non_topic_names: Optional[Iterable[str]] = None
) -> List[str]:
    """Distinct cleaned headings in first-seen order, keeping only valid topics."""
    seen: dict[str, None] = {}
    for h in headings:
        c = clean_heading(h)
        if c and c not in seen and is_valid_topic(c, non_topic_names):
            seen[c] = None
    return list(seen)


# ---------------- Heading detection rules (chunker) ----------------


class HeadingRule(NamedTuple):
    name: str
    check: Callable[[str], bool]


def _not_connective_fragment(line: str) -> bool:
    body = LEADING_EMOJI.sub("", line)
    return not (CONNECTIVE_START.match(body) and not DEFINITIONAL.search(body))


HEADING_RULES: Sequence[HeadingRule] = (
    HeadingRule("min_alpha", lambda s: alpha_count(s) >= 4),
    HeadingRule("not_page_fraction", lambda s: not PAGE_FRACTION.match(s)),
    HeadingRule("not_bare_number", lambda s: not BARE_NUMBER.match(s)),
    HeadingRule("not_dot_leaders", lambda s: dot_leader_chars(s) <= len(s) * 0.3),
    HeadingRule("not_connective_fragment", _not_connective_fragment),
)


def failed_heading_rule(line: str) -> Optional[str]:
    """Name of the first rule `line` fails, or None when it passes them all."""
    for rule in HEADING_RULES:
        if not rule.check(line):
            return rule.name
    return None


def is_likely_heading(line: str) -> bool:
    return failed_heading_rule(line) is None

"""Small helpers: JSON salvage, sentence picking, seeded PRNG, NDJSON framing, timing logs."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from core.streaming import event, ndjson_line, ndjson_stream
from util.functions import first_sentence, safe_json_array
from util.prng import SeededRandom
from util.timing import timed


@pytest.mark.parametrize(
    "raw, key, expected",
    [
        ('[{"a": 1}]', None, [{"a": 1}]),
        ('```json\n[1, 2]\n```', None, [1, 2]),
        ('Here you go: [1, 2] hope that helps', None, [1, 2]),
        ('{"cards": [1]}', "cards", [1]),
        ('prefix {"questions": [3]} suffix', "questions", [3]),
        ('{"cards": [1]}', None, [1]),
        ('{"cards": "none"}', "cards", []),
        ("not json", None, []),
        ("", None, []),
    ],
)
def test_safe_json_array(raw, key, expected):
    assert safe_json_array(raw, key) == expected


def test_first_sentence():
    text = "Too short. Least privilege grants only the minimum access necessary. More."
    assert first_sentence(text) == "Least privilege grants only the minimum access necessary"
    assert first_sentence("tiny") == "tiny"


def test_seeded_random_is_reproducible():
    a, b = SeededRandom(42), SeededRandom(42)
    assert [a.next_int() for _ in range(5)] == [b.next_int() for _ in range(5)]
    assert SeededRandom(1).next_int() != SeededRandom(2).next_int()
    assert SeededRandom(0).next_int() == 1013904223


def test_seeded_random_ranges():
    rng = SeededRandom(7)
    for _ in range(100):
        assert 0.0 <= rng.random() < 1.0
        assert 0 <= rng.randrange(3) < 3
    with pytest.raises(ValueError):
        rng.randrange(0)


def test_shuffled_is_a_permutation_of_a_copy():
    items = list(range(10))
    out = SeededRandom(5).shuffled(items)
    assert sorted(out) == items
    assert items == list(range(10))
    assert out == SeededRandom(5).shuffled(items)


def test_ndjson_line_keeps_unicode():
    line = ndjson_line(event("token", {"text": "naïve…"}))
    assert line.endswith(b"\n")
    assert json.loads(line) == {"type": "token", "payload": {"text": "naïve…"}}
    assert "…".encode("utf-8") in line


def test_ndjson_stream_appends_done_once():
    async def producer(events):
        for ev in events:
            yield ev

    async def lines(events):
        return [json.loads(b) async for b in ndjson_stream(producer(events))]

    with_error = asyncio.run(lines([event("error", {"message": "boom"})]))
    assert [ev["type"] for ev in with_error] == ["error", "done"]

    finished = asyncio.run(lines([event("token", {"text": "a"}), event("done")]))
    assert [ev["type"] for ev in finished] == ["token", "done"]


def test_timed_logs_call_site_and_collected_fields(caplog):
    logger = logging.getLogger("test.timed")
    with caplog.at_level(logging.INFO, logger="test.timed"):
        with timed(logger, "unit.work", url="x") as stats:
            stats["chunks"] = 3
    message = caplog.records[-1].getMessage()
    assert message.startswith("unit.work.done ms=")
    assert message.endswith(" url=x chunks=3")

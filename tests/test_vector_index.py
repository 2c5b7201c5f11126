"""Artifact loading, record normalisation and index queries."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from conftest import ARTIFACT_URL, artifact_index, record
from core.token_budget import build_budgeted_context
from core.vector_index import VectorIndex, normalize_records


class ArtifactHost:
    def __init__(self, status=200, payload=None, body=None):
        self.status = status
        self.payload = payload
        self.body = body
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        assert str(request.url) == ARTIFACT_URL
        if self.body is not None:
            return httpx.Response(self.status, content=self.body)
        return httpx.Response(self.status, json=self.payload)


def test_normalize_records_drops_noise_and_malformed():
    records = [
        record("Title page with the course name and the author on it.", page=1),
        record("Contents " + "." * 60 + " 3", page=2),
        {"text": "no page", "heading": "x", "embedding": [1.0]},
        record("Page as a string is rejected here.", page="4"),
        record("Booleans are not page numbers either.", page=True),
        "not even a dict",
        record("Least privilege grants only the minimum access necessary.", page=4),
        record("Wrong dimension is dropped after the first keeper.", page=5, embedding=[1.0, 0.0]),
    ]
    kept = normalize_records(records, [])
    assert [p.text for p in kept] == ["Least privilege grants only the minimum access necessary."]


def test_unconvertible_record_is_dropped_alone():
    good = record("Least privilege grants only the minimum access necessary.", page=4)
    records = [
        record("A vector holding a string cannot be scored at all.", page=5, embedding=[1.0, "x", 0.0]),
        record("A vector holding null cannot be scored either here.", page=6, embedding=[1.0, None, 0.0]),
        record("Nested vectors flatten to the wrong dimension count.", page=7, embedding=[[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]),
        record("Infinite page numbers come from a lenient JSON parser.", page=float("inf")),
        record("NaN page numbers come from the same lenient JSON parser.", page=float("nan")),
        good,
    ]
    kept = normalize_records(records, [])
    assert [p.text for p in kept] == [good["text"]]


def test_load_keeps_valid_passages_next_to_unconvertible_ones():
    payload = (
        '{"chunks": ['
        '{"text": "Least privilege grants only the minimum access necessary.", "page": 4,'
        ' "heading": "Access Control", "embedding": [1.0, 0.0, 0.0]},'
        '{"text": "This record has a string inside its embedding vector.", "page": 5,'
        ' "heading": "Access Control", "embedding": [1.0, "x", 0.0]},'
        '{"text": "This record claims to sit on an infinitely distant page.", "page": Infinity,'
        ' "heading": "Access Control", "embedding": [1.0, 0.0, 0.0]}'
        "]}"
    )
    index = artifact_index(ArtifactHost(body=payload.encode("utf-8")))
    asyncio.run(index.load())
    assert len(index) == 1
    assert index.load_error == ""


def test_normalize_records_cleans_headings(sample_records):
    kept = normalize_records(sample_records, [])
    assert [p.heading for p in kept] == [
        "Access Control",
        "Containment Mechanisms",
        "Input Validation",
    ]


def test_from_records_builds_topics(notes_index):
    assert notes_index.is_loaded
    assert len(notes_index) == 3
    assert notes_index.topics == ["Access Control", "Containment Mechanisms", "Input Validation"]


def test_concurrent_loads_fetch_once(sample_records):
    host = ArtifactHost(payload={"chunks": sample_records})
    index = artifact_index(host)

    async def main():
        await asyncio.gather(index.load(), index.load(), index.load())
        await index.load()

    asyncio.run(main())
    assert host.calls == 1
    assert index.fetch_count == 1
    assert len(index) == 3
    assert index.load_error == ""
    assert not index.is_loading


def test_missing_artifact_reports_regeneration_hint():
    index = artifact_index(ArtifactHost(status=404, payload={"detail": "nope"}))
    asyncio.run(index.load())
    assert len(index) == 0
    assert not index.is_loaded
    assert "regenerate" in index.load_error
    assert ARTIFACT_URL in index.load_error


def test_server_error_is_recorded_not_raised():
    index = artifact_index(ArtifactHost(status=500, payload={}))
    asyncio.run(index.load())
    assert len(index) == 0
    assert index.load_error
    assert "regenerate" not in index.load_error


def test_malformed_json_is_recorded_not_raised():
    index = artifact_index(ArtifactHost(body=b"{not json"))
    asyncio.run(index.load())
    assert len(index) == 0
    assert index.load_error


def test_payload_without_chunks_loads_empty():
    index = artifact_index(ArtifactHost(payload={"items": []}))
    asyncio.run(index.load())
    assert len(index) == 0
    assert index.load_error == ""


def test_failed_load_is_retried_on_next_call(sample_records):
    host = ArtifactHost(status=503, payload={})
    index = artifact_index(host)

    async def main():
        await index.load()
        host.status = 200
        host.payload = {"chunks": sample_records}
        await index.load()

    asyncio.run(main())
    assert host.calls == 2
    assert len(index) == 3
    assert index.load_error == ""


def test_vector_search_through_index(notes_index):
    results = notes_index.search([0.0, 1.0, 0.0], top_k=2)
    assert [r.heading for r in results] == ["Containment Mechanisms", "Input Validation"]
    assert results[0].score == pytest.approx(1.0)


def test_least_privilege_end_to_end(notes_index):
    results = notes_index.search_by_text("least privilege", top_k=1)
    assert results[0].score == 1.0
    assert results[0].page == 4
    ctx = build_budgeted_context(results)
    assert ctx == "[1] (Access Control, p.4) Least privilege grants only the minimum access necessary."


def test_empty_index_queries_are_empty():
    index = VectorIndex.from_records([], artifact_url=ARTIFACT_URL)
    assert index.search([1.0, 0.0, 0.0]) == []
    assert index.search_by_text("privilege") == []
    assert index.topics == []

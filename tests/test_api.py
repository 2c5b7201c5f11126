"""HTTP surface, exercised through FastAPI's TestClient with mocked collaborators."""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import ARTIFACT_URL, FakeLLM, artifact_index
from main import create_app
from service.chat_service import MODEL_NOT_READY_REPLY
from util.constants import InternalURIs


def ndjson(response):
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def client(notes_index, llm):
    with TestClient(create_app(index=notes_index, model=llm.model())) as c:
        yield c


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_index_status_and_topics(client):
    status = client.get(InternalURIs.INDEX_STATUS).json()
    assert status == {
        "loaded": True,
        "loading": False,
        "chunks": 3,
        "topics": 3,
        "error": "",
        "url": ARTIFACT_URL,
    }
    topics = client.get(InternalURIs.TOPICS).json()["topics"]
    assert topics == ["Access Control", "Containment Mechanisms", "Input Validation"]


def test_text_search(client):
    body = client.post(InternalURIs.SEARCH, json={"query": "least privilege", "topK": 3}).json()
    assert body["mode"] == "text"
    assert body["results"][0] == {
        "text": "Least privilege grants only the minimum access necessary.",
        "page": 4,
        "heading": "Access Control",
        "score": 1.0,
    }


def test_vector_search(client):
    body = client.post(InternalURIs.SEARCH, json={"embedding": [0.0, 1.0, 0.0], "topK": 1}).json()
    assert body["mode"] == "vector"
    assert [r["heading"] for r in body["results"]] == ["Containment Mechanisms"]


def test_context_packing(client):
    passages = [
        {
            "text": "Least privilege grants only the minimum access necessary.",
            "page": 4,
            "heading": "Access Control",
        }
    ]
    body = client.post(InternalURIs.CONTEXT, json={"passages": passages}).json()
    assert body["context"] == "[1] (Access Control, p.4) Least privilege grants only the minimum access necessary."
    assert body["chars"] == len(body["context"])
    assert body["estimatedTokens"] == -(-body["chars"] // 4)

    tight = client.post(InternalURIs.CONTEXT, json={"passages": passages, "maxChars": 10}).json()
    assert tight["context"] == ""


def test_chat_before_model_init_streams_error_then_done(client):
    r = client.post(InternalURIs.CHAT, json={"message": "What is least privilege?"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/x-ndjson")
    assert ndjson(r) == [
        {"type": "error", "payload": {"message": MODEL_NOT_READY_REPLY}},
        {"type": "done", "payload": {}},
    ]


def test_chat_after_model_init(client):
    init = client.post(InternalURIs.MODEL_INIT).json()
    assert init == {"ready": True, "model": "test-model", "status": "AI model ready"}

    events = ndjson(client.post(InternalURIs.CHAT, json={"message": "least privilege"}))
    assert [e["type"] for e in events] == ["sources", "token", "token", "done"]
    assert events[0]["payload"]["sources"][0]["page"] == 4


def test_chat_rejects_empty_message(client):
    assert client.post(InternalURIs.CHAT, json={"message": ""}).status_code == 422


def test_quiz_falls_back_when_model_output_is_not_json(client):
    body = client.post(InternalURIs.QUIZ, json={"numQuestions": 2, "seed": 11}).json()
    assert body["fallback"] is True
    assert 0 < len(body["questions"]) <= 2
    for q in body["questions"]:
        assert q["correctIndex"] < len(q["options"])


def test_quiz_rejects_out_of_range_count(client):
    assert client.post(InternalURIs.QUIZ, json={"numQuestions": 0}).status_code == 422


def test_quiz_when_model_unreachable(notes_index):
    app = create_app(index=notes_index, model=FakeLLM(ping_status=500).model())
    with TestClient(app) as c:
        r = c.post(InternalURIs.QUIZ, json={})
    assert r.status_code == 503
    assert "not reachable" in r.json()["detail"]


@pytest.mark.parametrize("uri", [InternalURIs.QUIZ, InternalURIs.FLASHCARDS])
def test_generation_outage_after_init_is_503(notes_index, uri):
    app = create_app(index=notes_index, model=FakeLLM(completion_status=500).model())
    with TestClient(app) as c:
        r = c.post(uri, json={})
    assert r.status_code == 503
    assert "not reachable" in r.json()["detail"]


def test_quiz_score(client):
    question = {
        "question": "Q?",
        "options": ["A) a", "B) b", "C) c", "D) d"],
        "correctIndex": 1,
    }
    body = client.post(
        InternalURIs.QUIZ_SCORE, json={"questions": [question, question], "answers": [1, 0]}
    ).json()
    assert body == {"correct": 1, "total": 2, "percentage": 50}


def test_flashcards_generate_review_merge(client):
    deck = client.post(InternalURIs.FLASHCARDS, json={"count": 2}).json()
    assert deck["fallback"] is True
    cards = deck["cards"]
    assert len(cards) == 2

    reviewed = client.post(
        InternalURIs.FLASHCARDS_REVIEW, json={"card": cards[0], "rating": "good"}
    ).json()
    assert reviewed["intervalDays"] == 2
    assert reviewed["seen"] == 1

    merged = client.post(
        InternalURIs.FLASHCARDS_MERGE, json={"existing": cards, "imported": [reviewed, cards[1]]}
    ).json()
    assert len(merged["cards"]) == 2


def test_missing_artifact_status(llm):
    index = artifact_index(lambda request: httpx.Response(404, json={}))
    with TestClient(create_app(index=index, model=llm.model())) as c:
        status = c.post(InternalURIs.INDEX_RELOAD).json()
        search = c.post(InternalURIs.SEARCH, json={"query": "least privilege"}).json()
    assert status["loaded"] is False
    assert status["chunks"] == 0
    assert "regenerate" in status["error"]
    assert search == {"mode": "text", "results": []}

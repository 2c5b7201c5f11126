"""
Shared pytest fixtures.

HTTP collaborators (the artifact host and the chat-completions endpoint) are
replaced with `httpx.MockTransport` handlers so no test touches the network.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from core.llm_client import LanguageModel
from core.vector_index import VectorIndex

ARTIFACT_URL = "http://notes.test/static/embeddings.json"
LLM_URL = "http://llm.test/v1/chat/completions"


def record(text: str, page: int = 4, heading: str = "Access Control", embedding=None) -> Dict[str, Any]:
    return {
        "text": text,
        "page": page,
        "heading": heading,
        "embedding": [1.0, 0.0, 0.0] if embedding is None else embedding,
    }


def sse_body(tokens: List[str]) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": t}}]}) for t in tokens
    ]
    lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


class FakeLLM:
    """
    Chat-completions double. `tokens` feed the SSE stream, `message` answers
    non-streaming calls, `ping_status` answers the init request and
    `completion_status` every generation request after it.
    """

    def __init__(
        self,
        tokens: Optional[List[str]] = None,
        message: str = "",
        ping_status: int = 200,
        completion_status: int = 200,
    ) -> None:
        self.tokens = tokens if tokens is not None else ["Hello", " world"]
        self.message = message
        self.ping_status = ping_status
        self.completion_status = completion_status
        self.requests: List[Dict[str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        if body.get("max_tokens") == 1:
            return httpx.Response(self.ping_status, json={"choices": [{"message": {"content": "pong"}}]})
        if self.completion_status != 200:
            return httpx.Response(self.completion_status, json={"error": "upstream failure"})
        if body.get("stream"):
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=sse_body(self.tokens),
            )
        return httpx.Response(200, json={"choices": [{"message": {"content": self.message}}]})

    def model(self) -> LanguageModel:
        return LanguageModel(LLM_URL, "test-model", api_key="", transport=httpx.MockTransport(self.handler))

    @property
    def chat_requests(self) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r.get("max_tokens") != 1]


def artifact_index(
    handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any
) -> VectorIndex:
    return VectorIndex(ARTIFACT_URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    return [
        record("Least privilege grants only the minimum access necessary.", 4, "Access Control", [1.0, 0.0, 0.0]),
        record(
            "Part 2: Containment Mechanisms. Sandboxes isolate untrusted code from the host system.",
            5,
            "11",
            [0.0, 1.0, 0.0],
        ),
        record(
            "Input validation rejects malformed data before it reaches the parser.",
            6,
            "🔒 Input Validation 3 / 12",
            [0.6, 0.8, 0.0],
        ),
    ]


@pytest.fixture
def notes_index(sample_records) -> VectorIndex:
    return VectorIndex.from_records(sample_records, artifact_url=ARTIFACT_URL)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()

# core/llm_client.py
import asyncio
import json
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence
import logging

import httpx

from config.settings import settings
from util.enums import ErrorMessage
from util.errors import EmptyGenerationError, ModelUnavailableError
from util.timing import timed
from util.types import ChatMessage

logger = logging.getLogger(__name__)

SSE_DATA = "data:"
SSE_DONE = "[DONE]"


def _parts_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        out = []
        for part in content:
            if isinstance(part, str):
                out.append(part)
            elif isinstance(part, dict):
                if isinstance(part.get("text"), str):
                    out.append(part["text"])
                elif isinstance(part.get("content"), str):
                    out.append(part["content"])
        return "".join(out)
    return ""


def extract_chunk_text(chunk: Any) -> str:
    """
    Text carried by one chat-completion payload, streaming (`delta`) or not
    (`message`). Content may be a plain string or a list of parts.
    """
    if not isinstance(chunk, dict):
        return ""
    choices = chunk.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    choice = choices[0]
    delta = (choice.get("delta") or {}).get("content")
    if delta is not None:
        text = _parts_text(delta)
        if text:
            return text
    return _parts_text((choice.get("message") or {}).get("content"))


def _parse_sse_line(line: str) -> Optional[Dict[str, Any]]:
    line = line.strip()
    if not line.startswith(SSE_DATA):
        return None
    data = line[len(SSE_DATA):].strip()
    if not data or data == SSE_DONE:
        return None
    try:
        return json.loads(data)
    except ValueError:
        # partial frames show up when a server truncates; skip them
        return None


class LanguageModel:
    """
    Client for an OpenAI-compatible chat completions endpoint (llama.cpp,
    Ollama, vLLM...). `init()` must succeed before `chat()`; it is memoised the
    same way as the index load so concurrent callers share one probe.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = api_url or settings.LLM_API_URL
        self._model = model or settings.LLM_MODEL
        self._api_key = settings.LLM_API_KEY if api_key is None else api_key
        self._timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._transport = transport
        self._init_task: Optional[asyncio.Task] = None
        self.is_ready = False
        self.status_text = ""

    @property
    def model(self) -> str:
        return self._model

    @property
    def is_loading(self) -> bool:
        return self._init_task is not None and not self._init_task.done()

    def _headers(self) -> Dict[str, str]:
        headers = {"content-type": "application/json"}
        if self._api_key:
            headers["authorization"] = f"Bearer {self._api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _payload(self, messages: Sequence[ChatMessage], stream: bool, **extra: Any) -> Dict[str, Any]:
        return {"model": self._model, "messages": list(messages), "stream": stream, **extra}

    # ---------------- Lifecycle ----------------

    async def init(self) -> None:
        if self.is_ready:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._init())
        task = self._init_task
        try:
            await asyncio.shield(task)
        finally:
            if task.done() and self._init_task is task:
                self._init_task = None

    async def _init(self) -> None:
        self.status_text = "Loading AI model..."
        ping = [{"role": "user", "content": "Ping"}]
        try:
            with timed(logger, "llm.init", model=self._model):
                async with self._client() as client:
                    r = await client.post(
                        self._url,
                        headers=self._headers(),
                        json=self._payload(ping, stream=False, max_tokens=1),
                    )
                    r.raise_for_status()
        except httpx.HTTPError as e:
            self.is_ready = False
            self.status_text = "Failed to load AI model"
            logger.error("llm.init.error err=%s url=%s", type(e).__name__, self._url)
            raise ModelUnavailableError(ErrorMessage.MODEL_UNAVAILABLE.value.message) from e
        self.is_ready = True
        self.status_text = "AI model ready"
        logger.info("llm.ready model=%s", self._model)

    async def reset(self) -> None:
        self.is_ready = False
        self.status_text = ""
        self._init_task = None

    # ---------------- Generation ----------------

    async def _stream_tokens(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        async with self._client() as client:
            async with client.stream(
                "POST", self._url, headers=self._headers(), json=self._payload(messages, stream=True)
            ) as r:
                r.raise_for_status()
                async for line in r.aiter_lines():
                    chunk = _parse_sse_line(line)
                    if chunk is None:
                        continue
                    text = extract_chunk_text(chunk)
                    if text:
                        yield text

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        """Single non-streaming completion; "" when the model says nothing."""
        async with self._client() as client:
            r = await client.post(
                self._url, headers=self._headers(), json=self._payload(messages, stream=False)
            )
            r.raise_for_status()
            try:
                data = r.json()
            except ValueError:
                data = {}
        return extract_chunk_text(data)

    async def chat(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        """
        Yield response tokens in order. Falls back to one non-streaming call
        when the stream produced nothing; raises EmptyGenerationError if that
        is empty as well. HTTP and transport failures surface as
        ModelUnavailableError. Stop iterating to abandon the request.
        """
        if not self.is_ready:
            raise ModelUnavailableError()

        emitted = 0
        try:
            with timed(logger, "llm.chat", model=self._model, messages=len(messages)) as stats:
                async for token in self._stream_tokens(messages):
                    emitted += 1
                    yield token
                stats["tokens"] = emitted

            if emitted:
                return

            logger.warning("llm.stream.empty model=%s fallback=non_stream", self._model)
            full = await self.complete(messages)
        except httpx.HTTPError as e:
            logger.error(
                "llm.chat.error err=%s url=%s tokens=%d", type(e).__name__, self._url, emitted
            )
            raise ModelUnavailableError(ErrorMessage.MODEL_UNAVAILABLE.value.message) from e
        if not full:
            raise EmptyGenerationError()
        yield full


async def collect(tokens: AsyncIterator[str]) -> str:
    out: List[str] = []
    async for t in tokens:
        out.append(t)
    return "".join(out)

# service/chat_service.py
import asyncio
from typing import Any, AsyncIterator, Dict, List
import logging

from config.settings import settings
from core.entities import SearchResult
from core.llm_client import LanguageModel
from core.streaming import event
from core.token_budget import build_budgeted_context
from core.vector_index import VectorIndex
from util.errors import AppError
from util.types import ChatMessage, SourcePayload

logger = logging.getLogger(__name__)

MODEL_NOT_READY_REPLY = (
    "The AI model is not ready yet. Initialize the model first, then try again."
)
GENERIC_FAILURE_REPLY = (
    "Sorry, I encountered an error processing your question. Please try again."
)


def _source_line(chunk, index: int) -> str:
    return f"[{index}] (Page {chunk.page}, {chunk.heading}): {chunk.text}"


class ChatService:
    """
    Question answering over the notes. Requests are handled one at a time:
    a second question waits until the first answer has finished streaming.
    """

    def __init__(self, index: VectorIndex, model: LanguageModel, top_k: int | None = None) -> None:
        self._index = index
        self._model = model
        self._top_k = top_k or settings.DEFAULT_TOP_K
        self._lock = asyncio.Lock()
        self._waiting = 0

    @property
    def queued(self) -> int:
        return self._waiting

    def context_for(self, results: List[SearchResult]) -> str:
        if results:
            return build_budgeted_context(
                results, settings.context_char_budget, formatter=_source_line
            )
        if self._index.load_error:
            return f"No note context available. {self._index.load_error}"
        return f"No note context available from {settings.ARTIFACT_NAME}."

    def build_messages(self, question: str, context: str) -> List[ChatMessage]:
        return [
            {"role": "system", "content": settings.CHAT_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Context from class notes:\n{context}\n\nQuestion: {question}",
            },
        ]

    async def ask(self, question: str) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield `sources`, then one `token` event per model token, then `done`.
        Failures become a single `error` event carrying a user-facing message.
        """
        if not self._model.is_ready:
            yield event("error", {"message": MODEL_NOT_READY_REPLY})
            return

        self._waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self._waiting -= 1
        try:
            async for ev in self._answer(question):
                yield ev
        finally:
            self._lock.release()

    async def _answer(self, question: str) -> AsyncIterator[Dict[str, Any]]:
        try:
            await self._index.load()
            results = self._index.search_by_text(question, self._top_k)
            sources: List[SourcePayload] = [
                {"text": r.text, "page": r.page, "heading": r.heading} for r in results
            ]
            yield event("sources", {"sources": sources})

            messages = self.build_messages(question, self.context_for(results))
            tokens = 0
            async for token in self._model.chat(messages):
                tokens += 1
                yield event("token", {"text": token})
            logger.info("chat.answered sources=%d tokens=%d", len(results), tokens)
            yield event("done")
        except AppError as e:
            logger.warning("chat.error status=%d msg=%s", e.status_code, e.message)
            yield event("error", {"message": e.message})
        except Exception:
            logger.error("chat.error", exc_info=True)
            yield event("error", {"message": GENERIC_FAILURE_REPLY})

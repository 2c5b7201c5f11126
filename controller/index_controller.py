# controller/index_controller.py
from fastapi import APIRouter, Depends, status
from config.settings import settings
from core.token_budget import build_budgeted_context, estimate_tokens
from core.vector_index import VectorIndex
from model.api import (
    ContextRequest,
    ContextResponse,
    IndexStatusResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
    TopicsResponse,
)
from util.constants import InternalURIs
from controller.controller_dependencies import get_index

index_router = APIRouter()


def _status(index: VectorIndex) -> IndexStatusResponse:
    return IndexStatusResponse(
        loaded=index.is_loaded,
        loading=index.is_loading,
        chunks=len(index),
        topics=len(index.topics),
        error=index.load_error,
        url=index.url,
    )


@index_router.get(InternalURIs.INDEX_STATUS, response_model=IndexStatusResponse)
async def index_status(index: VectorIndex = Depends(get_index)) -> IndexStatusResponse:
    return _status(index)


@index_router.post(
    InternalURIs.INDEX_RELOAD,
    response_model=IndexStatusResponse,
    status_code=status.HTTP_200_OK,
)
async def index_reload(index: VectorIndex = Depends(get_index)) -> IndexStatusResponse:
    await index.load()
    return _status(index)


@index_router.get(InternalURIs.TOPICS, response_model=TopicsResponse)
async def topics(index: VectorIndex = Depends(get_index)) -> TopicsResponse:
    await index.load()
    return TopicsResponse(topics=index.topics)


@index_router.post(InternalURIs.SEARCH, response_model=SearchResponse)
async def search(
    payload: SearchRequest, index: VectorIndex = Depends(get_index)
) -> SearchResponse:
    await index.load()
    if payload.embedding:
        mode = "vector"
        hits = index.search(payload.embedding, payload.topK, payload.query or None)
    else:
        mode = "text"
        hits = index.search_by_text(payload.query, payload.topK)
    return SearchResponse(mode=mode, results=[SearchHit(**h.to_dict()) for h in hits])


@index_router.post(InternalURIs.CONTEXT, response_model=ContextResponse)
async def context(payload: ContextRequest) -> ContextResponse:
    max_chars = settings.context_char_budget if payload.maxChars is None else payload.maxChars
    text = build_budgeted_context(payload.passages, max_chars)
    return ContextResponse(context=text, chars=len(text), estimatedTokens=estimate_tokens(text))

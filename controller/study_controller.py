# controller/study_controller.py
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from core.llm_client import LanguageModel
from core.streaming import ndjson_stream
from model.api import (
    ChatRequest,
    DeckResponse,
    FlashcardsResponse,
    MergeRequest,
    ModelStatusResponse,
    QuizResponse,
    QuizScoreRequest,
    ReviewRequest,
)
from model.flashcard import Flashcard, FlashcardConfig
from model.quiz import QuizConfig, QuizScore
from service.chat_service import ChatService
from service.flashcard_service import FlashcardService, merge_decks, review_card
from service.quiz_service import QuizService, score_quiz
from util.constants import InternalURIs
from controller.controller_dependencies import (
    get_chat_service,
    get_flashcard_service,
    get_model,
    get_quiz_service,
)

study_router = APIRouter()


@study_router.post(InternalURIs.MODEL_INIT, response_model=ModelStatusResponse)
async def model_init(model: LanguageModel = Depends(get_model)) -> ModelStatusResponse:
    await model.init()
    return ModelStatusResponse(ready=model.is_ready, model=model.model, status=model.status_text)


@study_router.post(InternalURIs.CHAT)
async def chat(payload: ChatRequest, service: ChatService = Depends(get_chat_service)):
    generator = ndjson_stream(service.ask(payload.message))
    return StreamingResponse(generator, media_type="application/x-ndjson")


@study_router.post(InternalURIs.QUIZ, response_model=QuizResponse)
async def quiz(
    payload: QuizConfig, service: QuizService = Depends(get_quiz_service)
) -> QuizResponse:
    questions, fallback = await service.generate(payload)
    return QuizResponse(questions=questions, fallback=fallback)


@study_router.post(InternalURIs.QUIZ_SCORE, response_model=QuizScore)
async def quiz_score(payload: QuizScoreRequest) -> QuizScore:
    return score_quiz(payload.questions, payload.answers)


@study_router.post(InternalURIs.FLASHCARDS, response_model=FlashcardsResponse)
async def flashcards(
    payload: FlashcardConfig, service: FlashcardService = Depends(get_flashcard_service)
) -> FlashcardsResponse:
    cards, fallback = await service.generate(payload)
    return FlashcardsResponse(cards=cards, fallback=fallback)


@study_router.post(InternalURIs.FLASHCARDS_REVIEW, response_model=Flashcard)
async def flashcard_review(payload: ReviewRequest) -> Flashcard:
    return review_card(payload.card, payload.rating)


@study_router.post(InternalURIs.FLASHCARDS_MERGE, response_model=DeckResponse)
async def flashcard_merge(payload: MergeRequest) -> DeckResponse:
    return DeckResponse(cards=merge_decks(payload.existing, payload.imported))

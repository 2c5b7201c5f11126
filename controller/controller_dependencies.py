# controller/controller_dependencies.py
from fastapi import Depends, Request
from core.llm_client import LanguageModel
from core.vector_index import VectorIndex
from service.chat_service import ChatService
from service.flashcard_service import FlashcardService
from service.quiz_service import QuizService


# Process-wide instances are created in main.create_app and live on app.state.
def get_index(request: Request) -> VectorIndex:
    return request.app.state.index


def get_model(request: Request) -> LanguageModel:
    return request.app.state.model


def get_chat_service(request: Request) -> ChatService:
    # Shared so its request lock spans every chat call
    return request.app.state.chat


def get_quiz_service(
    index: VectorIndex = Depends(get_index), model: LanguageModel = Depends(get_model)
) -> QuizService:
    return QuizService(index, model)


def get_flashcard_service(
    index: VectorIndex = Depends(get_index), model: LanguageModel = Depends(get_model)
) -> FlashcardService:
    return FlashcardService(index, model)

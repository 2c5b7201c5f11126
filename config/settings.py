# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV.value, validation_alias="APP_ENV")
    ALLOWED_ORIGIN: str = Field(
        default="http://localhost:3000", validation_alias="ALLOWED_ORIGIN"
    )

    # Artifact location: fetched over HTTP from SITE_BASE_URL, served from PUBLIC_DIR
    SITE_BASE_URL: str = Field(
        default="http://127.0.0.1:8000/static", validation_alias="SITE_BASE_URL"
    )
    PUBLIC_DIR: str = Field(default="public", validation_alias="PUBLIC_DIR")
    ARTIFACT_NAME: str = "embeddings.json"
    ARTIFACT_TIMEOUT_SECONDS: float = 30.0

    # Embedding Engine
    EMBEDDING_MODEL_NAME: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBED_BATCH_SIZE: int = 64

    # Chunking (tokens are estimated at CHARS_PER_TOKEN characters each)
    CHARS_PER_TOKEN: int = 4
    CHUNK_TOKENS: int = 300
    CHUNK_OVERLAP_TOKENS: int = 50
    MIN_FLUSH_CHARS: int = 50

    # Retrieval & context budget
    MAX_COSINE_CANDIDATES: int = 200
    CONTEXT_TOKEN_BUDGET: int = 2_500
    DEFAULT_TOP_K: int = 5

    # Topic vocabulary
    NON_TOPIC_NAMES: list[str] = Field(
        default_factory=list, validation_alias="NON_TOPIC_NAMES"
    )
    DEFAULT_TOPIC_LABEL: str = "Course Notes"

    # Language model (OpenAI-compatible chat completions endpoint)
    LLM_API_URL: str = Field(
        default="http://127.0.0.1:11434/v1/chat/completions",
        validation_alias="LLM_API_URL",
    )
    LLM_MODEL: str = Field(default="llama3.2:3b", validation_alias="LLM_MODEL")
    LLM_API_KEY: str = Field(default="", validation_alias="LLM_API_KEY")
    LLM_TIMEOUT_SECONDS: float = Field(
        default=120.0, validation_alias="LLM_TIMEOUT_SECONDS"
    )

    # Logging knobs
    LOGGER_NAME: str = "study-notes-rag"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    CHAT_SYSTEM_PROMPT: str = (
        "You are a helpful study assistant for a university course. Answer based on the "
        "provided notes context when available. If context is missing, say that the notes "
        "embeddings are not loaded and provide a best-effort answer."
    )

    QUIZ_SYSTEM_PROMPT: str = (
        "You are a quiz generator for a university course. Generate multiple choice "
        "questions based on the provided context. Respond only with valid JSON."
    )

    FLASHCARD_SYSTEM_PROMPT: str = (
        "You create high-quality study flashcards. Return only valid JSON. "
        "No markdown, no prose outside JSON."
    )

    @property
    def chunk_chars(self) -> int:
        return self.CHUNK_TOKENS * self.CHARS_PER_TOKEN

    @property
    def overlap_chars(self) -> int:
        return self.CHUNK_OVERLAP_TOKENS * self.CHARS_PER_TOKEN

    @property
    def context_char_budget(self) -> int:
        return self.CONTEXT_TOKEN_BUDGET * self.CHARS_PER_TOKEN

    @property
    def artifact_url(self) -> str:
        return f"{self.SITE_BASE_URL.rstrip('/')}/{self.ARTIFACT_NAME}"


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)

# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    MIXED = "mixed"


class Rating(str, Enum):
    AGAIN = "again"
    GOOD = "good"
    EASY = "easy"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    ARTIFACT_NOT_FOUND = ErrorInfo(
        "embeddings.json was not found at {url}. "
        "Run: `python build_index.py <notes.pdf>` to regenerate the embeddings artifact.",
        status.HTTP_404_NOT_FOUND,
    )
    ARTIFACT_LOAD_FAILED = ErrorInfo(
        "Failed to load embeddings.json.", status.HTTP_502_BAD_GATEWAY
    )
    MODEL_UNAVAILABLE = ErrorInfo(
        "The language model endpoint is not reachable.",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    MODEL_NOT_INITIALIZED = ErrorInfo(
        "AI model not initialized. Call init() first.",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    EMPTY_GENERATION = ErrorInfo(
        "AI returned an empty response.", status.HTTP_502_BAD_GATEWAY
    )

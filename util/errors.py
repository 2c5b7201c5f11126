# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @property
    def message(self) -> str:
        return str(self.detail)


class ModelUnavailableError(AppError):
    """Language model used before init() succeeded, or its endpoint is down."""

    def __init__(self, message: str | None = None) -> None:
        info = ErrorMessage.MODEL_NOT_INITIALIZED.value
        super().__init__(message or info.message, info.http_status)


class EmptyGenerationError(AppError):
    def __init__(self) -> None:
        info = ErrorMessage.EMPTY_GENERATION.value
        super().__init__(info.message, info.http_status)

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class PeerFeedbackError(Exception):
    """Базовое исключение приложения."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidHttpParameterError(PeerFeedbackError):
    """Отсутствует или конфликтует параметр запроса."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidOperationError(PeerFeedbackError):
    """Операция допустима синтаксически, но нарушает инвариант."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidParametersError(PeerFeedbackError):
    """Сущность не прошла валидацию полей."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: list[str]):
        super().__init__("\n".join(errors))
        self.errors = errors


class EntityAlreadyExistsError(PeerFeedbackError):
    status_code = status.HTTP_409_CONFLICT


class EntityNotFoundError(PeerFeedbackError):
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedAccessError(PeerFeedbackError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str, anonymous: bool = False):
        super().__init__(message)
        if anonymous:
            self.status_code = status.HTTP_401_UNAUTHORIZED


# Ошибки слоя логики. Роутеры переводят их в HTTP-ответы сами.

class EntityDoesNotExistError(PeerFeedbackError):
    status_code = status.HTTP_404_NOT_FOUND


class InstructorUpdateError(PeerFeedbackError):
    pass


async def _handle_peerfeedback_error(_request: Request, exc: PeerFeedbackError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PeerFeedbackError, _handle_peerfeedback_error)

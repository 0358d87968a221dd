from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED", status_code=status.HTTP_401_UNAUTHORIZED)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found", code: str = "NOT_FOUND"):
        super().__init__(message, code=code, status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        super().__init__(message, code="CONFLICT", status_code=status.HTTP_409_CONFLICT, details=details)


class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None, code: str = "BAD_REQUEST"):
        super().__init__(message, code=code, status_code=status.HTTP_400_BAD_REQUEST, details=details)


# Ledger errors


class AccountNotFoundError(NotFoundError):
    def __init__(self, message: str = "Account not found"):
        super().__init__(message, code="ACCOUNT_NOT_FOUND")


class RecipientNotFoundError(NotFoundError):
    def __init__(self, message: str = "Receiver not found"):
        super().__init__(message, code="RECIPIENT_NOT_FOUND")


class InsufficientFundsError(BadRequestError):
    def __init__(self, message: str = "Insufficient balance"):
        super().__init__(message, code="INSUFFICIENT_FUNDS")


class InvalidAmountError(BadRequestError):
    def __init__(self, message: str = "Invalid amount", details: dict[str, Any] | None = None):
        super().__init__(message, details=details, code="INVALID_AMOUNT")


class InternalFailureError(AppError):
    """Storage fault or failed commit; the operation may not be assumed applied or not applied."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, code="INTERNAL_ERROR", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(request: Request, exc: AppError) -> ORJSONResponse:
    body = {
        "error": {
            "message": exc.message,
            "code": exc.code,
            "details": exc.details,
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(status_code=exc.status_code, content=body)


async def app_exception_handler(request: Request, exc: AppError) -> ORJSONResponse:
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    body = {
        "error": {
            "message": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": {"errors": jsonable_errors(exc)},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body,
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Pydantic puts the raised exception object in ctx; keep only its text."""
    out = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        err.pop("input", None)
        out.append(err)
    return out


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from app.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", exc_info=exc)
    body = {
        "error": {
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": {},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body,
    )

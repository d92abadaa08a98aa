"""
Error taxonomy and the handlers that turn every failure into the standard
``{"success": false, "message": ...}`` envelope.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """HTTP error with an optional machine-readable code and payload"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        data: Any = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(
            status_code=status_code or type(self).status_code,
            detail=message,
            headers=headers,
        )
        self.message = message
        self.code = code
        self.data = data


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidIdFormatError(ValidationError):
    def __init__(self, message: str = "Invalid ID format"):
        super().__init__(message, code="INVALID_ID_FORMAT")


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateNameError(DuplicateError):
    def __init__(self, message: str = "Category name already exists"):
        super().__init__(message, code="DUPLICATE_NAME")


class AuthorizationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AuthorizationError):
    status_code = status.HTTP_403_FORBIDDEN


class DeviceInfoError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, code: Optional[str] = None, data: Any = None) -> dict:
    body = {"success": False, "message": message}
    if code:
        body["code"] = code
    if data is not None:
        body["data"] = data
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = getattr(exc, "code", None)
    data = getattr(exc, "data", None)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code, data),
        headers=getattr(exc, "headers", None),
    )


def describe_validation_errors(errors) -> str:
    """Human-readable message for the first pydantic error"""
    if not errors:
        return "Invalid request"
    first = errors[0]
    ctx_error = (first.get("ctx") or {}).get("error")
    text = str(ctx_error) if first.get("type") == "value_error" and ctx_error else first.get("msg")
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {text}" if field else text


async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = describe_validation_errors(exc.errors())
    logger.warning(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, "VALIDATION_ERROR"),
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    # Unique index is the source of truth; the controller pre-check only
    # catches the common case.
    logger.warning(f"Unique constraint violated on {request.url.path}: {exc}")
    error = DuplicateNameError()
    return JSONResponse(
        status_code=error.status_code,
        content=error_body(error.message, error.code),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

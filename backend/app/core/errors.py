"""API error type and application-wide exception handlers.

Every error response has the shape ``{"success": false, "message": ...}``,
with an optional machine-readable ``code`` and validation ``details``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException carrying an optional machine-readable error code."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        super().__init__(status_code=status_code, detail=message)
        self.code = code


def not_found(resource: str = "Resource") -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, f"{resource} not found")


def forbidden(message: str = "Access denied", code: Optional[str] = None) -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, message, code)


def bad_request(message: str, code: Optional[str] = None) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, message, code)


def conflict(message: str) -> ApiError:
    return ApiError(status.HTTP_409_CONFLICT, message)


def error_body(message: str, code: Optional[str] = None, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if code:
        body["code"] = code
    if details is not None:
        body["details"] = details
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = None if isinstance(exc.detail, str) else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, getattr(exc, "code", None), details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(loc) for loc in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Validation failed"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, "VALIDATION_ERROR", errors),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    text = str(exc.orig).lower()
    if "foreign key" in text:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("Related record not found"),
        )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body("A record with this value already exists"),
    )


async def no_result_handler(request: Request, exc: NoResultFound) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=error_body("Record not found"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(NoResultFound, no_result_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

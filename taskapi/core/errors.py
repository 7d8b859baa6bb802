"""API error taxonomy and the single place errors become HTTP responses."""

import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import ExpiredSignatureError, JWTError
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskapi.core.logging import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        fields: list[dict[str, str]] | None = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code
        self.fields = fields
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request data"


class AuthenticationError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class AuthorizationError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InternalError(ApiError):
    pass


def error_response(
    request: Request,
    status_code: int,
    message: str,
    exc: BaseException,
    fields: list[dict[str, str]] | None = None,
    error_code: str | None = None,
) -> JSONResponse:
    error: dict[str, Any] = {"status": status_code, "message": message}
    if error_code:
        error["code"] = error_code
    if fields:
        error["fields"] = fields

    settings = request.app.state.settings
    if settings.is_development:
        error["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )

    return JSONResponse(
        status_code=status_code, content={"success": False, "error": error}
    )


async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    else:
        logger.info(
            "Request rejected",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )
    return error_response(
        request, exc.status_code, exc.message, exc, exc.fields, exc.error_code
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # unknown routes, wrong methods and other framework-raised errors
    response = error_response(request, exc.status_code, str(exc.detail), exc)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [
        {
            "field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    message = ", ".join(f"{f['field']}: {f['message']}" for f in fields)
    return error_response(
        request, status.HTTP_400_BAD_REQUEST, message or "Invalid request data", exc, fields
    )


async def token_error_handler(request: Request, exc: JWTError):
    if isinstance(exc, ExpiredSignatureError):
        message = "Token expired"
    else:
        message = "Invalid token"
    logger.warning("Token rejected", path=request.url.path, reason=message)
    return error_response(request, status.HTTP_401_UNAUTHORIZED, message, exc)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity violation", path=request.url.path, error=str(exc.orig))
    return error_response(
        request, status.HTTP_400_BAD_REQUEST, "Duplicate field value entered", exc
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    if isinstance(exc, RedisError):
        logger.error("Cache unavailable", path=request.url.path, error=str(exc))
    else:
        logger.exception("Unhandled error", path=request.url.path)
    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", exc
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(JWTError, token_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(RedisError, unhandled_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

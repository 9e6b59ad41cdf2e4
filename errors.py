"""
Error types raised by the handlers and the JSON responses they map to.

Every error leaves the API as ``{"success": false, "message": ...}``.
Store failures are logged with their traceback and answered with a
generic message so driver details never reach the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Missing, malformed or duplicate input."""

    status_code = 400


class AuthError(ApiError):
    status_code = 401


class NotFoundError(ApiError):
    status_code = 404


class StoreError(ApiError):
    """The document store is unreachable or not initialised."""

    status_code = 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return error_response(exc.status_code, INTERNAL_ERROR_MESSAGE)
    return error_response(exc.status_code, exc.message)


async def store_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, INTERNAL_ERROR_MESSAGE)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Report the first offending field, e.g. "Missing field: body.email"
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        if first.get("type") == "missing":
            message = f"Missing field: {location}"
        else:
            message = f"Invalid field: {location}"
    return error_response(400, message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(PyMongoError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

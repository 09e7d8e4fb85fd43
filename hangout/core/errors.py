"""Domain errors raised by the services and mapped to JSON responses by the app."""

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger


class HangoutError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(HangoutError):
    status_code = 404


class ExpiredError(HangoutError):
    status_code = 400


class MissingInputError(HangoutError):
    status_code = 400


class MissingLocationError(HangoutError):
    status_code = 400


class BadRequestError(HangoutError):
    status_code = 400


class UpstreamError(HangoutError):
    status_code = 502


async def hangout_error_handler(request: Request, exc: HangoutError) -> JSONResponse:
    logger.warning(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "error": type(exc).__name__},
    )

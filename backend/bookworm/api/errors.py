"""Map domain errors to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from bookworm.core.errors import BookwormError, NotFoundError, ServiceError, ValidationError

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[BookwormError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ServiceError: status.HTTP_502_BAD_GATEWAY,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


async def bookworm_error_handler(request: Request, exc: BookwormError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": type(exc).__name__},
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "code": "ValueError"},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookwormError, bookworm_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)


__all__ = ["ERROR_STATUS", "setup_exception_handlers"]

"""Translate service errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from apps.api.services.errors import (
    ConcurrencyConflictError,
    ForbiddenError,
    HelpCenterError,
    InvalidTransitionError,
    NotFoundError,
    UniquenessExhaustedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[HelpCenterError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidTransitionError: status.HTTP_400_BAD_REQUEST,
    ValidationFailedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UniquenessExhaustedError: status.HTTP_409_CONFLICT,
    ConcurrencyConflictError: status.HTTP_409_CONFLICT,
}


def status_for(exc: HelpCenterError) -> int:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def help_center_error_handler(request: Request, exc: HelpCenterError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Unhandled help center error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HelpCenterError, help_center_error_handler)

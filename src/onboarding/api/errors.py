"""
Exception handlers - map domain errors to HTTP responses.

Every rejection is rendered as ``{"detail", "kind"}`` plus ``field`` when the
error names one, so clients can branch on ``kind`` without parsing messages.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from onboarding.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    OnboardingError,
    PreconditionRequiredError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[OnboardingError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    PreconditionRequiredError: status.HTTP_428_PRECONDITION_REQUIRED,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(error: OnboardingError) -> int:
    for error_type in type(error).__mro__:
        if error_type in STATUS_CODES:
            return STATUS_CODES[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def onboarding_error_handler(request: Request, exc: OnboardingError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    body = {"detail": exc.message, "kind": exc.kind}
    field = exc.details.get("field")
    if field is not None:
        body["field"] = field
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OnboardingError, onboarding_error_handler)

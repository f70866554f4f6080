"""
Domain exceptions - Semantic error types for onboarding.

Every rejection carries a stable machine-checkable ``kind`` plus a
human-readable message. HTTP status mapping lives in the API layer.
"""

from typing import Any


class OnboardingError(Exception):
    """Base class for onboarding domain errors."""

    kind = "onboarding_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(OnboardingError):
    """Malformed, missing or rejected input."""

    kind = "validation_error"


class ConflictError(OnboardingError):
    """A unique identity field is already taken."""

    kind = "conflict"

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field} already registered", {"field": field})


class NotFoundError(OnboardingError):
    """Unknown id or identity value."""

    kind = "not_found"


class UnauthorizedError(OnboardingError):
    """Bad credential or an account standing that forbids access."""

    kind = "unauthorized"


class ForbiddenError(OnboardingError):
    """Authenticated, but missing the required role."""

    kind = "forbidden"


class PreconditionRequiredError(OnboardingError):
    """Phone/email verification is still pending."""

    kind = "verification_required"


class InternalError(OnboardingError):
    """Unexpected store or transport failure."""

    kind = "internal_error"

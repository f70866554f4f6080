"""
Domain layer - Pure business logic with zero framework imports.

This package contains the onboarding workflows for individual consultants
and organizations: registration, verification, review, login and session
tokens. It defines its own port interfaces for infrastructure abstraction,
ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    OnboardingError,
    PreconditionRequiredError,
    UnauthorizedError,
    ValidationError,
)
from .login import LoginCredentials, LoginResolver, LoginResult
from .password_reset import PasswordResetService
from .principals import AccountStatus, Channel, Individual, Organization, Principal, PrincipalKind
from .registration import RegistrationService
from .review import ReviewService
from .sequence import SequenceAllocator
from .store import CredentialStore
from .tokens import SessionGuard, TokenIssuer

__all__ = [
    "AccountStatus",
    "Channel",
    "ConflictError",
    "CredentialStore",
    "ForbiddenError",
    "Individual",
    "InternalError",
    "LoginCredentials",
    "LoginResolver",
    "LoginResult",
    "NotFoundError",
    "OnboardingError",
    "Organization",
    "PasswordResetService",
    "PreconditionRequiredError",
    "Principal",
    "PrincipalKind",
    "RegistrationService",
    "ReviewService",
    "SequenceAllocator",
    "SessionGuard",
    "TokenIssuer",
    "UnauthorizedError",
    "ValidationError",
]

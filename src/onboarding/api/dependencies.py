"""
FastAPI dependencies - Dependency injection factories.

The domain services are wired once at startup (see ``build_services``) and
kept on ``app.state.services``; the Depends() factories below hand them to
routes and resolve the bearer token of the current request.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from onboarding.config.settings import Settings
from onboarding.domain.audit import AuditTrail, RequestContext
from onboarding.domain.exceptions import ForbiddenError, UnauthorizedError
from onboarding.domain.login import LoginResolver
from onboarding.domain.notifications import AccountNotifier, DeliveryQueue
from onboarding.domain.otp import OtpIssuer
from onboarding.domain.password_reset import PasswordResetService
from onboarding.domain.ports import (
    AuditLog,
    CounterRepository,
    FileUploader,
    NotificationDispatcher,
    PrincipalRepository,
)
from onboarding.domain.principals import Principal, PrincipalKind, utcnow
from onboarding.domain.registration import RegistrationService
from onboarding.domain.review import ReviewService
from onboarding.domain.sequence import SequenceAllocator
from onboarding.domain.store import CredentialStore
from onboarding.domain.tokens import SessionGuard, TokenIssuer


@dataclass
class Services:
    """Every domain service the HTTP layer talks to."""

    store: CredentialStore
    registration: RegistrationService
    review: ReviewService
    login: LoginResolver
    password_reset: PasswordResetService
    guard: SessionGuard
    uploader: FileUploader
    queue: DeliveryQueue
    audit: AuditTrail
    upload_folder: str = "consultants"


def build_services(
    settings: Settings,
    repository: PrincipalRepository,
    counters: CounterRepository,
    audit_log: AuditLog,
    dispatcher: NotificationDispatcher,
    uploader: FileUploader,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    """Wire the domain services around the given adapters."""
    store = CredentialStore(repository=repository, sequences=SequenceAllocator(counters), clock=clock)
    otp = OtpIssuer(
        otp_length=settings.otp_length,
        otp_ttl_seconds=settings.otp_ttl_seconds,
        reset_pin_length=settings.reset_pin_length,
        reset_pin_ttl_seconds=settings.reset_pin_ttl_seconds,
        clock=clock,
    )
    queue = DeliveryQueue(dispatcher, max_workers=settings.notification_workers)
    notifier = AccountNotifier(
        queue=queue,
        organization_name=settings.organization_name,
        otp_ttl_minutes=max(settings.otp_ttl_seconds // 60, 1),
        reset_pin_ttl_minutes=max(settings.reset_pin_ttl_seconds // 60, 1),
    )
    audit = AuditTrail(audit_log)
    tokens = TokenIssuer(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        ttl_seconds={
            PrincipalKind.INDIVIDUAL: settings.individual_token_ttl_seconds,
            PrincipalKind.ORGANIZATION: settings.organization_token_ttl_seconds,
        },
        clock=clock,
    )
    return Services(
        store=store,
        registration=RegistrationService(store, otp, notifier, audit, bcrypt_cost=settings.bcrypt_cost),
        review=ReviewService(store, notifier, audit),
        login=LoginResolver(store, otp, notifier, tokens, audit),
        password_reset=PasswordResetService(store, otp, notifier, audit, bcrypt_cost=settings.bcrypt_cost),
        guard=SessionGuard(tokens, store),
        uploader=uploader,
        queue=queue,
        audit=audit,
        upload_folder=settings.upload_folder,
    )


def get_services(request: Request) -> Services:
    """Services are created during app lifespan startup and stored in app.state."""
    return request.app.state.services


def get_request_context(request: Request) -> RequestContext:
    """Originating request metadata for audit entries."""
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        method=request.method,
        path=request.url.path,
    )


# Bearer token security scheme for OpenAPI documentation
bearer = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    services: Services = Depends(get_services),
) -> Principal:
    """
    Resolve the bearer token to the current principal.

    The account is re-loaded on every request, so a suspension takes effect
    immediately even for tokens that have not expired.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Authentication required")
    return services.guard.authenticate(credentials.credentials)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.has_role("admin"):
        raise ForbiddenError("The 'admin' role is required")
    return principal


def get_admin_context(
    request: Request, admin: Principal = Depends(require_admin)
) -> RequestContext:
    """Request metadata with the acting administrator recorded."""
    return replace(get_request_context(request), actor_id=admin.display_id)

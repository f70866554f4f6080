"""
Authentication routes.

Defines the /auth endpoints: registration, login, profile, password reset
and the administrative account-standing operations.
"""

from fastapi import APIRouter, Depends, status

from onboarding.api.dependencies import (
    Services,
    get_admin_context,
    get_current_principal,
    get_request_context,
    get_services,
)
from onboarding.api.models import (
    AccessUpdateRequest,
    AccountStandingRequest,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetConfirmation,
    PasswordResetRequest,
    QuickRegisterResponse,
    RegisterRequest,
    principal_kind,
)
from onboarding.domain.audit import RequestContext
from onboarding.domain.login import LoginCredentials
from onboarding.domain.principals import Principal

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=QuickRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing identity field"},
        409: {"model": ErrorResponse, "description": "Identity field already registered"},
    },
    summary="Register an account",
)
def register(
    body: RegisterRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> QuickRegisterResponse:
    """Quick registration; verification codes are sent to phone and email."""
    principal = services.registration.quick_register(
        principal_kind(body.type), body.identity(), body.password, context
    )
    return QuickRegisterResponse(
        message="Registration successful. Please verify your phone number and email.",
        user=principal.to_public_dict(),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials or account standing"},
        428: {"model": ErrorResponse, "description": "Phone/email verification required"},
    },
    summary="Authenticate",
)
def login(
    body: LoginRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> LoginResponse:
    """
    Login with email and password (or a PIN for legacy clients).

    - **type**: individual (default) or organization
    """
    credentials = LoginCredentials(
        email=body.email,
        password=body.password,
        pin=body.pin,
        kind=principal_kind(body.type) if body.type is not None else None,
    )
    result = services.login.login(credentials, context)
    return LoginResponse(
        user=result.principal.to_public_dict(),
        token=result.token.token,
        expires_in=result.token.expires_in,
    )


@router.get(
    "/profile",
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
    summary="Current principal's profile",
)
def profile(principal: Principal = Depends(get_current_principal)) -> dict:
    return principal.to_public_dict()


@router.post("/request-password-reset", response_model=MessageResponse, summary="Request password reset")
def request_password_reset(
    body: PasswordResetRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> MessageResponse:
    message = services.password_reset.request_password_reset(principal_kind(body.type), body.email, context)
    return MessageResponse(message=message)


@router.post(
    "/confirm-password-reset",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired reset PIN"}},
    summary="Confirm password reset with the PIN",
)
def confirm_password_reset(
    body: PasswordResetConfirmation,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> MessageResponse:
    services.password_reset.confirm_password_reset(
        principal_kind(body.type), body.email, body.reset_token, body.new_password, context
    )
    return MessageResponse(message="Password has been successfully reset.")


@router.post(
    "/suspend",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
    summary="Suspend an account (admin)",
)
def suspend(
    body: AccountStandingRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> MessageResponse:
    principal = services.review.suspend(principal_kind(body.type), body.email, body.reason, context)
    return MessageResponse(message=f"User {principal.contact_email} has been suspended.")


@router.post(
    "/activate",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
    summary="Reactivate an account (admin)",
)
def activate(
    body: AccountStandingRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> MessageResponse:
    principal = services.review.activate(principal_kind(body.type), body.email, context)
    return MessageResponse(message=f"User {principal.contact_email} has been reactivated.")


@router.patch("/access", summary="Replace roles and permissions (admin)")
def update_access(
    body: AccessUpdateRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    permissions = (
        {path: set(actions) for path, actions in body.permissions.items()}
        if body.permissions is not None
        else None
    )
    principal = services.review.update_access(
        principal_kind(body.type), body.email, body.roles, permissions, context
    )
    return principal.to_public_dict()

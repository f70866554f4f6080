"""
Consultant and organization onboarding routes.

Quick registration, OTP verification and resend, document-backed full
registration, and the administrative review of pending applications.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData

from onboarding.api.dependencies import Services, get_admin_context, get_request_context, get_services
from onboarding.api.forms import check_documents, parse_registration_form, upload_documents
from onboarding.api.models import (
    ErrorResponse,
    OrganizationQuickRegisterRequest,
    QuickRegisterRequest,
    QuickRegisterResponse,
    RejectRequest,
    ResendOtpRequest,
    ResendOtpResponse,
    VerifyOtpRequest,
    principal_kind,
)
from onboarding.domain.audit import RequestContext
from onboarding.domain.principals import PrincipalKind
from onboarding.domain.variants import variant_for

router = APIRouter(prefix="/consultants", tags=["consultants"])

_CONFLICT_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or malformed field"},
    409: {"model": ErrorResponse, "description": "Identity field already registered"},
}


@router.post(
    "/quick-register",
    response_model=QuickRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_CONFLICT_RESPONSES,
    summary="Quick registration of a consultant",
)
def quick_register(
    body: QuickRegisterRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> QuickRegisterResponse:
    identity = body.model_dump(exclude={"password"})
    principal = services.registration.quick_register(PrincipalKind.INDIVIDUAL, identity, body.password, context)
    return QuickRegisterResponse(
        message="Registration successful. Please verify your phone number and email.",
        user=principal.to_public_dict(),
    )


@router.post(
    "/organization/quick-register",
    response_model=QuickRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_CONFLICT_RESPONSES,
    summary="Quick registration of an organization",
)
def quick_register_organization(
    body: OrganizationQuickRegisterRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> QuickRegisterResponse:
    identity = body.model_dump(exclude={"password"})
    principal = services.registration.quick_register(
        PrincipalKind.ORGANIZATION, identity, body.password, context
    )
    return QuickRegisterResponse(
        message="Registration successful. Please verify your phone number and email.",
        user=principal.to_public_dict(),
    )


@router.post(
    "/verify-otp",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid, expired or already-used code"},
        404: {"model": ErrorResponse, "description": "Account not found"},
    },
    summary="Verify the phone or email code",
)
def verify_otp(
    body: VerifyOtpRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    principal = services.registration.verify_otp(
        principal_kind(body.type), body.email, body.pin, body.verification_type, context
    )
    channel = body.verification_type.value.capitalize()
    return {"message": f"{channel} verified successfully", "user": principal.to_public_dict()}


@router.post(
    "/resend-otp",
    response_model=ResendOtpResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
    summary="Resend codes for unverified channels",
)
def resend_otp(
    body: ResendOtpRequest,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> ResendOtpResponse:
    channels = services.registration.resend_otp(principal_kind(body.type), body.email, context)
    message = "Verification codes resent" if channels else "Phone and email are already verified"
    return ResendOtpResponse(message=message, channels=channels)


def _register_from_form(
    services: Services, kind: PrincipalKind, form: FormData, context: RequestContext
) -> dict:
    variant = variant_for(kind)
    submission = parse_registration_form(variant, form)
    check_documents(variant, submission.files)
    documents, uploaded = upload_documents(variant, submission.files, services.uploader, services.upload_folder)
    principal = services.registration.register(
        kind,
        submission.fields,
        documents,
        password=submission.password,
        profile={**submission.profile, **uploaded},
        context=context,
    )
    return {
        "message": "Registration received. Your application is under review.",
        "user": principal.to_public_dict(),
    }


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    responses=_CONFLICT_RESPONSES,
    summary="Full consultant registration (multipart, CV + academic certificates)",
)
async def register(
    request: Request,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    async with request.form() as form:
        return await run_in_threadpool(_register_from_form, services, PrincipalKind.INDIVIDUAL, form, context)


@router.post(
    "/organization/register",
    status_code=status.HTTP_201_CREATED,
    responses=_CONFLICT_RESPONSES,
    summary="Full organization registration (multipart, four certificates)",
)
async def register_organization(
    request: Request,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    async with request.form() as form:
        return await run_in_threadpool(_register_from_form, services, PrincipalKind.ORGANIZATION, form, context)


@router.get("/pending", summary="Pending consultant applications (admin)")
def pending(
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> list[dict]:
    return [principal.to_public_dict() for principal in services.review.pending(PrincipalKind.INDIVIDUAL)]


@router.get("/organization/pending", summary="Pending organization applications (admin)")
def pending_organizations(
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> list[dict]:
    return [principal.to_public_dict() for principal in services.review.pending(PrincipalKind.ORGANIZATION)]


@router.patch("/{principal_id}/approve", summary="Approve a consultant (admin)")
def approve(
    principal_id: UUID,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    return services.review.approve(PrincipalKind.INDIVIDUAL, principal_id, context).to_public_dict()


@router.patch("/{principal_id}/reject", summary="Reject a consultant (admin)")
def reject(
    principal_id: UUID,
    body: RejectRequest | None = None,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    reason = body.reason if body else None
    return services.review.reject(PrincipalKind.INDIVIDUAL, principal_id, reason, context).to_public_dict()


@router.patch("/organization/{principal_id}/approve", summary="Approve an organization (admin)")
def approve_organization(
    principal_id: UUID,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    return services.review.approve(PrincipalKind.ORGANIZATION, principal_id, context).to_public_dict()


@router.patch("/organization/{principal_id}/reject", summary="Reject an organization (admin)")
def reject_organization(
    principal_id: UUID,
    body: RejectRequest | None = None,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    reason = body.reason if body else None
    return services.review.reject(PrincipalKind.ORGANIZATION, principal_id, reason, context).to_public_dict()

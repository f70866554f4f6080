"""
Account maintenance routes.

Administrative listing, lookup and editing of individual and organization
accounts.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from onboarding.api.dependencies import Services, get_admin_context, get_services
from onboarding.api.models import AccountPage, ErrorResponse, PrincipalType, ProfileUpdateRequest, principal_kind
from onboarding.domain.audit import RequestContext
from onboarding.domain.principals import AccountStatus

router = APIRouter(tags=["users"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Account not found"}}


@router.get("/users", response_model=AccountPage, summary="List accounts, newest first (admin)")
def list_accounts(
    principal_type: PrincipalType = Query("individual", alias="type"),
    account_status: AccountStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> AccountPage:
    principals, total = services.review.accounts(principal_kind(principal_type), account_status, page, limit)
    return AccountPage(
        data=[principal.to_public_dict() for principal in principals], total=total, page=page, limit=limit
    )


@router.get(
    "/user/national-id/{national_id}", responses=_NOT_FOUND, summary="Find a consultant by national id (admin)"
)
def account_by_national_id(
    national_id: str,
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    return services.review.account_by_national_id(national_id).to_public_dict()


@router.get("/user/{principal_id}", responses=_NOT_FOUND, summary="Get an account by id (admin)")
def account(
    principal_id: UUID,
    principal_type: PrincipalType = Query("individual", alias="type"),
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    return services.review.account(principal_kind(principal_type), principal_id).to_public_dict()


@router.patch(
    "/user/{principal_id}",
    responses={
        **_NOT_FOUND,
        400: {"model": ErrorResponse, "description": "Unknown, immutable or blank field"},
        409: {"model": ErrorResponse, "description": "Identity field already registered"},
    },
    summary="Update account details (admin)",
)
def update_account(
    principal_id: UUID,
    body: ProfileUpdateRequest,
    principal_type: PrincipalType = Query("individual", alias="type"),
    services: Services = Depends(get_services),
    context: RequestContext = Depends(get_admin_context),
) -> dict:
    principal = services.review.update_profile(
        principal_kind(principal_type), principal_id, body.changes(), context
    )
    return {"message": "Account updated", "user": principal.to_public_dict()}

"""
Administrative review of applications, account standing and maintenance.

approve/reject operate only on pending applications; the status is
re-checked at write time so a concurrent change wins over a stale decision.
suspend/activate move an account to suspended/active from whatever status
it has; they do not guard against repeating the same transition.

Administrators can also list, look up and edit accounts. Edits re-check
uniqueness of identity fields and never touch the display id.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from .audit import AuditEvent, AuditTrail, RequestContext, Severity
from .credentials import normalize_email
from .exceptions import NotFoundError, ValidationError
from .notifications import AccountNotifier
from .principals import AccountStatus, Principal, PrincipalKind
from .store import CredentialStore
from .variants import INDIVIDUAL, variant_for

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = {
    "id": "id",
    "display_id": "displayId",
    "employee_id": "employeeId",
    "organization_id": "organizationId",
}


@dataclass
class ReviewService:
    store: CredentialStore
    notifier: AccountNotifier
    audit: AuditTrail

    def pending(self, kind: PrincipalKind | str) -> list[Principal]:
        """Applications waiting for review."""
        return self.store.list_by_status(variant_for(kind), AccountStatus.PENDING)

    def approve(
        self, kind: PrincipalKind | str, principal_id: UUID, context: RequestContext | None = None
    ) -> Principal:
        variant = variant_for(kind)
        principal = self.store.get(variant, principal_id)
        if principal.status is not AccountStatus.PENDING:
            raise ValidationError(f"{variant.label} application is not pending")

        principal.status = AccountStatus.ACTIVE
        if not self.store.save_if_status(variant, principal, AccountStatus.PENDING, ("status",)):
            raise ValidationError(f"{variant.label} application is not pending")
        self.notifier.approved(principal)
        self.audit.record(
            AuditEvent.APPLICATION_APPROVED,
            f"{variant.label} approved: {principal.display_name} ({principal.contact_email})",
            Severity.INFO,
            principal.display_id,
            context,
        )
        return principal

    def reject(
        self,
        kind: PrincipalKind | str,
        principal_id: UUID,
        reason: str | None = None,
        context: RequestContext | None = None,
    ) -> Principal:
        """
        Reject a pending application.

        Individuals end up rejected, organizations inactive. Organizations
        must be given a reason.
        """
        variant = variant_for(kind)
        reason = reason.strip() if reason else None
        if variant.reject_reason_required and not reason:
            raise ValidationError("A rejection reason is required", {"field": "reason"})

        principal = self.store.get(variant, principal_id)
        if principal.status is not AccountStatus.PENDING:
            raise ValidationError(f"{variant.label} application is not pending")

        principal.status = variant.rejected_status
        if not self.store.save_if_status(variant, principal, AccountStatus.PENDING, ("status",)):
            raise ValidationError(f"{variant.label} application is not pending")
        self.notifier.rejected(principal, reason)
        self.audit.record(
            AuditEvent.APPLICATION_REJECTED,
            f"{variant.label} rejected: {principal.contact_email}"
            + (f" - reason: {reason}" if reason else ""),
            Severity.WARNING,
            principal.display_id,
            context,
        )
        return principal

    def suspend(
        self,
        kind: PrincipalKind | str,
        email: str,
        reason: str | None = None,
        context: RequestContext | None = None,
    ) -> Principal:
        variant = variant_for(kind)
        principal = self.store.get_by_email(variant, email)
        principal.status = AccountStatus.SUSPENDED
        self.store.save(variant, principal, ("status",))
        self.audit.record(
            AuditEvent.ACCOUNT_SUSPENDED,
            f"{principal.contact_email} suspended" + (f": {reason}" if reason else ""),
            Severity.WARNING,
            principal.display_id,
            context,
        )
        return principal

    def activate(
        self, kind: PrincipalKind | str, email: str, context: RequestContext | None = None
    ) -> Principal:
        variant = variant_for(kind)
        principal = self.store.get_by_email(variant, email)
        principal.status = AccountStatus.ACTIVE
        self.store.save(variant, principal, ("status",))
        self.audit.record(
            AuditEvent.ACCOUNT_ACTIVATED,
            f"{principal.contact_email} reactivated",
            Severity.INFO,
            principal.display_id,
            context,
        )
        return principal

    def update_access(
        self,
        kind: PrincipalKind | str,
        email: str,
        roles: list[str] | None = None,
        permissions: dict[str, set[str]] | None = None,
        context: RequestContext | None = None,
    ) -> Principal:
        """Privileged replacement of roles and/or permissions."""
        variant = variant_for(kind)
        if roles is not None and not roles:
            raise ValidationError("At least one role is required", {"field": "roles"})

        principal = self.store.get_by_email(variant, email)
        if roles is not None:
            principal.roles = list(dict.fromkeys(roles))
        if permissions is not None:
            principal.permissions = {path: set(actions) for path, actions in permissions.items()}
        self.store.save(variant, principal, ("roles", "permissions"))
        self.audit.record(
            AuditEvent.ACCESS_UPDATED,
            f"Access updated for {principal.contact_email}: roles={principal.roles}",
            Severity.WARNING,
            principal.display_id,
            context,
        )
        return principal

    def accounts(
        self,
        kind: PrincipalKind | str,
        status: AccountStatus | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Principal], int]:
        """One page of accounts, newest first, with the total matching ``status``."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be at least 1")
        return self.store.list_page(variant_for(kind), status, page, limit)

    def account(self, kind: PrincipalKind | str, principal_id: UUID) -> Principal:
        return self.store.get(variant_for(kind), principal_id)

    def account_by_national_id(self, national_id: str) -> Principal:
        principal = self.store.find_by_identity(INDIVIDUAL, "national_id", national_id.strip())
        if principal is None:
            raise NotFoundError(f"{INDIVIDUAL.label} not found")
        return principal

    def update_profile(
        self,
        kind: PrincipalKind | str,
        principal_id: UUID,
        changes: dict[str, Any],
        context: RequestContext | None = None,
    ) -> Principal:
        """
        Edit identity and profile details of an existing account.

        Identity fields are re-checked for uniqueness against every other
        account; ``profile`` entries are merged into the stored profile.
        The display id never changes.

        Raises:
            NotFoundError: no account with this id
            ValidationError: unknown or immutable field, or a blank value
            ConflictError: a new identity value belongs to another account
        """
        variant = variant_for(kind)
        editable = tuple(dict.fromkeys(variant.unique_fields + variant.complete_fields))
        updates: dict[str, Any] = {}
        profile = None
        for attr, value in changes.items():
            if attr in IMMUTABLE_FIELDS:
                name = IMMUTABLE_FIELDS[attr]
                raise ValidationError(f"{name} cannot be changed", {"field": name})
            if attr == "profile":
                profile = dict(value or {})
                continue
            if attr not in editable:
                name = variant.wire_name(attr)
                raise ValidationError(f"{name} cannot be updated", {"field": name})
            if isinstance(value, str):
                value = value.strip()
                if attr == variant.email_field:
                    value = normalize_email(value)
            if not value:
                name = variant.wire_name(attr)
                raise ValidationError(f"{name} cannot be empty", {"field": name})
            updates[attr] = value

        principal = self.store.get(variant, principal_id)
        self.store.check_unique(variant, updates, exclude=principal)

        fields = list(updates)
        for attr, value in updates.items():
            setattr(principal, attr, value)
        if profile is not None:
            principal.profile.update(profile)
            fields.append("profile")
        if fields:
            self.store.save(variant, principal, fields)

        self.audit.record(
            AuditEvent.PROFILE_UPDATED,
            f"{variant.label} {principal.display_name} details updated: "
            + (", ".join(variant.wire_name(attr) for attr in fields) or "no changes"),
            Severity.INFO,
            principal.display_id,
            context,
        )
        return principal

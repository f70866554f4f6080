"""
Password reset via a one-time PIN.

Requesting a reset answers identically for known and unknown emails. The PIN
is single-use: a successful confirmation clears it.
"""

import logging
from dataclasses import dataclass

from .audit import AuditEvent, AuditTrail, RequestContext, Severity
from .credentials import hash_password
from .exceptions import ValidationError
from .notifications import AccountNotifier
from .otp import OtpIssuer
from .principals import PrincipalKind
from .store import CredentialStore
from .variants import variant_for

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset PIN has been sent."


@dataclass
class PasswordResetService:
    store: CredentialStore
    otp: OtpIssuer
    notifier: AccountNotifier
    audit: AuditTrail
    bcrypt_cost: int = 10

    def request_password_reset(
        self, kind: PrincipalKind | str, email: str, context: RequestContext | None = None
    ) -> str:
        """Issue a reset PIN when the account exists; always return the same message."""
        variant = variant_for(kind)
        principal = self.store.find_by_email(variant, email)
        if principal is None:
            logger.info("Password reset requested for unknown %s email", variant.kind.value)
            return RESET_REQUESTED_MESSAGE

        otp = self.otp.issue_reset(principal)
        self.store.save(variant, principal, ("reset_otp",))
        self.notifier.reset_pin(principal, otp)
        self.audit.record(
            AuditEvent.PASSWORD_RESET_REQUESTED,
            f"Password reset requested for {principal.contact_email}",
            Severity.INFO,
            principal.display_id,
            context,
        )
        return RESET_REQUESTED_MESSAGE

    def confirm_password_reset(
        self,
        kind: PrincipalKind | str,
        email: str,
        reset_token: str,
        new_password: str,
        context: RequestContext | None = None,
    ) -> None:
        """
        Set a new password if ``reset_token`` matches an unexpired PIN.

        Raises:
            ValidationError: unknown email, mismatched or expired PIN
        """
        variant = variant_for(kind)
        principal = self.store.find_by_email(variant, email)
        if principal is None or not self.otp.is_usable(principal.reset_otp, reset_token):
            self.audit.record(
                AuditEvent.PASSWORD_RESET_FAILED,
                f"Invalid or expired reset PIN for {email}",
                Severity.WARNING,
                principal.display_id if principal else None,
                context,
            )
            raise ValidationError("Invalid or expired reset PIN", {"field": "resetToken"})

        principal.password_hash = hash_password(new_password, self.bcrypt_cost, field="newPassword")
        principal.reset_otp = None
        self.store.save(variant, principal, ("password_hash", "reset_otp"))
        self.audit.record(
            AuditEvent.PASSWORD_RESET,
            f"Password reset for {principal.contact_email}",
            Severity.INFO,
            principal.display_id,
            context,
        )

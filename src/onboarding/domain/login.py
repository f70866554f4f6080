"""
Login resolution for both principal kinds.

Login Sequence
==============

1. Resolve the principal by email for the requested kind
   (absent -> UnauthorizedError "no account").
2. Quick registration with an unverified channel -> codes are re-sent and
   PreconditionRequiredError is raised.
3. Inactive, suspended, terminated or rejected -> UnauthorizedError with the
   status-specific message, whatever secret was presented.
4. Verify the secret: password against the bcrypt hash, or (legacy clients
   that send only a PIN) the one-time PIN.
5. Pending accounts additionally need a matching one-time PIN; a login
   without one sends a fresh PIN and is refused.
6. Consume the PIN, only while the stored status is still the one read in
   step 3, then issue a session token.

Every failure is written to the audit log with the secret masked before the
error is raised.
"""

import logging
from dataclasses import dataclass
from typing import NoReturn

from .audit import AuditEvent, AuditTrail, RequestContext, Severity
from .credentials import mask_secret, verify_password
from .exceptions import OnboardingError, PreconditionRequiredError, UnauthorizedError, ValidationError
from .notifications import AccountNotifier
from .otp import OtpIssuer
from .principals import DENIED_STATUS_MESSAGES, AccountStatus, Channel, Principal, PrincipalKind
from .store import CredentialStore
from .tokens import IssuedToken, TokenIssuer
from .variants import Variant, variant_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginCredentials:
    """
    A login attempt.

    ``kind`` is None for legacy clients, which are resolved as individuals
    and may present a PIN instead of a password.
    """

    email: str
    password: str | None = None
    pin: str | None = None
    kind: PrincipalKind | None = None


@dataclass(frozen=True)
class LoginResult:
    principal: Principal
    token: IssuedToken


@dataclass
class LoginResolver:
    store: CredentialStore
    otp: OtpIssuer
    notifier: AccountNotifier
    tokens: TokenIssuer
    audit: AuditTrail

    def login(self, credentials: LoginCredentials, context: RequestContext | None = None) -> LoginResult:
        variant = variant_for(credentials.kind or PrincipalKind.INDIVIDUAL)
        if not credentials.password and not credentials.pin:
            raise ValidationError("A password or PIN is required", {"field": "password"})

        principal = self.store.find_by_email(variant, credentials.email)
        if principal is None:
            verify_password(credentials.password or credentials.pin, None)
            self._fail(credentials, None, UnauthorizedError("No account found with this email"), context)

        if principal.awaiting_verification:
            self._resend_codes(variant, principal)
            unverified = [c.value for c in Channel if not principal.is_verified(c)]
            self._fail(
                credentials,
                principal,
                PreconditionRequiredError(
                    "Please verify your phone number and email before logging in. "
                    "New verification codes have been sent.",
                    {"unverified": unverified},
                ),
                context,
            )

        denial = DENIED_STATUS_MESSAGES.get(principal.status)
        if denial is not None:
            self._fail(credentials, principal, UnauthorizedError(denial), context)
        if principal.status not in (AccountStatus.ACTIVE, AccountStatus.PENDING):
            self._fail(
                credentials, principal, UnauthorizedError("Account status does not permit login"), context
            )

        if credentials.password:
            if not verify_password(credentials.password, principal.password_hash):
                self._fail(credentials, principal, UnauthorizedError("Invalid credentials"), context)
        elif not self.otp.is_usable(principal.reset_otp, credentials.pin):
            self._fail(credentials, principal, UnauthorizedError("Invalid credentials"), context)

        if principal.status is AccountStatus.PENDING:
            if not credentials.pin:
                self._send_pin(variant, principal)
                self._fail(
                    credentials,
                    principal,
                    UnauthorizedError(
                        "Your account is pending approval. Enter the PIN sent to you to continue."
                    ),
                    context,
                )
            if not self.otp.is_usable(principal.reset_otp, credentials.pin):
                self._fail(credentials, principal, UnauthorizedError("Invalid or expired PIN"), context)

        if credentials.pin:
            principal.reset_otp = None
            if not self.store.save_if_status(variant, principal, principal.status, ("reset_otp",)):
                self._fail(
                    credentials,
                    principal,
                    UnauthorizedError("Account status changed during login. Please try again."),
                    context,
                )

        token = self.tokens.issue(principal)
        self.audit.record(
            AuditEvent.LOGIN_SUCCESS,
            f"{variant.label} logged in successfully: {principal.contact_email}",
            Severity.INFO,
            principal.display_id,
            context,
        )
        return LoginResult(principal=principal, token=token)

    def _resend_codes(self, variant: Variant, principal: Principal) -> None:
        codes = self.otp.issue_unverified(principal)
        self.store.save(variant, principal, [channel.otp_attr for channel in codes])
        self.notifier.verification_codes(principal, codes)

    def _send_pin(self, variant: Variant, principal: Principal) -> None:
        otp = self.otp.issue_reset(principal)
        self.store.save(variant, principal, ("reset_otp",))
        self.notifier.reset_pin(principal, otp)

    def _fail(
        self,
        credentials: LoginCredentials,
        principal: Principal | None,
        error: OnboardingError,
        context: RequestContext | None,
    ) -> NoReturn:
        secret = credentials.password or credentials.pin
        detail = (
            f"Failed login for {credentials.email} "
            f"(type={credentials.kind.value if credentials.kind else 'legacy'}, "
            f"secret={mask_secret(secret)}): {error.message}"
        )
        logger.warning(detail)
        self.audit.record(
            AuditEvent.LOGIN_FAILED,
            detail,
            Severity.WARNING,
            principal.display_id if principal else None,
            context,
        )
        raise error

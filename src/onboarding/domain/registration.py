"""
Registration domain service - two-phase onboarding for both principal kinds.

Registration Paths
==================

Quick registration (minimal identity + password):
    new identity                    -> created: quick, pending_verification,
                                       phone and email codes issued
    matches a quick, unverified one -> updated in place (password replaced,
                                       codes regenerated)
    matches anything else           -> ConflictError naming the first
                                       colliding field (email, phone, id...)

Verification (one channel at a time):
    pending_verification --(phone + email verified)--> pending

Full registration (complete profile + supporting documents):
    all unique-field checks run in parallel; any hit blocks the operation
    new identity                    -> created: complete, pending
    matches a quick record by email -> promoted: complete, pending,
                                       verification codes discarded

Uniqueness is check-then-write. A concurrent duplicate that slips past the
checks is stopped by the store's unique index and reported with the same
ConflictError.
"""

import logging
from dataclasses import dataclass
from typing import Any

from .audit import AuditEvent, AuditTrail, RequestContext, Severity
from .credentials import hash_password, normalize_email
from .exceptions import OnboardingError, ValidationError
from .notifications import AccountNotifier
from .otp import OtpIssuer
from .principals import AccountStatus, Channel, Principal, PrincipalKind, RegistrationStatus
from .store import CredentialStore
from .variants import Variant, variant_for

logger = logging.getLogger(__name__)


@dataclass
class RegistrationService:
    """
    Domain service for principal registration and verification.

    Orchestrates uniqueness checks, password hashing, code issuance,
    persistence, notifications and audit entries.
    """

    store: CredentialStore
    otp: OtpIssuer
    notifier: AccountNotifier
    audit: AuditTrail
    bcrypt_cost: int = 10

    def quick_register(
        self,
        kind: PrincipalKind | str,
        identity: dict[str, Any],
        password: str,
        context: RequestContext | None = None,
    ) -> Principal:
        """
        Create (or retry) a quick registration and send both verification codes.

        Args:
            kind: principal variant
            identity: unique field values keyed by attribute name
            password: plaintext password (hashed before storage)

        Returns:
            The stored principal, status pending_verification

        Raises:
            ValidationError: a required field is missing
            ConflictError: an identity value belongs to another account
        """
        variant = variant_for(kind)
        identity = self._clean(variant, identity, variant.unique_fields)
        self._require(variant, identity, variant.quick_fields)

        existing = self._retryable_match(variant, identity)
        password_hash = hash_password(password, self.bcrypt_cost)

        if existing is None:
            principal = variant.new_principal(
                **identity,
                password_hash=password_hash,
                status=AccountStatus.PENDING_VERIFICATION,
                registration_status=RegistrationStatus.QUICK,
            )
            codes = self.otp.issue_unverified(principal)
            self.store.create(variant, principal)
            detail = f"New {variant.label.lower()} quick registration: {principal.contact_email}"
        else:
            principal = existing
            previous = {Channel.PHONE: principal.contact_phone, Channel.EMAIL: principal.contact_email}
            for attr, value in identity.items():
                setattr(principal, attr, value)
            self._reset_changed_channels(principal, previous)
            principal.password_hash = password_hash
            codes = self.otp.issue_unverified(principal)
            if not self.store.save_if_status(variant, principal, AccountStatus.PENDING_VERIFICATION):
                raise variant.conflict(variant.email_field)
            detail = f"Quick registration retried: {principal.contact_email}"

        self.notifier.verification_codes(principal, codes)
        self.audit.record(
            AuditEvent.QUICK_REGISTRATION, detail, Severity.INFO, principal.display_id, context
        )
        return principal

    def register(
        self,
        kind: PrincipalKind | str,
        fields: dict[str, Any],
        documents: dict[str, Any],
        password: str | None = None,
        profile: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> Principal:
        """
        Full registration backed by supporting documents.

        Documents are already uploaded; only their URLs are recorded.
        A quick record with the same email is promoted instead of duplicated.

        Raises:
            ValidationError: a required field or document is missing
            ConflictError: an identity value belongs to another account
        """
        variant = variant_for(kind)
        try:
            principal = self._register(variant, fields, documents, password, profile or {})
        except OnboardingError as e:
            self.audit.record(
                AuditEvent.REGISTRATION_FAILED,
                f"{variant.label} registration failed for {fields.get(variant.email_field)}: {e.message}",
                Severity.ERROR,
                None,
                context,
            )
            raise

        self.notifier.registration_received(principal)
        self.audit.record(
            AuditEvent.REGISTRATION,
            f"{variant.label} registered: {principal.display_name} ({principal.contact_email})",
            Severity.INFO,
            principal.display_id,
            context,
        )
        return principal

    def _register(
        self,
        variant: Variant,
        fields: dict[str, Any],
        documents: dict[str, Any],
        password: str | None,
        profile: dict[str, Any],
    ) -> Principal:
        fields = self._clean(variant, fields, variant.unique_fields + variant.complete_fields)
        self._require(variant, fields, variant.complete_fields)
        self._require(variant, documents, variant.required_documents)

        candidate = self.store.find_by_email(variant, fields[variant.email_field])
        if candidate is not None and candidate.registration_status is not RegistrationStatus.QUICK:
            candidate = None
        self.store.check_unique(variant, fields, exclude=candidate)

        if candidate is None:
            if not password:
                raise ValidationError("password is required", {"field": "password"})
            principal = variant.new_principal(
                **fields,
                password_hash=hash_password(password, self.bcrypt_cost),
                status=AccountStatus.PENDING,
                registration_status=RegistrationStatus.COMPLETE,
                profile=dict(profile),
                documents=dict(documents),
            )
            return self.store.create(variant, principal)

        principal = candidate
        read_status = principal.status
        for attr, value in fields.items():
            setattr(principal, attr, value)
        principal.profile.update(profile)
        principal.documents.update(documents)
        principal.password_hash = hash_password(password, self.bcrypt_cost) if password else None
        principal.phone_otp = None
        principal.email_otp = None
        principal.registration_status = RegistrationStatus.COMPLETE
        principal.status = AccountStatus.PENDING
        logger.info("Promoting quick registration %s to complete", principal.display_id)
        if not self.store.save_if_status(variant, principal, read_status):
            raise variant.conflict(variant.email_field)
        return principal

    def verify_otp(
        self,
        kind: PrincipalKind | str,
        email: str,
        code: str,
        channel: Channel | str,
        context: RequestContext | None = None,
    ) -> Principal:
        """
        Consume the verification code of one channel.

        Once both channels are verified the principal moves from
        pending_verification to pending (ready for review). Failures leave
        the stored code untouched so the call can be retried.

        Raises:
            NotFoundError: no principal with this email
            ValidationError: channel already verified, code mismatch, or
                code expired
        """
        variant = variant_for(kind)
        channel = Channel(channel)
        principal = self.store.get_by_email(variant, email)

        if principal.is_verified(channel):
            raise ValidationError(f"{channel.value.capitalize()} already verified", {"channel": channel.value})

        otp = principal.otp_for(channel)
        if otp is None or not otp.matches(code):
            self.audit.record(
                AuditEvent.OTP_VERIFICATION_FAILED,
                f"Invalid {channel.value} code for {principal.contact_email}",
                Severity.WARNING,
                principal.display_id,
                context,
            )
            raise ValidationError("Invalid verification code", {"channel": channel.value})
        if otp.is_expired(self.otp.clock()):
            raise ValidationError("Verification code has expired", {"channel": channel.value})

        principal.mark_verified(channel)
        self.store.save(variant, principal, (channel.verified_attr, channel.otp_attr))
        principal = self._advance_when_verified(variant, principal)

        self.audit.record(
            AuditEvent.OTP_VERIFIED,
            f"{channel.value.capitalize()} verified for {principal.contact_email}",
            Severity.INFO,
            principal.display_id,
            context,
        )
        return principal

    def resend_otp(
        self,
        kind: PrincipalKind | str,
        email: str,
        context: RequestContext | None = None,
    ) -> list[Channel]:
        """
        Regenerate and redeliver codes for channels not verified yet.

        Returns:
            The channels that received a fresh code (empty when both are
            already verified)
        """
        variant = variant_for(kind)
        principal = self.store.get_by_email(variant, email)
        codes = self.otp.issue_unverified(principal)
        if not codes:
            return []
        self.store.save(variant, principal, [channel.otp_attr for channel in codes])
        self.notifier.verification_codes(principal, codes)
        self.audit.record(
            AuditEvent.OTP_RESENT,
            f"Verification codes resent to {principal.contact_email}: "
            + ", ".join(channel.value for channel in codes),
            Severity.INFO,
            principal.display_id,
            context,
        )
        return list(codes)

    def ensure_admin(self, email: str, password: str) -> Principal:
        """Create an active, verified administrator unless the email is taken."""
        variant = variant_for(PrincipalKind.INDIVIDUAL)
        existing = self.store.find_by_email(variant, email)
        if existing is not None:
            if not existing.has_role("admin"):
                logger.warning("Bootstrap admin %s exists without the admin role", existing.contact_email)
            return existing

        principal = variant.new_principal(
            email=normalize_email(email),
            password_hash=hash_password(password, self.bcrypt_cost),
            status=AccountStatus.ACTIVE,
            registration_status=RegistrationStatus.COMPLETE,
            is_email_verified=True,
            is_phone_verified=True,
            roles=["admin"],
        )
        self.store.create(variant, principal)
        logger.info("Bootstrap admin %s created as %s", principal.email, principal.display_id)
        return principal

    def _retryable_match(self, variant: Variant, identity: dict[str, Any]) -> Principal | None:
        """
        Find the quick, unverified record this registration may overwrite.

        Only records still waiting for verification qualify; one an
        administrator has since suspended or rejected is a conflict like any
        other. Fields are checked in priority order; the first field that
        collides with a non-retryable record (or with a second, different
        record) is the one reported.
        """
        match: Principal | None = None
        for attr in variant.unique_fields:
            value = identity.get(attr)
            if not value:
                continue
            existing = self.store.find_by_identity(variant, attr, value)
            if existing is None:
                continue
            retryable = (
                existing.awaiting_verification and existing.status is AccountStatus.PENDING_VERIFICATION
            )
            if not retryable or (match is not None and existing.id != match.id):
                raise variant.conflict(attr)
            match = existing
        return match

    @staticmethod
    def _reset_changed_channels(principal: Principal, previous: dict[Channel, str | None]) -> None:
        """A channel whose address changed has to be verified again."""
        current = {Channel.PHONE: principal.contact_phone, Channel.EMAIL: principal.contact_email}
        for channel, value in previous.items():
            if current[channel] != value and principal.is_verified(channel):
                logger.info("%s of %s changed; verification reset", channel.value, principal.display_id)
                setattr(principal, channel.verified_attr, False)

    def _advance_when_verified(self, variant: Variant, principal: Principal) -> Principal:
        """Move a fully verified principal from pending_verification to pending."""
        current = self.store.get(variant, principal.id)
        if current.is_fully_verified and current.status is AccountStatus.PENDING_VERIFICATION:
            current.status = AccountStatus.PENDING
            if not self.store.save_if_status(
                variant, current, AccountStatus.PENDING_VERIFICATION, ("status",)
            ):
                current = self.store.get(variant, principal.id)
        return current

    @staticmethod
    def _clean(variant: Variant, values: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for attr in allowed:
            value = values.get(attr)
            if isinstance(value, str):
                value = value.strip()
                if attr == variant.email_field:
                    value = normalize_email(value)
            if value:
                cleaned[attr] = value
        return cleaned

    @staticmethod
    def _require(variant: Variant, values: dict[str, Any], required: tuple[str, ...]) -> None:
        for attr in required:
            if not values.get(attr):
                name = variant.wire_name(attr)
                raise ValidationError(f"{name} is required", {"field": name})

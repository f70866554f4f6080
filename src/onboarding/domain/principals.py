"""
Principal data model - the two account types that can authenticate.

Individual consultants and organizations share the registration, verification
and login protocol but keep separate identity fields and collections.

Account Status
==============

Individual:    pending_verification, pending, active, inactive, suspended,
               terminated, rejected
Organization:  pending_verification, pending, active, inactive, suspended

Registration lifecycle:
    quick registration   -> pending_verification
    both channels verified -> pending
    approve              -> active
    reject               -> rejected (individual) / inactive (organization)
    suspend / activate   -> suspended / active (from any status)
"""

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PrincipalKind(str, Enum):
    """Discriminator of the two principal variants."""

    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


class AccountStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"
    REJECTED = "rejected"


class RegistrationStatus(str, Enum):
    QUICK = "quick"
    COMPLETE = "complete"


class Channel(str, Enum):
    """Out-of-band verification channel."""

    PHONE = "phone"
    EMAIL = "email"

    @property
    def verified_attr(self) -> str:
        return f"is_{self.value}_verified"

    @property
    def otp_attr(self) -> str:
        return f"{self.value}_otp"


# Statuses that deny login and every authenticated request.
DENIED_STATUS_MESSAGES: dict[AccountStatus, str] = {
    AccountStatus.INACTIVE: "Your account is inactive. Please contact the administrator.",
    AccountStatus.SUSPENDED: "Your account has been suspended. Please contact the administrator.",
    AccountStatus.TERMINATED: "Your account has been terminated.",
    AccountStatus.REJECTED: "Your application was not approved.",
}


@dataclass
class OneTimeCode:
    """A short numeric code with an absolute expiry."""

    code: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def matches(self, candidate: str) -> bool:
        return secrets.compare_digest(self.code.encode(), candidate.encode())


@dataclass
class Principal(ABC):
    """
    Fields shared by both variants.

    ``display_id`` is assigned once, on first persistence, and never changes.
    ``permissions`` maps a resource path to the set of allowed actions.
    """

    kind: ClassVar[PrincipalKind]

    id: UUID = field(default_factory=uuid4)
    password_hash: str | None = None
    status: AccountStatus = AccountStatus.PENDING_VERIFICATION
    registration_status: RegistrationStatus = RegistrationStatus.QUICK
    is_email_verified: bool = False
    is_phone_verified: bool = False
    phone_otp: OneTimeCode | None = None
    email_otp: OneTimeCode | None = None
    reset_otp: OneTimeCode | None = None
    display_id: str | None = None
    roles: list[str] = field(default_factory=list)
    permissions: dict[str, set[str]] = field(default_factory=dict)
    profile: dict[str, Any] = field(default_factory=dict)
    documents: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    @abstractmethod
    def contact_email(self) -> str: ...

    @property
    @abstractmethod
    def contact_phone(self) -> str | None: ...

    @property
    @abstractmethod
    def display_name(self) -> str: ...

    @property
    def is_fully_verified(self) -> bool:
        return self.is_email_verified and self.is_phone_verified

    @property
    def awaiting_verification(self) -> bool:
        """Quick-registered and at least one channel still unverified."""
        return self.registration_status is RegistrationStatus.QUICK and not self.is_fully_verified

    def is_verified(self, channel: Channel) -> bool:
        if channel is Channel.PHONE:
            return self.is_phone_verified
        return self.is_email_verified

    def otp_for(self, channel: Channel) -> OneTimeCode | None:
        return self.phone_otp if channel is Channel.PHONE else self.email_otp

    def set_otp(self, channel: Channel, otp: OneTimeCode | None) -> None:
        if channel is Channel.PHONE:
            self.phone_otp = otp
        else:
            self.email_otp = otp

    def mark_verified(self, channel: Channel) -> None:
        if channel is Channel.PHONE:
            self.is_phone_verified = True
        else:
            self.is_email_verified = True
        self.set_otp(channel, None)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def to_public_dict(self) -> dict[str, Any]:
        """Sanitized view: no password hash and no one-time codes."""
        return {
            "id": str(self.id),
            "type": self.kind.value,
            "displayId": self.display_id,
            "status": self.status.value,
            "registrationStatus": self.registration_status.value,
            "isEmailVerified": self.is_email_verified,
            "isPhoneVerified": self.is_phone_verified,
            "roles": list(self.roles),
            "permissions": {path: sorted(actions) for path, actions in self.permissions.items()},
            "profile": dict(self.profile),
            "documents": dict(self.documents),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class Individual(Principal):
    """An individual consultant."""

    kind: ClassVar[PrincipalKind] = PrincipalKind.INDIVIDUAL

    email: str = ""
    phone_number: str | None = None
    national_id: str | None = None
    kra_pin: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def contact_email(self) -> str:
        return self.email

    @property
    def contact_phone(self) -> str | None:
        return self.phone_number

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.email

    def to_public_dict(self) -> dict[str, Any]:
        data = super().to_public_dict()
        data.update(
            {
                "employeeId": self.display_id,
                "email": self.email,
                "phoneNumber": self.phone_number,
                "nationalId": self.national_id,
                "kraPin": self.kra_pin,
                "firstName": self.first_name,
                "lastName": self.last_name,
            }
        )
        return data


@dataclass
class Organization(Principal):
    """A consulting organization."""

    kind: ClassVar[PrincipalKind] = PrincipalKind.ORGANIZATION

    business_email: str = ""
    business_phone: str | None = None
    registration_number: str | None = None
    kra_pin: str | None = None
    company_name: str | None = None

    @property
    def contact_email(self) -> str:
        return self.business_email

    @property
    def contact_phone(self) -> str | None:
        return self.business_phone

    @property
    def display_name(self) -> str:
        return self.company_name or self.business_email

    def to_public_dict(self) -> dict[str, Any]:
        data = super().to_public_dict()
        data.update(
            {
                "organizationId": self.display_id,
                "businessEmail": self.business_email,
                "businessPhone": self.business_phone,
                "registrationNumber": self.registration_number,
                "kraPin": self.kra_pin,
                "companyName": self.company_name,
            }
        )
        return data

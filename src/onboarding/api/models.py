"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Wire names are camelCase; attributes stay snake_case.
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from onboarding.domain.principals import Channel, PrincipalKind

# "user" is the legacy spelling of "individual".
PrincipalType = Literal["individual", "organization", "user"]


def principal_kind(value: str | None) -> PrincipalKind:
    if value in (None, "user"):
        return PrincipalKind.INDIVIDUAL
    return PrincipalKind(value)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuickRegisterRequest(CamelModel):
    """Request model for individual quick registration."""

    email: EmailStr
    phone_number: str = Field(..., min_length=1)
    national_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=72, description="Password (8 to 72 characters)")


class OrganizationQuickRegisterRequest(CamelModel):
    """Request model for organization quick registration."""

    business_email: EmailStr
    business_phone: str = Field(..., min_length=1)
    registration_number: str = Field(..., min_length=1)
    kra_pin: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=72, description="Password (8 to 72 characters)")


class RegisterRequest(CamelModel):
    """
    Quick registration for either principal type.

    Individuals send email, phoneNumber and nationalId; organizations send
    businessEmail, businessPhone, registrationNumber and kraPin.
    """

    type: PrincipalType = "individual"
    email: EmailStr | None = None
    phone_number: str | None = None
    national_id: str | None = None
    business_email: EmailStr | None = None
    business_phone: str | None = None
    registration_number: str | None = None
    kra_pin: str | None = None
    password: str = Field(..., min_length=8, max_length=72, description="Password (8 to 72 characters)")

    def identity(self) -> dict[str, str]:
        return self.model_dump(exclude={"type", "password"}, exclude_none=True)


class QuickRegisterResponse(CamelModel):
    message: str
    user: dict[str, Any]


class VerifyOtpRequest(CamelModel):
    """Verify the code sent over one channel."""

    email: EmailStr = Field(..., validation_alias=AliasChoices("email", "businessEmail"))
    pin: str = Field(..., min_length=1, pattern=r"^\d+$")
    verification_type: Channel
    type: PrincipalType = "individual"


class ResendOtpRequest(CamelModel):
    email: EmailStr = Field(..., validation_alias=AliasChoices("email", "businessEmail"))
    type: PrincipalType = "individual"


class ResendOtpResponse(CamelModel):
    message: str
    channels: list[Channel]


class LoginRequest(CamelModel):
    """
    Login with a password, a PIN, or both.

    Legacy clients omit ``type`` and may send only a 4-digit PIN.
    """

    email: EmailStr = Field(..., validation_alias=AliasChoices("email", "businessEmail"))
    password: str | None = None
    pin: str | None = Field(None, pattern=r"^\d+$")
    type: PrincipalType | None = None


class LoginResponse(CamelModel):
    user: dict[str, Any]
    token: str
    expires_in: int


class PasswordResetRequest(CamelModel):
    email: EmailStr
    type: PrincipalType = "individual"


class PasswordResetConfirmation(CamelModel):
    email: EmailStr
    reset_token: str = Field(..., min_length=1, validation_alias=AliasChoices("resetToken", "token", "pin"))
    new_password: str = Field(..., min_length=8, max_length=72, description="New password (8 to 72 characters)")
    type: PrincipalType = "individual"


class AccountStandingRequest(CamelModel):
    """Admin suspend/activate by email."""

    email: EmailStr
    type: PrincipalType = "individual"
    reason: str | None = None


class AccessUpdateRequest(CamelModel):
    email: EmailStr
    type: PrincipalType = "individual"
    roles: list[str] | None = None
    permissions: dict[str, list[str]] | None = None


class RejectRequest(CamelModel):
    reason: str | None = None


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    kind: str
    field: str | None = None


class ProfileUpdateRequest(CamelModel):
    """
    Admin edit of an account's details.

    Only the fields present in the body are changed; ``profile`` entries are
    merged into the stored profile.
    """

    email: EmailStr | None = None
    phone_number: str | None = None
    national_id: str | None = None
    kra_pin: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    business_email: EmailStr | None = None
    business_phone: str | None = None
    registration_number: str | None = None
    company_name: str | None = None
    display_id: str | None = Field(
        None, validation_alias=AliasChoices("displayId", "employeeId", "organizationId")
    )
    profile: dict[str, Any] | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AccountPage(CamelModel):
    data: list[dict[str, Any]]
    total: int
    page: int
    limit: int

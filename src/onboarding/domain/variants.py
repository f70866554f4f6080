"""
Per-variant capabilities for the principal union.

Each principal kind is described by exactly one ``Variant``: which fields are
unique (in conflict-reporting priority order), which documents full
registration requires, how display ids are minted, the default roles and
permissions, and the claims a session token carries. Workflows look the
variant up by kind instead of branching on a string discriminator.
"""

from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConflictError
from .principals import AccountStatus, Individual, Organization, Principal, PrincipalKind


@dataclass(frozen=True)
class Variant:
    kind: PrincipalKind
    model: type[Principal]
    label: str
    email_field: str
    phone_field: str
    unique_fields: tuple[str, ...]
    quick_fields: tuple[str, ...]
    complete_fields: tuple[str, ...]
    required_documents: tuple[str, ...]
    display_prefix: str
    sequence_name: str
    default_roles: tuple[str, ...]
    default_permissions: dict[str, frozenset[str]]
    rejected_status: AccountStatus
    reject_reason_required: bool
    wire_names: dict[str, str] = field(default_factory=dict)
    field_labels: dict[str, str] = field(default_factory=dict)

    def wire_name(self, attr: str) -> str:
        return self.wire_names.get(attr, attr)

    def field_label(self, attr: str) -> str:
        return self.field_labels.get(attr, attr)

    def conflict(self, attr: str) -> ConflictError:
        """The error reported for a collision on a unique field."""
        return ConflictError(self.wire_name(attr), f"{self.field_label(attr)} already registered")

    def format_display_id(self, value: int) -> str:
        return f"{self.display_prefix}-{value:03d}"

    def new_principal(self, **fields: Any) -> Principal:
        principal = self.model(**fields)
        if not principal.roles:
            principal.roles = list(self.default_roles)
        if not principal.permissions:
            principal.permissions = {path: set(actions) for path, actions in self.default_permissions.items()}
        return principal

    def identity_of(self, principal: Principal) -> dict[str, str]:
        """Non-empty unique field values of a principal, in priority order."""
        values = {}
        for attr in self.unique_fields:
            value = getattr(principal, attr)
            if value:
                values[attr] = value
        return values

    def token_claims(self, principal: Principal) -> dict[str, Any]:
        """Profile snapshot embedded in session tokens."""
        claims: dict[str, Any] = {
            "type": self.kind.value,
            "displayId": principal.display_id,
            "registrationStatus": principal.registration_status.value,
        }
        if isinstance(principal, Individual):
            claims.update(
                email=principal.email,
                firstName=principal.first_name,
                lastName=principal.last_name,
            )
        elif isinstance(principal, Organization):
            claims.update(
                businessEmail=principal.business_email,
                companyName=principal.company_name,
            )
        return claims


INDIVIDUAL = Variant(
    kind=PrincipalKind.INDIVIDUAL,
    model=Individual,
    label="Consultant",
    email_field="email",
    phone_field="phone_number",
    unique_fields=("email", "phone_number", "national_id", "kra_pin"),
    quick_fields=("email", "phone_number", "national_id"),
    complete_fields=("email", "phone_number", "national_id", "first_name", "last_name"),
    required_documents=("cv_url", "academic_certificate_url"),
    display_prefix="CON",
    sequence_name="employeeId",
    default_roles=("consultant",),
    default_permissions={
        "/profile": frozenset({"read", "write"}),
        "/projects": frozenset({"read"}),
        "/contracts": frozenset({"read"}),
        "/invoices": frozenset({"read", "write"}),
    },
    rejected_status=AccountStatus.REJECTED,
    reject_reason_required=False,
    wire_names={
        "phone_number": "phoneNumber",
        "national_id": "nationalId",
        "kra_pin": "kraPin",
        "first_name": "firstName",
        "last_name": "lastName",
        "cv_url": "cvUrl",
        "academic_certificate_url": "academicCertificateUrl",
    },
    field_labels={
        "email": "Email",
        "phone_number": "Phone number",
        "national_id": "National ID",
        "kra_pin": "KRA PIN",
    },
)

ORGANIZATION = Variant(
    kind=PrincipalKind.ORGANIZATION,
    model=Organization,
    label="Organization",
    email_field="business_email",
    phone_field="business_phone",
    unique_fields=("business_email", "business_phone", "registration_number", "kra_pin"),
    quick_fields=("business_email", "business_phone", "registration_number", "kra_pin"),
    complete_fields=(
        "business_email",
        "business_phone",
        "registration_number",
        "kra_pin",
        "company_name",
    ),
    required_documents=(
        "registration_certificate_url",
        "kra_certificate_url",
        "tax_compliance_certificate_url",
        "cr12_url",
    ),
    display_prefix="ORG",
    sequence_name="organizationId",
    default_roles=("organization",),
    default_permissions={
        "/profile": frozenset({"read", "write"}),
        "/projects": frozenset({"read"}),
        "/contracts": frozenset({"read"}),
        "/invoices": frozenset({"read", "write"}),
    },
    rejected_status=AccountStatus.INACTIVE,
    reject_reason_required=True,
    wire_names={
        "business_email": "businessEmail",
        "business_phone": "businessPhone",
        "registration_number": "registrationNumber",
        "kra_pin": "kraPin",
        "company_name": "companyName",
        "registration_certificate_url": "registrationCertificateUrl",
        "kra_certificate_url": "kraCertificateUrl",
        "tax_compliance_certificate_url": "taxComplianceCertificateUrl",
        "cr12_url": "cr12Url",
    },
    field_labels={
        "business_email": "Business email",
        "business_phone": "Business phone",
        "registration_number": "Registration number",
        "kra_pin": "KRA PIN",
    },
)

VARIANTS: dict[PrincipalKind, Variant] = {
    PrincipalKind.INDIVIDUAL: INDIVIDUAL,
    PrincipalKind.ORGANIZATION: ORGANIZATION,
}


def variant_for(kind: PrincipalKind | str) -> Variant:
    return VARIANTS[PrincipalKind(kind)]


def variant_of(principal: Principal) -> Variant:
    return VARIANTS[principal.kind]

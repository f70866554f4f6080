"""
Test doubles and builders shared across the unit, integration and
adversarial suites.
"""

from datetime import datetime, timedelta, timezone

from onboarding.api.dependencies import Services
from onboarding.domain.ports import UploadResult
from onboarding.domain.principals import Principal, PrincipalKind
from onboarding.domain.variants import variant_for

PASSWORD = "secure-pass-123"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingUploader:
    """FileUploader double that records uploads and returns predictable URLs."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, str, bytes]] = []

    def upload(self, file, filename: str, folder: str) -> UploadResult:
        self.uploads.append((filename, folder, file.read()))
        return UploadResult(secure_url=f"https://files.test/{folder}/{filename}", public_id=filename)


def individual_identity(n: int = 1) -> dict[str, str]:
    return {
        "email": f"consultant{n}@example.com",
        "phone_number": f"+25470000{n:04d}",
        "national_id": f"3{n:07d}",
    }


def organization_identity(n: int = 1) -> dict[str, str]:
    return {
        "business_email": f"office{n}@acme.co.ke",
        "business_phone": f"+25420000{n:04d}",
        "registration_number": f"PVT-{n:04d}",
        "kra_pin": f"P05{n:07d}X",
    }


def individual_fields(n: int = 1) -> dict[str, str]:
    return {**individual_identity(n), "first_name": "Jane", "last_name": f"Doe{n}"}


def organization_fields(n: int = 1) -> dict[str, str]:
    return {**organization_identity(n), "company_name": f"Acme Consulting {n}"}


def individual_documents() -> dict[str, str]:
    return {
        "cv_url": "https://files.test/cv.pdf",
        "academic_certificate_url": "https://files.test/degree.pdf",
    }


def organization_documents() -> dict[str, str]:
    return {
        "registration_certificate_url": "https://files.test/reg.pdf",
        "kra_certificate_url": "https://files.test/kra.pdf",
        "tax_compliance_certificate_url": "https://files.test/tax.pdf",
        "cr12_url": "https://files.test/cr12.pdf",
    }


def stored(services: Services, kind: PrincipalKind, email: str) -> Principal:
    return services.store.get_by_email(variant_for(kind), email)


def verify_both(services: Services, kind: PrincipalKind, email: str) -> Principal:
    """Consume the stored phone and email codes of a quick registration."""
    code = stored(services, kind, email).phone_otp.code
    services.registration.verify_otp(kind, email, code, "phone")
    code = stored(services, kind, email).email_otp.code
    return services.registration.verify_otp(kind, email, code, "email")


def register_active_individual(services: Services, n: int = 1, roles: list[str] | None = None) -> Principal:
    """Full-register an individual and approve it."""
    principal = services.registration.register(
        PrincipalKind.INDIVIDUAL, individual_fields(n), individual_documents(), password=PASSWORD
    )
    principal = services.review.approve(PrincipalKind.INDIVIDUAL, principal.id)
    if roles is not None:
        principal = services.review.update_access(PrincipalKind.INDIVIDUAL, principal.email, roles=roles)
    return principal


def register_active_organization(services: Services, n: int = 1) -> Principal:
    principal = services.registration.register(
        PrincipalKind.ORGANIZATION, organization_fields(n), organization_documents(), password=PASSWORD
    )
    return services.review.approve(PrincipalKind.ORGANIZATION, principal.id)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def login_token(client, email: str, password: str = PASSWORD, principal_type: str = "individual") -> str:
    response = client.post("/auth/login", json={"email": email, "password": password, "type": principal_type})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def admin_headers(client, services: Services) -> dict[str, str]:
    """Seed an administrator and return its Authorization header."""
    services.registration.ensure_admin("admin@example.com", PASSWORD)
    return bearer(login_token(client, "admin@example.com"))

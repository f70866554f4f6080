"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols structurally.
"""

from collections.abc import Collection
from dataclasses import dataclass
from typing import Any, BinaryIO, Protocol
from uuid import UUID

from .principals import AccountStatus, Principal
from .variants import Variant


class CounterRepository(Protocol):
    """Port interface for named integer sequences."""

    def increment(self, name: str) -> int:
        """
        Atomically increment the named counter and return the new value.

        Creates the counter with value 1 when it does not exist yet.
        Never read-modify-write: two concurrent callers must observe
        different values.
        """
        ...


class PrincipalRepository(Protocol):
    """Port interface for principal persistence, one collection per variant."""

    def find_by_field(self, variant: Variant, field: str, value: str) -> Principal | None:
        """Return the principal whose unique ``field`` equals ``value``."""
        ...

    def find_by_id(self, variant: Variant, principal_id: UUID) -> Principal | None:
        ...

    def list_by_status(self, variant: Variant, status: AccountStatus) -> list[Principal]:
        ...

    def list_page(
        self, variant: Variant, status: AccountStatus | None, offset: int, limit: int
    ) -> tuple[list[Principal], int]:
        """One page of principals, newest first, and the total matching ``status`` (any when None)."""
        ...

    def insert(self, variant: Variant, principal: Principal) -> None:
        """
        Insert a new principal.

        Raises:
            ConflictError: a unique index rejected the write (write-time
                equivalent of the registration pre-check)
        """
        ...

    def update(
        self,
        variant: Variant,
        principal: Principal,
        fields: Collection[str] | None = None,
        expected_status: AccountStatus | None = None,
    ) -> bool:
        """
        Persist an existing principal.

        Only the attributes named in ``fields`` (plus ``updated_at``) are
        written; every attribute when ``fields`` is None. With
        ``expected_status`` the write happens only while the stored status
        still equals it.

        Returns:
            False when ``expected_status`` did not match and nothing was
            written, True otherwise

        Raises:
            LookupError: no principal with this id (unguarded writes)
            ConflictError: the update collides with another principal's
                unique field
        """
        ...


@dataclass(frozen=True)
class AuditEntry:
    """One audit log record."""

    event: str
    detail: str
    severity: str
    subject_id: str | None
    request_meta: dict[str, Any]


class AuditLog(Protocol):
    """Port interface for the audit log sink."""

    def write(self, entry: AuditEntry) -> None:
        ...


class NotificationDispatcher(Protocol):
    """
    Port interface for outbound email/SMS delivery.

    Every method returns a success flag and must not raise into the caller;
    the delivery queue still guards against adapters that do.
    """

    def send_sms(self, phone: str, text: str) -> bool:
        ...

    def send_email(self, to: str, subject: str, body: str) -> bool:
        ...

    def send_registration_pin(self, phone: str, email: str, text: str) -> bool:
        ...


@dataclass(frozen=True)
class UploadResult:
    secure_url: str
    public_id: str | None = None


class FileUploader(Protocol):
    """Port interface for supporting-document hosting."""

    def upload(self, file: BinaryIO, filename: str, folder: str) -> UploadResult:
        ...

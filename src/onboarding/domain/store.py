"""
Credential store - domain access to persisted principals.

Wraps the repository port with display-id allocation on first persistence,
timestamps, parallel uniqueness checks and error translation. Unique-field
conflicts raised at write time by the repository pass through unchanged so
callers report them exactly like a pre-check conflict; any other storage
failure becomes InternalError.

Writes name the fields they change. Status transitions use save_if_status so
a stale copy never overwrites a concurrent change of standing.
"""

import logging
from collections.abc import Callable, Collection
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from .credentials import normalize_email
from .exceptions import ConflictError, InternalError, NotFoundError
from .ports import PrincipalRepository
from .principals import AccountStatus, Principal, utcnow
from .sequence import SequenceAllocator
from .variants import Variant

logger = logging.getLogger(__name__)


@dataclass
class CredentialStore:
    repository: PrincipalRepository
    sequences: SequenceAllocator
    clock: Callable[[], datetime] = field(default=utcnow)

    def find_by_identity(self, variant: Variant, field_name: str, value: str) -> Principal | None:
        if field_name == variant.email_field:
            value = normalize_email(value)
        try:
            return self.repository.find_by_field(variant, field_name, value)
        except Exception as e:
            raise InternalError("Credential store unavailable") from e

    def find_by_email(self, variant: Variant, email: str) -> Principal | None:
        return self.find_by_identity(variant, variant.email_field, email)

    def find_by_id(self, variant: Variant, principal_id: UUID) -> Principal | None:
        try:
            return self.repository.find_by_id(variant, principal_id)
        except Exception as e:
            raise InternalError("Credential store unavailable") from e

    def get(self, variant: Variant, principal_id: UUID) -> Principal:
        principal = self.find_by_id(variant, principal_id)
        if principal is None:
            raise NotFoundError(f"{variant.label} not found")
        return principal

    def get_by_email(self, variant: Variant, email: str) -> Principal:
        principal = self.find_by_email(variant, email)
        if principal is None:
            raise NotFoundError(f"{variant.label} not found")
        return principal

    def list_by_status(self, variant: Variant, status: AccountStatus) -> list[Principal]:
        try:
            return self.repository.list_by_status(variant, status)
        except Exception as e:
            raise InternalError("Credential store unavailable") from e

    def list_page(
        self, variant: Variant, status: AccountStatus | None, page: int, limit: int
    ) -> tuple[list[Principal], int]:
        try:
            return self.repository.list_page(variant, status, (page - 1) * limit, limit)
        except Exception as e:
            raise InternalError("Credential store unavailable") from e

    def check_unique(self, variant: Variant, values: dict[str, Any], exclude: Principal | None = None) -> None:
        """
        Look every unique field up in parallel and report the highest-priority hit.

        Raises:
            ConflictError: a value belongs to a principal other than ``exclude``
        """
        checks = [(attr, values[attr]) for attr in variant.unique_fields if values.get(attr)]
        exclude_id = exclude.id if exclude is not None else None

        def check(attr: str, value: str) -> None:
            existing = self.find_by_identity(variant, attr, value)
            if existing is not None and existing.id != exclude_id:
                raise variant.conflict(attr)

        with ThreadPoolExecutor(max_workers=max(len(checks), 1)) as executor:
            futures = [executor.submit(check, attr, value) for attr, value in checks]
        # Every check has finished; report the highest-priority failure.
        for future in futures:
            future.result()

    def create(self, variant: Variant, principal: Principal) -> Principal:
        """
        Persist a new principal, minting its display id first.

        If the sequence cannot be advanced nothing is written.
        """
        if principal.display_id is None:
            principal.display_id = variant.format_display_id(self.sequences.next(variant.sequence_name))
        now = self.clock()
        principal.created_at = principal.created_at or now
        principal.updated_at = now
        try:
            self.repository.insert(variant, principal)
        except ConflictError:
            raise
        except Exception as e:
            raise InternalError(f"Could not store {variant.label.lower()}") from e
        logger.info("Created %s %s (%s)", variant.kind.value, principal.display_id, principal.id)
        return principal

    def save(self, variant: Variant, principal: Principal, fields: Collection[str] | None = None) -> Principal:
        """Write ``fields`` of an existing principal (the whole record when None)."""
        self._update(variant, principal, fields, None)
        return principal

    def save_if_status(
        self,
        variant: Variant,
        principal: Principal,
        expected: AccountStatus,
        fields: Collection[str] | None = None,
    ) -> bool:
        """
        Write only while the stored status is still ``expected``.

        Returns:
            False when the status changed since ``principal`` was read;
            nothing is written then
        """
        saved = self._update(variant, principal, fields, expected)
        if not saved:
            logger.info(
                "Skipped write to %s: status is no longer %s", principal.display_id, expected.value
            )
        return saved

    def _update(
        self,
        variant: Variant,
        principal: Principal,
        fields: Collection[str] | None,
        expected: AccountStatus | None,
    ) -> bool:
        principal.updated_at = self.clock()
        try:
            return self.repository.update(variant, principal, fields, expected)
        except ConflictError:
            raise
        except Exception as e:
            raise InternalError(f"Could not update {variant.label.lower()}") from e

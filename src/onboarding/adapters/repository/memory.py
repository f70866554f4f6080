"""
In-memory repository adapters - development and test replacements for PostgreSQL.

Implements the PrincipalRepository, CounterRepository and AuditLog protocols
with plain dicts guarded by a lock. Unique indexes are enforced at write time
exactly like the database's, so a duplicate that slips past a pre-check is
rejected with the same ConflictError. Stored objects are deep-copied in and
out; callers never share state with the store.
"""

import copy
import dataclasses
import logging
import threading
from collections.abc import Collection
from datetime import datetime, timezone
from uuid import UUID

from onboarding.domain.ports import AuditEntry
from onboarding.domain.principals import AccountStatus, Principal, PrincipalKind
from onboarding.domain.variants import VARIANTS, Variant

logger = logging.getLogger(__name__)

_WRITABLE = {
    kind: {f.name for f in dataclasses.fields(variant.model)} - {"id", "display_id", "created_at"}
    for kind, variant in VARIANTS.items()
}


class InMemoryPrincipalRepository:
    """
    Implements PrincipalRepository protocol with per-variant dicts.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[PrincipalKind, dict[UUID, Principal]] = {kind: {} for kind in PrincipalKind}

    def find_by_field(self, variant: Variant, field: str, value: str) -> Principal | None:
        with self._lock:
            for principal in self._rows[variant.kind].values():
                if getattr(principal, field) == value:
                    return copy.deepcopy(principal)
        return None

    def find_by_id(self, variant: Variant, principal_id: UUID) -> Principal | None:
        with self._lock:
            principal = self._rows[variant.kind].get(principal_id)
            return copy.deepcopy(principal) if principal is not None else None

    def list_by_status(self, variant: Variant, status: AccountStatus) -> list[Principal]:
        with self._lock:
            matches = [p for p in self._rows[variant.kind].values() if p.status is status]
            return copy.deepcopy(matches)

    def list_page(
        self, variant: Variant, status: AccountStatus | None, offset: int, limit: int
    ) -> tuple[list[Principal], int]:
        with self._lock:
            matches = [p for p in self._rows[variant.kind].values() if status is None or p.status is status]
            matches.sort(key=lambda p: p.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
            return copy.deepcopy(matches[offset : offset + limit]), len(matches)

    def insert(self, variant: Variant, principal: Principal) -> None:
        with self._lock:
            rows = self._rows[variant.kind]
            if principal.id in rows:
                raise ValueError(f"Duplicate primary key {principal.id}")
            self._check_unique(variant, principal, rows)
            rows[principal.id] = copy.deepcopy(principal)

    def update(
        self,
        variant: Variant,
        principal: Principal,
        fields: Collection[str] | None = None,
        expected_status: AccountStatus | None = None,
    ) -> bool:
        with self._lock:
            rows = self._rows[variant.kind]
            current = rows.get(principal.id)
            if current is None:
                if expected_status is not None:
                    return False
                raise KeyError(f"Unknown {variant.kind.value} {principal.id}")
            if expected_status is not None and current.status is not expected_status:
                return False

            if fields is None:
                updated = copy.deepcopy(principal)
            else:
                updated = copy.deepcopy(current)
                for attr in fields:
                    if attr not in _WRITABLE[variant.kind]:
                        raise ValueError(f"{attr} is not an updatable field of {variant.kind.value}")
                    setattr(updated, attr, copy.deepcopy(getattr(principal, attr)))
                updated.updated_at = principal.updated_at
            self._check_unique(variant, updated, rows)
            rows[principal.id] = updated
            return True

    def _check_unique(self, variant: Variant, principal: Principal, rows: dict[UUID, Principal]) -> None:
        for attr in variant.unique_fields:
            value = getattr(principal, attr)
            if not value:
                continue
            for other in rows.values():
                if other.id != principal.id and getattr(other, attr) == value:
                    logger.info("Unique index rejected %s.%s", variant.kind.value, attr)
                    raise variant.conflict(attr)
        if principal.display_id is not None:
            for other in rows.values():
                if other.id != principal.id and other.display_id == principal.display_id:
                    raise ValueError(f"Duplicate display id {principal.display_id}")


class InMemoryCounterRepository:
    """Implements CounterRepository protocol; increments happen under one lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, int] = {}

    def increment(self, name: str) -> int:
        with self._lock:
            value = self._values.get(name, 0) + 1
            self._values[name] = value
            return value

    def current(self, name: str) -> int | None:
        with self._lock:
            return self._values.get(name)


class InMemoryAuditLog:
    """Implements AuditLog protocol by appending to a list."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[AuditEntry] = []

    def write(self, entry: AuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def events(self) -> list[str]:
        return [entry.event for entry in self.entries]

"""
PostgreSQL repository adapters - Implement the domain's persistence ports.

This module provides the PostgreSQL implementations of the
PrincipalRepository, CounterRepository and AuditLog ports using psycopg3
with raw SQL.

Concurrency Design:
-------------------
1. **Counters**: one ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING``
   statement. The row lock taken by the upsert serializes concurrent
   increments; application code never reads the value first.

2. **Unique identity fields**: every identity column carries a UNIQUE
   constraint. A duplicate that passes the domain's pre-check is rejected
   here and reported through the same ``ConflictError``, mapped back from
   the violated constraint name.

3. **Updates** write only the columns the caller names. Status transitions
   add a ``status = %s`` guard, so a concurrent change of standing is never
   overwritten by a stale copy of the row.
"""

import logging
from collections.abc import Collection
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from psycopg import errors, sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from onboarding.domain.ports import AuditEntry
from onboarding.domain.principals import (
    AccountStatus,
    OneTimeCode,
    Principal,
    PrincipalKind,
    RegistrationStatus,
)
from onboarding.domain.variants import Variant

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_TABLES = {
    PrincipalKind.INDIVIDUAL: "individuals",
    PrincipalKind.ORGANIZATION: "organizations",
}

_COMMON_COLUMNS = (
    "id",
    "display_id",
    "password_hash",
    "status",
    "registration_status",
    "is_email_verified",
    "is_phone_verified",
    "phone_otp",
    "phone_otp_expires_at",
    "email_otp",
    "email_otp_expires_at",
    "reset_otp",
    "reset_otp_expires_at",
    "roles",
    "permissions",
    "profile",
    "documents",
    "created_at",
    "updated_at",
)

_OTP_ATTRS = ("phone_otp", "email_otp", "reset_otp")


def _identity_columns(variant: Variant) -> tuple[str, ...]:
    return tuple(dict.fromkeys(variant.unique_fields + variant.complete_fields))


def _columns(variant: Variant) -> tuple[str, ...]:
    return _COMMON_COLUMNS + _identity_columns(variant)


def _update_columns(variant: Variant, fields: Collection[str] | None) -> list[str]:
    """Columns written by an update; one-time codes span two columns."""
    if fields is None:
        return [column for column in _columns(variant) if column not in ("id", "created_at")]
    writable = set(_columns(variant)) - {"id", "display_id", "created_at"}
    columns: list[str] = []
    for attr in fields:
        names = (attr, f"{attr}_expires_at") if attr in _OTP_ATTRS else (attr,)
        if not writable.issuperset(names):
            raise ValueError(f"{attr} is not an updatable field of {variant.kind.value}")
        columns.extend(names)
    return list(dict.fromkeys([*columns, "updated_at"]))


def _to_row(variant: Variant, principal: Principal) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": principal.id,
        "display_id": principal.display_id,
        "password_hash": principal.password_hash,
        "status": principal.status.value,
        "registration_status": principal.registration_status.value,
        "is_email_verified": principal.is_email_verified,
        "is_phone_verified": principal.is_phone_verified,
        "roles": list(principal.roles),
        "permissions": Jsonb({path: sorted(actions) for path, actions in principal.permissions.items()}),
        "profile": Jsonb(principal.profile),
        "documents": Jsonb(principal.documents),
        "created_at": principal.created_at,
        "updated_at": principal.updated_at,
    }
    for attr in _OTP_ATTRS:
        otp: OneTimeCode | None = getattr(principal, attr)
        row[attr] = otp.code if otp else None
        row[f"{attr}_expires_at"] = otp.expires_at if otp else None
    for attr in _identity_columns(variant):
        row[attr] = getattr(principal, attr)
    return row


def _otp(code: str | None, expires_at: datetime | None) -> OneTimeCode | None:
    if code is None or expires_at is None:
        return None
    return OneTimeCode(code=code, expires_at=expires_at)


def _from_row(variant: Variant, row: dict[str, Any]) -> Principal:
    fields = {attr: row[attr] for attr in _identity_columns(variant)}
    return variant.model(
        id=row["id"],
        display_id=row["display_id"],
        password_hash=row["password_hash"],
        status=AccountStatus(row["status"]),
        registration_status=RegistrationStatus(row["registration_status"]),
        is_email_verified=row["is_email_verified"],
        is_phone_verified=row["is_phone_verified"],
        phone_otp=_otp(row["phone_otp"], row["phone_otp_expires_at"]),
        email_otp=_otp(row["email_otp"], row["email_otp_expires_at"]),
        reset_otp=_otp(row["reset_otp"], row["reset_otp_expires_at"]),
        roles=list(row["roles"] or []),
        permissions={path: set(actions) for path, actions in (row["permissions"] or {}).items()},
        profile=dict(row["profile"] or {}),
        documents=dict(row["documents"] or {}),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        **fields,
    )


class PostgresPrincipalRepository:
    """
    Implements PrincipalRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries; identifiers are composed with
    ``psycopg.sql`` from the variant's known column names only.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find_by_field(self, variant: Variant, field: str, value: str) -> Principal | None:
        if field not in _identity_columns(variant):
            raise ValueError(f"{field} is not a lookup column of {variant.kind.value}")
        query = sql.SQL("SELECT * FROM {table} WHERE {column} = %s").format(
            table=sql.Identifier(_TABLES[variant.kind]),
            column=sql.Identifier(field),
        )
        return self._fetch_one(variant, query, (value,))

    def find_by_id(self, variant: Variant, principal_id: UUID) -> Principal | None:
        query = sql.SQL("SELECT * FROM {table} WHERE id = %s").format(
            table=sql.Identifier(_TABLES[variant.kind])
        )
        return self._fetch_one(variant, query, (principal_id,))

    def list_by_status(self, variant: Variant, status: AccountStatus) -> list[Principal]:
        query = sql.SQL("SELECT * FROM {table} WHERE status = %s ORDER BY created_at").format(
            table=sql.Identifier(_TABLES[variant.kind])
        )
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, (status.value,))
            return [_from_row(variant, row) for row in cursor.fetchall()]

    def list_page(
        self, variant: Variant, status: AccountStatus | None, offset: int, limit: int
    ) -> tuple[list[Principal], int]:
        table = sql.Identifier(_TABLES[variant.kind])
        if status is None:
            condition, params = sql.SQL("TRUE"), ()
        else:
            condition, params = sql.SQL("status = %s"), (status.value,)
        page_query = sql.SQL(
            "SELECT * FROM {table} WHERE {condition} ORDER BY created_at DESC OFFSET %s LIMIT %s"
        ).format(table=table, condition=condition)
        count_query = sql.SQL("SELECT count(*) FROM {table} WHERE {condition}").format(
            table=table, condition=condition
        )
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(page_query, (*params, offset, limit))
            principals = [_from_row(variant, row) for row in cursor.fetchall()]
            cursor.execute(count_query, params)
            total = cursor.fetchone()["count"]
        return principals, total

    def insert(self, variant: Variant, principal: Principal) -> None:
        row = _to_row(variant, principal)
        columns = _columns(variant)
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values})").format(
            table=sql.Identifier(_TABLES[variant.kind]),
            columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
            values=sql.SQL(", ").join(map(sql.Placeholder, columns)),
        )
        self._write(variant, query, row)

    def update(
        self,
        variant: Variant,
        principal: Principal,
        fields: Collection[str] | None = None,
        expected_status: AccountStatus | None = None,
    ) -> bool:
        row = _to_row(variant, principal)
        columns = _update_columns(variant, fields)
        condition = sql.SQL("id = {}").format(sql.Placeholder("id"))
        if expected_status is not None:
            row["expected_status"] = expected_status.value
            condition = sql.SQL("{} AND status = {}").format(condition, sql.Placeholder("expected_status"))
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE {condition}").format(
            table=sql.Identifier(_TABLES[variant.kind]),
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder(column))
                for column in columns
            ),
            condition=condition,
        )
        rowcount = self._write(variant, query, row)
        if rowcount == 1:
            return True
        if expected_status is not None:
            return False
        raise LookupError(f"Unknown {variant.kind.value} {principal.id}")

    def _fetch_one(self, variant: Variant, query: sql.Composed, params: tuple) -> Principal | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
        return _from_row(variant, row) if row is not None else None

    def _write(self, variant: Variant, query: sql.Composed, row: dict[str, Any]) -> int:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, row)
                conn.commit()
                return cursor.rowcount
        except errors.UniqueViolation as e:
            attr = _violated_field(variant, e.diag.constraint_name)
            if attr is None:
                raise
            logger.info("Unique constraint rejected %s.%s", variant.kind.value, attr)
            raise variant.conflict(attr) from e


def _violated_field(variant: Variant, constraint_name: str | None) -> str | None:
    """Map PostgreSQL's default ``<table>_<column>_key`` name back to the field."""
    prefix = f"{_TABLES[variant.kind]}_"
    if not constraint_name or not constraint_name.startswith(prefix) or not constraint_name.endswith("_key"):
        return None
    column = constraint_name[len(prefix) : -len("_key")]
    return column if column in variant.unique_fields else None


class PostgresCounterRepository:
    """Implements CounterRepository protocol with an atomic upsert."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def increment(self, name: str) -> int:
        query = """
            INSERT INTO counters (name, sequence_value)
            VALUES (%s, 1)
            ON CONFLICT (name) DO UPDATE
            SET sequence_value = counters.sequence_value + 1
            RETURNING sequence_value
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, (name,))
            (value,) = cursor.fetchone()
            conn.commit()
        return value


class PostgresAuditLog:
    """Implements AuditLog protocol by inserting into ``audit_log``."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def write(self, entry: AuditEntry) -> None:
        query = """
            INSERT INTO audit_log (event, detail, severity, subject_id, request_meta)
            VALUES (%s, %s, %s, %s, %s)
        """
        with self._pool.connection() as conn:
            conn.execute(
                query,
                (entry.event, entry.detail, entry.severity, entry.subject_id, Jsonb(entry.request_meta)),
            )
            conn.commit()


def check_connection(pool: ConnectionPool) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with pool.connection() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return False
    return True


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files shipped with this package.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    sql_files = sorted(MIGRATIONS_DIR.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
                conn.commit()
            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

"""
Integration tests for the PostgreSQL adapters.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running (via docker-compose); skipped otherwise.
"""

from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from onboarding.adapters.repository.postgres import (
    PostgresAuditLog,
    PostgresCounterRepository,
    PostgresPrincipalRepository,
    check_connection,
    run_migrations,
)
from onboarding.config.settings import get_settings
from onboarding.domain.exceptions import ConflictError
from onboarding.domain.ports import AuditEntry
from onboarding.domain.principals import AccountStatus, Individual, OneTimeCode, Organization
from onboarding.domain.variants import INDIVIDUAL, ORGANIZATION

pytestmark = pytest.mark.integration

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Connection pool for integration tests; skips when PostgreSQL is down."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    try:
        pool.wait(timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not available")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty every table before each test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE individuals, organizations, counters, audit_log")
        conn.commit()
    yield


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresPrincipalRepository:
    return PostgresPrincipalRepository(pool)


def consultant(n: int = 1, **overrides) -> Individual:
    fields = {
        "email": f"consultant{n}@example.com",
        "phone_number": f"+25470000{n:04d}",
        "national_id": f"3{n:07d}",
        "display_id": f"CON-{n:03d}",
        "roles": ["consultant"],
        "permissions": {"/profile": {"read", "write"}},
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Individual(**fields)


class TestPrincipalRepository:
    def test_insert_and_find_round_trip(self, repository: PostgresPrincipalRepository) -> None:
        principal = consultant(
            phone_otp=OneTimeCode("0123", NOW + timedelta(minutes=10)),
            profile={"skills": ["audit"]},
            documents={"cv_url": "https://files.test/cv.pdf"},
        )
        repository.insert(INDIVIDUAL, principal)

        found = repository.find_by_field(INDIVIDUAL, "email", "consultant1@example.com")

        assert found.id == principal.id
        assert found.display_id == "CON-001"
        assert found.phone_otp == OneTimeCode("0123", NOW + timedelta(minutes=10))
        assert found.email_otp is None
        assert found.permissions == {"/profile": {"read", "write"}}
        assert found.profile == {"skills": ["audit"]}
        assert found.documents == {"cv_url": "https://files.test/cv.pdf"}
        assert found.status is AccountStatus.PENDING_VERIFICATION

    def test_find_by_id_and_kind(self, repository: PostgresPrincipalRepository) -> None:
        principal = consultant()
        repository.insert(INDIVIDUAL, principal)

        assert repository.find_by_id(INDIVIDUAL, principal.id).email == principal.email
        assert repository.find_by_id(ORGANIZATION, principal.id) is None

    def test_unknown_lookup_column_rejected(self, repository: PostgresPrincipalRepository) -> None:
        with pytest.raises(ValueError):
            repository.find_by_field(INDIVIDUAL, "password_hash", "x")

    def test_unique_violation_maps_to_conflict(self, repository: PostgresPrincipalRepository) -> None:
        repository.insert(INDIVIDUAL, consultant(1))

        with pytest.raises(ConflictError) as exc_info:
            repository.insert(INDIVIDUAL, consultant(2, national_id=consultant(1).national_id))

        assert exc_info.value.field == "nationalId"

    def test_update_persists_every_field(self, repository: PostgresPrincipalRepository) -> None:
        principal = consultant()
        repository.insert(INDIVIDUAL, principal)

        principal.status = AccountStatus.ACTIVE
        principal.roles = ["consultant", "admin"]
        principal.reset_otp = OneTimeCode("654321", NOW)
        repository.update(INDIVIDUAL, principal)

        found = repository.find_by_id(INDIVIDUAL, principal.id)
        assert found.status is AccountStatus.ACTIVE
        assert found.roles == ["consultant", "admin"]
        assert found.reset_otp.code == "654321"

    def test_update_unknown_raises(self, repository: PostgresPrincipalRepository) -> None:
        with pytest.raises(LookupError):
            repository.update(INDIVIDUAL, consultant())

    def test_list_by_status(self, repository: PostgresPrincipalRepository) -> None:
        repository.insert(INDIVIDUAL, consultant(1, status=AccountStatus.PENDING))
        repository.insert(INDIVIDUAL, consultant(2))

        pending = repository.list_by_status(INDIVIDUAL, AccountStatus.PENDING)

        assert [p.email for p in pending] == ["consultant1@example.com"]

    def test_targeted_update_leaves_other_columns(self, repository: PostgresPrincipalRepository) -> None:
        principal = consultant()
        repository.insert(INDIVIDUAL, principal)
        stale = repository.find_by_id(INDIVIDUAL, principal.id)

        principal.status = AccountStatus.SUSPENDED
        repository.update(INDIVIDUAL, principal, ("status",))
        stale.reset_otp = OneTimeCode("654321", NOW)
        repository.update(INDIVIDUAL, stale, ("reset_otp",))

        found = repository.find_by_id(INDIVIDUAL, principal.id)
        assert found.status is AccountStatus.SUSPENDED
        assert found.reset_otp.code == "654321"

    def test_guarded_update_skips_when_status_moved(self, repository: PostgresPrincipalRepository) -> None:
        principal = consultant(status=AccountStatus.SUSPENDED)
        repository.insert(INDIVIDUAL, principal)

        principal.status = AccountStatus.ACTIVE
        saved = repository.update(INDIVIDUAL, principal, ("status",), expected_status=AccountStatus.PENDING)

        assert saved is False
        assert repository.find_by_id(INDIVIDUAL, principal.id).status is AccountStatus.SUSPENDED

    def test_display_id_cannot_be_targeted(self, repository: PostgresPrincipalRepository) -> None:
        with pytest.raises(ValueError):
            repository.update(INDIVIDUAL, consultant(), ("display_id",))

    def test_list_page_newest_first(self, repository: PostgresPrincipalRepository) -> None:
        for n in range(1, 6):
            repository.insert(INDIVIDUAL, consultant(n, created_at=NOW + timedelta(minutes=n)))

        page, total = repository.list_page(INDIVIDUAL, None, offset=2, limit=2)

        assert total == 5
        assert [p.display_id for p in page] == ["CON-003", "CON-002"]

    def test_organization_table(self, repository: PostgresPrincipalRepository) -> None:
        org = Organization(
            business_email="office@acme.co.ke",
            business_phone="+254200000001",
            registration_number="PVT-0001",
            kra_pin="P050000001X",
            company_name="Acme",
            display_id="ORG-001",
            created_at=NOW,
            updated_at=NOW,
        )
        repository.insert(ORGANIZATION, org)

        found = repository.find_by_field(ORGANIZATION, "registration_number", "PVT-0001")

        assert found.company_name == "Acme"
        with pytest.raises(ConflictError) as exc_info:
            repository.insert(
                ORGANIZATION,
                Organization(
                    business_email="other@acme.co.ke",
                    kra_pin="P050000001X",
                    display_id="ORG-002",
                    created_at=NOW,
                    updated_at=NOW,
                ),
            )
        assert exc_info.value.field == "kraPin"


class TestCounterRepository:
    def test_increment_starts_at_one(self, pool: ConnectionPool) -> None:
        counters = PostgresCounterRepository(pool)

        assert counters.increment("employeeId") == 1
        assert counters.increment("employeeId") == 2
        assert counters.increment("organizationId") == 1

    def test_concurrent_increments_are_distinct(self, pool: ConnectionPool) -> None:
        counters = PostgresCounterRepository(pool)

        with ThreadPoolExecutor(max_workers=8) as executor:
            values = list(executor.map(lambda _: counters.increment("employeeId"), range(50)))

        assert sorted(values) == list(range(1, 51))


class TestAuditLogAndHealth:
    def test_audit_entry_written(self, pool: ConnectionPool) -> None:
        PostgresAuditLog(pool).write(
            AuditEntry("Login Failed", "bad password", "warning", "CON-001", {"ip_address": "10.0.0.1"})
        )

        with pool.connection() as conn:
            row = conn.execute("SELECT event, subject_id, request_meta FROM audit_log").fetchone()

        assert row == ("Login Failed", "CON-001", {"ip_address": "10.0.0.1"})

    def test_check_connection(self, pool: ConnectionPool) -> None:
        assert check_connection(pool) is True

    def test_migrations_are_idempotent(self, pool: ConnectionPool) -> None:
        run_migrations(pool)

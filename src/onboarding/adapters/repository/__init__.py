"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryAuditLog, InMemoryCounterRepository, InMemoryPrincipalRepository
from .postgres import (
    PostgresAuditLog,
    PostgresCounterRepository,
    PostgresPrincipalRepository,
    check_connection,
    run_migrations,
)

__all__ = [
    "InMemoryAuditLog",
    "InMemoryCounterRepository",
    "InMemoryPrincipalRepository",
    "PostgresAuditLog",
    "PostgresCounterRepository",
    "PostgresPrincipalRepository",
    "check_connection",
    "run_migrations",
]

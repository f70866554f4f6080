"""
Shared fixtures for adversarial tests.

Replaces the in-memory repository with one whose lookups are slow, so
concurrent registrations all pass the uniqueness pre-check and the
write-time unique index has to stop the duplicates.
"""

import time

import pytest

from onboarding.adapters.repository.memory import InMemoryPrincipalRepository
from onboarding.domain.principals import Principal
from onboarding.domain.variants import Variant

LOOKUP_DELAY_SECONDS = 0.02


class SlowLookupRepository(InMemoryPrincipalRepository):
    """In-memory repository that widens the check-then-write window."""

    def find_by_field(self, variant: Variant, field: str, value: str) -> Principal | None:
        time.sleep(LOOKUP_DELAY_SECONDS)
        return super().find_by_field(variant, field, value)


@pytest.fixture
def repository() -> SlowLookupRepository:
    return SlowLookupRepository()

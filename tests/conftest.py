"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A frozen, advanceable clock driving every expiry check
- Domain services wired to the in-memory adapters
- A mocked notification dispatcher and a recording file uploader
- A TestClient around the full application
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from support import FrozenClock, RecordingUploader

from onboarding.adapters.repository.memory import (
    InMemoryAuditLog,
    InMemoryCounterRepository,
    InMemoryPrincipalRepository,
)
from onboarding.api.dependencies import Services, build_services
from onboarding.api.main import create_app
from onboarding.config.settings import Settings


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: in-memory storage, cheap bcrypt, fixed secret."""
    return Settings(
        _env_file=None,
        storage_backend="memory",
        bcrypt_cost=4,
        jwt_secret_key="test-secret-key",
        notification_workers=2,
    )


@pytest.fixture
def repository() -> InMemoryPrincipalRepository:
    return InMemoryPrincipalRepository()


@pytest.fixture
def counters() -> InMemoryCounterRepository:
    return InMemoryCounterRepository()


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def dispatcher() -> Mock:
    """Notification dispatcher that reports every delivery as successful."""
    dispatcher = Mock()
    dispatcher.send_sms.return_value = True
    dispatcher.send_email.return_value = True
    dispatcher.send_registration_pin.return_value = True
    return dispatcher


@pytest.fixture
def uploader() -> RecordingUploader:
    return RecordingUploader()


@pytest.fixture
def services(
    settings: Settings,
    repository: InMemoryPrincipalRepository,
    counters: InMemoryCounterRepository,
    audit_log: InMemoryAuditLog,
    dispatcher: Mock,
    uploader: RecordingUploader,
    clock: FrozenClock,
) -> Generator[Services, None, None]:
    services = build_services(
        settings,
        repository=repository,
        counters=counters,
        audit_log=audit_log,
        dispatcher=dispatcher,
        uploader=uploader,
        clock=clock,
    )
    yield services
    services.queue.shutdown()


@pytest.fixture
def client(settings: Settings, services: Services) -> Generator[TestClient, None, None]:
    """TestClient around the full application, lifespan included."""
    app = create_app(settings, services=services)
    with TestClient(app) as test_client:
        yield test_client

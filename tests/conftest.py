"""Global test fixtures and utilities for progression tests"""
import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from schoolhub import config
from schoolhub.api.middleware import limiter
from schoolhub.api.server import create_api_application
from schoolhub.gamification.memory_store import InMemoryProgressionStore
from schoolhub.models.progression import ActivityKind
from schoolhub.services.progression_service import ProgressionService


# ============================================================================
# User & Time Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "student_42"


@pytest.fixture
def base_time():
    """Monday 2024-01-15 09:00 UTC, the reference login instant"""
    return datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_api_key():
    """Standard test API key"""
    return "test_api_key_12345"


# ============================================================================
# Progression Fixtures
# ============================================================================

@pytest.fixture
def memory_store():
    """Empty in-memory progression store"""
    return InMemoryProgressionStore()


@pytest.fixture
def progression_service(memory_store):
    """ProgressionService over the in-memory store, UTC calendar, default AI tutor cap"""
    return ProgressionService(
        memory_store,
        calendar_tz="UTC",
        daily_caps={ActivityKind.USE_AI_TUTOR: 5},
    )


# ============================================================================
# HTTP & API Fixtures
# ============================================================================

@pytest.fixture
def auth_headers(test_api_key):
    """Valid authentication headers"""
    return {"Authorization": f"Bearer {test_api_key}"}


@pytest.fixture
def api_client(progression_service, test_api_key, monkeypatch):
    """TestClient for an app wired to the in-memory service"""
    monkeypatch.setattr(config, "API_KEYS", [test_api_key])
    monkeypatch.setattr(limiter, "enabled", False)

    app = create_api_application(service=progression_service)
    with TestClient(app) as client:
        yield client

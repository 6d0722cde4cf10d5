"""
Pytest Configuration and Fixtures

Provides reusable fixtures for testing the Intake Links Backend.
"""

import os

# Settings are read at import time; set the required values first.
os.environ.setdefault("SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("INTAKE_FORM_SECRET", "s3cret")

from typing import Callable, Dict, Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import intake_denylist
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import create_access_token
from app.middleware.rate_limit import intake_limiter


INTAKE_SECRET = "s3cret"
ORG_ID = "org-1"


# ==================== Database Fixtures ====================

@pytest.fixture
def mock_async_session() -> AsyncMock:
    """
    Create a mock async database session.

    Returns:
        AsyncMock configured to behave like AsyncSession.
    """
    session = AsyncMock(spec=AsyncSession)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    return session


# ==================== Settings Fixtures ====================

@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """
    Factory fixture building Settings with test defaults.

    Usage:
        settings = make_settings(INTAKE_FORM_SECRET="")
    """
    def _make(**overrides) -> Settings:
        values = {
            "SECRET_KEY": "test-jwt-secret",
            "INTAKE_FORM_SECRET": INTAKE_SECRET,
            "INTAKE_FORM_PREVIOUS_SECRETS": "",
            "PUBLIC_APP_URL": "",
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def test_settings(make_settings) -> Settings:
    return make_settings()


# ==================== App Fixtures ====================

@pytest.fixture
def app_factory(mock_async_session):
    """
    Yield a function that returns a TestClient bound to the given settings.

    Dependency overrides, the rate limiter and the denylist are reset after
    each test.
    """
    from app.main import app

    async def override_get_db():
        yield mock_async_session

    def _client(settings: Settings) -> TestClient:
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: settings
        return TestClient(app)

    intake_limiter.reset()
    intake_denylist.clear()
    yield _client
    app.dependency_overrides.clear()
    intake_limiter.reset()
    intake_denylist.clear()


@pytest.fixture
def client(app_factory, test_settings) -> Generator[TestClient, None, None]:
    yield app_factory(test_settings)


# ==================== Auth Fixtures ====================

@pytest.fixture
def staff_headers() -> Dict[str, str]:
    """Bearer header for a staff member of ORG_ID."""
    token = create_access_token("user-1", ORG_ID)
    return {"Authorization": f"Bearer {token}"}


# ==================== Intake Fixtures ====================

@pytest.fixture
def adult_intake() -> dict:
    """A valid adult intake submission, as posted by the intake page."""
    return {
        "name": "Thandi",
        "surname": "Mokoena",
        "dateOfBirth": "1988-04-12",
        "isUnder18": False,
        "id": "8804120123083",
        "title": "Ms",
        "gender": "female",
        "cellPhone": "0821234567",
        "email": "thandi@example.com",
        "address": "12 Long Street, Cape Town",
    }


@pytest.fixture
def minor_intake() -> dict:
    """A valid minor intake submission."""
    return {
        "name": "Sipho",
        "dateOfBirth": "2015-09-30",
        "isUnder18": True,
        "id": "1509305123081",
    }

"""Shared test fixtures for the SafeGuard Radar test suite.

Provides mock database sessions, Redis clients, and model factories so
tests run without Postgres or Redis.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.config import get_settings
from shared.models.contact import Contact
from shared.models.live_location import LiveLocation
from shared.models.tracked_location import TrackedLocation
from shared.models.user import User

TEST_JWT_SECRET = "test-secret-key-with-enough-length-for-hs256"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Deterministic settings: auth configured, no weather key, no Redis, no retry delay."""
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("JWT_AUDIENCE", "")
    monkeypatch.setenv("WEATHER_API_KEY", "")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("HTTP_RETRY_BASE_DELAY", "0")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Database mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db_session():
    """Mock async SQLAlchemy session.

    Supports the patterns used by the stores:
        session.execute(stmt) -> result
        session.add(obj)
        session.delete(obj)
        session.commit() / session.rollback()
    """
    session = AsyncMock()
    default_result = MagicMock()
    default_result.scalar_one_or_none.return_value = None
    default_result.scalars.return_value.all.return_value = []
    session.execute = AsyncMock(return_value=default_result)
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_session_factory(mock_db_session):
    """Mock async session factory compatible with ``async with factory() as session:``."""

    @asynccontextmanager
    async def _session_ctx():
        yield mock_db_session

    factory = MagicMock(side_effect=lambda: _session_ctx())
    return factory


# ---------------------------------------------------------------------------
# Redis mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_redis():
    """Mock async Redis client with common operations."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.delete = AsyncMock()
    return redis


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user():
    def _make(user_id: uuid.UUID | None = None, name: str = "Test User") -> User:
        return User(
            id=user_id or uuid.uuid4(),
            email=f"{uuid.uuid4().hex[:8]}@example.com",
            full_name=name,
            avatar_url=None,
            created_at=datetime.now(timezone.utc),
        )

    return _make


@pytest.fixture
def make_live_location():
    """Factory for LiveLocation rows."""

    def _make(
        user_id: uuid.UUID | None = None,
        lat: float = 40.0,
        lng: float = -73.0,
        is_sharing: bool = True,
        share_with: list[str] | None = None,
        last_updated: datetime | None = None,
        name: str = "My Location",
    ) -> LiveLocation:
        now = datetime.now(timezone.utc)
        return LiveLocation(
            id=uuid.uuid4(),
            user_id=user_id or uuid.uuid4(),
            name=name,
            latitude=lat,
            longitude=lng,
            accuracy=None,
            heading=None,
            speed=None,
            is_sharing=is_sharing,
            share_with=share_with or [],
            last_updated=last_updated or now,
            created_at=now,
        )

    return _make


@pytest.fixture
def make_tracked_location():
    def _make(
        user_id: uuid.UUID | None = None,
        name: str = "Grandma's House",
        type: str = "property",
        status: str = "unknown",
    ) -> TrackedLocation:
        now = datetime.now(timezone.utc)
        return TrackedLocation(
            id=uuid.uuid4(),
            user_id=user_id or uuid.uuid4(),
            name=name,
            latitude=40.7128,
            longitude=-74.0060,
            type=type,
            status=status,
            location="New York, NY",
            last_updated=now,
            created_at=now,
        )

    return _make


@pytest.fixture
def make_contact():
    def _make(user_id: uuid.UUID | None = None, name: str = "Alex") -> Contact:
        now = datetime.now(timezone.utc)
        return Contact(
            id=uuid.uuid4(),
            user_id=user_id or uuid.uuid4(),
            name=name,
            relationship="Sibling",
            address="1 Main St, Springfield",
            latitude=39.78,
            longitude=-89.65,
            status="safe",
            phone=None,
            email=None,
            description=None,
            created_at=now,
            updated_at=now,
        )

    return _make


# ---------------------------------------------------------------------------
# Result helpers
# ---------------------------------------------------------------------------


def scalar_result(value):
    """A result whose scalar_one_or_none() returns ``value``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def scalars_result(values):
    """A result whose scalars().all() returns ``values``."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(values)
    return result


def make_execute_side_effect(*results):
    """Create an execute side_effect that returns different results per call.

    Usage::

        session.execute = AsyncMock(
            side_effect=make_execute_side_effect(result1, result2)
        )
    """
    call_idx = 0

    async def _side_effect(stmt, *args, **kwargs):
        nonlocal call_idx
        if call_idx < len(results):
            r = results[call_idx]
            call_idx += 1
            return r
        fallback = MagicMock()
        fallback.scalar_one_or_none.return_value = None
        fallback.scalars.return_value.all.return_value = []
        return fallback

    return _side_effect


def mock_http_client(response=None, side_effect=None):
    """An AsyncMock standing in for ``httpx.AsyncClient`` used as a context manager."""
    client = AsyncMock()
    if side_effect is not None:
        client.request.side_effect = side_effect
    else:
        client.request.return_value = response
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


def mock_response(status_code: int = 200, json_data=None):
    import httpx

    return httpx.Response(
        status_code,
        json=json_data if json_data is not None else {},
        request=httpx.Request("GET", "https://upstream.test/"),
    )

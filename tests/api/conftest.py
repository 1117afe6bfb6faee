"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_bookmark_service
from api.main import app
from core.config import Settings, get_settings
from repositories import InMemoryBookmarkRepository
from services.bookmark_service import BookmarkService
from tests.conftest import RecordingFetcher

TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


def make_token(
    user_id: str | None = "user-1",
    secret: str = TEST_JWT_SECRET,
    issuer: str = "athena",
    expires_in: timedelta = timedelta(hours=1),
    **claims: str,
) -> str:
    """Mint an HS256 token the way the auth service does."""
    payload: dict = {"iss": issuer, "exp": datetime.now(UTC) + expires_in, **claims}
    if user_id is not None:
        payload["user_id"] = user_id
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(user_id: str = "user-1") -> dict[str, str]:
    """Authorization header for the given user."""
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def api_settings() -> Settings:
    """Settings with auth enforced and a known signing secret."""
    return Settings(_env_file=None, JWT_SECRET=TEST_JWT_SECRET, DEV_MODE=False)


@pytest.fixture
def api_service(fetcher: RecordingFetcher) -> BookmarkService:
    """Service over a fresh in-memory backend and the recording fetcher."""
    return BookmarkService(InMemoryBookmarkRepository(), fetcher)


@pytest.fixture
async def client(
    api_settings: Settings,
    api_service: BookmarkService,
) -> AsyncGenerator[AsyncClient]:
    """Test client with settings and service overridden; requests are unauthenticated."""
    app.dependency_overrides[get_settings] = lambda: api_settings
    app.dependency_overrides[get_bookmark_service] = lambda: api_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()

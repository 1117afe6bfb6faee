"""Pytest fixtures for testing."""
from collections.abc import AsyncGenerator
from pathlib import Path

import fakeredis
import pytest
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.config import Settings
from db.session import create_engine_from_settings, create_session_factory, init_models
from repositories import (
    BookmarkRepository,
    InMemoryBookmarkRepository,
    RedisBookmarkRepository,
    SqlBookmarkRepository,
)
from services.bookmark_service import BookmarkService

STORAGE_BACKENDS = ["memory", "sql", "redis"]


class RecordingFetcher:
    """
    ContentFetcher double that records which stages ran.

    `fail_on` names a stage ("title", "main_image", "content_summary") that raises
    RuntimeError instead of returning.
    """

    def __init__(
        self,
        title: str = "Example Domain",
        main_image: str = "https://example.com/cover.png",
        content_summary: str = "An example page used in documentation.",
        fail_on: str | None = None,
    ) -> None:
        self.title = title
        self.main_image = main_image
        self.content_summary = content_summary
        self.fail_on = fail_on
        self.calls: list[tuple[str, str]] = []

    def _record(self, stage: str, url: str) -> None:
        self.calls.append((stage, url))
        if self.fail_on == stage:
            raise RuntimeError(f"{stage} lookup exploded")

    @property
    def stages(self) -> list[str]:
        """Stage names in call order."""
        return [stage for stage, _ in self.calls]

    async def fetch_title(self, url: str) -> str:
        self._record("title", url)
        return self.title

    async def fetch_main_image(self, url: str) -> str:
        self._record("main_image", url)
        return self.main_image

    async def fetch_content_summary(self, url: str) -> str:
        self._record("content_summary", url)
        return self.content_summary


@pytest.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """File-backed SQLite engine with the bookmark tables created."""
    settings = Settings(
        storage_backend="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'athena.db'}",
    )
    engine = create_engine_from_settings(settings)
    await init_models(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return create_session_factory(sqlite_engine)


@pytest.fixture
async def redis_client() -> AsyncGenerator[Redis]:
    """In-process Redis double speaking the real client protocol."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)

    yield client

    await client.flushall()
    await client.aclose()


@pytest.fixture(params=STORAGE_BACKENDS)
def repository(
    request: pytest.FixtureRequest,
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: Redis,
) -> BookmarkRepository:
    """Each storage backend in turn, behind the same contract."""
    if request.param == "sql":
        return SqlBookmarkRepository(session_factory)
    if request.param == "redis":
        return RedisBookmarkRepository(redis_client, key_prefix="test")
    return InMemoryBookmarkRepository()


@pytest.fixture
def fetcher() -> RecordingFetcher:
    """Fetcher double returning fixed metadata."""
    return RecordingFetcher()


@pytest.fixture
def bookmark_service(fetcher: RecordingFetcher) -> BookmarkService:
    """Service over the in-memory backend and the recording fetcher."""
    return BookmarkService(InMemoryBookmarkRepository(), fetcher)

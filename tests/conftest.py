"""Pytest fixtures for testing."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import schnitzarchiv.models  # noqa: F401
from schnitzarchiv.auth import require_admin
from schnitzarchiv.database import get_session
from schnitzarchiv.main import create_app
from schnitzarchiv.models import SourceCategory
from schnitzarchiv.services.fetch import get_page_fetcher
from schnitzarchiv.services.metadata import SourceMetadata, get_metadata_generator
from schnitzarchiv.services.processor import ProcessingBudget, QueryProcessor
from schnitzarchiv.services.search import get_search_client


class FakeSearchClient:
    """Returns a fixed result list, or raises ``error``."""

    def __init__(self):
        self.results: list[str] = []
        self.error: Exception | None = None
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, count: int = 10) -> list[str]:
        self.calls.append((query, count))
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakePageFetcher:
    """Returns a short page text per URL and records what was fetched."""

    def __init__(self):
        self.calls: list[tuple[str, float | None]] = []

    async def fetch(self, url: str, timeout: float | None = None) -> str:
        self.calls.append((url, timeout))
        return f"Seiteninhalt von {url}"


class FakeMetadataGenerator:
    """Scores pages from ``scores``; URLs in ``failures`` raise instead."""

    def __init__(self):
        self.scores: dict[str, int] = {}
        self.tags: dict[str, list[str]] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.on_generate = None
        self.query_ideas: list[str] = ["Kerbschnitzen Anleitung", "Lindenholz schnitzen"]
        self.query_error: Exception | None = None
        self.corrected_title: str | None = None

    async def generate(self, url: str, content: str | None = None) -> SourceMetadata:
        self.calls.append(url)
        if self.on_generate is not None:
            await self.on_generate(url)
        if url in self.failures:
            raise self.failures[url]

        return SourceMetadata(
            title=f"Titel für {url}",
            summary="Kurzfassung\nAusführliche Beschreibung.",
            category=SourceCategory.Technik,
            tags=self.tags.get(url, ["Holz", "Schnitzmesser"]),
            language="Deutsch",
            quality_score=self.scores.get(url, 6),
        )

    async def generate_search_queries(self, topic: str, count: int = 5) -> list[str]:
        if self.query_error is not None:
            raise self.query_error
        return self.query_ideas[:count]

    async def correct_title(self, title: str, url: str, summary: str | None = None) -> str:
        return self.corrected_title or title


@pytest.fixture
def anyio_backend():
    """Use asyncio backend for pytest-asyncio."""
    return "asyncio"


@pytest.fixture
async def async_engine():
    """Create an in-memory async engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine):
    """Create an async session for testing."""
    async with AsyncSession(async_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def search_client():
    return FakeSearchClient()


@pytest.fixture
def fetcher():
    return FakePageFetcher()


@pytest.fixture
def generator():
    return FakeMetadataGenerator()


@pytest.fixture
def processor(async_session, search_client, fetcher, generator):
    """Processor wired to the fakes with a small budget and threshold 4."""
    return QueryProcessor(
        session=async_session,
        search_client=search_client,
        fetcher=fetcher,
        generator=generator,
        budget=ProcessingBudget(search_count=3, fetch_timeout=8.0),
        min_quality_score=4,
    )


@pytest.fixture
async def app(async_session, search_client, fetcher, generator):
    """Create test application with overridden dependencies."""
    app = create_app()

    async def override_get_session():
        yield async_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_search_client] = lambda: search_client
    app.dependency_overrides[get_page_fetcher] = lambda: fetcher
    app.dependency_overrides[get_metadata_generator] = lambda: generator
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_app(app):
    """Test application with admin authentication bypassed."""
    app.dependency_overrides[require_admin] = lambda: "admin"
    yield app


@pytest.fixture
async def client(app):
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
async def admin_client(admin_app):
    """Async test client with admin access."""
    async with AsyncClient(
        transport=ASGITransport(app=admin_app),
        base_url="http://test"
    ) as client:
        yield client

"""Tests for the admin source and tag endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from schnitzarchiv.errors import MetadataGenerationError
from schnitzarchiv.models import Source, TagCooccurrence
from schnitzarchiv.services.catalog import SourceCatalog
from schnitzarchiv.services.cooccurrence import TagCooccurrenceStore


async def add_source(session, url: str, **kwargs) -> int:
    source = await SourceCatalog(session).insert(Source(url=url, title=kwargs.pop("title", url), **kwargs))
    return source.id


@pytest.mark.asyncio
async def test_create_source_records_cooccurrence(admin_client: AsyncClient, async_session):
    response = await admin_client.post(
        "/api/admin/sources",
        json={
            "url": "https://example.org/relief",
            "title": "Relief in Linde",
            "category": "Technik",
            "tags": ["Relief", "Linde"],
            "relevance_score": 8,
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["source_query"] is None
    assert data["display_score"] == 8

    related = await TagCooccurrenceStore(async_session).related_tags("Relief")
    assert [(r.tag, r.score) for r in related] == [("Linde", 1)]


@pytest.mark.asyncio
async def test_create_source_survives_cooccurrence_failure(admin_client: AsyncClient, async_session):
    locked = OperationalError("UPDATE tag_cooccurrence", {}, Exception("database is locked"))

    with patch.object(TagCooccurrenceStore, "record", AsyncMock(side_effect=locked)):
        response = await admin_client.post(
            "/api/admin/sources",
            json={"url": "https://example.org/relief", "tags": ["Relief", "Linde"]},
        )

    assert response.status_code == 201
    assert response.json()["tags"] == ["Relief", "Linde"]
    assert [s.url for s in await SourceCatalog(async_session).all()] == ["https://example.org/relief"]


@pytest.mark.asyncio
async def test_create_duplicate_source_conflicts(admin_client: AsyncClient, async_session):
    await add_source(async_session, "https://example.org/relief")

    response = await admin_client.post("/api/admin/sources", json={"url": "https://example.org/relief"})

    assert response.status_code == 409
    assert "already exists" in response.json()["detail"]


@pytest.mark.asyncio
async def test_preview_does_not_persist(admin_client: AsyncClient, async_session, fetcher, generator):
    response = await admin_client.post("/api/admin/sources/preview", json={"url": "https://example.org/neu"})

    assert response.status_code == 200
    assert response.json()["quality_score"] == 6
    assert fetcher.calls[0][0] == "https://example.org/neu"
    assert await SourceCatalog(async_session).all() == []


@pytest.mark.asyncio
async def test_preview_rejects_blank_and_blocked_urls(admin_client: AsyncClient):
    blank = await admin_client.post("/api/admin/sources/preview", json={"url": " "})
    blocked = await admin_client.post("/api/admin/sources/preview", json={"url": "https://www.amazon.de/dp/B0"})

    assert blank.status_code == 400
    assert blocked.status_code == 400


@pytest.mark.asyncio
async def test_preview_upstream_failure(admin_client: AsyncClient, generator):
    generator.failures["https://example.org/neu"] = MetadataGenerationError("Gemini nicht erreichbar")

    response = await admin_client.post("/api/admin/sources/preview", json={"url": "https://example.org/neu"})

    assert response.status_code == 502


@pytest.mark.asyncio
async def test_update_source_score_and_star(admin_client: AsyncClient, async_session):
    source_id = await add_source(async_session, "https://example.org/a", relevance_score=7)

    response = await admin_client.patch(
        f"/api/admin/sources/{source_id}", json={"corrected_score": 9, "star_rating": True}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["relevance_score"] == 7
    assert data["corrected_score"] == 9
    assert data["display_score"] == 9
    assert data["star_rating"] is True


@pytest.mark.asyncio
async def test_update_source_rejects_out_of_range_score(admin_client: AsyncClient, async_session):
    source_id = await add_source(async_session, "https://example.org/a")

    response = await admin_client.patch(f"/api/admin/sources/{source_id}", json={"corrected_score": 12})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_correct_title(admin_client: AsyncClient, async_session, generator):
    source_id = await add_source(async_session, "https://example.org/a", title="relief | blog")
    generator.corrected_title = "Relief schnitzen"

    response = await admin_client.post(f"/api/admin/sources/{source_id}/correct-title")

    assert response.status_code == 200
    assert response.json()["title"] == "Relief schnitzen"


@pytest.mark.asyncio
async def test_delete_source(admin_client: AsyncClient, async_session):
    source_id = await add_source(async_session, "https://example.org/a")

    response = await admin_client.delete(f"/api/admin/sources/{source_id}")

    assert response.status_code == 200
    assert await SourceCatalog(async_session).get(source_id) is None
    missing = await admin_client.delete(f"/api/admin/sources/{source_id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_all_sources_clears_cooccurrence(admin_client: AsyncClient, async_session):
    await add_source(async_session, "https://example.org/a", tags=["a", "b"])
    await add_source(async_session, "https://example.org/b", tags=["b", "c"])
    await TagCooccurrenceStore(async_session).record(["a", "b"])

    response = await admin_client.delete("/api/admin/sources")

    assert response.status_code == 200
    assert response.json()["deleted"] == 2
    assert await SourceCatalog(async_session).all() == []
    result = await async_session.exec(select(TagCooccurrence.id))
    assert result.all() == []


@pytest.mark.asyncio
async def test_admin_tags_with_related(admin_client: AsyncClient, async_session):
    await add_source(async_session, "https://example.org/a", tags=["Holz", "Relief"])
    await add_source(async_session, "https://example.org/b", tags=["Holz", "Messer"])
    await add_source(async_session, "https://example.org/c", tags=["Holz", "Relief"])

    rebuilt = await admin_client.post("/api/admin/tags/rebuild-cooccurrence")
    assert rebuilt.json()["pairs"] == 2

    response = await admin_client.get("/api/admin/tags")

    assert response.status_code == 200
    data = response.json()
    assert data["total_tags"] == 3
    assert data["total_sources"] == 3
    holz = data["tags"][0]
    assert holz["tag"] == "Holz"
    assert holz["count"] == 3
    assert holz["related_tags"] == [{"tag": "Relief", "score": 2}, {"tag": "Messer", "score": 1}]


@pytest.mark.asyncio
async def test_admin_stats_include_query_counts(admin_client: AsyncClient, async_session):
    await add_source(async_session, "https://example.org/a", star_rating=True)

    response = await admin_client.get("/api/admin/stats")

    assert response.status_code == 200
    data = response.json()
    assert data["total_sources"] == 1
    assert data["starred_sources"] == 1
    assert data["queries"]["total"] == 0
    assert data["queries"]["pending"] == 0

"""Tests for the source catalog repository."""

import pytest

from schnitzarchiv.errors import DuplicateSourceError, SourceNotFoundError
from schnitzarchiv.models import Source, SourceCategory, SourceUpdate
from schnitzarchiv.services.catalog import SourceCatalog


def make_source(url: str, **kwargs) -> Source:
    """Helper function to create a source for testing."""
    return Source(
        url=url,
        title=kwargs.get("title", f"Artikel {url}"),
        summary=kwargs.get("summary", "Kurz\nLang"),
        category=kwargs.get("category", SourceCategory.Tutorial),
        tags=kwargs.get("tags", ["Holz"]),
        language=kwargs.get("language", "Deutsch"),
        source_query=kwargs.get("source_query"),
        relevance_score=kwargs.get("relevance_score", 6),
        corrected_score=kwargs.get("corrected_score"),
        star_rating=kwargs.get("star_rating", False),
    )


@pytest.mark.asyncio
async def test_insert_same_url_twice_keeps_one_row(async_session):
    catalog = SourceCatalog(async_session)
    await catalog.insert(make_source("https://example.org/a"))

    with pytest.raises(DuplicateSourceError, match="already exists"):
        await catalog.insert(make_source("https://example.org/a", title="Zweiter Versuch"))

    sources = await catalog.all()
    assert len(sources) == 1
    assert sources[0].title == "Artikel https://example.org/a"


@pytest.mark.asyncio
async def test_existing_urls_returns_only_known_urls(async_session):
    catalog = SourceCatalog(async_session)
    await catalog.insert(make_source("https://example.org/a"))
    await catalog.insert(make_source("https://example.org/b"))

    existing = await catalog.existing_urls(
        ["https://example.org/a", "https://example.org/c", "https://example.org/b"]
    )
    assert existing == {"https://example.org/a", "https://example.org/b"}
    assert await catalog.existing_urls([]) == set()


@pytest.mark.asyncio
async def test_count_by_source_query(async_session):
    catalog = SourceCatalog(async_session)
    await catalog.insert(make_source("https://example.org/a", source_query="foo"))
    await catalog.insert(make_source("https://example.org/b", source_query="foo"))
    await catalog.insert(make_source("https://example.org/c", source_query="bar"))

    assert await catalog.count_by_source_query("foo") == 2
    assert await catalog.count_by_source_query("baz") == 0


@pytest.mark.asyncio
async def test_search_filters(async_session):
    catalog = SourceCatalog(async_session)
    await catalog.insert(make_source("https://example.org/relief", title="Reliefschnitzen", tags=["Relief"]))
    await catalog.insert(
        make_source("https://example.org/messer", category=SourceCategory.Werkzeug, tags=["Messer"], star_rating=True)
    )
    await catalog.insert(
        make_source("https://example.org/low", relevance_score=8, corrected_score=2, tags=["Relief"])
    )

    by_text = await catalog.search(search="RELIEF")
    assert {s.url for s in by_text} == {"https://example.org/relief", "https://example.org/low"}

    by_category = await catalog.search(category=SourceCategory.Werkzeug)
    assert [s.url for s in by_category] == ["https://example.org/messer"]

    starred = await catalog.search(starred_only=True)
    assert [s.url for s in starred] == ["https://example.org/messer"]

    # The operator's corrected score wins over the generated one
    scored = await catalog.search(tag="Relief", min_score=5)
    assert [s.url for s in scored] == ["https://example.org/relief"]


@pytest.mark.asyncio
async def test_update_changes_only_sent_fields(async_session):
    catalog = SourceCatalog(async_session)
    source = await catalog.insert(make_source("https://example.org/a", relevance_score=7))
    source_id = source.id

    updated = await catalog.update(source_id, SourceUpdate(corrected_score=3, star_rating=True))

    assert updated.corrected_score == 3
    assert updated.star_rating is True
    assert updated.relevance_score == 7
    assert updated.display_score == 3


@pytest.mark.asyncio
async def test_update_and_delete_unknown_source(async_session):
    catalog = SourceCatalog(async_session)

    with pytest.raises(SourceNotFoundError):
        await catalog.update(999, SourceUpdate(star_rating=True))
    with pytest.raises(SourceNotFoundError):
        await catalog.delete(999)


@pytest.mark.asyncio
async def test_stats(async_session):
    catalog = SourceCatalog(async_session)
    await catalog.insert(make_source("https://example.org/a", star_rating=True))
    await catalog.insert(make_source("https://example.org/b", category=SourceCategory.Werkzeug))
    await catalog.insert(make_source("https://example.org/c", language="English"))

    stats = await catalog.stats()

    assert stats["total_sources"] == 3
    assert stats["starred_sources"] == 1
    assert stats["categories"] == {"Tutorial": 2, "Werkzeug": 1}
    assert stats["languages"] == {"Deutsch": 2, "English": 1}
    assert stats["categories_count"] == 2
    assert stats["languages_count"] == 2

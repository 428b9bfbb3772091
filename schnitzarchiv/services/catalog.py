"""Source catalog: persistence and lookups for curated sources."""

from collections import Counter
from datetime import datetime
from typing import Iterable

from loguru import logger
from sqlalchemy import delete as delete_statement
from sqlalchemy.exc import IntegrityError
from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.errors import DuplicateSourceError, SourceNotFoundError
from schnitzarchiv.models import Source, SourceCategory, SourceUpdate


def matches_search(source: Source, search: str) -> bool:
    """Case-insensitive match over title, summary, url and tags."""
    needle = search.lower()
    return (
        needle in (source.title or "").lower()
        or needle in (source.summary or "").lower()
        or needle in source.url.lower()
        or any(needle in tag.lower() for tag in source.tags or [])
    )


class SourceCatalog:
    """Repository over the ``source`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, source_id: int) -> Source | None:
        return await self.session.get(Source, source_id)

    async def require(self, source_id: int) -> Source:
        source = await self.get(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)
        return source

    async def existing_urls(self, urls: Iterable[str]) -> set[str]:
        """Return the subset of ``urls`` already in the catalog, in one query."""
        urls = list(urls)
        if not urls:
            return set()

        result = await self.session.exec(select(Source.url).where(Source.url.in_(urls)))
        return set(result.all())

    async def insert(self, source: Source) -> Source:
        """
        Persist a new source.

        Raises:
            DuplicateSourceError: a source with the same URL already exists.
                The session is rolled back, nothing is written.
        """
        url = source.url
        self.session.add(source)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if url in await self.existing_urls([url]):
                raise DuplicateSourceError(url) from e
            raise

        await self.session.refresh(source)
        logger.debug(f"Saved source {source.id}: {url}")
        return source

    async def count_by_source_query(self, query_text: str) -> int:
        result = await self.session.exec(
            select(func.count(Source.id)).where(Source.source_query == query_text)
        )
        return result.one()

    async def all(self) -> list[Source]:
        """All sources in catalog order (id ascending)."""
        result = await self.session.exec(select(Source).order_by(Source.id))
        return list(result.all())

    async def search(
        self,
        search: str | None = None,
        category: SourceCategory | None = None,
        language: str | None = None,
        tag: str | None = None,
        min_score: int | None = None,
        starred_only: bool = False,
    ) -> list[Source]:
        """
        Filter sources, newest first.

        Column filters run in SQL. Text search, tag and score filters run in
        Python because tags live in a JSON column.
        """
        query = select(Source)
        if category:
            query = query.where(Source.category == category)
        if language:
            query = query.where(Source.language == language)
        if starred_only:
            query = query.where(Source.star_rating == True)  # noqa: E712

        query = query.order_by(Source.date_added.desc(), Source.id.desc())
        result = await self.session.exec(query)
        sources = list(result.all())

        if search:
            sources = [s for s in sources if matches_search(s, search)]
        if tag:
            sources = [s for s in sources if tag in (s.tags or [])]
        if min_score:
            sources = [s for s in sources if s.display_score >= min_score]

        return sources

    async def update(self, source_id: int, changes: SourceUpdate) -> Source:
        source = await self.require(source_id)

        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(source, field, value)
        source.last_updated = datetime.utcnow()

        self.session.add(source)
        await self.session.commit()
        await self.session.refresh(source)
        return source

    async def delete(self, source_id: int) -> None:
        source = await self.require(source_id)
        await self.session.delete(source)
        await self.session.commit()

    async def delete_all(self) -> int:
        result = await self.session.execute(delete_statement(Source))
        await self.session.commit()
        return result.rowcount or 0

    async def stats(self) -> dict:
        """Totals plus per-category and per-language counts."""
        result = await self.session.exec(
            select(Source.category, Source.language, Source.star_rating)
        )
        rows = result.all()

        categories = Counter(
            row[0].value if isinstance(row[0], SourceCategory) else row[0] for row in rows
        )
        languages = Counter(row[1] for row in rows)

        return {
            "total_sources": len(rows),
            "starred_sources": sum(1 for row in rows if row[2]),
            "categories_count": len(categories),
            "languages_count": len(languages),
            "categories": dict(categories),
            "languages": dict(languages),
        }

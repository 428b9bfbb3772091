"""Tag co-occurrence counts and the tag-overlap similarity built on them."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from itertools import combinations
from typing import Iterable

from loguru import logger
from pydantic import BaseModel
from sqlalchemy import delete, insert, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.errors import SourceNotFoundError
from schnitzarchiv.models import Source, TagCooccurrence


# Points per tag shared with the reference source
SHARED_TAG_WEIGHT = 15


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Strip tags, drop blanks and repeats, keep first-seen order."""
    seen: set[str] = set()
    normalized = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if not tag or tag in seen:
            continue
        seen.add(tag)
        normalized.append(tag)
    return normalized


def tag_pairs(tags: Iterable[str] | None) -> list[tuple[str, str]]:
    """All unordered pairs of a tag set, each sorted so (a, b) and (b, a) coincide."""
    return [tuple(sorted(pair)) for pair in combinations(normalize_tags(tags), 2)]


def count_tags(tag_lists: Iterable[Iterable[str] | None]) -> Counter:
    """How many sources carry each tag."""
    counts: Counter = Counter()
    for tags in tag_lists:
        counts.update(normalize_tags(tags))
    return counts


class RelatedTag(BaseModel):
    """A tag seen together with another one, scored by co-occurrence count."""

    tag: str
    score: int


@dataclass
class ScoredSource:
    """A source ranked by how many tags it shares with a reference source."""

    source: Source
    similarity_score: int
    shared_tags: list[str] = field(default_factory=list)


class TagCooccurrenceStore:
    """Maintains the ``tag_cooccurrence`` table and answers similarity lookups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, tags: Iterable[str] | None) -> int:
        """
        Count every pair of ``tags`` as seen together once more.

        Missing pairs are created with count 1. Fewer than two distinct tags
        is a no-op.

        Returns:
            Number of pairs touched
        """
        pairs = tag_pairs(tags)
        if not pairs:
            return 0

        # A concurrent run can insert the same new pair first; the retry then updates it
        for attempt in range(2):
            try:
                await self._increment(pairs)
                await self.session.commit()
                break
            except IntegrityError:
                await self.session.rollback()
                if attempt == 1:
                    raise
                logger.debug("Tag pair inserted concurrently, retrying co-occurrence update")

        logger.debug(f"Recorded {len(pairs)} tag pairs")
        return len(pairs)

    async def record_for_new_source(self, url: str, tags: Iterable[str] | None) -> bool:
        """
        Record the tags of a source that is already saved.

        A database failure is logged and rolled back, not raised: the source
        stays in the catalog and ``rebuild`` restores the missing counts.

        Returns:
            False if the counts could not be written
        """
        try:
            await self.record(tags)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Tag co-occurrence not updated for {url}: {e}")
            return False
        return True

    async def _increment(self, pairs: list[tuple[str, str]]) -> None:
        # Rows are written with statements only, so no stale counts sit in the session
        now = datetime.utcnow()
        for tag1, tag2 in pairs:
            result = await self.session.execute(
                update(TagCooccurrence)
                .where(TagCooccurrence.tag1 == tag1, TagCooccurrence.tag2 == tag2)
                .values(count=TagCooccurrence.count + 1, last_updated=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.session.execute(
                    insert(TagCooccurrence).values(tag1=tag1, tag2=tag2, count=1, last_updated=now)
                )

    async def related_tags(self, tag: str, limit: int = 10) -> list[RelatedTag]:
        """Tags most often seen with ``tag``, strongest first."""
        if limit <= 0:
            return []

        result = await self.session.exec(
            select(TagCooccurrence.tag1, TagCooccurrence.tag2, TagCooccurrence.count)
            .where(or_(TagCooccurrence.tag1 == tag, TagCooccurrence.tag2 == tag))
            .order_by(TagCooccurrence.count.desc(), TagCooccurrence.id)
            .limit(limit)
        )

        return [
            RelatedTag(tag=row.tag2 if row.tag1 == tag else row.tag1, score=row.count)
            for row in result.all()
        ]

    async def similar_sources(self, source_id: int, limit: int = 5) -> list[ScoredSource]:
        """
        Rank other sources by shared tags with ``source_id``.

        Sources sharing no tag are left out. Equal scores keep catalog order.

        Raises:
            SourceNotFoundError: unknown source id
        """
        target = await self.session.get(Source, source_id)
        if target is None:
            raise SourceNotFoundError(source_id)

        target_tags = set(normalize_tags(target.tags))
        if not target_tags or limit <= 0:
            return []

        result = await self.session.exec(
            select(Source).where(Source.id != source_id).order_by(Source.id)
        )

        scored = []
        for other in result.all():
            shared = [tag for tag in normalize_tags(other.tags) if tag in target_tags]
            if not shared:
                continue
            scored.append(
                ScoredSource(
                    source=other,
                    similarity_score=len(shared) * SHARED_TAG_WEIGHT,
                    shared_tags=shared,
                )
            )

        scored.sort(key=lambda item: item.similarity_score, reverse=True)
        return scored[:limit]

    async def clear(self) -> int:
        result = await self.session.execute(delete(TagCooccurrence))
        await self.session.commit()
        return result.rowcount or 0

    async def rebuild(self) -> int:
        """
        Recompute all counts from the current sources' tags.

        Returns:
            Number of distinct pairs written
        """
        result = await self.session.exec(select(Source.tags))
        pair_counts: Counter = Counter()
        for tags in result.all():
            pair_counts.update(tag_pairs(tags))

        await self.session.execute(delete(TagCooccurrence))
        now = datetime.utcnow()
        if pair_counts:
            await self.session.execute(
                insert(TagCooccurrence),
                [
                    {"tag1": tag1, "tag2": tag2, "count": count, "last_updated": now}
                    for (tag1, tag2), count in pair_counts.items()
                ],
            )
        await self.session.commit()

        logger.info(f"Rebuilt tag co-occurrence: {len(pair_counts)} pairs")
        return len(pair_counts)

"""Search query queue: lifecycle and status bookkeeping for queued queries."""

from collections import Counter
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.errors import InvalidStatusTransitionError, QueryNotFoundError
from schnitzarchiv.models import (
    QueryStatus,
    SearchQuery,
    SearchQueryUpdate,
    TERMINAL_STATUSES,
)


CANCELLED_MESSAGE = "Processing cancelled by user"

# Admin listing order: work waiting or running first, finished work last
STATUS_ORDER = {
    QueryStatus.pending: 0,
    QueryStatus.processing: 1,
    QueryStatus.failed: 2,
    QueryStatus.processed: 3,
}


class SearchQueryQueue:
    """Repository over the ``search_query`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, text: str, is_ai_generated: bool = False) -> SearchQuery:
        query = SearchQuery(query=text.strip(), is_ai_generated=is_ai_generated)
        self.session.add(query)
        await self.session.commit()
        await self.session.refresh(query)
        logger.info(f"Queued search query {query.id}: {query.query}")
        return query

    async def create_many(self, texts: list[str], is_ai_generated: bool = False) -> list[SearchQuery]:
        queries = [
            SearchQuery(query=text.strip(), is_ai_generated=is_ai_generated)
            for text in texts
            if text and text.strip()
        ]
        self.session.add_all(queries)
        await self.session.commit()
        for query in queries:
            await self.session.refresh(query)
        logger.info(f"Queued {len(queries)} search queries")
        return queries

    async def get(self, query_id: int) -> SearchQuery | None:
        """Load a query, always reading the row from the database."""
        return await self.session.get(SearchQuery, query_id, populate_existing=True)

    async def require(self, query_id: int) -> SearchQuery:
        query = await self.get(query_id)
        if query is None:
            raise QueryNotFoundError(query_id)
        return query

    async def get_status(self, query_id: int) -> QueryStatus | None:
        """Current status straight from the table, None if the query is gone."""
        result = await self.session.exec(
            select(SearchQuery.status).where(SearchQuery.id == query_id)
        )
        return result.first()

    async def set_status(self, query_id: int, status: QueryStatus, **fields: Any) -> None:
        await self.set_fields(query_id, status=status, **fields)

    async def set_fields(self, query_id: int, **fields: Any) -> None:
        await self.session.execute(
            update(SearchQuery).where(SearchQuery.id == query_id).values(**fields)
        )
        await self.session.commit()

    async def mark_processing(self, query_id: int) -> None:
        await self.set_status(query_id, QueryStatus.processing)

    async def mark_processed(
        self,
        query_id: int,
        results_count: int,
        error_message: str | None = None,
    ) -> None:
        await self.set_status(
            query_id,
            QueryStatus.processed,
            date_processed=datetime.utcnow(),
            results_count=results_count,
            error_message=error_message,
        )

    async def mark_failed(self, query_id: int, error_message: str) -> None:
        """Mark a query failed. Rolls back first so it works after a broken transaction."""
        await self.session.rollback()
        await self.set_status(query_id, QueryStatus.failed, error_message=error_message)

    async def cancel(self, query_id: int) -> SearchQuery:
        """
        Cancel a pending or processing query.

        A running pipeline notices the failed status before its next URL.

        Raises:
            QueryNotFoundError: unknown id
            InvalidStatusTransitionError: the query already finished
        """
        query = await self.require(query_id)
        if query.status in TERMINAL_STATUSES:
            raise InvalidStatusTransitionError(
                f"Query {query_id} is already {query.status.value}"
            )

        await self.set_status(query_id, QueryStatus.failed, error_message=CANCELLED_MESSAGE)
        logger.info(f"[Query {query_id}] Cancelled by user")
        return await self.require(query_id)

    async def update(self, query_id: int, changes: SearchQueryUpdate) -> SearchQuery:
        await self.require(query_id)

        fields = changes.model_dump(exclude_unset=True)
        if fields.get("status") == QueryStatus.processed:
            fields["date_processed"] = datetime.utcnow()
        if fields:
            await self.set_fields(query_id, **fields)

        return await self.require(query_id)

    async def delete(self, query_id: int) -> None:
        """Delete a query. Sources it produced keep their ``source_query`` text."""
        query = await self.require(query_id)
        await self.session.delete(query)
        await self.session.commit()

    async def list_queries(
        self,
        status: QueryStatus | None = None,
        ai_generated: bool | None = None,
        search: str | None = None,
    ) -> list[SearchQuery]:
        """Queries ordered by status (pending, processing, failed, processed), newest first."""
        query = select(SearchQuery)
        if status:
            query = query.where(SearchQuery.status == status)
        if ai_generated is not None:
            query = query.where(SearchQuery.is_ai_generated == ai_generated)
        if search:
            query = query.where(SearchQuery.query.ilike(f"%{search}%"))

        query = query.order_by(SearchQuery.date_added.desc(), SearchQuery.id.desc())
        result = await self.session.exec(query)

        return sorted(result.all(), key=lambda q: STATUS_ORDER.get(q.status, len(STATUS_ORDER)))

    async def pending_ids(self, limit: int = 10) -> list[int]:
        """Oldest pending queries first."""
        result = await self.session.exec(
            select(SearchQuery.id)
            .where(SearchQuery.status == QueryStatus.pending)
            .order_by(SearchQuery.date_added, SearchQuery.id)
            .limit(limit)
        )
        return list(result.all())

    async def count_by_status(self) -> dict[str, int]:
        result = await self.session.exec(select(SearchQuery.status))
        counts = Counter(status.value for status in result.all())
        return {status.value: counts.get(status.value, 0) for status in QueryStatus}

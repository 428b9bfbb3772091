"""Admin router for the search query queue and pipeline runs."""

from collections.abc import AsyncIterator

from arq import create_pool
from arq.connections import ArqRedis
from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.auth import require_admin
from schnitzarchiv.database import get_session
from schnitzarchiv.errors import (
    InvalidStatusTransitionError,
    MetadataGenerationError,
    QueryNotFoundError,
    SearchProviderError,
)
from schnitzarchiv.models import QueryStatus, SearchQueryCreate, SearchQueryRead, SearchQueryUpdate
from schnitzarchiv.services.catalog import SourceCatalog
from schnitzarchiv.services.fetch import PageFetcher, get_page_fetcher
from schnitzarchiv.services.metadata import MetadataGenerator, get_metadata_generator
from schnitzarchiv.services.processor import ProcessingBudget, ProcessResult, build_processor
from schnitzarchiv.services.query_queue import SearchQueryQueue
from schnitzarchiv.services.search import SerperSearchClient, get_search_client
from schnitzarchiv.tasks.worker import get_redis_settings

router = APIRouter(
    prefix="/admin/queries",
    tags=["admin-queries"],
    dependencies=[Depends(require_admin)],
)


class GenerateQueriesRequest(BaseModel):
    topic: str
    count: int = Field(5, ge=1, le=20)


async def get_job_pool() -> AsyncIterator[ArqRedis]:
    """Dependency that provides an arq connection for enqueueing jobs."""
    pool = await create_pool(get_redis_settings())
    try:
        yield pool
    finally:
        await pool.close()


@router.get("", response_model=list[SearchQueryRead])
async def list_queries(
    session: AsyncSession = Depends(get_session),
    status: QueryStatus | None = None,
    ai_generated: bool | None = None,
    search: str | None = None,
):
    """List queries: pending and processing first, then failed, then processed."""
    return await SearchQueryQueue(session).list_queries(
        status=status, ai_generated=ai_generated, search=search
    )


@router.post("", response_model=SearchQueryRead, status_code=201)
async def create_query(
    query_in: SearchQueryCreate,
    session: AsyncSession = Depends(get_session),
):
    """Queue a new search query."""
    if not query_in.query.strip():
        raise HTTPException(status_code=400, detail="Query text must not be empty")

    return await SearchQueryQueue(session).create(query_in.query, is_ai_generated=query_in.is_ai_generated)


@router.post("/generate", response_model=list[SearchQueryRead], status_code=201)
async def generate_queries(
    request: GenerateQueriesRequest,
    session: AsyncSession = Depends(get_session),
    generator: MetadataGenerator = Depends(get_metadata_generator),
):
    """Expand a topic into several AI-written search queries and queue them."""
    if not request.topic.strip():
        raise HTTPException(status_code=400, detail="Topic must not be empty")

    try:
        texts = await generator.generate_search_queries(request.topic.strip(), count=request.count)
    except MetadataGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return await SearchQueryQueue(session).create_many(texts, is_ai_generated=True)


@router.patch("/{query_id}", response_model=SearchQueryRead)
async def update_query(
    query_id: int,
    query_update: SearchQueryUpdate,
    session: AsyncSession = Depends(get_session),
):
    """Manually change status, error message or result count."""
    try:
        return await SearchQueryQueue(session).update(query_id, query_update)
    except QueryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{query_id}")
async def delete_query(
    query_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Delete a query. The sources it found stay in the catalog."""
    try:
        await SearchQueryQueue(session).delete(query_id)
    except QueryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}


@router.post("/enqueue-pending")
async def enqueue_pending(
    limit: int = 10,
    pool: ArqRedis = Depends(get_job_pool),
):
    """Hand all pending queries (up to ``limit``) to the background worker."""
    job = await pool.enqueue_job("process_pending_task", limit=limit)
    logger.info(f"Enqueued process_pending_task (limit={limit})")
    return {"status": "enqueued", "job_id": job.job_id if job else None}


@router.post("/{query_id}/process", response_model=ProcessResult)
async def process_query(
    query_id: int,
    session: AsyncSession = Depends(get_session),
    search_client: SerperSearchClient = Depends(get_search_client),
    fetcher: PageFetcher = Depends(get_page_fetcher),
    generator: MetadataGenerator = Depends(get_metadata_generator),
):
    """Run the pipeline for one query inside this request, with the short budget."""
    processor = build_processor(session, search_client, fetcher, generator, ProcessingBudget.inline())
    try:
        return await processor.process(query_id)
    except QueryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (SearchProviderError, MetadataGenerationError) as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/{query_id}/enqueue")
async def enqueue_query(
    query_id: int,
    session: AsyncSession = Depends(get_session),
    pool: ArqRedis = Depends(get_job_pool),
):
    """Hand one query to the background worker, with the relaxed budget."""
    try:
        await SearchQueryQueue(session).require(query_id)
    except QueryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    job = await pool.enqueue_job("process_query_task", query_id)
    logger.info(f"[Query {query_id}] Enqueued process_query_task")
    return {"status": "enqueued", "query_id": query_id, "job_id": job.job_id if job else None}


@router.post("/{query_id}/cancel", response_model=SearchQueryRead)
async def cancel_query(
    query_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Cancel a pending or running query. A running pipeline stops before its next URL."""
    try:
        return await SearchQueryQueue(session).cancel(query_id)
    except QueryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{query_id}/status")
async def get_query_status(
    query_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Progress view for polling: stored status plus the live source count."""
    try:
        query = await SearchQueryQueue(session).require(query_id)
    except QueryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    sources_in_db = await SourceCatalog(session).count_by_source_query(query.query)
    return {
        "id": query.id,
        "query": query.query,
        "status": query.status,
        "results_count": query.results_count,
        "sources_in_db": sources_in_db,
        "date_processed": query.date_processed,
        "error_message": query.error_message,
    }

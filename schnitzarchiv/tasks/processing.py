"""Query processing task definitions for ARQ."""

from loguru import logger

from schnitzarchiv.database import async_session_maker
from schnitzarchiv.services.fetch import get_page_fetcher
from schnitzarchiv.services.metadata import get_metadata_generator
from schnitzarchiv.services.processor import ProcessingBudget, build_processor
from schnitzarchiv.services.query_queue import SearchQueryQueue
from schnitzarchiv.services.search import get_search_client


async def process_query_task(ctx: dict, query_id: int) -> dict:
    """
    Run the full pipeline for one query with the worker budget.

    Args:
        ctx: ARQ context
        query_id: ID of the SearchQuery to process

    Returns:
        dict with the run's ProcessResult fields
    """
    logger.info(f"[PROCESS] Starting for query_id: {query_id}")

    async with async_session_maker() as session:
        processor = build_processor(
            session,
            get_search_client(),
            get_page_fetcher(),
            get_metadata_generator(),
            ProcessingBudget.background(),
        )
        try:
            result = await processor.process(query_id)
        except Exception as e:
            logger.error(f"[PROCESS] Failed for query_id {query_id}: {e}")
            raise

    logger.info(
        f"[PROCESS] Complete for query_id {query_id}: "
        f"{result.new_sources_added} added, {result.errors_count} errors"
    )
    return {
        "task": "process",
        **result.model_dump(mode="json"),
    }


async def process_pending_task(ctx: dict, limit: int = 10) -> dict:
    """
    Batch task: process the oldest pending queries one after another.

    A failing query is left failed and the batch moves on.
    """
    logger.info(f"[PROCESS_PENDING] Starting for up to {limit} queries")

    async with async_session_maker() as session:
        query_ids = await SearchQueryQueue(session).pending_ids(limit=limit)

    processed = 0
    failed = 0
    sources_added = 0

    for query_id in query_ids:
        try:
            result = await process_query_task(ctx, query_id)
        except Exception as e:
            failed += 1
            logger.warning(f"[PROCESS_PENDING] query_id {query_id} failed: {e}")
            continue
        processed += 1
        sources_added += result["new_sources_added"]

    logger.info(
        f"[PROCESS_PENDING] Complete: {processed} processed, {failed} failed, "
        f"{sources_added} sources added"
    )
    return {
        "status": "completed",
        "task": "process_pending",
        "queries": len(query_ids),
        "processed": processed,
        "failed": failed,
        "sources_added": sources_added,
    }


# List of all task functions for ARQ worker
TASK_FUNCTIONS = [
    process_query_task,
    process_pending_task,
]

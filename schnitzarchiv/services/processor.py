"""Query processing pipeline: search -> dedup -> fetch -> score -> persist -> relate."""

import time
from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.config import Settings, get_settings
from schnitzarchiv.errors import DuplicateSourceError, QueryNotFoundError
from schnitzarchiv.models import QueryStatus, Source
from schnitzarchiv.services.catalog import SourceCatalog
from schnitzarchiv.services.cooccurrence import TagCooccurrenceStore
from schnitzarchiv.services.fetch import PageFetcher
from schnitzarchiv.services.metadata import MetadataGenerator
from schnitzarchiv.services.query_queue import SearchQueryQueue
from schnitzarchiv.services.search import SerperSearchClient
from schnitzarchiv.services.url_filter import dedupe_urls


@dataclass(frozen=True)
class ProcessingBudget:
    """How much work one run may do: search result count and per-page fetch timeout."""

    search_count: int
    fetch_timeout: float

    @classmethod
    def inline(cls, settings: Settings | None = None) -> "ProcessingBudget":
        """Budget for runs inside an HTTP request (hosting timeout ~60s)."""
        settings = settings or get_settings()
        return cls(settings.inline_search_count, settings.inline_fetch_timeout)

    @classmethod
    def background(cls, settings: Settings | None = None) -> "ProcessingBudget":
        """Budget for worker runs without a request deadline."""
        settings = settings or get_settings()
        return cls(settings.worker_search_count, settings.worker_fetch_timeout)


class CancellationToken:
    """
    Cooperative cancellation for one query run.

    Cancelling is done elsewhere by setting the query to failed; the token reads
    the stored status each time it is checked. Once cancelled it stays cancelled.
    """

    def __init__(self, queue: SearchQueryQueue, query_id: int):
        self.queue = queue
        self.query_id = query_id
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def check(self) -> bool:
        if not self._cancelled:
            status = await self.queue.get_status(self.query_id)
            # A deleted query counts as cancelled
            self._cancelled = status is None or status == QueryStatus.failed
        return self._cancelled


class UrlError(BaseModel):
    url: str
    error: str


class ProcessResult(BaseModel):
    """Outcome of one pipeline run."""

    query_id: int
    status: QueryStatus
    new_sources_added: int = 0
    total_for_query: int = 0
    errors_count: int = 0
    total_urls: int = 0
    cancelled: bool = False
    errors: list[UrlError] = []


class QueryProcessor:
    """
    Turns one queued search query into curated sources.

    URLs are handled one at a time. A failing URL is recorded and skipped; a
    failing search, or any error outside the per-URL step, marks the query
    failed and is re-raised.

    A failed URL rolls the session back, which expires every object loaded in
    it. Callers sharing the session must re-read rows after ``process``.
    """

    def __init__(
        self,
        session: AsyncSession,
        search_client: SerperSearchClient,
        fetcher: PageFetcher,
        generator: MetadataGenerator,
        budget: ProcessingBudget,
        min_quality_score: int = 4,
    ):
        self.session = session
        self.queue = SearchQueryQueue(session)
        self.catalog = SourceCatalog(session)
        self.cooccurrence = TagCooccurrenceStore(session)
        self.search_client = search_client
        self.fetcher = fetcher
        self.generator = generator
        self.budget = budget
        self.min_quality_score = min_quality_score

    async def process(self, query_id: int) -> ProcessResult:
        """
        Run the pipeline for one query.

        Raises:
            QueryNotFoundError: unknown id (nothing is changed)
            Exception: whatever stopped the run; the query is left failed
        """
        query = await self.queue.get(query_id)
        if query is None:
            raise QueryNotFoundError(query_id)

        query_text = query.query
        await self.queue.mark_processing(query_id)

        try:
            return await self._run(query_id, query_text)
        except Exception as e:
            logger.error(f"[Query {query_id}] Processing failed: {e}")
            await self.queue.mark_failed(query_id, str(e) or "Processing failed")
            raise

    async def _run(self, query_id: int, query_text: str) -> ProcessResult:
        logger.info(f"[Query {query_id}] Starting processing for: \"{query_text}\"")
        started = time.monotonic()
        token = CancellationToken(self.queue, query_id)

        found = await self.search_client.search(query_text, self.budget.search_count)
        candidates = dedupe_urls(found)
        existing = await self.catalog.existing_urls(candidates)
        urls = [url for url in candidates if url not in existing]
        logger.info(
            f"[Query {query_id}] Search returned {len(found)} URLs, "
            f"{len(candidates)} unique, {len(existing)} already in catalog"
        )

        added = 0
        errors: list[UrlError] = []

        for index, url in enumerate(urls, start=1):
            if await token.check():
                logger.info(f"[Query {query_id}] Cancelled by user, stopping before URL {index}/{len(urls)}")
                break

            url_started = time.monotonic()
            try:
                saved = await self._process_url(url, query_text)
            except Exception as e:
                logger.error(f"[Query {query_id}] Failed to process URL {index}/{len(urls)} {url}: {e}")
                errors.append(UrlError(url=url, error=str(e) or type(e).__name__))
                await self.session.rollback()
                continue

            elapsed_ms = (time.monotonic() - url_started) * 1000
            if saved:
                added += 1
                logger.info(f"[Query {query_id}] URL {index}/{len(urls)} saved in {elapsed_ms:.0f}ms")
            else:
                logger.info(f"[Query {query_id}] URL {index}/{len(urls)} skipped in {elapsed_ms:.0f}ms")

        # A cancel that arrived during the last URL must not be overwritten
        cancelled = await token.check()

        total = await self.catalog.count_by_source_query(query_text)
        if cancelled:
            await self.queue.set_fields(query_id, results_count=total)
            status = QueryStatus.failed
        else:
            error_message = f"{len(errors)} errors occurred" if errors else None
            await self.queue.mark_processed(query_id, results_count=total, error_message=error_message)
            status = QueryStatus.processed

        total_s = time.monotonic() - started
        logger.info(
            f"[Query {query_id}] Processing complete: {added} sources added, "
            f"{len(errors)} errors, {total_s:.1f}s"
        )

        return ProcessResult(
            query_id=query_id,
            status=status,
            new_sources_added=added,
            total_for_query=total,
            errors_count=len(errors),
            total_urls=len(urls),
            cancelled=cancelled,
            errors=errors,
        )

    async def _process_url(self, url: str, query_text: str) -> bool:
        """Fetch, score and store one URL. Returns True if a source was saved."""
        content = await self.fetcher.fetch(url, timeout=self.budget.fetch_timeout)

        metadata = await self.generator.generate(url, content)
        if metadata.quality_score < self.min_quality_score:
            logger.info(f"Low quality ({metadata.quality_score}/10), discarding: {url}")
            return False

        source = Source(
            url=url,
            title=metadata.title,
            summary=metadata.summary,
            category=metadata.category,
            tags=metadata.tags,
            language=metadata.language,
            relevance_score=metadata.quality_score,
            source_query=query_text,
            star_rating=False,
            date_added=datetime.utcnow(),
        )
        try:
            await self.catalog.insert(source)
        except DuplicateSourceError:
            logger.info(f"Already in catalog (added concurrently), skipping: {url}")
            return False

        if metadata.tags:
            await self.cooccurrence.record_for_new_source(url, metadata.tags)

        return True


def build_processor(
    session: AsyncSession,
    search_client: SerperSearchClient,
    fetcher: PageFetcher,
    generator: MetadataGenerator,
    budget: ProcessingBudget,
) -> QueryProcessor:
    """Wire a processor with the configured quality threshold."""
    return QueryProcessor(
        session=session,
        search_client=search_client,
        fetcher=fetcher,
        generator=generator,
        budget=budget,
        min_quality_score=get_settings().min_quality_score,
    )

"""Search query queue model."""

from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel


class QueryStatus(str, Enum):
    """Status of a search query in the queue.

    - pending: waiting to be processed
    - processing: the pipeline is working on it
    - processed: finished, possibly with zero results
    - failed: search failed, an unhandled error happened, or it was cancelled
    """

    pending = "pending"
    processing = "processing"
    processed = "processed"
    failed = "failed"


TERMINAL_STATUSES = frozenset({QueryStatus.processed, QueryStatus.failed})


class SearchQueryBase(SQLModel):
    """Base model for queued search queries."""

    query: str = Field(max_length=512, index=True)
    is_ai_generated: bool = Field(default=False, index=True)


class SearchQuery(SearchQueryBase, table=True):
    """Search query record."""

    __tablename__ = "search_query"

    id: int | None = Field(default=None, primary_key=True)
    status: QueryStatus = Field(default=QueryStatus.pending, index=True)
    date_added: datetime = Field(default_factory=datetime.utcnow, index=True)
    date_processed: datetime | None = Field(default=None)
    error_message: str | None = Field(default=None)
    results_count: int = Field(default=0, ge=0)


class SearchQueryCreate(SearchQueryBase):
    """Schema for queueing a search query."""
    pass


class SearchQueryRead(SearchQueryBase):
    """Schema for reading a search query."""

    id: int
    status: QueryStatus
    date_added: datetime
    date_processed: datetime | None
    error_message: str | None
    results_count: int


class SearchQueryUpdate(SQLModel):
    """Schema for manual status edits from the admin panel."""

    status: QueryStatus | None = None
    error_message: str | None = None
    results_count: int | None = Field(default=None, ge=0)

"""SQLModel database models."""

from schnitzarchiv.models.source import (
    Source,
    SourceBase,
    SourceCategory,
    SourceCreate,
    SourceRead,
    SourceUpdate,
    effective_score,
)
from schnitzarchiv.models.search_query import (
    QueryStatus,
    SearchQuery,
    SearchQueryBase,
    SearchQueryCreate,
    SearchQueryRead,
    SearchQueryUpdate,
    TERMINAL_STATUSES,
)
from schnitzarchiv.models.tag_cooccurrence import TagCooccurrence

__all__ = [
    # Source
    "Source",
    "SourceBase",
    "SourceCategory",
    "SourceCreate",
    "SourceRead",
    "SourceUpdate",
    "effective_score",
    # Search query
    "QueryStatus",
    "SearchQuery",
    "SearchQueryBase",
    "SearchQueryCreate",
    "SearchQueryRead",
    "SearchQueryUpdate",
    "TERMINAL_STATUSES",
    # Tag co-occurrence
    "TagCooccurrence",
]

"""Domain errors raised by the services and mapped to HTTP errors by the routers."""


class SchnitzarchivError(Exception):
    """Base error for the application."""


class QueryNotFoundError(SchnitzarchivError):
    """Raised when a search query id does not exist."""

    def __init__(self, query_id: int):
        super().__init__(f"Search query {query_id} not found")
        self.query_id = query_id


class SourceNotFoundError(SchnitzarchivError):
    """Raised when a source id does not exist."""

    def __init__(self, source_id: int):
        super().__init__(f"Source {source_id} not found")
        self.source_id = source_id


class DuplicateSourceError(SchnitzarchivError):
    """Raised when a source with the same URL is already in the catalog."""

    def __init__(self, url: str):
        super().__init__(f"Source already exists: {url}")
        self.url = url


class InvalidStatusTransitionError(SchnitzarchivError):
    """Raised when a query status change is not allowed from its current status."""


class SearchProviderError(SchnitzarchivError):
    """Raised when the web search provider fails."""


class MetadataGenerationError(SchnitzarchivError):
    """Raised when the LLM fails to produce usable metadata."""

"""Web search via the Serper Google Search API."""

import httpx
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from schnitzarchiv.config import get_settings
from schnitzarchiv.errors import SearchProviderError
from schnitzarchiv.services.url_filter import is_allowed_url


class SerperSearchClient:
    """Returns ranked result URLs for a free-text query."""

    def __init__(
        self,
        api_key: str | None,
        url: str = "https://google.serper.dev/search",
        country: str = "de",
        language: str = "de",
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.url = url
        self.country = country
        self.language = language
        self.timeout = timeout
        self._http_client = http_client

    async def search(self, query: str, count: int = 10) -> list[str]:
        """
        Search the web and return result URLs in rank order.

        Blocked (shopping, social media) and malformed URLs are dropped, so the
        list can be shorter than ``count``.

        Raises:
            SearchProviderError: the provider is not configured, unreachable,
                or answered with an error.
        """
        if not self.api_key:
            raise SearchProviderError("SERPER_API_KEY not configured")

        payload = {
            "q": query,
            "num": count,
            "gl": self.country,
            "hl": self.language,
        }
        headers = {"X-API-KEY": self.api_key, "Content-Type": "application/json"}

        try:
            response = await self._post(payload, headers)
        except httpx.HTTPError as e:
            raise SearchProviderError(f"Serper connection error: {e}") from e

        if response.status_code != 200:
            raise SearchProviderError(
                f"Serper API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SearchProviderError("Serper returned invalid JSON") from e

        organic = data.get("organic")
        if not isinstance(organic, list):
            logger.debug(f"Serper returned no organic results for: {query}")
            return []

        urls = []
        for result in organic:
            link = result.get("link") if isinstance(result, dict) else None
            if link and is_allowed_url(link):
                urls.append(link)

        logger.info(f"Serper: {len(urls)}/{len(organic)} usable URLs for query: {query}")
        return urls

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, payload: dict, headers: dict) -> httpx.Response:
        """POST to Serper, retrying connection-level failures with backoff."""
        if self._http_client is not None:
            return await self._http_client.post(self.url, json=payload, headers=headers)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, json=payload, headers=headers)


def get_search_client() -> SerperSearchClient:
    """Build the search client from settings."""
    settings = get_settings()
    return SerperSearchClient(
        api_key=settings.serper_api_key,
        url=settings.serper_url,
        country=settings.search_country,
        language=settings.search_language,
    )

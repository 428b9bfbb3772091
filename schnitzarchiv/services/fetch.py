"""Page download with a bounded timeout and main-text extraction via trafilatura."""

import time

import httpx
import trafilatura
from loguru import logger

from schnitzarchiv.config import get_settings


USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


def extract_main_text(html: str) -> str:
    """
    Reduce an HTML page to its readable main text.

    Falls back to the raw HTML when trafilatura finds nothing, since the
    metadata prompt only uses a short preview anyway.
    """
    content = trafilatura.extract(
        html,
        include_comments=False,
        include_tables=True,
        no_fallback=False,
        favor_precision=True,
    )
    return content or html


class PageFetcher:
    """Downloads pages for the metadata prompt. Never raises."""

    def __init__(self, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None):
        self.timeout = timeout
        self._http_client = http_client

    async def fetch(self, url: str, timeout: float | None = None) -> str:
        """
        Fetch a page and return its main text.

        Args:
            url: Page to download
            timeout: Seconds before giving up, defaults to the fetcher's timeout

        Returns:
            Extracted text, or an empty string on timeout, connection error
            or non-2xx status.
        """
        timeout = timeout or self.timeout
        started = time.monotonic()
        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    url, headers={"User-Agent": USER_AGENT}, timeout=timeout
                )
            else:
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers={"User-Agent": USER_AGENT})
        except httpx.TimeoutException:
            logger.warning(f"Fetch timed out after {timeout}s: {url}")
            return ""
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            return ""

        if not response.is_success:
            logger.warning(f"Failed to fetch {url}: HTTP {response.status_code}")
            return ""

        try:
            content = extract_main_text(response.text)
        except Exception as e:
            logger.debug(f"Text extraction failed for {url}: {e}")
            content = response.text

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(f"Fetched {len(content)} chars in {elapsed_ms:.0f}ms: {url}")
        return content


def get_page_fetcher() -> PageFetcher:
    """Build the page fetcher from settings."""
    return PageFetcher(timeout=get_settings().worker_fetch_timeout)

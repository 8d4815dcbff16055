"""
HTTP Fetcher
============

Bounded-timeout HTTP GET used for RSS feeds and lightweight page scraping.
Every failure mode (timeout, connection error, non-2xx) surfaces as a
FetchError so callers only have one exception type to fold into a summary.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp
import certifi

from ..config.settings import DEFAULT_USER_AGENT
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FetchError, ErrorCode

ACCEPT_ANY = "application/rss+xml, application/atom+xml, application/xml, text/xml, text/html;q=0.9, */*;q=0.8"


class HttpFetcher:
    """Fetch response bodies as text with a bounded timeout."""

    def __init__(self, timeout: float = 30, user_agent: str = DEFAULT_USER_AGENT):
        """Initialize fetcher.

        Args:
            timeout: Total request timeout in seconds
            user_agent: User-Agent header value
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.logger = get_logger_for_component("http_fetcher")
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Get a configured aiohttp session."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, limit_per_host=2)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": ACCEPT_ANY,
            "Accept-Language": "en-US,en;q=0.9",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch_text(
        self, url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> str:
        """GET a URL and return the decoded body.

        Args:
            url: URL to fetch
            session: Existing session to reuse; a fresh one is opened otherwise

        Raises:
            FetchError: On timeout, network failure or a non-2xx status
        """
        if session is None:
            async with self.get_session() as own_session:
                return await self._fetch(url, own_session)
        return await self._fetch(url, session)

    async def _fetch(self, url: str, session: aiohttp.ClientSession) -> str:
        self.logger.debug(f"Fetching {url}")

        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(
                        f"HTTP {response.status}: {response.reason}",
                        url=url,
                        status=response.status,
                        error_code=ErrorCode.FETCH_HTTP_STATUS,
                    )
                return await response.text(errors="replace")

        except asyncio.TimeoutError as e:
            raise FetchError(
                f"Request timed out after {self.timeout}s",
                url=url,
                error_code=ErrorCode.FETCH_TIMEOUT,
            ) from e
        except aiohttp.InvalidURL as e:
            raise FetchError(
                f"Invalid URL: {url}",
                url=url,
                error_code=ErrorCode.FETCH_INVALID_URL,
                recoverable=False,
            ) from e
        except aiohttp.ClientError as e:
            raise FetchError(
                f"Network error: {e}",
                url=url,
                error_code=ErrorCode.FETCH_NETWORK_ERROR,
            ) from e

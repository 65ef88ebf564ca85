"""
fetcher.py - Conditional list fetching over aiohttp

Sends If-None-Match with the stored ETag so unchanged lists come back as a
bodyless 304. Every other failure (transport error, timeout, unexpected status,
undecodable body) is raised as FetchError for the synchronizer to handle.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, NamedTuple

import aiohttp

from tdsync.config import DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT
from tdsync.errors import FetchError
from tdsync.lists import ListFormat

logger = logging.getLogger(__name__)

STATUS_NOT_MODIFIED = 304


class FetchResponse(NamedTuple):
    """Result of a single conditional fetch."""
    status: int
    etag: str = ""
    data: Any = None

    @property
    def not_modified(self) -> bool:
        return self.status == STATUS_NOT_MODIFIED


class Fetcher:
    """Conditional GET client.

    Use as an async context manager to own a pooled ClientSession, or pass
    an existing session in.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        user_agent: str | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self.concurrency = concurrency
        self.user_agent = user_agent

    async def __aenter__(self) -> "Fetcher":
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=self.concurrency, limit_per_host=2)
            self._session = aiohttp.ClientSession(connector=connector)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(
        self,
        url: str,
        etag: str = "",
        fmt: ListFormat = ListFormat.JSON,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> FetchResponse:
        """
        Fetch ``url``, revalidating against ``etag`` when one is given.

        Returns:
            FetchResponse with the decoded body for 2xx, or no body for 304

        Raises:
            FetchError: On any other outcome
        """
        if self._session is None:
            raise RuntimeError("Fetcher used outside of its context manager")

        headers = {}
        if etag:
            headers["If-None-Match"] = etag
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        try:
            async with self._session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:

                # 304 Not Modified - caller keeps its copy
                if response.status == STATUS_NOT_MODIFIED:
                    return FetchResponse(response.status, etag)

                if not 200 <= response.status < 300:
                    raise FetchError(f"HTTP {response.status} from {url}", status=response.status)

                new_etag = response.headers.get("ETag", "")
                if ListFormat(fmt) is ListFormat.JSON:
                    data = await response.json(content_type=None)
                else:
                    data = await response.text()
                return FetchResponse(response.status, new_etag, data)

        except asyncio.TimeoutError as e:
            raise FetchError(f"Timed out after {timeout}s fetching {url}") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"Request to {url} failed: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FetchError(f"Could not decode response from {url}: {e}") from e

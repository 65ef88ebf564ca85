"""
synchronizer.py - Tracker List Synchronization

Keeps a local copy of every configured tracker list fresh while bounding
network traffic:

    1. Throttle: a list with an ETag updated less than 30 minutes ago is served
       from the cache without touching the network.
    2. Revalidate: otherwise the list is fetched with If-None-Match.
         200 → normalize, persist, store the new ETag and timestamp
         304 → bump the timestamp, keep the payload we already have
    3. Fall back: any fetch or processing failure serves the persisted copy.
       With no persisted copy the list's ETag and timestamp are cleared so the
       next cycle fetches unconditionally, and NoCachedCopyError is raised.

Lists are synchronized concurrently and independently. Syncs of the same
list name are serialized so their ETag/timestamp writes never interleave.

Usage:
    async with Fetcher() as fetcher:
        sync = ListSynchronizer(SettingsStore(path), ListCache(cache_dir), fetcher)
        results = await sync.sync_all(descriptors)
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Iterable, NamedTuple

from yarl import URL

from tdsync.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIMEOUT,
    MIN_UPDATE_TIME,
    VERSION_STAMP_INTERVAL,
)
from tdsync.errors import FetchError, NoCachedCopyError, ProcessingError, SyncError
from tdsync.fetcher import Fetcher
from tdsync.lists import ListDescriptor, empty_payload, normalize
from tdsync.settings import SettingsStore
from tdsync.storage import ListCache
from tdsync.version import package_version

logger = logging.getLogger(__name__)

VERSION_STAMP_KEY = "lastTdsUpdate"


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def etag_key(name: str) -> str:
    return f"{name}-etag"


def last_update_key(name: str) -> str:
    return f"{name}-last-update"


def as_millis(value: Any) -> int:
    """Stored timestamp as epoch millis; unset or unparseable values read as 0."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid stored timestamp {value!r}")
        return 0


# =============================================================================
# RESULTS
# =============================================================================

class Source(str, Enum):
    """Where a list's payload came from in this cycle."""
    FRESH = "fresh"
    NOT_MODIFIED = "not_modified"
    CACHE = "cache"
    FAILED = "failed"


class SyncResult(NamedTuple):
    """Outcome of synchronizing a single list."""
    name: str
    data: Any = None
    source: Source = Source.FRESH
    error: SyncError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


# =============================================================================
# SYNCHRONIZER
# =============================================================================

class ListSynchronizer:
    """Synchronizes tracker lists against their remote sources.

    All collaborators are injected. ``clock`` returns epoch milliseconds and
    ``version`` returns the client version string.
    """

    def __init__(
        self,
        settings: SettingsStore,
        cache: ListCache,
        fetcher: Fetcher,
        version: Callable[[], str] = package_version,
        clock: Callable[[], int] = now_ms,
        min_update_interval_ms: int = MIN_UPDATE_TIME,
        version_interval_ms: int = VERSION_STAMP_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.fetcher = fetcher
        self.version = version
        self.clock = clock
        self.min_update_interval_ms = min_update_interval_ms
        self.version_interval_ms = version_interval_ms
        self.timeout = timeout
        self.concurrency = concurrency

        self._lists: dict[str, Any] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # -------------------------------------------------------------------------
    # In-memory snapshot
    # -------------------------------------------------------------------------

    def get(self, name: str, default: Any = None) -> Any:
        """Last payload resolved for ``name`` by this synchronizer."""
        return self._lists.get(name, default)

    def data_for(self, descriptor: ListDescriptor) -> Any:
        """Last payload for ``descriptor``, or an empty one of its kind."""
        if descriptor.name in self._lists:
            return self._lists[descriptor.name]
        return empty_payload(descriptor.resolved_kind)

    def snapshot(self) -> dict[str, Any]:
        return dict(self._lists)

    # -------------------------------------------------------------------------
    # Version stamp
    # -------------------------------------------------------------------------

    async def version_param(self) -> dict[str, str] | None:
        """
        Query parameter carrying the client version, at most once a day.

        Shared across all lists: the first request after the interval elapses
        gets the stamp, the rest of the window gets nothing.
        """
        last_stamp = as_millis(self.settings.get(VERSION_STAMP_KEY))
        now = self.clock()
        if last_stamp and now - last_stamp <= self.version_interval_ms:
            return None

        # Stored before the write is awaited, so concurrent callers see it
        await self.settings.set(VERSION_STAMP_KEY, now)
        return {"v": self.version()}

    # -------------------------------------------------------------------------
    # Per-list procedure
    # -------------------------------------------------------------------------

    async def sync_list(self, descriptor: ListDescriptor) -> SyncResult:
        """
        Bring one list up to date.

        Returns:
            SyncResult with the resolved payload

        Raises:
            NoCachedCopyError: If the update failed and nothing is cached
        """
        async with self._locks[descriptor.name]:
            return await self._sync_list(descriptor)

    async def _sync_list(self, descriptor: ListDescriptor) -> SyncResult:
        name = descriptor.name
        etag = self.settings.get(etag_key(name)) or ""
        last_update = as_millis(self.settings.get(last_update_key(name)))

        # Recently updated - don't hit the network
        if etag and self.clock() - last_update < self.min_update_interval_ms:
            logger.warning(f"Skipping update of '{name}' as it was recently updated")
            return await self.fallback(name)

        url = descriptor.url
        params = await self.version_param()
        if params:
            url = str(URL(url).update_query(params))

        try:
            response = await self.fetcher.fetch(url, etag, descriptor.format, self.timeout)
        except FetchError as e:
            logger.warning(f"Fetching '{name}' failed, using cached copy: {e}")
            return await self.fallback(name)

        if response.not_modified:
            await self.settings.set(last_update_key(name), self.clock())
            if name in self._lists:
                return SyncResult(name, self._lists[name], Source.NOT_MODIFIED)
            # Cold start: nothing in memory yet, use the persisted copy
            result = await self.fallback(name)
            return result._replace(source=Source.NOT_MODIFIED)

        try:
            data = normalize(descriptor.resolved_kind, response.data)
        except ProcessingError as e:
            logger.warning(f"Processing '{name}' failed, using cached copy: {e}")
            return await self.fallback(name)

        try:
            await self.cache.put(name, data)
        except (OSError, TypeError, ValueError) as e:
            # Keep the old validator so the uncached payload is fetched again
            logger.warning(f"Could not persist '{name}': {e}")
        else:
            await self.settings.update({
                etag_key(name): response.etag or "",
                last_update_key(name): self.clock(),
            })

        self._lists[name] = data
        return SyncResult(name, data, Source.FRESH)

    async def fallback(self, name: str) -> SyncResult:
        """
        Serve ``name`` from the persisted cache.

        Raises:
            NoCachedCopyError: If there is no persisted copy. The list's ETag
                and timestamp are reset first so the next attempt is
                unconditional.
        """
        data = await self.cache.get(name)
        if data is not None:
            self._lists[name] = data
            return SyncResult(name, data, Source.CACHE)

        await self.settings.update({etag_key(name): "", last_update_key(name): 0})
        raise NoCachedCopyError(name)

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    async def sync_all(self, descriptors: Iterable[ListDescriptor]) -> dict[str, SyncResult]:
        """
        Synchronize every list concurrently.

        Returns:
            Mapping of list name to its SyncResult; failed lists carry the
            error instead of data
        """
        descriptors = list(descriptors)
        names = [d.name for d in descriptors]
        if len(set(names)) != len(names):
            raise ValueError("List names must be unique within a cycle")

        semaphore = asyncio.Semaphore(self.concurrency)

        async def sync_with_semaphore(descriptor: ListDescriptor) -> SyncResult:
            async with semaphore:
                return await self.sync_list(descriptor)

        tasks = [sync_with_semaphore(d) for d in descriptors]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        final_results: dict[str, SyncResult] = {}
        for descriptor, result in zip(descriptors, results):
            if isinstance(result, SyncResult):
                final_results[descriptor.name] = result
                continue

            if isinstance(result, SyncError):
                logger.error(f"List '{descriptor.name}' is unavailable: {result}")
                error = result
            elif isinstance(result, Exception):
                logger.error(
                    f"Unexpected error syncing '{descriptor.name}'",
                    exc_info=result,
                )
                error = SyncError(str(result))
                error.__cause__ = result
            else:
                raise result
            final_results[descriptor.name] = SyncResult(
                descriptor.name, None, Source.FAILED, error
            )
        return final_results

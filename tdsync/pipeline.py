"""
pipeline.py - One synchronization cycle

Wires the settings store, list cache and fetcher from a SyncConfig, runs every
configured list through the synchronizer, and logs a summary.

Usage:
    config = SyncConfig.load(Path("tdsync.json"))
    results = asyncio.run(run_cycle(config))
"""
from __future__ import annotations

import logging
import time
from typing import Callable

from tdsync.config import SyncConfig
from tdsync.fetcher import Fetcher
from tdsync.settings import SettingsStore
from tdsync.storage import ListCache
from tdsync.synchronizer import ListSynchronizer, Source, SyncResult
from tdsync.version import package_version

logger = logging.getLogger(__name__)


def build_synchronizer(
    config: SyncConfig,
    fetcher: Fetcher,
    version: Callable[[], str] = package_version,
) -> ListSynchronizer:
    """Create a synchronizer backed by the stores named in ``config``."""
    return ListSynchronizer(
        settings=SettingsStore(config.settings_file),
        cache=ListCache(config.cache_dir),
        fetcher=fetcher,
        version=version,
        min_update_interval_ms=config.min_update_interval_ms,
        version_interval_ms=config.version_interval_ms,
        timeout=config.timeout,
        concurrency=config.concurrency,
    )


def summarize(results: dict[str, SyncResult]) -> dict[str, int]:
    """Count results by where their payload came from."""
    stats = {source.value: 0 for source in Source}
    for result in results.values():
        stats[result.source.value] += 1
    stats["total"] = len(results)
    return stats


async def run_cycle(config: SyncConfig) -> dict[str, SyncResult]:
    """Synchronize every list in ``config`` once."""
    start_time = time.time()
    logger.info(f"Synchronizing {len(config.lists)} lists...")

    async with Fetcher(concurrency=config.concurrency, user_agent=config.user_agent) as fetcher:
        synchronizer = build_synchronizer(config, fetcher)
        results = await synchronizer.sync_all(config.lists)

    stats = summarize(results)
    logger.info(
        f"Synced {stats['total'] - stats['failed']}/{stats['total']} lists "
        f"(fresh: {stats['fresh']}, not modified: {stats['not_modified']}, "
        f"cached: {stats['cache']}) in {time.time() - start_time:.1f}s"
    )
    for result in results.values():
        if not result.success:
            logger.error(f"   - {result.name}: {result.error}")
    return results

"""
tdsync package - Tracker Data Set Synchronizer

Modules:
    lists: List descriptors and payload normalization
    config: Refresh policy defaults and JSON configuration
    settings: Persistent ETag/timestamp settings
    storage: Persistent cache of list payloads
    fetcher: Conditional fetching over aiohttp
    synchronizer: Per-list sync, fallback and version stamping
    pipeline: One synchronization cycle from a config
"""

__version__ = "1.0.0"

from tdsync.config import SyncConfig, load_lists  # noqa: E402
from tdsync.errors import (  # noqa: E402
    FetchError,
    NoCachedCopyError,
    ProcessingError,
    SyncError,
)
from tdsync.fetcher import Fetcher, FetchResponse  # noqa: E402
from tdsync.lists import ListDescriptor, ListFormat, ListKind, normalize  # noqa: E402
from tdsync.pipeline import run_cycle  # noqa: E402
from tdsync.settings import SettingsStore  # noqa: E402
from tdsync.storage import ListCache  # noqa: E402
from tdsync.synchronizer import ListSynchronizer, Source, SyncResult  # noqa: E402

__all__ = [
    "FetchError",
    "FetchResponse",
    "Fetcher",
    "ListCache",
    "ListDescriptor",
    "ListFormat",
    "ListKind",
    "ListSynchronizer",
    "NoCachedCopyError",
    "ProcessingError",
    "SettingsStore",
    "Source",
    "SyncConfig",
    "SyncError",
    "SyncResult",
    "load_lists",
    "normalize",
    "run_cycle",
]

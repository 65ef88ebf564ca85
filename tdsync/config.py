"""
config.py - Synchronizer configuration

Defaults match the refresh policy of the tracker lists: at most one update
attempt per list every 30 minutes, the client version stamped onto requests
at most once a day, and a 60 second fetch timeout.

Configuration files are JSON:

    {
        "cache_dir": "~/.cache/tdsync",
        "settings_file": "~/.cache/tdsync/settings.json",
        "lists": [
            {"name": "tds", "url": "https://example.com/tds.json", "format": "json"},
            {"name": "brokenSiteList", "url": "https://example.com/b.txt",
             "format": "text", "kind": "lines"}
        ]
    }
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from tdsync.lists import ListDescriptor, ListFormat, ListKind


# Default configuration
MIN_UPDATE_TIME = 30 * 60 * 1000  # 30min, in ms
VERSION_STAMP_INTERVAL = 24 * 60 * 60 * 1000  # 1 day, in ms
DEFAULT_TIMEOUT = 60
DEFAULT_CONCURRENCY = 8
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "tdsync"
SETTINGS_FILE = "settings.json"


def load_lists(entries: Iterable[dict[str, Any]]) -> list[ListDescriptor]:
    """
    Build list descriptors from configuration entries.

    Raises:
        ValueError: On a missing name/url, a duplicate name, or an unknown
            format or kind
    """
    descriptors = []
    seen: set[str] = set()
    for entry in entries:
        name = entry.get("name")
        url = entry.get("url")
        if not name or not url:
            raise ValueError(f"List entry needs a name and a url: {entry!r}")
        if name in seen:
            raise ValueError(f"Duplicate list name: {name}")
        seen.add(name)

        try:
            fmt = ListFormat(entry.get("format", ListFormat.JSON.value))
            kind = ListKind(entry["kind"]) if entry.get("kind") else None
        except ValueError as e:
            raise ValueError(f"Bad list entry '{name}': {e}") from e

        descriptors.append(ListDescriptor(name, url, fmt, kind))
    return descriptors


@dataclass
class SyncConfig:
    """Configuration for a synchronization cycle.

    Attributes:
        cache_dir: Directory holding the persisted list payloads
        settings_file: JSON file holding etags and timestamps; defaults to
            settings.json inside cache_dir
        lists: Lists to synchronize each cycle
        min_update_interval_ms: Minimum time between update attempts per list
        version_interval_ms: Minimum time between version-stamped requests
        timeout: Fetch timeout in seconds
        concurrency: Maximum lists fetched at once
        user_agent: Optional User-Agent header for fetches
    """

    cache_dir: Path = DEFAULT_CACHE_DIR
    settings_file: Path | None = None
    lists: list[ListDescriptor] = field(default_factory=list)
    min_update_interval_ms: int = MIN_UPDATE_TIME
    version_interval_ms: int = VERSION_STAMP_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    concurrency: int = DEFAULT_CONCURRENCY
    user_agent: str | None = None

    def __post_init__(self):
        self.cache_dir = Path(self.cache_dir).expanduser()
        if self.settings_file is None:
            self.settings_file = self.cache_dir / SETTINGS_FILE
        else:
            self.settings_file = Path(self.settings_file).expanduser()
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

    @classmethod
    def load(cls, config_path: Path) -> "SyncConfig":
        """Load configuration from a JSON file."""
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)

        data["lists"] = load_lists(data.get("lists") or [])
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

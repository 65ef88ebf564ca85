"""
settings.py - Persistent key/value settings

Holds the per-list sync state ({name}-etag, {name}-last-update) and the global
lastTdsUpdate stamp. Values live in memory and are mirrored to a JSON file
that is replaced atomically on every write.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import aiofiles

logger = logging.getLogger(__name__)


def load_state(path: Path) -> dict[str, Any]:
    """Load the settings file, or return an empty mapping if unusable."""
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load settings from {path}: {e}")
            return {}
        if isinstance(data, dict):
            return data
        logger.warning(f"Ignoring settings file {path}: not a JSON object")
    return {}


class SettingsStore:
    """String-keyed settings persisted to an optional JSON file.

    A store without a path is memory-only. A missing key reads as the
    caller's default.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._values: dict[str, Any] = load_state(self.path) if self.path else {}
        self._write_lock = asyncio.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        await self.update({key: value})

    async def update(self, values: Mapping[str, Any]) -> None:
        """Set several keys and persist them in a single write."""
        # Visible to readers before the write is awaited
        self._values.update(values)
        await self._save()

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    async def _save(self) -> None:
        if self.path is None:
            return
        async with self._write_lock:
            temp_path = self.path.with_suffix(".tmp")
            payload = json.dumps(self._values, indent=2, sort_keys=True)
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                    await f.write(payload)
                temp_path.replace(self.path)
            except OSError as e:
                logger.warning(f"Could not save settings to {self.path}: {e}")

"""
storage.py - Persistent List Cache

Keeps the last normalized payload of every list as one JSON record per list
name, {"name": ..., "data": ...}, under the cache directory. Records are
written to a temp file first and then moved into place, so a crash mid-write
leaves the previous copy intact.
"""
from __future__ import annotations

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Any

import aiofiles

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def name_to_filename(name: str) -> str:
    """Generate a safe, unique filename from a list name."""
    # Hash keeps names that sanitize to the same string apart
    name_hash = hashlib.sha256(name.encode()).hexdigest()[:12]
    readable = _UNSAFE_CHARS.sub("_", name)[:40]
    return f"{readable}_{name_hash}.json"


class ListCache:
    """Durable name -> payload mapping, last write wins."""

    def __init__(self, cache_dir: Path | str) -> None:
        self.cache_dir = Path(cache_dir)

    def path_for(self, name: str) -> Path:
        return self.cache_dir / name_to_filename(name)

    async def get(self, name: str) -> Any | None:
        """Return the cached payload for ``name``, or None if there is none."""
        path = self.path_for(name)
        if not path.exists():
            return None

        logger.debug(f"Reading cached copy of '{name}' from {path}")
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                record = json.loads(await f.read())
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable cache record for '{name}': {e}")
            return None

        if not isinstance(record, dict) or record.get("name") != name:
            logger.warning(f"Ignoring malformed cache record for '{name}'")
            return None
        return record.get("data")

    async def put(self, name: str, payload: Any) -> None:
        """Store ``payload`` as the cached copy of ``name``."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        temp_path = path.with_suffix(".tmp")
        content = json.dumps({"name": name, "data": payload})

        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(content)
        temp_path.replace(path)

    async def delete(self, name: str) -> None:
        self.path_for(name).unlink(missing_ok=True)

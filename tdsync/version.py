"""Client version reporting for the once-a-day version stamp."""
from __future__ import annotations


def package_version() -> str:
    """Version of the running tdsync package."""
    from tdsync import __version__

    return __version__


class StaticVersion:
    """Version source that always reports the same string."""

    def __init__(self, version: str) -> None:
        self.version = version

    def __call__(self) -> str:
        return self.version

"""Shared fixtures for synchronizer tests."""

import asyncio

import pytest

from tdsync.errors import FetchError
from tdsync.fetcher import FetchResponse
from tdsync.lists import ListDescriptor, ListFormat, ListKind
from tdsync.settings import SettingsStore
from tdsync.storage import ListCache
from tdsync.synchronizer import ListSynchronizer
from tdsync.version import StaticVersion

START = 1_700_000_000_000
MINUTE = 60 * 1000


class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, now: int = START) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeFetcher:
    """Fetcher double returning scripted responses per base URL, in order.

    Each scripted item is a FetchResponse to return or an exception to raise.
    """

    def __init__(self) -> None:
        self.responses: dict[str, list] = {}
        self.calls: list[dict] = []
        self.gate: asyncio.Event | None = None

    def script(self, url: str, *responses) -> None:
        self.responses.setdefault(url, []).extend(responses)

    def calls_for(self, url: str) -> list[dict]:
        return [c for c in self.calls if c["url"].split("?")[0] == url]

    async def fetch(self, url, etag="", fmt=ListFormat.JSON, timeout=60):
        self.calls.append({"url": url, "etag": etag, "fmt": fmt, "timeout": timeout})
        queue = self.responses.get(url.split("?")[0]) or []
        response = queue.pop(0) if queue else FetchError(f"no response scripted for {url}")
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if isinstance(response, Exception):
            raise response
        return response


def fresh(etag: str, data) -> FetchResponse:
    return FetchResponse(200, etag, data)


def not_modified(etag: str = "") -> FetchResponse:
    return FetchResponse(304, etag)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def settings(tmp_path):
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture
def cache(tmp_path):
    return ListCache(tmp_path / "lists")


@pytest.fixture
def synchronizer(settings, cache, fetcher, clock):
    return ListSynchronizer(
        settings=settings,
        cache=cache,
        fetcher=fetcher,
        version=StaticVersion("2024.1.0"),
        clock=clock,
    )


@pytest.fixture
def tds_list():
    return ListDescriptor("tds", "https://example.com/tds.json", ListFormat.JSON)


@pytest.fixture
def broken_sites_list():
    return ListDescriptor(
        "brokenSiteList", "https://example.com/broken.txt", ListFormat.TEXT, ListKind.LINES
    )

"""Tests for conditional fetching against a local aiohttp server."""

import asyncio

import pytest
from aiohttp import test_utils, web

from tdsync.errors import FetchError
from tdsync.fetcher import Fetcher
from tdsync.lists import ListFormat

TDS = {"trackers": {"tracker.com": {}}, "entities": {}, "domains": {}}


async def tds_handler(request: web.Request) -> web.Response:
    if request.headers.get("If-None-Match") == '"v1"':
        return web.Response(status=304)
    return web.json_response(TDS, headers={"ETag": '"v1"'})


async def text_handler(request: web.Request) -> web.Response:
    return web.Response(text="a.com\nb.com", headers={"ETag": "t1"})


async def broken_json_handler(request: web.Request) -> web.Response:
    return web.Response(text="{not json", content_type="application/json")


async def error_handler(request: web.Request) -> web.Response:
    return web.Response(status=503)


async def slow_handler(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.Response(text="late")


async def echo_handler(request: web.Request) -> web.Response:
    return web.json_response(
        {"query": dict(request.query), "user_agent": request.headers.get("User-Agent")}
    )


@pytest.fixture
async def server():
    app = web.Application()
    app.router.add_get("/tds.json", tds_handler)
    app.router.add_get("/broken.txt", text_handler)
    app.router.add_get("/bad.json", broken_json_handler)
    app.router.add_get("/error", error_handler)
    app.router.add_get("/slow", slow_handler)
    app.router.add_get("/echo", echo_handler)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.fixture
async def fetcher():
    async with Fetcher(user_agent="tdsync-tests") as f:
        yield f


class TestFetcher:
    """Tests for Fetcher.fetch()."""

    async def test_fresh_json(self, server, fetcher) -> None:
        response = await fetcher.fetch(str(server.make_url("/tds.json")))

        assert response.status == 200
        assert response.etag == '"v1"'
        assert response.data == TDS
        assert not response.not_modified

    async def test_not_modified_with_matching_etag(self, server, fetcher) -> None:
        response = await fetcher.fetch(str(server.make_url("/tds.json")), etag='"v1"')

        assert response.not_modified
        assert response.data is None
        assert response.etag == '"v1"'

    async def test_stale_etag_gets_fresh_body(self, server, fetcher) -> None:
        response = await fetcher.fetch(str(server.make_url("/tds.json")), etag='"v0"')
        assert response.status == 200
        assert response.data == TDS

    async def test_text_format(self, server, fetcher) -> None:
        response = await fetcher.fetch(str(server.make_url("/broken.txt")), fmt=ListFormat.TEXT)
        assert response.data == "a.com\nb.com"
        assert response.etag == "t1"

    async def test_query_and_user_agent_are_sent(self, server, fetcher) -> None:
        response = await fetcher.fetch(str(server.make_url("/echo?l=surrogates&v=1.0")))
        assert response.data == {
            "query": {"l": "surrogates", "v": "1.0"},
            "user_agent": "tdsync-tests",
        }

    async def test_error_status_raises(self, server, fetcher) -> None:
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(str(server.make_url("/error")))
        assert exc_info.value.status == 503

    async def test_undecodable_body_raises(self, server, fetcher) -> None:
        with pytest.raises(FetchError):
            await fetcher.fetch(str(server.make_url("/bad.json")))

    async def test_timeout_raises(self, server, fetcher) -> None:
        with pytest.raises(FetchError, match="Timed out"):
            await fetcher.fetch(str(server.make_url("/slow")), timeout=0.1)

    async def test_connection_failure_raises(self, fetcher) -> None:
        with pytest.raises(FetchError):
            await fetcher.fetch("http://127.0.0.1:1/tds.json", timeout=2)

    async def test_requires_session(self) -> None:
        with pytest.raises(RuntimeError):
            await Fetcher().fetch("http://127.0.0.1:1/")

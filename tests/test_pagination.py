"""Tests for the cursor-following fetcher."""

from __future__ import annotations

import httpx
import pytest

from adapters.vercel_api.pagination import fetch_all_pages
from core.errors import FetchFailed, UpstreamUnavailable

API_BASE = "https://api.test"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API_BASE)


def _paged_handler(pages: list[list[dict]], seen: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        cursor = request.url.params.get("until")
        index = 0 if cursor is None else int(cursor)
        nxt = index + 1 if index + 1 < len(pages) else None
        return httpx.Response(200, json={"items": pages[index], "pagination": {"next": nxt}})

    return handler


class TestConcatenation:
    async def test_pages_are_concatenated_in_server_order(self):
        pages = [[{"id": 1}, {"id": 2}], [{"id": 3}, {"id": 4}], [{"id": 5}]]
        seen: list[httpx.Request] = []
        async with _client(_paged_handler(pages, seen)) as client:
            items = await fetch_all_pages(client, "/things", collection="items")

        assert [i["id"] for i in items] == [1, 2, 3, 4, 5]
        assert len(seen) == 3

    async def test_cursor_is_sent_as_until_param(self):
        pages = [[{"id": 1}], [{"id": 2}], [{"id": 3}]]
        seen: list[httpx.Request] = []
        async with _client(_paged_handler(pages, seen)) as client:
            await fetch_all_pages(client, "/things", collection="items")

        assert [r.url.params.get("until") for r in seen] == [None, "1", "2"]

    async def test_base_params_are_kept_on_every_page(self):
        pages = [[{"id": 1}], [{"id": 2}]]
        seen: list[httpx.Request] = []
        async with _client(_paged_handler(pages, seen)) as client:
            await fetch_all_pages(
                client, "/things", collection="items", params={"projectId": "prj_1", "limit": 100}
            )

        assert all(r.url.params["projectId"] == "prj_1" for r in seen)
        assert all(r.url.params["limit"] == "100" for r in seen)

    async def test_missing_pagination_ends_the_loop(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": [{"id": 1}]})

        async with _client(handler) as client:
            items = await fetch_all_pages(client, "/things", collection="items")

        assert items == [{"id": 1}]

    async def test_missing_collection_is_fetch_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": {"code": "not_found"}})

        async with _client(handler) as client:
            with pytest.raises(FetchFailed) as info:
                await fetch_all_pages(client, "/things", collection="items")

        assert info.value.upstream_status == 200
        assert "unexpected payload" in info.value.message

    async def test_empty_listing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": [], "pagination": {"next": None}})

        async with _client(handler) as client:
            assert await fetch_all_pages(client, "/things", collection="items") == []


class TestFailures:
    async def test_non_success_on_later_page_aborts(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if request.url.params.get("until") is None:
                return httpx.Response(200, json={"items": [{"id": 1}], "pagination": {"next": 7}})
            return httpx.Response(500)

        async with _client(handler) as client:
            with pytest.raises(FetchFailed) as info:
                await fetch_all_pages(client, "/things", collection="items")

        assert info.value.upstream_status == 500
        assert info.value.endpoint == "/things"
        assert len(calls) == 2

    async def test_transport_error_is_fetch_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        async with _client(handler) as client:
            with pytest.raises(FetchFailed) as info:
                await fetch_all_pages(client, "/things", collection="items")

        assert info.value.upstream_status is None

    async def test_fetch_failed_is_upstream_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403)

        async with _client(handler) as client:
            with pytest.raises(UpstreamUnavailable):
                await fetch_all_pages(client, "/things", collection="items")

    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>", headers={"content-type": "text/html"})

        async with _client(handler) as client:
            with pytest.raises(FetchFailed):
                await fetch_all_pages(client, "/things", collection="items")

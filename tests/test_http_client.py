"""Tests for the httpx-based REST client and cursor pagination."""

import json
from functools import partial

import httpx
import pytest

from revisium_sync.adapters.base import Page
from revisium_sync.adapters.http import AsyncRevisiumClient
from revisium_sync.adapters.pagination import fetch_all_pages
from revisium_sync.errors import ApiError


def _client(handler, token: str | None = "tok") -> AsyncRevisiumClient:
    return AsyncRevisiumClient(
        "http://localhost:8080/", token=token, transport=httpx.MockTransport(handler)
    )


def _page(ids: list[str], has_next: bool, total: int) -> dict:
    return {
        "edges": [{"node": {"id": i, "data": {"n": i}}} for i in ids],
        "pageInfo": {"hasNextPage": has_next, "endCursor": ids[-1] if ids else None},
        "totalCount": total,
    }


# ==================================================================
# Test Group 1: Requests
# ==================================================================


class TestRequests:
    """Verify paths, headers, and bodies."""

    @pytest.mark.asyncio
    async def test_base_url_normalized(self):
        client = _client(lambda request: httpx.Response(200, json={}))
        assert client.base_url == "http://localhost:8080"
        await client.close()

    @pytest.mark.asyncio
    async def test_bearer_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"username": "admin"})

        async with _client(handler) as client:
            assert await client.me() == {"username": "admin"}
            client.set_token("other")
            await client.me()

        assert seen[0].headers["Authorization"] == "Bearer tok"
        assert seen[1].headers["Authorization"] == "Bearer other"

    @pytest.mark.asyncio
    async def test_no_header_without_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"accessToken": "jwt"})

        async with _client(handler, token=None) as client:
            assert await client.login("admin", "secret") == "jwt"

        assert "Authorization" not in seen[0].headers
        assert json.loads(seen[0].content) == {"emailOrUsername": "admin", "password": "secret"}

    @pytest.mark.asyncio
    async def test_list_rows_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=_page(["a"], False, 1))

        async with _client(handler) as client:
            page = await client.list_rows("rev-1", "stats", first=50, after="cursor")

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/revision/rev-1/tables/stats/rows"
        assert json.loads(seen[0].content) == {
            "first": 50,
            "orderBy": [{"field": "id", "direction": "asc"}],
            "after": "cursor",
        }
        assert page.nodes == [{"id": "a", "data": {"n": "a"}}]

    @pytest.mark.asyncio
    async def test_create_is_restore_update_is_not(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        rows = [{"rowId": "a", "data": {"v": 1}}]
        async with _client(handler) as client:
            await client.create_rows("rev-1", "stats", rows)
            await client.update_rows("rev-1", "stats", rows)

        assert seen[0].url.path.endswith("/tables/stats/create-rows")
        assert json.loads(seen[0].content) == {"rows": rows, "isRestore": True}
        assert seen[1].method == "PUT"
        assert seen[1].url.path.endswith("/tables/stats/update-rows")
        assert json.loads(seen[1].content) == {"rows": rows}

    @pytest.mark.asyncio
    async def test_single_row_endpoints(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "a b"})

        async with _client(handler) as client:
            await client.create_row("rev-1", "stats", "a b", {"v": 1})
            await client.update_row("rev-1", "stats", "a b", {"v": 2})

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/revision/rev-1/tables/stats/create-row"
        assert json.loads(seen[0].content) == {"rowId": "a b", "data": {"v": 1}, "isRestore": True}
        assert seen[1].method == "PUT"
        assert seen[1].url.raw_path == b"/api/revision/rev-1/tables/stats/rows/a%20b"
        assert json.loads(seen[1].content) == {"data": {"v": 2}}

    @pytest.mark.asyncio
    async def test_path_segments_quoted(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"type": "object"})

        async with _client(handler) as client:
            await client.table_schema("rev-1", "my table")

        assert seen[0].url.raw_path == b"/api/revision/rev-1/tables/my%20table/schema"

    @pytest.mark.asyncio
    async def test_create_revision(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "rev-2"})

        async with _client(handler) as client:
            revision = await client.create_revision("admin", "game", "master", "Synced 1 item")

        assert revision == {"id": "rev-2"}
        assert seen[0].url.path == (
            "/api/organization/admin/projects/game/branches/master/create-revision"
        )
        assert json.loads(seen[0].content) == {"comment": "Synced 1 item"}

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        async with _client(lambda request: httpx.Response(204)) as client:
            assert await client.update_rows("rev-1", "stats", []) is None


# ==================================================================
# Test Group 2: Errors
# ==================================================================


class TestErrors:
    """Verify failures surface as ApiError with status and body."""

    @pytest.mark.asyncio
    async def test_payload_too_large(self):
        handler = lambda request: httpx.Response(413, json={"message": "request entity too large"})

        async with _client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.create_rows("rev-1", "stats", [])

        assert exc_info.value.status_code == 413
        assert exc_info.value.body == {"message": "request entity too large"}

    @pytest.mark.asyncio
    async def test_text_body(self):
        async with _client(lambda request: httpx.Response(500, text="oops")) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.me()

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "oops"

    @pytest.mark.asyncio
    async def test_non_json_success_body(self):
        handler = lambda request: httpx.Response(200, text="<html>proxy page</html>")

        async with _client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.create_rows("rev-1", "stats", [])

        assert exc_info.value.status_code == 200
        assert exc_info.value.body == "<html>proxy page</html>"

    @pytest.mark.asyncio
    async def test_transport_failure_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.me()

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_each_mutation_sent_once(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        async with _client(handler) as client:
            with pytest.raises(ApiError):
                await client.create_rows("rev-1", "stats", [{"rowId": "a", "data": {}}])

        assert len(calls) == 1


# ==================================================================
# Test Group 3: Migrations
# ==================================================================


class TestMigrations:
    @pytest.mark.asyncio
    async def test_apply_single_migration(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"id": "m1", "status": "applied"}])

        migration = {"id": "m1", "changeType": "init", "tableId": "stats"}
        async with _client(handler) as client:
            result = await client.apply_migration("draft-1", migration)

        assert result.status == "applied"
        assert json.loads(seen[0].content) == [migration]

    @pytest.mark.asyncio
    async def test_empty_apply_response(self):
        async with _client(lambda request: httpx.Response(200, json=[])) as client:
            with pytest.raises(ApiError, match="Empty response"):
                await client.apply_migration("draft-1", {"id": "m1"})

    @pytest.mark.asyncio
    async def test_migrations_list(self):
        handler = lambda request: httpx.Response(200, json=[{"id": "m1"}, {"id": "m2"}])
        async with _client(handler) as client:
            assert [m["id"] for m in await client.migrations("rev-1")] == ["m1", "m2"]


# ==================================================================
# Test Group 4: Pagination
# ==================================================================


class TestFetchAllPages:
    """Verify cursor-following over a real client."""

    @pytest.mark.asyncio
    async def test_follows_cursor(self):
        pages = {
            None: _page(["a", "b"], True, 5),
            "b": _page(["c", "d"], True, 5),
            "d": _page(["e"], False, 5),
        }
        seen = []

        def handler(request):
            after = request.url.params.get("after")
            seen.append((request.url.params.get("first"), after))
            return httpx.Response(200, json=pages[after])

        progress = []
        async with _client(handler) as client:
            nodes, total = await fetch_all_pages(
                partial(client.list_tables, "rev-1"),
                page_size=2,
                on_page=lambda done, count: progress.append((done, count)),
            )

        assert [n["id"] for n in nodes] == ["a", "b", "c", "d", "e"]
        assert total == 5
        assert seen == [("2", None), ("2", "b"), ("2", "d")]
        assert progress == [(2, 5), (4, 5), (5, 5)]

    @pytest.mark.asyncio
    async def test_stops_without_cursor(self):
        calls = []

        async def fetch_page(first, after):
            calls.append(after)
            return Page.model_validate(
                {"edges": [], "pageInfo": {"hasNextPage": True}, "totalCount": 0}
            )

        nodes, total = await fetch_all_pages(fetch_page)

        assert nodes == []
        assert total == 0
        assert calls == [None]

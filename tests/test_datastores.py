"""Standard data store tests against a mocked HTTP API."""

import asyncio
import base64
import hashlib
import json

import httpx
import pytest

from opencloud import (
    DataStoreService,
    KeyNotFoundError,
    ListKeysParams,
    ListEntryVersionsParams,
    RequestError,
    SetEntryOptions,
    StaleEntryError,
    TransportError,
    VersionConflictError,
)
from tests.conftest import API_KEY, FakeAPI, json_body

ENTRY_PATH = "/datastores/v1/universes/1234/standard-datastores/datastore/entries/entry"


def entry_response(value: object, version: str = "v1", **extra_headers: str) -> httpx.Response:
    headers = {
        "roblox-entry-created-time": "2026-01-01T00:00:00Z",
        "roblox-entry-version-created-time": "2026-01-02T00:00:00Z",
        "roblox-entry-version": version,
        "roblox-entry-attributes": '{"tier":"gold"}',
        "roblox-entry-userids": "[42]",
    }
    headers.update(extra_headers)
    return httpx.Response(200, json=value, headers=headers)


def set_response(version: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "version": version,
            "deleted": False,
            "contentLength": 11,
            "createdTime": "2026-01-03T00:00:00Z",
            "objectCreatedTime": "2026-01-01T00:00:00Z",
        },
    )


# --- Get ---


def test_get_parses_value_and_metadata(api: FakeAPI) -> None:
    """Verify get() returns the body as value and roblox-entry-* headers as metadata."""
    api.handler = lambda request: entry_response({"count": 0})

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")

        assert entry.key == "user_1"
        assert entry.value == {"count": 0}
        assert entry.version == "v1"
        assert entry.created_time == "2026-01-01T00:00:00Z"
        assert entry.updated_time == "2026-01-02T00:00:00Z"
        assert entry.attributes == {"tier": "gold"}
        assert entry.user_ids == [42]

    asyncio.run(run())

    request = api.last
    assert request.method == "GET"
    assert request.url.path == ENTRY_PATH
    assert request.url.params["datastoreName"] == "Players"
    assert request.url.params["entryKey"] == "user_1"
    assert request.url.params["scope"] == "global"
    assert request.headers["x-api-key"] == API_KEY


def test_get_without_metadata_headers(api: FakeAPI) -> None:
    """Verify missing attribute and user id headers mean none are set."""
    api.handler = lambda request: httpx.Response(
        200, json=7, headers={"roblox-entry-version": "v1"}
    )

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Counters", scope="beta").get("k")

        assert entry.value == 7
        assert entry.attributes == {}
        assert entry.user_ids == []

    asyncio.run(run())
    assert api.last.url.params["scope"] == "beta"


def test_get_missing_entry_raises(api: FakeAPI) -> None:
    """Verify a 404 is surfaced as KeyNotFoundError."""
    api.handler = lambda request: httpx.Response(
        404, json={"error": "NOT_FOUND", "message": "Entry not found"}
    )

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            with pytest.raises(KeyNotFoundError) as excinfo:
                await service.get_data_store("Players").get("missing")
        assert excinfo.value.status_code == 404
        assert excinfo.value.message == "Entry not found"

    asyncio.run(run())


def test_get_tombstoned_entry_raises(api: FakeAPI) -> None:
    """Verify a 204 (entry marked as deleted) is surfaced as KeyNotFoundError."""
    api.handler = lambda request: httpx.Response(204)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            with pytest.raises(KeyNotFoundError, match="marked as deleted"):
                await service.get_data_store("Players").get("gone")

    asyncio.run(run())


def test_get_version(api: FakeAPI) -> None:
    """Verify get_version() targets the version endpoint with versionId."""
    api.handler = lambda request: entry_response({"count": 1}, version="v0")

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get_version("user_1", "v0")
        assert entry.version == "v0"

    asyncio.run(run())
    assert api.last.url.path == ENTRY_PATH + "/versions/version"
    assert api.last.url.params["versionId"] == "v0"


# --- Set ---


def test_store_set_sends_full_value_with_checksum(api: FakeAPI) -> None:
    """Verify set() posts compact JSON with a matching content-md5 header."""
    api.handler = lambda request: set_response("v2")

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").set(
                "user_1", {"count": 5}, attributes={"a": 1}, user_ids=[7]
            )
        assert entry.value == {"count": 5}
        assert entry.version == "v2"
        assert entry.created_time == "2026-01-01T00:00:00Z"
        assert entry.updated_time == "2026-01-03T00:00:00Z"
        assert entry.attributes == {"a": 1}
        assert entry.user_ids == [7]

    asyncio.run(run())

    request = api.last
    assert request.method == "POST"
    assert request.content == b'{"count":5}'
    expected_md5 = base64.b64encode(hashlib.md5(b'{"count":5}').digest()).decode("ascii")
    assert request.headers["content-md5"] == expected_md5
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.headers["roblox-entry-attributes"]) == {"a": 1}
    assert json.loads(request.headers["roblox-entry-userids"]) == [7]
    assert "matchVersion" not in request.url.params


def test_store_set_with_exclusive_create(api: FakeAPI) -> None:
    """Verify write options are sent as query parameters."""
    api.handler = lambda request: set_response("v1")

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            await service.get_data_store("Players").set(
                "user_1", [1, 2], options=SetEntryOptions(exclusive_create=True)
            )

    asyncio.run(run())
    assert api.last.url.params["exclusiveCreate"] == "true"
    assert "roblox-entry-attributes" not in api.last.headers


# --- Read-Modify-Write ---


def test_update_merges_and_asserts_version(api: FakeAPI) -> None:
    """Verify update() sends the merged value conditioned on the held version."""
    responses = iter([entry_response({"count": 0}, version="v1"), set_response("v2")])
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            updated = await entry.update({"count": 5})

        assert updated.value == {"count": 5}
        assert updated.version == "v2"
        assert updated.attributes == {"tier": "gold"}
        assert updated.user_ids == [42]
        # The fetched entry keeps its snapshot
        assert entry.value == {"count": 0}
        assert entry.version == "v1"

    asyncio.run(run())

    write = api.last
    assert write.method == "POST"
    assert json_body(write) == {"count": 5}
    assert write.url.params["matchVersion"] == "v1"
    assert json.loads(write.headers["roblox-entry-attributes"]) == {"tier": "gold"}
    assert json.loads(write.headers["roblox-entry-userids"]) == [42]


def test_set_merges_nested_fields_without_version(api: FakeAPI) -> None:
    """Verify entry.set() keeps untouched fields and sends no version condition."""
    responses = iter(
        [entry_response({"stats": {"wins": 1, "losses": 3}, "name": "a"}), set_response("v2")]
    )
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            updated = await entry.set({"stats": {"wins": 2}})
        assert updated.value == {"stats": {"wins": 2, "losses": 3}, "name": "a"}

    asyncio.run(run())

    assert json_body(api.last) == {"stats": {"wins": 2, "losses": 3}, "name": "a"}
    assert "matchVersion" not in api.last.url.params


def test_empty_patch_resends_scalar_value(api: FakeAPI) -> None:
    """Verify entry.set({}) on a numeric entry writes the held number back unchanged."""
    responses = iter([entry_response(7), set_response("v2")])
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            updated = await entry.set({})
        assert updated.value == 7

    asyncio.run(run())

    assert json_body(api.last) == 7


def test_update_conflict_raises(api: FakeAPI) -> None:
    """Verify a refused version-conditioned write raises VersionConflictError."""
    responses = iter(
        [
            entry_response({"count": 0}),
            httpx.Response(
                412, json={"error": "FAILED_PRECONDITION", "message": "Version mismatch"}
            ),
        ]
    )
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            with pytest.raises(VersionConflictError) as excinfo:
                await entry.update({"count": 5})
        assert isinstance(excinfo.value, RequestError)
        assert excinfo.value.status_code == 412

    asyncio.run(run())


def test_server_error_is_not_swallowed(api: FakeAPI) -> None:
    """Verify a 500 on write raises RequestError instead of returning the stale entry."""
    responses = iter([entry_response({"count": 0}), httpx.Response(500, text="oops")])
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            with pytest.raises(RequestError) as excinfo:
                await entry.set({"count": 1})
        assert excinfo.value.status_code == 500
        assert excinfo.value.body == "oops"

    asyncio.run(run())


# --- Deleted Entries ---


def test_writes_after_remove_make_no_request(api: FakeAPI) -> None:
    """Verify set/update after a successful remove() raise StaleEntryError without a request."""
    responses = iter([entry_response({"count": 0}), httpx.Response(204)])
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            await entry.remove()

            assert entry.is_deleted
            with pytest.raises(StaleEntryError):
                await entry.set({"count": 1})
            with pytest.raises(StaleEntryError):
                await entry.update({"count": 1})
            with pytest.raises(StaleEntryError):
                await entry.increment(1)

    asyncio.run(run())

    assert [request.method for request in api.requests] == ["GET", "DELETE"]


def test_remove_marks_whole_lineage(api: FakeAPI) -> None:
    """Verify deleting a derived entry also stops writes through the entry it came from."""
    responses = iter([entry_response({"count": 0}), set_response("v2"), httpx.Response(200)])
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            original = await service.get_data_store("Players").get("user_1")
            derived = await original.set({"count": 1})
            await derived.delete()

            with pytest.raises(StaleEntryError):
                await original.update({"count": 2})

    asyncio.run(run())
    assert len(api.requests) == 3


def test_failed_remove_keeps_entry_writable(api: FakeAPI) -> None:
    """Verify the entry is only marked deleted after a successful request."""
    responses = iter(
        [
            entry_response({"count": 0}),
            httpx.Response(403, json={"message": "Forbidden"}),
            set_response("v2"),
        ]
    )
    api.handler = lambda request: next(responses)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            with pytest.raises(RequestError):
                await entry.remove()
            assert not entry.is_deleted
            await entry.set({"count": 1})

    asyncio.run(run())


# --- Increment ---


def test_increment(api: FakeAPI) -> None:
    """Verify increment() posts incrementBy and returns the new value."""
    api.handler = lambda request: entry_response(15, version="v3")

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Counters").increment("visits", 5)
        assert entry.value == 15
        assert entry.version == "v3"

    asyncio.run(run())

    assert api.last.method == "POST"
    assert api.last.url.path == ENTRY_PATH + "/increment"
    assert api.last.url.params["incrementBy"] == "5"


# --- Listings ---


def test_list_keys_iterates_all_pages(api: FakeAPI) -> None:
    """Verify async iteration follows nextPageCursor until it runs out."""
    pages = iter(
        [
            httpx.Response(
                200, json={"keys": [{"key": "a"}, {"key": "b"}], "nextPageCursor": "c2"}
            ),
            httpx.Response(200, json={"keys": [{"key": "c"}], "nextPageCursor": ""}),
        ]
    )
    api.handler = lambda request: next(pages)

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            page = await service.get_data_store("Players").list_keys(ListKeysParams(limit=2))
            assert [k.key for k in page.keys] == ["a", "b"]
            assert not page.is_finished

            keys = [k.key async for k in page]
        assert keys == ["a", "b", "c"]
        assert page.is_finished

    asyncio.run(run())

    first, second = api.requests
    assert first.url.params["limit"] == "2"
    assert "cursor" not in first.url.params
    assert second.url.params["cursor"] == "c2"
    assert second.url.params["datastoreName"] == "Players"


def test_list_data_stores_finished_page_is_not_refetched(api: FakeAPI) -> None:
    """Verify fetch_page() is a no-op once no cursor is returned."""
    api.handler = lambda request: httpx.Response(
        200,
        json={"datastores": [{"name": "Players", "createdTime": "2026-01-01T00:00:00Z"}]},
    )

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            page = await service.list_data_stores()
            assert page.is_finished
            assert page.datastores[0].name == "Players"
            await page.fetch_page()

    asyncio.run(run())
    assert len(api.requests) == 1
    assert api.last.url.path == "/datastores/v1/universes/1234/standard-datastores"


def test_list_versions(api: FakeAPI) -> None:
    """Verify list_versions() passes filters and parses version metadata."""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == ENTRY_PATH:
            return entry_response({"count": 0})
        version = {
            "version": "v1",
            "deleted": False,
            "contentLength": 11,
            "createdTime": "2026-01-02T00:00:00Z",
            "objectCreatedTime": "2026-01-01T00:00:00Z",
        }
        return httpx.Response(200, json={"versions": [version], "nextPageCursor": ""})

    api.handler = handler

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            entry = await service.get_data_store("Players").get("user_1")
            page = await entry.list_versions(
                ListEntryVersionsParams(sort_order="Descending", limit=1)
            )
        assert page.versions[0].version == "v1"
        assert page.versions[0].content_length == 11
        assert page.is_finished

    asyncio.run(run())
    assert api.last.url.path == ENTRY_PATH + "/versions"
    assert api.last.url.params["sortOrder"] == "Descending"
    assert api.last.url.params["entryKey"] == "user_1"


# --- Transport ---


def test_create_closes_http_client_on_exit(api: FakeAPI) -> None:
    """Verify the service's HTTP client is closed when create() exits, even on error."""

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            http = service._http
            assert not http.closed
        assert http.closed

        with pytest.raises(RuntimeError):
            async with DataStoreService.create(api.config()) as service:
                http = service._http
                raise RuntimeError("boom")
        assert http.closed

    asyncio.run(run())


def test_network_failure_raises_transport_error(api: FakeAPI) -> None:
    """Verify httpx failures are wrapped in TransportError."""

    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api.handler = fail

    async def run() -> None:
        async with DataStoreService.create(api.config()) as service:
            with pytest.raises(TransportError):
                await service.get_data_store("Players").get("user_1")

    asyncio.run(run())

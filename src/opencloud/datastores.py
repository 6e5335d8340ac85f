"""Standard data stores: service, store handles, entries and listings."""

from __future__ import annotations

import copy
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    cast,
)

from opencloud._internal import urls
from opencloud._internal.http_client import AsyncOpenCloudHTTPClient, response_json
from opencloud._internal.json_helpers import (
    as_object,
    data_store_info_from_json,
    entry_key_from_json,
    entry_version_from_json,
    get_list,
    get_optional_str,
    metadata_from_headers,
    metadata_headers,
)
from opencloud._internal.params import query_from_params, query_from_values
from opencloud._internal.types import EntryLineage, int64_from_value
from opencloud.json_helpers import JSONValue
from opencloud.merge import merge
from opencloud.ordered import OrderedDataStore
from opencloud.pagination import CursorPage
from opencloud.types import (
    Config,
    Cursor,
    DataStoreInfo,
    EntryKey,
    EntryMetadata,
    EntryVersion,
    EntryVersionInfo,
    KeyNotFoundError,
    ListDataStoresParams,
    ListEntryVersionsParams,
    ListKeysParams,
    SetEntryOptions,
    StaleEntryError,
)

if TYPE_CHECKING:
    import httpx

    from opencloud.json_helpers import PartialEntityValue

logger = logging.getLogger(__name__)

V = TypeVar("V")


class DataStoreService:
    """Entry point for standard and ordered data stores of one experience.

    Usage:
        async with DataStoreService.create(Config(api_key, universe_id)) as service:
            store = service.get_data_store("Players")
            entry = await store.get("user_1")
            entry = await entry.update({"coins": 5})
    """

    def __init__(self, config: Config, http: Optional[AsyncOpenCloudHTTPClient] = None) -> None:
        self.config = config
        self._http = http or AsyncOpenCloudHTTPClient.from_config(config)

    @property
    def universe_id(self) -> int:
        return self.config.universe_id

    @classmethod
    @asynccontextmanager
    async def create(cls, config: Config) -> AsyncIterator["DataStoreService"]:
        """Create a service whose HTTP client is closed on exit."""
        service = cls(config)
        try:
            yield service
        finally:
            await service.aclose()

    def get_data_store(self, name: str, scope: str = "global") -> "DataStore[Any]":
        """Return a handle for a standard data store. No request is made."""
        return DataStore(self._http, self.universe_id, name, scope)

    def get_ordered_data_store(self, name: str, scope: str = "global") -> OrderedDataStore:
        """Return a handle for an ordered data store. No request is made."""
        return OrderedDataStore(self._http, self.universe_id, name, scope)

    async def list_data_stores(
        self, params: Optional[ListDataStoresParams] = None
    ) -> "DataStoreListingPage":
        """Return the first page of data stores in the experience."""
        page = DataStoreListingPage(self._http, self.universe_id, params)
        await page.fetch_page()
        return page

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "DataStoreService":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.aclose()


class DataStore(Generic[V]):
    """Handle for one standard data store within a scope."""

    def __init__(
        self,
        http: AsyncOpenCloudHTTPClient,
        universe_id: int,
        name: str,
        scope: str = "global",
    ) -> None:
        self._http = http
        self.universe_id = universe_id
        self.name = name
        self.scope = scope

    def __repr__(self) -> str:
        return f"DataStore(name={self.name!r}, scope={self.scope!r})"

    def _entry_query(self, key: str) -> Dict[str, str]:
        return {"datastoreName": self.name, "scope": self.scope, "entryKey": key}

    def _entry_from_response(
        self, key: str, response: "httpx.Response", lineage: Optional[EntryLineage] = None
    ) -> "DataStoreEntry[V]":
        if response.status_code == 204:
            raise KeyNotFoundError(204, f"Entry '{key}' is marked as deleted")
        metadata = metadata_from_headers(response.headers)
        value = cast(V, response_json(response))
        return DataStoreEntry._from_metadata(self, key, metadata, value, lineage or EntryLineage())

    async def get(self, key: str) -> "DataStoreEntry[V]":
        """Return the value and metadata associated with an entry.

        Raises:
            KeyNotFoundError: If the entry does not exist or is marked as deleted
        """
        response = await self._http.request(
            "GET", urls.entry_path(self.universe_id), params=self._entry_query(key)
        )
        return self._entry_from_response(key, response)

    async def get_version(self, key: str, version: str) -> "DataStoreEntry[V]":
        """Return the value and metadata of a specific version of an entry."""
        params = self._entry_query(key)
        params["versionId"] = version
        response = await self._http.request(
            "GET", urls.entry_version_path(self.universe_id), params=params
        )
        return self._entry_from_response(key, response)

    async def set(
        self,
        key: str,
        value: V,
        attributes: Optional[Mapping[str, object]] = None,
        user_ids: Optional[Sequence[int]] = None,
        options: Optional[SetEntryOptions] = None,
    ) -> "DataStoreEntry[V]":
        """Write the complete value of an entry, creating a new version.

        Nothing is merged: use DataStoreEntry.set() or update() to change only
        some fields of a fetched entry. Attributes and user ids that are not
        provided are cleared.

        Raises:
            VersionConflictError: If options.match_version or
                options.exclusive_create is not satisfied
        """
        return await self._write(key, value, attributes, user_ids, options, EntryLineage())

    async def _write(
        self,
        key: str,
        value: V,
        attributes: Optional[Mapping[str, object]],
        user_ids: Optional[Sequence[int]],
        options: Optional[SetEntryOptions],
        lineage: EntryLineage,
    ) -> "DataStoreEntry[V]":
        params = self._entry_query(key)
        params.update(query_from_params(options))

        headers = metadata_headers(attributes, user_ids)

        response = await self._http.request(
            "POST",
            urls.entry_path(self.universe_id),
            params=params,
            body=value,
            headers=headers,
            with_content_md5=True,
        )
        written = entry_version_from_json(as_object(response_json(response), "set response"))

        return DataStoreEntry(
            key=key,
            value=copy.deepcopy(value),
            version=written.version,
            created_time=written.object_created_time,
            updated_time=written.created_time,
            attributes=dict(attributes or {}),
            user_ids=list(user_ids or []),
            _store=self,
            _lineage=lineage,
        )

    async def remove(self, key: str) -> None:
        """Mark the entry as deleted by creating a tombstone version.

        Entries are deleted permanently after 30 days.
        """
        await self._http.request(
            "DELETE", urls.entry_path(self.universe_id), params=self._entry_query(key)
        )
        logger.info(f"Marked entry '{key}' in {self.name}/{self.scope} as deleted")

    async def increment(
        self,
        key: str,
        amount: int,
        attributes: Optional[Mapping[str, object]] = None,
        user_ids: Optional[Sequence[int]] = None,
    ) -> "DataStoreEntry[V]":
        """Increment a numeric entry by amount and return the updated entry."""
        return await self._increment(key, amount, attributes, user_ids, EntryLineage())

    async def _increment(
        self,
        key: str,
        amount: int,
        attributes: Optional[Mapping[str, object]],
        user_ids: Optional[Sequence[int]],
        lineage: EntryLineage,
    ) -> "DataStoreEntry[V]":
        params = self._entry_query(key)
        params.update(query_from_values({"incrementBy": int64_from_value(amount, "Increment")}))

        headers = metadata_headers(attributes, user_ids)

        response = await self._http.request(
            "POST", urls.entry_increment_path(self.universe_id), params=params, headers=headers
        )
        return self._entry_from_response(key, response, lineage)

    async def list_keys(self, params: Optional[ListKeysParams] = None) -> "DataStoreKeyPage":
        """Return the first page of entry keys within this data store."""
        page = DataStoreKeyPage(self._http, self, params)
        await page.fetch_page()
        return page

    async def list_versions(
        self, key: str, params: Optional[ListEntryVersionsParams] = None
    ) -> "DataStoreVersionPage":
        """Return the first page of versions of an entry."""
        page = DataStoreVersionPage(self._http, self, key, params)
        await page.fetch_page()
        return page


@dataclass(frozen=True)
class DataStoreEntry(Generic[V]):
    """A fetched standard data store entry.

    Holds the value and write-conditioning metadata exactly as captured when
    the entry was read or written. Writes return a new DataStoreEntry; this
    one never changes.

    Once remove() succeeds, every entry derived from the same fetch refuses
    further writes with StaleEntryError, without making a request.
    """

    key: str
    value: V
    version: EntryVersion
    created_time: str  # When the entry was created
    updated_time: str  # When this version was created
    attributes: Dict[str, object] = field(default_factory=dict)
    user_ids: List[int] = field(default_factory=list)
    _store: Optional[DataStore[V]] = field(default=None, repr=False, compare=False)
    _lineage: EntryLineage = field(default_factory=EntryLineage, repr=False, compare=False)

    @classmethod
    def _from_metadata(
        cls,
        store: DataStore[V],
        key: str,
        metadata: EntryMetadata,
        value: V,
        lineage: EntryLineage,
    ) -> "DataStoreEntry[V]":
        return cls(
            key=key,
            value=value,
            version=metadata.version,
            created_time=metadata.created_time,
            updated_time=metadata.updated_time,
            attributes=metadata.attributes,
            user_ids=metadata.user_ids,
            _store=store,
            _lineage=lineage,
        )

    @property
    def is_deleted(self) -> bool:
        """True once this entry (or one derived from the same fetch) was removed."""
        return self._lineage.deleted

    def _writable_store(self, operation: str) -> DataStore[V]:
        if self._lineage.deleted:
            raise StaleEntryError(
                f"Cannot {operation}() entry '{self.key}': it has been deleted"
            )
        if self._store is None:
            raise StaleEntryError(f"Entry '{self.key}' is not attached to a data store")
        return self._store

    async def set(self, patch: "PartialEntityValue") -> "DataStoreEntry[V]":
        """Write the held value with patch merged on top.

        Attributes and user ids are resubmitted as held, so changes made to
        them by someone else since this entry was fetched are overwritten.
        """
        store = self._writable_store("set")
        merged = cast(V, merge(cast("PartialEntityValue", self.value), patch))
        return await store._write(
            self.key, merged, self.attributes, self.user_ids, None, self._lineage
        )

    async def update(self, patch: "PartialEntityValue") -> "DataStoreEntry[V]":
        """Like set(), but only if the entry is still at the held version.

        Raises:
            VersionConflictError: If the entry changed since it was fetched
        """
        store = self._writable_store("update")
        merged = cast(V, merge(cast("PartialEntityValue", self.value), patch))
        options = SetEntryOptions(match_version=self.version)
        return await store._write(
            self.key, merged, self.attributes, self.user_ids, options, self._lineage
        )

    async def increment(self, amount: int) -> "DataStoreEntry[V]":
        """Increment a numeric entry, resubmitting the held attributes and user ids."""
        store = self._writable_store("increment")
        return await store._increment(
            self.key, amount, self.attributes, self.user_ids, self._lineage
        )

    async def remove(self) -> None:
        """Mark the entry as deleted and refuse further writes through it."""
        store = self._writable_store("remove")
        await store.remove(self.key)
        self._lineage.deleted = True

    delete = remove

    async def list_versions(
        self, params: Optional[ListEntryVersionsParams] = None
    ) -> "DataStoreVersionPage":
        """Return the first page of versions of this entry."""
        if self._store is None:
            raise StaleEntryError(f"Entry '{self.key}' is not attached to a data store")
        return await self._store.list_versions(self.key, params)

    async def get_version(self, version: str) -> "DataStoreEntry[V]":
        """Return a specific version of this entry."""
        if self._store is None:
            raise StaleEntryError(f"Entry '{self.key}' is not attached to a data store")
        return await self._store.get_version(self.key, version)


class DataStoreListingPage(CursorPage[DataStoreInfo]):
    """A page of data stores in an experience."""

    def __init__(
        self,
        http: AsyncOpenCloudHTTPClient,
        universe_id: int,
        params: Optional[ListDataStoresParams] = None,
    ) -> None:
        super().__init__(params.cursor if params else None)
        self._http = http
        self._universe_id = universe_id
        self._params = params

    @property
    def datastores(self) -> List[DataStoreInfo]:
        return self.items

    async def _fetch(
        self, cursor: Optional[Cursor]
    ) -> Tuple[List[DataStoreInfo], Optional[Cursor]]:
        params = query_from_params(self._params, exclude=("cursor",))
        if cursor:
            params["cursor"] = cursor
        response = await self._http.request(
            "GET", urls.data_stores_path(self._universe_id), params=params
        )
        data = as_object(response_json(response), "list data stores response")
        items = [
            data_store_info_from_json(as_object(item, "data store"))
            for item in get_list(data, "datastores")
        ]
        return items, _next_cursor(data)


class DataStoreKeyPage(CursorPage[EntryKey]):
    """A page of entry keys within a data store."""

    def __init__(
        self,
        http: AsyncOpenCloudHTTPClient,
        store: DataStore[Any],
        params: Optional[ListKeysParams] = None,
    ) -> None:
        super().__init__(params.cursor if params else None)
        self._http = http
        self._store = store
        self._params = params

    @property
    def keys(self) -> List[EntryKey]:
        return self.items

    async def _fetch(self, cursor: Optional[Cursor]) -> Tuple[List[EntryKey], Optional[Cursor]]:
        params = {"datastoreName": self._store.name, "scope": self._store.scope}
        params.update(query_from_params(self._params, exclude=("cursor",)))
        if cursor:
            params["cursor"] = cursor
        response = await self._http.request(
            "GET", urls.entries_path(self._store.universe_id), params=params
        )
        data = as_object(response_json(response), "list keys response")
        items = [entry_key_from_json(as_object(item, "key")) for item in get_list(data, "keys")]
        return items, _next_cursor(data)


class DataStoreVersionPage(CursorPage[EntryVersionInfo]):
    """A page of versions of one entry."""

    def __init__(
        self,
        http: AsyncOpenCloudHTTPClient,
        store: DataStore[Any],
        key: str,
        params: Optional[ListEntryVersionsParams] = None,
    ) -> None:
        super().__init__(params.cursor if params else None)
        self._http = http
        self._store = store
        self.key = key
        self._params = params

    @property
    def versions(self) -> List[EntryVersionInfo]:
        return self.items

    async def _fetch(
        self, cursor: Optional[Cursor]
    ) -> Tuple[List[EntryVersionInfo], Optional[Cursor]]:
        params = {
            "datastoreName": self._store.name,
            "scope": self._store.scope,
            "entryKey": self.key,
        }
        params.update(query_from_params(self._params, exclude=("cursor",)))
        if cursor:
            params["cursor"] = cursor
        response = await self._http.request(
            "GET", urls.entry_versions_path(self._store.universe_id), params=params
        )
        data = as_object(response_json(response), "list versions response")
        items = [
            entry_version_from_json(as_object(item, "version"))
            for item in get_list(data, "versions")
        ]
        return items, _next_cursor(data)


def _next_cursor(data: Dict[str, JSONValue]) -> Optional[Cursor]:
    cursor = get_optional_str(data, "nextPageCursor")
    return Cursor(cursor) if cursor else None

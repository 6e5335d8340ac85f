"""Ordered data stores: integer-valued entries sortable by value."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple, Union

from opencloud._internal import urls
from opencloud._internal.http_client import AsyncOpenCloudHTTPClient, response_json
from opencloud._internal.json_helpers import (
    as_object,
    get_int,
    get_list,
    get_optional_str,
    get_str,
)
from opencloud._internal.params import query_from_params, query_from_values
from opencloud._internal.types import (
    EntryHandle,
    EntryLineage,
    EntryTarget,
    RawEntryId,
    int64_from_value,
)
from opencloud.json_helpers import JSONValue
from opencloud.pagination import CursorPage
from opencloud.types import Cursor, ListOrderedEntriesParams, StaleEntryError

logger = logging.getLogger(__name__)


class OrderedDataStore:
    """Handle for one ordered data store within a scope.

    Entry arguments accept either an entry id or an OrderedDataStoreEntry
    previously returned by this API.
    """

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
        return f"OrderedDataStore(name={self.name!r}, scope={self.scope!r})"

    def _entry_path(self, entry: Union[str, "OrderedDataStoreEntry"]) -> str:
        return urls.resolve_entry_path(_as_target(entry), self.universe_id, self.name, self.scope)

    def _entry_from_response(
        self, data: JSONValue, lineage: Optional[EntryLineage] = None
    ) -> "OrderedDataStoreEntry":
        return OrderedDataStoreEntry._from_json(
            self, as_object(data, "ordered entry"), lineage or EntryLineage()
        )

    async def list_entries(
        self, params: Optional[ListOrderedEntriesParams] = None
    ) -> "OrderedEntryPage":
        """Return the first page of entries, ordered by value."""
        page = OrderedEntryPage(self._http, self, params)
        await page.fetch_page()
        return page

    async def create(self, entry_id: str, value: int) -> "OrderedDataStoreEntry":
        """Create a new entry with the given value.

        Raises:
            ValidationError: If value is not an int64
        """
        body = {"value": int64_from_value(value, "Entry value")}
        response = await self._http.request(
            "POST",
            urls.ordered_entries_path(self.universe_id, self.name, self.scope),
            params={"id": entry_id},
            body=body,
        )
        return self._entry_from_response(response_json(response))

    async def get(self, entry_id: str) -> "OrderedDataStoreEntry":
        """Return the specified entry.

        Raises:
            KeyNotFoundError: If the entry does not exist
        """
        response = await self._http.request("GET", self._entry_path(entry_id))
        return self._entry_from_response(response_json(response))

    async def delete(self, entry: Union[str, "OrderedDataStoreEntry"]) -> None:
        """Delete the specified entry."""
        await self._http.request("DELETE", self._entry_path(entry))
        logger.info(f"Deleted ordered entry {_describe(entry)} from {self.name}/{self.scope}")

    async def update(
        self,
        entry: Union[str, "OrderedDataStoreEntry"],
        value: int,
        allow_missing: Optional[bool] = None,
    ) -> "OrderedDataStoreEntry":
        """Set an entry's value and return the updated entry.

        Args:
            entry: Entry id or entry object
            value: New int64 value
            allow_missing: Create the entry if it doesn't exist
        """
        return await self._update(entry, value, allow_missing, EntryLineage())

    async def _update(
        self,
        entry: Union[str, "OrderedDataStoreEntry"],
        value: int,
        allow_missing: Optional[bool],
        lineage: EntryLineage,
    ) -> "OrderedDataStoreEntry":
        body = {"value": int64_from_value(value, "Entry value")}
        response = await self._http.request(
            "PATCH",
            self._entry_path(entry),
            params=query_from_values({"allow_missing": allow_missing}),
            body=body,
        )
        return self._entry_from_response(response_json(response), lineage)

    async def increment(
        self, entry: Union[str, "OrderedDataStoreEntry"], amount: int
    ) -> "OrderedDataStoreEntry":
        """Increment an entry's value by amount and return the updated entry.

        Raises:
            ValidationError: If amount is not an int64
            RequestError: 400 if the result would overflow int64
        """
        return await self._increment(entry, amount, EntryLineage())

    async def _increment(
        self,
        entry: Union[str, "OrderedDataStoreEntry"],
        amount: int,
        lineage: EntryLineage,
    ) -> "OrderedDataStoreEntry":
        body = {"amount": int64_from_value(amount, "Increment amount")}
        response = await self._http.request(
            "POST", f"{self._entry_path(entry)}:increment", body=body
        )
        return self._entry_from_response(response_json(response), lineage)


@dataclass(frozen=True)
class OrderedDataStoreEntry:
    """An entry of an ordered data store.

    Like DataStoreEntry, writes return a new object and a successful delete()
    stops any further writes through entries derived from the same fetch.
    """

    path: str  # Resource path, e.g. 'universes/1/orderedDataStores/s/scopes/global/entries/id'
    id: str
    value: int
    _store: Optional[OrderedDataStore] = field(default=None, repr=False, compare=False)
    _lineage: EntryLineage = field(default_factory=EntryLineage, repr=False, compare=False)

    @classmethod
    def _from_json(
        cls, store: OrderedDataStore, data: Mapping[str, JSONValue], lineage: EntryLineage
    ) -> "OrderedDataStoreEntry":
        return cls(
            path=get_str(data, "path"),
            id=get_str(data, "id"),
            value=get_int(data, "value"),
            _store=store,
            _lineage=lineage,
        )

    @property
    def handle(self) -> EntryHandle:
        return EntryHandle(self.path)

    @property
    def is_deleted(self) -> bool:
        return self._lineage.deleted

    def _writable_store(self, operation: str) -> OrderedDataStore:
        if self._lineage.deleted:
            raise StaleEntryError(
                f"Cannot {operation}() ordered entry '{self.id}': it has been deleted"
            )
        if self._store is None:
            raise StaleEntryError(f"Ordered entry '{self.id}' is not attached to a data store")
        return self._store

    async def update(
        self, value: int, allow_missing: Optional[bool] = None
    ) -> "OrderedDataStoreEntry":
        """Set this entry's value and return the updated entry."""
        store = self._writable_store("update")
        return await store._update(self, value, allow_missing, self._lineage)

    async def increment(self, amount: int) -> "OrderedDataStoreEntry":
        """Increment this entry's value and return the updated entry."""
        store = self._writable_store("increment")
        return await store._increment(self, amount, self._lineage)

    async def delete(self) -> None:
        """Delete this entry and refuse further writes through it."""
        store = self._writable_store("delete")
        await store.delete(self)
        self._lineage.deleted = True


class OrderedEntryPage(CursorPage[OrderedDataStoreEntry]):
    """A page of ordered data store entries."""

    def __init__(
        self,
        http: AsyncOpenCloudHTTPClient,
        store: OrderedDataStore,
        params: Optional[ListOrderedEntriesParams] = None,
    ) -> None:
        super().__init__(params.page_token if params else None)
        self._http = http
        self._store = store
        self._params = params

    @property
    def entries(self) -> List[OrderedDataStoreEntry]:
        return self.items

    @property
    def page_token(self) -> Optional[Cursor]:
        return self.next_cursor

    async def _fetch(
        self, cursor: Optional[Cursor]
    ) -> Tuple[List[OrderedDataStoreEntry], Optional[Cursor]]:
        params = query_from_params(self._params, exclude=("page_token",))
        if cursor:
            params["page_token"] = cursor
        response = await self._http.request(
            "GET",
            urls.ordered_entries_path(self._store.universe_id, self._store.name, self._store.scope),
            params=params,
        )
        data = as_object(response_json(response), "list entries response")
        items = [
            OrderedDataStoreEntry._from_json(
                self._store, as_object(item, "ordered entry"), EntryLineage()
            )
            for item in get_list(data, "entries")
        ]
        token = get_optional_str(data, "nextPageToken")
        return items, Cursor(token) if token else None


def _as_target(entry: Union[str, OrderedDataStoreEntry]) -> EntryTarget:
    """Convert a public entry argument into its request target variant."""
    if isinstance(entry, OrderedDataStoreEntry):
        return entry.handle
    if isinstance(entry, str):
        return RawEntryId(entry)
    raise TypeError(
        f"Expected an entry id or OrderedDataStoreEntry, got {type(entry).__name__}"
    )


def _describe(entry: Union[str, OrderedDataStoreEntry]) -> str:
    return repr(entry.id if isinstance(entry, OrderedDataStoreEntry) else entry)

"""opencloud - Async client for Open Cloud data stores, ordered data stores and messaging."""

from opencloud.datastores import (
    DataStore,
    DataStoreEntry,
    DataStoreKeyPage,
    DataStoreListingPage,
    DataStoreService,
    DataStoreVersionPage,
)
from opencloud.json_helpers import EntityValue, JSONValue, PartialEntityValue
from opencloud.merge import merge
from opencloud.messaging import MessagingService
from opencloud.ordered import OrderedDataStore, OrderedDataStoreEntry, OrderedEntryPage
from opencloud.pagination import CursorPage
from opencloud.types import (
    Config,
    ConfigurationError,
    Cursor,
    DataStoreInfo,
    EntryKey,
    EntryVersion,
    EntryVersionInfo,
    HTTPOverrides,
    KeyNotFoundError,
    ListDataStoresParams,
    ListEntryVersionsParams,
    ListKeysParams,
    ListOrderedEntriesParams,
    OpenCloudError,
    RequestError,
    SetEntryOptions,
    StaleEntryError,
    TransportError,
    ValidationError,
    VersionConflictError,
)

__version__ = "0.1.0"

__all__ = [
    # Services
    "DataStoreService",
    "MessagingService",
    # Data stores and entries
    "DataStore",
    "DataStoreEntry",
    "OrderedDataStore",
    "OrderedDataStoreEntry",
    # Pages
    "CursorPage",
    "DataStoreListingPage",
    "DataStoreKeyPage",
    "DataStoreVersionPage",
    "OrderedEntryPage",
    # Partial updates
    "merge",
    # JSON types
    "JSONValue",
    "EntityValue",
    "PartialEntityValue",
    # Config types
    "Config",
    "HTTPOverrides",
    # Metadata types
    "DataStoreInfo",
    "EntryKey",
    "EntryVersionInfo",
    # Parameter types
    "ListDataStoresParams",
    "ListKeysParams",
    "ListEntryVersionsParams",
    "ListOrderedEntriesParams",
    "SetEntryOptions",
    # Branded types
    "EntryVersion",
    "Cursor",
    # Exceptions
    "OpenCloudError",
    "ConfigurationError",
    "ValidationError",
    "TransportError",
    "RequestError",
    "KeyNotFoundError",
    "VersionConflictError",
    "StaleEntryError",
]

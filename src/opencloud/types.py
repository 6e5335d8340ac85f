"""Type definitions for opencloud."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Literal, Optional

if TYPE_CHECKING:
    import httpx

DEFAULT_BASE_URL = "https://apis.roblox.com"


# Branded string types
# These are nominal types to prevent mixing identifiers from different contexts


class EntryVersion(str):
    """Version token of a standard data store entry revision.

    Opaque; sent back unmodified as matchVersion for conditioned writes.
    """

    pass


class Cursor(str):
    """Opaque pagination continuation value returned by list endpoints."""

    pass


@dataclass
class HTTPOverrides:
    """Override default HTTP client behavior."""

    # API host. Paths are resolved against it.
    base_url: str = DEFAULT_BASE_URL

    # Per-request timeout in seconds
    timeout: float = 30.0

    # Custom transport (e.g. httpx.MockTransport in tests)
    transport: Optional["httpx.AsyncBaseTransport"] = None

    # Extra headers sent with every request
    headers: Optional[Dict[str, str]] = None


@dataclass
class Config:
    """Client configuration."""

    # Open Cloud API key, sent as x-api-key
    api_key: str

    # Experience (universe) that owns the data stores and topics
    universe_id: int

    # Optional: HTTP client overrides
    overrides: Optional[HTTPOverrides] = None

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError("api_key must be a non-empty string")
        if isinstance(self.universe_id, bool) or not isinstance(self.universe_id, int):
            raise ConfigurationError(f"universe_id must be an int, got {self.universe_id!r}")
        if self.universe_id <= 0:
            raise ConfigurationError(f"universe_id must be positive, got {self.universe_id}")


# --- Metadata returned by list endpoints ---


@dataclass(frozen=True)
class DataStoreInfo:
    """A data store in the experience."""

    name: str
    created_time: str  # ISO 8601


@dataclass(frozen=True)
class EntryKey:
    """A key inside a data store.

    scope is only populated when listing with all_scopes=True.
    """

    key: str
    scope: Optional[str] = None


@dataclass(frozen=True)
class EntryVersionInfo:
    """Metadata of one revision of a standard data store entry."""

    version: EntryVersion
    deleted: bool
    content_length: int
    created_time: str  # When this version was created
    object_created_time: str  # When the entry itself was created


# --- Request parameters ---


@dataclass
class ListDataStoresParams:
    """Parameters for listing the data stores of an experience."""

    cursor: Optional[str] = None
    limit: Optional[int] = None
    prefix: Optional[str] = None


@dataclass
class ListKeysParams:
    """Parameters for listing entry keys within a data store."""

    cursor: Optional[str] = None
    limit: Optional[int] = None
    prefix: Optional[str] = None

    # Return keys from every scope (scope is then reported per key)
    all_scopes: Optional[bool] = None


@dataclass
class ListEntryVersionsParams:
    """Parameters for listing the versions of an entry."""

    cursor: Optional[str] = None
    start_time: Optional[str] = None  # Exclude versions earlier than this ISO timestamp
    end_time: Optional[str] = None  # Exclude versions later than this ISO timestamp
    sort_order: Optional[Literal["Ascending", "Descending"]] = None
    limit: Optional[int] = None


@dataclass
class ListOrderedEntriesParams:
    """Parameters for listing ordered data store entries."""

    # Service default is 10, values above 100 are coerced to 100
    max_page_size: Optional[int] = None
    page_token: Optional[str] = None

    # "desc" for descending, ascending by default
    order_by: Optional[Literal["desc"]] = None

    # Range of qualifying values, e.g. "entry >= 10 && entry <= 50"
    filter: Optional[str] = None


@dataclass
class SetEntryOptions:
    """Write conditions for a standard data store set."""

    # Only write if the current version matches
    match_version: Optional[str] = None

    # Only write if the entry does not exist yet
    exclusive_create: Optional[bool] = None


@dataclass
class EntryMetadata:
    """Entry metadata echoed in roblox-entry-* response headers."""

    created_time: str
    updated_time: str
    version: EntryVersion
    attributes: Dict[str, object] = field(default_factory=dict)
    user_ids: List[int] = field(default_factory=list)


# --- Errors ---


class OpenCloudError(Exception):
    """Base class for every error raised by opencloud."""

    pass


class ConfigurationError(OpenCloudError):
    """Raised for invalid configuration."""

    pass


class ValidationError(OpenCloudError):
    """Raised when arguments are rejected before any request is made."""

    pass


class TransportError(OpenCloudError):
    """Raised when the request could not be completed (network failure, timeout)."""

    pass


class RequestError(OpenCloudError):
    """Raised when the API answers with a non-success status."""

    def __init__(self, status_code: int, message: str, body: Optional[str] = None) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.body = body


class KeyNotFoundError(RequestError):
    """Raised when an entry does not exist or is marked as deleted."""

    pass


class VersionConflictError(RequestError):
    """Raised when a conditioned write is refused (matchVersion or exclusiveCreate)."""

    pass


class StaleEntryError(OpenCloudError):
    """Raised when writing through an entry that was already deleted.

    No request is made.
    """

    pass

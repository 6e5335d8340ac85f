"""Internal JSON helper functions not exposed in public API."""

import base64
import hashlib
import json
import re
from typing import Dict, List, Mapping, Optional, Sequence, cast

from opencloud.json_helpers import JSONValue
from opencloud.types import (
    DataStoreInfo,
    EntryKey,
    EntryMetadata,
    EntryVersion,
    EntryVersionInfo,
)

# Response headers carrying standard data store entry metadata
HEADER_CREATED_TIME = "roblox-entry-created-time"
HEADER_VERSION_CREATED_TIME = "roblox-entry-version-created-time"
HEADER_VERSION = "roblox-entry-version"
HEADER_ATTRIBUTES = "roblox-entry-attributes"
HEADER_USER_IDS = "roblox-entry-userids"


def get_str(data: Mapping[str, JSONValue], key: str) -> str:
    """Extract string field from parsed JSON dict.

    Raises:
        TypeError: If field is not a string
        KeyError: If field is missing
    """
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"Expected string for field '{key}', got {type(value).__name__}: {value!r}")
    return value


def get_int(data: Mapping[str, JSONValue], key: str) -> int:
    """Extract int field from parsed JSON dict.

    Note: bool is a subclass of int in Python, so we explicitly reject booleans.
    Int64 values may arrive as strings; those are parsed.

    Raises:
        TypeError: If field is not an int or is a bool
        KeyError: If field is missing
    """
    value = data[key]
    if isinstance(value, str) and re.fullmatch(r"-?[0-9]+", value):
        return int(value)
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"Expected int for field '{key}', got {type(value).__name__}: {value!r}")
    return value


def get_bool(data: Mapping[str, JSONValue], key: str) -> bool:
    """Extract bool field from parsed JSON dict."""
    value = data[key]
    if not isinstance(value, bool):
        raise TypeError(f"Expected bool for field '{key}', got {type(value).__name__}: {value!r}")
    return value


def get_optional_str(data: Mapping[str, JSONValue], key: str) -> Optional[str]:
    """Extract optional string field from parsed JSON dict.

    Empty strings count as absent (list endpoints send "" on the last page).
    """
    value = data.get(key)
    if value is None or value == "":
        return None
    return get_str(data, key)


def get_list(data: Mapping[str, JSONValue], key: str) -> List[JSONValue]:
    """Extract list field from parsed JSON dict; a missing field is an empty list."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"Expected list for field '{key}', got {type(value).__name__}: {value!r}")
    return value


def as_object(value: JSONValue, what: str) -> Dict[str, JSONValue]:
    """Narrow a parsed JSON value to an object."""
    if not isinstance(value, dict):
        raise TypeError(f"Expected JSON object for {what}, got {type(value).__name__}")
    return value


def dumps_canonical(data: JSONValue) -> bytes:
    """Serialize data to canonical JSON.

    Uses sorted keys and minimal separators for deterministic serialization,
    so equal values always produce equal bytes.
    """
    json_str: str = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return json_str.encode("utf-8")


def dumps_body(data: object) -> bytes:
    """Serialize a request body.

    Key order is preserved; separators are compact to match what the API
    hashes when verifying content-md5.
    """
    json_str: str = json.dumps(data, separators=(",", ":"))
    return json_str.encode("utf-8")


def content_md5(body: bytes) -> str:
    """Base64-encoded MD5 digest of the exact request body bytes."""
    digest = hashlib.md5(body).digest()
    return base64.b64encode(digest).decode("ascii")


def metadata_from_headers(headers: Mapping[str, str]) -> EntryMetadata:
    """Construct EntryMetadata from roblox-entry-* response headers.

    Missing attribute or user id headers mean none are set.
    """
    attributes_raw = headers.get(HEADER_ATTRIBUTES)
    user_ids_raw = headers.get(HEADER_USER_IDS)

    attributes = json.loads(attributes_raw) if attributes_raw else {}
    user_ids = json.loads(user_ids_raw) if user_ids_raw else []
    if not isinstance(attributes, dict):
        raise TypeError(f"Expected JSON object in {HEADER_ATTRIBUTES}, got {attributes_raw!r}")
    if not isinstance(user_ids, list):
        raise TypeError(f"Expected JSON array in {HEADER_USER_IDS}, got {user_ids_raw!r}")

    return EntryMetadata(
        created_time=headers.get(HEADER_CREATED_TIME, ""),
        updated_time=headers.get(HEADER_VERSION_CREATED_TIME, ""),
        version=EntryVersion(headers.get(HEADER_VERSION, "")),
        attributes=cast(Dict[str, object], attributes),
        user_ids=[int(user_id) for user_id in user_ids],
    )


def data_store_info_from_json(data: Mapping[str, JSONValue]) -> DataStoreInfo:
    """Construct DataStoreInfo from a list data stores item."""
    return DataStoreInfo(name=get_str(data, "name"), created_time=get_str(data, "createdTime"))


def entry_key_from_json(data: Mapping[str, JSONValue]) -> EntryKey:
    """Construct EntryKey from a list keys item."""
    return EntryKey(key=get_str(data, "key"), scope=get_optional_str(data, "scope"))


def entry_version_from_json(data: Mapping[str, JSONValue]) -> EntryVersionInfo:
    """Construct EntryVersionInfo from a version item or a set response body."""
    created_time = get_str(data, "createdTime")
    return EntryVersionInfo(
        version=EntryVersion(get_str(data, "version")),
        deleted=get_bool(data, "deleted"),
        content_length=get_int(data, "contentLength"),
        created_time=created_time,
        object_created_time=get_optional_str(data, "objectCreatedTime") or created_time,
    )


def metadata_headers(
    attributes: Optional[Mapping[str, object]], user_ids: Optional[Sequence[int]]
) -> Dict[str, str]:
    """Build roblox-entry-* request headers; None leaves a header out."""
    headers: Dict[str, str] = {}
    if attributes is not None:
        headers[HEADER_ATTRIBUTES] = json.dumps(dict(attributes), separators=(",", ":"))
    if user_ids is not None:
        headers[HEADER_USER_IDS] = json.dumps(list(user_ids), separators=(",", ":"))
    return headers

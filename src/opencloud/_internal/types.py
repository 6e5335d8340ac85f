"""Internal type definitions not exposed in public API."""

from dataclasses import dataclass
from typing import Union

from opencloud.types import ValidationError

INT64_MAX = 9223372036854775807
INT64_MIN = -9223372036854775808

MAX_TOPIC_LENGTH = 80
MAX_MESSAGE_LENGTH = 1024


@dataclass
class EntryLineage:
    """Deletion marker shared by every entry wrapper derived from one fetch.

    Wrappers themselves are frozen; this is the only state that changes after
    construction, and it only ever goes from False to True.
    """

    deleted: bool = False


@dataclass(frozen=True)
class RawEntryId:
    """An ordered data store entry addressed by its id within a known store."""

    entry_id: str


@dataclass(frozen=True)
class EntryHandle:
    """An ordered data store entry addressed by the resource path the API returned.

    Path format: 'universes/<u>/orderedDataStores/<name>/scopes/<scope>/entries/<id>'
    """

    path: str


# Either variant resolves to one request path, see urls.resolve_entry_path
EntryTarget = Union[RawEntryId, EntryHandle]


def int64_from_value(value: object, what: str) -> int:
    """Validate an ordered data store value or increment amount.

    Raises:
        ValidationError: If value is not an int or is outside the int64 range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{what} must be an int, got {type(value).__name__}: {value!r}")
    if value > INT64_MAX or value < INT64_MIN:
        raise ValidationError(f"{what} {value} does not fit in int64")
    return value


def topic_from_value(topic: str) -> str:
    """Validate a messaging topic name.

    Raises:
        ValidationError: If topic is empty or longer than 80 characters
    """
    if not topic:
        raise ValidationError("Topic must be a non-empty string")
    if len(topic) > MAX_TOPIC_LENGTH:
        raise ValidationError(
            f"Expected topic to be at most {MAX_TOPIC_LENGTH} characters, got {len(topic)}"
        )
    return topic


def message_from_value(message: str) -> str:
    """Validate a serialized messaging payload.

    Raises:
        ValidationError: If message is longer than 1024 characters
    """
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            f"Expected message to be at most {MAX_MESSAGE_LENGTH} characters, got {len(message)}"
        )
    return message

"""Request path construction.

Every function takes the identifying fields it needs explicitly; nothing is
read from an ambient store or service object.
"""

from urllib.parse import quote

from opencloud._internal.types import EntryHandle, EntryTarget, RawEntryId

STANDARD_DATASTORES_PREFIX = "/datastores/v1"
ORDERED_DATASTORES_PREFIX = "/ordered-data-stores/v1"
MESSAGING_PREFIX = "/messaging-service/v1"


def _segment(value: str) -> str:
    return quote(value, safe="")


def data_stores_path(universe_id: int) -> str:
    """Path listing the standard data stores of an experience."""
    return f"{STANDARD_DATASTORES_PREFIX}/universes/{universe_id}/standard-datastores"


def entries_path(universe_id: int) -> str:
    """Path listing entry keys (store name and scope go in the query)."""
    return f"{data_stores_path(universe_id)}/datastore/entries"


def entry_path(universe_id: int) -> str:
    """Path of a single standard entry (store, scope and key go in the query)."""
    return f"{entries_path(universe_id)}/entry"


def entry_increment_path(universe_id: int) -> str:
    return f"{entry_path(universe_id)}/increment"


def entry_versions_path(universe_id: int) -> str:
    return f"{entry_path(universe_id)}/versions"


def entry_version_path(universe_id: int) -> str:
    return f"{entry_versions_path(universe_id)}/version"


def ordered_entries_path(universe_id: int, store_name: str, scope: str) -> str:
    """Path listing (GET) or creating (POST) ordered data store entries."""
    return (
        f"{ORDERED_DATASTORES_PREFIX}/universes/{universe_id}"
        f"/orderedDataStores/{_segment(store_name)}/scopes/{_segment(scope)}/entries"
    )


def resolve_entry_path(target: EntryTarget, universe_id: int, store_name: str, scope: str) -> str:
    """Resolve either entry target variant to the ordered entry request path.

    A RawEntryId is placed inside the given store; an EntryHandle already
    carries its full resource path.
    """
    if isinstance(target, RawEntryId):
        return f"{ordered_entries_path(universe_id, store_name, scope)}/{_segment(target.entry_id)}"
    if isinstance(target, EntryHandle):
        return f"{ORDERED_DATASTORES_PREFIX}/{target.path.lstrip('/')}"
    raise TypeError(f"Expected RawEntryId or EntryHandle, got {type(target).__name__}")


def topic_path(universe_id: int, topic: str) -> str:
    """Path publishing to a messaging topic."""
    return f"{MESSAGING_PREFIX}/universes/{universe_id}/topics/{_segment(topic)}"

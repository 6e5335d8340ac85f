"""Partial updates: apply a sparse patch on top of a previously fetched value.

The merged result is what entry wrappers resubmit to the "replace whole value"
write endpoint, so callers can change a few fields without resending the
complete record themselves.

Rules, applied recursively for every key of the patch:

- mapping over mapping: merged field by field
- list over list: kept if both serialize to the same canonical JSON,
  otherwise replaced wholesale (never merged element by element)
- anything else: replaced unless old and new are strictly equal
  (same type and same value). None is a real override.

Keys absent from the patch are left untouched, keys absent from the base are
added. Neither input is mutated and the result shares no mutable structure
with them.
"""

import copy
from collections.abc import Mapping
from typing import Any, Dict

from opencloud._internal.json_helpers import dumps_canonical
from opencloud.json_helpers import EntityValue, PartialEntityValue

_MISSING = object()


def merge(base: EntityValue, patch: PartialEntityValue) -> EntityValue:
    """Return a new value with patch applied on top of base.

    A patch that is not a mapping replaces the whole value. A mapping patch
    over a scalar or list base leaves it unchanged when empty, and otherwise
    replaces it with the patch applied to an empty mapping.
    """
    if not isinstance(patch, Mapping):
        return copy.deepcopy(patch)
    if not isinstance(base, Mapping):
        if not patch:
            return copy.deepcopy(base)
        base = {}

    result: Dict[str, Any] = copy.deepcopy(dict(base))
    _merge_into(result, patch)
    return result


def _merge_into(target: Dict[str, Any], patch: Mapping[str, Any]) -> None:
    """Apply patch onto target in place. target must be a private copy."""
    for key, new_value in patch.items():
        old_value = target.get(key, _MISSING)

        if isinstance(new_value, Mapping) and (
            old_value is _MISSING or isinstance(old_value, Mapping)
        ):
            nested: Dict[str, Any] = {} if old_value is _MISSING else dict(old_value)
            _merge_into(nested, new_value)
            target[key] = nested

        elif _is_sequence(old_value) and _is_sequence(new_value):
            if not _same_sequence(old_value, new_value):
                target[key] = copy.deepcopy(new_value)

        elif old_value is _MISSING or not _strictly_equal(old_value, new_value):
            target[key] = copy.deepcopy(new_value)


def _is_sequence(value: object) -> bool:
    return isinstance(value, (list, tuple))


def _same_sequence(old_value: Any, new_value: Any) -> bool:
    """Compare two sequences by canonical serialization.

    Mapping key order inside elements is ignored; element order is not.
    """
    try:
        return dumps_canonical(old_value) == dumps_canonical(new_value)
    except (TypeError, ValueError):
        # Not JSON-serializable
        return bool(old_value == new_value) and type(old_value) is type(new_value)


def _strictly_equal(old_value: object, new_value: object) -> bool:
    # bool is an int subclass, and 1 == 1.0; neither counts as unchanged
    return type(old_value) is type(new_value) and old_value == new_value

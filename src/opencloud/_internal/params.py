"""Query parameter serialization for request parameter dataclasses."""

import dataclasses
from typing import Dict, Optional, Union

QueryValue = Union[str, int, float, bool]

# Python field name -> API query name, where they differ
_QUERY_NAMES = {
    "all_scopes": "allScopes",
    "start_time": "startTime",
    "end_time": "endTime",
    "sort_order": "sortOrder",
    "match_version": "matchVersion",
    "exclusive_create": "exclusiveCreate",
}


def _format(value: QueryValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def query_from_values(values: Dict[str, Optional[QueryValue]]) -> Dict[str, str]:
    """Format query values, dropping None."""
    return {name: _format(value) for name, value in values.items() if value is not None}


def query_from_params(params: Optional[object], exclude: tuple[str, ...] = ()) -> Dict[str, str]:
    """Serialize a parameter dataclass to query parameters.

    None fields are omitted, booleans become 'true'/'false'.

    Args:
        params: Parameter dataclass instance (or None for no parameters)
        exclude: Field names handled separately by the caller (e.g. cursors)
    """
    if params is None:
        return {}
    if not dataclasses.is_dataclass(params) or isinstance(params, type):
        raise TypeError(f"Expected a parameter dataclass, got {type(params).__name__}")

    values: Dict[str, Optional[QueryValue]] = {}
    for field in dataclasses.fields(params):
        if field.name in exclude:
            continue
        values[_QUERY_NAMES.get(field.name, field.name)] = getattr(params, field.name)
    return query_from_values(values)

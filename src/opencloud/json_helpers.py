"""Public JSON type definitions for opencloud.

Only exports types that users need to annotate entry values and patches.
Internal helper functions are in opencloud._internal.json_helpers.
"""

from typing import Dict, List, Mapping, Union

# Represents any valid JSON value
JSONValue = Union[
    None,
    bool,
    int,
    float,
    str,
    List["JSONValue"],
    Dict[str, "JSONValue"],
]

# Full value stored in a standard data store entry
EntityValue = JSONValue

# Sparse override applied on top of an EntityValue.
# Nested mappings are sparse too; lists are atomic replacements.
PartialEntityValue = Union[JSONValue, Mapping[str, "PartialEntityValue"]]

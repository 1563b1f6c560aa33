"""Dot-path access into untyped JSON documents.

Paths are plain dot-separated keys (``"appDetails.problemStatement"``);
there is no array-index syntax. Lookups never raise: an unresolved path
yields the :data:`MISSING` sentinel, which is distinct from a stored JSON
``null`` (``None``).
"""

from typing import Any, Dict, List, Union

JSONValue = Union[None, bool, int, float, str, List["JSONValue"], Dict[str, "JSONValue"]]

PATH_SEPARATOR = "."


class _Missing:
    """Marker for a path that does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def split_path(path: str) -> List[str]:
    return path.split(PATH_SEPARATOR)


def get_nested_value(obj: Any, path: str) -> Any:
    """Read the value at ``path``.

    Args:
        obj: JSON object tree to read from
        path: Dot-separated key path

    Returns:
        The value found at the path (possibly ``None`` or a container),
        or ``MISSING`` when any segment is absent or not indexable.
    """
    current = obj
    for key in split_path(path):
        if not isinstance(current, dict) or key not in current:
            return MISSING
        current = current[key]
    return current


def set_nested_value(obj: Dict[str, JSONValue], path: str, value: JSONValue) -> Dict[str, JSONValue]:
    """Write ``value`` at ``path``, creating intermediate objects.

    Intermediate segments that are missing or hold a non-object value
    (scalar, list, null) are replaced by an empty dict. Siblings along the
    path are left untouched. ``obj`` is mutated in place and returned.
    """
    keys = split_path(path)
    current = obj

    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
    return obj

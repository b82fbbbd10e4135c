"""Access to nested dictionaries by dotted keys such as ``a.b.c``."""

from __future__ import annotations

from typing import Any


class KeyNotFoundError(LookupError):
    """Raised when a dotted key is not present."""

    def __init__(self, key: str = "") -> None:
        super().__init__(f"key not found: {key}" if key else "key not found")
        self.key = key


def _as_map(value: Any) -> dict:
    if isinstance(value, dict):
        return value
    raise TypeError(f"expected map but type is {value!r}")


def _find(data: dict, key: str, create_missing: bool) -> tuple[str, dict, Any, bool]:
    """Walk to the map holding the final part of the key.

    Returns the final key, the map holding it, its current value and whether
    it was present.
    """
    full_key = key
    while True:
        if key in data:
            return key, data, data[key], True
        head, dot, rest = key.partition(".")
        if not dot:
            return key, data, None, False
        if head not in data:
            if not create_missing:
                raise KeyNotFoundError(full_key)
            data[head] = {}
        data = _as_map(data[head])
        key = rest


def get_value(data: dict, key: str) -> Any:
    """Return the value at a dotted key."""
    _, _, value, present = _find(data, key, create_missing=False)
    if not present:
        raise KeyNotFoundError(key)
    return value


def put_value(data: dict, key: str, value: Any) -> Any:
    """Set the value at a dotted key, creating maps on the way; return the old value."""
    last, target, old, _ = _find(data, key, create_missing=True)
    target[last] = value
    return old


def delete_value(data: dict, key: str) -> None:
    """Remove the value at a dotted key."""
    last, target, _, present = _find(data, key, create_missing=False)
    if not present:
        raise KeyNotFoundError(key)
    del target[last]


def flatten(data: dict) -> dict:
    """Return a flat dictionary whose keys are the dotted paths to the leaves."""
    out: dict = {}

    def visit(prefix: str, mapping: dict) -> None:
        for key, value in mapping.items():
            full_key = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, dict):
                visit(full_key, value)
            else:
                out[full_key] = value

    visit("", data)
    return out
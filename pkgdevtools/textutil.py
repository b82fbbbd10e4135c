"""Small helpers for file names and string lists."""

from __future__ import annotations

from typing import Iterable


def split_filename_ext(path: str) -> tuple[str, str]:
    """Split the last path element into its name and its extension."""
    file_name = path.rsplit("/", 1)[-1]
    name, dot, ext = file_name.rpartition(".")
    if not dot:
        raise ValueError("filename doesn't have an extension")
    return name, ext


def unique_string_values(values: Iterable[str]) -> list[str]:
    """Return the values without repeats, keeping the order of first occurrence."""
    return list(dict.fromkeys(values))
"""Reading the parts of a package manifest that CI checks need."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


class ManifestError(Exception):
    """Raised when a package manifest cannot be read or understood."""


@dataclass(frozen=True)
class PackageManifest:
    """Name, licence and stack conditions of a package."""

    name: str = ""
    license: str = ""
    kibana_version: str = ""
    elastic_subscription: str = ""


def _merge(target: dict, source: dict) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


def _expand_dotted(value: Any) -> Any:
    """Turn keys such as ``kibana.version`` into nested mappings."""
    if isinstance(value, list):
        return [_expand_dotted(item) for item in value]
    if not isinstance(value, dict):
        return value
    result: dict = {}
    for key, item in value.items():
        *parents, last = str(key).split(".")
        target = result
        for parent in parents:
            child = target.get(parent)
            if not isinstance(child, dict):
                child = target[parent] = {}
            target = child
        item = _expand_dotted(item)
        if isinstance(item, dict) and isinstance(target.get(last), dict):
            _merge(target[last], item)
        else:
            target[last] = item
    return result


def _mapping(value: Any, where: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestError(f"expected a mapping at {where!r}")
    return value


def _string(value: Any, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ManifestError(f"expected a string at {where!r}")


def read_package_manifest(path: str | Path) -> PackageManifest:
    """Read a manifest file, accepting both nested and dotted keys."""
    try:
        with open(path, encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as err:
        raise ManifestError(f"reading file failed (path: {path}): {err}") from err

    try:
        root = _mapping(_expand_dotted(raw), "")
        conditions = _mapping(root.get("conditions"), "conditions")
        kibana = _mapping(conditions.get("kibana"), "conditions.kibana")
        elastic = _mapping(conditions.get("elastic"), "conditions.elastic")
        return PackageManifest(
            name=_string(root.get("name"), "name"),
            license=_string(root.get("license"), "license"),
            kibana_version=_string(kibana.get("version"), "conditions.kibana.version"),
            elastic_subscription=_string(
                elastic.get("subscription"), "conditions.elastic.subscription"
            ),
        )
    except ManifestError as err:
        raise ManifestError(f"unpacking package manifest failed (path: {path}): {err}") from err
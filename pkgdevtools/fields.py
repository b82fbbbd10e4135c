"""Field definitions of packages: loading, filtering and stripping them."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Iterable

import yaml


class FieldsError(Exception):
    """Raised when a fields file cannot be read or parsed."""


def _as_str(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        raise FieldsError(f"expected a string for {key!r}")
    return str(value)


def _as_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldsError(f"expected an integer for {key!r}")
    return value


def _as_bool(value: Any, key: str) -> bool | None:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise FieldsError(f"expected a boolean for {key!r}")
    return value


def _as_list(value: Any, key: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise FieldsError(f"expected a sequence for {key!r}")
    return value


def _as_mapping(value: Any) -> dict:
    if not isinstance(value, dict):
        raise FieldsError(f"expected a mapping but got {value!r}")
    return value


@dataclasses.dataclass
class MultiFieldDefinition:
    """An additional mapping of a field under another name."""

    name: str = ""
    type: str = ""
    norms: bool | None = None
    default_field: bool | None = None

    @classmethod
    def from_mapping(cls, raw: Any) -> MultiFieldDefinition:
        raw = _as_mapping(raw)
        return cls(
            name=_as_str(raw.get("name"), "name"),
            type=_as_str(raw.get("type"), "type"),
            norms=_as_bool(raw.get("norms"), "norms"),
            default_field=_as_bool(raw.get("default_field"), "default_field"),
        )

    def to_dict(self) -> dict:
        """Return the definition as a mapping, leaving out empty values."""
        items = {
            "name": self.name,
            "type": self.type,
            "norms": self.norms,
            "default_field": self.default_field,
        }
        return {key: value for key, value in items.items() if value not in ("", None)}


_STRING_KEYS = (
    "name", "key", "title", "level", "type", "format",
    "description", "release", "alias", "path", "footnote",
)
_OUTPUT_ORDER = (
    "name", "key", "title", "group", "level", "required", "type", "format",
    "description", "release", "alias", "path", "footnote", "ignore_above",
    "multi_fields", "fields", "migration",
)


@dataclasses.dataclass
class FieldDefinition:
    """One field, or a group of fields, of a fields file."""

    name: str = ""
    key: str = ""
    title: str = ""
    group: int | None = None
    level: str = ""
    required: bool | None = None
    type: str = ""
    format: str = ""
    description: str = ""
    release: str = ""
    alias: str = ""
    path: str = ""
    footnote: str = ""
    ignore_above: int | None = None
    multi_fields: list[MultiFieldDefinition] = dataclasses.field(default_factory=list)
    fields: list[FieldDefinition] = dataclasses.field(default_factory=list)
    migration: bool | None = None
    skipped: bool = dataclasses.field(default=False, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, raw: Any) -> FieldDefinition:
        raw = _as_mapping(raw)
        values: dict[str, Any] = {key: _as_str(raw.get(key), key) for key in _STRING_KEYS}
        return cls(
            **values,
            group=_as_int(raw.get("group"), "group"),
            required=_as_bool(raw.get("required"), "required"),
            ignore_above=_as_int(raw.get("ignore_above"), "ignore_above"),
            multi_fields=[
                MultiFieldDefinition.from_mapping(item)
                for item in _as_list(raw.get("multi_fields"), "multi_fields")
            ],
            fields=parse_fields(raw.get("fields")),
            migration=_as_bool(raw.get("migration"), "migration"),
        )

    def to_dict(self) -> dict:
        """Return the definition as a mapping, leaving out empty values."""
        result: dict[str, Any] = {}
        for key in _OUTPUT_ORDER:
            value = getattr(self, key)
            if key == "multi_fields":
                value = [item.to_dict() for item in value]
            elif key == "fields":
                value = [item.to_dict() for item in value]
            if value in ("", None, []):
                continue
            result[key] = value
        return result


def parse_fields(data: Any) -> list[FieldDefinition]:
    """Build field definitions from a parsed YAML sequence."""
    return [FieldDefinition.from_mapping(item) for item in _as_list(data, "fields")]


def collect_field_names(name_prefix: str, field: FieldDefinition) -> list[str]:
    """Return the dotted names of the leaves below a field."""
    name = f"{name_prefix}.{field.name}" if name_prefix else field.name
    if not field.fields:
        return [name]
    return [found for child in field.fields for found in collect_field_names(name, child)]


def field_names(fields: Iterable[FieldDefinition]) -> list[str]:
    """Return the dotted names of all leaves of the given fields."""
    return [name for field in fields for name in collect_field_names("", field)]


def stripped(fields: Iterable[FieldDefinition]) -> list[FieldDefinition]:
    """Return copies of the fields with the descriptions of groups removed."""
    return [
        dataclasses.replace(
            field,
            description="" if field.type == "group" else field.description,
            fields=stripped(field.fields),
        )
        for field in fields
    ]


def _with_defaults(fields: Iterable[FieldDefinition]) -> list[FieldDefinition]:
    return [
        dataclasses.replace(
            field, type=field.type or "keyword", fields=_with_defaults(field.fields)
        )
        for field in fields
    ]


def load_fields_file(path: str | Path) -> list[FieldDefinition]:
    """Load a fields file; a missing file yields no fields."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as err:
        raise FieldsError(f"reading fields failed (path: {path}): {err}") from err

    try:
        fields = parse_fields(yaml.safe_load(text))
    except (yaml.YAMLError, FieldsError) as err:
        raise FieldsError(f"unmarshalling fields file failed (path: {path}): {err}") from err
    return _with_defaults(fields)


def load_ecs_fields(ecs_dir: str | Path) -> list[FieldDefinition]:
    """Load the ECS field definitions below their single root field."""
    roots = load_fields_file(Path(ecs_dir) / "generated" / "beats" / "fields.ecs.yml")
    if len(roots) != 1:
        return []
    return list(roots[0].fields)


def load_module_fields(module_path: str | Path) -> tuple[list[FieldDefinition], str]:
    """Load a module's fields and title, adding fields from ``fields.epr.yml``."""
    meta = Path(module_path) / "_meta"
    roots = load_fields_file(meta / "fields.yml")
    if len(roots) != 1:
        return [], ""
    title = roots[0].title
    extra = load_fields_file(meta / "fields.epr.yml")
    return [*roots[0].fields, *extra], title


def load_data_stream_fields(
    module_path: str | Path, module_name: str, data_stream_name: str
) -> list[FieldDefinition]:
    """Load a data stream's fields, prefixing top-level names with the module name."""
    meta = Path(module_path) / data_stream_name / "_meta"
    fields = [
        dataclasses.replace(field, name=f"{module_name}.{field.name}")
        for field in load_fields_file(meta / "fields.yml")
    ]
    return [*fields, *load_fields_file(meta / "fields.epr.yml")]


def _filter_migrated(
    field: FieldDefinition, ecs_names: set[str], found: list[str]
) -> FieldDefinition:
    if not field.fields:
        if field.type != "alias":
            return field
        skipped = field.skipped or bool(field.migration)
        if field.path in ecs_names:
            found.append(field.path)
            skipped = True
        return dataclasses.replace(field, skipped=skipped)

    children = (_filter_migrated(child, ecs_names, found) for child in field.fields)
    return dataclasses.replace(field, fields=[child for child in children if not child.skipped])


def filter_migrated_fields(
    fields: Iterable[FieldDefinition], ecs_field_names: Iterable[str]
) -> tuple[list[FieldDefinition], list[str]]:
    """Drop aliases marked as migrated or pointing at ECS fields.

    Returns the filtered fields and the ECS field names the dropped aliases
    pointed at.
    """
    ecs_names = set(ecs_field_names)
    found: list[str] = []
    filtered = [_filter_migrated(field, ecs_names, found) for field in fields]
    return filtered, found


def _visit_ecs(
    name_prefix: str, field: FieldDefinition, names: set[str]
) -> tuple[FieldDefinition, bool]:
    name = f"{name_prefix}.{field.name}" if name_prefix else field.name
    if not field.fields and field.type != "group":
        return field, name in names

    kept = []
    for child in field.fields:
        visited, checked = _visit_ecs(name, child, names)
        if checked:
            kept.append(visited)
    return dataclasses.replace(field, fields=kept), bool(kept)


def filter_ecs_fields(
    ecs_fields: Iterable[FieldDefinition], filtered_names: Iterable[str]
) -> list[FieldDefinition]:
    """Keep only the ECS fields, and the groups holding them, whose names are given."""
    names = set(filtered_names)
    result = []
    for field in ecs_fields:
        visited, checked = _visit_ecs("", field, names)
        if checked:
            result.append(visited)
    return result


def is_package_fields(file_name: str) -> bool:
    """Tell whether the file name is that of the package-level fields file."""
    return file_name == "package-fields.yml"


def base_fields() -> list[FieldDefinition]:
    """Return the fields every data stream has."""
    return [
        FieldDefinition(
            name="data_stream.type", type="constant_keyword", description="Data stream type."
        ),
        FieldDefinition(
            name="data_stream.dataset",
            type="constant_keyword",
            description="Data stream dataset.",
        ),
        FieldDefinition(
            name="data_stream.namespace",
            type="constant_keyword",
            description="Data stream namespace.",
        ),
        FieldDefinition(name="@timestamp", type="date", description="Event timestamp."),
    ]
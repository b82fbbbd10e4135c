"""Documentation of packages: README templates and tables of exported fields."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from .fields import FieldDefinition


@dataclass(frozen=True)
class FieldsTableRecord:
    """One row of the exported fields table."""

    name: str
    description: str
    type: str


@dataclass(frozen=True)
class DocContent:
    """A documentation file and the template it is rendered from, if any."""

    file_name: str
    template_path: str


def create_doc_templates(package_docs_path: str | Path) -> list[DocContent]:
    """Return the README document, with its template if the package has one."""
    readme_path = Path(package_docs_path) / "README.md"
    template_path = str(readme_path) if readme_path.exists() else ""
    return [DocContent(file_name="README.md", template_path=template_path)]


def render_exported_fields(
    data_stream: str,
    fields_by_data_stream: Mapping[str, Mapping[str, Iterable[FieldDefinition]]],
) -> str:
    """Render the Markdown table of fields that a data stream exports."""
    if data_stream not in fields_by_data_stream:
        raise KeyError(f"missing dataStream: {data_stream}")

    records = collect_fields(fields_by_data_stream[data_stream])
    lines = ["**Exported fields**", ""]
    if not records:
        lines.append("(no fields available)")
        return "\n".join(lines)

    lines.append("| Field | Description | Type |")
    lines.append("|---|---|---|")
    for record in records:
        description = record.description.replace("\n", " ").strip()
        lines.append(f"| {record.name} | {description} | {record.type} |")
    return "\n".join(lines) + "\n"


def collect_fields(files: Mapping[str, Iterable[FieldDefinition]]) -> list[FieldsTableRecord]:
    """Collect the leaf fields of all files, sorted by name and without repeats."""
    records = [record for fields in files.values() for record in collect_fields_from_file(fields)]
    records.sort(key=lambda record: record.name)
    unique: dict[str, FieldsTableRecord] = {}
    for record in records:
        unique.setdefault(record.name, record)
    return list(unique.values())


def _visit(name_prefix: str, field: FieldDefinition) -> list[FieldsTableRecord]:
    name = f"{name_prefix}.{field.name}" if name_prefix else field.name
    if not field.fields and field.type != "group":
        return [FieldsTableRecord(name=name, description=field.description, type=field.type)]
    return [record for child in field.fields for record in _visit(name, child)]


def collect_fields_from_file(fields: Iterable[FieldDefinition]) -> list[FieldsTableRecord]:
    """Return the leaf fields of one fields file with their dotted names."""
    return [record for field in fields for record in _visit("", field)]
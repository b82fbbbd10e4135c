import pytest

from pkgdevtools.docs import (
    DocContent,
    FieldsTableRecord,
    collect_fields,
    collect_fields_from_file,
    create_doc_templates,
    render_exported_fields,
)
from pkgdevtools.fields import FieldDefinition


def _group():
    return FieldDefinition(
        name="nginx",
        type="group",
        fields=[
            FieldDefinition(name="status", type="keyword", description="The status."),
            FieldDefinition(name="empty", type="group"),
        ],
    )


def test_create_doc_templates_without_readme(tmp_path):
    assert create_doc_templates(tmp_path) == [DocContent("README.md", "")]


def test_create_doc_templates_with_readme(tmp_path):
    readme = tmp_path / "README.md"
    readme.write_text("docs")
    assert create_doc_templates(tmp_path) == [DocContent("README.md", str(readme))]


def test_collect_fields_from_file_flattens_names():
    assert collect_fields_from_file([_group()]) == [
        FieldsTableRecord("nginx.status", "The status.", "keyword")
    ]


def test_collect_fields_sorted_and_unique():
    files = {
        "b.yml": [FieldDefinition(name="zeta", type="long"), FieldDefinition(name="alpha", type="long")],
        "a.yml": [FieldDefinition(name="alpha", type="keyword")],
    }
    records = collect_fields(files)
    names = [record.name for record in records]
    assert names == sorted(names)
    assert len(names) == len(set(names))
    assert set(names) == {"alpha", "zeta"}


def test_render_no_fields():
    result = render_exported_fields("ds", {"ds": {"fields.yml": []}})
    assert result == "**Exported fields**\n\n(no fields available)"


def test_render_table():
    fields = [FieldDefinition(name="message", type="text", description="line one\nline two")]
    result = render_exported_fields("ds", {"ds": {"fields.yml": fields}})
    lines = result.splitlines()
    assert lines[0] == "**Exported fields**"
    assert lines[2] == "| Field | Description | Type |"
    assert "| message | line one line two | text |" in lines


def test_render_missing_data_stream():
    with pytest.raises(KeyError):
        render_exported_fields("other", {"ds": {}})
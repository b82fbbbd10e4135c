import pytest

from pkgdevtools.manifest import ManifestError, PackageManifest, read_package_manifest


def _write(tmp_path, contents):
    path = tmp_path / "manifest.yml"
    path.write_text(contents, encoding="utf-8")
    return path


def test_nested_conditions(tmp_path):
    path = _write(
        tmp_path,
        'name: "stack"\nlicense: basic\nconditions:\n  kibana:\n    version: "^8.0.0"\n'
        "  elastic:\n    subscription: platinum\n",
    )
    manifest = read_package_manifest(path)
    assert manifest == PackageManifest(
        name="stack", license="basic", kibana_version="^8.0.0", elastic_subscription="platinum"
    )


def test_dotted_conditions_match_nested(tmp_path):
    nested = read_package_manifest(
        _write(tmp_path, 'name: "x"\nconditions:\n  kibana:\n    version: "^8.0.0"\n')
    )
    dotted = read_package_manifest(
        _write(tmp_path, 'name: "x"\nconditions:\n  kibana.version: "^8.0.0"\n')
    )
    fully_dotted = read_package_manifest(
        _write(tmp_path, 'name: "x"\nconditions.kibana.version: "^8.0.0"\n')
    )
    assert nested == dotted == fully_dotted


def test_dotted_and_nested_keys_merge(tmp_path):
    manifest = read_package_manifest(
        _write(
            tmp_path,
            "conditions:\n  kibana.version: '^9.0.0'\n  elastic:\n    subscription: gold\n",
        )
    )
    assert manifest.kibana_version == "^9.0.0"
    assert manifest.elastic_subscription == "gold"


def test_missing_fields_default_to_empty(tmp_path):
    manifest = read_package_manifest(_write(tmp_path, 'name: "version"\n'))
    assert manifest == PackageManifest(name="version")


def test_empty_file(tmp_path):
    assert read_package_manifest(_write(tmp_path, "")) == PackageManifest()


def test_missing_file(tmp_path):
    with pytest.raises(ManifestError):
        read_package_manifest(tmp_path / "absent.yml")


def test_root_not_a_mapping(tmp_path):
    with pytest.raises(ManifestError):
        read_package_manifest(_write(tmp_path, "- a\n- b\n"))


def test_mapping_where_string_expected(tmp_path):
    with pytest.raises(ManifestError):
        read_package_manifest(_write(tmp_path, "name:\n  nested: value\n"))


def test_invalid_yaml(tmp_path):
    with pytest.raises(ManifestError):
        read_package_manifest(_write(tmp_path, "name: [unclosed\n"))
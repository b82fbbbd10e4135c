import pytest

from pkgdevtools.textutil import split_filename_ext, unique_string_values


def test_split_with_directories():
    assert split_filename_ext("ingest/pipeline-entry.json") == ("pipeline-entry", "json")


def test_split_uses_last_dot():
    name, ext = split_filename_ext("a.b/stream.yml.hbs")
    assert (name, ext) == ("stream.yml", "hbs")


def test_split_round_trip():
    for file_name in ["default.yml", "x.y.z", ".hidden"]:
        name, ext = split_filename_ext(file_name)
        assert f"{name}.{ext}" == file_name


def test_split_without_extension():
    with pytest.raises(ValueError):
        split_filename_ext("dir.d/README")


def test_unique_preserves_first_order():
    values = ["b", "a", "b", "c", "a"]
    result = unique_string_values(values)
    assert result == ["b", "a", "c"]
    assert set(result) == set(values)


def test_unique_of_empty():
    assert unique_string_values([]) == []


def test_unique_is_idempotent():
    once = unique_string_values(["x", "y", "x"])
    assert unique_string_values(once) == once
import pytest

from pkgdevtools.mapstr import KeyNotFoundError, delete_value, flatten, get_value, put_value


def test_get_nested_value():
    data = {"attributes": {"visState": {"title": "t"}}}
    assert get_value(data, "attributes.visState.title") == "t"
    assert get_value(data, "attributes.visState") == {"title": "t"}


def test_get_prefers_literal_dotted_key():
    data = {"a.b": 1, "a": {"b": 2}}
    assert get_value(data, "a.b") == 1


def test_get_missing_key():
    with pytest.raises(KeyNotFoundError):
        get_value({"a": {}}, "a.b")
    with pytest.raises(KeyNotFoundError):
        get_value({}, "x.y")


def test_get_through_non_map():
    with pytest.raises(TypeError):
        get_value({"a": 5}, "a.b")


def test_put_creates_intermediate_maps():
    data = {}
    assert put_value(data, "meta.key", "query") is None
    assert data == {"meta": {"key": "query"}}


def test_put_returns_old_value_and_replaces():
    data = {"meta": {"key": "event.module"}}
    assert put_value(data, "meta.key", "query") == "event.module"
    assert get_value(data, "meta.key") == "query"


def test_put_through_non_map():
    with pytest.raises(TypeError):
        put_value({"a": [1]}, "a.b", 2)


def test_delete_value():
    data = {"meta": {"params": {"x": 1}, "key": "k"}}
    delete_value(data, "meta.params")
    assert data == {"meta": {"key": "k"}}


def test_delete_missing():
    with pytest.raises(KeyNotFoundError):
        delete_value({"meta": {}}, "meta.params")


def test_flatten_example():
    assert flatten({"hello": {"world": "test"}}) == {"hello.world": "test"}


def test_flatten_keeps_leaves_reachable():
    data = {"a": {"b": {"c": 1}, "d": [1, 2]}, "e": None}
    flat = flatten(data)
    assert all(get_value(data, key) == value for key, value in flat.items())
    assert sorted(flat) == ["a.b.c", "a.d", "e"]
"""Conversion of Kibana saved objects from beat modules into package assets."""

from __future__ import annotations

import base64
import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator

from .mapstr import KeyNotFoundError, delete_value, get_value, put_value

ENCODED_FIELDS = (
    "attributes.kibanaSavedObjectMeta.searchSourceJSON",
    "attributes.layerListJSON",
    "attributes.mapStateJSON",
    "attributes.optionsJSON",
    "attributes.panelsJSON",
    "attributes.uiStateJSON",
    "attributes.visState",
)

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)

KibanaFiles = dict[str, dict[str, bytes]]


class KibanaError(Exception):
    """Raised when a Kibana object cannot be read, migrated or converted."""


def _dumps(value: Any, indent: int | None = None) -> str:
    if indent is None:
        text = json.dumps(value, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    else:
        text = json.dumps(value, sort_keys=True, ensure_ascii=False, indent=indent)
    for char, escaped in _JSON_ESCAPES:
        text = text.replace(char, escaped)
    return text


def _loads(data: bytes | str, what: str) -> Any:
    try:
        return json.loads(data)
    except ValueError as err:
        raise KibanaError(f"unmarshalling {what} failed: {err}") from err


def _lookup(obj: dict, key: str) -> Any:
    """Return the value at a dotted key; a missing key raises KeyNotFoundError."""
    try:
        return get_value(obj, key)
    except TypeError as err:
        raise KibanaError(f"retrieving value failed (key: {key}): {err}") from err


def _put(obj: dict, key: str, value: Any) -> None:
    try:
        put_value(obj, key, value)
    except (TypeError, KeyNotFoundError) as err:
        raise KibanaError(f"putting value failed (key: {key}): {err}") from err


def _delete(obj: dict, key: str) -> None:
    try:
        delete_value(obj, key)
    except (TypeError, KeyNotFoundError) as err:
        raise KibanaError(f"removing field {key} failed: {err}") from err


def _string_at(obj: dict, key: str, what: str) -> str:
    try:
        value = _lookup(obj, key)
    except KeyNotFoundError as err:
        raise KibanaError(f"retrieving {what} failed: {err}") from err
    if not isinstance(value, str):
        raise KibanaError(f"expected {what} to be a string")
    return value


@dataclass
class KibanaMigrator:
    """Connection settings of the Kibana instance that migrates old dashboards."""

    host_port: str = "http://localhost:5601"
    username: str = ""
    password: str = ""
    skip_kibana: bool = False

    def migrate_dashboard_file(
        self, dashboard_file: bytes, module_name: str, data_stream_names: Iterable[str]
    ) -> bytes:
        """Import a dashboard file into Kibana and return the saved objects it answers with."""
        request = urllib.request.Request(
            f"{self.host_port}/api/kibana/dashboards/import?force=true",
            data=dashboard_file,
            method="POST",
        )
        request.add_header("kbn-xsrf", "8.0.0")
        if self.username:
            credentials = f"{self.username}:{self.password}".encode()
            request.add_header("Authorization", "Basic " + base64.b64encode(credentials).decode())
        try:
            with urllib.request.urlopen(request) as response:
                status = response.status
                saved = response.read()
        except urllib.error.HTTPError as err:
            body = err.read().decode("utf-8", errors="replace")
            raise KibanaError(f"making POST request failed: {body}") from err
        except (urllib.error.URLError, OSError) as err:
            raise KibanaError(f"making POST request to Kibana failed: {err}") from err
        if status != 200:
            raise KibanaError(f"making POST request failed: {saved.decode('utf-8', errors='replace')}")
        return saved


def encode_fields(obj: dict) -> dict:
    """Serialize the known JSON-in-string attributes that are not strings yet."""
    for field in ENCODED_FIELDS:
        try:
            value = _lookup(obj, field)
        except KeyNotFoundError:
            continue
        if isinstance(value, str):
            continue
        _put(obj, field, _dumps(value))
    return obj


def decode_fields(obj: dict) -> dict:
    """Parse the known JSON-in-string attributes into objects or lists of objects."""
    for field in ENCODED_FIELDS:
        try:
            value = _lookup(obj, field)
        except KeyNotFoundError:
            continue
        if not isinstance(value, str):
            raise KibanaError(f"expected value to be a string (key: {field})")
        try:
            decoded = json.loads(value)
        except ValueError as err:
            raise KibanaError(f"unmarshalling value failed (key: {field}): {err}") from err
        valid = decoded is None or isinstance(decoded, dict) or (
            isinstance(decoded, list)
            and all(item is None or isinstance(item, dict) for item in decoded)
        )
        if not valid:
            raise KibanaError(f"unmarshalling value failed (key: {field}): not an object")
        _put(obj, field, decoded)
    return obj


def prepare_dashboard_file(dashboard_file: bytes) -> tuple[bytes, bool]:
    """Rename beat indices and encode fields; tell whether Kibana must migrate the file."""
    dashboard_file = dashboard_file.replace(b"metricbeat-*", b"metrics-*")
    dashboard_file = dashboard_file.replace(b"filebeat-*", b"logs-*")

    document = _loads(dashboard_file, "dashboard file")
    if not isinstance(document, dict):
        raise KibanaError("unmarshalling dashboard file failed: not an object")
    objects = document.get("objects")
    if objects is None:
        objects = []
    if not isinstance(objects, list) or not all(
        item is None or isinstance(item, dict) for item in objects
    ):
        raise KibanaError("unmarshalling dashboard file failed: objects is not a list of objects")
    version = document.get("version")
    if version is None:
        version = ""
    if not isinstance(version, str):
        raise KibanaError("unmarshalling dashboard file failed: version is not a string")

    if not objects:
        # A single saved object needs no migration.
        return _dumps(encode_fields(document)).encode("utf-8"), False

    encoded = [None if item is None else encode_fields(item) for item in objects]
    return _dumps({"objects": encoded, "version": version}).encode("utf-8"), True


def _walk_files(root: Path) -> Iterator[Path]:
    if not root.exists():
        return
    if not root.is_dir():
        yield root
        return
    for entry in sorted(root.iterdir(), key=lambda item: item.name):
        yield from _walk_files(entry)


def create_kibana_content(
    migrator: KibanaMigrator,
    module_path: str | Path,
    module_name: str,
    data_stream_names: Iterable[str],
) -> KibanaFiles:
    """Convert a module's Kibana objects; return file contents per object type."""
    if migrator.skip_kibana:
        return {}

    data_stream_names = list(data_stream_names)
    files: KibanaFiles = {}
    dashboard_ids: dict[str, str] = {}
    for path in _walk_files(Path(module_path) / "_meta" / "kibana" / "7"):
        try:
            extracted, id_map = extract_kibana_object(migrator, path, module_name, data_stream_names)
        except KibanaError as err:
            raise KibanaError(f"converting kibana file: {err}") from err
        dashboard_ids.update(id_map)
        for object_type, objects in extracted.items():
            target = files.setdefault(object_type, {})
            for name, data in objects.items():
                target[replace_blacklisted_words(name.encode()).decode()] = data

    for objects in files.values():
        for name, data in objects.items():
            for orig_id, new_id in dashboard_ids.items():
                data = update_dashboard_links(data, orig_id, new_id)
            objects[name] = data
    return files


def extract_kibana_object(
    migrator: KibanaMigrator,
    path: str | Path,
    module_name: str,
    data_stream_names: Iterable[str],
) -> tuple[KibanaFiles, dict[str, str]]:
    """Read and convert one Kibana file, migrating it through Kibana if needed."""
    try:
        dashboard_file = Path(path).read_bytes()
    except OSError as err:
        raise KibanaError(f"reading dashboard file failed (path: {path}): {err}") from err

    try:
        prepared, needs_migration = prepare_dashboard_file(dashboard_file)
    except KibanaError as err:
        raise KibanaError(f"preparing file failed: {err}") from err

    data_stream_names = list(data_stream_names)
    if needs_migration:
        try:
            migrated = migrator.migrate_dashboard_file(prepared, module_name, data_stream_names)
        except KibanaError as err:
            raise KibanaError(f"migrating dashboard file failed (path: {path}): {err}") from err
        return convert_to_kibana_objects(migrated, module_name, data_stream_names)
    return convert_single_object(prepared, module_name, data_stream_names)


def convert_to_kibana_objects(
    dashboard_file: bytes, module_name: str, data_stream_names: Iterable[str]
) -> tuple[KibanaFiles, dict[str, str]]:
    """Convert the objects of a migrated dashboard file."""
    document = _loads(dashboard_file, "migrated dashboard file")
    if not isinstance(document, dict):
        raise KibanaError("unmarshalling migrated dashboard file failed: not an object")
    objects = document.get("objects") or []
    if not isinstance(objects, list) or not all(isinstance(item, dict) for item in objects):
        raise KibanaError("unmarshalling migrated dashboard file failed: bad objects")
    return migrate_kibana_objects(objects, module_name, data_stream_names)


def convert_single_object(
    object_file: bytes, module_name: str, data_stream_names: Iterable[str]
) -> tuple[KibanaFiles, dict[str, str]]:
    """Convert a file holding a single saved object."""
    obj = _loads(object_file, "saved object file")
    if not isinstance(obj, dict):
        raise KibanaError("unmarshalling saved object file failed: not an object")
    return migrate_kibana_objects([obj], module_name, data_stream_names)


def migrate_kibana_objects(
    objects: Iterable[dict], module_name: str, data_stream_names: Iterable[str]
) -> tuple[KibanaFiles, dict[str, str]]:
    """Migrate objects; return file contents per type and the map of old to new IDs."""
    data_stream_names = list(data_stream_names)
    extracted: KibanaFiles = {}
    id_map: dict[str, str] = {}
    for obj in objects:
        object_type = _string_at(obj, "type", "type")
        orig_id = _string_at(obj, "id", "id")
        data, new_id = migrate_object(obj, module_name, data_stream_names)
        id_map[orig_id] = new_id
        extracted.setdefault(object_type, {})[new_id + ".json"] = data
    return extracted, id_map


def migrate_object(
    obj: dict, module_name: str, data_stream_names: Iterable[str]
) -> tuple[bytes, str]:
    """Turn one saved object into package form; return its JSON and its new ID."""
    _delete(obj, "updated_at")
    _delete(obj, "version")
    obj = decode_fields(obj)
    obj = strip_references_to_event_module(obj, module_name, data_stream_names)

    new_id = update_object_id(_string_at(obj, "id", "id"), module_name)
    _put(obj, "id", new_id)

    try:
        references = _lookup(obj, "references")
    except KeyNotFoundError as err:
        raise KibanaError(f"retrieving references failed: {err}") from err
    if not isinstance(references, list):
        raise KibanaError("expected references to be an array of objects")
    for reference in references:
        if not isinstance(reference, dict):
            raise KibanaError("expected reference to be an object")
        if _string_at(reference, "type", "reference type") == "index-pattern":
            continue
        ref_id = _string_at(reference, "id", "reference id")
        _put(reference, "id", update_object_id(ref_id, module_name))

    data = _dumps(obj, indent=4).encode("utf-8")
    data = replace_field_event_dataset_with_data_stream_dataset(data)
    data = replace_blacklisted_words(data)
    data = remove_ecs_textual_suffixes(data)
    try:
        verify_kibana_object_conversion(data)
    except KibanaError as err:
        raise KibanaError(f"Kibana object conversion failed: {err}") from err
    return data, new_id


def strip_references_to_event_module(
    obj: dict, module_name: str, data_stream_names: Iterable[str]
) -> dict:
    """Replace filters and queries on event.module with ones on data_stream.dataset."""
    data_stream_names = list(data_stream_names)
    _strip_in_filter(obj, "attributes.kibanaSavedObjectMeta.searchSourceJSON.filter", module_name)
    _strip_in_query(
        obj, "attributes.kibanaSavedObjectMeta.searchSourceJSON.query", module_name, data_stream_names
    )
    _strip_in_query(obj, "attributes.visState.params.filter", module_name, data_stream_names)
    return obj


def _strip_in_filter(obj: dict, filter_key: str, module_name: str) -> None:
    try:
        filters = _lookup(obj, filter_key)
    except KeyNotFoundError:
        return
    if not isinstance(filters, list) or not filters:
        return

    updated = []
    for item in filters:
        if not isinstance(item, dict):
            raise KibanaError(f"converting to mapstr failed: expected map but type is {item!r}")
        try:
            meta_key = _lookup(item, "meta.key")
        except KeyNotFoundError as err:
            raise KibanaError(f"retrieving meta.key failed: {err}") from err
        if meta_key == "event.module":
            _put(item, "meta.key", "query")
            _put(item, "meta.type", "custom")
            _put(item, "meta.value", f'{{"prefix":{{"data_stream.dataset":"{module_name}."}}}}')
            _delete(item, "meta.params")
            _put(item, "query", {"prefix": {"data_stream.dataset": module_name + "."}})
        updated.append(item)
    _put(obj, filter_key, updated)


def _strip_in_query(
    obj: dict, object_key: str, module_name: str, data_stream_names: list[str]
) -> None:
    try:
        value = get_value(obj, object_key)
    except (KeyNotFoundError, TypeError):
        return
    if not isinstance(value, dict):
        return

    query_key = object_key + ".query"
    try:
        query = _lookup(obj, query_key)
    except KeyNotFoundError:
        return
    if not isinstance(query, str) or not query:
        return

    query = query.replace(": ", ":").replace(" :", ":").replace('"', "")
    module_term = "event.module:" + module_name
    if module_term in query and ("metricset.name:" in query or "fileset.name:" in query):
        dataset = f"data_stream.dataset:{module_name}."
        query = query.replace(module_term, "")
        query = query.replace("metricset.name:", dataset).replace("fileset.name:", dataset)
        query = query.strip()
        if query.startswith("AND "):
            query = query[4:]
        _put(obj, query_key, query)
    elif module_term in query:
        alternatives = " OR ".join(
            f"data_stream.dataset:{module_name}.{name}" for name in data_stream_names
        )
        query = query.replace(module_term, f" ({alternatives}) ").strip()
        _put(obj, query_key, query)
        _put(obj, object_key + ".language", "kuery")


def replace_field_event_dataset_with_data_stream_dataset(data: bytes) -> bytes:
    """Rename the event.dataset field to data_stream.dataset."""
    return data.replace(b"event.dataset", b"data_stream.dataset")


def replace_blacklisted_words(data: bytes) -> bytes:
    """Replace beat and module wording with integration wording."""
    for old, new in (
        (b"Metricbeat", b"Metrics"),
        (b"metricbeat", b"metrics"),
        (b"Filebeat", b"Logs"),
        (b"filebeat", b"logs"),
        (b"Module", b"Integration"),
        (b"module", b"integration"),
    ):
        data = data.replace(old, new)
    return data


def update_dashboard_links(data: bytes, orig_id: str, new_id: str) -> bytes:
    """Point dashboard links at the new dashboard ID."""
    return data.replace(f"#/dashboard/{orig_id}".encode(), f"#/dashboard/{new_id}".encode())


def remove_ecs_textual_suffixes(data: bytes) -> bytes:
    """Drop " ECS" from titles and descriptions."""
    return data.replace(b" ECS", b"")


def update_object_id(orig_id: str, module_name: str) -> str:
    """Prefix the ID with the module name, drop an "-ecs" suffix and avoid collisions."""
    prefix = module_name + "-"
    new_id = orig_id
    if new_id.lower().startswith(prefix):
        new_id = new_id[len(prefix):]
    new_id = (prefix + new_id).removesuffix("-ecs")
    if new_id == orig_id:
        new_id += "-pkg"
    return new_id


def verify_kibana_object_conversion(data: bytes) -> None:
    """Raise if converted data still refers to event.module or event.dataset."""
    for term in (b"event.module", b"event.dataset"):
        pos = data.find(term)
        if pos > 0:
            raise KibanaError(f"{term.decode()} spotted at pos. {pos}")
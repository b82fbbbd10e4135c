"""Configuration variables of data stream streams: building and compacting them."""

from __future__ import annotations

import dataclasses
from typing import Any, Iterable, Mapping, Sequence

import yaml

from .mapstr import flatten

IGNORED_CONFIG_OPTIONS = ("module", "metricsets", "enabled")
NON_COMPACTABLE_VARIABLES = ("period", "paths")


@dataclasses.dataclass
class Variable:
    """A configuration variable offered to the user of a policy."""

    name: str = ""
    type: str = ""
    title: str = ""
    description: str = ""
    multi: bool = False
    required: bool = False
    show_user: bool = False
    default: Any = None

    @classmethod
    def from_mapping(cls, raw: Any) -> Variable:
        if not isinstance(raw, dict):
            raise ValueError(f"expected a variable mapping but got {raw!r}")
        return cls(
            name=_text(raw.get("name")),
            type=_text(raw.get("type")),
            title=_text(raw.get("title")),
            description=_text(raw.get("description")),
            multi=bool(raw.get("multi", False)),
            required=bool(raw.get("required", False)),
            show_user=bool(raw.get("show_user", False)),
            default=raw.get("default"),
        )

    def to_dict(self) -> dict:
        """Return the variable as a manifest mapping, leaving out empty values."""
        items = {
            "name": self.name,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "multi": self.multi,
            "required": self.required,
            "show_user": self.show_user,
            "default": self.default,
        }
        return {key: value for key, value in items.items() if value not in ("", None)}


@dataclasses.dataclass
class Stream:
    """A stream of a data stream, with the input it uses and its variables."""

    input: str = ""
    title: str = ""
    description: str = ""
    template_path: str = ""
    vars: list[Variable] = dataclasses.field(default_factory=list)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _dump_yaml(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=True, allow_unicode=True)


def create_log_stream_variables(manifest_file: bytes | str) -> list[Variable]:
    """Read the variables of a log data stream manifest, in the package format."""
    try:
        manifest = yaml.safe_load(manifest_file)
    except yaml.YAMLError as err:
        raise ValueError(f"unmarshalling manifest file failed: {err}") from err
    if manifest is None:
        return []
    if not isinstance(manifest, dict):
        raise ValueError("unmarshalling manifest file failed: not a mapping")
    raw_vars = manifest.get("var") or []
    if not isinstance(raw_vars, list):
        raise ValueError("unmarshalling manifest file failed: var is not a sequence")
    return adjust_variables_format(Variable.from_mapping(item) for item in raw_vars)


def create_metric_stream_variables(
    config_file_content: bytes | str, module_name: str, data_stream_name: str
) -> list[Variable]:
    """Build the variables of a metricset from the module's merged config files."""
    if not config_file_content:
        return []
    try:
        module_config = yaml.safe_load(config_file_content)
    except yaml.YAMLError as err:
        raise ValueError(f"unmarshalling module config failed: {err}") from err
    if module_config is None:
        return []
    if not isinstance(module_config, list) or not all(
        isinstance(entry, dict) for entry in module_config
    ):
        raise ValueError("unmarshalling module config failed: expected a list of mappings")

    found: set[str] = set()
    variables: list[Variable] = []
    prefix = data_stream_name + "."
    for entry in module_config:
        flat = flatten(entry)
        related = is_config_entry_related_to_metricset(flat, data_stream_name)
        for name, value in flat.items():
            if should_config_option_be_ignored(name, value) or name in found:
                continue
            if not (related or name.startswith(prefix)):
                continue
            variable_type = determine_input_variable_type(name, value)
            is_array = False
            if variable_type == "yaml":
                value = _dump_yaml(value)
            else:
                is_array = isinstance(value, list)
            variables.append(
                Variable(
                    name=name,
                    type=variable_type,
                    title=to_variable_title(name),
                    multi=is_array,
                    required=determine_input_variable_is_required(value),
                    show_user=True,
                    default=value,
                )
            )
            found.add(name)

    # Sorted to keep the order stable under version control.
    variables.sort(key=lambda variable: variable.name)
    return variables


def adjust_variables_format(variables: Iterable[Variable]) -> list[Variable]:
    """Set title, type, required, show_user and multi; render object defaults as YAML."""
    adjusted = []
    for variable in variables:
        default = variable.default
        variable_type = determine_input_variable_type(variable.name, default)
        is_array = False
        if variable_type == "yaml":
            default = _dump_yaml(default)
        else:
            is_array = isinstance(default, list)
        adjusted.append(
            dataclasses.replace(
                variable,
                default=default,
                title=to_variable_title(variable.name),
                type=variable_type,
                required=determine_input_variable_is_required(variable.default),
                show_user=True,
                multi=is_array,
            )
        )
    return adjusted


def should_config_option_be_ignored(option_name: str, value: Any) -> bool:
    """Tell whether a config option is unset or one that is never offered as a variable."""
    return value is None or option_name in IGNORED_CONFIG_OPTIONS


def is_config_entry_related_to_metricset(entry: Mapping[str, Any], data_stream_name: str) -> bool:
    """Tell whether the entry's ``metricsets`` list names the data stream."""
    metricsets = entry.get("metricsets")
    if not isinstance(metricsets, list):
        return False
    for metricset in metricsets:
        if not isinstance(metricset, str):
            raise TypeError(f"expected metricset name to be a string, got {metricset!r}")
        if metricset == data_stream_name:
            return True
    return False


def determine_input_variable_is_required(value: Any) -> bool:
    """A variable is required unless its default is unset or an empty string."""
    return not (value is None or value == "" and isinstance(value, str))


def determine_input_variable_type(name: str, value: Any) -> str:
    """Pick the variable type for a value, or for the first item of a list."""
    if isinstance(value, list):
        if not value:
            return "text"
        return determine_input_variable_type(name, value[0])
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "integer"
    if name == "password":
        return "password"
    if value is None or isinstance(value, str):
        return "text"
    return "yaml"


def to_variable_title(name: str) -> str:
    """Turn a dotted, underscored option name into a title."""
    text = name.replace("_", " ").replace(".", " ")
    chars = []
    previous = " "
    for char in text:
        separator = not (previous.isalnum() or previous == "_")
        chars.append(char.upper() if separator else char)
        previous = char
    return "".join(chars)


def compact_stream_variables(
    data_stream_streams: Sequence[Sequence[Stream]],
) -> tuple[list[list[Stream]], dict[str, list[Variable]]]:
    """Move variables shared by every data stream up to their input type.

    Takes the streams of each data stream and returns them with the shared
    variables removed, together with the shared variables per input type.
    """
    working = [
        [dataclasses.replace(stream, vars=list(stream.vars)) for stream in streams]
        for streams in data_stream_streams
    ]
    per_input: dict[str, list[Variable]] = {}
    for streams in working:
        for index, stream in enumerate(list(streams)):
            kept = []
            for variable in stream.vars:
                if is_variable_already_compacted(per_input, variable, stream.input):
                    continue
                if can_variable_be_compacted(working, variable, stream.input):
                    per_input.setdefault(stream.input, []).append(variable)
                else:
                    kept.append(variable)
            streams[index] = dataclasses.replace(stream, vars=kept)
    return working, per_input


def is_variable_already_compacted(
    vars_per_input_type: Mapping[str, Iterable[Variable]], variable: Variable, input_type: str
) -> bool:
    """Tell whether a variable of that name is already shared for the input type."""
    return any(v.name == variable.name for v in vars_per_input_type.get(input_type, ()))


def can_variable_be_compacted(
    data_stream_streams: Iterable[Iterable[Stream]], variable: Variable, input_type: str
) -> bool:
    """Tell whether every data stream has an equal variable for the input type."""
    for streams in data_stream_streams:
        used = False
        for stream in streams:
            if stream.input != input_type:
                break
            if is_non_compactable_variable(variable):
                continue
            if any(are_variables_equal(v, variable) for v in stream.vars):
                used = True
        if not used:
            return False
    return True


def are_variables_equal(first: Variable, second: Variable) -> bool:
    """Compare name, type and the YAML form of the defaults."""
    if first.name != second.name or first.type != second.type:
        return False
    return _dump_yaml(first.default).strip() == _dump_yaml(second.default).strip()


def is_non_compactable_variable(variable: Variable) -> bool:
    """Tell whether the variable must stay with each stream."""
    return variable.name in NON_COMPACTABLE_VARIABLES
"""Policy templates of a package, built from the inputs its data streams use."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from .textutil import unique_string_values
from .variables import Stream, Variable

DataStreams = Mapping[str, Iterable[Stream]] | Iterable[tuple[str, Iterable[Stream]]]


@dataclass
class Input:
    """An input offered by a policy template."""

    type: str
    title: str
    description: str
    vars: list[Variable] = field(default_factory=list)


@dataclass
class PolicyTemplate:
    """A policy template as it appears in a package manifest."""

    name: str
    title: str
    description: str
    inputs: list[Input] = field(default_factory=list)


@dataclass
class PolicyTemplateInput:
    """An input type with the data streams that use it."""

    package_type: str
    input_type: str
    vars: list[Variable] = field(default_factory=list)
    data_stream_names: list[str] = field(default_factory=list)


@dataclass
class PolicyTemplateContent:
    """The inputs of a module, keyed by input type."""

    module_name: str = ""
    module_title: str = ""
    inputs: dict[str, PolicyTemplateInput] = field(default_factory=dict)

    def to_metadata_policy_templates(self) -> list[PolicyTemplate]:
        """Build the single policy template of the package manifest."""
        package_types = sorted(
            unique_string_values([item.package_type for item in self.inputs.values()]) or []
        )
        if not package_types:
            raise ValueError("policy template has no inputs")

        if len(package_types) == 2:
            title = to_policy_template_title_for_two_types(self.module_title, *package_types)
            description = to_policy_template_description_for_two_types(
                self.module_title, *package_types
            )
        else:
            title = to_policy_template_title(self.module_title, package_types[0])
            description = to_policy_template_description(self.module_title, package_types[0])

        inputs = [
            Input(
                type=item.input_type,
                title=to_policy_template_input_title(
                    self.module_title, package_type, item.data_stream_names, input_type
                ),
                description=to_policy_template_input_description(
                    self.module_title, package_type, item.data_stream_names, input_type
                ),
                vars=list(item.vars),
            )
            for package_type in package_types
            for input_type, item in self.inputs.items()
            if item.package_type == package_type
        ]
        return [
            PolicyTemplate(
                name=self.module_name, title=title, description=description, inputs=inputs
            )
        ]


def update_policy_template(
    content: PolicyTemplateContent,
    module_name: str,
    module_title: str,
    package_type: str,
    data_streams: DataStreams,
    input_vars: Mapping[str, Sequence[Variable]],
) -> PolicyTemplateContent:
    """Return the content with the inputs of the given data streams added."""
    inputs = {
        key: dataclasses.replace(
            value, vars=list(value.vars), data_stream_names=list(value.data_stream_names)
        )
        for key, value in content.inputs.items()
    }
    pairs = data_streams.items() if isinstance(data_streams, Mapping) else data_streams
    for name, streams in pairs:
        for stream in streams:
            item = inputs.get(stream.input)
            if item is None:
                item = PolicyTemplateInput(
                    package_type=package_type,
                    input_type=stream.input,
                    vars=list(input_vars.get(stream.input, ())),
                )
                inputs[stream.input] = item
            item.data_stream_names.append(name)
    return PolicyTemplateContent(module_name=module_name, module_title=module_title, inputs=inputs)


def to_policy_template_title(module_title: str, package_type: str) -> str:
    """Title of a template collecting one kind of data."""
    return f"{module_title} {package_type}"


def to_policy_template_description(module_title: str, package_type: str) -> str:
    """Description of a template collecting one kind of data."""
    return f"Collect {package_type} from {module_title} instances"


def to_policy_template_title_for_two_types(
    module_title: str, first_package_type: str, second_package_type: str
) -> str:
    """Title of a template collecting two kinds of data."""
    return f"{module_title} {first_package_type} and {second_package_type}"


def to_policy_template_description_for_two_types(
    module_title: str, first_package_type: str, second_package_type: str
) -> str:
    """Description of a template collecting two kinds of data."""
    return f"Collect {first_package_type} and {second_package_type} from {module_title} instances"


def _enumerate_names(data_streams: Sequence[str]) -> str:
    names = adjust_data_stream_names_for_input_description(data_streams)
    if not names:
        raise ValueError("at least one data stream name is required")
    *first, last = names
    if first:
        return f"{', '.join(first)} and {last}"
    return last


def _input_suffix(package_type: str, input_type: str) -> str:
    if package_type == "logs" and input_type != "logs":
        return f" (input: {input_type})"
    return ""


def to_policy_template_input_title(
    module_title: str, package_type: str, data_streams: Sequence[str], input_type: str
) -> str:
    """Title of an input, naming the data streams it collects."""
    names = _enumerate_names(data_streams)
    return (
        f"Collect {module_title} {names} {package_type}"
        + _input_suffix(package_type, input_type)
    )


def to_policy_template_input_description(
    module_title: str, package_type: str, data_streams: Sequence[str], input_type: str
) -> str:
    """Description of an input, naming the data streams it collects."""
    names = _enumerate_names(data_streams)
    return (
        f"Collecting {names} {package_type} from {module_title} instances"
        + _input_suffix(package_type, input_type)
    )


def adjust_data_stream_names_for_input_description(names: Iterable[str]) -> list[str]:
    """Call the generic ``log`` data stream ``application``."""
    return ["application" if name == "log" else name for name in names]
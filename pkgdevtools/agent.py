"""Agent stream templates of data streams."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .variables import Stream, Variable


@dataclass
class StreamContent:
    """A stream template file and its body."""

    target_file_name: str
    body: bytes


@dataclass
class AgentContent:
    """The agent stream templates of a data stream."""

    streams: list[StreamContent] = field(default_factory=list)


def extract_input_config_filename(config_file_path: str) -> str:
    """Return the last element of a slash-separated path."""
    return config_file_path.rsplit("/", 1)[-1]


def extract_vars_from_stream(streams: Iterable[Stream], input_name: str) -> list[Variable]:
    """Return the variables of the first stream using the input, or none."""
    for stream in streams:
        if stream.input == input_name:
            return list(stream.vars)
    return []


def create_agent_content_for_metrics(
    module_name: str, data_stream_name: str, streams: Iterable[Stream]
) -> AgentContent:
    """Render the Handlebars stream template of a metricset."""
    variables = extract_vars_from_stream(streams, module_name + "/metrics")
    lines = [f'metricsets: ["{data_stream_name}"]\n']
    for variable in variables:
        name = variable.name
        if not variable.required:
            lines.append(f"{{{{#if {name}}}}}\n")
        if variable.multi:
            lines.append(f"{name}:\n{{{{#each {name}}}}}\n  - {{{{this}}}}\n{{{{/each}}}}\n")
        else:
            lines.append(f"{name}: {{{{{name}}}}}\n")
        if not variable.required:
            lines.append("{{/if}}\n")
    body = "".join(lines).encode("utf-8")
    return AgentContent(streams=[StreamContent(target_file_name="stream.yml.hbs", body=body)])
"""Ingest pipelines of a data stream: loading, adjusting and validating them."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .textutil import split_filename_ext

logger = logging.getLogger(__name__)

_UNSUPPORTED_IF = re.compile(rb"\{<[ ]?if[^(>})]+>\}")
_UNSUPPORTED_INGEST_PIPELINE = re.compile(rb"('|\")\{< (IngestPipeline).+>\}('|\")")
_UNSUPPORTED_PLACEHOLDER = re.compile(rb"\{<.+>\}")


class PipelineError(Exception):
    """Raised when an ingest pipeline cannot be read, named or validated."""


@dataclass
class IngestPipelineContent:
    """An ingest pipeline as it is written into a package."""

    target_file_name: str
    body: bytes


def _pipeline_names(manifest_path: Path) -> list[str]:
    try:
        text = manifest_path.read_bytes()
    except FileNotFoundError:
        return []
    except OSError as err:
        raise PipelineError(
            f"reading dataStream manifest file failed (path: {manifest_path}): {err}"
        ) from err

    try:
        manifest = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise PipelineError(
            f"unmarshalling dataStream manifest file failed (path: {manifest_path}): {err}"
        ) from err
    if manifest is None:
        return []
    if not isinstance(manifest, dict):
        raise PipelineError(
            f"unmarshalling dataStream manifest file failed (path: {manifest_path}): not a mapping"
        )

    value = manifest.get("ingest_pipeline")
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise PipelineError(
        f"unmarshalling dataStream manifest file failed (path: {manifest_path}): "
        "ingest_pipeline must be a string or a list of strings"
    )


def load_elasticsearch_content(data_stream_path: str | Path) -> list[IngestPipelineContent]:
    """Load the ingest pipelines named in a data stream's manifest."""
    data_stream_path = Path(data_stream_path)
    names = _pipeline_names(data_stream_path / "manifest.yml")

    pipelines: list[IngestPipelineContent] = []
    for name in names:
        name = ensure_pipeline_format(name)
        logger.info("ingest-pipeline found: %s", name)

        if len(names) == 1:
            target_file_name = build_single_ingest_pipeline_target_name(name)
        else:
            target_file_name = determine_ingest_pipeline_target_name(name)

        pipeline_path = data_stream_path / name
        try:
            body = pipeline_path.read_bytes()
        except OSError as err:
            raise PipelineError(
                f"reading pipeline body failed (path: {pipeline_path}): {err}"
            ) from err

        # YAML pipelines get the document start marker they may be missing.
        if target_file_name.endswith(".yml") and not body.startswith(b"---"):
            body = b"---\n" + body

        content = IngestPipelineContent(
            target_file_name=target_file_name,
            body=adjust_unsupported_structures_in_pipeline(body),
        )
        try:
            validate_ingest_pipeline(content)
        except PipelineError as err:
            raise PipelineError(
                f"validation of modified ingest pipeline failed (original path: {pipeline_path}): {err}"
            ) from err
        pipelines.append(content)
    return pipelines


def _split(path: str) -> tuple[str, str]:
    try:
        return split_filename_ext(path)
    except ValueError as err:
        raise PipelineError(f"processing filename failed (path: {path}): {err}") from err


def build_single_ingest_pipeline_target_name(path: str) -> str:
    """Name the only pipeline of a data stream ``default.<ext>``."""
    _, ext = _split(path)
    return "default." + ext


def ensure_pipeline_format(ingest_pipeline: str) -> str:
    """Resolve the format placeholder of a pipeline path to JSON."""
    return ingest_pipeline.replace("{{.format}}", "json")


def determine_ingest_pipeline_target_name(path: str) -> str:
    """Name one of several pipelines, calling the entry pipeline ``default``."""
    name, ext = _split(path)
    if name in ("pipeline", "pipeline-entry"):
        return "default." + ext
    return f"{name}.{ext}"


def _convert_ingest_pipeline_reference(match: re.Match) -> bytes:
    found = match.group(0).replace(b"{<", b"{{").replace(b">}", b"}}")
    if found.startswith(b'"'):
        found = found.replace(b'"', b"'")
        found = b'"' + found[1:-1] + b'"'
    return found


def adjust_unsupported_structures_in_pipeline(data: bytes) -> bytes:
    """Remove or rewrite template constructs that packages do not support."""
    data = _UNSUPPORTED_IF.sub(b"", data)
    data = data.replace(b"{< end >}", b"")
    data = _UNSUPPORTED_INGEST_PIPELINE.sub(_convert_ingest_pipeline_reference, data)
    return _UNSUPPORTED_PLACEHOLDER.sub(b"FIX_ME", data)


def validate_ingest_pipeline(content: IngestPipelineContent) -> dict[str, Any]:
    """Check that the pipeline body parses as a mapping; return the parsed document."""
    _, ext = _split(content.target_file_name)
    if ext == "json":
        try:
            document = json.loads(content.body)
        except ValueError as err:
            raise PipelineError(f"invalid JSON pipeline: {err}") from err
    elif ext == "yml":
        try:
            document = yaml.safe_load(content.body)
        except yaml.YAMLError as err:
            raise PipelineError(f"invalid YAML pipeline: {err}") from err
    else:
        raise PipelineError(f"unsupported pipeline extension (path: {content.target_file_name})")

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise PipelineError(f"pipeline is not a mapping (path: {content.target_file_name})")
    return document
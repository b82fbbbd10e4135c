"""Reading the pixel size of SVG images."""

from __future__ import annotations

import math
import re
import struct
import xml.etree.ElementTree as ET

_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)", re.IGNORECASE
)


class SvgError(ValueError):
    """Raised when an SVG file or one of its sizes cannot be parsed."""


def _parse_float32(text: str) -> float:
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"invalid number: {text!r}")
    value = float(text)
    if math.isinf(value) or math.isnan(value):
        return value
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError as err:
        raise ValueError(f"number out of range: {text!r}") from err


def svg_parse_to_pixels(value: str) -> float:
    """Convert a length such as ``12``, ``9pt`` or ``3mm`` to pixels."""
    try:
        return _parse_float32(value)
    except ValueError:
        pass

    unit, scale = "", 0.0
    if "pt" in value:
        unit, scale = "pt", 4.0 / 3
    elif "mm" in value:
        unit, scale = "mm", 3.77
    stripped = value.replace(unit, "") if unit else value
    try:
        return _parse_float32(stripped) * scale
    except ValueError as err:
        raise SvgError(f"parsing width failed (value: {stripped}): {err}") from err


def svg_decode_config(data: bytes | str) -> tuple[int, int]:
    """Return the width and height of an SVG image in whole pixels."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as err:
        raise SvgError(f"unmarshalling SVG file failed: {err}") from err

    width_text = root.get("width", "")
    height_text = root.get("height", "")
    view_box = root.get("viewBox", "")

    width = height = 0.0
    if width_text and height_text:
        width = svg_parse_to_pixels(width_text)
        height = svg_parse_to_pixels(height_text)
    if width > 0 and height > 0:
        return int(width), int(height)

    dims = view_box.split(" ")
    dim_x = dim_y = ""
    if len(dims) == 2:
        dim_x, dim_y = dims
    elif len(dims) == 4:
        dim_x, dim_y = dims[2], dims[3]
    try:
        width = _parse_float32(dim_x)
        height = _parse_float32(dim_y)
    except ValueError as err:
        raise SvgError(f"parsing viewBox failed (value: {view_box}): {err}") from err
    try:
        return int(width), int(height)
    except (ValueError, OverflowError) as err:
        raise SvgError(f"parsing viewBox failed (value: {view_box}): {err}") from err
"""Generic coverage reports: reading, merging and writing them as XML."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

_ESCAPES = {
    '"': "&#34;",
    "'": "&#39;",
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"", "0", "f", "F", "FALSE", "false", "False"}


class CoverageError(Exception):
    """Raised when a coverage report cannot be read, merged or written."""


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in text)


def _parse_int(value: str | None, name: str) -> int:
    text = (value or "").strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError as err:
        raise CoverageError(f"invalid integer for {name}: {value!r}") from err


def _parse_bool(value: str | None, name: str) -> bool:
    text = (value or "").strip()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise CoverageError(f"invalid boolean for {name}: {value!r}")


@dataclass
class GenericLine:
    """One line to cover and whether it was covered."""

    line_number: int
    covered: bool


@dataclass
class GenericFile:
    """Coverage of the lines of one file."""

    path: str
    lines: list[GenericLine] = field(default_factory=list)

    def merge(self, other: GenericFile) -> None:
        """Add the other file's lines; a line is covered if either side covers it."""
        known: dict[int, GenericLine] = {}
        for line in self.lines:
            known.setdefault(line.line_number, line)
        for line in other.lines:
            existing = known.get(line.line_number)
            if existing is None:
                self.lines.append(line)
                known[line.line_number] = line
            else:
                existing.covered = existing.covered or line.covered


@dataclass
class GenericCoverage:
    """The root of a generic coverage report."""

    version: int = 0
    files: list[GenericFile] = field(default_factory=list)
    timestamp: int = 0
    test_type: str = ""

    def merge(self, other: GenericCoverage) -> None:
        """Merge another report's files into this one."""
        by_path: dict[str, GenericFile] = {}
        for existing in self.files:
            by_path.setdefault(existing.path, existing)
        for coverage_file in other.files:
            target = by_path.get(coverage_file.path)
            if target is None:
                self.files.append(coverage_file)
                by_path[coverage_file.path] = coverage_file
            else:
                target.merge(coverage_file)

    def _comment(self) -> str | None:
        if not self.test_type:
            return None
        if "--" in self.test_type:
            raise CoverageError('unable to format test results as Coverage: comments must not contain "--"')
        suffix = " " if self.test_type.endswith("-") else ""
        return f"<!--{self.test_type}{suffix}-->"

    def to_bytes(self) -> bytes:
        """Render the report as indented XML preceded by the XML header."""
        children: list[str] = []
        for coverage_file in self.files:
            opening = f'<file path="{_escape(coverage_file.path)}">'
            if not coverage_file.lines:
                children.append(f"  {opening}</file>")
                continue
            children.append(f"  {opening}")
            for line in coverage_file.lines:
                covered = "true" if line.covered else "false"
                children.append(
                    f'    <lineToCover lineNumber="{line.line_number}" '
                    f'covered="{covered}"></lineToCover>'
                )
            children.append("  </file>")
        comment = self._comment()
        if comment is not None:
            children.append(f"  {comment}")

        opening = f'<coverage version="{self.version}">'
        if children:
            body = "\n".join([opening, *children, "</coverage>"])
        else:
            body = f"{opening}</coverage>"
        return (XML_HEADER + "\n" + body).encode("utf-8")


def read_generic_coverage(path: str | Path) -> GenericCoverage:
    """Read a generic coverage report from an XML file."""
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    try:
        root = ET.parse(path, parser=parser).getroot()
    except OSError as err:
        raise CoverageError(f"open failed: {err}") from err
    except ET.ParseError as err:
        raise CoverageError(f"xml decode failed: {err}") from err

    if root.tag != "coverage":
        raise CoverageError(
            f"xml decode failed: expected element type <coverage> but have <{root.tag}>"
        )

    coverage = GenericCoverage(version=_parse_int(root.get("version"), "version"))
    comments: list[str] = []
    for child in root:
        if child.tag is ET.Comment:
            comments.append(child.text or "")
        elif child.tag == "file":
            coverage.files.append(
                GenericFile(
                    path=child.get("path", ""),
                    lines=[
                        GenericLine(
                            line_number=_parse_int(item.get("lineNumber"), "lineNumber"),
                            covered=_parse_bool(item.get("covered"), "covered"),
                        )
                        for item in child
                        if item.tag == "lineToCover"
                    ],
                )
            )
    coverage.test_type = "".join(comments)
    return coverage


def merge_generic_coverage_files(paths: Iterable[str | Path], output: str | Path) -> None:
    """Merge several coverage reports and write the result to ``output``."""
    merged: GenericCoverage | None = None
    for path in paths:
        try:
            report = read_generic_coverage(path)
        except CoverageError as err:
            raise CoverageError(f"failed to read coverage from {path}: {err}") from err
        if merged is None:
            merged = report
        else:
            merged.merge(report)

    if merged is None:
        raise CoverageError("no coverage files to merge")

    try:
        data = merged.to_bytes()
    except CoverageError as err:
        raise CoverageError(f"failed to encode merged coverage: {err}") from err
    try:
        Path(output).write_bytes(data)
    except OSError as err:
        raise CoverageError(f"cannot write merged coverage to {output}: {err}") from err
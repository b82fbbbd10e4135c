"""Semantic versions and version constraints such as ``^8.0.0 || ^9.0.0``."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering


class VersionError(ValueError):
    """Raised when a version or a constraint cannot be parsed."""


_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"

_VERSION_RE = re.compile(
    rf"v?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    rf"(?:-(?P<pre>{_IDENT}))?(?:\+(?P<meta>{_IDENT}))?"
)

_WILD = r"(?:\d+|[xX*])"
_CONSTRAINT_VERSION = rf"v?{_WILD}(?:\.{_WILD}){{0,2}}(?:-{_IDENT})?(?:\+{_IDENT})?"

_CONSTRAINT_VERSION_RE = re.compile(
    rf"v?(?P<major>{_WILD})(?:\.(?P<minor>{_WILD}))?(?:\.(?P<patch>{_WILD}))?"
    rf"(?:-(?P<pre>{_IDENT}))?(?:\+(?P<meta>{_IDENT}))?"
)
_TERM_RE = re.compile(
    rf"(?P<op>!=|>=|=>|<=|=<|~>|[=<>~^])?\s*(?P<ver>{_CONSTRAINT_VERSION})"
)
_SEPARATOR_RE = re.compile(r"[\s,]*")
_HYPHEN_RE = re.compile(rf"({_CONSTRAINT_VERSION})\s+-\s+({_CONSTRAINT_VERSION})")

_OP_ALIASES = {"=>": ">=", "=<": "<=", "~>": "~", "=": ""}


def _is_wildcard(part: str | None) -> bool:
    return part is None or part in ("x", "X", "*")


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A semantic version; build metadata does not take part in comparisons."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""

    def _prerelease_key(self) -> tuple:
        if not self.prerelease:
            return (1, ())
        parts = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease.split(".")
        )
        return (0, parts)

    def _key(self) -> tuple:
        return (self.major, self.minor, self.patch, self._prerelease_key())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text


def parse_version(text: str) -> Version:
    """Parse a version; missing minor and patch parts default to zero."""
    match = _VERSION_RE.fullmatch(text)
    if match is None:
        raise VersionError(f"invalid semantic version: {text!r}")
    return Version(
        major=int(match["major"]),
        minor=int(match["minor"] or 0),
        patch=int(match["patch"] or 0),
        prerelease=match["pre"] or "",
        metadata=match["meta"] or "",
    )


@dataclass(frozen=True)
class _Term:
    op: str
    version: Version
    any_version: bool = False
    minor_dirty: bool = False
    patch_dirty: bool = False

    @property
    def dirty(self) -> bool:
        return self.any_version or self.minor_dirty or self.patch_dirty

    def matches(self, v: Version) -> bool:
        con = self.version
        if v.prerelease and not con.prerelease:
            return False
        if self.any_version:
            return self.op not in ("!=", "<", ">")
        if self.op == "":
            return self._tilde(v) if self.dirty else v == con
        if self.op == "!=":
            return self._not_equal(v)
        if self.op == ">":
            return self._greater(v)
        if self.op == "<":
            return v < con
        if self.op == ">=":
            return v >= con
        if self.op == "<=":
            return self._less_or_equal(v)
        if self.op == "~":
            return self._tilde(v)
        return self._caret(v)

    def _tilde(self, v: Version) -> bool:
        con = self.version
        if v < con:
            return False
        if (con.major, con.minor, con.patch) == (0, 0, 0) and not (
            self.minor_dirty or self.patch_dirty
        ):
            return True
        if v.major != con.major:
            return False
        return v.minor == con.minor or self.minor_dirty

    def _caret(self, v: Version) -> bool:
        con = self.version
        if v < con or v.major != con.major:
            return False
        if con.major > 0 or self.minor_dirty:
            return True
        if v.minor != con.minor:
            return False
        if con.minor > 0 or self.patch_dirty:
            return True
        return v.patch == con.patch

    def _greater(self, v: Version) -> bool:
        con = self.version
        if not self.dirty:
            return v > con
        if v.major != con.major:
            return v.major > con.major
        if self.minor_dirty:
            return False
        if self.patch_dirty:
            return v.minor > con.minor
        return v > con

    def _less_or_equal(self, v: Version) -> bool:
        con = self.version
        if not self.dirty:
            return v <= con
        if v.major > con.major:
            return False
        return not (v.major == con.major and v.minor > con.minor and not self.minor_dirty)

    def _not_equal(self, v: Version) -> bool:
        con = self.version
        if self.dirty:
            if v.major != con.major:
                return True
            if self.minor_dirty:
                return False
            if v.minor != con.minor:
                return True
            if self.patch_dirty:
                return False
        return v != con


def _make_term(op: str, text: str) -> _Term:
    match = _CONSTRAINT_VERSION_RE.fullmatch(text)
    if match is None:
        raise VersionError(f"invalid version in constraint: {text!r}")
    op = _OP_ALIASES.get(op, op)
    pre, meta = match["pre"] or "", match["meta"] or ""
    if _is_wildcard(match["major"]):
        return _Term(op, Version(0, 0, 0, pre, meta), any_version=True)
    major = int(match["major"])
    if _is_wildcard(match["minor"]):
        return _Term(op, Version(major, 0, 0, pre, meta), minor_dirty=True)
    minor = int(match["minor"])
    if _is_wildcard(match["patch"]):
        return _Term(op, Version(major, minor, 0, pre, meta), patch_dirty=True)
    return _Term(op, Version(major, minor, int(match["patch"]), pre, meta))


@dataclass(frozen=True)
class Constraints:
    """Alternatives joined by ``||``, each a conjunction of comparisons."""

    groups: tuple[tuple[_Term, ...], ...]
    text: str = field(default="", compare=False)

    def check(self, version: Version | str) -> bool:
        """Tell whether the version satisfies these constraints."""
        if isinstance(version, str):
            version = parse_version(version)
        return any(all(term.matches(version) for term in group) for group in self.groups)

    def __str__(self) -> str:
        return self.text


def _parse_group(group: str, original: str) -> tuple[_Term, ...]:
    group = _HYPHEN_RE.sub(r">=\1 <=\2", group).strip()
    if not group:
        raise VersionError(f"improper constraint: {original!r}")
    terms = []
    pos = 0
    while pos < len(group):
        match = _TERM_RE.match(group, pos)
        if match is None:
            raise VersionError(f"improper constraint: {original!r}")
        terms.append(_make_term(match["op"] or "", match["ver"]))
        pos = _SEPARATOR_RE.match(group, match.end()).end()
    return tuple(terms)


def parse_constraint(text: str) -> Constraints:
    """Parse a constraint string such as ``>=8.0.0, <9.0.0 || ^9.1``."""
    groups = tuple(_parse_group(part, text) for part in text.split("||"))
    return Constraints(groups=groups, text=text)
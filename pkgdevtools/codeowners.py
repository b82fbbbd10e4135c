"""Validation of CODEOWNERS rules against the packages of a repository."""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CODEOWNERS_PATH = ".github/CODEOWNERS"
PACKAGES_DIR = "packages"


class CodeownersError(Exception):
    """Raised when a CODEOWNERS file or the packages it covers are not valid."""


def _bad_pattern(pattern: str) -> CodeownersError:
    return CodeownersError(f"syntax error in pattern: {pattern!r}")


def _read_class_char(pattern: str, pos: int) -> tuple[str, int]:
    if pos >= len(pattern):
        raise _bad_pattern(pattern)
    char = pattern[pos]
    if char in "-]":
        raise _bad_pattern(pattern)
    if char == "\\":
        pos += 1
        if pos >= len(pattern):
            raise _bad_pattern(pattern)
        char = pattern[pos]
    return char, pos + 1


def _class_regex(pattern: str, pos: int) -> tuple[str, int]:
    """Translate a bracket expression starting after ``[``."""
    negate = pos < len(pattern) and pattern[pos] == "^"
    if negate:
        pos += 1
    ranges: list[str] = []
    count = 0
    while True:
        if pos < len(pattern) and pattern[pos] == "]" and count > 0:
            pos += 1
            break
        low, pos = _read_class_char(pattern, pos)
        high = low
        if pos < len(pattern) and pattern[pos] == "-":
            high, pos = _read_class_char(pattern, pos + 1)
        count += 1
        if low <= high:
            ranges.append(f"{re.escape(low)}-{re.escape(high)}")
    if not ranges:
        return ("." if negate else "(?!)"), pos
    return f"[{'^' if negate else ''}{''.join(ranges)}]", pos


def _glob_match(pattern: str, name: str) -> bool:
    """Match a name against a shell pattern whose wildcards stop at ``/``."""
    parts: list[str] = []
    pos = 0
    while pos < len(pattern):
        char = pattern[pos]
        pos += 1
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "\\":
            if pos >= len(pattern):
                raise _bad_pattern(pattern)
            parts.append(re.escape(pattern[pos]))
            pos += 1
        elif char == "[":
            regex, pos = _class_regex(pattern, pos)
            parts.append(regex)
        else:
            parts.append(re.escape(char))
    return re.fullmatch("(?s:" + "".join(parts) + ")", name) is not None


def _clean_dir(path: str) -> str:
    return posixpath.normpath(posixpath.dirname(path) or ".")


@dataclass
class GithubOwners:
    """Owners per path as read from a CODEOWNERS file."""

    owners: dict[str, list[str]] = field(default_factory=dict)
    path: str = ""

    def check_single_field(self, field: str) -> None:
        """Check a rule that names a path without owners."""
        if field.startswith("/"):
            # Only rules that do not take owners away from earlier rules are allowed.
            for owned_path in self.owners:
                if _glob_match(field, owned_path) or field.startswith(owned_path):
                    raise CodeownersError(f"{field!r} would remove owners for {owned_path!r}")
                if owned_path.startswith(field):
                    raise CodeownersError(f"{field!r} would remove owners for {owned_path!r}")
            return
        if field.startswith("@"):
            raise CodeownersError(f"rule with owner without path: {field!r}")
        raise CodeownersError(f"unexpected field found: {field!r}")

    def check_manifest(self, path: str | Path) -> str:
        """Check that the manifest's owner owns its package; return that owner."""
        path = str(path)
        package_dir = _clean_dir(path)
        owners = self.owners.get("/" + package_dir)
        if owners is None:
            raise CodeownersError(f"there is no owner for {package_dir!r} in {self.path!r}")

        try:
            with open(path, encoding="utf-8") as handle:
                manifest: Any = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as err:
            raise CodeownersError(f"reading manifest {path!r} failed: {err}") from err

        if manifest is None:
            manifest = {}
        if not isinstance(manifest, dict):
            raise CodeownersError(f"manifest {path!r} is not a mapping")
        owner = manifest.get("owner") or {}
        if not isinstance(owner, dict):
            raise CodeownersError(f"owner in {path!r} is not a mapping")
        github = owner.get("github")
        if isinstance(github, (dict, list)):
            raise CodeownersError(f"owner.github in {path!r} is not a string")
        github = "" if github is None else str(github)

        if not github:
            raise CodeownersError(f"no owner specified in {path!r}")
        expected = "@" + github
        if expected not in owners:
            raise CodeownersError(f"owner {github!r} defined in {path!r} is not in {self.path!r}")
        return expected

    def check_data_streams(self, package_path: str | Path) -> None:
        """Check that data streams are either all unowned or each owned by one team."""
        package_path = str(package_path)
        data_streams_path = posixpath.join(package_path, "data_stream")
        if not os.path.exists(data_streams_path):
            return
        try:
            entries = sorted(os.listdir(data_streams_path))
        except OSError as err:
            raise CodeownersError(f"reading {data_streams_path!r} failed: {err}") from err
        if not entries:
            return

        without_owner: list[str] = []
        for name in entries:
            data_stream_dir = posixpath.join(data_streams_path, name)
            owners = self.owners.get("/" + data_stream_dir)
            if owners is None:
                without_owner.append(data_stream_dir)
                continue
            if len(owners) > 1:
                raise CodeownersError(
                    f'data stream "{data_stream_dir}" of package "{package_path}" '
                    f"has more than one owners [{', '.join(owners)}]"
                )

        if without_owner and len(without_owner) != len(entries):
            raise CodeownersError(
                f'package "{package_path}" shares ownership across data streams '
                f"but these ones [{', '.join(without_owner)}] lack owners"
            )


def read_github_owners(codeowners_path: str | Path) -> GithubOwners:
    """Read a CODEOWNERS file; later rules take precedence over earlier ones."""
    codeowners_path = str(codeowners_path)
    try:
        with open(codeowners_path, encoding="utf-8") as handle:
            lines = handle.read().splitlines()
    except OSError as err:
        raise CodeownersError(f"failed to open {codeowners_path!r}: {err}") from err

    codeowners = GithubOwners(path=codeowners_path)
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        path, *owners = line.split()
        if not owners:
            try:
                codeowners.check_single_field(path)
            except CodeownersError as err:
                raise CodeownersError(
                    f"invalid line {line_number} in {codeowners_path!r}: {err}"
                ) from err
            continue
        codeowners.owners[path] = owners
    return codeowners


def validate_packages(codeowners: GithubOwners, packages_dir: str | Path) -> list[str]:
    """Check ownership of every package in the directory; return the package names."""
    packages_dir = str(packages_dir)
    try:
        names = sorted(os.listdir(packages_dir))
    except OSError as err:
        raise CodeownersError(f"reading {packages_dir!r} failed: {err}") from err

    if not names:
        if not codeowners.owners:
            return []
        raise CodeownersError(f"no packages found in {packages_dir!r}")

    for name in names:
        package_path = posixpath.join(packages_dir, name)
        codeowners.check_manifest(posixpath.join(package_path, "manifest.yml"))
        codeowners.check_data_streams(package_path)
    return names


def package_owners(
    package_name: str, data_stream: str, codeowners_path: str | Path
) -> list[str]:
    """Return the teams owning a package, or one of its data streams if given."""
    try:
        owners = read_github_owners(codeowners_path)
    except CodeownersError as err:
        raise CodeownersError(f"failed to read CODEOWNERS file: {err}") from err

    package_teams = owners.owners.get(f"/packages/{package_name}")
    if package_teams is None:
        raise CodeownersError(f"no owner found for package {package_name}")
    if not data_stream:
        return list(package_teams)

    data_stream_teams = owners.owners.get(f"/packages/{package_name}/data_stream/{data_stream}")
    if data_stream_teams is None:
        return list(package_teams)
    return list(data_stream_teams)


def check() -> list[str]:
    """Validate the repository's CODEOWNERS file against its packages directory."""
    codeowners = read_github_owners(DEFAULT_CODEOWNERS_PATH)
    return validate_packages(codeowners, PACKAGES_DIR)
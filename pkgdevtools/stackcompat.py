"""Checks of whether a package fits a given stack version and subscription."""

from __future__ import annotations

from pathlib import Path

from .manifest import ManifestError, read_package_manifest
from .versions import Constraints, Version, VersionError, parse_constraint, parse_version

LOGSDB_GA = parse_version("8.17.0")
_LAST_8X = parse_version("8.19.99")
_LAST_9X = parse_version("9.99.99")


class SubscriptionError(ValueError):
    """Raised for a stack subscription that is not known."""


def kibana_constraint_package(path: str | Path) -> Constraints | None:
    """Return the package's Kibana version constraint, or None if it has none."""
    try:
        manifest = read_package_manifest(path)
    except ManifestError as err:
        raise ManifestError(f"failed to read package manifest: {err}") from err

    if not manifest.kibana_version:
        return None
    try:
        return parse_constraint(manifest.kibana_version)
    except VersionError as err:
        raise VersionError(f"failed to parse kibana constraint: {err}") from err


def is_package_supported_in_stack_version(stack_version: str, path: str | Path) -> bool:
    """Tell whether the package may be installed on the given stack version."""
    stack_version = stack_version.removesuffix("-SNAPSHOT")
    try:
        version = parse_version(stack_version)
    except VersionError as err:
        raise VersionError(f"failed to parse stack version: {err}") from err

    constraint = kibana_constraint_package(path)
    if constraint is None:
        return True
    return constraint.check(version)


def is_version_less_than_logsdb_ga(version: Version | str) -> bool:
    """Tell whether the version predates general availability of LogsDB."""
    if isinstance(version, str):
        version = parse_version(version)
    return version < LOGSDB_GA


def is_logsdb_supported_in_package(path: str | Path) -> bool:
    """Tell whether the package's Kibana constraint admits LogsDB-capable stacks."""
    try:
        constraint = kibana_constraint_package(path)
    except (ManifestError, VersionError) as err:
        raise ManifestError(f"failed to read kibana.constraint from manifest: {err}") from err

    if constraint is None:
        return True
    # The GA version itself is not checked, since "^8.18.0 || ^9.0.0" would not match it.
    return constraint.check(_LAST_8X) or constraint.check(_LAST_9X)


def package_subscription(path: str | Path) -> str:
    """Return the subscription the package needs, defaulting to basic."""
    manifest = read_package_manifest(path)
    return manifest.elastic_subscription or manifest.license or "basic"


def is_subscription_compatible(stack_subscription: str, path: str | Path) -> bool:
    """Tell whether a stack with the given subscription can run the package."""
    try:
        subscription = package_subscription(path)
    except ManifestError as err:
        raise ManifestError(f"failed to read subscription from manifest: {err}") from err

    if stack_subscription == "trial":
        return True
    if stack_subscription == "basic":
        return subscription == "basic"
    raise SubscriptionError(f"unknown subscription {stack_subscription}")
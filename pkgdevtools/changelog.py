"""The changelog file of a newly created package."""

from __future__ import annotations

from dataclasses import dataclass, field

import yaml

CHANGELOG_HEADER = "# newer versions go on top"


@dataclass
class Change:
    """One change in a release."""

    description: str
    type: str
    link: str = ""

    def to_dict(self) -> dict:
        result = {"description": self.description, "type": self.type}
        if self.link:
            result["link"] = self.link
        return result


@dataclass
class Entry:
    """The changes of one version."""

    version: str
    changes: list[Change] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"version": self.version, "changes": [change.to_dict() for change in self.changes]}


class _IndentedDumper(yaml.SafeDumper):
    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)


@dataclass
class Changelog:
    """A list of entries, newest first."""

    entries: list[Entry] = field(default_factory=list)

    def to_yaml(self) -> str:
        """Render the changelog file, a header comment followed by the entries."""
        text = yaml.dump(
            {"entries": [entry.to_dict() for entry in self.entries]},
            Dumper=_IndentedDumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
        return text.replace("entries:", CHANGELOG_HEADER, 1)


def new_changelog(init_version: str) -> Changelog:
    """Create the changelog of an initial release; its link is left for the user."""
    return Changelog(
        entries=[
            Entry(
                version=init_version,
                changes=[Change(description="initial release", type="enhancement", link="")],
            )
        ]
    )
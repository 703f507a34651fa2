"""Mute command parsing.

Accepted forms, checked in this order:

    environment[e1,e2],project[p1,p2]   (either order)
    environment[e1,e2]
    project[p1,p2]

The names written in the command are the ones to mute. The parser returns
the complement: what stays un-muted for each dimension.
"""

import re
from dataclasses import dataclass
from typing import Iterable

from ..errors import NoMatch

_NAMES = r"\[\s*([\w.-]+(?:\s*,\s*[\w.-]+)*)\s*\]"

PROJECT_AND_ENVIRONMENT_RE = re.compile(r"environment" + _NAMES + r",[ ]?project" + _NAMES)
ENVIRONMENT_AFTER_PROJECT_RE = re.compile(r"project" + _NAMES + r",[ ]?environment" + _NAMES)
ENVIRONMENT_RE = re.compile(r"environment" + _NAMES)
PROJECT_RE = re.compile(r"project" + _NAMES)

USAGE = (
    "Usage: /mute environment[env1,env2],project[pr1] "
    "(or only environment[...] or only project[...])"
)


@dataclass
class MuteSelection:
    """Result of parsing a mute command: categories that keep alerting."""

    keep_environments: list[str]
    keep_projects: list[str]

    def environments_to_mute(self, universe: Iterable[str]) -> list[str]:
        return _difference(universe, self.keep_environments)

    def projects_to_mute(self, universe: Iterable[str]) -> list[str]:
        return _difference(universe, self.keep_projects)


def _split_names(group: str) -> list[str]:
    return [n for n in re.sub(r"\s+", "", group).split(",") if n]


def _difference(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Items of a not in b, keeping a's order."""
    exclude = set(b)
    return [x for x in a if x not in exclude]


def parse_mute_command(text: str, environments: list[str], projects: list[str]) -> MuteSelection:
    """Parse a mute command into the environments/projects left un-muted.

    Names not present in a universe contribute nothing. A dimension that the
    command does not mention keeps its full universe.

    Raises:
        NoMatch: text matches none of the accepted forms.
    """
    match = PROJECT_AND_ENVIRONMENT_RE.search(text)
    if match:
        return MuteSelection(
            keep_environments=_difference(environments, _split_names(match.group(1))),
            keep_projects=_difference(projects, _split_names(match.group(2))),
        )

    match = ENVIRONMENT_AFTER_PROJECT_RE.search(text)
    if match:
        return MuteSelection(
            keep_environments=_difference(environments, _split_names(match.group(2))),
            keep_projects=_difference(projects, _split_names(match.group(1))),
        )

    match = ENVIRONMENT_RE.search(text)
    if match:
        return MuteSelection(
            keep_environments=_difference(environments, _split_names(match.group(1))),
            keep_projects=list(projects),
        )

    match = PROJECT_RE.search(text)
    if match:
        return MuteSelection(
            keep_environments=list(environments),
            keep_projects=_difference(projects, _split_names(match.group(1))),
        )

    raise NoMatch(f"Could not parse the command. {USAGE}")

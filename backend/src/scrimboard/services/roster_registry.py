"""Roster import and active-roster resolution."""

from typing import Iterable

from scrimboard.models.team import Team
from scrimboard.models.tournament import Day, Tournament
from scrimboard.utils.ids import new_id
from scrimboard.utils.text import clean_team_name


def active_roster(day: Day | None, tournament: Tournament) -> list[Team]:
    """Teams valid for a day: the day's override if non-empty, else the global roster."""
    if day is not None and day.teams:
        return day.teams
    return tournament.teams


def parse_roster_lines(raw: str | Iterable[str]) -> list[str]:
    """Clean pasted roster lines, dropping lines that end up empty.

    Order is preserved; a team's position is its slot number.
    """
    lines = raw.splitlines() if isinstance(raw, str) else raw
    names = [clean_team_name(line) for line in lines]
    return [name for name in names if name]


def import_roster(
    raw_lines: str | Iterable[str],
    existing: Iterable[Team] | None = None,
) -> list[Team]:
    """Build a roster from pasted lines.

    A cleaned name equal to an existing team's name keeps that team's id so
    recorded results stay linked; any other name gets a new id. Existing
    teams whose names are absent are dropped. An existing id is reused at
    most once, so a name pasted twice yields two distinct teams.

    Examples:
        >>> [t.name for t in import_roster(["1. Alpha", "2) Beta", "#3 - Gamma"])]
        ['Alpha', 'Beta', 'Gamma']
    """
    existing_by_name: dict[str, Team] = {}
    for team in existing or []:
        existing_by_name.setdefault(team.name, team)

    roster = []
    for name in parse_roster_lines(raw_lines):
        current = existing_by_name.pop(name, None)
        roster.append(current if current else Team(id=new_id(), name=name))
    return roster

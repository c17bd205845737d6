"""Standings models."""

from dataclasses import asdict, dataclass

from scrimboard.models.team import Team


@dataclass
class TeamStanding:
    """Aggregated day totals for one team."""

    team: Team
    kills: int = 0
    place_pts: int = 0
    kill_pts: int = 0
    penalty_pts: int = 0
    total: int = 0


@dataclass
class StandingsRow:
    """Flat standings row handed to reporting and export."""

    rank: int
    team_name: str
    kills: int
    place_pts: int
    kill_pts: int
    sanctions: int
    total: int

    def to_dict(self) -> dict:
        return asdict(self)

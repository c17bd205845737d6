"""Lobby (match) models."""

from dataclasses import dataclass, field
from enum import Enum


class MatchState(str, Enum):
    """Lifecycle state of a lobby, derived from its data."""

    EMPTY = "empty"  # No screenshots, no results
    PENDING = "pending"  # Screenshots attached, not analyzed
    COMPLETED = "completed"  # Results recorded


@dataclass
class MatchResult:
    """One team's result in a lobby.

    total_points is computed once when the result is recorded and is
    never recomputed from a later scoring policy.
    """

    team_id: str
    kills: int
    place: int
    total_points: int

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "kills": self.kills,
            "place": self.place,
            "total_points": self.total_points,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MatchResult":
        return cls(
            team_id=data["team_id"],
            kills=int(data["kills"]),
            place=int(data["place"]),
            total_points=int(data["total_points"]),
        )


@dataclass
class Match:
    """A lobby within a competition day."""

    id: str
    match_number: int  # Position within the day, 1-based
    screenshots: list[str] = field(default_factory=list)  # data: URLs
    results: list[MatchResult] = field(default_factory=list)
    is_completed: bool = False
    map_name: str | None = None

    @property
    def state(self) -> MatchState:
        if self.is_completed:
            return MatchState.COMPLETED
        if self.screenshots:
            return MatchState.PENDING
        return MatchState.EMPTY

    def result_for(self, team_id: str) -> MatchResult | None:
        """Result recorded for a team, if any."""
        return next((r for r in self.results if r.team_id == team_id), None)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "match_number": self.match_number,
            "map_name": self.map_name,
            "screenshots": list(self.screenshots),
            "results": [r.to_dict() for r in self.results],
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        return cls(
            id=data["id"],
            match_number=int(data["match_number"]),
            map_name=data.get("map_name"),
            screenshots=list(data.get("screenshots", [])),
            results=[MatchResult.from_dict(r) for r in data.get("results", [])],
            is_completed=bool(data.get("is_completed", False)),
        )

"""Event, day and sanction models."""

from dataclasses import dataclass, field
from enum import Enum

from scrimboard.models.match import Match
from scrimboard.models.scoring import ScoringPolicy
from scrimboard.models.team import Team


class EventType(str, Enum):
    """Kinds of events."""

    SCRIM = "scrim"  # Days added ad hoc, per-day rosters
    TOURNAMENT = "tournament"  # Fixed days, one global roster


@dataclass
class Penalty:
    """A manual point adjustment (sanction) for one team on one day."""

    id: str
    team_id: str
    points: int  # Negative = deduction, positive = bonus
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "team_id": self.team_id,
            "points": self.points,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Penalty":
        return cls(
            id=data["id"],
            team_id=data["team_id"],
            points=int(data["points"]),
            reason=data.get("reason", ""),
        )


@dataclass
class Day:
    """A competition day holding its lobbies and sanctions."""

    id: str
    day_number: int
    date: str | None = None  # ISO date
    teams: list[Team] | None = None  # Roster override; None inherits the global roster
    matches: list[Match] = field(default_factory=list)
    penalties: list[Penalty] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "day_number": self.day_number,
            "date": self.date,
            "teams": [t.to_dict() for t in self.teams] if self.teams is not None else None,
            "matches": [m.to_dict() for m in self.matches],
            "penalties": [p.to_dict() for p in self.penalties],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Day":
        teams = data.get("teams")
        return cls(
            id=data["id"],
            day_number=int(data["day_number"]),
            date=data.get("date"),
            teams=[Team.from_dict(t) for t in teams] if teams is not None else None,
            matches=[Match.from_dict(m) for m in data.get("matches", [])],
            penalties=[Penalty.from_dict(p) for p in data.get("penalties", [])],
        )


@dataclass
class Tournament:
    """A scrim series or tournament owned by one account."""

    id: str
    owner_id: str
    name: str
    type: EventType
    teams: list[Team] = field(default_factory=list)  # Global roster
    scoring: ScoringPolicy = field(default_factory=ScoringPolicy)
    days: list[Day] = field(default_factory=list)
    current_day: int = 1  # Selected day number
    revision: int = 0  # Optimistic concurrency counter

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "type": self.type.value,
            "teams": [t.to_dict() for t in self.teams],
            "scoring": self.scoring.to_dict(),
            "days": [d.to_dict() for d in self.days],
            "current_day": self.current_day,
            "revision": self.revision,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tournament":
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            name=data["name"],
            type=EventType(data.get("type", EventType.TOURNAMENT.value)),
            teams=[Team.from_dict(t) for t in data.get("teams", [])],
            scoring=ScoringPolicy.from_dict(data.get("scoring", {})),
            days=[Day.from_dict(d) for d in data.get("days", [])],
            current_day=int(data.get("current_day", 1)),
            revision=int(data.get("revision", 0)),
        )

"""Scoring policy and preset models."""

from dataclasses import dataclass, field


DEFAULT_POINTS_PER_KILL = 1
DEFAULT_RANK_POINTS = [
    20, 16, 15, 14, 13, 12, 11, 10, 9, 8,
    7, 6, 5, 4, 3, 2, 1, 1, 1, 1,
    0, 0, 0, 0, 0,
]


@dataclass
class ScoringPolicy:
    """Placement and kill point values for a tournament.

    rank_points[0] is first place. Placements past the end of the list
    are worth zero placement points.
    """

    points_per_kill: int = DEFAULT_POINTS_PER_KILL
    rank_points: list[int] = field(default_factory=lambda: list(DEFAULT_RANK_POINTS))

    def to_dict(self) -> dict:
        return {
            "points_per_kill": self.points_per_kill,
            "rank_points": list(self.rank_points),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringPolicy":
        return cls(
            points_per_kill=int(data.get("points_per_kill", DEFAULT_POINTS_PER_KILL)),
            rank_points=[int(p) for p in data.get("rank_points", [])],
        )


def default_scoring() -> ScoringPolicy:
    """Fresh copy of the default scoring policy."""
    return ScoringPolicy()


@dataclass
class ScoringPreset:
    """A named, reusable scoring policy."""

    id: str
    name: str
    system: ScoringPolicy

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "system": self.system.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringPreset":
        return cls(
            id=data["id"],
            name=data["name"],
            system=ScoringPolicy.from_dict(data.get("system", {})),
        )

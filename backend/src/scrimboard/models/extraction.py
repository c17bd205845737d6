"""Models for screenshot extraction and reconciliation."""

from dataclasses import dataclass, field
from enum import Enum

from scrimboard.models.match import MatchResult


@dataclass
class ExtractedRow:
    """One scoreboard row as read by the extractor, after coercion."""

    team_label: str
    rank: int
    kills: int


class RowBinding(str, Enum):
    """How a raw row was resolved against the roster."""

    SLOT = "slot"  # Generic identifier bound by roster position
    NAME = "name"  # Normalized name equality/containment
    SUPERSEDED = "superseded"  # Bound, but a better placement was kept for the team
    UNMATCHED = "unmatched"  # No roster team matched
    MALFORMED = "malformed"  # Missing label or unusable rank


@dataclass
class RowTrace:
    """Diagnostic record for one raw row."""

    index: int
    label: str
    binding: RowBinding
    team_id: str | None = None


@dataclass
class ReconcileOutcome:
    """Result of reconciling raw rows against a roster."""

    results: dict[str, MatchResult] = field(default_factory=dict)  # team_id -> best result
    trace: list[RowTrace] = field(default_factory=list)
    row_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.results

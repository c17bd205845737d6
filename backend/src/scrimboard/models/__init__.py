"""Data models for the scrim standings backend."""

from scrimboard.models.team import Team
from scrimboard.models.scoring import ScoringPolicy, ScoringPreset, default_scoring
from scrimboard.models.match import Match, MatchResult, MatchState
from scrimboard.models.tournament import Day, EventType, Penalty, Tournament
from scrimboard.models.standings import StandingsRow, TeamStanding
from scrimboard.models.extraction import (
    ExtractedRow,
    ReconcileOutcome,
    RowBinding,
    RowTrace,
)
from scrimboard.models.account import (
    Account,
    AdminAccount,
    Capability,
    LicenseDuration,
    LicenseKey,
    UserAccount,
)

__all__ = [
    "Team",
    "ScoringPolicy",
    "ScoringPreset",
    "default_scoring",
    "Match",
    "MatchResult",
    "MatchState",
    "Day",
    "EventType",
    "Penalty",
    "Tournament",
    "StandingsRow",
    "TeamStanding",
    "ExtractedRow",
    "ReconcileOutcome",
    "RowBinding",
    "RowTrace",
    "Account",
    "AdminAccount",
    "Capability",
    "LicenseDuration",
    "LicenseKey",
    "UserAccount",
]

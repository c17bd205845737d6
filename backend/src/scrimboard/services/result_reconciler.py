"""Map noisy screenshot extraction rows onto a fixed roster.

The extractor reads scoreboard rows as free text, so labels can be exact
team names, partial names, or generic slot labels such as "TEAM3". Rows
are resolved in a fixed order:

1. Generic slot labels ("TEAM3", "Slot 3", "#3", "No. 3", "3") bind to the
   roster team at that 1-based position when the position exists.
2. Otherwise the label and every roster name are reduced to lowercase
   alphanumerics and the first roster team whose name equals, contains,
   or is contained in the label wins.
3. When several rows bind to the same team, only the row with the
   smallest placement is kept; on equal placements the earlier row stays.

Rows that cannot be used (no label, non-numeric rank) are skipped without
affecting the rest of the batch.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from scrimboard.models.extraction import (
    ExtractedRow,
    ReconcileOutcome,
    RowBinding,
    RowTrace,
)
from scrimboard.models.match import MatchResult
from scrimboard.models.scoring import ScoringPolicy
from scrimboard.models.team import Team
from scrimboard.services.scoring_policy import compute_total
from scrimboard.utils.text import normalize_name

logger = logging.getLogger(__name__)

GENERIC_IDENTIFIER = re.compile(r"(?:team|slot|#|no\.?)?\s*\d+", re.IGNORECASE)
DIGITS = re.compile(r"\d+")

# Keys the extractor has been seen to use for the team label
LABEL_KEYS = ("team_label", "teamLabel", "teamName", "team_name", "team")


def _to_int(value: Any) -> int | None:
    """Best-effort integer coercion; None when the value is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def coerce_row(raw: Any) -> ExtractedRow | None:
    """Turn one raw extractor row into an ExtractedRow.

    Returns None for rows without a usable label or placement. Missing,
    non-numeric or negative kill counts become 0.
    """
    if isinstance(raw, ExtractedRow):
        return raw
    if not isinstance(raw, Mapping):
        return None

    label = next((raw[k] for k in LABEL_KEYS if raw.get(k) is not None), None)
    if isinstance(label, int) and not isinstance(label, bool):
        label = str(label)
    if not isinstance(label, str) or not label.strip():
        return None

    rank = _to_int(raw.get("rank"))
    if rank is None or rank < 1:
        return None

    kills = _to_int(raw.get("kills"))
    if kills is None or kills < 0:
        kills = 0

    return ExtractedRow(team_label=label, rank=rank, kills=kills)


def slot_number(label: str) -> int | None:
    """Embedded number of a generic slot label, or None for real names."""
    if not GENERIC_IDENTIFIER.fullmatch(label):
        return None
    return int(DIGITS.search(label).group())


class ResultReconciler:
    """Resolves extraction rows against one roster and scoring policy."""

    def __init__(self, roster: list[Team], policy: ScoringPolicy):
        self.roster = roster
        self.policy = policy
        self._normalized = [(team, normalize_name(team.name)) for team in roster]

    def match_team(self, label: str) -> tuple[Team | None, RowBinding]:
        """Find the roster team for a label.

        Returns:
            (team, RowBinding.SLOT | RowBinding.NAME) on success,
            (None, RowBinding.UNMATCHED) otherwise
        """
        slot = slot_number(label)
        if slot is not None and 1 <= slot <= len(self.roster):
            return self.roster[slot - 1], RowBinding.SLOT

        # An empty normalized name is contained in every other name.
        wanted = normalize_name(label)
        for team, name in self._normalized:
            if name == wanted or wanted in name or name in wanted:
                return team, RowBinding.NAME

        return None, RowBinding.UNMATCHED

    def reconcile(self, rows: Iterable[Any]) -> ReconcileOutcome:
        """Reduce raw rows to at most one result per roster team.

        Args:
            rows: Raw extractor rows (mappings or ExtractedRow)

        Returns:
            ReconcileOutcome with results keyed by team id in first-seen
            order, and a trace entry per input row. Never raises; an
            outcome with no results means nothing matched.
        """
        outcome = ReconcileOutcome()
        kept_trace: dict[str, RowTrace] = {}

        for index, raw in enumerate(rows):
            outcome.row_count += 1
            row = coerce_row(raw)
            if row is None:
                logger.warning(f"Skipping malformed extraction row {index}: {raw!r}")
                outcome.trace.append(RowTrace(index=index, label=str(raw), binding=RowBinding.MALFORMED))
                continue

            team, binding = self.match_team(row.team_label)
            trace = RowTrace(
                index=index,
                label=row.team_label,
                binding=binding,
                team_id=team.id if team else None,
            )
            outcome.trace.append(trace)
            if team is None:
                continue

            existing = outcome.results.get(team.id)
            if existing is not None and row.rank >= existing.place:
                trace.binding = RowBinding.SUPERSEDED
                continue

            if existing is not None:
                kept_trace[team.id].binding = RowBinding.SUPERSEDED

            outcome.results[team.id] = MatchResult(
                team_id=team.id,
                kills=row.kills,
                place=row.rank,
                total_points=compute_total(self.policy, row.rank, row.kills),
            )
            kept_trace[team.id] = trace

        unmatched = sum(1 for t in outcome.trace if t.binding == RowBinding.UNMATCHED)
        malformed = sum(1 for t in outcome.trace if t.binding == RowBinding.MALFORMED)
        logger.info(
            f"Reconciled {outcome.row_count} rows: {len(outcome.results)} teams matched, "
            f"{unmatched} unmatched, {malformed} malformed"
        )
        return outcome


def reconcile(roster: list[Team], rows: Iterable[Any], policy: ScoringPolicy) -> dict[str, MatchResult]:
    """Convenience wrapper returning only the team_id -> result mapping."""
    return ResultReconciler(roster, policy).reconcile(rows).results

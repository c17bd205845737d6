"""Manual point adjustments per day."""

import logging
from typing import Literal

from scrimboard.models.tournament import Day, Penalty
from scrimboard.utils.ids import new_id

logger = logging.getLogger(__name__)


def signed_points(kind: Literal["deduction", "bonus"], magnitude: int) -> int:
    """Deductions are stored negative, bonuses positive, whatever sign was typed."""
    points = abs(magnitude)
    return -points if kind == "deduction" else points


def add_penalty(day: Day, team_id: str, points: int, reason: str = "") -> Penalty:
    """Append a sanction to the day.

    The team id is not checked against any roster; a sanction for a team
    that is not on the active roster never shows up in standings.
    """
    penalty = Penalty(id=new_id("p_"), team_id=team_id, points=points, reason=reason)
    day.penalties.append(penalty)
    logger.info(f"Day {day.day_number}: sanction {penalty.id} {points:+d} for team {team_id}")
    return penalty


def remove_penalty(day: Day, penalty_id: str) -> bool:
    """Drop a sanction by id. Returns False when no sanction had that id."""
    before = len(day.penalties)
    day.penalties = [p for p in day.penalties if p.id != penalty_id]
    return len(day.penalties) != before

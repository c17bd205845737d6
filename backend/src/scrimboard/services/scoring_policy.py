"""Point computation for a single lobby result."""

from scrimboard.models.scoring import ScoringPolicy


def placement_points(policy: ScoringPolicy, place: int) -> int:
    """Points for a 1-based placement; unconfigured placements are worth 0."""
    if place < 1 or place > len(policy.rank_points):
        return 0
    return policy.rank_points[place - 1]


def kill_points(policy: ScoringPolicy, kills: int) -> int:
    return kills * policy.points_per_kill


def compute_total(policy: ScoringPolicy, place: int, kills: int) -> int:
    """Total points for one team in one lobby.

    Args:
        policy: Scoring policy in effect when the result is recorded
        place: 1-based placement
        kills: Kill count (assumed non-negative)

    Returns:
        Placement points plus kills * points_per_kill
    """
    return placement_points(policy, place) + kill_points(policy, kills)

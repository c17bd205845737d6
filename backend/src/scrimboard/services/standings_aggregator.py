"""Day standings from recorded lobby results and sanctions."""

from scrimboard.models.scoring import ScoringPolicy
from scrimboard.models.standings import StandingsRow, TeamStanding
from scrimboard.models.team import Team
from scrimboard.models.tournament import Day
from scrimboard.services.scoring_policy import kill_points


def compute_standings(day: Day, roster: list[Team], scoring: ScoringPolicy) -> list[TeamStanding]:
    """Rank every roster team by its day total.

    Every roster team appears, including teams with no results. Results
    and sanctions for teams outside the roster are ignored.

    Placement points are derived as stored total minus kill points at the
    *current* points_per_kill, so editing the kill value after results
    were recorded shifts points between the two columns without changing
    the total.

    Sorting is by total, descending. Ties keep roster order; there is no
    secondary key.
    """
    standings = []
    for team in roster:
        standing = TeamStanding(team=team)

        for match in day.matches:
            result = match.result_for(team.id)
            if result is None:
                continue
            result_kill_pts = kill_points(scoring, result.kills)
            standing.kills += result.kills
            standing.kill_pts += result_kill_pts
            standing.place_pts += result.total_points - result_kill_pts

        standing.penalty_pts = sum(p.points for p in day.penalties if p.team_id == team.id)
        standing.total = standing.place_pts + standing.kill_pts + standing.penalty_pts
        standings.append(standing)

    return sorted(standings, key=lambda s: s.total, reverse=True)


def to_export_rows(standings: list[TeamStanding]) -> list[StandingsRow]:
    """Flatten ranked standings into the rows reporting is allowed to see."""
    return [
        StandingsRow(
            rank=position,
            team_name=s.team.name,
            kills=s.kills,
            place_pts=s.place_pts,
            kill_pts=s.kill_pts,
            sanctions=s.penalty_pts,
            total=s.total,
        )
        for position, s in enumerate(standings, start=1)
    ]

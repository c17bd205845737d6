"""Lobby lifecycle: screenshots, analysis and reset.

States are derived from the lobby's data (see Match.state):

    EMPTY --attach--> PENDING --analyze--> COMPLETED --reset--> PENDING

Screenshots are append-only except for explicit removal, and a reset
keeps them so the lobby can be re-analyzed.
"""

import asyncio
import logging
from typing import Optional

from scrimboard.models.extraction import ReconcileOutcome
from scrimboard.models.match import Match, MatchState
from scrimboard.models.scoring import ScoringPolicy
from scrimboard.models.team import Team
from scrimboard.models.tournament import Day
from scrimboard.services.analysis_logger import AnalysisLogger
from scrimboard.services.errors import (
    ExtractionEmptyError,
    ExtractionUnmatchedError,
    MatchStateError,
)
from scrimboard.services.result_reconciler import ResultReconciler
from scrimboard.services.vision_client import VisionExtractor, split_data_url
from scrimboard.utils.ids import new_id

logger = logging.getLogger(__name__)


def add_match(day: Day, map_name: str | None = None) -> Match:
    """Append an empty lobby numbered after the existing ones."""
    match = Match(id=new_id("m_"), match_number=len(day.matches) + 1, map_name=map_name)
    day.matches.append(match)
    return match


def attach_screenshots(match: Match, screenshots: list[str]) -> Match:
    """Append screenshots; existing ones are never replaced."""
    match.screenshots = [*match.screenshots, *screenshots]
    return match


def remove_screenshot(match: Match, index: int) -> Match:
    """Remove one screenshot by position. Recorded results are left alone."""
    if not 0 <= index < len(match.screenshots):
        raise MatchStateError(f"Lobby {match.match_number} has no screenshot #{index + 1}")
    match.screenshots = [s for i, s in enumerate(match.screenshots) if i != index]
    return match


def reset(match: Match) -> Match:
    """Clear results and completion, keeping screenshots."""
    match.results = []
    match.is_completed = False
    return match


async def _extract_all(
    match: Match, extractor: VisionExtractor, team_names: list[str]
) -> list[list[dict]]:
    """One extraction call per screenshot, in parallel.

    Waits for every call to settle; a call that raises counts as no rows.
    """
    calls = []
    for screenshot in match.screenshots:
        mime_type, payload = split_data_url(screenshot)
        calls.append(extractor.extract_match_data(payload, mime_type, team_names))

    settled = await asyncio.gather(*calls, return_exceptions=True)

    batches = []
    for index, result in enumerate(settled):
        if isinstance(result, BaseException):
            logger.warning(f"Lobby {match.match_number}: extraction of screenshot {index + 1} failed: {result}")
            batches.append([])
        else:
            batches.append(list(result or []))
    return batches


def _capture(
    diagnostics: Optional[AnalysisLogger],
    match: Match,
    roster: list[Team],
    batches: list[list[dict]],
    outcome: Optional[ReconcileOutcome],
    status: str,
) -> None:
    """Write diagnostics if enabled; a failed write never fails the analysis."""
    if not diagnostics:
        return
    try:
        diagnostics.capture(match, roster, batches, outcome, status=status)
    except OSError as e:
        logger.warning(f"Lobby {match.match_number}: could not write analysis diagnostics: {e}")


async def analyze(
    match: Match,
    roster: list[Team],
    policy: ScoringPolicy,
    extractor: VisionExtractor,
    diagnostics: Optional[AnalysisLogger] = None,
) -> ReconcileOutcome:
    """Extract, reconcile and record results for a pending lobby.

    Results are replaced wholesale and the lobby marked completed only when
    at least one row matched the roster; on failure the lobby is untouched.

    Raises:
        MatchStateError: No screenshots, or the lobby is already completed
        ExtractionEmptyError: The extractor found no rows at all
        ExtractionUnmatchedError: Rows were found but none matched the roster
    """
    if match.state == MatchState.COMPLETED:
        raise MatchStateError(f"Lobby {match.match_number} is already completed; reset it first")
    if not match.screenshots:
        raise MatchStateError(f"Lobby {match.match_number} has no screenshots to analyze")

    batches = await _extract_all(match, extractor, [team.name for team in roster])
    rows = [row for batch in batches for row in batch]

    if not rows:
        _capture(diagnostics, match, roster, batches, None, "empty")
        logger.info(f"Lobby {match.match_number}: extractor returned no rows")
        raise ExtractionEmptyError()

    outcome = ResultReconciler(roster, policy).reconcile(rows)

    if outcome.is_empty:
        _capture(diagnostics, match, roster, batches, outcome, "unmatched")
        logger.info(f"Lobby {match.match_number}: {len(rows)} rows, none matched the roster")
        raise ExtractionUnmatchedError()

    match.results = list(outcome.results.values())
    match.is_completed = True
    _capture(diagnostics, match, roster, batches, outcome, "completed")
    logger.info(f"Lobby {match.match_number}: recorded {len(match.results)} team results")
    return outcome

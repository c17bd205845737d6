"""Event business logic: setup, rosters, scoring, lobbies and sanctions.

Every mutating operation loads the whole tournament, applies the change
in memory and saves the whole record back. Nothing is saved when an
operation fails, so errors never leave partial state behind.
"""

import logging
from datetime import date, timedelta
from typing import Callable, Literal, Optional

from scrimboard.models.account import Account, Capability
from scrimboard.models.match import Match
from scrimboard.models.scoring import ScoringPolicy, ScoringPreset, default_scoring
from scrimboard.models.standings import StandingsRow, TeamStanding
from scrimboard.models.tournament import Day, EventType, Penalty, Tournament
from scrimboard.repositories.record_repository import ScoringPresetRepository, TournamentRepository
from scrimboard.services import match_lifecycle, sanction_ledger
from scrimboard.services.analysis_logger import AnalysisLogger
from scrimboard.services.errors import (
    InvalidInputError,
    LicenseError,
    NotFoundError,
    PermissionDeniedError,
    PolicyParseError,
    StaleRevisionError,
)
from scrimboard.services.roster_registry import active_roster, import_roster
from scrimboard.services.standings_aggregator import compute_standings, to_export_rows
from scrimboard.services.vision_client import VisionExtractor
from scrimboard.utils.ids import new_id

logger = logging.getLogger(__name__)

# Days created for a tournament set up without a date range
DEFAULT_TOURNAMENT_DAYS = 10


def build_days(start_date: date | None, end_date: date | None) -> list[Day]:
    """Days for a new tournament: one per date in range, else ten undated days."""
    if start_date is None or end_date is None:
        return [Day(id=new_id("d_"), day_number=i + 1) for i in range(DEFAULT_TOURNAMENT_DAYS)]
    if end_date < start_date:
        raise InvalidInputError("End date is before start date")

    span = (end_date - start_date).days + 1
    return [
        Day(
            id=new_id("d_"),
            day_number=i + 1,
            date=(start_date + timedelta(days=i)).isoformat(),
        )
        for i in range(span)
    ]


def find_day(tournament: Tournament, day_number: int) -> Day:
    day = next((d for d in tournament.days if d.day_number == day_number), None)
    if day is None:
        raise NotFoundError(f"Day {day_number} not found")
    return day


def find_match(day: Day, match_id: str) -> Match:
    match = next((m for m in day.matches if m.id == match_id), None)
    if match is None:
        raise NotFoundError(f"Lobby {match_id} not found on day {day.day_number}")
    return match


class TournamentService:
    """Owner-facing operations on tournaments and scoring presets."""

    def __init__(
        self,
        tournaments: TournamentRepository,
        presets: ScoringPresetRepository,
        extractor: VisionExtractor,
        diagnostics: Optional[AnalysisLogger] = None,
    ):
        self.tournaments = tournaments
        self.presets = presets
        self.extractor = extractor
        self.diagnostics = diagnostics

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def _require_license(self, account: Account) -> None:
        if not account.has_valid_license():
            raise LicenseError("License expired or invalid. Activate a new key to continue.")

    def _authorize(self, account: Account, tournament: Tournament) -> None:
        if tournament.owner_id == account.id:
            return
        if Capability.VIEW_ALL_EVENTS in account.capabilities:
            return
        raise PermissionDeniedError("You do not own this tournament")

    def _load(self, account: Account, tournament_id: str, revision: Optional[int] = None) -> Tournament:
        """Load a tournament for this account.

        Args:
            revision: Revision the caller last saw; a mismatch is a conflict
        """
        self._require_license(account)
        tournament = self.tournaments.get(tournament_id)
        self._authorize(account, tournament)
        if revision is not None and revision != tournament.revision:
            raise StaleRevisionError("This tournament was changed elsewhere. Reload it and try again.")
        return tournament

    def _mutate(
        self,
        account: Account,
        tournament_id: str,
        change: Callable[[Tournament], object],
        revision: Optional[int] = None,
    ) -> Tournament:
        tournament = self._load(account, tournament_id, revision)
        change(tournament)
        return self.tournaments.save(tournament)

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    def list_tournaments(self, account: Account) -> list[Tournament]:
        self._require_license(account)
        return self.tournaments.list_for(account)

    def get_tournament(self, account: Account, tournament_id: str) -> Tournament:
        return self._load(account, tournament_id)

    def create_tournament(
        self,
        account: Account,
        name: str,
        event_type: EventType,
        roster_lines: str | list[str] = "",
        scoring: Optional[ScoringPolicy] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Tournament:
        """Setup wizard: name, type, roster, scoring and days.

        Tournaments get their days up front; scrims start with none and add
        days by date as they are played.
        """
        self._require_license(account)
        days = build_days(start_date, end_date) if event_type == EventType.TOURNAMENT else []
        tournament = Tournament(
            id=new_id("t_"),
            owner_id=account.id,
            name=name.strip() or "Untitled Tournament",
            type=event_type,
            teams=import_roster(roster_lines),
            scoring=scoring or default_scoring(),
            days=days,
            current_day=1,
        )
        self.tournaments.add(tournament)
        logger.info(
            f"Created {event_type.value} '{tournament.name}' ({tournament.id}) "
            f"with {len(tournament.teams)} teams and {len(days)} days"
        )
        return tournament

    def delete_tournament(self, account: Account, tournament_id: str) -> None:
        self._load(account, tournament_id)
        self.tournaments.delete(tournament_id)
        logger.info(f"Deleted tournament {tournament_id}")

    def set_current_day(
        self, account: Account, tournament_id: str, day_number: int, revision: Optional[int] = None
    ) -> Tournament:
        def change(t: Tournament):
            find_day(t, day_number)
            t.current_day = day_number

        return self._mutate(account, tournament_id, change, revision)

    # ------------------------------------------------------------------
    # Rosters
    # ------------------------------------------------------------------

    def update_roster(
        self, account: Account, tournament_id: str, roster_lines: str | list[str], revision: Optional[int] = None
    ) -> Tournament:
        """Replace the global roster, keeping ids of teams whose names are unchanged."""
        def change(t: Tournament):
            t.teams = import_roster(roster_lines, existing=t.teams)

        return self._mutate(account, tournament_id, change, revision)

    def update_day_roster(
        self,
        account: Account,
        tournament_id: str,
        day_number: int,
        roster_lines: str | list[str] | None,
        revision: Optional[int] = None,
    ) -> Tournament:
        """Set or clear a day's roster override.

        Ids are reused against the roster currently active for that day.
        None or an empty paste clears the override.
        """
        def change(t: Tournament):
            day = find_day(t, day_number)
            teams = import_roster(roster_lines or [], existing=active_roster(day, t))
            day.teams = teams or None

        return self._mutate(account, tournament_id, change, revision)

    def add_day(
        self,
        account: Account,
        tournament_id: str,
        day_date: Optional[date] = None,
        roster_lines: str | list[str] | None = None,
        revision: Optional[int] = None,
    ) -> Tournament:
        """Append a day, optionally dated and with its own roster."""
        def change(t: Tournament):
            iso = day_date.isoformat() if day_date else None
            if iso and any(d.date == iso for d in t.days):
                raise InvalidInputError(f"A day for {iso} already exists")
            teams = import_roster(roster_lines, existing=t.teams) if roster_lines else None
            day = Day(id=new_id("d_"), day_number=len(t.days) + 1, date=iso, teams=teams or None)
            t.days.append(day)
            t.current_day = day.day_number

        return self._mutate(account, tournament_id, change, revision)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def update_scoring(
        self, account: Account, tournament_id: str, policy: ScoringPolicy, revision: Optional[int] = None
    ) -> Tournament:
        """Replace the scoring policy. Recorded lobby totals are not recomputed."""
        def change(t: Tournament):
            t.scoring = policy

        return self._mutate(account, tournament_id, change, revision)

    async def parse_scoring_rules(self, rules_text: str) -> ScoringPolicy:
        """Parse free-text rules into a policy.

        Raises:
            PolicyParseError: The parser returned nothing usable
        """
        if not rules_text.strip():
            raise PolicyParseError("Enter the scoring rules to parse")
        policy = await self.extractor.parse_scoring_rules(rules_text)
        if policy is None:
            raise PolicyParseError("Could not understand those scoring rules. The current scoring is unchanged.")
        return policy

    async def apply_scoring_rules(
        self, account: Account, tournament_id: str, rules_text: str, revision: Optional[int] = None
    ) -> Tournament:
        self._load(account, tournament_id, revision)
        policy = await self.parse_scoring_rules(rules_text)
        return self.update_scoring(account, tournament_id, policy, revision)

    # ------------------------------------------------------------------
    # Lobbies
    # ------------------------------------------------------------------

    def add_match(
        self, account: Account, tournament_id: str, day_number: int, map_name: Optional[str] = None,
        revision: Optional[int] = None,
    ) -> Tournament:
        return self._mutate(
            account,
            tournament_id,
            lambda t: match_lifecycle.add_match(find_day(t, day_number), map_name),
            revision,
        )

    def attach_screenshots(
        self, account: Account, tournament_id: str, day_number: int, match_id: str, screenshots: list[str],
        revision: Optional[int] = None,
    ) -> Tournament:
        if not screenshots:
            raise InvalidInputError("No screenshots supplied")
        return self._mutate(
            account,
            tournament_id,
            lambda t: match_lifecycle.attach_screenshots(find_match(find_day(t, day_number), match_id), screenshots),
            revision,
        )

    def remove_screenshot(
        self, account: Account, tournament_id: str, day_number: int, match_id: str, index: int,
        revision: Optional[int] = None,
    ) -> Tournament:
        return self._mutate(
            account,
            tournament_id,
            lambda t: match_lifecycle.remove_screenshot(find_match(find_day(t, day_number), match_id), index),
            revision,
        )

    def reset_match(
        self, account: Account, tournament_id: str, day_number: int, match_id: str,
        revision: Optional[int] = None,
    ) -> Tournament:
        return self._mutate(
            account,
            tournament_id,
            lambda t: match_lifecycle.reset(find_match(find_day(t, day_number), match_id)),
            revision,
        )

    async def analyze_match(
        self, account: Account, tournament_id: str, day_number: int, match_id: str,
        revision: Optional[int] = None,
    ) -> Tournament:
        """Run screenshot analysis for a lobby and save the results.

        Uses the day's active roster and the tournament's current scoring.
        """
        tournament = self._load(account, tournament_id, revision)
        day = find_day(tournament, day_number)
        match = find_match(day, match_id)

        await match_lifecycle.analyze(
            match,
            active_roster(day, tournament),
            tournament.scoring,
            self.extractor,
            diagnostics=self.diagnostics,
        )
        return self.tournaments.save(tournament)

    # ------------------------------------------------------------------
    # Sanctions
    # ------------------------------------------------------------------

    def add_penalty(
        self,
        account: Account,
        tournament_id: str,
        day_number: int,
        team_id: str,
        kind: Literal["deduction", "bonus"],
        points: int,
        reason: str = "",
        revision: Optional[int] = None,
    ) -> Penalty:
        added: list[Penalty] = []

        def change(t: Tournament):
            signed = sanction_ledger.signed_points(kind, points)
            added.append(sanction_ledger.add_penalty(find_day(t, day_number), team_id, signed, reason))

        self._mutate(account, tournament_id, change, revision)
        return added[0]

    def remove_penalty(
        self, account: Account, tournament_id: str, day_number: int, penalty_id: str,
        revision: Optional[int] = None,
    ) -> Tournament:
        def change(t: Tournament):
            if not sanction_ledger.remove_penalty(find_day(t, day_number), penalty_id):
                raise NotFoundError(f"Sanction {penalty_id} not found")

        return self._mutate(account, tournament_id, change, revision)

    # ------------------------------------------------------------------
    # Standings
    # ------------------------------------------------------------------

    def standings(self, account: Account, tournament_id: str, day_number: int) -> list[TeamStanding]:
        tournament = self._load(account, tournament_id)
        day = find_day(tournament, day_number)
        return compute_standings(day, active_roster(day, tournament), tournament.scoring)

    def export_rows(self, account: Account, tournament_id: str, day_number: int) -> list[StandingsRow]:
        return to_export_rows(self.standings(account, tournament_id, day_number))

    # ------------------------------------------------------------------
    # Scoring presets
    # ------------------------------------------------------------------

    def list_presets(self, account: Account) -> list[ScoringPreset]:
        self._require_license(account)
        return self.presets.list_all()

    def save_preset(self, account: Account, name: str, policy: ScoringPolicy) -> ScoringPreset:
        self._require_license(account)
        if not name.strip():
            raise InvalidInputError("Preset name is required")
        preset = ScoringPreset(id=new_id("s_"), name=name.strip(), system=policy)
        self.presets.add(preset)
        return preset

    def delete_preset(self, account: Account, preset_id: str) -> None:
        self._require_license(account)
        self.presets.delete(preset_id)

    def apply_preset(
        self, account: Account, tournament_id: str, preset_id: str, revision: Optional[int] = None
    ) -> Tournament:
        preset = self.presets.get(preset_id)
        return self.update_scoring(account, tournament_id, preset.system, revision)

"""Tests for the tournament application service."""

from datetime import date

import pytest

from scrimboard.models.account import AdminAccount, UserAccount
from scrimboard.models.match import MatchState
from scrimboard.models.scoring import ScoringPolicy
from scrimboard.models.tournament import EventType
from scrimboard.repositories.record_repository import ScoringPresetRepository, TournamentRepository
from scrimboard.repositories.store import InMemoryStore
from scrimboard.services.errors import (
    ExtractionUnmatchedError,
    InvalidInputError,
    LicenseError,
    NotFoundError,
    PermissionDeniedError,
    PolicyParseError,
    StaleRevisionError,
)
from scrimboard.services.tournament_service import DEFAULT_TOURNAMENT_DAYS, TournamentService
from scrimboard.services.vision_client import MockVisionClient

pytestmark = pytest.mark.anyio

SHOT = "data:image/png;base64,iVBORw0KGgo="
FAR_FUTURE = 4_000_000_000.0


@pytest.fixture
def owner():
    return UserAccount(id="u1", username="Ace_Player", license_expiry=FAR_FUTURE)


@pytest.fixture
def stranger():
    return UserAccount(id="u2", username="Bee_Player", license_expiry=FAR_FUTURE)


@pytest.fixture
def extractor():
    return MockVisionClient()


@pytest.fixture
def service(extractor):
    store = InMemoryStore()
    return TournamentService(TournamentRepository(store), ScoringPresetRepository(store), extractor)


@pytest.fixture
def scrim(service, owner):
    tournament = service.create_tournament(owner, "Night Scrims", EventType.SCRIM, "1. Alpha\n2. Bravo\n3. Charlie")
    return service.add_day(owner, tournament.id, date(2026, 7, 1))


class TestSetup:
    def test_tournament_without_dates_gets_default_days(self, service, owner):
        t = service.create_tournament(owner, "Cup", EventType.TOURNAMENT, ["Alpha", "Bravo"])

        assert len(t.days) == DEFAULT_TOURNAMENT_DAYS
        assert [d.day_number for d in t.days[:3]] == [1, 2, 3]
        assert all(d.date is None for d in t.days)
        assert [team.name for team in t.teams] == ["Alpha", "Bravo"]
        assert t.scoring.rank_points[0] == 20

    def test_tournament_date_range_is_inclusive(self, service, owner):
        t = service.create_tournament(
            owner, "Cup", EventType.TOURNAMENT, [], start_date=date(2026, 2, 27), end_date=date(2026, 3, 2)
        )
        assert [d.date for d in t.days] == ["2026-02-27", "2026-02-28", "2026-03-01", "2026-03-02"]

    def test_reversed_date_range(self, service, owner):
        with pytest.raises(InvalidInputError):
            service.create_tournament(
                owner, "Cup", EventType.TOURNAMENT, [], start_date=date(2026, 3, 2), end_date=date(2026, 3, 1)
            )

    def test_scrim_starts_without_days(self, service, owner):
        t = service.create_tournament(owner, "  ", EventType.SCRIM)
        assert t.days == []
        assert t.name == "Untitled Tournament"

    def test_add_day_numbers_and_selects_it(self, service, owner, scrim):
        t = service.add_day(owner, scrim.id, date(2026, 7, 2), roster_lines="Delta\nAlpha")

        assert [d.day_number for d in t.days] == [1, 2]
        assert t.current_day == 2
        assert [team.name for team in t.days[1].teams] == ["Delta", "Alpha"]
        assert t.days[1].teams[1].id == t.teams[0].id

    def test_add_day_rejects_duplicate_date(self, service, owner, scrim):
        with pytest.raises(InvalidInputError):
            service.add_day(owner, scrim.id, date(2026, 7, 1))

    def test_set_current_day(self, service, owner):
        t = service.create_tournament(owner, "Cup", EventType.TOURNAMENT)
        assert service.set_current_day(owner, t.id, 4).current_day == 4
        with pytest.raises(NotFoundError):
            service.set_current_day(owner, t.id, 42)


class TestAccess:
    def test_stranger_cannot_read(self, service, stranger, scrim):
        with pytest.raises(PermissionDeniedError):
            service.get_tournament(stranger, scrim.id)

    def test_admin_sees_everything(self, service, scrim):
        assert service.get_tournament(AdminAccount(), scrim.id).id == scrim.id
        assert [t.id for t in service.list_tournaments(AdminAccount())] == [scrim.id]

    def test_expired_license_blocks_operations(self, service, scrim):
        expired = UserAccount(id="u1", username="Ace_Player", license_expiry=1.0)
        with pytest.raises(LicenseError):
            service.list_tournaments(expired)
        with pytest.raises(LicenseError):
            service.add_match(expired, scrim.id, 1)

    def test_client_revision_mismatch(self, service, owner, scrim):
        with pytest.raises(StaleRevisionError):
            service.add_match(owner, scrim.id, 1, revision=scrim.revision - 1)

    def test_matching_client_revision(self, service, owner, scrim):
        t = service.add_match(owner, scrim.id, 1, revision=scrim.revision)
        assert t.revision == scrim.revision + 1

    def test_delete(self, service, owner, scrim):
        service.delete_tournament(owner, scrim.id)
        with pytest.raises(NotFoundError):
            service.get_tournament(owner, scrim.id)


class TestRosters:
    def test_update_roster_keeps_ids(self, service, owner, scrim):
        alpha_id = scrim.teams[0].id
        t = service.update_roster(owner, scrim.id, ["Alpha", "Echo"])

        assert t.teams[0].id == alpha_id
        assert [team.name for team in t.teams] == ["Alpha", "Echo"]

    def test_day_roster_override_and_clear(self, service, owner, scrim):
        t = service.update_day_roster(owner, scrim.id, 1, "Charlie\nFoxtrot")
        assert [team.name for team in t.days[0].teams] == ["Charlie", "Foxtrot"]
        assert t.days[0].teams[0].id == scrim.teams[2].id

        cleared = service.update_day_roster(owner, scrim.id, 1, None)
        assert cleared.days[0].teams is None


class TestLobbies:
    async def test_analyze_records_results_and_standings(self, service, owner, scrim, extractor):
        extractor.rows_per_image = [[
            {"teamName": "TEAM2", "rank": 1, "kills": 6},
            {"teamName": "alpha", "rank": 2, "kills": 1},
        ]]
        t = service.add_match(owner, scrim.id, 1)
        match_id = t.days[0].matches[0].id
        service.attach_screenshots(owner, scrim.id, 1, match_id, [SHOT])

        t = await service.analyze_match(owner, scrim.id, 1, match_id)

        match = t.days[0].matches[0]
        assert match.state == MatchState.COMPLETED
        standings = service.standings(owner, scrim.id, 1)
        assert [(s.team.name, s.total) for s in standings] == [("Bravo", 26), ("Alpha", 17), ("Charlie", 0)]

    async def test_failed_analysis_saves_nothing(self, service, owner, scrim, extractor):
        extractor.rows_per_image = [[{"teamName": "Nobody", "rank": 1, "kills": 0}]]
        t = service.add_match(owner, scrim.id, 1)
        match_id = t.days[0].matches[0].id
        t = service.attach_screenshots(owner, scrim.id, 1, match_id, [SHOT])

        with pytest.raises(ExtractionUnmatchedError):
            await service.analyze_match(owner, scrim.id, 1, match_id)

        after = service.get_tournament(owner, scrim.id)
        assert after.revision == t.revision
        assert after.days[0].matches[0].state == MatchState.PENDING

    def test_reset_and_remove_screenshot(self, service, owner, scrim):
        t = service.add_match(owner, scrim.id, 1)
        match_id = t.days[0].matches[0].id
        service.attach_screenshots(owner, scrim.id, 1, match_id, [SHOT, SHOT])

        t = service.remove_screenshot(owner, scrim.id, 1, match_id, 0)
        assert len(t.days[0].matches[0].screenshots) == 1
        t = service.reset_match(owner, scrim.id, 1, match_id)
        assert t.days[0].matches[0].screenshots == [SHOT]

    def test_unknown_lobby(self, service, owner, scrim):
        with pytest.raises(NotFoundError):
            service.reset_match(owner, scrim.id, 1, "m_missing")

    def test_empty_screenshot_upload(self, service, owner, scrim):
        t = service.add_match(owner, scrim.id, 1)
        with pytest.raises(InvalidInputError):
            service.attach_screenshots(owner, scrim.id, 1, t.days[0].matches[0].id, [])


class TestScoringAndSanctions:
    async def test_parse_failure_keeps_policy(self, service, owner, scrim):
        with pytest.raises(PolicyParseError):
            await service.apply_scoring_rules(owner, scrim.id, "something vague")
        assert service.get_tournament(owner, scrim.id).scoring == scrim.scoring

    async def test_parsed_rules_are_applied(self, service, owner, scrim, extractor):
        extractor.policy = ScoringPolicy(points_per_kill=2, rank_points=[15, 12])
        t = await service.apply_scoring_rules(owner, scrim.id, "15, 12, 2 per kill")
        assert t.scoring == extractor.policy

    async def test_blank_rules_are_rejected(self, service):
        with pytest.raises(PolicyParseError):
            await service.parse_scoring_rules("   ")

    def test_presets(self, service, owner, scrim):
        preset = service.save_preset(owner, "Pro League", ScoringPolicy(points_per_kill=1, rank_points=[12, 9]))
        assert [p.name for p in service.list_presets(owner)] == ["Pro League"]

        t = service.apply_preset(owner, scrim.id, preset.id)
        assert t.scoring.rank_points == [12, 9]

        service.delete_preset(owner, preset.id)
        assert service.list_presets(owner) == []

    def test_sanctions_flow_into_standings(self, service, owner, scrim):
        bravo = scrim.teams[1]
        penalty = service.add_penalty(owner, scrim.id, 1, bravo.id, "deduction", 5, "Late")
        service.add_penalty(owner, scrim.id, 1, scrim.teams[2].id, "bonus", -3)

        rows = service.export_rows(owner, scrim.id, 1)
        assert [(r.team_name, r.total) for r in rows] == [("Charlie", 3), ("Alpha", 0), ("Bravo", -5)]

        service.remove_penalty(owner, scrim.id, 1, penalty.id)
        with pytest.raises(NotFoundError):
            service.remove_penalty(owner, scrim.id, 1, penalty.id)

"""Tests for the key-value store adapters and typed repositories."""

import pytest

from scrimboard.models.account import AdminAccount, UserAccount
from scrimboard.models.scoring import ScoringPolicy, ScoringPreset
from scrimboard.models.team import Team
from scrimboard.models.tournament import Day, EventType, Penalty, Tournament
from scrimboard.repositories.record_repository import (
    ScoringPresetRepository,
    TournamentRepository,
    UserRepository,
)
from scrimboard.repositories.store import TOURNAMENTS, DuckDBStore, InMemoryStore
from scrimboard.services.errors import NotFoundError, StaleRevisionError


@pytest.fixture(params=["memory", "duckdb"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return DuckDBStore(tmp_path / "nested" / "scrimboard.duckdb")


def _tournament(tid="t1", owner="u1") -> Tournament:
    return Tournament(
        id=tid,
        owner_id=owner,
        name="Summer Cup",
        type=EventType.SCRIM,
        teams=[Team(id="a", name="Alpha")],
        days=[Day(id="d1", day_number=1, date="2026-07-01", penalties=[Penalty(id="p1", team_id="a", points=-5)])],
    )


class TestStoreAdapters:
    def test_missing_collection_loads_empty(self, store):
        assert store.load(TOURNAMENTS) == []

    def test_save_replaces_whole_collection(self, store):
        store.save("things", [{"id": 1}, {"id": 2}])
        store.save("things", [{"id": 3}])
        assert store.load("things") == [{"id": 3}]

    def test_loaded_records_are_copies(self, store):
        store.save("things", [{"id": 1}])
        store.load("things")[0]["id"] = 99
        assert store.load("things") == [{"id": 1}]

    def test_duckdb_persists_across_instances(self, tmp_path):
        path = tmp_path / "scrimboard.duckdb"
        DuckDBStore(path).save("things", [{"name": "kept"}])
        assert DuckDBStore(path).load("things") == [{"name": "kept"}]


class TestTournamentRepository:
    def test_round_trip(self, store):
        repo = TournamentRepository(store)
        repo.add(_tournament())

        loaded = repo.get("t1")

        assert loaded == _tournament()
        assert loaded.days[0].teams is None

    def test_save_increments_revision(self, store):
        repo = TournamentRepository(store)
        repo.add(_tournament())

        tournament = repo.get("t1")
        tournament.name = "Renamed"
        saved = repo.save(tournament)

        assert saved.revision == 1
        assert repo.get("t1").name == "Renamed"
        assert repo.get("t1").revision == 1

    def test_stale_save_is_rejected(self, store):
        repo = TournamentRepository(store)
        repo.add(_tournament())
        first = repo.get("t1")
        second = repo.get("t1")

        repo.save(first)
        second.name = "Lost update"

        with pytest.raises(StaleRevisionError):
            repo.save(second)
        assert repo.get("t1").name == "Summer Cup"

    def test_save_deleted_tournament(self, store):
        repo = TournamentRepository(store)
        repo.add(_tournament())
        tournament = repo.get("t1")
        repo.delete("t1")

        with pytest.raises(NotFoundError):
            repo.save(tournament)

    def test_list_for_owner_and_admin(self, store):
        repo = TournamentRepository(store)
        repo.add(_tournament("t1", owner="u1"))
        repo.add(_tournament("t2", owner="u2"))

        user = UserAccount(id="u1", username="Ace_Player")
        assert [t.id for t in repo.list_for(user)] == ["t1"]
        assert [t.id for t in repo.list_for(AdminAccount())] == ["t1", "t2"]

    def test_get_unknown(self, store):
        with pytest.raises(NotFoundError):
            TournamentRepository(store).get("missing")


class TestOtherRepositories:
    def test_user_upsert(self, store):
        repo = UserRepository(store)
        user = UserAccount(id="u1", username="Ace_Player", license_expiry=10.0)
        repo.upsert(user)
        user.license_expiry = 20.0
        repo.upsert(user)

        assert len(repo.list_all()) == 1
        assert repo.find_by_username("Ace_Player").license_expiry == 20.0

    def test_presets(self, store):
        repo = ScoringPresetRepository(store)
        repo.add(ScoringPreset(id="s1", name="Pro League", system=ScoringPolicy(2, [12, 9, 7])))

        assert repo.get("s1").system.rank_points == [12, 9, 7]
        repo.delete("s1")
        with pytest.raises(NotFoundError):
            repo.delete("s1")

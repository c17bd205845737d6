"""Typed repositories over the key-value store."""

import logging
from typing import Callable, Generic, TypeVar

from scrimboard.models.account import Account, Capability, LicenseKey, UserAccount
from scrimboard.models.scoring import ScoringPreset
from scrimboard.models.tournament import Tournament
from scrimboard.repositories.store import (
    LICENSE_KEYS,
    SCORING_PRESETS,
    TOURNAMENTS,
    USERS,
    KeyValueStore,
)
from scrimboard.services.errors import NotFoundError, StaleRevisionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordRepository(Generic[T]):
    """Whole-collection load/save for one record type."""

    collection: str = ""

    def __init__(self, store: KeyValueStore, from_record: Callable[[dict], T]):
        self.store = store
        self._from_record = from_record

    def list_all(self) -> list[T]:
        return [self._from_record(r) for r in self.store.load(self.collection)]

    def save_all(self, items: list[T]) -> None:
        self.store.save(self.collection, [item.to_dict() for item in items])


class UserRepository(RecordRepository[UserAccount]):
    collection = USERS

    def __init__(self, store: KeyValueStore):
        super().__init__(store, UserAccount.from_dict)

    def find_by_username(self, username: str) -> UserAccount | None:
        return next((u for u in self.list_all() if u.username == username), None)

    def get(self, user_id: str) -> UserAccount:
        user = next((u for u in self.list_all() if u.id == user_id), None)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def upsert(self, user: UserAccount) -> None:
        users = self.list_all()
        for i, existing in enumerate(users):
            if existing.id == user.id:
                users[i] = user
                break
        else:
            users.append(user)
        self.save_all(users)


class LicenseKeyRepository(RecordRepository[LicenseKey]):
    collection = LICENSE_KEYS

    def __init__(self, store: KeyValueStore):
        super().__init__(store, LicenseKey.from_dict)

    def find(self, code: str) -> LicenseKey | None:
        return next((k for k in self.list_all() if k.code == code), None)

    def upsert(self, key: LicenseKey) -> None:
        keys = self.list_all()
        for i, existing in enumerate(keys):
            if existing.code == key.code:
                keys[i] = key
                break
        else:
            keys.append(key)
        self.save_all(keys)


class ScoringPresetRepository(RecordRepository[ScoringPreset]):
    collection = SCORING_PRESETS

    def __init__(self, store: KeyValueStore):
        super().__init__(store, ScoringPreset.from_dict)

    def get(self, preset_id: str) -> ScoringPreset:
        preset = next((p for p in self.list_all() if p.id == preset_id), None)
        if preset is None:
            raise NotFoundError(f"Scoring preset {preset_id} not found")
        return preset

    def add(self, preset: ScoringPreset) -> None:
        self.save_all([*self.list_all(), preset])

    def delete(self, preset_id: str) -> None:
        presets = self.list_all()
        remaining = [p for p in presets if p.id != preset_id]
        if len(remaining) == len(presets):
            raise NotFoundError(f"Scoring preset {preset_id} not found")
        self.save_all(remaining)


class TournamentRepository(RecordRepository[Tournament]):
    """Tournaments with optimistic revision checks on save."""

    collection = TOURNAMENTS

    def __init__(self, store: KeyValueStore):
        super().__init__(store, Tournament.from_dict)

    def get(self, tournament_id: str) -> Tournament:
        record = next(
            (r for r in self.store.load(self.collection) if r["id"] == tournament_id), None
        )
        if record is None:
            raise NotFoundError(f"Tournament {tournament_id} not found")
        return Tournament.from_dict(record)

    def list_for(self, account: Account) -> list[Tournament]:
        """All tournaments for admins, owned tournaments for everyone else."""
        tournaments = self.list_all()
        if Capability.VIEW_ALL_EVENTS in account.capabilities:
            return tournaments
        return [t for t in tournaments if t.owner_id == account.id]

    def add(self, tournament: Tournament) -> None:
        records = self.store.load(self.collection)
        records.append(tournament.to_dict())
        self.store.save(self.collection, records)

    def save(self, tournament: Tournament) -> Tournament:
        """Overwrite a stored tournament.

        Raises:
            NotFoundError: The tournament was deleted
            StaleRevisionError: Someone saved a newer revision since this copy was loaded
        """
        records = self.store.load(self.collection)
        index = next((i for i, r in enumerate(records) if r["id"] == tournament.id), None)
        if index is None:
            raise NotFoundError(f"Tournament {tournament.id} not found")

        stored_revision = int(records[index].get("revision", 0))
        if stored_revision != tournament.revision:
            logger.warning(
                f"Rejected stale save of {tournament.id}: revision {tournament.revision}, stored {stored_revision}"
            )
            raise StaleRevisionError(
                "This tournament was changed elsewhere. Reload it and try again."
            )

        tournament.revision = stored_revision + 1
        records[index] = tournament.to_dict()
        self.store.save(self.collection, records)
        return tournament

    def delete(self, tournament_id: str) -> None:
        records = self.store.load(self.collection)
        remaining = [r for r in records if r["id"] != tournament_id]
        if len(remaining) == len(records):
            raise NotFoundError(f"Tournament {tournament_id} not found")
        self.store.save(self.collection, remaining)

"""License keys, account registration/login and sessions.

Smart Keys can be verified without a lookup: the last segment is a
checksum over the other segments plus a server-side salt. A key, whether
recorded by an admin or first seen as a valid Smart Key, binds to at most
one account.
"""

import logging
import re
import secrets
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from scrimboard.models.account import (
    Account,
    AdminAccount,
    Capability,
    LicenseDuration,
    LicenseKey,
    UserAccount,
)
from scrimboard.repositories.record_repository import LicenseKeyRepository, UserRepository
from scrimboard.services.errors import AuthError, LicenseError, PermissionDeniedError

logger = logging.getLogger(__name__)

HOUR = 3600
DAY = 24 * HOUR

DURATION_SECONDS: dict[LicenseDuration, int | None] = {
    LicenseDuration.H1: HOUR,
    LicenseDuration.H2: 2 * HOUR,
    LicenseDuration.H3: 3 * HOUR,
    LicenseDuration.D1: DAY,
    LicenseDuration.D3: 3 * DAY,
    LicenseDuration.D7: 7 * DAY,
    LicenseDuration.D14: 14 * DAY,
    LicenseDuration.D21: 21 * DAY,
    LicenseDuration.M1: 30 * DAY,
    LicenseDuration.M3: 90 * DAY,
    LicenseDuration.M6: 180 * DAY,
    LicenseDuration.Y1: 365 * DAY,
    LicenseDuration.INFINITY: None,
}

# Lifetime licenses are stored as a far-future expiry
LIFETIME_SECONDS = 100 * 365 * DAY

KEY_CODE_MAP: dict[str, LicenseDuration] = {
    "1H": LicenseDuration.H1,
    "2H": LicenseDuration.H2,
    "3H": LicenseDuration.H3,
    "1D": LicenseDuration.D1,
    "3D": LicenseDuration.D3,
    "7D": LicenseDuration.D7,
    "14": LicenseDuration.D14,
    "21": LicenseDuration.D21,
    "1M": LicenseDuration.M1,
    "3M": LicenseDuration.M3,
    "6M": LicenseDuration.M6,
    "1Y": LicenseDuration.Y1,
    "IN": LicenseDuration.INFINITY,
}
DURATION_CODES = {duration: code for code, duration in KEY_CODE_MAP.items()}

KEY_PREFIX = "BH"
BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36[remainder])
    return "".join(reversed(digits))


def simple_hash(text: str) -> str:
    """Four-character checksum: 32-bit rolling hash (h * 31 + c), base36, upper-cased."""
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return _to_base36(abs(value))[:4].upper()


def generate_smart_key(duration: LicenseDuration, salt: str) -> str:
    """New Smart Key, e.g. "BH-7D-K3ZQ-1A2B"."""
    type_code = DURATION_CODES.get(duration, "7D")
    rand = "".join(secrets.choice(BASE36) for _ in range(4)).upper()
    checksum = simple_hash(f"{KEY_PREFIX}-{type_code}-{rand}-{salt}")
    return f"{KEY_PREFIX}-{type_code}-{rand}-{checksum}"


@dataclass
class SmartKeyCheck:
    valid: bool
    duration: LicenseDuration | None = None


def verify_smart_key(key: str, salt: str) -> SmartKeyCheck:
    """Recompute the checksum of a Smart Key."""
    parts = key.strip().upper().split("-")
    if len(parts) != 4 or parts[0] != KEY_PREFIX:
        return SmartKeyCheck(valid=False)

    _, type_code, rand, provided_checksum = parts
    duration = KEY_CODE_MAP.get(type_code)
    if duration is None:
        return SmartKeyCheck(valid=False)

    if simple_hash(f"{KEY_PREFIX}-{type_code}-{rand}-{salt}") != provided_checksum:
        return SmartKeyCheck(valid=False)
    return SmartKeyCheck(valid=True, duration=duration)


def validate_unique_id(username: str) -> bool:
    """At least one uppercase, one lowercase and one non-alphanumeric character."""
    return (
        re.search(r"[A-Z]", username) is not None
        and re.search(r"[a-z]", username) is not None
        and re.search(r"[^a-zA-Z0-9]", username) is not None
    )


def expiry_for(duration: LicenseDuration, now: float) -> float:
    seconds = DURATION_SECONDS[duration]
    return now + (seconds if seconds is not None else LIFETIME_SECONDS)


class LicenseService:
    """Registration, login, renewal and admin key management."""

    def __init__(
        self,
        users: UserRepository,
        keys: LicenseKeyRepository,
        salt: str,
        admin_username: str,
        admin_password: str,
        clock: Callable[[], float] = time.time,
    ):
        self.users = users
        self.keys = keys
        self.salt = salt
        self.admin_username = admin_username
        self.admin_password = admin_password
        self.clock = clock

    # ------------------------------------------------------------------
    # Key resolution
    # ------------------------------------------------------------------

    def _resolve_key(self, code: str, claimant: str) -> tuple[LicenseKey, bool]:
        """Find or create the record for a key being claimed.

        Returns:
            (record, is_new) - is_new when a valid Smart Key was not yet recorded

        Raises:
            LicenseError: Revoked, claimed already, or neither recorded nor a valid Smart Key
        """
        record = self.keys.find(code)
        if record is not None:
            if record.is_revoked:
                raise LicenseError("License key revoked")
            if record.is_used:
                owner = record.used_by_username or "another user"
                if owner == claimant:
                    raise LicenseError("License key has already been used")
                raise LicenseError(f"License key is already in use by {owner}")
            return record, False

        check = verify_smart_key(code, self.salt)
        if not check.valid:
            raise LicenseError("Invalid license key")
        return LicenseKey(
            code=code,
            duration=check.duration,
            duration_seconds=DURATION_SECONDS[check.duration],
            created_at=self.clock(),
        ), True

    def _claim(self, record: LicenseKey, user: UserAccount) -> None:
        now = self.clock()
        record.is_used = True
        record.used_by_user_id = user.id
        record.used_by_username = user.username
        self.keys.upsert(record)

        user.license_key = record.code
        user.password = record.code
        user.license_expiry = expiry_for(record.duration, now)
        user.last_active = now
        self.users.upsert(user)
        logger.info(f"License {record.code} ({record.duration.value}) claimed by {user.username}")

    # ------------------------------------------------------------------
    # Account flows
    # ------------------------------------------------------------------

    def register(self, username: str, key: str) -> UserAccount:
        """Create an account bound to an unclaimed key."""
        if not validate_unique_id(username):
            raise LicenseError("Unique ID needs 1 uppercase, 1 lowercase and 1 special character")
        if self.users.find_by_username(username) is not None or username == self.admin_username:
            raise LicenseError("Unique ID already registered")

        code = key.strip().upper()
        record, _ = self._resolve_key(code, username)
        user = UserAccount(id=uuid.uuid4().hex[:9], username=username)
        self._claim(record, user)
        return user

    def login(self, username: str, key: str) -> Account:
        """Log in with the account's current key, or renew with a new one.

        An unknown username with a valid unclaimed Smart Key recreates the
        account (same key used from a new device).
        """
        if username == self.admin_username and key == self.admin_password:
            logger.info("Admin login")
            return AdminAccount(id="admin", username=self.admin_username)

        code = key.strip().upper()
        user = self.users.find_by_username(username)

        if user is None:
            record = self.keys.find(code)
            if record is not None and record.is_used and record.used_by_username != username:
                raise LicenseError("This license key belongs to another user")
            if record is not None and record.is_used:
                raise LicenseError("User not found")
            try:
                record, _ = self._resolve_key(code, username)
            except LicenseError:
                raise LicenseError("User not found and key invalid")
            user = UserAccount(id=uuid.uuid4().hex[:9], username=username)
            self._claim(record, user)
            return user

        if code and code in (user.license_key, user.password):
            user.last_active = self.clock()
            self.users.upsert(user)
            return user

        try:
            record, _ = self._resolve_key(code, user.username)
        except LicenseError as e:
            raise LicenseError(f"Invalid credentials or license key: {e}")
        self._claim(record, user)
        return user

    def renew(self, user: UserAccount, key: str) -> UserAccount:
        """Activate a new key for an account whose license lapsed."""
        code = key.strip().upper()
        if len(code) < 5:
            raise LicenseError("Invalid key format")
        record, _ = self._resolve_key(code, user.username)
        current = self.users.find_by_username(user.username) or user
        self._claim(record, current)
        return current

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def _require_admin(self, account: Account) -> None:
        if Capability.MANAGE_LICENSES not in account.capabilities:
            raise PermissionDeniedError("Admin access required")

    def generate_key(self, account: Account, duration: LicenseDuration) -> LicenseKey:
        self._require_admin(account)
        record = LicenseKey(
            code=generate_smart_key(duration, self.salt),
            duration=duration,
            duration_seconds=DURATION_SECONDS[duration],
            created_at=self.clock(),
        )
        self.keys.upsert(record)
        logger.info(f"Generated {duration.value} license key {record.code}")
        return record

    def list_keys(self, account: Account) -> list[LicenseKey]:
        self._require_admin(account)
        return self.keys.list_all()

    def list_users(self, account: Account) -> list[UserAccount]:
        self._require_admin(account)
        return self.users.list_all()

    def reset_user_key(self, account: Account, user_id: str) -> UserAccount:
        """Revoke a user's current key and expire their license."""
        self._require_admin(account)
        user = self.users.get(user_id)
        if user.license_key:
            record = self.keys.find(user.license_key)
            if record is not None:
                record.is_revoked = True
                self.keys.upsert(record)
        user.license_key = None
        user.password = ""
        user.license_expiry = 0
        self.users.upsert(user)
        logger.info(f"Reset license for {user.username}")
        return user


@dataclass
class Session:
    token: str
    account: Account
    last_access: float


class SessionRegistry:
    """In-memory bearer-token sessions with sliding expiry."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def open(self, account: Account) -> str:
        token = f"sess_{uuid.uuid4().hex}"
        with self._lock:
            self._prune(self.clock())
            self._sessions[token] = Session(token=token, account=account, last_access=self.clock())
        return token

    def resolve(self, token: Optional[str]) -> Account:
        """Account for a token, refreshing its expiry.

        Raises:
            AuthError: Unknown or expired token
        """
        now = self.clock()
        with self._lock:
            session = self._sessions.get(token or "")
            if session is None:
                raise AuthError("Not logged in")
            if now - session.last_access >= self.ttl_seconds:
                self._sessions.pop(session.token, None)
                raise AuthError("Session expired")
            session.last_access = now
            return session.account

    def update(self, token: str, account: Account) -> None:
        with self._lock:
            if token in self._sessions:
                self._sessions[token].account = account

    def close(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def _prune(self, now: float) -> None:
        expired = [t for t, s in self._sessions.items() if now - s.last_access >= self.ttl_seconds]
        for token in expired:
            self._sessions.pop(token, None)

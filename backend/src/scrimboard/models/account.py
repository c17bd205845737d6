"""Account, role and license models."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Literal, Union


class Capability(str, Enum):
    """Operations an account may perform."""

    MANAGE_OWN_EVENTS = "manage_own_events"
    VIEW_ALL_EVENTS = "view_all_events"
    MANAGE_LICENSES = "manage_licenses"


class LicenseDuration(str, Enum):
    """License lengths a key can grant."""

    H1 = "1h"
    H2 = "2h"
    H3 = "3h"
    D1 = "1d"
    D3 = "3d"
    D7 = "7d"
    D14 = "14d"
    D21 = "21d"
    M1 = "1m"
    M3 = "3m"
    M6 = "6m"
    Y1 = "1y"
    INFINITY = "infinity"


@dataclass
class AdminAccount:
    """Built-in administrator. Never persisted and never expires."""

    CAPABILITIES: ClassVar[frozenset[Capability]] = frozenset(Capability)

    id: str = "admin"
    username: str = "admin"
    role: Literal["admin"] = "admin"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self.CAPABILITIES

    def has_valid_license(self, now: float | None = None) -> bool:
        return True


@dataclass
class UserAccount:
    """A licensed operator account."""

    CAPABILITIES: ClassVar[frozenset[Capability]] = frozenset({Capability.MANAGE_OWN_EVENTS})

    id: str
    username: str
    email: str = ""
    password: str = ""  # Holds the current license key
    license_key: str | None = None
    license_expiry: float | None = None  # Epoch seconds
    last_active: float = field(default_factory=time.time)
    role: Literal["user"] = "user"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self.CAPABILITIES

    def has_valid_license(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return self.license_expiry is not None and self.license_expiry > now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "password": self.password,
            "role": self.role,
            "license_key": self.license_key,
            "license_expiry": self.license_expiry,
            "last_active": self.last_active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserAccount":
        return cls(
            id=data["id"],
            username=data["username"],
            email=data.get("email", ""),
            password=data.get("password", ""),
            license_key=data.get("license_key"),
            license_expiry=data.get("license_expiry"),
            last_active=data.get("last_active", 0.0),
        )


Account = Union[AdminAccount, UserAccount]


@dataclass
class LicenseKey:
    """A recorded license key and who claimed it."""

    code: str
    duration: LicenseDuration
    duration_seconds: int | None  # None for infinity
    is_used: bool = False
    used_by_user_id: str | None = None
    used_by_username: str | None = None
    is_revoked: bool = False
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "duration": self.duration.value,
            "duration_seconds": self.duration_seconds,
            "is_used": self.is_used,
            "used_by_user_id": self.used_by_user_id,
            "used_by_username": self.used_by_username,
            "is_revoked": self.is_revoked,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LicenseKey":
        return cls(
            code=data["code"],
            duration=LicenseDuration(data["duration"]),
            duration_seconds=data.get("duration_seconds"),
            is_used=bool(data.get("is_used", False)),
            used_by_user_id=data.get("used_by_user_id"),
            used_by_username=data.get("used_by_username"),
            is_revoked=bool(data.get("is_revoked", False)),
            created_at=data.get("created_at", 0.0),
        )

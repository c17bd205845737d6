"""Team model."""

from dataclasses import dataclass


@dataclass
class Team:
    """A team on a roster. Identity is the id; the name is display-only."""

    id: str
    name: str
    logo: str | None = None  # Optional logo URL

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "logo": self.logo}

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(id=data["id"], name=data["name"], logo=data.get("logo"))

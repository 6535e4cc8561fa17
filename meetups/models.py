"""
Domain models for meetup groups and the aggregate result.
"""

from dataclasses import dataclass, field, asdict
from typing import Any

from .exceptions import MeetupError


@dataclass
class Group:
    """A meetup group as served to callers.

    The provider's group slug identifies the group but is not stored here;
    it is the cache key and fetch parameter.
    """
    name: str
    url: str
    members: int
    city: str
    country: str
    continent: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Group":
        return cls(
            name=data.get("name", ""),
            url=data.get("url", ""),
            members=int(data.get("members", 0)),
            city=data.get("city", ""),
            country=data.get("country", ""),
            continent=data.get("continent", ""),
        )


@dataclass
class GroupOutcome:
    """Result of loading one group: exactly one of group or error is set."""
    group_id: str
    group: Group | None = None
    error: MeetupError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AggregateResult:
    """Every successfully loaded group plus one message per failed load.

    Group order follows load completion, not discovery order.
    """
    groups: list[Group] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

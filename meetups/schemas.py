"""
Pydantic models for API responses.

The /api/groups body is {"Groups": [...], "Errors": [...]}, each group an
object with Name, URL, Members, City, Country and Continent. Both lists are
always present, even when empty.
"""

from pydantic import BaseModel, ConfigDict, Field

from .models import AggregateResult, Group


class GroupResponse(BaseModel):
    """A single meetup group."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    url: str = Field(alias="URL")
    members: int = Field(alias="Members")
    city: str = Field(alias="City")
    country: str = Field(alias="Country")
    continent: str = Field(default="", alias="Continent")

    @classmethod
    def from_group(cls, group: Group) -> "GroupResponse":
        return cls(
            name=group.name,
            url=group.url,
            members=group.members,
            city=group.city,
            country=group.country,
            continent=group.continent,
        )

    def to_group(self) -> Group:
        return Group(
            name=self.name,
            url=self.url,
            members=self.members,
            city=self.city,
            country=self.country,
            continent=self.continent,
        )


class AggregateResponse(BaseModel):
    """Groups that loaded plus one message per group that did not."""
    model_config = ConfigDict(populate_by_name=True)

    groups: list[GroupResponse] = Field(default_factory=list, alias="Groups")
    errors: list[str] = Field(default_factory=list, alias="Errors")

    @classmethod
    def from_result(cls, result: AggregateResult) -> "AggregateResponse":
        return cls(
            groups=[GroupResponse.from_group(g) for g in result.groups],
            errors=list(result.errors),
        )


class StatusResponse(BaseModel):
    status: str
    version: str
    meetup_key_configured: bool

"""
Group Fetcher - Load a single meetup group from the Meetup API.

API docs: http://www.meetup.com/meetup_api/docs/
"""

import logging
from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from .exceptions import DecodeError, ProviderError, TransportError
from .http import HTTPClient
from .models import Group

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.meetup.com/{id}?sign=true&key={key}"


class ProviderMessage(BaseModel):
    """One entry of the provider's `errors` array."""
    message: str = ""

    @field_validator("message", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class GroupPayload(BaseModel):
    """Meetup API group envelope. Unknown fields are ignored."""
    name: str = ""
    link: str = ""
    city: str = ""
    country: str = ""
    members: int = 0
    errors: list[ProviderMessage] = []

    @field_validator("name", "link", "city", "country", "members", "errors", mode="before")
    @classmethod
    def null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        """JSON null decodes to the field default."""
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value

    def to_group(self) -> Group:
        return Group(
            name=self.name,
            url=self.link,
            members=self.members,
            city=self.city,
            country=self.country,
        )


def parse_group(data: Any) -> Group:
    """
    Map a decoded API response onto a Group.

    Raises:
        DecodeError: If the payload does not have the expected shape
        ProviderError: If the provider reported errors; the message is the
            newline-joined list of provider messages
    """
    try:
        payload = GroupPayload.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"decode: {e.error_count()} invalid field(s): {e.errors()[0]['msg']}") from e

    if payload.errors:
        raise ProviderError.from_messages([e.message for e in payload.errors])

    return payload.to_group()


class GroupFetcher(HTTPClient):
    """Fetches group details from the Meetup API."""

    def __init__(
        self,
        api_key: str,
        url_template: str = DEFAULT_API_URL,
        timeout: int = 30,
        user_agent: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        super().__init__(timeout=timeout, user_agent=user_agent, session=session)
        self.api_key = api_key
        self.url_template = url_template

    def group_url(self, group_id: str) -> str:
        return self.url_template.format(
            id=quote(group_id, safe=""),
            key=quote(self.api_key, safe=""),
        )

    async def fetch(self, group_id: str) -> Group:
        """
        Fetch one group by its id.

        The body is decoded whatever the status: the API reports invalid
        keys and unknown groups through the `errors` array. A non-200 status
        without provider errors is a transport failure.

        Raises:
            TransportError: If the API could not be reached
            DecodeError: If the body is not a group envelope
            ProviderError: If the API reported errors
        """
        logger.debug(f"Fetching group {group_id!r}")
        status, data = await self.get_json_response(self.group_url(group_id), check_status=False)
        group = parse_group(data)
        if status != 200:
            raise TransportError(f"get: HTTP {status}")
        return group

"""
Outbound HTTP helpers shared by the feed, group and continent clients.

Maps aiohttp failures onto the pipeline's error taxonomy:
- connection errors, timeouts and unexpected statuses -> TransportError
- bodies that are not valid UTF-8 JSON -> DecodeError

Bodies are returned as raw bytes; decoding is left to the caller (feedparser
honours the XML prolog encoding, json detects UTF-8/16/32).
"""

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .exceptions import DecodeError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Meetups Aggregator/1.0 (+https://github.com/meetups-aggregator)"


class HTTPClient:
    """Base class for clients issuing GET requests with aiohttp.

    A shared session may be passed in; otherwise a session is opened per request.
    """

    def __init__(
        self,
        timeout: int = 30,
        user_agent: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.session = session

    async def get(self, url: str, check_status: bool = True) -> tuple[int, bytes]:
        """
        GET url and return (status, raw body).

        Raises:
            TransportError: On connection failure, timeout, or (when
                check_status is set) a non-200 status
        """
        try:
            if self.session is not None:
                status, body = await self._get(self.session, url)
            else:
                async with aiohttp.ClientSession() as session:
                    status, body = await self._get(session, url)
        except asyncio.TimeoutError as e:
            raise TransportError(f"get: timed out after {self.timeout}s", cause=e) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"get: {e.__class__.__name__}: {e}", cause=e) from e

        if check_status and status != 200:
            raise TransportError(f"get: HTTP {status}")
        return status, body

    async def _get(self, session: aiohttp.ClientSession, url: str) -> tuple[int, bytes]:
        async with session.get(
            url,
            headers={"User-Agent": self.user_agent},
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as resp:
            return resp.status, await resp.read()

    async def get_json(self, url: str, check_status: bool = True) -> Any:
        """GET url and decode the body as JSON."""
        _, data = await self.get_json_response(url, check_status=check_status)
        return data

    async def get_json_response(self, url: str, check_status: bool = True) -> tuple[int, Any]:
        """GET url and return (status, decoded JSON body)."""
        status, body = await self.get(url, check_status=check_status)
        try:
            return status, json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            if status != 200:
                raise TransportError(f"get: HTTP {status}") from e
            raise DecodeError(f"decode: {e}") from e

"""
Feed Discoverer - Find the ids of newly created meetup groups.

Handles:
- Fetching the Meetup "newest groups" RSS feed
- Extracting the group id from each item's guid URL
- Caching the id list for a day
"""

import logging
from datetime import timedelta
from urllib.parse import urlparse

import aiohttp
import feedparser

from .cache import Cache
from .exceptions import DecodeError
from .http import HTTPClient

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "http://golang.meetup.com/newest/rss/New+golang+Groups"
GUIDS_KEY = "guids"
GUIDS_TTL = timedelta(hours=24)


def group_id_from_url(url: str) -> str | None:
    """Return the last path segment of a group URL, or None if there is none.

    Raises:
        ValueError: If url cannot be parsed
    """
    path = urlparse(url).path.strip("/")
    if not path:
        return None
    return path.rsplit("/", 1)[-1]


def parse_group_ids(content: bytes | str) -> list[str]:
    """
    Extract group ids from RSS feed content.

    Raw bytes are decoded by feedparser using the encoding declared in the
    XML prolog, falling back to a lenient charset when it does not match.

    Items with a missing or malformed guid are skipped with a warning.
    Duplicate ids are kept.

    Raises:
        DecodeError: If the document cannot be parsed as a feed
    """
    parsed = feedparser.parse(content)

    if not parsed.entries and not parsed.version:
        reason = parsed.get("bozo_exception") or "not an RSS document"
        raise DecodeError(f"decode xml feed: {reason}")

    ids = []
    for entry in parsed.entries:
        guid = entry.get("id", "")
        if not guid:
            logger.warning("feed item without guid, skipping")
            continue

        try:
            group_id = group_id_from_url(guid)
        except ValueError as e:
            logger.warning(f"bad url {guid!r}: {e}")
            continue

        if not group_id:
            logger.warning(f"bad url {guid!r}: no group id in path")
            continue
        ids.append(group_id)

    return ids


class FeedDiscoverer(HTTPClient):
    """Discovers group ids from the Meetup newest-groups feed."""

    def __init__(
        self,
        cache: Cache,
        feed_url: str = DEFAULT_FEED_URL,
        timeout: int = 30,
        user_agent: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        super().__init__(timeout=timeout, user_agent=user_agent, session=session)
        self.cache = cache
        self.feed_url = feed_url

    async def discover_ids(self) -> list[str]:
        """
        Return the ids of the groups listed in the feed.

        A cached list is returned as-is without touching the feed.

        Raises:
            TransportError: If the feed could not be fetched
            DecodeError: If the feed could not be parsed
        """
        ids, found = self.cache.get(GUIDS_KEY)
        if found:
            if isinstance(ids, list) and all(isinstance(i, str) for i in ids):
                return ids
            logger.warning(f"ignoring malformed cache entry {GUIDS_KEY!r}")

        _, content = await self.get(self.feed_url)
        ids = parse_group_ids(content)
        logger.info(f"Discovered {len(ids)} group ids from feed")

        self.cache.set(GUIDS_KEY, ids, GUIDS_TTL)
        return ids

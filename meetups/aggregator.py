"""
Aggregator - Build the list of meetup groups served to callers.

Flow:
1. Discover group ids from the feed (fatal on failure)
2. Load every id concurrently: cache, else fetch and write back
3. Attach the continent of each loaded group
4. Collect groups and per-group errors in completion order
"""

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from .cache import Cache
from .exceptions import DeadlineError, MeetupError, TopLevelError
from .models import AggregateResult, Group, GroupOutcome

if TYPE_CHECKING:
    from .continents import ContinentResolver
    from .feeds import FeedDiscoverer
    from .groups import GroupFetcher

logger = logging.getLogger(__name__)

GROUP_TTL = timedelta(hours=24)
FAILURE_TTL = timedelta(hours=1)


def encode_outcome(group: Group | None = None, error: MeetupError | None = None) -> dict[str, Any]:
    """Cache representation of a load: a group or a failure marker."""
    if error is not None:
        return {"error": {"kind": error.kind.value, "message": error.message}}
    return {"group": group.to_dict()}


def decode_outcome(entry: Any) -> Group | MeetupError | None:
    """Inverse of encode_outcome. Returns None for unrecognised entries."""
    if not isinstance(entry, dict):
        return None
    if isinstance(entry.get("error"), dict):
        err = entry["error"]
        return MeetupError.from_kind(err.get("kind", ""), str(err.get("message", "")))
    if isinstance(entry.get("group"), dict):
        try:
            return Group.from_dict(entry["group"])
        except (TypeError, ValueError):
            return None
    return None


class Aggregator:
    """Fans out group loads and assembles the aggregate result."""

    def __init__(
        self,
        discoverer: "FeedDiscoverer",
        fetcher: "GroupFetcher",
        resolver: "ContinentResolver",
        cache: Cache,
        concurrency: int = 16,
        deadline: float | None = 20.0,
    ):
        self.discoverer = discoverer
        self.fetcher = fetcher
        self.resolver = resolver
        self.cache = cache
        self.concurrency = max(1, concurrency)
        self.deadline = deadline

    async def build(self) -> AggregateResult:
        """
        Build the aggregate for the current feed.

        Raises:
            TopLevelError: If group discovery failed
        """
        try:
            ids = await self.discoverer.discover_ids()
        except MeetupError as e:
            raise TopLevelError(f"fetch ids: {e}") from e
        except Exception as e:
            logger.exception("unexpected error discovering group ids")
            raise TopLevelError(f"fetch ids: internal error: {e}") from e

        result = AggregateResult()
        for outcome in await self.load_all(ids):
            if outcome.error is not None:
                result.errors.append(f"fetch {outcome.group_id}: {outcome.error}")
            else:
                result.groups.append(outcome.group)
        return result

    async def load_all(self, ids: list[str]) -> list[GroupOutcome]:
        """
        Load and enrich every id concurrently, one outcome per id.

        Outcomes are returned in completion order. Loads still running when
        the deadline expires are cancelled and reported as DeadlineError.
        """
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = {
            asyncio.create_task(self._load_outcome(group_id, semaphore)): group_id
            for group_id in ids
        }

        loop = asyncio.get_running_loop()
        expires = loop.time() + self.deadline if self.deadline is not None else None

        outcomes: list[GroupOutcome] = []
        pending = set(tasks)
        while pending:
            timeout = None if expires is None else max(0.0, expires - loop.time())
            done, pending = await asyncio.wait(
                pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                break
            outcomes.extend(task.result() for task in done)

        if pending:
            logger.error(f"{len(pending)} group load(s) still running after {self.deadline}s deadline")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                outcomes.append(GroupOutcome(
                    group_id=tasks[task],
                    error=DeadlineError(f"no response within {self.deadline}s"),
                ))

        return outcomes

    async def _load_outcome(self, group_id: str, semaphore: asyncio.Semaphore) -> GroupOutcome:
        """Load one group and attach its continent, capturing any failure."""
        async with semaphore:
            try:
                group = await self.load(group_id)
            except MeetupError as e:
                return GroupOutcome(group_id=group_id, error=e)
            except Exception as e:
                logger.exception(f"unexpected error loading {group_id!r}")
                return GroupOutcome(group_id=group_id, error=MeetupError(f"internal error: {e}"))

            await self.enrich(group)
            return GroupOutcome(group_id=group_id, group=group)

    async def load(self, group_id: str) -> Group:
        """
        Return the group from cache, or fetch it and cache the outcome.

        Failed fetches are cached as well, for FAILURE_TTL, so a broken
        group is retried at most hourly.

        Raises:
            MeetupError: The fetch error, or a cached one
        """
        entry, found = self.cache.get(group_id)
        if found:
            cached = decode_outcome(entry)
            if isinstance(cached, MeetupError):
                raise cached
            if cached is not None:
                return cached
            logger.warning(f"ignoring malformed cache entry {group_id!r}")

        try:
            group = await self.fetcher.fetch(group_id)
        except MeetupError as e:
            logger.error(f"error fetching {group_id!r}: {e}: will retry in {FAILURE_TTL}")
            self.cache.set(group_id, encode_outcome(error=e), FAILURE_TTL)
            raise

        self.cache.set(group_id, encode_outcome(group=group), GROUP_TTL)
        return group

    async def enrich(self, group: Group) -> None:
        """Fill in the group's continent; on failure log and leave it empty."""
        try:
            group.continent = await self.resolver.resolve(group.country)
        except MeetupError as e:
            logger.error(f"continent for {group.country!r}: {e}")
        except Exception:
            logger.exception(f"unexpected error resolving continent for {group.country!r}")

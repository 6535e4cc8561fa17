"""
Meetups API Server

FastAPI application providing endpoints for:
- The aggregated list of newest meetup groups
- Health check
"""

import logging
from contextlib import asynccontextmanager

import aiohttp
from fastapi import FastAPI

from . import __version__
from .aggregator import Aggregator
from .cache import create_cache
from .config import config, state
from .continents import ContinentResolver
from .feeds import FeedDiscoverer
from .groups import GroupFetcher
from .rate_limit import setup_rate_limiting
from .routes import groups_router, misc_router

logger = logging.getLogger(__name__)


def build_aggregator(cache, session: aiohttp.ClientSession | None = None) -> Aggregator:
    """Wire the pipeline components from configuration."""
    return Aggregator(
        discoverer=FeedDiscoverer(
            cache=cache,
            feed_url=config.MEETUP_FEED_URL,
            timeout=config.HTTP_TIMEOUT,
            session=session,
        ),
        fetcher=GroupFetcher(
            api_key=config.MEETUP_API_KEY,
            url_template=config.MEETUP_API_URL,
            timeout=config.HTTP_TIMEOUT,
            session=session,
        ),
        resolver=ContinentResolver(
            cache=cache,
            api_key=config.FREEBASE_API_KEY,
            api_url=config.FREEBASE_URL,
            timeout=config.HTTP_TIMEOUT,
            session=session,
        ),
        cache=cache,
        concurrency=config.FETCH_CONCURRENCY,
        deadline=config.AGGREGATE_DEADLINE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup - skip if already initialized (e.g., by tests)
    owns_state = state.aggregator is None
    if owns_state:
        if not config.has_meetup_key():
            logger.warning("MEETUP_API_KEY is not set. Every group fetch will be rejected upstream.")

        state.cache = create_cache(config.CACHE_DIR, memory_size=config.CACHE_MEMORY_SIZE)
        state.session = aiohttp.ClientSession()
        state.aggregator = build_aggregator(state.cache, state.session)
        logger.info(
            f"Aggregator initialized (concurrency: {config.FETCH_CONCURRENCY}, "
            f"deadline: {config.AGGREGATE_DEADLINE}s)"
        )

    yield

    # Shutdown
    if owns_state:
        if state.session:
            await state.session.close()
        state.session = None
        state.aggregator = None
        state.cache = None


app = FastAPI(
    title="Meetups API",
    version=__version__,
    lifespan=lifespan
)

setup_rate_limiting(app)

app.include_router(misc_router)
app.include_router(groups_router)

"""
Configuration and application state management.
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import HTTPException

from .continents import DEFAULT_FREEBASE_URL
from .feeds import DEFAULT_FEED_URL
from .groups import DEFAULT_API_URL

if TYPE_CHECKING:
    import aiohttp

    from .aggregator import Aggregator
    from .cache import Cache

# Load environment variables
load_dotenv()


def _parse_float(value: str | None, default: float | None) -> float | None:
    """Parse an optional float; empty or non-positive means no limit."""
    if value is None or value == "":
        return default
    parsed = float(value)
    return parsed if parsed > 0 else None


class Config:
    """Application configuration from environment."""
    # Meetup API
    MEETUP_API_KEY: str = os.getenv("MEETUP_API_KEY", "")
    MEETUP_API_URL: str = os.getenv("MEETUP_API_URL", DEFAULT_API_URL)
    MEETUP_FEED_URL: str = os.getenv("MEETUP_FEED_URL", DEFAULT_FEED_URL)

    # Freebase (continent lookups)
    FREEBASE_API_KEY: str = os.getenv("FREEBASE_API_KEY", "")
    FREEBASE_URL: str = os.getenv("FREEBASE_URL", DEFAULT_FREEBASE_URL)

    CACHE_DIR: Path = Path(os.getenv("CACHE_DIR", "./data/cache"))
    CACHE_MEMORY_SIZE: int = int(os.getenv("CACHE_MEMORY_SIZE", "512"))

    # Outbound requests
    HTTP_TIMEOUT: int = int(os.getenv("HTTP_TIMEOUT", "30"))  # seconds, per request
    FETCH_CONCURRENCY: int = int(os.getenv("FETCH_CONCURRENCY", "16"))
    AGGREGATE_DEADLINE: float | None = _parse_float(os.getenv("AGGREGATE_DEADLINE"), 20.0)

    RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
    PORT: int = int(os.getenv("PORT", "5005"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def has_meetup_key(cls) -> bool:
        return bool(cls.MEETUP_API_KEY)


config = Config()


class AppState:
    """Shared application state, built once at startup."""
    cache: "Cache | None" = None
    session: "aiohttp.ClientSession | None" = None
    aggregator: "Aggregator | None" = None


state = AppState()


def get_aggregator() -> "Aggregator":
    """Dependency to get the aggregator instance."""
    if not state.aggregator:
        raise HTTPException(status_code=500, detail="Aggregator not initialized")
    return state.aggregator

"""
Per-client rate limit on the group listing.

Every uncached /api/groups request fans out to one Meetup API call per
group, so only that route is limited; /status stays open for health
checks. RATE_LIMIT_PER_MINUTE of 0 or less turns the limiter off.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import config

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=config.RATE_LIMIT_PER_MINUTE > 0,
)


def groups_rate_limit() -> str:
    """Limit for GET /api/groups, read from config on every request."""
    return f"{config.RATE_LIMIT_PER_MINUTE}/minute"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = exc.limit.limit.get_expiry() if exc.limit else 60
    logger.warning(f"rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded: {exc.detail}",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """Attach the limiter used by the route decorators to the app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    if not limiter.enabled:
        logger.info("Rate limiting disabled (RATE_LIMIT_PER_MINUTE <= 0)")

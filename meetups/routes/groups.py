"""
Group routes: the aggregated list of meetup groups.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from ..aggregator import Aggregator
from ..config import get_aggregator
from ..exceptions import TopLevelError
from ..rate_limit import groups_rate_limit, limiter
from ..schemas import AggregateResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["groups"])


@router.get("/groups", response_model=AggregateResponse)
@limiter.limit(groups_rate_limit)
async def list_groups(
    request: Request,
    aggregator: Annotated[Aggregator, Depends(get_aggregator)]
) -> AggregateResponse:
    """
    List the newest meetup groups with their continent.

    Groups that could not be loaded are reported in Errors; the request only
    fails when the group feed itself is unavailable.
    """
    try:
        result = await aggregator.build()
    except TopLevelError as e:
        logger.error(f"fetch ids: {e}")
        raise HTTPException(status_code=500, detail="meetup seems to be down")

    return AggregateResponse.from_result(result)

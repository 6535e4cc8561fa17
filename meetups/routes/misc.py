"""
Miscellaneous routes: health check.
"""

from fastapi import APIRouter

from .. import __version__
from ..config import config, state
from ..schemas import StatusResponse

router = APIRouter(tags=["misc"])


@router.get("/status")
async def health_check() -> StatusResponse:
    """API health check."""
    return StatusResponse(
        status="ok" if state.aggregator is not None else "starting",
        version=__version__,
        meetup_key_configured=config.has_meetup_key(),
    )

from fastapi import APIRouter, Depends

from country_xchange.api.dependencies import get_repository
from country_xchange.repository import CountryRepository
from country_xchange.schemas import StatusResponse

# Initialize the router
router = APIRouter(
    prefix="/status",
    tags=["Status"],
)


@router.get("", response_model=StatusResponse, summary="Get cache size and last refresh time.")
def read_status(repository: CountryRepository = Depends(get_repository)):
    """
    Reports how many countries are cached and the most recent
    ``last_refreshed_at`` across them (``null`` before the first refresh).
    """
    return StatusResponse(
        total_countries=repository.count(),
        last_refreshed_at=repository.find_latest_refresh_timestamp(),
    )

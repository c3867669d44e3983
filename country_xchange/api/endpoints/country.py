import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from country_xchange.api.dependencies import (
    get_artifact_cache,
    get_orchestrator,
    get_repository,
)
from country_xchange.core.artifact import ArtifactCache
from country_xchange.core.refresh import RefreshOrchestrator
from country_xchange.repository import CountryRepository
from country_xchange.schemas import (
    CountryQuery,
    CountryResponse,
    ErrorResponse,
    GdpSortDirection,
    RefreshResponse,
)

# Initialize the router
router = APIRouter(
    prefix="/countries",
    tags=["Countries"],
)

NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={503: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Fetch countries and exchange rates, then cache them.",
)
async def refresh_countries(
    orchestrator: RefreshOrchestrator = Depends(get_orchestrator),
    repository: CountryRepository = Depends(get_repository),
):
    """
    Runs one refresh. Upstream failures abort before anything is written
    (503). Records that fail to persist are listed in ``failed``.
    """
    outcome = await orchestrator.run()
    return RefreshResponse(
        message="Countries refreshed successfully",
        total_countries=await asyncio.to_thread(repository.count),
        persisted=outcome.persisted,
        failed=outcome.failed,
        last_refreshed_at=outcome.refreshed_at,
    )


@router.get(
    "",
    response_model=List[CountryResponse],
    summary="Retrieve cached countries with filtering and sorting.",
)
def read_countries(
    region: Optional[str] = Query(None, description="Filter by region (case-insensitive)"),
    currency: Optional[str] = Query(
        None, description="Filter by currency code (case-insensitive)"
    ),
    sort: Optional[GdpSortDirection] = Query(
        None, description="Sort by estimated GDP: gdp_asc or gdp_desc"
    ),
    repository: CountryRepository = Depends(get_repository),
):
    query = CountryQuery(region=region, currency=currency, sort=sort)
    return repository.find_many(query)


@router.get(
    "/image",
    responses={200: {"content": {"image/png": {}}}, **NOT_FOUND},
    summary="Serve the summary image of the latest refresh.",
)
def read_summary_image(artifacts: ArtifactCache = Depends(get_artifact_cache)):
    if not artifacts.exists():
        return JSONResponse(status_code=404, content={"error": "Summary image not found"})

    return Response(content=artifacts.read(), media_type="image/png")


@router.get(
    "/{name}",
    response_model=CountryResponse,
    responses=NOT_FOUND,
    summary="Retrieve a country by name.",
)
def read_country_by_name(
    name: str, repository: CountryRepository = Depends(get_repository)
):
    country = repository.find_by_name(name)

    if country is None:
        return JSONResponse(status_code=404, content={"error": "Country not found"})

    return country


@router.delete("/{name}", responses=NOT_FOUND, summary="Delete a country by name.")
def delete_country(name: str, repository: CountryRepository = Depends(get_repository)):
    if not repository.delete_by_name(name):
        return JSONResponse(status_code=404, content={"error": "Country not found"})

    return {"message": f"Country '{name}' deleted successfully"}

"""Public location endpoints backing the address picker."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from libs.common.rate_limit import location_limit
from services.store_service.schemas import (
    LocationCheckRequest,
    LocationCheckResponse,
    PlaceResponse,
)
from services.store_service.services.geocoding import (
    GeocodingClient,
    get_geocoding_client,
)

router = APIRouter(prefix="/location", tags=["location"])


@router.post("/check", response_model=LocationCheckResponse)
@location_limit
async def check_location(
    request: Request,
    body: LocationCheckRequest,
    client: GeocodingClient = Depends(get_geocoding_client),
):
    """Reverse geocode a map pin and check that we deliver there."""
    result = await client.reverse(body.lat, body.lon)
    if not result.serviceable:
        raise HTTPException(
            status_code=400, detail="Sorry, we don't deliver to your location yet."
        )
    return LocationCheckResponse(serviceable=True, location_name=result.location_name)


@router.get("/search", response_model=list[PlaceResponse])
@location_limit
async def search_location(
    request: Request,
    q: str = Query(..., min_length=1, description="Free-text place search"),
    client: GeocodingClient = Depends(get_geocoding_client),
):
    """Places matching ``q`` inside the serviceable area."""
    return await client.search(q)

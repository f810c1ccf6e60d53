"""Unit tests for the Nominatim geocoding client (mocked transport)."""

import httpx
import pytest
from services.store_service.services.geocoding import (
    GeocodingClient,
    GeocodingError,
    build_location_name,
)

JAIPUR_REVERSE = {
    "display_name": "12, MI Road, C-Scheme, Jaipur, Rajasthan, 302001, India",
    "address": {
        "house_number": "12",
        "road": "MI Road",
        "suburb": "C-Scheme",
        "city": "Jaipur",
    },
}


def _client(handler) -> GeocodingClient:
    return GeocodingClient(
        base_url="https://geo.test",
        serviceable_city="Jaipur",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.unit
def test_build_location_name_prefers_specific_parts():
    assert (
        build_location_name("full", JAIPUR_REVERSE["address"])
        == "12, MI Road, C-Scheme, Jaipur"
    )
    assert build_location_name("full", {"village": "Amer"}) == "Amer"
    assert build_location_name("full", {}) == "full"
    assert build_location_name("full", {"state": "Rajasthan"}) == "full"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reverse_sends_expected_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["agent"] = request.headers["user-agent"]
        return httpx.Response(200, json=JAIPUR_REVERSE)

    result = await _client(handler).reverse(26.9124, 75.7873)

    assert seen["path"] == "/reverse"
    assert seen["params"]["format"] == "json"
    assert seen["params"]["zoom"] == "18"
    assert seen["params"]["addressdetails"] == "1"
    assert seen["agent"] == "QuickCartApp/1.0"
    assert result.serviceable is True
    assert result.location_name == "12, MI Road, C-Scheme, Jaipur"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reverse_outside_city_is_not_serviceable():
    def handler(request):
        return httpx.Response(200, json={"display_name": "Connaught Place, New Delhi"})

    result = await _client(handler).reverse(28.63, 77.21)

    assert result.serviceable is False
    assert result.location_name == "Connaught Place, New Delhi"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reverse_without_display_name_fails():
    def handler(request):
        return httpx.Response(200, json={"error": "Unable to geocode"})

    with pytest.raises(GeocodingError, match="Could not find address"):
        await _client(handler).reverse(0.0, 0.0)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_upstream_error_status_raises():
    def handler(request):
        return httpx.Response(503, text="busy")

    with pytest.raises(GeocodingError) as exc_info:
        await _client(handler).reverse(26.9, 75.8)

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
@pytest.mark.unit
async def test_network_failure_raises():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GeocodingError, match="Failed to reach"):
        await _client(handler).search("MI Road")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_search_filters_to_serviceable_places():
    def handler(request):
        assert request.url.params["q"] == "Road"
        assert request.url.params["limit"] == "5"
        return httpx.Response(
            200,
            json=[
                {"osm_id": 1, "display_name": "MI Road, Jaipur", "lat": "26.91", "lon": "75.80"},
                {"osm_id": 2, "display_name": "MG Road, Bengaluru", "lat": "12.97", "lon": "77.60"},
            ],
        )

    places = await _client(handler).search("Road")

    assert [place.id for place in places] == [1]
    assert places[0].name == "MI Road, Jaipur"
    assert places[0].lat == "26.91"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_search_rejects_unexpected_payload():
    def handler(request):
        return httpx.Response(200, json={"not": "a list"})

    with pytest.raises(GeocodingError):
        await _client(handler).search("x")

"""Tests for the Google Maps and Maricopa web service clients."""

from __future__ import annotations

import httpx
import pytest

from plan_overlay.errors import CollaboratorUnavailable, RateLimited, TransientNetworkError
from plan_overlay.models.geo import GeoPoint
from plan_overlay.services.geocoding import GEOCODE_URL, GoogleGeocoder
from plan_overlay.services.http import create_http_client, get_json
from plan_overlay.services.parcels import MaricopaParcels, ring_centroid
from plan_overlay.services.roads import DirectionsRoadGeometry, is_north_south, search_endpoints
from tests.conftest import SUN_CITY

# Google's reference polyline; its third point is (43.252, -126.453)
ROUTE_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def _client(settings, handler) -> httpx.AsyncClient:
    return create_http_client(settings, transport=httpx.MockTransport(handler))


def _geocode_payload(status="OK", lat=33.623, lng=-112.283):
    results = []
    if status == "OK":
        results = [{
            "formatted_address": "13000 W Bell Rd, Sun City, AZ 85351, USA",
            "geometry": {"location": {"lat": lat, "lng": lng}},
        }]
    return {"status": status, "results": results}


@pytest.mark.asyncio
async def test_geocode_ok(settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_geocode_payload())

    async with _client(settings, handler) as client:
        result = await GoogleGeocoder(client, settings).geocode("13000 W Bell Rd, Sun City, AZ")

    assert result.lat == 33.623
    assert result.formatted_address.startswith("13000 W Bell Rd")
    assert str(seen[0].url).startswith(GEOCODE_URL)
    assert seen[0].url.params["address"] == "13000 W Bell Rd, Sun City, AZ"
    assert seen[0].url.params["key"] == "test-maps-key"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["ZERO_RESULTS", "REQUEST_DENIED"])
async def test_geocode_no_match(settings, status):
    async with _client(settings, lambda request: httpx.Response(200, json=_geocode_payload(status))) as client:
        assert await GoogleGeocoder(client, settings).geocode("nowhere") is None


@pytest.mark.asyncio
async def test_geocode_over_query_limit(settings):
    async with _client(settings, lambda request: httpx.Response(200, json=_geocode_payload("OVER_QUERY_LIMIT"))) as client:
        with pytest.raises(RateLimited):
            await GoogleGeocoder(client, settings).geocode("13000 W Bell Rd")


@pytest.mark.asyncio
async def test_geocode_requires_key(settings):
    no_key = settings.model_copy(update={"google_maps_api_key": ""})
    async with _client(no_key, lambda request: httpx.Response(200, json=_geocode_payload())) as client:
        with pytest.raises(CollaboratorUnavailable):
            await GoogleGeocoder(client, no_key).geocode("13000 W Bell Rd")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error",
    [(429, RateLimited), (503, TransientNetworkError), (403, CollaboratorUnavailable)],
)
async def test_http_status_mapping(settings, status, error):
    async with _client(settings, lambda request: httpx.Response(status, text="nope")) as client:
        with pytest.raises(error):
            await get_json(client, "https://example.test/api", label="Test API")


@pytest.mark.asyncio
async def test_transport_failure_is_transient(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(settings, handler) as client:
        with pytest.raises(TransientNetworkError):
            await get_json(client, "https://example.test/api")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("N 107th Ave", True),
        ("S Mill Ave", True),
        ("Kyrene Rd", True),
        ("51st Street", True),
        ("W Bell Rd", False),
        ("Westwood Blvd", False),
        ("Grand Avenue", False),
    ],
)
def test_is_north_south(name, expected):
    assert is_north_south(name) is expected


def test_search_endpoints_follow_road_axis():
    origin, destination = search_endpoints("N 107th Ave", SUN_CITY, 1000)
    assert origin.split(",")[1] == destination.split(",")[1]
    assert float(origin.split(",")[0]) > float(destination.split(",")[0])

    origin, destination = search_endpoints("W Bell Rd", SUN_CITY, 1000)
    assert origin.split(",")[0] == destination.split(",")[0]
    assert float(origin.split(",")[1]) < float(destination.split(",")[1])


@pytest.mark.asyncio
async def test_road_geometry_decodes_route(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["mode"] == "driving"
        return httpx.Response(200, json={"status": "OK", "routes": [{"overview_polyline": {"points": ROUTE_POLYLINE}}]})

    async with _client(settings, handler) as client:
        points = await DirectionsRoadGeometry(client, settings).fetch_road_geometry("W Bell Rd", SUN_CITY)

    assert len(points) == 3
    assert points[2].lat == pytest.approx(43.252)


@pytest.mark.asyncio
async def test_road_geometry_no_route(settings):
    async with _client(settings, lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "routes": []})) as client:
        assert await DirectionsRoadGeometry(client, settings).fetch_road_geometry("Nowhere Rd", SUN_CITY) is None


PARCEL_FEATURE = {
    "attributes": {"APN": "200-45-123", "SITUS": "13000 W BELL RD", "OWNER": "BELL ROAD LLC", "ACRES": 2.5},
    "geometry": {"rings": [[
        [-112.284, 33.624], [-112.282, 33.624], [-112.282, 33.622], [-112.284, 33.622], [-112.284, 33.624],
    ]]},
}


@pytest.mark.asyncio
async def test_parcel_lookup(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["geometryType"] == "esriGeometryPoint"
        return httpx.Response(200, json={"features": [PARCEL_FEATURE]})

    async with _client(settings, handler) as client:
        parcel = await MaricopaParcels(client, settings).lookup(SUN_CITY)

    assert parcel.apn == "200-45-123"
    assert parcel.owner == "BELL ROAD LLC"
    assert parcel.acres == 2.5
    assert len(parcel.polygon) == 5
    assert parcel.centroid.lat == pytest.approx(33.623)
    assert parcel.centroid.lng == pytest.approx(-112.283)


@pytest.mark.asyncio
async def test_parcel_lookup_empty(settings):
    async with _client(settings, lambda request: httpx.Response(200, json={"features": []})) as client:
        assert await MaricopaParcels(client, settings).lookup(SUN_CITY) is None


@pytest.mark.asyncio
async def test_assessor_requires_token(settings):
    async with _client(settings, lambda request: httpx.Response(500)) as client:
        parcels = MaricopaParcels(client, settings)
        assert await parcels.assessor_details("200-45-123") is None
        with pytest.raises(CollaboratorUnavailable):
            await parcels.search("bell road")


@pytest.mark.asyncio
async def test_assessor_details_strip_apn(settings):
    with_token = settings.model_copy(update={"maricopa_assessor_token": "token"})

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/parcel/20045123"
        assert request.headers["authorization"] == "token"
        return httpx.Response(200, json={"Owner": {"Name": "BELL ROAD LLC"}})

    async with _client(with_token, handler) as client:
        details = await MaricopaParcels(client, with_token).assessor_details("200-45-123")
    assert details["Owner"]["Name"] == "BELL ROAD LLC"


def test_ring_centroid_degenerate_ring():
    line = [GeoPoint(lat=33.0, lng=-112.0), GeoPoint(lat=33.0, lng=-112.002)]
    centroid = ring_centroid(line)
    assert centroid.lat == pytest.approx(33.0)
    assert centroid.lng == pytest.approx(-112.001)
    assert ring_centroid([]) is None

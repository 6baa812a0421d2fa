from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from structlog import get_logger
from pybreaker import CircuitBreaker

from propertyhub.config import settings
from propertyhub.utils.retry import retry_api

logger = get_logger(__name__)
breaker = CircuitBreaker(fail_max=5, reset_timeout=60)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str
    city: str
    state: str
    country: str
    zipcode: str = ""
    locality: str = ""
    neighborhood: str = ""


def _component(components: List[Dict[str, Any]], *types: str) -> str:
    for component in components:
        if any(t in component.get("types", []) for t in types):
            return component.get("long_name") or ""
    return ""


def parse_geocode_response(data: Dict[str, Any]) -> Optional[GeocodeResult]:
    """
    Turns a Google Geocoding API payload into a GeocodeResult.

    The main locality is the city (Hyderabad); a sublocality (Gopanpally,
    KPHB) becomes the locality so listings group under the city they sit in.
    """
    if data.get("status") != "OK" or not data.get("results"):
        return None

    result = data["results"][0]
    point = result["geometry"]["location"]
    components = result.get("address_components", [])

    main_locality = _component(components, "locality")
    sub_locality = (
        _component(components, "sublocality_level_1")
        or _component(components, "sublocality_level_2")
        or _component(components, "sublocality")
    )
    city = main_locality or _component(components, "administrative_area_level_2")

    return GeocodeResult(
        latitude=float(point["lat"]),
        longitude=float(point["lng"]),
        formatted_address=result.get("formatted_address", ""),
        neighborhood=_component(components, "neighborhood") or sub_locality,
        locality=sub_locality or main_locality,
        city=city,
        state=_component(components, "administrative_area_level_1"),
        country=_component(components, "country"),
        zipcode=_component(components, "postal_code"),
    )


@retry_api(tries=3, delay=0.5, backoff=2)
@breaker
async def geocode_address(address: str, client: Optional[httpx.AsyncClient] = None) -> Optional[GeocodeResult]:
    """
    Resolves a free-text address. Returns None when geocoding is not configured
    or the address has no match; raises on transport or HTTP failures.
    """
    if not settings.GOOGLE_MAPS_API_KEY:
        logger.debug("Geocoding skipped, no API key configured")
        return None

    params = {"address": address, "key": settings.GOOGLE_MAPS_API_KEY}
    if client is None:
        async with httpx.AsyncClient() as own_client:
            resp = await own_client.get(GEOCODE_URL, params=params, timeout=10.0)
    else:
        resp = await client.get(GEOCODE_URL, params=params, timeout=10.0)

    if resp.status_code != 200:
        logger.error("Geocoding API failed", status_code=resp.status_code, text=resp.text)
        raise ValueError(f"Geocoding API failed with status {resp.status_code}")

    data = resp.json()
    result = parse_geocode_response(data)
    if result is None:
        logger.info("Address not geocodable", address=address, status=data.get("status"))
    return result


def normalize_location_string(
    neighborhood: Optional[str] = None,
    locality: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    zipcode: Optional[str] = None,
) -> str:
    """Formats "Neighborhood, Locality, City, State, Zipcode" without repeats."""
    parts = []
    if neighborhood:
        parts.append(neighborhood)
    if locality and locality != neighborhood:
        parts.append(locality)
    if city and city != locality:
        parts.append(city)
    if state:
        parts.append(state)
    if zipcode:
        parts.append(zipcode)
    return ", ".join(parts)

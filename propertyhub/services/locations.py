from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from propertyhub.models import Location
from propertyhub.services.geocoding import GeocodeResult, normalize_location_string

logger = get_logger(__name__)

# ~11 meters
COORDINATE_TOLERANCE = 0.0001
DEFAULT_COUNTRY = "India"


def coordinate_bucket(latitude: float, longitude: float) -> str:
    return f"{round(latitude / COORDINATE_TOLERANCE)}:{round(longitude / COORDINATE_TOLERANCE)}"


async def find_location_near(db: AsyncSession, latitude: float, longitude: float) -> Optional[Location]:
    stmt = (
        select(Location)
        .where(
            Location.latitude.between(latitude - COORDINATE_TOLERANCE, latitude + COORDINATE_TOLERANCE),
            Location.longitude.between(longitude - COORDINATE_TOLERANCE, longitude + COORDINATE_TOLERANCE),
        )
        .limit(1)
    )
    return (await db.execute(stmt)).scalars().first()


async def _insert_or_get_bucket(db: AsyncSession, location: Location) -> Location:
    try:
        async with db.begin_nested():
            db.add(location)
    except IntegrityError:
        # Another request created the same bucket between our lookup and insert
        logger.info("Location bucket conflict, reusing existing row", bucket=location.coord_bucket)
        stmt = select(Location).where(Location.coord_bucket == location.coord_bucket)
        return (await db.execute(stmt)).scalars().one()
    return location


async def resolve_location(
    db: AsyncSession,
    submitted: Dict[str, Any],
    geocoded: Optional[GeocodeResult],
) -> Location:
    """
    Finds or creates the Location for a submitted address.

    With a geocode result, any Location within the tolerance box is reused;
    otherwise one is created from the geocoded fields, falling back to what
    the submitter typed. Without a result, locations are matched on
    city/state/country and created without coordinates.
    """
    if geocoded is not None:
        existing = await find_location_near(db, geocoded.latitude, geocoded.longitude)
        if existing is not None:
            return existing

        location = Location(
            city=geocoded.city or submitted.get("city"),
            state=geocoded.state or submitted.get("state"),
            country=geocoded.country or submitted.get("country") or DEFAULT_COUNTRY,
            zipcode=geocoded.zipcode or submitted.get("zipcode") or "",
            locality=geocoded.locality or submitted.get("locality") or "",
            neighborhood=geocoded.neighborhood or None,
            latitude=geocoded.latitude,
            longitude=geocoded.longitude,
            formatted_address=geocoded.formatted_address or normalize_location_string(
                geocoded.neighborhood, geocoded.locality, geocoded.city, geocoded.state, geocoded.zipcode
            ),
            coord_bucket=coordinate_bucket(geocoded.latitude, geocoded.longitude),
        )
        return await _insert_or_get_bucket(db, location)

    stmt = (
        select(Location)
        .where(
            Location.city == submitted.get("city"),
            Location.state == submitted.get("state"),
            Location.country == (submitted.get("country") or DEFAULT_COUNTRY),
        )
        .limit(1)
    )
    existing = (await db.execute(stmt)).scalars().first()
    if existing is not None:
        return existing

    location = Location(
        city=submitted.get("city"),
        state=submitted.get("state"),
        country=submitted.get("country") or DEFAULT_COUNTRY,
        zipcode=submitted.get("zipcode") or "",
        locality=submitted.get("locality") or "",
        formatted_address=normalize_location_string(
            None,
            submitted.get("locality"),
            submitted.get("city"),
            submitted.get("state"),
            submitted.get("zipcode"),
        ) or None,
    )
    db.add(location)
    await db.flush()
    return location

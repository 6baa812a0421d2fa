from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import Select, false, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from structlog import get_logger

from propertyhub.dependencies.auth import RequestContext
from propertyhub.models import (
    ListingStatus,
    ListingType,
    Location,
    Project,
    Property,
    PropertyType,
    SavedProperty,
)
from propertyhub.models.base import utcnow
from propertyhub.schemas.property import (
    LocationInput,
    MarkSoldRequest,
    PropertyFormRequest,
    ToggleFavoriteRequest,
)
from propertyhub.services import geocoding
from propertyhub.services.accounts import require_verified_user
from propertyhub.services.locations import resolve_location
from propertyhub.services.transformers import favorite_view, property_card, property_detail
from propertyhub.utils.pagination import page_request, pagination_envelope, total_pages
from propertyhub.utils.text import blank_to_none, is_blank, to_float, to_int

logger = get_logger(__name__)

SQ_FT_PER_UNIT = {
    "sq_ft": 1.0,
    "sq_m": 10.764,
    "sq_yd": 9.0,
}

PROPERTY_TYPE_ALIASES = {
    "LAND_RESIDENTIAL": PropertyType.LAND,
    "LAND_AGRICULTURE": PropertyType.LAND,
}

LISTING_PAGE_SIZE = 12
LISTING_MAX_PAGE_SIZE = 100
FAVORITES_PAGE_SIZE = 20
SEARCH_PAGE_SIZE = 20
SEARCH_MAX_PAGE_SIZE = 50


def _card_options():
    return (
        selectinload(Property.location),
        selectinload(Property.user),
        selectinload(Property.builder),
        selectinload(Property.project),
    )


def parse_property_type(value: Optional[str]) -> Optional[PropertyType]:
    if is_blank(value):
        return None
    key = value.strip().upper()
    if key in PROPERTY_TYPE_ALIASES:
        return PROPERTY_TYPE_ALIASES[key]
    try:
        return PropertyType(key)
    except ValueError:
        return None


def parse_listing_type(value: Optional[str]) -> Optional[ListingType]:
    if is_blank(value):
        return None
    try:
        return ListingType(value.strip().upper())
    except ValueError:
        return None


def compute_sq_ft(size: Any, unit: Optional[str]) -> Optional[float]:
    """Converts a size in sq_ft, sq_m or sq_yd to square feet. Unknown units give None."""
    amount = to_float(size)
    if amount is None or not unit:
        return None
    factor = SQ_FT_PER_UNIT.get(unit.strip().lower())
    if factor is None:
        return None
    return amount * factor


def _exact_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Listing query builder
# ---------------------------------------------------------------------------

def listing_conditions(
    property_type: Optional[str] = None,
    listing_type: Optional[str] = None,
    location: Optional[str] = None,
    zipcode: Optional[str] = None,
    bedrooms: Optional[str] = None,
    bathrooms: Optional[str] = None,
) -> List[Any]:
    """
    Translates listing query-string filters into WHERE clauses over Property
    joined to Location. Only ACTIVE listings are ever returned.

    A filter value that cannot match anything (unknown enum, non-integer room
    count) becomes a false() clause rather than an error.
    """
    conditions: List[Any] = [Property.listing_status == ListingStatus.ACTIVE]

    if property_type:
        parsed = parse_property_type(property_type)
        conditions.append(Property.property_type == parsed if parsed else false())

    if listing_type:
        parsed = parse_listing_type(listing_type)
        conditions.append(Property.listing_type == parsed if parsed else false())

    if location and location.strip():
        term = location.strip()
        conditions.append(
            or_(
                Property.street_address.icontains(term, autoescape=True),
                Location.city.icontains(term, autoescape=True),
                Location.state.icontains(term, autoescape=True),
                Location.locality.icontains(term, autoescape=True),
                Location.neighborhood.icontains(term, autoescape=True),
                Location.zipcode.icontains(term, autoescape=True),
                Location.formatted_address.icontains(term, autoescape=True),
            )
        )

    if zipcode and zipcode.strip():
        conditions.append(Location.zipcode.contains(zipcode.strip(), autoescape=True))

    for column, raw in ((Property.bedrooms, bedrooms), (Property.bathrooms, bathrooms)):
        if raw is None or raw == "":
            continue
        wanted = _exact_int(raw)
        conditions.append(column == wanted if wanted is not None else false())

    return conditions


def listing_order(sort_by: Optional[str]) -> List[Any]:
    price = func.coalesce(Property.price, 0)
    if sort_by == "oldest":
        return [Property.created_at.asc()]
    if sort_by == "price_asc":
        return [price.asc(), Property.created_at.desc()]
    if sort_by == "price_desc":
        return [price.desc(), Property.created_at.desc()]
    return [Property.created_at.desc()]


def build_listing_query(conditions: List[Any], sort_by: Optional[str], skip: int, limit: int) -> Select:
    return (
        select(Property)
        .join(Property.location)
        .where(*conditions)
        .order_by(*listing_order(sort_by))
        .offset(skip)
        .limit(limit)
        .options(*_card_options())
    )


async def list_properties(db: AsyncSession, params: Dict[str, Optional[str]]) -> Dict[str, Any]:
    req = page_request(params.get("page"), params.get("limit"), LISTING_PAGE_SIZE, LISTING_MAX_PAGE_SIZE)
    conditions = listing_conditions(
        property_type=params.get("propertyType"),
        listing_type=params.get("listingType"),
        location=params.get("location"),
        zipcode=params.get("zipcode"),
        bedrooms=params.get("bedrooms"),
        bathrooms=params.get("bathrooms"),
    )

    count_stmt = select(func.count(Property.id)).select_from(Property).join(Property.location).where(*conditions)
    total_count = (await db.execute(count_stmt)).scalar_one()

    stmt = build_listing_query(conditions, params.get("sortBy"), req.skip, req.limit)
    rows = (await db.execute(stmt)).scalars().all()

    return {
        "properties": [property_card(p) for p in rows],
        "pagination": pagination_envelope(req, total_count),
    }


async def search_properties(db: AsyncSession, params: Dict[str, Optional[str]]) -> Dict[str, Any]:
    req = page_request(params.get("page"), params.get("limit"), SEARCH_PAGE_SIZE, SEARCH_MAX_PAGE_SIZE)
    conditions: List[Any] = [Property.listing_status == ListingStatus.ACTIVE]

    city = params.get("city")
    if city and city.strip():
        conditions.append(func.lower(Location.city) == city.strip().lower())
    state = params.get("state")
    if state and state.strip():
        conditions.append(func.lower(Location.state) == state.strip().lower())

    min_price = to_float(params.get("minPrice"))
    if min_price is not None:
        conditions.append(Property.price >= min_price)
    max_price = to_float(params.get("maxPrice"))
    if max_price is not None:
        conditions.append(Property.price <= max_price)

    if params.get("propertyType"):
        parsed = parse_property_type(params["propertyType"])
        conditions.append(Property.property_type == parsed if parsed else false())

    bedrooms = to_int(params.get("bedrooms"))
    if bedrooms is not None:
        conditions.append(Property.bedrooms >= bedrooms)
    bathrooms = to_float(params.get("bathrooms"))
    if bathrooms is not None:
        conditions.append(Property.bathrooms >= bathrooms)

    count_stmt = select(func.count(Property.id)).select_from(Property).join(Property.location).where(*conditions)
    total_count = (await db.execute(count_stmt)).scalar_one()

    stmt = build_listing_query(conditions, "newest", req.skip, req.limit)
    rows = (await db.execute(stmt)).scalars().all()

    pages = total_pages(total_count, req.limit)
    return {
        "properties": [property_card(p) for p in rows],
        "pagination": {
            "page": req.page,
            "limit": req.limit,
            "total": total_count,
            "totalPages": pages,
            "hasMore": req.page < pages,
        },
    }


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------

def normalize_property_form(body: PropertyFormRequest) -> Dict[str, Any]:
    """
    Validates a create/update form and derives the Property column values.
    Raises 400 for missing required fields or an unknown property type.
    """
    location = body.location or LocationInput()
    price = to_float(body.price)
    if is_blank(body.title) or is_blank(body.property_type) or price is None or is_blank(location.address):
        raise HTTPException(status_code=400, detail="Missing required fields")

    property_type = parse_property_type(body.property_type)
    if property_type is None:
        raise HTTPException(status_code=400, detail="Invalid property type")

    listing_type = ListingType.SALE
    if not is_blank(body.listing_type):
        listing_type = parse_listing_type(body.listing_type)
        if listing_type is None:
            raise HTTPException(status_code=400, detail="Invalid listing type")

    size = to_float(body.property_size)
    plot_size = to_float(body.plot_size)
    return {
        "title": body.title.strip(),
        "description": blank_to_none(body.description),
        "price": price,
        "property_type": property_type,
        "listing_type": listing_type,
        "street_address": location.address.strip(),
        "bedrooms": to_int(body.bedrooms),
        "bathrooms": to_int(body.bathrooms),
        "property_size": size,
        "property_size_unit": body.property_size_unit if size is not None else None,
        "plot_size": plot_size,
        "plot_size_unit": body.plot_size_unit if plot_size is not None else None,
        "facing": blank_to_none(body.facing),
        "sq_ft": compute_sq_ft(size, body.property_size_unit),
        "project_id": blank_to_none(body.project_id),
        "builder_id": blank_to_none(body.builder_id),
        "thumbnail_url": blank_to_none(body.thumbnail_url),
        "image_urls": list(body.image_urls or []),
        "walkthrough_video_url": next(iter(body.walkthrough_video_urls or []), None),
    }


async def _link_project(db: AsyncSession, values: Dict[str, Any]) -> None:
    if not values["project_id"]:
        return
    project = await db.get(Project, values["project_id"])
    if project is None:
        raise HTTPException(status_code=400, detail="Invalid project ID")
    if not values["builder_id"]:
        values["builder_id"] = project.builder_id


async def _resolve_submitted_location(db: AsyncSession, location: LocationInput) -> Location:
    geocoded = await geocoding.geocode_address(location.address.strip())
    return await resolve_location(db, location.model_dump(), geocoded)


async def create_property(db: AsyncSession, ctx: RequestContext, body: PropertyFormRequest) -> Dict[str, Any]:
    values = normalize_property_form(body)
    await _link_project(db, values)
    location = await _resolve_submitted_location(db, body.location)

    prop = Property(
        **values,
        user_id=ctx.user_id,
        location_id=location.id,
        posted_by=ctx.user.display_name,
        listing_status=ListingStatus.ACTIVE,
    )
    db.add(prop)
    await db.commit()
    logger.info("Property created", property_id=prop.id, user_id=ctx.user_id, location_id=location.id)
    return {"message": "Property created successfully", "propertyId": prop.id}


async def load_property(db: AsyncSession, property_id: str) -> Optional[Property]:
    stmt = (
        select(Property)
        .where(Property.id == property_id)
        .options(*_card_options())
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalars().first()


async def get_property(db: AsyncSession, property_id: str) -> Dict[str, Any]:
    prop = await load_property(db, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return {"property": property_detail(prop)}


async def _owned_property(db: AsyncSession, ctx: RequestContext, property_id: str, forbidden: str) -> Property:
    prop = await db.get(Property, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    if prop.user_id != ctx.user_id:
        raise HTTPException(status_code=403, detail=forbidden)
    return prop


async def update_property(db: AsyncSession, ctx: RequestContext, property_id: str,
                          body: PropertyFormRequest) -> Dict[str, Any]:
    prop = await _owned_property(db, ctx, property_id, "You do not have permission to edit this property")
    values = normalize_property_form(body)
    await _link_project(db, values)

    if values["street_address"] != prop.street_address:
        location = await _resolve_submitted_location(db, body.location)
        prop.location_id = location.id

    for column, value in values.items():
        setattr(prop, column, value)
    await db.commit()
    logger.info("Property updated", property_id=prop.id, user_id=ctx.user_id)

    prop = await load_property(db, property_id)
    return {"message": "Property updated successfully", "property": property_detail(prop)}


async def archive_property(db: AsyncSession, ctx: RequestContext, property_id: str) -> Dict[str, Any]:
    prop = await _owned_property(db, ctx, property_id, "You can only archive your own properties")
    if prop.listing_status != ListingStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Only active properties can be archived")
    prop.listing_status = ListingStatus.ARCHIVED
    await db.commit()
    logger.info("Property archived", property_id=prop.id)
    return {"message": "Property archived successfully"}


async def reactivate_property(db: AsyncSession, ctx: RequestContext, property_id: str) -> Dict[str, Any]:
    prop = await _owned_property(db, ctx, property_id, "You can only reactivate your own properties")
    if prop.listing_status != ListingStatus.ARCHIVED:
        raise HTTPException(status_code=400, detail="Only archived properties can be reactivated")
    prop.listing_status = ListingStatus.ACTIVE
    await db.commit()
    logger.info("Property reactivated", property_id=prop.id)
    return {"message": "Property reactivated successfully"}


async def mark_property_sold(db: AsyncSession, ctx: RequestContext, property_id: str,
                             body: MarkSoldRequest) -> Dict[str, Any]:
    await require_verified_user(db, ctx)
    prop = await db.get(Property, property_id)
    if prop is None or prop.user_id != ctx.user_id:
        raise HTTPException(
            status_code=404,
            detail="Property not found or you do not have permission to modify it",
        )

    prop.listing_status = ListingStatus.SOLD
    prop.sold_to = blank_to_none(body.sold_to) or "External Buyer"
    prop.sold_to_user_id = blank_to_none(body.sold_to_user_id)
    prop.sold_date = utcnow()
    await db.commit()
    logger.info("Property marked sold", property_id=prop.id, sold_to_user_id=prop.sold_to_user_id)

    prop = await load_property(db, property_id)
    return {"message": "Property marked as sold successfully", "property": property_detail(prop)}


async def list_user_properties(db: AsyncSession, ctx: RequestContext) -> Dict[str, Any]:
    stmt = (
        select(Property)
        .where(Property.user_id == ctx.user_id)
        .order_by(Property.created_at.desc())
        .options(*_card_options())
    )
    rows = (await db.execute(stmt)).scalars().all()
    return {"properties": [property_detail(p) for p in rows]}


async def list_project_properties(db: AsyncSession, project_id: str) -> Dict[str, Any]:
    if await db.get(Project, project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")
    stmt = (
        select(Property)
        .where(Property.project_id == project_id, Property.listing_status == ListingStatus.ACTIVE)
        .order_by(Property.created_at.desc())
        .options(*_card_options())
    )
    rows = (await db.execute(stmt)).scalars().all()
    return {"properties": [property_card(p) for p in rows], "totalProperties": len(rows)}


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

async def list_favorites(db: AsyncSession, ctx: RequestContext, page: Any, limit: Any) -> Dict[str, Any]:
    req = page_request(page, limit, FAVORITES_PAGE_SIZE, SEARCH_MAX_PAGE_SIZE)

    count_stmt = select(func.count(SavedProperty.id)).where(SavedProperty.user_id == ctx.user_id)
    total_count = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(SavedProperty)
        .where(SavedProperty.user_id == ctx.user_id)
        .order_by(SavedProperty.created_at.desc())
        .offset(req.skip)
        .limit(req.limit)
        .options(selectinload(SavedProperty.property).options(*_card_options()))
    )
    rows = (await db.execute(stmt)).scalars().all()
    favorites = [favorite_view(saved) for saved in rows]
    return {
        "favorites": favorites,
        "count": len(favorites),
        "pagination": pagination_envelope(req, total_count),
    }


async def toggle_favorite(db: AsyncSession, ctx: RequestContext, body: ToggleFavoriteRequest) -> Dict[str, Any]:
    await require_verified_user(db, ctx)
    if is_blank(body.property_id):
        raise HTTPException(status_code=400, detail="Property ID is required")

    prop = await db.get(Property, body.property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    if prop.user_id == ctx.user_id:
        raise HTTPException(status_code=403, detail="You cannot favorite your own property")

    stmt = select(SavedProperty).where(
        SavedProperty.user_id == ctx.user_id,
        SavedProperty.property_id == prop.id,
    )
    existing = (await db.execute(stmt)).scalars().first()
    if existing is not None:
        await db.delete(existing)
        await db.commit()
        logger.info("Favorite removed", property_id=prop.id, user_id=ctx.user_id)
        return {"message": "Property removed from favorites", "isFavorited": False}

    db.add(SavedProperty(user_id=ctx.user_id, property_id=prop.id))
    await db.commit()
    logger.info("Favorite added", property_id=prop.id, user_id=ctx.user_id)
    return {"message": "Property added to favorites", "isFavorited": True}

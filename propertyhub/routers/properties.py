from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from propertyhub.core.errors import internal_error
from propertyhub.database import get_session
from propertyhub.dependencies.auth import RequestContext, get_request_context, require_auth
from propertyhub.schemas.property import MarkSoldRequest, PropertyFormRequest, ToggleFavoriteRequest
from propertyhub.services import properties

logger = get_logger(__name__)
router = APIRouter(prefix="/api/properties", tags=["properties"])
user_router = APIRouter(prefix="/api/user", tags=["properties"])


@router.get("/list")
async def list_properties(
    propertyType: Optional[str] = None,
    listingType: Optional[str] = None,
    location: Optional[str] = None,
    zipcode: Optional[str] = None,
    bedrooms: Optional[str] = None,
    bathrooms: Optional[str] = None,
    sortBy: Optional[str] = "newest",
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    params = {
        "propertyType": propertyType,
        "listingType": listingType,
        "location": location,
        "zipcode": zipcode,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "sortBy": sortBy,
        "page": page,
        "limit": limit,
    }
    try:
        return await properties.list_properties(db, params)
    except Exception as e:
        logger.error("Property listing failed", error=str(e))
        raise internal_error(ctx, e)


@router.get("/search")
async def search_properties(
    city: Optional[str] = None,
    state: Optional[str] = None,
    minPrice: Optional[str] = None,
    maxPrice: Optional[str] = None,
    propertyType: Optional[str] = None,
    bedrooms: Optional[str] = None,
    bathrooms: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    params = {
        "city": city,
        "state": state,
        "minPrice": minPrice,
        "maxPrice": maxPrice,
        "propertyType": propertyType,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "page": page,
        "limit": limit,
    }
    try:
        result = await properties.search_properties(db, params)
        logger.info("Property search executed", result_count=len(result["properties"]))
        return result
    except Exception as e:
        logger.error("Property search failed", error=str(e))
        raise internal_error(ctx, e)


@router.get("/favorites")
async def list_favorites(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.list_favorites(db, ctx, page, limit)
    except Exception as e:
        logger.error("Fetch favorites failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


@router.post("/toggle-favorite")
async def toggle_favorite(
    body: ToggleFavoriteRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.toggle_favorite(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Toggle favorite failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


@router.post("/create", status_code=201)
async def create_property(
    body: PropertyFormRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.create_property(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Property creation failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


# The uuid convertor keeps /create, /list etc. from being captured as ids,
# so other methods on those paths answer 405 instead of 404.
@router.get("/{property_id:uuid}")
async def get_property(
    property_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.get_property(db, str(property_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Fetch property failed", property_id=str(property_id), error=str(e))
        raise internal_error(ctx, e)


@router.put("/{property_id:uuid}")
async def update_property(
    property_id: UUID,
    body: PropertyFormRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.update_property(db, ctx, str(property_id), body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Update property failed", property_id=str(property_id), error=str(e))
        raise internal_error(ctx, e)


@router.post("/{property_id:uuid}/archive")
async def archive_property(
    property_id: UUID,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.archive_property(db, ctx, str(property_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Archive property failed", property_id=str(property_id), error=str(e))
        raise internal_error(ctx, e)


@router.post("/{property_id:uuid}/reactivate")
async def reactivate_property(
    property_id: UUID,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.reactivate_property(db, ctx, str(property_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Reactivate property failed", property_id=str(property_id), error=str(e))
        raise internal_error(ctx, e)


@router.post("/{property_id:uuid}/mark-sold")
async def mark_property_sold(
    property_id: UUID,
    body: MarkSoldRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.mark_property_sold(db, ctx, str(property_id), body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Mark sold failed", property_id=str(property_id), error=str(e))
        raise internal_error(ctx, e)


@user_router.get("/properties")
async def list_user_properties(
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.list_user_properties(db, ctx)
    except Exception as e:
        logger.error("Fetch user properties failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)

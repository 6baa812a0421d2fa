from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from propertyhub.core.errors import internal_error
from propertyhub.database import get_session
from propertyhub.dependencies.auth import RequestContext, require_auth
from propertyhub.schemas.interest import InterestRequest
from propertyhub.services import interests

logger = get_logger(__name__)
router = APIRouter(prefix="/api/interests", tags=["interests"])


@router.post("/express", status_code=201)
async def express_interest(
    body: InterestRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await interests.express_interest(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Express interest failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


@router.get("/check")
async def check_interest(
    projectId: Optional[str] = None,
    propertyId: Optional[str] = None,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await interests.check_interest(db, ctx, projectId, propertyId)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Check interest failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)

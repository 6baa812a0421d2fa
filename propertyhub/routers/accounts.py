from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from propertyhub.core.errors import internal_error
from propertyhub.database import get_session
from propertyhub.dependencies.auth import RequestContext, get_request_context
from propertyhub.schemas.account import ContactRequest, SignupRequest
from propertyhub.services import accounts

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["accounts"])


@router.post("/auth/signup", status_code=201)
async def signup(
    body: SignupRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await accounts.signup(db, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Signup failed", username=body.username, error=str(e))
        raise internal_error(ctx, e)


@router.post("/contact")
async def contact(
    body: ContactRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    try:
        return await accounts.submit_contact(body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Contact request failed", sender=body.email, error=str(e))
        raise internal_error(ctx, e)

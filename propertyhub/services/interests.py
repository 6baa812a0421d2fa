from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from structlog import get_logger

from propertyhub.dependencies.auth import RequestContext
from propertyhub.models import Interest, Project, Property, User
from propertyhub.schemas.interest import InterestRequest
from propertyhub.services import mailer
from propertyhub.services.transformers import iso
from propertyhub.utils.text import blank_to_none

logger = get_logger(__name__)


def _target_ids(project_id: Any, property_id: Any) -> Tuple[Optional[str], Optional[str]]:
    project_id = blank_to_none(project_id)
    property_id = blank_to_none(property_id)
    if project_id is None and property_id is None:
        raise HTTPException(status_code=400, detail="Either projectId or propertyId is required")
    if project_id is not None and property_id is not None:
        raise HTTPException(
            status_code=400, detail="Cannot express interest in both project and property simultaneously"
        )
    return project_id, property_id


async def _find_interest(db: AsyncSession, user_id: str, project_id: Optional[str],
                         property_id: Optional[str]) -> Optional[Interest]:
    stmt = select(Interest).where(Interest.user_id == user_id)
    if project_id is not None:
        stmt = stmt.where(Interest.project_id == project_id)
    else:
        stmt = stmt.where(Interest.property_id == property_id)
    return (await db.execute(stmt)).scalars().first()


def interest_ref(interest: Optional[Interest]) -> Optional[Dict[str, Any]]:
    if interest is None:
        return None
    return {"id": interest.id, "createdAt": iso(interest.created_at)}


async def _target_name(db: AsyncSession, project_id: Optional[str], property_id: Optional[str]) -> str:
    """Name used in the notification subject. Raises 404 when the target does not exist."""
    if project_id is not None:
        project = await db.get(Project, project_id)
        if project is None:
            raise HTTPException(status_code=404, detail="Project not found")
        return project.name

    stmt = select(Property).where(Property.id == property_id).options(selectinload(Property.project))
    prop = (await db.execute(stmt)).scalars().first()
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    if prop.project is not None:
        return prop.project.name
    return f"Property at {prop.street_address}"


async def _notify(user: User, target: str, message: Optional[str]) -> None:
    name = user.name or user.username
    try:
        message_id = await mailer.send_email(
            subject=f"[Expression of Interest] {name} is interested in {target}",
            html_body=mailer.interest_html(name, user.email, user.mobile_number, target, message),
            reply_to=user.email,
        )
    except Exception as e:
        # The interest is already stored; delivery problems only get logged
        logger.error("Interest email failed", user_id=user.id, target=target, error=str(e))
        return
    logger.info("Interest email sent", user_id=user.id, message_id=message_id)


async def express_interest(db: AsyncSession, ctx: RequestContext, body: InterestRequest) -> Dict[str, Any]:
    project_id, property_id = _target_ids(body.project_id, body.property_id)

    user = await db.get(User, ctx.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    target = await _target_name(db, project_id, property_id)

    if await _find_interest(db, user.id, project_id, property_id) is not None:
        raise HTTPException(status_code=400, detail="Interest already expressed")

    interest = Interest(
        user_id=user.id,
        project_id=project_id,
        property_id=property_id,
        message=blank_to_none(body.message),
    )
    try:
        async with db.begin_nested():
            db.add(interest)
    except IntegrityError:
        logger.info("Interest inserted concurrently", user_id=user.id, project_id=project_id,
                    property_id=property_id)
        raise HTTPException(status_code=400, detail="Interest already expressed")
    await db.commit()
    logger.info("Interest expressed", interest_id=interest.id, user_id=user.id,
                project_id=project_id, property_id=property_id)

    await _notify(user, target, interest.message)
    return {"success": True, "interest": interest_ref(interest)}


async def check_interest(db: AsyncSession, ctx: RequestContext, project_id: Optional[str],
                         property_id: Optional[str]) -> Dict[str, Any]:
    project_id, property_id = _target_ids(project_id, property_id)
    interest = await _find_interest(db, ctx.user_id, project_id, property_id)
    return {"hasExpressed": interest is not None, "interest": interest_ref(interest)}

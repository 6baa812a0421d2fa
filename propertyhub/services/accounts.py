from typing import Any, Dict

import bcrypt
from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from propertyhub.dependencies.auth import RequestContext
from propertyhub.models import User, UserRole
from propertyhub.schemas.account import ContactRequest, SignupRequest
from propertyhub.services import mailer
from propertyhub.services.transformers import enum_value, iso
from propertyhub.utils.text import is_blank

logger = get_logger(__name__)

VERIFICATION_REQUIRED = "Please verify your email or mobile number to perform this action"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


async def require_verified_user(db: AsyncSession, ctx: RequestContext) -> User:
    """Loads the caller's row and rejects accounts with neither email nor mobile verified."""
    user = await db.get(User, ctx.user_id)
    if user is None:
        raise HTTPException(status_code=403, detail="User not found")
    if not user.is_verified:
        logger.info("Unverified user blocked", user_id=user.id)
        raise HTTPException(status_code=403, detail=VERIFICATION_REQUIRED)
    return user


def user_view(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "email": user.email,
        "mobileNumber": user.mobile_number,
        "isAgent": user.is_agent,
        "role": enum_value(user.role),
        "companyName": user.company_name,
        "imageLink": user.image_link,
        "emailVerified": user.email_verified,
        "mobileVerified": user.mobile_verified,
        "createdAt": iso(user.created_at),
    }


async def signup(db: AsyncSession, body: SignupRequest) -> Dict[str, Any]:
    required = (body.first_name, body.last_name, body.username, body.email, body.mobile_number, body.password)
    if any(is_blank(value) for value in required):
        raise HTTPException(status_code=400, detail="Missing required fields")
    is_agent = bool(body.is_agent)
    if is_agent and is_blank(body.company_name):
        raise HTTPException(status_code=400, detail="Company name is required for agents")

    stmt = select(User).where(
        or_(
            User.email == body.email,
            User.username == body.username,
            User.mobile_number == body.mobile_number,
        )
    )
    existing = (await db.execute(stmt)).scalars().first()
    if existing is not None:
        if existing.email == body.email:
            raise HTTPException(status_code=400, detail="Email already exists")
        if existing.username == body.username:
            raise HTTPException(status_code=400, detail="Username already exists")
        raise HTTPException(status_code=400, detail="Mobile number already exists")

    user = User(
        name=f"{body.first_name} {body.last_name}",
        username=body.username,
        email=body.email,
        mobile_number=body.mobile_number,
        password_hash=hash_password(body.password),
        is_agent=is_agent,
        role=UserRole.AGENT if is_agent else UserRole.BUYER,
        company_name=body.company_name if is_agent else None,
        image_link=body.image_link or None,
        email_verified=False,
        mobile_verified=False,
    )
    db.add(user)
    await db.commit()
    logger.info("User signed up", user_id=user.id, role=user.role.value)
    return {"user": user_view(user), "message": "User created successfully"}


async def submit_contact(body: ContactRequest) -> Dict[str, Any]:
    if is_blank(body.name) or is_blank(body.email) or is_blank(body.message):
        raise HTTPException(status_code=400, detail="Name, email, and message are required")
    try:
        message_id = await mailer.send_email(
            subject=f"[PropertyHub Contact Request] {body.name.strip()}",
            html_body=mailer.contact_html(body.message, body.phone),
            reply_to=body.email,
        )
    except Exception as e:
        logger.error("Contact email failed", sender=body.email, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to send email")
    logger.info("Contact email sent", message_id=message_id)
    return {"message": "Email sent successfully", "id": message_id}

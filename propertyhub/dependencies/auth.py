from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import httpx
from structlog import get_logger
from pybreaker import CircuitBreaker, CircuitBreakerError

from propertyhub.config import settings

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)
breaker = CircuitBreaker(fail_max=3, reset_timeout=60)


@dataclass(frozen=True)
class SessionUser:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Anonymous"


@dataclass(frozen=True)
class RequestContext:
    """Per-request identity and environment flags handed to every handler."""
    user: Optional[SessionUser]
    is_development: bool = False

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None


@breaker
async def fetch_session(token: str) -> Optional[dict]:
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{settings.SESSION_PROVIDER_URL}/session",
            headers={"Authorization": f"Bearer {token}"},
            timeout=10.0,
        )
    if response.status_code != 200:
        logger.info("Session lookup rejected", status_code=response.status_code)
        return None
    return response.json()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Optional[SessionUser]:
    if credentials is None:
        return None
    try:
        session = await fetch_session(credentials.credentials)
    except (httpx.HTTPError, CircuitBreakerError) as e:
        logger.warning("Session provider unavailable", error=str(e))
        return None
    user = (session or {}).get("user") or {}
    if not user.get("id"):
        return None
    return SessionUser(id=str(user["id"]), name=user.get("name"), email=user.get("email"))


async def get_request_context(user: Optional[SessionUser] = Depends(get_current_user)) -> RequestContext:
    return RequestContext(user=user, is_development=settings.is_development)


async def require_auth(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if ctx.user is None or not ctx.user.id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return ctx

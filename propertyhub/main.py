from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis
from sqlalchemy import text
from structlog import get_logger

from propertyhub.config import settings
from propertyhub.core.errors import register_exception_handlers
from propertyhub.core.logging import setup_logging
from propertyhub.database import AsyncSessionFactory
from propertyhub.routers import accounts, forum, interests, projects, properties

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Rate limiting is optional; without Redis the limiter dependency is a no-op
    if settings.REDIS_URL:
        try:
            redis = Redis.from_url(settings.REDIS_URL)
            await FastAPILimiter.init(redis)
            logger.info("Rate limiter initialised")
        except Exception as e:
            logger.warning("Running without rate limiter", error=str(e))
    yield


app = FastAPI(title="PropertyHub API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(properties.router)
app.include_router(properties.user_router)
app.include_router(forum.router)
app.include_router(projects.builders_router)
app.include_router(projects.router)
app.include_router(interests.router)
app.include_router(accounts.router)


@app.get("/health", tags=["health"])
async def health():
    details = {"status": "ok"}
    try:
        async with AsyncSessionFactory() as session:
            await session.execute(text("SELECT 1"))
        details["database"] = "up"
    except Exception as e:
        details["status"] = "degraded"
        details["database"] = f"down: {str(e)}"
    # Config presence checks (no secrets exposed)
    details["config"] = {
        "redis_url_set": bool(settings.REDIS_URL),
        "geocoding_key_set": bool(settings.GOOGLE_MAPS_API_KEY),
        "email_key_set": bool(settings.RESEND_API_KEY),
    }
    return details

from collections.abc import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from propertyhub.config import settings

if not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL not set")

DB_URL = make_url(settings.DATABASE_URL)

# asyncpg does not understand libpq's sslmode, it takes an ssl connect arg instead
connect_args = {}
if DB_URL.drivername.endswith("+asyncpg") and "sslmode" in DB_URL.query:
    connect_args["ssl"] = DB_URL.query["sslmode"]
    DB_URL = DB_URL.difference_update_query(["sslmode"])

# Create a single, shared async engine for the application
engine = create_async_engine(
    DB_URL,
    poolclass=NullPool,  # Recommended for serverless/async environments
    connect_args=connect_args,
)

AsyncSessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Dependency for getting a session in FastAPI routes
async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionFactory() as session:
        yield session

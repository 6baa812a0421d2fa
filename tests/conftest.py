from dataclasses import dataclass
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from propertyhub.database import get_session
from propertyhub.dependencies.auth import SessionUser, get_current_user
from propertyhub.main import app
from propertyhub.models import (
    Base,
    Builder,
    ForumCategory,
    ForumPost,
    ListingStatus,
    Location,
    Project,
    Property,
    PropertyType,
    User,
)
from propertyhub.services.geocoding import GeocodeResult


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@dataclass
class AuthState:
    user: Optional[SessionUser] = None

    def login(self, user: User) -> None:
        self.user = SessionUser(id=user.id, name=user.name, email=user.email)

    def logout(self) -> None:
        self.user = None


@pytest.fixture
def auth():
    return AuthState()


@pytest.fixture
async def client(session_factory, auth):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    async def override_get_current_user():
        return auth.user

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_current_user] = override_get_current_user
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def no_geocoding(monkeypatch):
    async def mock_geocode_address(address, client=None):
        return None
    monkeypatch.setattr("propertyhub.services.geocoding.geocode_address", mock_geocode_address)


@pytest.fixture
def geocode_to(monkeypatch):
    """Makes every geocode call resolve to the given point."""
    def _set(latitude=17.4401, longitude=78.3489, **fields):
        result = GeocodeResult(
            latitude=latitude,
            longitude=longitude,
            formatted_address=fields.pop("formatted_address", "Gachibowli, Hyderabad, Telangana 500032, India"),
            city=fields.pop("city", "Hyderabad"),
            state=fields.pop("state", "Telangana"),
            country=fields.pop("country", "India"),
            zipcode=fields.pop("zipcode", "500032"),
            locality=fields.pop("locality", "Gachibowli"),
            neighborhood=fields.pop("neighborhood", ""),
        )

        async def mock_geocode_address(address, client=None):
            return result
        monkeypatch.setattr("propertyhub.services.geocoding.geocode_address", mock_geocode_address)
        return result
    return _set


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(verified=True, **fields):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=fields.pop("name", f"User {n}"),
            username=fields.pop("username", f"user{n}"),
            email=fields.pop("email", f"user{n}@example.com"),
            mobile_number=fields.pop("mobile_number", f"90000000{n:02d}"),
            email_verified=verified,
            **fields,
        )
        db.add(user)
        await db.commit()
        return user
    return _make


@pytest.fixture
def make_location(db):
    async def _make(**fields):
        location = Location(
            city=fields.pop("city", "Hyderabad"),
            state=fields.pop("state", "Telangana"),
            country=fields.pop("country", "India"),
            zipcode=fields.pop("zipcode", "500032"),
            locality=fields.pop("locality", "Gachibowli"),
            **fields,
        )
        db.add(location)
        await db.commit()
        return location
    return _make


@pytest.fixture
def make_property(db, make_location):
    async def _make(user, location=None, **fields):
        if location is None:
            location = await make_location()
        prop = Property(
            user_id=user.id,
            location_id=location.id,
            street_address=fields.pop("street_address", "Plot 12, Road No. 3"),
            posted_by=fields.pop("posted_by", user.name),
            property_type=fields.pop("property_type", PropertyType.APARTMENT),
            title=fields.pop("title", "Sunny apartment"),
            listing_status=fields.pop("listing_status", ListingStatus.ACTIVE),
            **fields,
        )
        db.add(prop)
        await db.commit()
        return prop
    return _make


@pytest.fixture
def make_builder(db):
    counter = {"n": 0}

    async def _make(name=None, **fields):
        counter["n"] += 1
        builder = Builder(name=name or f"Builder {counter['n']}", **fields)
        db.add(builder)
        await db.commit()
        return builder
    return _make


@pytest.fixture
def make_project(db, make_builder, make_location):
    async def _make(name="Sarovar Zenith", builder=None, location=None, **fields):
        builder = builder or await make_builder()
        location = location or await make_location()
        project = Project(
            name=name,
            description=fields.pop("description", "Gated community"),
            builder_id=builder.id,
            location_id=location.id,
            **fields,
        )
        db.add(project)
        await db.commit()
        return project
    return _make


@pytest.fixture
def make_category(db):
    counter = {"n": 0}

    async def _make(name=None, **fields):
        counter["n"] += 1
        name = name or f"Category {counter['n']}"
        category = ForumCategory(name=name, slug=fields.pop("slug", f"category-{counter['n']}"), **fields)
        db.add(category)
        await db.commit()
        return category
    return _make


@pytest.fixture
def make_post(db):
    counter = {"n": 0}

    async def _make(author, category, **fields):
        counter["n"] += 1
        post = ForumPost(
            title=fields.pop("title", f"Post {counter['n']}"),
            content=fields.pop("content", "Looking for advice"),
            slug=fields.pop("slug", f"post-{counter['n']}"),
            category_id=category.id,
            author_id=author.id,
            **fields,
        )
        db.add(post)
        await db.commit()
        return post
    return _make


@pytest.fixture
def fetch(session_factory):
    """Reads a row through a short-lived session so no transaction stays open on the shared connection."""
    async def _fetch(model, ident):
        async with session_factory() as session:
            return await session.get(model, ident)
    return _fetch

from typing import Any, Dict, List, Optional, Union

from fastapi import HTTPException
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from structlog import get_logger

from propertyhub.dependencies.auth import RequestContext
from propertyhub.models import Builder, Interest, Location, Project, Property
from propertyhub.schemas.project import BuilderCreateRequest, ProjectArchiveRequest, ProjectCreateRequest
from propertyhub.services import geocoding
from propertyhub.services.accounts import require_verified_user
from propertyhub.services.locations import resolve_location
from propertyhub.services.transformers import builder_view, location_view, project_view
from propertyhub.utils.pagination import page_request, pagination_envelope
from propertyhub.utils.text import blank_to_none, is_blank, split_csv

logger = get_logger(__name__)

PAGE_SIZE = 12
MAX_PAGE_SIZE = 50
TYPEAHEAD_MIN_LENGTH = 2
TYPEAHEAD_LIMIT = 20
TYPEAHEAD_BROWSE_LIMIT = 100


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() or None if value else None


def _split_contacts(value: Optional[Union[str, List[str]]]) -> List[str]:
    if isinstance(value, list):
        return [item.strip() for item in value if item and item.strip()]
    return split_csv(value)


def _project_options():
    return (selectinload(Project.builder), selectinload(Project.location))


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

async def list_builders(db: AsyncSession, search: Optional[str], page: Any, limit: Any) -> Dict[str, Any]:
    req = page_request(page, limit, PAGE_SIZE, MAX_PAGE_SIZE)
    conditions = [Builder.name.icontains(search.strip(), autoescape=True)] if search and search.strip() else []

    total_count = (await db.execute(select(func.count(Builder.id)).where(*conditions))).scalar_one()

    project_count = (
        select(func.count(Project.id))
        .where(Project.builder_id == Builder.id)
        .correlate(Builder)
        .scalar_subquery()
    )
    stmt = (
        select(Builder, project_count.label("project_count"))
        .where(*conditions)
        .order_by(Builder.name.asc())
        .offset(req.skip)
        .limit(req.limit)
    )
    rows = (await db.execute(stmt)).all()
    return {
        "builders": [builder_view(builder, count) for builder, count in rows],
        "pagination": pagination_envelope(req, total_count),
    }


async def create_builder(db: AsyncSession, ctx: RequestContext, body: BuilderCreateRequest) -> Dict[str, Any]:
    await require_verified_user(db, ctx)
    if is_blank(body.name):
        raise HTTPException(status_code=400, detail="Builder name is required")

    name = body.name.strip()
    existing = (
        await db.execute(select(Builder.id).where(func.lower(Builder.name) == name.lower()))
    ).first()
    if existing is not None:
        raise HTTPException(status_code=400, detail="A builder with this name already exists")

    builder = Builder(
        name=name,
        description=_clean(body.description),
        website=_clean(body.website),
        logo_url=blank_to_none(body.logo_url),
        address=_clean(body.address),
        emails=_split_contacts(body.emails),
        phones=_split_contacts(body.phones),
    )
    db.add(builder)
    await db.commit()
    logger.info("Builder created", builder_id=builder.id, name=builder.name, user_id=ctx.user_id)
    return {"message": "Builder created successfully", "builder": builder_view(builder)}


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

async def list_projects(db: AsyncSession, search: Optional[str], page: Any, limit: Any) -> Dict[str, Any]:
    req = page_request(page, limit, PAGE_SIZE, MAX_PAGE_SIZE)
    conditions: List[Any] = [Project.is_archived.is_(False)]
    if search and search.strip():
        term = search.strip()
        conditions.append(
            or_(
                Project.name.icontains(term, autoescape=True),
                Builder.name.icontains(term, autoescape=True),
                Location.city.icontains(term, autoescape=True),
                Location.state.icontains(term, autoescape=True),
                Location.zipcode.icontains(term, autoescape=True),
                Location.locality.icontains(term, autoescape=True),
                Location.neighborhood.icontains(term, autoescape=True),
                Location.formatted_address.icontains(term, autoescape=True),
            )
        )

    base = select(Project).join(Project.builder).join(Project.location).where(*conditions)
    total_count = (
        await db.execute(select(func.count()).select_from(base.subquery()))
    ).scalar_one()

    stmt = base.order_by(Project.name.asc()).offset(req.skip).limit(req.limit).options(*_project_options())
    projects = (await db.execute(stmt)).scalars().all()
    return {
        "projects": [project_view(p) for p in projects],
        "pagination": pagination_envelope(req, total_count),
    }


async def search_projects(db: AsyncSession, query: Optional[str]) -> Dict[str, Any]:
    """Typeahead over name, builder name and city. Short queries browse the first projects by name."""
    term = (query or "").strip()
    stmt = select(Project).join(Project.builder).join(Project.location)
    if len(term) >= TYPEAHEAD_MIN_LENGTH:
        stmt = stmt.where(
            or_(
                Project.name.icontains(term, autoescape=True),
                Builder.name.icontains(term, autoescape=True),
                Location.city.icontains(term, autoescape=True),
            )
        ).limit(TYPEAHEAD_LIMIT)
    else:
        stmt = stmt.limit(TYPEAHEAD_BROWSE_LIMIT)
    stmt = stmt.order_by(Project.name.asc()).options(*_project_options())

    projects = (await db.execute(stmt)).scalars().all()
    return {
        "projects": [
            {
                "id": p.id,
                "name": p.name,
                "builder": {"name": p.builder.name} if p.builder else None,
                "location": location_view(p.location),
            }
            for p in projects
        ]
    }


async def _load_project(db: AsyncSession, project_id: str) -> Project:
    stmt = (
        select(Project)
        .where(Project.id == project_id)
        .options(*_project_options())
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalars().one()


async def create_project(db: AsyncSession, ctx: RequestContext, body: ProjectCreateRequest) -> Dict[str, Any]:
    if any(is_blank(v) for v in (body.name, body.description, body.builder_id, body.location_address)):
        raise HTTPException(status_code=400, detail="Missing required fields")

    builder = await db.get(Builder, body.builder_id)
    if builder is None:
        raise HTTPException(status_code=400, detail="Invalid builder ID")

    geocoded = await geocoding.geocode_address(body.location_address.strip())
    if geocoded is None:
        raise HTTPException(status_code=400, detail="Could not geocode the provided address")
    location = await resolve_location(db, {}, geocoded)

    image_urls = list(body.image_urls or [])
    project = Project(
        name=body.name.strip(),
        description=body.description,
        type=(body.type or "RESIDENTIAL").upper(),
        builder_id=builder.id,
        location_id=location.id,
        posted_by_user_id=ctx.user_id,
        builder_website_link=blank_to_none(body.builder_website_link),
        brochure_url=blank_to_none(body.brochure_url),
        banner_image_url=blank_to_none(body.banner_image_url),
        thumbnail_url=blank_to_none(body.thumbnail_url) or blank_to_none(body.banner_image_url)
        or next(iter(image_urls), None),
        highlights=body.highlights or None,
        amenities=body.amenities or None,
        image_urls=image_urls,
        walkthrough_video_url=blank_to_none(body.walkthrough_video_url),
        is_archived=False,
    )
    db.add(project)
    await db.commit()
    logger.info("Project created", project_id=project.id, builder_id=builder.id, location_id=location.id)

    project = await _load_project(db, project.id)
    return {"message": "Project created successfully", "project": project_view(project)}


async def set_project_archived(db: AsyncSession, ctx: RequestContext, project_id: str,
                               body: ProjectArchiveRequest) -> Dict[str, Any]:
    if not isinstance(body.is_archived, bool):
        raise HTTPException(status_code=400, detail="isArchived must be a boolean")

    project = await db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    if project.posted_by_user_id != ctx.user_id:
        raise HTTPException(status_code=403, detail="You do not have permission to modify this project")

    project.is_archived = body.is_archived
    await db.commit()
    logger.info("Project archive flag changed", project_id=project.id, is_archived=body.is_archived)

    project = await _load_project(db, project_id)
    message = "Project archived successfully" if body.is_archived else "Project unarchived successfully"
    return {"message": message, "project": project_view(project)}


async def _owned_project(db: AsyncSession, ctx: RequestContext, project_id: str, action: str) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    if project.posted_by_user_id != ctx.user_id:
        raise HTTPException(status_code=403, detail=f"You do not have permission to {action} this project")
    return project


async def update_project(db: AsyncSession, ctx: RequestContext, project_id: str,
                         body: ProjectCreateRequest) -> Dict[str, Any]:
    """
    Replaces a project's details. The address is only geocoded again when it
    differs from the stored one; an address that no longer geocodes keeps the
    current location.
    """
    await require_verified_user(db, ctx)
    if any(is_blank(v) for v in (body.name, body.description, body.builder_id, body.location_address)):
        raise HTTPException(status_code=400, detail="Missing required fields")

    project = await _owned_project(db, ctx, project_id, "edit")
    builder = await db.get(Builder, body.builder_id)
    if builder is None:
        raise HTTPException(status_code=400, detail="Invalid builder ID")

    address = body.location_address.strip()
    current = await db.get(Location, project.location_id)
    if current is None or current.formatted_address != address:
        geocoded = await geocoding.geocode_address(address)
        if geocoded is None:
            logger.warning("Project address did not geocode, keeping location", project_id=project.id)
        else:
            project.location_id = (await resolve_location(db, {}, geocoded)).id

    image_urls = list(body.image_urls or [])
    project.name = body.name.strip()
    project.description = body.description
    project.type = (body.type or project.type or "RESIDENTIAL").upper()
    project.builder_id = builder.id
    project.builder_website_link = blank_to_none(body.builder_website_link)
    project.brochure_url = blank_to_none(body.brochure_url)
    project.banner_image_url = blank_to_none(body.banner_image_url)
    project.thumbnail_url = (
        blank_to_none(body.thumbnail_url) or blank_to_none(body.banner_image_url) or next(iter(image_urls), None)
    )
    project.highlights = body.highlights or None
    project.amenities = body.amenities or None
    project.image_urls = image_urls
    project.walkthrough_video_url = blank_to_none(body.walkthrough_video_url)
    await db.commit()
    logger.info("Project updated", project_id=project.id, location_id=project.location_id)

    project = await _load_project(db, project_id)
    return {"message": "Project updated successfully", "project": project_view(project)}


async def delete_project(db: AsyncSession, ctx: RequestContext, project_id: str) -> Dict[str, Any]:
    """Deletes an owned project. Its listings stay up without the project link."""
    await _owned_project(db, ctx, project_id, "delete")
    project = await _load_project(db, project_id)
    view = project_view(project)

    detached = await db.execute(
        update(Property).where(Property.project_id == project_id).values(project_id=None)
    )
    await db.execute(delete(Interest).where(Interest.project_id == project_id))
    await db.delete(project)
    await db.commit()
    logger.info("Project deleted", project_id=project_id, detached_properties=detached.rowcount)
    return {"message": "Project deleted successfully", "project": view}

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from propertyhub.core.errors import internal_error
from propertyhub.database import get_session
from propertyhub.dependencies.auth import RequestContext, get_request_context, require_auth
from propertyhub.schemas.project import BuilderCreateRequest, ProjectArchiveRequest, ProjectCreateRequest
from propertyhub.services import projects, properties

logger = get_logger(__name__)
builders_router = APIRouter(prefix="/api/builders", tags=["builders"])
router = APIRouter(prefix="/api/projects", tags=["projects"])


@builders_router.get("")
async def list_builders(
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.list_builders(db, search, page, limit)
    except Exception as e:
        logger.error("Fetch builders failed", error=str(e))
        raise internal_error(ctx, e)


@builders_router.post("/create", status_code=201)
async def create_builder(
    body: BuilderCreateRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.create_builder(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Create builder failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


@router.get("")
async def list_projects(
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.list_projects(db, search, page, limit)
    except Exception as e:
        logger.error("Fetch projects failed", error=str(e))
        raise internal_error(ctx, e)


@router.get("/search")
async def search_projects(
    query: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.search_projects(db, query)
    except Exception as e:
        logger.error("Project search failed", query=query, error=str(e))
        raise internal_error(ctx, e)


@router.post("/create", status_code=201)
async def create_project(
    body: ProjectCreateRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.create_project(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Create project failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


@router.patch("/{project_id:uuid}/archive")
async def archive_project(
    project_id: UUID,
    body: ProjectArchiveRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.set_project_archived(db, ctx, str(project_id), body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Archive project failed", project_id=str(project_id), error=str(e))
        raise internal_error(ctx, e)


@router.get("/{project_id:uuid}/properties")
async def list_project_properties(
    project_id: UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await properties.list_project_properties(db, str(project_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Fetch project properties failed", project_id=str(project_id), error=str(e))
        raise internal_error(ctx, e)


@router.put("/{project_id:uuid}")
async def update_project(
    project_id: UUID,
    body: ProjectCreateRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.update_project(db, ctx, str(project_id), body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Update project failed", project_id=str(project_id), error=str(e))
        raise internal_error(ctx, e)


@router.delete("/{project_id:uuid}")
async def delete_project(
    project_id: UUID,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await projects.delete_project(db, ctx, str(project_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Delete project failed", project_id=str(project_id), error=str(e))
        raise internal_error(ctx, e)

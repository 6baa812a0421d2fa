from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from propertyhub.core.errors import internal_error
from propertyhub.database import get_session
from propertyhub.dependencies.auth import RequestContext, get_request_context, require_auth
from propertyhub.dependencies.rate_limit import forum_post_rate_limit
from propertyhub.schemas.forum import (
    PostCreateRequest,
    PostReactionRequest,
    ReplyCreateRequest,
    ReplyReactionRequest,
)
from propertyhub.services import forum

logger = get_logger(__name__)
router = APIRouter(prefix="/api/forum", tags=["forum"])


@router.get("/categories")
async def list_categories(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await forum.list_categories(db)
    except Exception as e:
        logger.error("Fetch forum categories failed", error=str(e))
        raise internal_error(ctx, e)


@router.get("/posts")
async def list_posts(
    categoryId: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await forum.list_posts(db, categoryId, page, limit)
    except Exception as e:
        logger.error("Fetch forum posts failed", category_id=categoryId, error=str(e))
        raise internal_error(ctx, e)


@router.post("/posts", status_code=201, dependencies=[Depends(forum_post_rate_limit)])
async def create_post(
    body: PostCreateRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await forum.create_post(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Create forum post failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


@router.get("/posts/{slug}")
async def get_post(
    slug: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await forum.get_post(db, slug)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Fetch forum post failed", slug=slug, error=str(e))
        raise internal_error(ctx, e)


@router.post("/replies", status_code=201)
async def create_reply(
    body: ReplyCreateRequest,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await forum.create_reply(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Create forum reply failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)


@router.post("/reactions/posts")
async def toggle_post_reaction(
    body: PostReactionRequest,
    response: Response,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        result, added = await forum.toggle_post_reaction(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Post reaction failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)
    response.status_code = 201 if added else 200
    return result


@router.post("/reactions/replies")
async def toggle_reply_reaction(
    body: ReplyReactionRequest,
    response: Response,
    ctx: RequestContext = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
):
    try:
        result, added = await forum.toggle_reply_reaction(db, ctx, body)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Reply reaction failed", user_id=ctx.user_id, error=str(e))
        raise internal_error(ctx, e)
    response.status_code = 201 if added else 200
    return result


@router.get("/search")
async def search_forum(
    q: Optional[str] = None,
    type: Optional[str] = "all",
    page: Optional[str] = None,
    limit: Optional[str] = None,
    categoryId: Optional[str] = None,
    city: Optional[str] = None,
    propertyType: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    params = {
        "q": q,
        "type": type,
        "page": page,
        "limit": limit,
        "categoryId": categoryId,
        "city": city,
        "propertyType": propertyType,
    }
    try:
        return await forum.search(db, params)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Forum search failed", query=q, error=str(e))
        raise internal_error(ctx, e)


@router.get("/user/{user_id}/posts")
async def user_posts(
    user_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await forum.user_posts(db, user_id, page, limit)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Fetch user forum posts failed", user_id=user_id, error=str(e))
        raise internal_error(ctx, e)


@router.get("/user/{user_id}/stats")
async def user_stats(
    user_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    try:
        return await forum.user_stats(db, user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Fetch user forum stats failed", user_id=user_id, error=str(e))
        raise internal_error(ctx, e)

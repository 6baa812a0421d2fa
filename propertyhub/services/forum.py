from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from structlog import get_logger

from propertyhub.dependencies.auth import RequestContext
from propertyhub.models import (
    ForumCategory,
    ForumPost,
    ForumReply,
    PostReaction,
    ReactionType,
    ReplyReaction,
    User,
)
from propertyhub.models.base import utcnow
from propertyhub.schemas.forum import (
    PostCreateRequest,
    PostReactionRequest,
    ReplyCreateRequest,
    ReplyReactionRequest,
)
from propertyhub.services.accounts import require_verified_user
from propertyhub.services.transformers import (
    author_view,
    category_view,
    post_detail,
    post_summary,
    reaction_view,
    reply_view,
)
from propertyhub.utils.pagination import page_request, total_pages
from propertyhub.utils.text import is_blank, slugify

logger = get_logger(__name__)

POSTS_PAGE_SIZE = 20
POSTS_MAX_PAGE_SIZE = 50
SEARCH_CATEGORY_LIMIT = 5
MIN_QUERY_LENGTH = 2
SEARCH_TYPES = ("all", "posts", "categories")
SLUG_ATTEMPTS = 3


def _reply_count():
    return (
        select(func.count(ForumReply.id))
        .where(ForumReply.post_id == ForumPost.id)
        .correlate(ForumPost)
        .scalar_subquery()
    )


def _reaction_count():
    return (
        select(func.count(PostReaction.id))
        .where(PostReaction.post_id == ForumPost.id)
        .correlate(ForumPost)
        .scalar_subquery()
    )


def _post_rows_query(*conditions):
    return (
        select(ForumPost, _reply_count().label("replies"), _reaction_count().label("reactions"))
        .where(*conditions)
        .options(selectinload(ForumPost.author), selectinload(ForumPost.category))
    )


def _parse_reaction_type(value: Optional[str]) -> ReactionType:
    try:
        return ReactionType(value.strip().upper())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid reaction type")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

async def _post_counts_by_category(db: AsyncSession) -> Dict[str, int]:
    stmt = select(ForumPost.category_id, func.count(ForumPost.id)).group_by(ForumPost.category_id)
    return {category_id: count for category_id, count in (await db.execute(stmt)).all()}


async def list_categories(db: AsyncSession) -> List[Dict[str, Any]]:
    """Active root categories, each with active children and grandchildren, by display order."""
    stmt = (
        select(ForumCategory)
        .where(ForumCategory.is_active.is_(True))
        .order_by(ForumCategory.display_order.asc(), ForumCategory.name.asc())
    )
    categories = (await db.execute(stmt)).scalars().all()
    counts = await _post_counts_by_category(db)

    by_parent: Dict[Optional[str], List[ForumCategory]] = defaultdict(list)
    for category in categories:
        by_parent[category.parent_id].append(category)

    def build(category: ForumCategory, depth: int) -> Dict[str, Any]:
        children = [build(child, depth + 1) for child in by_parent[category.id]] if depth < 2 else []
        return category_view(category, counts.get(category.id, 0), children)

    return [build(root, 0) for root in by_parent[None]]


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

async def list_posts(db: AsyncSession, category_id: Optional[str], page: Any, limit: Any) -> Dict[str, Any]:
    req = page_request(page, limit, POSTS_PAGE_SIZE, POSTS_MAX_PAGE_SIZE)
    conditions = [ForumPost.category_id == category_id] if category_id else []

    count_stmt = select(func.count(ForumPost.id)).where(*conditions)
    total_count = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        _post_rows_query(*conditions)
        .order_by(
            ForumPost.is_sticky.desc(),
            ForumPost.last_reply_at.desc().nulls_last(),
            ForumPost.created_at.desc(),
        )
        .offset(req.skip)
        .limit(req.limit)
    )
    rows = (await db.execute(stmt)).all()
    return {
        "posts": [post_summary(post, replies, reactions) for post, replies, reactions in rows],
        "totalCount": total_count,
        "currentPage": req.page,
        "totalPages": total_pages(total_count, req.limit),
    }


async def unique_post_slug(db: AsyncSession, title: str) -> str:
    base = slugify(title) or "post"
    slug = base
    counter = 1
    while (await db.execute(select(ForumPost.id).where(ForumPost.slug == slug))).first() is not None:
        slug = f"{base}-{counter}"
        counter += 1
    return slug


async def _load_post_summary(db: AsyncSession, post_id: str) -> Dict[str, Any]:
    stmt = _post_rows_query(ForumPost.id == post_id).execution_options(populate_existing=True)
    post, replies, reactions = (await db.execute(stmt)).one()
    return post_summary(post, replies, reactions)


async def create_post(db: AsyncSession, ctx: RequestContext, body: PostCreateRequest) -> Dict[str, Any]:
    await require_verified_user(db, ctx)
    if is_blank(body.title) or is_blank(body.content) or is_blank(body.category_id):
        raise HTTPException(status_code=400, detail="Missing required fields")

    category = await db.get(ForumCategory, body.category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")

    for attempt in range(1, SLUG_ATTEMPTS + 1):
        post = ForumPost(
            title=body.title.strip(),
            content=body.content,
            slug=await unique_post_slug(db, body.title),
            category_id=category.id,
            author_id=ctx.user_id,
        )
        try:
            async with db.begin_nested():
                db.add(post)
            break
        except IntegrityError:
            # Another post took the slug between the lookup and the insert
            if attempt == SLUG_ATTEMPTS:
                raise
            logger.info("Post slug taken concurrently, retrying", slug=post.slug, attempt=attempt)
    await db.commit()
    logger.info("Forum post created", post_id=post.id, slug=post.slug, author_id=ctx.user_id)
    return await _load_post_summary(db, post.id)


async def get_post(db: AsyncSession, slug: str) -> Dict[str, Any]:
    bumped = await db.execute(
        update(ForumPost).where(ForumPost.slug == slug).values(view_count=ForumPost.view_count + 1)
    )
    if bumped.rowcount == 0:
        raise HTTPException(status_code=404, detail="Post not found")
    await db.commit()

    post_stmt = (
        select(ForumPost)
        .where(ForumPost.slug == slug)
        .options(
            selectinload(ForumPost.author),
            selectinload(ForumPost.category),
            selectinload(ForumPost.reactions).selectinload(PostReaction.user),
        )
        .execution_options(populate_existing=True)
    )
    post = (await db.execute(post_stmt)).scalars().one()

    reply_options = (
        selectinload(ForumReply.author),
        selectinload(ForumReply.reactions).selectinload(ReplyReaction.user),
    )
    replies_stmt = (
        select(ForumReply)
        .where(ForumReply.post_id == post.id, ForumReply.parent_id.is_(None))
        .order_by(ForumReply.created_at.asc())
        .options(
            *reply_options,
            selectinload(ForumReply.children).options(*reply_options),
        )
    )
    top_level = (await db.execute(replies_stmt)).scalars().all()
    reply_count = (
        await db.execute(select(func.count(ForumReply.id)).where(ForumReply.post_id == post.id))
    ).scalar_one()
    return post_detail(post, top_level, reply_count)


# ---------------------------------------------------------------------------
# Replies and reactions
# ---------------------------------------------------------------------------

async def create_reply(db: AsyncSession, ctx: RequestContext, body: ReplyCreateRequest) -> Dict[str, Any]:
    await require_verified_user(db, ctx)
    if is_blank(body.content) or is_blank(body.post_id):
        raise HTTPException(status_code=400, detail="Missing required fields")

    post = await db.get(ForumPost, body.post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    if post.is_locked:
        raise HTTPException(status_code=403, detail="Post is locked for replies")

    parent_id = body.parent_id or None
    if parent_id is not None:
        parent = await db.get(ForumReply, parent_id)
        if parent is None or parent.post_id != post.id:
            raise HTTPException(status_code=400, detail="Invalid parent reply")

    reply = ForumReply(content=body.content, post_id=post.id, author_id=ctx.user_id, parent_id=parent_id)
    db.add(reply)
    await db.execute(
        update(ForumPost)
        .where(ForumPost.id == post.id)
        .values(
            reply_count=ForumPost.reply_count + 1,
            last_reply_at=utcnow(),
            last_reply_by=ctx.user_id,
        )
    )
    # Insert and counter update commit together
    await db.commit()
    logger.info("Forum reply created", reply_id=reply.id, post_id=post.id, author_id=ctx.user_id)

    stmt = (
        select(ForumReply)
        .where(ForumReply.id == reply.id)
        .options(selectinload(ForumReply.author), selectinload(ForumReply.reactions))
        .execution_options(populate_existing=True)
    )
    return reply_view((await db.execute(stmt)).scalars().one())


async def _find_reaction(db: AsyncSession, model, target_column, target_id: str, user_id: str,
                         reaction_type: ReactionType):
    stmt = select(model).where(target_column == target_id, model.user_id == user_id, model.type == reaction_type)
    return (await db.execute(stmt)).scalars().first()


async def _toggle_reaction(db: AsyncSession, model, target_column, target_id: str, user_id: str,
                           reaction_type: ReactionType) -> Tuple[Dict[str, Any], bool]:
    existing = await _find_reaction(db, model, target_column, target_id, user_id, reaction_type)
    if existing is not None:
        await db.delete(existing)
        await db.commit()
        return {"action": "removed", "type": reaction_type.value}, False

    reaction = model(user_id=user_id, type=reaction_type)
    setattr(reaction, target_column.key, target_id)
    try:
        async with db.begin_nested():
            db.add(reaction)
    except IntegrityError:
        # A concurrent request added the same reaction; report that row as the added one
        logger.info("Reaction added concurrently", target_id=target_id, user_id=user_id, type=reaction_type.value)
        reaction = await _find_reaction(db, model, target_column, target_id, user_id, reaction_type)
    await db.commit()
    loaded = (
        await db.execute(
            select(model)
            .where(model.id == reaction.id)
            .options(selectinload(model.user))
            .execution_options(populate_existing=True)
        )
    ).scalars().one()
    return {"action": "added", "reaction": reaction_view(loaded)}, True


async def toggle_post_reaction(db: AsyncSession, ctx: RequestContext,
                               body: PostReactionRequest) -> Tuple[Dict[str, Any], bool]:
    """Adds the caller's reaction, or removes it when already present. Second value is True when added."""
    if is_blank(body.post_id) or is_blank(body.type):
        raise HTTPException(status_code=400, detail="Missing required fields")
    reaction_type = _parse_reaction_type(body.type)
    if await db.get(ForumPost, body.post_id) is None:
        raise HTTPException(status_code=404, detail="Post not found")
    result = await _toggle_reaction(db, PostReaction, PostReaction.post_id, body.post_id, ctx.user_id, reaction_type)
    logger.info("Post reaction toggled", post_id=body.post_id, type=reaction_type.value, action=result[0]["action"])
    return result


async def toggle_reply_reaction(db: AsyncSession, ctx: RequestContext,
                                body: ReplyReactionRequest) -> Tuple[Dict[str, Any], bool]:
    if is_blank(body.reply_id) or is_blank(body.type):
        raise HTTPException(status_code=400, detail="Missing required fields")
    reaction_type = _parse_reaction_type(body.type)
    if await db.get(ForumReply, body.reply_id) is None:
        raise HTTPException(status_code=404, detail="Reply not found")
    result = await _toggle_reaction(db, ReplyReaction, ReplyReaction.reply_id, body.reply_id, ctx.user_id, reaction_type)
    logger.info("Reply reaction toggled", reply_id=body.reply_id, type=reaction_type.value, action=result[0]["action"])
    return result


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

async def search(db: AsyncSession, params: Dict[str, Optional[str]]) -> Dict[str, Any]:
    """
    Searches post titles, post bodies and reply bodies. A post found only
    through one of its replies carries matchType "reply".
    """
    query = (params.get("q") or "").strip()
    if not params.get("q"):
        raise HTTPException(status_code=400, detail="Query parameter is required")
    if len(query) < MIN_QUERY_LENGTH:
        raise HTTPException(status_code=400, detail="Query must be at least 2 characters")

    search_type = params.get("type") or "all"
    if search_type not in SEARCH_TYPES:
        raise HTTPException(status_code=400, detail="Invalid search type")

    req = page_request(params.get("page"), params.get("limit"), POSTS_PAGE_SIZE, POSTS_MAX_PAGE_SIZE)
    city = params.get("city")
    results: Dict[str, Any] = {
        "query": query,
        "posts": [],
        "categories": [],
        "totalResults": 0,
        "currentPage": req.page,
        "totalPages": 0,
    }

    if search_type in ("all", "posts"):
        scope = []
        if params.get("categoryId"):
            scope.append(ForumPost.category_id == params["categoryId"])
        elif city:
            category_filter = [ForumCategory.city == city]
            if params.get("propertyType"):
                category_filter.append(ForumCategory.property_type == params["propertyType"])
            scope.append(ForumPost.category_id.in_(select(ForumCategory.id).where(*category_filter)))

        direct = or_(
            ForumPost.title.icontains(query, autoescape=True),
            ForumPost.content.icontains(query, autoescape=True),
        )
        via_reply = ForumPost.id.in_(
            select(ForumReply.post_id).where(ForumReply.content.icontains(query, autoescape=True))
        )
        conditions = [*scope, or_(direct, via_reply)]

        total_count = (await db.execute(select(func.count(ForumPost.id)).where(*conditions))).scalar_one()
        stmt = (
            _post_rows_query(*conditions)
            .add_columns(case((direct, "post"), else_="reply").label("match_type"))
            .order_by(ForumPost.created_at.desc())
            .offset(req.skip)
            .limit(req.limit)
        )
        posts = []
        for post, replies, reactions, match_type in (await db.execute(stmt)).all():
            view = post_summary(post, replies, reactions)
            view["matchType"] = match_type
            posts.append(view)
        results["posts"] = posts
        results["totalResults"] = total_count
        results["totalPages"] = total_pages(total_count, req.limit)

    if search_type in ("all", "categories"):
        category_conditions = [
            ForumCategory.is_active.is_(True),
            or_(
                ForumCategory.name.icontains(query, autoescape=True),
                ForumCategory.description.icontains(query, autoescape=True),
            ),
        ]
        if city:
            category_conditions.append(ForumCategory.city == city)
        stmt = (
            select(ForumCategory)
            .where(*category_conditions)
            .order_by(ForumCategory.display_order.asc())
            .limit(SEARCH_CATEGORY_LIMIT)
            .options(selectinload(ForumCategory.parent))
        )
        categories = (await db.execute(stmt)).scalars().all()
        counts = await _post_counts_by_category(db)
        views = []
        for category in categories:
            view = category_view(category, counts.get(category.id, 0))
            view["parent"] = {"name": category.parent.name, "slug": category.parent.slug} if category.parent else None
            views.append(view)
        results["categories"] = views
        results["totalResults"] += len(views)

    return results


# ---------------------------------------------------------------------------
# Per-user activity
# ---------------------------------------------------------------------------

async def _require_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def user_posts(db: AsyncSession, user_id: str, page: Any, limit: Any) -> Dict[str, Any]:
    user = await _require_user(db, user_id)
    req = page_request(page, limit, POSTS_PAGE_SIZE, POSTS_MAX_PAGE_SIZE)

    posts_stmt = (
        _post_rows_query(ForumPost.author_id == user_id)
        .order_by(ForumPost.created_at.desc())
        .offset(req.skip)
        .limit(req.limit)
    )
    posts = [post_summary(p, r, x) for p, r, x in (await db.execute(posts_stmt)).all()]
    posts_count = (
        await db.execute(select(func.count(ForumPost.id)).where(ForumPost.author_id == user_id))
    ).scalar_one()

    replies_stmt = (
        select(ForumReply)
        .where(ForumReply.author_id == user_id)
        .order_by(ForumReply.created_at.desc())
        .offset(req.skip)
        .limit(req.limit)
        .options(
            selectinload(ForumReply.author),
            selectinload(ForumReply.reactions).selectinload(ReplyReaction.user),
            selectinload(ForumReply.post),
        )
    )
    replies = []
    for reply in (await db.execute(replies_stmt)).scalars().all():
        view = reply_view(reply)
        view["post"] = {"id": reply.post.id, "title": reply.post.title, "slug": reply.post.slug}
        replies.append(view)
    replies_count = (
        await db.execute(select(func.count(ForumReply.id)).where(ForumReply.author_id == user_id))
    ).scalar_one()

    return {
        "user": author_view(user),
        "posts": posts,
        "replies": replies,
        "postsCount": posts_count,
        "repliesCount": replies_count,
        "currentPage": req.page,
        "totalPages": total_pages(posts_count, req.limit),
    }


def _empty_reaction_counts() -> Dict[str, int]:
    return {reaction.value: 0 for reaction in ReactionType}


async def _add_grouped(db: AsyncSession, counts: Dict[str, int], stmt) -> None:
    for reaction_type, count in (await db.execute(stmt)).all():
        counts[reaction_type.value] += count


async def user_stats(db: AsyncSession, user_id: str) -> Dict[str, Any]:
    user = await _require_user(db, user_id)

    post_count = (
        await db.execute(select(func.count(ForumPost.id)).where(ForumPost.author_id == user_id))
    ).scalar_one()
    reply_count = (
        await db.execute(select(func.count(ForumReply.id)).where(ForumReply.author_id == user_id))
    ).scalar_one()

    received = _empty_reaction_counts()
    await _add_grouped(db, received, (
        select(PostReaction.type, func.count(PostReaction.id))
        .join(ForumPost, ForumPost.id == PostReaction.post_id)
        .where(ForumPost.author_id == user_id)
        .group_by(PostReaction.type)
    ))
    await _add_grouped(db, received, (
        select(ReplyReaction.type, func.count(ReplyReaction.id))
        .join(ForumReply, ForumReply.id == ReplyReaction.reply_id)
        .where(ForumReply.author_id == user_id)
        .group_by(ReplyReaction.type)
    ))

    given = _empty_reaction_counts()
    await _add_grouped(db, given, (
        select(PostReaction.type, func.count(PostReaction.id))
        .where(PostReaction.user_id == user_id)
        .group_by(PostReaction.type)
    ))
    await _add_grouped(db, given, (
        select(ReplyReaction.type, func.count(ReplyReaction.id))
        .where(ReplyReaction.user_id == user_id)
        .group_by(ReplyReaction.type)
    ))

    return {
        "user": author_view(user),
        "postCount": post_count,
        "replyCount": reply_count,
        "totalPosts": post_count + reply_count,
        "reactionsReceived": received,
        "reactionsGiven": given,
        "totalReactionsReceived": sum(received.values()),
        "totalReactionsGiven": sum(given.values()),
    }

"""
Reshapes ORM rows into the flat JSON objects the frontend consumes.

Absent values follow one policy everywhere: text becomes "", numbers stay
None, missing related rows become None, lists become [] and datetimes are
ISO-8601 strings (or None). Callers must eager-load every relationship a
transformer touches.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from propertyhub.models import (
    Builder,
    ForumCategory,
    ForumPost,
    ForumReply,
    Location,
    PostReaction,
    Project,
    Property,
    ReplyReaction,
    SavedProperty,
    User,
)
from propertyhub.utils.text import count_label


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def text(value: Any) -> str:
    return "" if value is None else str(value)


def enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def full_address(street_address: Optional[str], location: Optional[Location]) -> str:
    if location is None:
        return text(street_address)
    parts = [street_address, location.locality, location.city]
    head = ", ".join(p for p in parts if p)
    state = f", {location.state}" if location.state else ""
    zipcode = f" - {location.zipcode}" if location.zipcode else ""
    return f"{head}{state}{zipcode}"


def location_view(location: Optional[Location], street_address: Optional[str] = None) -> Optional[Dict[str, Any]]:
    if location is None:
        return None
    return {
        "city": text(location.city),
        "state": text(location.state),
        "country": text(location.country),
        "zipcode": text(location.zipcode),
        "locality": text(location.locality),
        "neighborhood": text(location.neighborhood),
        "latitude": location.latitude,
        "longitude": location.longitude,
        "formattedAddress": text(location.formatted_address),
        "fullAddress": full_address(street_address, location),
    }


def ref_view(row: Optional[Any]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {"id": row.id, "name": row.name}


def property_details(prop: Property) -> Dict[str, Any]:
    """
    The listing's variable attributes as one object. Optional measurements are
    left out entirely when the owner did not provide them.
    """
    details: Dict[str, Any] = {
        "title": prop.title,
        "description": prop.description,
        "price": prop.price,
        "location": prop.street_address,
        "locality": text(prop.location.locality) if prop.location else "",
        "facing": prop.facing,
    }
    if prop.bedrooms is not None:
        details["bedrooms"] = prop.bedrooms
    if prop.bathrooms is not None:
        details["bathrooms"] = prop.bathrooms
    if prop.property_size is not None:
        details["propertySize"] = prop.property_size
        details["propertySizeUnit"] = prop.property_size_unit
    if prop.plot_size is not None:
        details["plotSize"] = prop.plot_size
        details["plotSizeUnit"] = prop.plot_size_unit
    return details


def property_card(prop: Property) -> Dict[str, Any]:
    owner: Optional[User] = prop.user
    return {
        "id": prop.id,
        "streetAddress": prop.street_address,
        "title": text(prop.title),
        "location": location_view(prop.location, prop.street_address),
        "builder": ref_view(prop.builder),
        "project": ref_view(prop.project),
        "propertyType": enum_value(prop.property_type),
        "listingType": enum_value(prop.listing_type),
        "listingStatus": enum_value(prop.listing_status),
        "sqFt": prop.sq_ft,
        "thumbnailUrl": prop.thumbnail_url or next(iter(prop.image_urls or []), None),
        "imageUrls": list(prop.image_urls or []),
        "createdAt": iso(prop.created_at),
        "postedBy": text(prop.posted_by),
        "companyName": text(owner.company_name) if owner else "",
        "userId": prop.user_id,
        "userEmail": text(owner.email) if owner else "",
        "bedrooms": prop.bedrooms,
        "bathrooms": prop.bathrooms,
        "price": prop.price,
        "size": prop.property_size,
        "sizeUnit": text(prop.property_size_unit),
        "plotSize": prop.plot_size,
        "plotSizeUnit": text(prop.plot_size_unit),
        "description": text(prop.description),
        "details": property_details(prop),
    }


def property_detail(prop: Property) -> Dict[str, Any]:
    view = property_card(prop)
    view.update(
        {
            "projectId": prop.project_id,
            "facing": text(prop.facing),
            "walkthroughVideoUrl": prop.walkthrough_video_url,
            "soldTo": text(prop.sold_to),
            "soldToUserId": prop.sold_to_user_id,
            "soldDate": iso(prop.sold_date),
            "updatedAt": iso(prop.updated_at),
            "userPhone": text(prop.user.mobile_number) if prop.user else "",
        }
    )
    return view


def favorite_view(saved: SavedProperty) -> Dict[str, Any]:
    view = property_card(saved.property)
    view.update(
        {
            "soldTo": text(saved.property.sold_to),
            "soldToUserId": saved.property.sold_to_user_id,
            "soldDate": iso(saved.property.sold_date),
            "favoritedAt": iso(saved.created_at),
        }
    )
    return view


# ---------------------------------------------------------------------------
# Forum
# ---------------------------------------------------------------------------

def author_view(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "image": user.image_link,
        "createdAt": iso(user.created_at),
    }


def category_ref(category: Optional[ForumCategory]) -> Optional[Dict[str, Any]]:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "city": text(category.city),
        "propertyType": text(category.property_type),
    }


def category_view(category: ForumCategory, post_count: int = 0,
                  children: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": text(category.description),
        "city": text(category.city),
        "state": text(category.state),
        "propertyType": text(category.property_type),
        "displayOrder": category.display_order,
        "postCount": post_count,
        "postCountLabel": count_label(post_count, "post"),
        "children": children or [],
    }


def reaction_view(reaction: Union[PostReaction, ReplyReaction]) -> Dict[str, Any]:
    return {
        "id": reaction.id,
        "type": enum_value(reaction.type),
        "user": {"id": reaction.user.id, "username": reaction.user.username} if reaction.user else None,
        "createdAt": iso(reaction.created_at),
    }


def post_summary(post: ForumPost, reply_count: int = 0, reaction_count: int = 0) -> Dict[str, Any]:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "isSticky": post.is_sticky,
        "isLocked": post.is_locked,
        "viewCount": post.view_count,
        "lastReplyAt": iso(post.last_reply_at),
        "createdAt": iso(post.created_at),
        "author": author_view(post.author),
        "category": category_ref(post.category),
        "replyCount": reply_count,
        "reactionCount": reaction_count,
        "replyCountLabel": count_label(reply_count, "reply", "replies"),
    }


def reply_view(reply: ForumReply, children: Iterable[ForumReply] = ()) -> Dict[str, Any]:
    return {
        "id": reply.id,
        "content": reply.content,
        "postId": reply.post_id,
        "parentId": reply.parent_id,
        "createdAt": iso(reply.created_at),
        "author": author_view(reply.author),
        "reactions": [reaction_view(r) for r in reply.reactions],
        "children": [reply_view(child) for child in children],
    }


def post_detail(post: ForumPost, top_level_replies: Iterable[ForumReply], reply_count: int) -> Dict[str, Any]:
    replies = [reply_view(r, r.children) for r in top_level_replies]
    view = post_summary(post, reply_count=reply_count, reaction_count=len(post.reactions))
    view.update(
        {
            "replies": replies,
            "reactions": [reaction_view(r) for r in post.reactions],
        }
    )
    return view


# ---------------------------------------------------------------------------
# Builders and projects
# ---------------------------------------------------------------------------

def builder_view(builder: Builder, project_count: Optional[int] = None) -> Dict[str, Any]:
    view = {
        "id": builder.id,
        "name": builder.name,
        "description": text(builder.description),
        "website": text(builder.website),
        "logoUrl": builder.logo_url,
        "address": text(builder.address),
        "emails": list(builder.emails or []),
        "phones": list(builder.phones or []),
    }
    if project_count is not None:
        view["projectCount"] = project_count
    return view


def project_view(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": text(project.description),
        "type": project.type,
        "builder": ref_view(project.builder),
        "location": location_view(project.location),
        "builderWebsiteLink": project.builder_website_link,
        "brochureUrl": project.brochure_url,
        "bannerImageUrl": project.banner_image_url,
        "thumbnailUrl": project.thumbnail_url,
        "highlights": list(project.highlights or []),
        "amenities": list(project.amenities or []),
        "imageUrls": list(project.image_urls or []),
        "walkthroughVideoUrl": project.walkthrough_video_url,
        "isArchived": project.is_archived,
        "postedByUserId": project.posted_by_user_id,
        "createdAt": iso(project.created_at),
    }

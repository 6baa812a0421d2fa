from .base import Base
from .user import User, UserRole
from .location import Location
from .property import Property, SavedProperty, PropertyType, ListingType, ListingStatus
from .project import Builder, Project
from .forum import ForumCategory, ForumPost, ForumReply, PostReaction, ReplyReaction, ReactionType
from .interest import Interest

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Location",
    "Property",
    "SavedProperty",
    "PropertyType",
    "ListingType",
    "ListingStatus",
    "Builder",
    "Project",
    "ForumCategory",
    "ForumPost",
    "ForumReply",
    "PostReaction",
    "ReplyReaction",
    "ReactionType",
    "Interest",
]

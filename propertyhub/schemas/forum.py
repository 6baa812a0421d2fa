from typing import Optional

from .base import CamelModel


class PostCreateRequest(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category_id: Optional[str] = None


class ReplyCreateRequest(CamelModel):
    content: Optional[str] = None
    post_id: Optional[str] = None
    parent_id: Optional[str] = None


class PostReactionRequest(CamelModel):
    post_id: Optional[str] = None
    type: Optional[str] = None


class ReplyReactionRequest(CamelModel):
    reply_id: Optional[str] = None
    type: Optional[str] = None

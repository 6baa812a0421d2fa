import enum
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, new_id, utcnow


class ReactionType(str, enum.Enum):
    THANKS = "THANKS"
    LAUGH = "LAUGH"
    CONFUSED = "CONFUSED"
    SAD = "SAD"
    ANGRY = "ANGRY"
    LOVE = "LOVE"


class ForumCategory(Base):
    __tablename__ = "forum_categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    city = Column(String(120))
    state = Column(String(120))
    property_type = Column(String(30))
    parent_id = Column(String(36), ForeignKey("forum_categories.id"))
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    parent = relationship("ForumCategory", remote_side=[id], back_populates="children")
    children = relationship("ForumCategory", back_populates="parent")


class ForumPost(Base):
    __tablename__ = "forum_posts"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    slug = Column(String(300), unique=True, nullable=False)
    category_id = Column(String(36), ForeignKey("forum_categories.id"), nullable=False)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    is_sticky = Column(Boolean, default=False, nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    reply_count = Column(Integer, default=0, nullable=False)
    last_reply_at = Column(DateTime(timezone=True))
    last_reply_by = Column(String(36), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    author = relationship("User", foreign_keys=[author_id])
    category = relationship("ForumCategory")
    replies = relationship("ForumReply", back_populates="post")
    reactions = relationship("PostReaction", back_populates="post")


class ForumReply(Base):
    __tablename__ = "forum_replies"

    id = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)
    post_id = Column(String(36), ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    parent_id = Column(String(36), ForeignKey("forum_replies.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    author = relationship("User")
    post = relationship("ForumPost", back_populates="replies")
    parent = relationship("ForumReply", remote_side=[id], back_populates="children")
    children = relationship("ForumReply", back_populates="parent", order_by="ForumReply.created_at")
    reactions = relationship("ReplyReaction", back_populates="reply")


class PostReaction(Base):
    __tablename__ = "post_reactions"

    id = Column(String(36), primary_key=True, default=new_id)
    post_id = Column(String(36), ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    type = Column(Enum(ReactionType), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    post = relationship("ForumPost", back_populates="reactions")
    user = relationship("User")

    __table_args__ = (UniqueConstraint("post_id", "user_id", "type", name="uq_post_reaction"),)


class ReplyReaction(Base):
    __tablename__ = "reply_reactions"

    id = Column(String(36), primary_key=True, default=new_id)
    reply_id = Column(String(36), ForeignKey("forum_replies.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    type = Column(Enum(ReactionType), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    reply = relationship("ForumReply", back_populates="reactions")
    user = relationship("User")

    __table_args__ = (UniqueConstraint("reply_id", "user_id", "type", name="uq_reply_reaction"),)

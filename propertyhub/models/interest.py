from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, new_id, utcnow


class Interest(Base):
    """An expression of interest in exactly one of a project or a property."""
    __tablename__ = "interests"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"))
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"))
    message = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User")
    project = relationship("Project")
    property = relationship("Property")

    # NULL targets never collide, so each constraint only guards its own kind
    __table_args__ = (
        UniqueConstraint("user_id", "project_id", name="uq_interest_user_project"),
        UniqueConstraint("user_id", "property_id", name="uq_interest_user_property"),
    )

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from .base import Base, new_id, utcnow


class Builder(Base):
    __tablename__ = "builders"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    website = Column(String(1024))
    logo_url = Column(String(1024))
    address = Column(String(1024))
    emails = Column(JSON, default=list, nullable=False)
    phones = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    projects = relationship("Project", back_populates="builder")


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String(30), default="RESIDENTIAL", nullable=False)
    builder_id = Column(String(36), ForeignKey("builders.id"), nullable=False)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False)
    posted_by_user_id = Column(String(36), ForeignKey("users.id"))
    builder_website_link = Column(String(1024))
    brochure_url = Column(String(1024))
    banner_image_url = Column(String(1024))
    thumbnail_url = Column(String(1024))
    highlights = Column(JSON)
    amenities = Column(JSON)
    image_urls = Column(JSON, default=list, nullable=False)
    walkthrough_video_url = Column(String(1024))
    is_archived = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    builder = relationship("Builder", back_populates="projects")
    location = relationship("Location")
    properties = relationship("Property", back_populates="project")

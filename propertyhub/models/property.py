import enum
from sqlalchemy import Column, String, Float, Integer, Text, DateTime, ForeignKey, Enum, JSON, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, new_id, utcnow


class PropertyType(str, enum.Enum):
    SINGLE_FAMILY = "SINGLE_FAMILY"
    CONDO = "CONDO"
    APARTMENT = "APARTMENT"
    VILLA = "VILLA"
    TOWNHOUSE = "TOWNHOUSE"
    COMMERCIAL = "COMMERCIAL"
    LAND = "LAND"


class ListingType(str, enum.Enum):
    SALE = "SALE"
    RENT = "RENT"


class ListingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    SOLD = "SOLD"


class Property(Base):
    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"))
    builder_id = Column(String(36), ForeignKey("builders.id"))

    street_address = Column(String(1024), nullable=False)
    posted_by = Column(String(255), nullable=False)
    property_type = Column(Enum(PropertyType), nullable=False)
    listing_type = Column(Enum(ListingType), default=ListingType.SALE, nullable=False)
    listing_status = Column(Enum(ListingStatus), default=ListingStatus.ACTIVE, nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(Float)
    bedrooms = Column(Integer)
    bathrooms = Column(Integer)
    property_size = Column(Float)
    property_size_unit = Column(String(10))
    plot_size = Column(Float)
    plot_size_unit = Column(String(10))
    facing = Column(String(20))
    sq_ft = Column(Float)

    thumbnail_url = Column(String(1024))
    image_urls = Column(JSON, default=list, nullable=False)
    walkthrough_video_url = Column(String(1024))

    sold_to = Column(String(255))
    sold_to_user_id = Column(String(36), ForeignKey("users.id"))
    sold_date = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    location = relationship("Location")
    project = relationship("Project", back_populates="properties")
    builder = relationship("Builder")

    __table_args__ = (
        Index("ix_properties_status_created", "listing_status", "created_at"),
        Index("ix_properties_user", "user_id"),
    )


class SavedProperty(Base):
    __tablename__ = "saved_properties"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    property = relationship("Property")

    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_saved_property_user"),)

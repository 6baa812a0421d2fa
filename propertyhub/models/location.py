from sqlalchemy import Column, String, Float, DateTime, Index
from .base import Base, new_id, utcnow


class Location(Base):
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=new_id)
    city = Column(String(120))
    state = Column(String(120))
    country = Column(String(120), nullable=False, default="India")
    zipcode = Column(String(20), default="")
    locality = Column(String(255), default="")
    neighborhood = Column(String(255))
    latitude = Column(Float)
    longitude = Column(Float)
    formatted_address = Column(String(1024))
    # Coordinates snapped to the dedup tolerance grid; unique so concurrent
    # inserts for the same spot collide instead of duplicating
    coord_bucket = Column(String(64), unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_locations_lat_lng", "latitude", "longitude"),
        Index("ix_locations_city_state", "city", "state"),
    )

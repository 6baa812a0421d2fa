import enum
from sqlalchemy import Column, String, Boolean, DateTime, Enum
from .base import Base, new_id, utcnow


class UserRole(str, enum.Enum):
    AGENT = "AGENT"
    BUYER = "BUYER"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255))
    username = Column(String(64), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    mobile_number = Column(String(20), unique=True)
    password_hash = Column(String(255))
    is_agent = Column(Boolean, default=False, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.BUYER, nullable=False)
    company_name = Column(String(255))
    image_link = Column(String(1024))
    email_verified = Column(Boolean, default=False, nullable=False)
    mobile_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_verified(self) -> bool:
        return bool(self.email_verified or self.mobile_verified)

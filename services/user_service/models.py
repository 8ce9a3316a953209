import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, String
from sqlalchemy.sql import func

from shared.config.database import Base


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    DRIVER = "DRIVER"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = Column(String(255), nullable=True)
    # Canonical +1XXXXXXXXXX, or the walk-in sentinel
    phone = Column(String(32), unique=True, nullable=True, index=True)
    role = Column(Enum(UserRole, native_enum=False), default=UserRole.USER, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Address(Base):
    __tablename__ = "addresses"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    # NULL for the store's own pickup location
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    street = Column(String(255), nullable=False)
    city = Column(String(120), nullable=False)
    province = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

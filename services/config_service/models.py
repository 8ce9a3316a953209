from sqlalchemy import Boolean, Column, Integer, JSON, String

from shared.config.database import Base


class ConfigEntry(Base):
    """One admin-editable setting row. ``value`` is the loosely typed payload."""

    __tablename__ = "config_entries"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

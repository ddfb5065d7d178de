"""User model."""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class User(Base):
    """Registered account with its access tier and voice preference."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    access_level = Column(String(50), nullable=False, default="free", server_default="free", index=True)
    subscription_status = Column(String(50), nullable=False, default="active", server_default="active")
    preferred_voice = Column(String(100), nullable=False, default="default", server_default="default")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    usage_logs = relationship("UsageLog", back_populates="user", cascade="all, delete-orphan")
    saved_scripts = relationship("SavedScript", back_populates="user", cascade="all, delete-orphan")

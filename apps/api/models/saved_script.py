"""SavedScript model for user-saved generation sessions."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class SavedScript(Base):
    """Bundle of one session's generated outputs, owned by a user."""

    __tablename__ = "saved_scripts"
    __table_args__ = (
        Index("ix_saved_scripts_user_updated", "user_id", "updated_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    topic = Column(Text, nullable=False)
    audience = Column(String(100), nullable=True)
    duration = Column(String(20), nullable=True)
    tone = Column(String(100), nullable=True)
    video_type = Column(String(100), nullable=True)
    voice_preset = Column(String(100), nullable=True)
    script_content = Column(Text, nullable=True)
    hooks = Column(JSON, nullable=True)
    titles = Column(JSON, nullable=True)
    outline = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    thumbnail_text = Column(JSON, nullable=True)
    call_to_actions = Column(JSON, nullable=True)
    script_stats = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="saved_scripts")

"""SQLAlchemy ORM model for in-app notifications."""
from __future__ import annotations

import uuid

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, JSON, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from app.database import Base


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_created", "user_id", "created_at", "sequence"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(16), nullable=False, server_default="info", default="info")
    category = Column(String(64), nullable=False, server_default="general", default="general")
    payload = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    read = Column(Boolean, nullable=False, server_default=expression.false(), default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # Per-user insertion order; breaks ties between equal timestamps.
    sequence = Column(BigInteger, nullable=False, server_default="0", default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)

    user = relationship("User", back_populates="notifications")

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"Notification(id={self.id!s}, user_id={self.user_id!s}, category={self.category!r})"


__all__ = ["Notification"]

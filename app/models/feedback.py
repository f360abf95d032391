"""SQLAlchemy ORM models for feedback threads and their messages."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from app.database import Base


class FeedbackThread(Base):
    __tablename__ = "feedback_threads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column(String(50), unique=True, nullable=False, index=True)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    category = Column(String(32), nullable=False, server_default="general", default="general")
    priority = Column(String(16), nullable=False, server_default="medium", default="medium")
    status = Column(String(16), nullable=False, server_default="open", default="open", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    client = relationship("User", back_populates="feedback_threads")
    messages = relationship(
        "FeedbackMessage",
        back_populates="thread",
        order_by=lambda: [FeedbackMessage.created_at, FeedbackMessage.id],
        primaryjoin="FeedbackThread.thread_id == FeedbackMessage.thread_id",
    )

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"FeedbackThread(thread_id={self.thread_id!r}, status={self.status!r})"


class FeedbackMessage(Base):
    __tablename__ = "feedback_messages"
    __table_args__ = (Index("ix_feedback_messages_thread_created", "thread_id", "created_at", "id"),)

    # Autoincrement key doubles as the per-thread ordering tie-breaker.
    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column(String(50), ForeignKey("feedback_threads.thread_id"), nullable=False, index=True)
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    sender_type = Column(String(16), nullable=False, index=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, server_default=expression.false(), default=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    thread = relationship(
        "FeedbackThread",
        back_populates="messages",
        primaryjoin="FeedbackThread.thread_id == FeedbackMessage.thread_id",
    )
    sender = relationship("User", foreign_keys=[sender_id])

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"FeedbackMessage(id={self.id!s}, thread_id={self.thread_id!r}, sender_type={self.sender_type!r})"


__all__ = ["FeedbackThread", "FeedbackMessage"]

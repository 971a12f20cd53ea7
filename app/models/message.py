"""Direct message model."""
import uuid
from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey, Index
from app.db.base import Base, utc_now


class Message(Base):
    """Direct messages between users. Only `read` ever changes after insert."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_sender_receiver", "sender_id", "receiver_id"),
        Index("ix_messages_receiver_read", "receiver_id", "read"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utc_now, nullable=False)
    read = Column(Boolean, default=False, nullable=False)

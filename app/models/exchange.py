"""Exchange request and feedback models."""
import uuid
from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import Base, utc_now

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
COMPLETED = "completed"
REQUEST_STATUSES = (PENDING, ACCEPTED, REJECTED, COMPLETED)


class ExchangeRequest(Base):
    """A proposal to swap one skill for another between two users."""

    __tablename__ = "exchange_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    from_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    offered_skill = Column(String(100), nullable=False)
    requested_skill = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=PENDING)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now)
    completed_at = Column(DateTime)

    feedback = relationship("ExchangeFeedback", back_populates="request", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ExchangeRequest {self.id}: {self.from_user_id} -> {self.to_user_id} ({self.status})>"


class ExchangeFeedback(Base):
    """Star rating left by one participant of an exchange for the other."""

    __tablename__ = "exchange_feedback"
    __table_args__ = (
        UniqueConstraint("request_id", "from_user_id", name="uq_feedback_request_author"),
        CheckConstraint("stars >= 1 AND stars <= 5", name="ck_feedback_stars"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(String(36), ForeignKey("exchange_requests.id", ondelete="CASCADE"), nullable=False)
    from_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    to_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    stars = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime, default=utc_now)

    request = relationship("ExchangeRequest", back_populates="feedback")

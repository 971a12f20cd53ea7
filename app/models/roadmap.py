"""Learning roadmap model."""
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, UniqueConstraint
from app.db.base import Base, utc_now


class Roadmap(Base):
    """AI-generated learning plan, one per (user, skill)."""

    __tablename__ = "roadmaps"
    __table_args__ = (UniqueConstraint("user_id", "skill_name", name="uq_roadmaps_user_skill"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_name = Column(String(100), nullable=False)
    steps = Column(JSON, nullable=False, default=list)  # [{title, description, duration, resources}]
    generated_at = Column(DateTime, default=utc_now)

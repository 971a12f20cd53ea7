"""Background generation task model."""
import uuid
from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from app.db.base import Base, utc_now

TASK_PENDING = "pending"
TASK_RUNNING = "running"
TASK_SUCCEEDED = "succeeded"
TASK_FAILED = "failed"

QUIZ_GENERATION = "quiz_generation"


class GenerationTask(Base):
    """Tracks work kicked off as a side effect of a request (e.g. quiz generation)."""

    __tablename__ = "generation_tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(String(40), nullable=False, default=QUIZ_GENERATION)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_name = Column(String(100), nullable=False)
    difficulty = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=TASK_PENDING)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="SET NULL"))
    error = Column(Text)
    created_at = Column(DateTime, default=utc_now)
    finished_at = Column(DateTime)

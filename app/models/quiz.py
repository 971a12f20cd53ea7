"""Quiz models."""
import uuid
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base import Base, utc_now


class Quiz(Base):
    """Generated quiz for a skill. Never mutated; regenerating inserts a new row."""

    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    skill_name = Column(String(100), nullable=False, index=True)
    difficulty = Column(String(20), nullable=False)  # beginner / intermediate / advanced / expert
    # [{questionText, codeSnippet, options[4], correctAnswerIndex}]
    questions = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    attempts = relationship("QuizAttempt", back_populates="quiz", cascade="all, delete-orphan")


class QuizAttempt(Base):
    """One row per submission."""

    __tablename__ = "quiz_attempts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    answers = Column(JSON, nullable=False)
    score = Column(Integer, nullable=False)
    completed_at = Column(DateTime, default=utc_now)

    quiz = relationship("Quiz", back_populates="attempts")


class QuizResult(Base):
    """Latest result per (user, skill); retakes overwrite it."""

    __tablename__ = "quiz_results"
    __table_args__ = (UniqueConstraint("user_id", "skill_name", name="uq_quiz_results_user_skill"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_name = Column(String(100), nullable=False)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="SET NULL"))
    score = Column(Integer, nullable=False)
    level = Column(String(20), nullable=False)  # Beginner / Intermediate / Advanced / Expert
    completed_at = Column(DateTime, default=utc_now)

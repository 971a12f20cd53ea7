"""Database models."""
from app.models.user import User
from app.models.quiz import Quiz, QuizAttempt, QuizResult
from app.models.exchange import ExchangeRequest, ExchangeFeedback
from app.models.message import Message
from app.models.roadmap import Roadmap
from app.models.generation_task import GenerationTask

__all__ = [
    "User",
    "Quiz",
    "QuizAttempt",
    "QuizResult",
    "ExchangeRequest",
    "ExchangeFeedback",
    "Message",
    "Roadmap",
    "GenerationTask",
]

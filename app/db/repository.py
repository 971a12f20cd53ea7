"""Narrow store interface used by the services.

Every write goes through here so the persistence strategy (last-write-wins
today) can change without touching callers. Methods add and flush; the
calling service decides when the unit of work is committed.
"""
from typing import Callable, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from app.core.exceptions import UserNotFound
from app.db.base import utc_now
from app.models import (
    ExchangeFeedback,
    ExchangeRequest,
    GenerationTask,
    Message,
    Quiz,
    QuizAttempt,
    QuizResult,
    Roadmap,
    User,
)


class Repository:
    def __init__(self, db: Session):
        self.db = db

    # --- unit of work -------------------------------------------------

    def commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self):
        self.db.rollback()

    # --- users ----------------------------------------------------------

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def find_users(self, exclude_id: Optional[str] = None) -> List[User]:
        query = self.db.query(User)
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.order_by(User.created_at).all()

    def insert_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def upsert_user(self, user: User) -> User:
        merged = self.db.merge(user)
        self.db.flush()
        return merged

    def atomic_update_user(self, user_id: str, mutator: Callable[[User], None]) -> User:
        """Load a user, apply `mutator` and flush.

        Concurrent updates to the same user are last-write-wins. A version
        column checked here would turn this into compare-and-swap.
        """
        user = self.find_user_by_id(user_id)
        if user is None:
            raise UserNotFound()
        mutator(user)
        # JSON columns are not change-tracked in place
        flag_modified(user, "known_skills")
        flag_modified(user, "skills_to_learn")
        self.db.flush()
        return user

    # --- quizzes --------------------------------------------------------

    def insert_quiz(self, quiz: Quiz) -> Quiz:
        self.db.add(quiz)
        self.db.flush()
        return quiz

    def find_quiz_by_id(self, quiz_id: str) -> Optional[Quiz]:
        return self.db.query(Quiz).filter(Quiz.id == quiz_id).first()

    def insert_quiz_attempt(self, attempt: QuizAttempt) -> QuizAttempt:
        self.db.add(attempt)
        self.db.flush()
        return attempt

    def upsert_quiz_result(self, user_id: str, skill_name: str, data: dict) -> QuizResult:
        result = self.db.query(QuizResult).filter(
            QuizResult.user_id == user_id,
            func.lower(QuizResult.skill_name) == skill_name.lower(),
        ).first()
        if result is None:
            result = QuizResult(user_id=user_id, skill_name=skill_name)
            self.db.add(result)
        for key, value in data.items():
            setattr(result, key, value)
        self.db.flush()
        return result

    def find_quiz_results(self, user_id: str) -> List[QuizResult]:
        return self.db.query(QuizResult).filter(
            QuizResult.user_id == user_id
        ).order_by(QuizResult.completed_at.desc()).all()

    # --- exchanges ------------------------------------------------------

    def insert_exchange_request(self, request: ExchangeRequest) -> ExchangeRequest:
        self.db.add(request)
        self.db.flush()
        return request

    def find_exchange_request(self, request_id: str) -> Optional[ExchangeRequest]:
        return self.db.query(ExchangeRequest).filter(ExchangeRequest.id == request_id).first()

    def find_exchange_requests_for_user(self, user_id: str) -> List[ExchangeRequest]:
        return self.db.query(ExchangeRequest).filter(
            or_(ExchangeRequest.from_user_id == user_id, ExchangeRequest.to_user_id == user_id)
        ).order_by(ExchangeRequest.created_at.desc()).all()

    def update_exchange_request_status(self, request: ExchangeRequest, status: str,
                                       completed_at=None) -> ExchangeRequest:
        request.status = status
        request.updated_at = utc_now()
        if completed_at is not None:
            request.completed_at = completed_at
        self.db.flush()
        return request

    def upsert_feedback(self, request_id: str, from_user_id: str, data: dict) -> ExchangeFeedback:
        feedback = self.db.query(ExchangeFeedback).filter(
            ExchangeFeedback.request_id == request_id,
            ExchangeFeedback.from_user_id == from_user_id,
        ).first()
        if feedback is None:
            feedback = ExchangeFeedback(request_id=request_id, from_user_id=from_user_id)
            self.db.add(feedback)
        for key, value in data.items():
            setattr(feedback, key, value)
        self.db.flush()
        return feedback

    def find_feedback_received(self, user_id: str) -> List[ExchangeFeedback]:
        return self.db.query(ExchangeFeedback).filter(
            ExchangeFeedback.to_user_id == user_id
        ).order_by(ExchangeFeedback.created_at.desc()).all()

    def aggregate_average_stars(self, user_id: str):
        """Return (average, count) of stars addressed to `user_id`."""
        avg, count = self.db.query(
            func.avg(ExchangeFeedback.stars), func.count(ExchangeFeedback.id)
        ).filter(ExchangeFeedback.to_user_id == user_id).one()
        return (float(avg) if avg is not None else None), int(count or 0)

    # --- background tasks -----------------------------------------------

    def insert_task(self, task: GenerationTask) -> GenerationTask:
        self.db.add(task)
        self.db.flush()
        return task

    def find_task(self, task_id: str) -> Optional[GenerationTask]:
        return self.db.query(GenerationTask).filter(GenerationTask.id == task_id).first()

    def find_tasks_for_user(self, user_id: str) -> List[GenerationTask]:
        return self.db.query(GenerationTask).filter(
            GenerationTask.user_id == user_id
        ).order_by(GenerationTask.created_at.desc()).all()

    # --- messages -------------------------------------------------------

    def insert_message(self, message: Message) -> Message:
        self.db.add(message)
        self.db.flush()
        return message

    def find_conversation(self, user_a: str, user_b: str) -> List[Message]:
        return self.db.query(Message).filter(
            or_(
                and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                and_(Message.sender_id == user_b, Message.receiver_id == user_a),
            )
        ).order_by(Message.timestamp).all()

    def find_messages_for_user(self, user_id: str) -> List[Message]:
        return self.db.query(Message).filter(
            or_(Message.sender_id == user_id, Message.receiver_id == user_id)
        ).order_by(Message.timestamp.desc()).all()

    def count_unread(self, user_id: str) -> int:
        return self.db.query(func.count(Message.id)).filter(
            Message.receiver_id == user_id, Message.read.is_(False)
        ).scalar() or 0

    def mark_read(self, receiver_id: str, sender_id: str) -> int:
        updated = self.db.query(Message).filter(
            Message.sender_id == sender_id,
            Message.receiver_id == receiver_id,
            Message.read.is_(False),
        ).update({Message.read: True}, synchronize_session=False)
        self.db.flush()
        return updated

    # --- roadmaps -------------------------------------------------------

    def find_roadmap(self, user_id: str, skill_name: str) -> Optional[Roadmap]:
        return self.db.query(Roadmap).filter(
            Roadmap.user_id == user_id,
            func.lower(Roadmap.skill_name) == skill_name.strip().lower(),
        ).first()

    def upsert_roadmap(self, user_id: str, skill_name: str, data: dict) -> Roadmap:
        roadmap = self.find_roadmap(user_id, skill_name)
        if roadmap is None:
            roadmap = Roadmap(user_id=user_id, skill_name=skill_name.strip())
            self.db.add(roadmap)
        for key, value in data.items():
            setattr(roadmap, key, value)
        self.db.flush()
        return roadmap

"""Fire-and-forget work with observable status.

Each task is a `GenerationTask` row (pending -> running -> succeeded|failed).
The queue only records the task and hands a callable to `schedule`, which in
the API is `BackgroundTasks.add_task`; the work then runs after the response
in its own database session.
"""
import logging
from typing import Callable

from sqlalchemy.orm import sessionmaker

from app.db.base import utc_now
from app.db.repository import Repository
from app.models.generation_task import (
    QUIZ_GENERATION,
    TASK_FAILED,
    TASK_PENDING,
    TASK_RUNNING,
    TASK_SUCCEEDED,
    GenerationTask,
)
from app.services.quiz_generator import QuizGenerator

logger = logging.getLogger(__name__)


def run_quiz_generation_task(task_id: str, session_factory: sessionmaker, generator: QuizGenerator):
    """Execute a queued quiz generation task and record its outcome."""
    db = session_factory()
    try:
        repo = Repository(db)
        task = repo.find_task(task_id)
        if task is None:
            logger.error("Generation task %s disappeared before it ran", task_id)
            return
        task.status = TASK_RUNNING
        repo.commit()

        try:
            quiz = generator.generate_and_store_quiz(repo, task.skill_name, task.difficulty)
        except Exception as e:
            repo.rollback()
            task = repo.find_task(task_id)
            task.status = TASK_FAILED
            task.error = getattr(e, "message", None) or str(e)
            logger.exception("Quiz generation task %s for %r failed", task_id, task.skill_name)
        else:
            task.status = TASK_SUCCEEDED
            task.quiz_id = quiz.id
            logger.info("Quiz generation task %s produced quiz %s", task_id, quiz.id)

        task.finished_at = utc_now()
        repo.commit()
    finally:
        db.close()


class TaskQueue:
    def __init__(self, repo: Repository, schedule: Callable, session_factory: sessionmaker,
                 generator: QuizGenerator):
        self.repo = repo
        self.schedule = schedule
        self.session_factory = session_factory
        self.generator = generator

    def enqueue_quiz_generation(self, user_id: str, skill_name: str, difficulty: str) -> GenerationTask:
        task = self.repo.insert_task(GenerationTask(
            kind=QUIZ_GENERATION,
            user_id=user_id,
            skill_name=skill_name,
            difficulty=difficulty,
            status=TASK_PENDING,
        ))
        self.repo.commit()
        self.schedule(run_quiz_generation_task, task.id, self.session_factory, self.generator)
        logger.info("Queued quiz generation task %s for %r", task.id, skill_name)
        return task

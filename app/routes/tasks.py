"""Background task status routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.core.exceptions import TaskNotFound
from app.core.security import get_current_user
from app.db.repository import Repository
from app.db.sessions import get_db
from app.models.generation_task import GenerationTask
from app.models.user import User


router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


class TaskResponse(BaseModel):
    id: str
    kind: str
    skillName: str
    difficulty: str
    status: str
    quizId: Optional[str]
    error: Optional[str]
    createdAt: str
    finishedAt: Optional[str]

    @classmethod
    def from_task(cls, task: GenerationTask) -> "TaskResponse":
        return cls(
            id=task.id,
            kind=task.kind,
            skillName=task.skill_name,
            difficulty=task.difficulty,
            status=task.status,
            quizId=task.quiz_id,
            error=task.error,
            createdAt=task.created_at.isoformat(),
            finishedAt=task.finished_at.isoformat() if task.finished_at else None,
        )


@router.get("", response_model=List[TaskResponse])
def list_tasks(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [TaskResponse.from_task(t) for t in Repository(db).find_tasks_for_user(current_user.id)]


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    task = Repository(db).find_task(task_id)
    if task is None or task.user_id != current_user.id:
        raise TaskNotFound()
    return TaskResponse.from_task(task)

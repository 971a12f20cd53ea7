"""Skill registry routes."""
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session, sessionmaker
from pydantic import BaseModel

from app.core.config import Settings, get_settings
from app.core.security import get_current_user
from app.db.repository import Repository
from app.db.sessions import get_db, get_session_factory
from app.models.user import User
from app.routes.users import UserResponse
from app.services.openai_service import OpenAIService, get_ai_service
from app.services.quiz_generator import QuizGenerator
from app.services.skill_registry import Level, Priority, SkillRegistry
from app.services.task_queue import TaskQueue


router = APIRouter(prefix="/api/skills", tags=["Skills"])


class AddKnownSkillRequest(BaseModel):
    skillName: str
    level: Level = "Beginner"


class AddLearningGoalRequest(BaseModel):
    skillName: str
    priority: Priority = "Medium"


@router.post("/known", response_model=UserResponse)
def add_known_skill(
    request: AddKnownSkillRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    ai: OpenAIService = Depends(get_ai_service),
    settings: Settings = Depends(get_settings),
):
    """
    Add a known skill (409 if it already exists, any case).

    A verification quiz is generated for the skill in the background; poll
    /api/tasks for its status.
    """
    repo = Repository(db)
    queue = TaskQueue(repo, background_tasks.add_task, session_factory, QuizGenerator(ai, settings))
    user = SkillRegistry(repo, task_queue=queue).add_known_skill(current_user.id, request.skillName, request.level)
    return UserResponse.from_user(user)


@router.post("/learn", response_model=UserResponse)
def add_skill_to_learn(
    request: AddLearningGoalRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = SkillRegistry(Repository(db)).add_skill_to_learn(current_user.id, request.skillName, request.priority)
    return UserResponse.from_user(user)


@router.delete("/known/{skill_name:path}", response_model=UserResponse)
def remove_known_skill(skill_name: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = SkillRegistry(Repository(db)).remove_known_skill(current_user.id, skill_name)
    return UserResponse.from_user(user)


@router.delete("/learn/{skill_name:path}", response_model=UserResponse)
def remove_skill_to_learn(skill_name: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = SkillRegistry(Repository(db)).remove_skill_to_learn(current_user.id, skill_name)
    return UserResponse.from_user(user)

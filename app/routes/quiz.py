"""Quiz routes."""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from app.core.config import Settings, get_settings
from app.core.exceptions import QuizNotFound
from app.core.security import get_current_user
from app.db.repository import Repository
from app.db.sessions import get_db
from app.models.quiz import Quiz
from app.models.user import User
from app.services.openai_service import OpenAIService, get_ai_service
from app.services.quiz_generator import MAX_QUESTIONS, MIN_QUESTIONS, QuizGenerator
from app.services.quiz_grading import VerificationEngine


router = APIRouter(prefix="/api/quiz", tags=["Quiz"])


# Request/Response schemas
class GenerateQuizRequest(BaseModel):
    skill: str = Field(min_length=1)
    difficulty: str = "intermediate"
    questionCount: Optional[int] = Field(default=None, ge=MIN_QUESTIONS, le=MAX_QUESTIONS)


class QuestionResponse(BaseModel):
    id: str
    question: str
    codeSnippet: Optional[str] = None
    options: List[str]


class QuizResponse(BaseModel):
    id: str
    skillName: str
    difficulty: str
    createdAt: str
    questions: List[QuestionResponse]

    @classmethod
    def from_quiz(cls, quiz: Quiz) -> "QuizResponse":
        """Questions without the answer key."""
        return cls(
            id=quiz.id,
            skillName=quiz.skill_name,
            difficulty=quiz.difficulty,
            createdAt=quiz.created_at.isoformat(),
            questions=[
                QuestionResponse(
                    id=f"q_{i}",
                    question=q["questionText"],
                    codeSnippet=q.get("codeSnippet"),
                    options=q["options"],
                )
                for i, q in enumerate(quiz.questions, 1)
            ],
        )


class SubmitQuizRequest(BaseModel):
    # left untyped so grading rejects bools and numeric strings itself
    answers: List[Any]


class SubmitQuizResponse(BaseModel):
    score: int
    level: str
    passed: bool


class QuizResultResponse(BaseModel):
    id: str
    skillName: str
    quizId: Optional[str]
    score: int
    level: str
    completedAt: str


@router.post("/generate", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
def generate_quiz(
    request: GenerateQuizRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIService = Depends(get_ai_service),
    settings: Settings = Depends(get_settings),
):
    """
    Generate a quiz for a skill and store it.

    Protected endpoint - requires JWT authentication.

    Raises:
        400: invalid skill, difficulty or question count
        503: the AI service failed after all retries
    """
    repo = Repository(db)
    quiz = QuizGenerator(ai, settings).generate_and_store_quiz(
        repo, request.skill, request.difficulty, request.questionCount
    )
    repo.commit()
    return QuizResponse.from_quiz(quiz)


@router.get("/results", response_model=List[QuizResultResponse])
def get_quiz_results(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Latest result per skill for the current user, newest first."""
    results = VerificationEngine(Repository(db)).list_quiz_results(current_user.id)
    return [
        QuizResultResponse(
            id=r.id,
            skillName=r.skill_name,
            quizId=r.quiz_id,
            score=r.score,
            level=r.level,
            completedAt=r.completed_at.isoformat(),
        )
        for r in results
    ]


@router.get("/{quiz_id}", response_model=QuizResponse)
def get_quiz(quiz_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get a quiz by ID (without answer key)."""
    quiz = Repository(db).find_quiz_by_id(quiz_id)
    if quiz is None:
        raise QuizNotFound()
    return QuizResponse.from_quiz(quiz)


@router.post("/{quiz_id}/submit", response_model=SubmitQuizResponse)
def submit_quiz_answers(
    quiz_id: str,
    request: SubmitQuizRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Grade one answer index per question and update the skill's verification.

    60% or more verifies the skill; anything lower marks it failed.
    """
    result = VerificationEngine(Repository(db)).submit_quiz_attempt(quiz_id, current_user.id, request.answers)
    return SubmitQuizResponse(**result)

"""Peer matching routes."""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.core.config import Settings, get_settings
from app.core.security import get_current_user
from app.db.repository import Repository
from app.db.sessions import get_db
from app.models.user import User
from app.routes.users import UserResponse
from app.services.matching_engine import MatchingEngine
from app.services.openai_service import OpenAIService, get_ai_service


router = APIRouter(prefix="/api/matches", tags=["Matching"])


class MatchResponse(BaseModel):
    user: UserResponse
    matchScore: int
    reasoning: str
    commonInterests: List[str]


@router.get("", response_model=List[MatchResponse])
def find_matches(
    strict: bool = Query(default=False, description="Only users with a verified skill you want to learn"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIService = Depends(get_ai_service),
    settings: Settings = Depends(get_settings),
):
    """
    Recommend learning partners, best first.

    If the AI matcher is unavailable for some candidates they are still
    returned, scored on skill overlap and rating alone.
    """
    matches = MatchingEngine(Repository(db), ai, settings).find_matches(current_user.id, strict=strict)
    return [
        MatchResponse(
            user=UserResponse.from_user(m["user"]),
            matchScore=m["matchScore"],
            reasoning=m["reasoning"],
            commonInterests=m["commonInterests"],
        )
        for m in matches
    ]

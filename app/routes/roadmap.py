"""Learning roadmap routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from app.core.security import get_current_user
from app.db.repository import Repository
from app.db.sessions import get_db
from app.models.roadmap import Roadmap
from app.models.user import User
from app.services.openai_service import OpenAIService, get_ai_service
from app.services.roadmap_service import RoadmapService


router = APIRouter(prefix="/api", tags=["Roadmaps"])


class GenerateRoadmapRequest(BaseModel):
    skill: str = Field(min_length=1)
    currentLevel: Optional[str] = None
    targetLevel: Optional[str] = None


class RoadmapStep(BaseModel):
    title: str
    description: str
    duration: str
    resources: List[str]


class RoadmapResponse(BaseModel):
    id: str
    skillName: str
    steps: List[RoadmapStep]
    generatedAt: str

    @classmethod
    def from_roadmap(cls, roadmap: Roadmap) -> "RoadmapResponse":
        return cls(
            id=roadmap.id,
            skillName=roadmap.skill_name,
            steps=roadmap.steps,
            generatedAt=roadmap.generated_at.isoformat(),
        )


@router.post("/roadmap/generate", response_model=RoadmapResponse, status_code=status.HTTP_201_CREATED)
def generate_roadmap(
    body: GenerateRoadmapRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: OpenAIService = Depends(get_ai_service),
):
    """Generate (or regenerate) the roadmap for a skill and link it to the learning goal."""
    roadmap = RoadmapService(Repository(db), ai).generate_roadmap(
        current_user.id, body.skill, body.currentLevel, body.targetLevel
    )
    return RoadmapResponse.from_roadmap(roadmap)


@router.get("/learning/roadmap", response_model=RoadmapResponse)
def get_roadmap(
    skill: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    roadmap = RoadmapService(Repository(db), ai=None).get_roadmap(current_user.id, skill)
    return RoadmapResponse.from_roadmap(roadmap)

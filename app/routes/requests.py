"""Exchange request and feedback routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from app.core.config import Settings, get_settings
from app.core.security import get_current_user
from app.db.repository import Repository
from app.db.sessions import get_db
from app.models.exchange import ExchangeFeedback, ExchangeRequest
from app.models.user import User
from app.services.exchange_service import ExchangeService


router = APIRouter(prefix="/api", tags=["Exchanges"])


class CreateRequestBody(BaseModel):
    toUserId: str
    offeredSkill: str
    requestedSkill: str
    message: str


class UpdateStatusBody(BaseModel):
    status: str


class ExchangeRequestResponse(BaseModel):
    id: str
    fromUserId: str
    toUserId: str
    offeredSkill: str
    requestedSkill: str
    message: str
    status: str
    createdAt: str
    completedAt: Optional[str]

    @classmethod
    def from_request(cls, request: ExchangeRequest) -> "ExchangeRequestResponse":
        return cls(
            id=request.id,
            fromUserId=request.from_user_id,
            toUserId=request.to_user_id,
            offeredSkill=request.offered_skill,
            requestedSkill=request.requested_skill,
            message=request.message,
            status=request.status,
            createdAt=request.created_at.isoformat(),
            completedAt=request.completed_at.isoformat() if request.completed_at else None,
        )


class FeedbackBody(BaseModel):
    requestId: str
    toUserId: str
    stars: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class FeedbackResponse(BaseModel):
    id: str
    requestId: str
    fromUserId: str
    toUserId: str
    stars: int
    comment: Optional[str]
    createdAt: str

    @classmethod
    def from_feedback(cls, feedback: ExchangeFeedback) -> "FeedbackResponse":
        return cls(
            id=feedback.id,
            requestId=feedback.request_id,
            fromUserId=feedback.from_user_id,
            toUserId=feedback.to_user_id,
            stars=feedback.stars,
            comment=feedback.comment,
            createdAt=feedback.created_at.isoformat(),
        )


class FeedbackStatsResponse(BaseModel):
    totalExchanges: int
    completedExchanges: int
    averageRating: float
    totalReviews: int


def _service(db: Session, settings: Settings) -> ExchangeService:
    return ExchangeService(Repository(db), settings)


@router.post("/requests", response_model=ExchangeRequestResponse, status_code=status.HTTP_201_CREATED)
def create_request(
    body: CreateRequestBody,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    request = _service(db, settings).create_exchange_request(
        current_user.id, body.toUserId, body.offeredSkill, body.requestedSkill, body.message
    )
    return ExchangeRequestResponse.from_request(request)


@router.get("/requests", response_model=List[ExchangeRequestResponse])
def list_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Requests sent or received by the current user, newest first."""
    return [ExchangeRequestResponse.from_request(r) for r in _service(db, settings).list_requests(current_user.id)]


@router.put("/requests/{request_id}/status", response_model=ExchangeRequestResponse)
def update_request_status(
    request_id: str,
    body: UpdateStatusBody,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Move a request forward: the recipient accepts or rejects, either side completes.

    Raises:
        404: unknown request
        409: transition not allowed from the current status
    """
    request = _service(db, settings).transition_exchange_request(request_id, body.status, actor_id=current_user.id)
    return ExchangeRequestResponse.from_request(request)


@router.post("/feedback", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def submit_feedback(
    body: FeedbackBody,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Rate the other participant; resubmitting replaces your earlier rating."""
    feedback = _service(db, settings).submit_feedback(
        body.requestId, current_user.id, body.toUserId, body.stars, body.comment
    )
    return FeedbackResponse.from_feedback(feedback)


@router.get("/feedback/received", response_model=List[FeedbackResponse])
def feedback_received(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return [FeedbackResponse.from_feedback(f) for f in _service(db, settings).feedback_received(current_user.id)]


@router.get("/feedback/stats", response_model=FeedbackStatsResponse)
def feedback_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return FeedbackStatsResponse(**_service(db, settings).feedback_stats(current_user.id))

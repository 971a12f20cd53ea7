"""Exchange request lifecycle and feedback.

Allowed transitions:

    pending  -> accepted | rejected | completed
    accepted -> completed

`rejected` and `completed` are terminal.
"""
import logging
from typing import Dict, List, Optional

from app.core.config import Settings
from app.core.exceptions import (
    InvalidTransition,
    PermissionDenied,
    RequestNotFound,
    SelfRequest,
    UserNotFound,
    ValidationFailed,
)
from app.db.base import utc_now
from app.db.repository import Repository
from app.models.exchange import (
    ACCEPTED,
    COMPLETED,
    PENDING,
    REJECTED,
    REQUEST_STATUSES,
    ExchangeFeedback,
    ExchangeRequest,
)
from app.models.user import DEFAULT_RATING

logger = logging.getLogger(__name__)

TRANSITIONS = {
    PENDING: {ACCEPTED, REJECTED, COMPLETED},
    ACCEPTED: {COMPLETED},
    REJECTED: set(),
    COMPLETED: set(),
}


def _require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{field} is required")
    return value.strip()


class ExchangeService:
    def __init__(self, repo: Repository, settings: Settings):
        self.repo = repo
        self.settings = settings

    def create_exchange_request(self, from_user_id: str, to_user_id: str, offered_skill: str,
                                requested_skill: str, message: str) -> ExchangeRequest:
        if from_user_id == to_user_id:
            raise SelfRequest()
        offered = _require_text(offered_skill, "Offered skill")
        requested = _require_text(requested_skill, "Requested skill")
        text = _require_text(message, "Message")
        if self.repo.find_user_by_id(to_user_id) is None:
            raise UserNotFound("Recipient not found")

        request = self.repo.insert_exchange_request(ExchangeRequest(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            offered_skill=offered,
            requested_skill=requested,
            message=text,
            status=PENDING,
        ))
        self.repo.commit()
        logger.info("Exchange request %s created: %s -> %s", request.id, from_user_id, to_user_id)
        return request

    def transition_exchange_request(self, request_id: str, new_status: str,
                                    actor_id: Optional[str] = None) -> ExchangeRequest:
        """
        Move a request to `new_status`.

        When `actor_id` is given, only the recipient may accept or reject and
        only a participant may complete.
        """
        request = self.repo.find_exchange_request(request_id)
        if request is None:
            raise RequestNotFound()
        if new_status not in REQUEST_STATUSES:
            raise ValidationFailed(f"Status must be one of: {', '.join(REQUEST_STATUSES)}")

        if actor_id is not None:
            if new_status in (ACCEPTED, REJECTED) and actor_id != request.to_user_id:
                raise PermissionDenied("Only the recipient can accept or reject a request")
            if actor_id not in (request.from_user_id, request.to_user_id):
                raise PermissionDenied("Only participants can update this request")

        if new_status not in TRANSITIONS[request.status]:
            raise InvalidTransition(f"Cannot move a request from {request.status} to {new_status}")

        completed_at = utc_now() if new_status == COMPLETED else None
        self.repo.update_exchange_request_status(request, new_status, completed_at=completed_at)
        self.repo.commit()
        logger.info("Exchange request %s moved to %s", request.id, new_status)
        return request

    def list_requests(self, user_id: str) -> List[ExchangeRequest]:
        return self.repo.find_exchange_requests_for_user(user_id)

    def submit_feedback(self, request_id: str, from_user_id: str, to_user_id: str,
                        stars: int, comment: Optional[str] = None) -> ExchangeFeedback:
        """Upsert feedback for (request, author) and refresh the recipient's rating."""
        if isinstance(stars, bool) or not isinstance(stars, int) or not 1 <= stars <= 5:
            raise ValidationFailed("Stars must be an integer between 1 and 5")

        request = self.repo.find_exchange_request(request_id)
        if request is None:
            raise RequestNotFound()
        participants = {request.from_user_id, request.to_user_id}
        if from_user_id not in participants:
            raise PermissionDenied("Only participants can leave feedback")
        if to_user_id not in participants or to_user_id == from_user_id:
            raise ValidationFailed("Feedback must be addressed to the other participant")
        if self.settings.FEEDBACK_REQUIRES_COMPLETED and request.status != COMPLETED:
            raise InvalidTransition("Feedback can only be left on completed exchanges")

        try:
            feedback = self.repo.upsert_feedback(request_id, from_user_id, {
                "to_user_id": to_user_id,
                "stars": stars,
                "comment": comment,
                "created_at": utc_now(),
            })
            average, count = self.repo.aggregate_average_stars(to_user_id)

            def mutate(user):
                user.rating = average if average is not None else DEFAULT_RATING
                user.total_reviews = count

            self.repo.atomic_update_user(to_user_id, mutate)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info("Feedback on %s from %s: %d stars", request_id, from_user_id, stars)
        return feedback

    def feedback_received(self, user_id: str) -> List[ExchangeFeedback]:
        return self.repo.find_feedback_received(user_id)

    def feedback_stats(self, user_id: str) -> Dict:
        requests = self.repo.find_exchange_requests_for_user(user_id)
        average, count = self.repo.aggregate_average_stars(user_id)
        return {
            "totalExchanges": len(requests),
            "completedExchanges": sum(1 for r in requests if r.status == COMPLETED),
            "averageRating": round(average, 2) if average is not None else DEFAULT_RATING,
            "totalReviews": count,
        }

"""User profile routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from app.db.sessions import get_db
from app.db.repository import Repository
from app.models.user import User
from app.core.exceptions import UserNotFound
from app.core.security import get_current_user
from app.services.skill_registry import LearningGoal, Skill, get_known_skills, get_skills_to_learn


router = APIRouter(prefix="/api/users", tags=["Users"])


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    avatar: str
    bio: str
    discordLink: Optional[str]
    languages: List[str]
    availability: List[str]
    knownSkills: List[Skill]
    skillsToLearn: List[LearningGoal]
    rating: float
    totalReviews: int
    createdAt: Optional[str]

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            avatar=user.avatar or "",
            bio=user.bio or "",
            discordLink=user.discord_link,
            languages=user.languages or [],
            availability=user.availability or [],
            knownSkills=get_known_skills(user),
            skillsToLearn=get_skills_to_learn(user),
            rating=user.rating,
            totalReviews=user.total_reviews or 0,
            createdAt=user.created_at.isoformat() if user.created_at else None,
        )


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    avatar: Optional[str] = None
    bio: Optional[str] = None
    discordLink: Optional[str] = None
    languages: Optional[List[str]] = None
    availability: Optional[List[str]] = None


@router.get("", response_model=List[UserResponse])
def list_users(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """List every user except the caller."""
    users = Repository(db).find_users(exclude_id=current_user.id)
    return [UserResponse.from_user(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = Repository(db).find_user_by_id(user_id)
    if user is None:
        raise UserNotFound()
    return UserResponse.from_user(user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    request: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update profile fields of the caller's own account.

    Skills are not editable here; use the /api/skills endpoints so duplicate
    checks and quiz generation apply.
    """
    if current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only update your own profile"
        )

    repo = Repository(db)
    fields = {
        "name": "name",
        "avatar": "avatar",
        "bio": "bio",
        "discordLink": "discord_link",
        "languages": "languages",
        "availability": "availability",
    }
    updates = request.model_dump(exclude_unset=True)

    def mutate(user: User):
        for key, column in fields.items():
            if key in updates and updates[key] is not None:
                setattr(user, column, updates[key])

    user = repo.atomic_update_user(user_id, mutate)
    repo.commit()
    return UserResponse.from_user(user)

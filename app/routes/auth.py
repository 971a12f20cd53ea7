"""Authentication routes."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field

from app.db.sessions import get_db
from app.db.repository import Repository
from app.models.user import User
from app.core.security import (
    authenticate_user,
    create_access_token,
    get_current_user,
    get_password_hash,
)
from app.routes.users import UserResponse


router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# Request/Response schemas
class SignupRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    avatar: str = ""


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(request: SignupRequest, db: Session = Depends(get_db)):
    """
    Register a new user.

    - Creates user account with a bcrypt password hash
    - Returns JWT access token
    """
    repo = Repository(db)
    email = request.email.strip().lower()
    if repo.find_user_by_email(email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = repo.insert_user(User(
        name=request.name.strip(),
        email=email,
        password_hash=get_password_hash(request.password),
        avatar=request.avatar,
        known_skills=[],
        skills_to_learn=[],
    ))
    repo.commit()

    return TokenResponse(access_token=create_access_token(user.id), user=UserResponse.from_user(user))


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Login with email and password.

    - Validates credentials
    - Returns JWT access token
    """
    user = authenticate_user(Repository(db), request.email, request.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    return TokenResponse(access_token=create_access_token(user.id), user=UserResponse.from_user(user))


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    """
    Get current authenticated user information.

    Protected endpoint - requires valid JWT token.
    """
    return UserResponse.from_user(current_user)

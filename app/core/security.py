"""Password hashing, access tokens and the authenticated-member dependency."""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.repository import Repository
from app.db.sessions import get_db
from app.models.user import User

BCRYPT_MAX_BYTES = 72

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer()


def _bcrypt_input(password: str) -> str:
    # bcrypt ignores bytes past 72; cut on a character boundary
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES].decode("utf-8", "ignore")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(_bcrypt_input(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)


def authenticate_user(repo: Repository, email: str, password: str) -> Optional[User]:
    """Return the member owning `email` if `password` matches, else None."""
    user = repo.find_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": user_id, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict:
    """Validate signature and expiry; 401 on anything else."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise _unauthorized("Could not validate credentials")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the bearer token to a member.

    Tokens for deleted accounts are rejected the same way as forged ones.
    """
    user_id = decode_token(credentials.credentials).get("sub")
    if not user_id:
        raise _unauthorized("Invalid authentication credentials")

    user = Repository(db).find_user_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user

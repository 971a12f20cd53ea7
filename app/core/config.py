"""Application configuration with environment variables."""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./skillvouch.db"

    # JWT Settings
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Application
    APP_NAME: str = "SkillVouch API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:3001",
    ]

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/15minutes"

    # OpenAI-compatible text generation (works with Mistral via AI_BASE_URL)
    OPENAI_API_KEY: str = "your-openai-api-key-here"
    OPENAI_MODEL: str = "gpt-4o-mini"
    AI_BASE_URL: Optional[str] = None
    AI_TIMEOUT_SECONDS: float = 10.0

    # Quiz generation
    QUIZ_MAX_ATTEMPTS: int = 3
    QUIZ_RETRY_BACKOFF_SECONDS: float = 1.0
    QUIZ_DEFAULT_QUESTION_COUNT: int = 5

    # Peer matching heuristics
    MATCH_TOP_N: int = 6
    MATCH_POINTS_PER_SKILL: float = 25.0
    MATCH_RATING_MULTIPLIER: float = 5.0
    MATCH_RATING_CAP: float = 25.0
    MATCH_BASE_WEIGHT: float = 0.4
    MATCH_EXTERNAL_WEIGHT: float = 0.6

    # Exchanges
    FEEDBACK_REQUIRES_COMPLETED: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    """Build the settings once per process."""
    return Settings()


settings = get_settings()

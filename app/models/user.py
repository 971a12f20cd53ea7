"""User model."""
import uuid
from sqlalchemy import Column, String, DateTime, Text, Float, Integer, JSON
from app.db.base import Base, utc_now

DEFAULT_RATING = 5.0


class User(Base):
    """Platform member with their skill registry stored as JSON documents."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    email = Column(String(150), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    avatar = Column(String, default="")
    bio = Column(Text, default="")
    discord_link = Column(String)
    languages = Column(JSON, default=list)
    availability = Column(JSON, default=list)

    # Lists of canonical Skill / LearningGoal dicts, see services.skill_registry
    known_skills = Column(JSON, default=list, nullable=False)
    skills_to_learn = Column(JSON, default=list, nullable=False)

    rating = Column(Float, default=DEFAULT_RATING, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"

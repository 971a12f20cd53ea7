"""Skill registry: known skills and learning goals on a user.

Skills are stored as JSON on the user row. `normalize_known_skill` and
`normalize_learning_goal` are the only place legacy field spellings
(`name`, `verified`, bare strings) are understood; everything past them works
with the canonical `Skill` / `LearningGoal` models.
"""
import logging
import math
import re
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.core.exceptions import DuplicateSkill, ValidationFailed
from app.db.base import utc_now
from app.db.repository import Repository
from app.models.user import User

logger = logging.getLogger(__name__)

LEVELS = ("Beginner", "Intermediate", "Advanced", "Expert")
PRIORITIES = ("Low", "Medium", "High")
PENDING = "Pending"
VERIFIED = "Verified"
FAILED = "Failed"

Level = Literal["Beginner", "Intermediate", "Advanced", "Expert"]
Priority = Literal["Low", "Medium", "High"]
VerificationStatus = Literal["Pending", "Verified", "Failed"]


class Skill(BaseModel):
    skillName: str
    level: Level = "Beginner"
    verificationStatus: VerificationStatus = PENDING
    score: int = Field(default=0, ge=0, le=100)
    verifiedAt: Optional[datetime] = None


class LearningGoal(BaseModel):
    skillName: str
    priority: Priority = "Medium"
    roadmapId: Optional[str] = None


def _pick_level(value) -> str:
    if isinstance(value, str):
        for level in LEVELS:
            if level.lower() == value.strip().lower():
                return level
    return "Beginner"


def _pick_score(value) -> int:
    # older rows hold floats or text like "85%"; anything unreadable is 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = value
    else:
        found = re.search(r"-?\d+(?:\.\d+)?", str(value or ""))
        number = float(found.group()) if found else 0
    if not math.isfinite(number):
        return 0
    return max(0, min(100, int(number)))


def normalize_known_skill(raw: Union[dict, str]) -> Skill:
    """Build a canonical Skill from whatever shape the store holds."""
    if isinstance(raw, str):
        return Skill(skillName=raw)
    name = raw.get("skillName") or raw.get("name") or ""
    status = raw.get("verificationStatus")
    if status not in (PENDING, VERIFIED, FAILED):
        status = VERIFIED if raw.get("verified") else PENDING
    return Skill(
        skillName=name,
        level=_pick_level(raw.get("level")),
        verificationStatus=status,
        score=_pick_score(raw.get("score")),
        verifiedAt=raw.get("verifiedAt"),
    )


def normalize_learning_goal(raw: Union[dict, str]) -> LearningGoal:
    if isinstance(raw, str):
        return LearningGoal(skillName=raw)
    priority = raw.get("priority")
    return LearningGoal(
        skillName=raw.get("skillName") or raw.get("name") or "",
        priority=priority if priority in PRIORITIES else "Medium",
        roadmapId=raw.get("roadmapId"),
    )


def get_known_skills(user: User) -> List[Skill]:
    return [normalize_known_skill(s) for s in (user.known_skills or [])]


def get_skills_to_learn(user: User) -> List[LearningGoal]:
    return [normalize_learning_goal(s) for s in (user.skills_to_learn or [])]


def set_known_skills(user: User, skills: List[Skill]):
    user.known_skills = [s.model_dump(mode="json") for s in skills]


def set_skills_to_learn(user: User, goals: List[LearningGoal]):
    user.skills_to_learn = [g.model_dump(mode="json") for g in goals]


def _same(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def _clean_name(skill_name: str) -> str:
    if not isinstance(skill_name, str) or not skill_name.strip():
        raise ValidationFailed("Skill name is required")
    return skill_name.strip()


def record_verification(user: User, skill_name: str, score: int, level: str, passed: bool) -> bool:
    """Apply a graded quiz to the matching known skill. Returns False if the user lacks it."""
    skills = get_known_skills(user)
    for skill in skills:
        if _same(skill.skillName, skill_name):
            skill.verificationStatus = VERIFIED if passed else FAILED
            skill.score = score
            skill.level = level
            skill.verifiedAt = utc_now()
            set_known_skills(user, skills)
            return True
    return False


def link_roadmap(user: User, skill_name: str, roadmap_id: str) -> bool:
    goals = get_skills_to_learn(user)
    for goal in goals:
        if _same(goal.skillName, skill_name):
            goal.roadmapId = roadmap_id
            set_skills_to_learn(user, goals)
            return True
    return False


class SkillRegistry:
    """Mutations on a user's skill lists.

    `task_queue` is optional; when present, adding a known skill enqueues quiz
    generation for it. Enqueue failures are logged and never fail the add.
    """

    def __init__(self, repo: Repository, task_queue=None):
        self.repo = repo
        self.task_queue = task_queue

    def add_known_skill(self, user_id: str, skill_name: str, level: str = "Beginner") -> User:
        name = _clean_name(skill_name)
        if level not in LEVELS:
            raise ValidationFailed(f"Level must be one of: {', '.join(LEVELS)}")

        def mutate(user: User):
            skills = get_known_skills(user)
            if any(_same(s.skillName, name) for s in skills):
                raise DuplicateSkill("Skill already exists in known skills")
            skills.append(Skill(skillName=name, level=level))
            set_known_skills(user, skills)

        try:
            user = self.repo.atomic_update_user(user_id, mutate)
        except DuplicateSkill:
            self.repo.rollback()
            raise
        self.repo.commit()
        logger.info("Added known skill %r for user %s", name, user_id)

        if self.task_queue is not None:
            try:
                self.task_queue.enqueue_quiz_generation(user_id, name, level.lower())
            except Exception:
                logger.exception("Could not enqueue quiz generation for %r (user %s)", name, user_id)
        return user

    def add_skill_to_learn(self, user_id: str, skill_name: str, priority: str = "Medium") -> User:
        name = _clean_name(skill_name)
        if priority not in PRIORITIES:
            raise ValidationFailed(f"Priority must be one of: {', '.join(PRIORITIES)}")

        def mutate(user: User):
            goals = get_skills_to_learn(user)
            if any(_same(g.skillName, name) for g in goals):
                raise DuplicateSkill("Skill already exists in learning goals")
            goals.append(LearningGoal(skillName=name, priority=priority))
            set_skills_to_learn(user, goals)

        try:
            user = self.repo.atomic_update_user(user_id, mutate)
        except DuplicateSkill:
            self.repo.rollback()
            raise
        self.repo.commit()
        logger.info("Added learning goal %r for user %s", name, user_id)
        return user

    def remove_known_skill(self, user_id: str, skill_name: str) -> User:
        def mutate(user: User):
            set_known_skills(user, [s for s in get_known_skills(user) if not _same(s.skillName, skill_name)])

        user = self.repo.atomic_update_user(user_id, mutate)
        self.repo.commit()
        return user

    def remove_skill_to_learn(self, user_id: str, skill_name: str) -> User:
        def mutate(user: User):
            set_skills_to_learn(user, [g for g in get_skills_to_learn(user) if not _same(g.skillName, skill_name)])

        user = self.repo.atomic_update_user(user_id, mutate)
        self.repo.commit()
        return user

"""AI learning roadmaps."""
import logging
from typing import List, Optional

from app.core.exceptions import MalformedModelOutput, RoadmapNotFound, UserNotFound, ValidationFailed
from app.db.base import utc_now
from app.db.repository import Repository
from app.models.roadmap import Roadmap
from app.services.skill_registry import link_roadmap

logger = logging.getLogger(__name__)

MIN_STEPS = 3
MAX_STEPS = 8


def _clean_steps(raw_steps) -> List[dict]:
    if not MIN_STEPS <= len(raw_steps) <= MAX_STEPS:
        raise MalformedModelOutput(f"Roadmap must have {MIN_STEPS}-{MAX_STEPS} steps, got {len(raw_steps)}")

    steps = []
    for index, step in enumerate(raw_steps, 1):
        if not isinstance(step, dict):
            raise MalformedModelOutput(f"Step {index}: not an object")
        title = step.get("title")
        if not isinstance(title, str) or not title.strip():
            raise MalformedModelOutput(f"Step {index}: missing title")
        resources = step.get("resources") or []
        steps.append({
            "title": title.strip(),
            "description": str(step.get("description") or "").strip(),
            "duration": str(step.get("duration") or "").strip(),
            "resources": [str(r) for r in resources] if isinstance(resources, list) else [],
        })
    return steps


class RoadmapService:
    def __init__(self, repo: Repository, ai):
        self.repo = repo
        self.ai = ai

    def generate_roadmap(self, user_id: str, skill: str, current_level: Optional[str] = None,
                         target_level: Optional[str] = None) -> Roadmap:
        if not isinstance(skill, str) or not skill.strip():
            raise ValidationFailed("Skill is required")
        skill = skill.strip()
        if self.repo.find_user_by_id(user_id) is None:
            raise UserNotFound()

        steps = _clean_steps(self.ai.generate_roadmap_steps(skill, current_level, target_level))
        roadmap = self.repo.upsert_roadmap(user_id, skill, {"steps": steps, "generated_at": utc_now()})
        self.repo.atomic_update_user(user_id, lambda u: link_roadmap(u, skill, roadmap.id))
        self.repo.commit()
        logger.info("Generated %d-step roadmap for %r (user %s)", len(steps), skill, user_id)
        return roadmap

    def get_roadmap(self, user_id: str, skill: str) -> Roadmap:
        roadmap = self.repo.find_roadmap(user_id, skill or "")
        if roadmap is None:
            raise RoadmapNotFound()
        return roadmap

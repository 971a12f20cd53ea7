"""Peer matching: deterministic skill-overlap score refined by the AI matcher."""
import logging
import math
from typing import Dict, List

from app.core.config import Settings
from app.core.exceptions import UserNotFound
from app.db.repository import Repository
from app.models.user import User
from app.services.quiz_grading import round_half_up
from app.services.skill_registry import VERIFIED, get_known_skills, get_skills_to_learn

logger = logging.getLogger(__name__)

FALLBACK_REASONING = "High compatibility based on skill matching."


def _wanted(requester: User) -> set:
    return {g.skillName.strip().lower() for g in get_skills_to_learn(requester)}


def has_verified_match(requester: User, candidate: User) -> bool:
    wanted = _wanted(requester)
    return any(
        s.verificationStatus == VERIFIED and s.skillName.strip().lower() in wanted
        for s in get_known_skills(candidate)
    )


class MatchingEngine:
    """
    Ranks other users as learning partners for a requester.

    `ai` needs an `analyze_match(requester, candidate)` method returning
    {"score", "reasoning", "commonInterests"}. Any failure there only affects
    that candidate, who keeps their base score.
    """

    def __init__(self, repo: Repository, ai, settings: Settings):
        self.repo = repo
        self.ai = ai
        self.settings = settings

    def base_score(self, requester: User, candidate: User) -> int:
        wanted = _wanted(requester)
        matched = sum(1 for s in get_known_skills(candidate) if s.skillName.strip().lower() in wanted)
        rating_points = min(self.settings.MATCH_RATING_CAP,
                            (candidate.rating or 0) * self.settings.MATCH_RATING_MULTIPLIER)
        # Truncated: 47.5 -> 47
        return int(math.floor(min(100, matched * self.settings.MATCH_POINTS_PER_SKILL + rating_points)))

    def blend(self, base: int, external: float) -> int:
        return round_half_up(self.settings.MATCH_BASE_WEIGHT * base
                             + self.settings.MATCH_EXTERNAL_WEIGHT * external)

    def find_matches(self, user_id: str, strict: bool = False) -> List[Dict]:
        requester = self.repo.find_user_by_id(user_id)
        if requester is None:
            raise UserNotFound()

        candidates = self.repo.find_users(exclude_id=user_id)
        if strict:
            candidates = [c for c in candidates if has_verified_match(requester, c)]

        scored = [(c, self.base_score(requester, c)) for c in candidates]
        # sorted() is stable, so equal scores keep pool order
        scored = sorted(scored, key=lambda item: item[1], reverse=True)[: self.settings.MATCH_TOP_N]

        results = []
        for candidate, base in scored:
            try:
                analysis = self.ai.analyze_match(requester, candidate)
                results.append({
                    "user": candidate,
                    "matchScore": self.blend(base, analysis["score"]),
                    "reasoning": analysis["reasoning"],
                    "commonInterests": list(analysis.get("commonInterests") or []),
                })
            except Exception as e:
                logger.warning("Match analysis failed for candidate %s: %s", candidate.id, e)
                results.append({
                    "user": candidate,
                    "matchScore": base,
                    "reasoning": FALLBACK_REASONING,
                    "commonInterests": [],
                })

        results.sort(key=lambda r: (r["matchScore"], r["user"].rating or 0), reverse=True)
        logger.info("Found %d matches for user %s (strict=%s)", len(results), user_id, strict)
        return results

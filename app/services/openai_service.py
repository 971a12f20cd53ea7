"""OpenAI-compatible text generation for quizzes, peer matching and roadmaps."""
import logging
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from app.core.config import Settings, get_settings
from app.core.exceptions import ExternalServiceError, MalformedModelOutput
from app.models.user import User
from app.services.skill_registry import get_known_skills, get_skills_to_learn
from app.utils.response_sanitizer import extract_json

logger = logging.getLogger(__name__)

JSON_ONLY_SYSTEM_PROMPT = "You MUST return ONLY valid JSON. No explanations, no markdown, just JSON."


class OpenAIService:
    """Service for interacting with an OpenAI-compatible chat completions API."""

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        """Initialize the client from injected settings.

        SDK-level retries are disabled; callers own their retry policy so the
        total latency stays bounded by `AI_TIMEOUT_SECONDS` per attempt.
        """
        self.settings = settings
        self.model = settings.OPENAI_MODEL
        self.client = client or OpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.AI_BASE_URL,
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_retries=0,
        )

    def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        system_prompt: Optional[str] = JSON_ONLY_SYSTEM_PROMPT,
    ) -> str:
        """
        Send a single prompt and return the raw text of the first choice.

        Raises:
            ExternalServiceError: the endpoint failed, timed out or returned no content
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self.client.chat.completions.create(
                model=model or self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            raise ExternalServiceError(f"Text generation request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExternalServiceError("Text generation returned an empty response")
        return content

    def analyze_match(self, requester: User, candidate: User) -> Dict:
        """
        Ask the model how well `candidate` fits `requester` as a learning partner.

        Returns:
            {"score": int 0-100, "reasoning": str, "commonInterests": List[str]}

        Raises:
            ExternalServiceError / MalformedModelOutput on any failure
        """
        prompt = self._build_match_prompt(requester, candidate)
        data = extract_json(self.generate_text(prompt, temperature=0.3, max_tokens=500))
        if not isinstance(data, dict):
            raise MalformedModelOutput("Match analysis must be a JSON object")

        score = data.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= 100:
            raise MalformedModelOutput(f"Match score out of range: {score!r}")

        reasoning = data.get("reasoning")
        if not isinstance(reasoning, str) or not reasoning.strip():
            raise MalformedModelOutput("Match analysis is missing reasoning")

        interests = data.get("commonInterests") or []
        if not isinstance(interests, list):
            interests = []

        return {
            "score": score,
            "reasoning": reasoning.strip(),
            "commonInterests": [str(i) for i in interests if str(i).strip()],
        }

    def generate_roadmap_steps(
        self,
        skill: str,
        current_level: Optional[str] = None,
        target_level: Optional[str] = None,
    ) -> List[Dict]:
        """Return the raw `steps` list from the model; validation is the caller's job."""
        prompt = self._build_roadmap_prompt(skill, current_level, target_level)
        data = extract_json(self.generate_text(prompt, temperature=0.5, max_tokens=1500))
        steps = data.get("steps") if isinstance(data, dict) else data
        if not isinstance(steps, list):
            raise MalformedModelOutput("Roadmap response is missing a steps array")
        return steps

    def _describe_user(self, user: User) -> str:
        known = ", ".join(
            f"{s.skillName} ({s.level}, {s.verificationStatus})" for s in get_known_skills(user)
        ) or "none"
        learning = ", ".join(g.skillName for g in get_skills_to_learn(user)) or "none"
        return (
            f"Name: {user.name}\n"
            f"Bio: {user.bio or 'n/a'}\n"
            f"Knows: {known}\n"
            f"Wants to learn: {learning}\n"
            f"Rating: {user.rating:.1f}/5"
        )

    def _build_match_prompt(self, requester: User, candidate: User) -> str:
        return f"""Evaluate how compatible these two people are as skill-exchange partners.

LEARNER:
{self._describe_user(requester)}

CANDIDATE:
{self._describe_user(candidate)}

Consider whether the candidate can teach what the learner wants, whether the
learner can teach something back, and shared interests.

Return exactly this JSON structure:
{{
  "score": 0-100,
  "reasoning": "one or two sentences",
  "commonInterests": ["string"]
}}"""

    def _build_roadmap_prompt(
        self,
        skill: str,
        current_level: Optional[str],
        target_level: Optional[str],
    ) -> str:
        return f"""Create a learning roadmap for {skill}.

Current level: {current_level or 'Beginner'}
Target level: {target_level or 'Advanced'}

REQUIREMENTS:
- Between 3 and 8 sequential steps
- Each step has a short title, a description, an estimated duration (e.g. "2-4 weeks")
  and a list of concrete resources

Return exactly this JSON structure:
{{
  "steps": [
    {{
      "title": "string",
      "description": "string",
      "duration": "string",
      "resources": ["string"]
    }}
  ]
}}"""


def get_ai_service() -> OpenAIService:
    """FastAPI dependency; overridden in tests."""
    return OpenAIService(get_settings())

"""AI quiz generation: prompt, sanitise, validate, retry."""
import logging
import time
from typing import Callable, Dict, List, Optional

from app.core.config import Settings
from app.core.exceptions import (
    ExternalServiceError,
    MalformedModelOutput,
    QuizGenerationFailed,
    ValidationFailed,
)
from app.db.repository import Repository
from app.models.quiz import Quiz
from app.utils.response_sanitizer import extract_json

logger = logging.getLogger(__name__)

DIFFICULTIES = ("beginner", "intermediate", "advanced", "expert")
LEGACY_DIFFICULTIES = {"easy": "beginner", "medium": "intermediate", "hard": "advanced"}
MIN_QUESTIONS = 1
MAX_QUESTIONS = 10
ANSWER_LETTERS = "ABCD"


def normalize_difficulty(difficulty: str) -> str:
    value = (difficulty or "").strip().lower()
    value = LEGACY_DIFFICULTIES.get(value, value)
    if value not in DIFFICULTIES:
        raise ValidationFailed(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}")
    return value


class QuizGenerator:
    """Generates validated multiple-choice quizzes for a skill.

    `ai` needs a `generate_text(prompt, ...)` method. `sleep` is injectable so
    tests do not wait out the backoff.
    """

    def __init__(self, ai, settings: Settings, sleep: Callable[[float], None] = time.sleep):
        self.ai = ai
        self.max_attempts = max(1, settings.QUIZ_MAX_ATTEMPTS)
        self.backoff = settings.QUIZ_RETRY_BACKOFF_SECONDS
        self.default_count = settings.QUIZ_DEFAULT_QUESTION_COUNT
        self.sleep = sleep

    def generate_questions(
        self,
        skill_name: str,
        difficulty: str = "intermediate",
        question_count: Optional[int] = None,
        nonce: Optional[str] = None,
    ) -> List[Dict]:
        """
        Generate `question_count` questions about `skill_name`.

        Returns:
            List of {"id", "question", "codeSnippet", "options", "correct", "explanation"}
            where `correct` is the zero-based index of the right option.

        Raises:
            ValidationFailed: bad arguments (never retried)
            QuizGenerationFailed: every attempt failed; carries the last error
        """
        if not isinstance(skill_name, str) or not skill_name.strip():
            raise ValidationFailed("Skill name is required")
        skill_name = skill_name.strip()
        difficulty = normalize_difficulty(difficulty)
        count = self.default_count if question_count is None else question_count
        if not MIN_QUESTIONS <= count <= MAX_QUESTIONS:
            raise ValidationFailed(f"Question count must be between {MIN_QUESTIONS} and {MAX_QUESTIONS}")

        prompt = self._build_prompt(skill_name, difficulty, count, nonce)
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                raw = self.ai.generate_text(prompt, temperature=0.7, max_tokens=2000)
                questions = self._validate(extract_json(raw), skill_name, count, nonce)
                logger.info("Generated %d questions for %s on attempt %d", len(questions), skill_name, attempt)
                return questions
            except ExternalServiceError as e:
                last_error = e
                logger.warning("Quiz generation attempt %d/%d for %s failed: %s",
                               attempt, self.max_attempts, skill_name, e.message)
            if attempt < self.max_attempts and self.backoff > 0:
                self.sleep(self.backoff)

        raise QuizGenerationFailed(
            f"Quiz generation failed after {self.max_attempts} attempts: {last_error.message}",
            last_error=last_error,
        )

    def generate_and_store_quiz(
        self,
        repo: Repository,
        skill_name: str,
        difficulty: str = "intermediate",
        question_count: Optional[int] = None,
        nonce: Optional[str] = None,
    ) -> Quiz:
        """Generate questions and persist them as a new Quiz (flushed, not committed)."""
        questions = self.generate_questions(skill_name, difficulty, question_count, nonce)
        quiz = Quiz(
            skill_name=skill_name.strip(),
            difficulty=normalize_difficulty(difficulty),
            questions=[
                {
                    "questionText": q["question"],
                    "codeSnippet": q["codeSnippet"],
                    "options": q["options"],
                    "correctAnswerIndex": q["correct"],
                }
                for q in questions
            ],
        )
        return repo.insert_quiz(quiz)

    def _build_prompt(self, skill: str, difficulty: str, count: int, nonce: Optional[str]) -> str:
        snippet_rule = ""
        snippet_field = ""
        if nonce:
            snippet_field = ',\n      "codeSnippet": "string"'
            snippet_rule = (
                f"\n- Every question must include a codeSnippet, and every codeSnippet must contain"
                f" the comment `// {nonce}` exactly once"
            )

        return f"""Generate exactly {count} multiple-choice questions about {skill} at {difficulty} level.

You MUST return ONLY valid JSON. Do NOT include explanations. Do NOT include markdown. Return exactly this structure:

{{
  "questions": [
    {{
      "question": "string",
      "options": ["A", "B", "C", "D"],
      "correctAnswer": "A"{snippet_field}
    }}
  ]
}}

Requirements:
- All questions must be specifically about {skill}
- Exactly 4 options per question
- Options must be realistic but clearly distinguishable
- correctAnswer must be the letter (A, B, C or D) of the right option
- Questions must be appropriate for {difficulty} level{snippet_rule}"""

    def _validate(self, data, skill: str, count: int, nonce: Optional[str]) -> List[Dict]:
        raw_questions = data.get("questions") if isinstance(data, dict) else data
        if not isinstance(raw_questions, list):
            raise MalformedModelOutput("Missing or invalid questions array in AI response")
        if not raw_questions:
            raise MalformedModelOutput("Empty questions array returned from AI")
        if len(raw_questions) != count:
            raise MalformedModelOutput(f"Expected {count} questions, got {len(raw_questions)}")

        validated = []
        for index, q in enumerate(raw_questions, 1):
            if not isinstance(q, dict):
                raise MalformedModelOutput(f"Question {index}: not an object")

            text = q.get("question")
            if not isinstance(text, str) or not text.strip():
                raise MalformedModelOutput(f"Question {index}: Missing or invalid question text")

            options = q.get("options")
            if not isinstance(options, list) or len(options) != 4:
                raise MalformedModelOutput(f"Question {index}: Must have exactly 4 options")
            if not all(isinstance(o, str) and o.strip() for o in options):
                raise MalformedModelOutput(f"Question {index}: Options must be non-empty strings")

            correct = self._answer_index(q.get("correctAnswer"), options)
            if correct is None:
                raise MalformedModelOutput(f"Question {index}: correctAnswer must be A, B, C, or D")

            snippet = q.get("codeSnippet")
            if snippet is not None and not isinstance(snippet, str):
                raise MalformedModelOutput(f"Question {index}: codeSnippet must be a string")
            if nonce and (not snippet or nonce not in snippet):
                raise MalformedModelOutput(f"Question {index}: codeSnippet is missing the watermark")

            validated.append({
                "id": f"q_{index}",
                "question": text.strip(),
                "codeSnippet": snippet,
                "options": [o.strip() for o in options],
                "correct": correct,
                "explanation": f"This question tests your knowledge of {skill}.",
            })
        return validated

    def _answer_index(self, answer, options: List[str]) -> Optional[int]:
        if not isinstance(answer, str) or not answer.strip():
            return None
        letter = answer.strip().upper()
        if len(letter) == 1 and letter in ANSWER_LETTERS:
            return ANSWER_LETTERS.index(letter)
        # Some models echo the option text instead of its letter
        for idx, opt in enumerate(options):
            if opt.strip().lower() == answer.strip().lower():
                return idx
        return None

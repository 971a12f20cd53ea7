"""Quiz grading and skill verification."""
import logging
import math
from typing import Dict, List, Sequence

from app.core.exceptions import InvalidSubmission, QuizNotFound, UserNotFound
from app.db.base import utc_now
from app.db.repository import Repository
from app.models.quiz import Quiz, QuizAttempt, QuizResult
from app.services.skill_registry import record_verification

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 60
# (minimum score, level), highest first
LEVEL_THRESHOLDS = ((80, "Expert"), (60, "Advanced"), (40, "Intermediate"))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def level_for_score(score: int) -> str:
    for minimum, level in LEVEL_THRESHOLDS:
        if score >= minimum:
            return level
    return "Beginner"


def grade_answers(quiz: Quiz, answers: Sequence) -> int:
    """Return the percentage score for `answers` against the quiz key."""
    questions = quiz.questions or []
    if not questions:
        raise InvalidSubmission("Quiz has no questions")
    if not isinstance(answers, (list, tuple)) or len(answers) != len(questions):
        raise InvalidSubmission(f"Expected {len(questions)} answers")
    for answer in answers:
        if isinstance(answer, bool) or not isinstance(answer, int) or not 0 <= answer <= 3:
            raise InvalidSubmission("Each answer must be an option index between 0 and 3")

    correct = sum(
        1 for answer, question in zip(answers, questions)
        if answer == question["correctAnswerIndex"]
    )
    return round_half_up(100 * correct / len(questions))


class VerificationEngine:
    def __init__(self, repo: Repository):
        self.repo = repo

    def submit_quiz_attempt(self, quiz_id: str, user_id: str, answers: List[int]) -> Dict:
        """
        Grade a submission and update the user's verification state.

        The attempt, the (user, skill) result upsert and the skill update are
        written in a single transaction.

        Returns:
            {"score": int, "level": str, "passed": bool}
        """
        quiz = self.repo.find_quiz_by_id(quiz_id)
        if quiz is None:
            raise QuizNotFound()
        user = self.repo.find_user_by_id(user_id)
        if user is None:
            raise UserNotFound()

        score = grade_answers(quiz, answers)
        level = level_for_score(score)
        passed = score >= PASS_THRESHOLD
        now = utc_now()

        try:
            self.repo.insert_quiz_attempt(QuizAttempt(
                user_id=user_id,
                quiz_id=quiz.id,
                answers=list(answers),
                score=score,
                completed_at=now,
            ))
            self.repo.upsert_quiz_result(user_id, quiz.skill_name, {
                "quiz_id": quiz.id,
                "score": score,
                "level": level,
                "completed_at": now,
            })
            updated = {}

            def mutate(u):
                updated["skill"] = record_verification(u, quiz.skill_name, score, level, passed)

            self.repo.atomic_update_user(user_id, mutate)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        if not updated.get("skill"):
            logger.info("User %s has no known skill %r; stored result only", user_id, quiz.skill_name)
        logger.info("Graded quiz %s for user %s: %d%% (%s, passed=%s)", quiz.id, user_id, score, level, passed)
        return {"score": score, "level": level, "passed": passed}

    def list_quiz_results(self, user_id: str) -> List[QuizResult]:
        return self.repo.find_quiz_results(user_id)

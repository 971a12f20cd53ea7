import json

import pytest

from app.core.config import Settings
from app.core.exceptions import (
    ExternalServiceError,
    MalformedModelOutput,
    QuizGenerationFailed,
    ValidationFailed,
)
from app.services.quiz_generator import QuizGenerator, normalize_difficulty


@pytest.fixture
def generator(fake_ai, settings):
    return QuizGenerator(fake_ai, settings)


def test_generates_requested_questions(generator, fake_ai, quiz_json):
    fake_ai.text_responses = [quiz_json(5, correct="B")]

    questions = generator.generate_questions("Python", "intermediate", 5)

    assert len(questions) == 5
    assert [q["id"] for q in questions] == ["q_1", "q_2", "q_3", "q_4", "q_5"]
    assert all(q["correct"] == 1 for q in questions)
    assert questions[0]["options"] == ["one", "two", "three", "four"]
    assert questions[0]["explanation"] == "This question tests your knowledge of Python."
    assert "exactly 5 multiple-choice questions about Python" in fake_ai.prompts[0]


def test_accepts_fenced_output(generator, fake_ai, quiz_json):
    fake_ai.text_responses = ["Here you go\n```json\n" + quiz_json(2) + "\n```"]
    assert len(generator.generate_questions("SQL", "beginner", 2)) == 2


def test_correct_answer_given_as_option_text(generator, fake_ai):
    fake_ai.text_responses = [json.dumps({"questions": [{
        "question": "Pick three",
        "options": ["one", "two", "three", "four"],
        "correctAnswer": "Three",
    }]})]
    questions = generator.generate_questions("Counting", "beginner", 1)
    assert questions[0]["correct"] == 2


def test_retries_until_valid(fake_ai, quiz_json):
    sleeps = []
    settings = Settings(QUIZ_MAX_ATTEMPTS=3, QUIZ_RETRY_BACKOFF_SECONDS=0.5)
    generator = QuizGenerator(fake_ai, settings, sleep=sleeps.append)
    fake_ai.text_responses = [ExternalServiceError("timeout"), "not json at all", quiz_json(3)]

    questions = generator.generate_questions("Go", "advanced", 3)

    assert len(questions) == 3
    assert len(fake_ai.prompts) == 3
    assert sleeps == [0.5, 0.5]


def test_exhausted_retries_carry_last_error(generator, fake_ai, quiz_json):
    fake_ai.text_responses = [ExternalServiceError("down"), "garbage", quiz_json(4)]

    with pytest.raises(QuizGenerationFailed) as exc_info:
        generator.generate_questions("Rust", "expert", 5)

    assert len(fake_ai.prompts) == 3
    assert isinstance(exc_info.value.last_error, MalformedModelOutput)
    assert "Expected 5 questions, got 4" in exc_info.value.message


@pytest.mark.parametrize("question", [
    {"question": "", "options": ["a", "b", "c", "d"], "correctAnswer": "A"},
    {"question": "q", "options": ["a", "b", "c"], "correctAnswer": "A"},
    {"question": "q", "options": ["a", "b", "c", ""], "correctAnswer": "A"},
    {"question": "q", "options": ["a", "b", "c", "d"], "correctAnswer": "E"},
    {"question": "q", "options": ["a", "b", "c", "d"]},
])
def test_invalid_questions_are_rejected(generator, fake_ai, question):
    fake_ai.text_responses = [json.dumps({"questions": [question]})] * 3
    with pytest.raises(QuizGenerationFailed):
        generator.generate_questions("Java", "beginner", 1)


def test_nonce_must_appear_in_every_snippet(generator, fake_ai, quiz_json):
    fake_ai.text_responses = [
        quiz_json(2),
        quiz_json(2, snippet="int x = 1; // wm-42"),
    ]

    questions = generator.generate_questions("C", "intermediate", 2, nonce="wm-42")

    assert len(fake_ai.prompts) == 2
    assert "// wm-42" in fake_ai.prompts[0]
    assert all("wm-42" in q["codeSnippet"] for q in questions)


@pytest.mark.parametrize("kwargs", [
    {"skill_name": "  "},
    {"skill_name": "Python", "difficulty": "impossible"},
    {"skill_name": "Python", "question_count": 0},
    {"skill_name": "Python", "question_count": 11},
])
def test_bad_arguments_are_not_retried(generator, fake_ai, kwargs):
    with pytest.raises(ValidationFailed):
        generator.generate_questions(**kwargs)
    assert fake_ai.prompts == []


def test_legacy_difficulty_names():
    assert normalize_difficulty("Hard") == "advanced"
    assert normalize_difficulty("easy") == "beginner"
    assert normalize_difficulty("Expert") == "expert"


def test_generate_and_store_quiz(generator, fake_ai, quiz_json, repo):
    fake_ai.text_responses = [quiz_json(5, correct="D")]

    quiz = generator.generate_and_store_quiz(repo, " Docker ", "medium", 5)
    repo.commit()

    stored = repo.find_quiz_by_id(quiz.id)
    assert stored.skill_name == "Docker"
    assert stored.difficulty == "intermediate"
    assert len(stored.questions) == 5
    assert stored.questions[0]["questionText"] == "Question 1?"
    assert stored.questions[0]["correctAnswerIndex"] == 3

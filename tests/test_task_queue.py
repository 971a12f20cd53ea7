import pytest

from app.services.quiz_generator import QuizGenerator
from app.services.skill_registry import SkillRegistry
from app.services.task_queue import TaskQueue, run_quiz_generation_task


@pytest.fixture
def generator(fake_ai, settings):
    return QuizGenerator(fake_ai, settings)


def test_enqueue_records_pending_task_and_schedules(repo, make_user, session_factory, generator):
    user = make_user()
    scheduled = []
    queue = TaskQueue(repo, lambda fn, *args: scheduled.append((fn, args)), session_factory, generator)

    task = queue.enqueue_quiz_generation(user.id, "Python", "beginner")

    assert task.status == "pending"
    assert task.kind == "quiz_generation"
    assert scheduled == [(run_quiz_generation_task, (task.id, session_factory, generator))]


def test_successful_run(repo, db, make_user, session_factory, generator, fake_ai, quiz_json):
    user = make_user()
    queue = TaskQueue(repo, lambda *a: None, session_factory, generator)
    task = queue.enqueue_quiz_generation(user.id, "Python", "beginner")
    fake_ai.text_responses = [quiz_json(5)]

    run_quiz_generation_task(task.id, session_factory, generator)

    db.expire_all()
    task = repo.find_task(task.id)
    assert task.status == "succeeded"
    assert task.error is None
    assert task.finished_at is not None
    quiz = repo.find_quiz_by_id(task.quiz_id)
    assert quiz.skill_name == "Python"
    assert quiz.difficulty == "beginner"
    assert len(quiz.questions) == 5


def test_failed_run_records_error(repo, db, make_user, session_factory, generator, fake_ai):
    user = make_user()
    queue = TaskQueue(repo, lambda *a: None, session_factory, generator)
    task = queue.enqueue_quiz_generation(user.id, "Python", "beginner")
    fake_ai.text_responses = ["nonsense", "still nonsense", "{}"]

    run_quiz_generation_task(task.id, session_factory, generator)

    db.expire_all()
    task = repo.find_task(task.id)
    assert task.status == "failed"
    assert task.quiz_id is None
    assert "failed after 3 attempts" in task.error
    assert task.finished_at is not None


def test_missing_task_is_ignored(session_factory, generator, fake_ai):
    run_quiz_generation_task("missing", session_factory, generator)
    assert fake_ai.prompts == []


def test_adding_a_skill_generates_its_quiz(repo, db, make_user, session_factory, generator, fake_ai, quiz_json):
    user = make_user()
    fake_ai.text_responses = [quiz_json(5)]
    queue = TaskQueue(repo, lambda fn, *args: fn(*args), session_factory, generator)

    SkillRegistry(repo, task_queue=queue).add_known_skill(user.id, "Go", "Advanced")

    db.expire_all()
    [task] = repo.find_tasks_for_user(user.id)
    assert task.skill_name == "Go"
    assert task.difficulty == "advanced"
    assert task.status == "succeeded"

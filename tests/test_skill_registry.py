import pytest

from app.core.exceptions import DuplicateSkill, UserNotFound, ValidationFailed
from app.services.skill_registry import (
    SkillRegistry,
    get_known_skills,
    normalize_known_skill,
    normalize_learning_goal,
    record_verification,
)


class RecordingQueue:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def enqueue_quiz_generation(self, user_id, skill_name, difficulty):
        self.calls.append((user_id, skill_name, difficulty))
        if self.fail:
            raise RuntimeError("queue is down")


def test_add_known_skill_starts_pending(repo, make_user):
    user = make_user()
    queue = RecordingQueue()

    SkillRegistry(repo, task_queue=queue).add_known_skill(user.id, " React ", "Intermediate")

    skills = get_known_skills(repo.find_user_by_id(user.id))
    assert len(skills) == 1
    assert skills[0].skillName == "React"
    assert skills[0].level == "Intermediate"
    assert skills[0].verificationStatus == "Pending"
    assert skills[0].score == 0
    assert queue.calls == [(user.id, "React", "intermediate")]


def test_duplicate_known_skill_in_any_case(repo, make_user):
    user = make_user()
    registry = SkillRegistry(repo)
    registry.add_known_skill(user.id, "React")

    with pytest.raises(DuplicateSkill):
        registry.add_known_skill(user.id, "rEaCt")

    assert len(repo.find_user_by_id(user.id).known_skills) == 1


def test_duplicate_learning_goal(repo, make_user):
    user = make_user()
    registry = SkillRegistry(repo)
    registry.add_skill_to_learn(user.id, "Rust", "High")

    with pytest.raises(DuplicateSkill):
        registry.add_skill_to_learn(user.id, "RUST")

    goals = repo.find_user_by_id(user.id).skills_to_learn
    assert goals == [{"skillName": "Rust", "priority": "High", "roadmapId": None}]


def test_enqueue_failure_does_not_fail_the_add(repo, make_user):
    user = make_user()
    queue = RecordingQueue(fail=True)

    SkillRegistry(repo, task_queue=queue).add_known_skill(user.id, "Go")

    assert len(queue.calls) == 1
    assert get_known_skills(repo.find_user_by_id(user.id))[0].skillName == "Go"


def test_remove_is_case_insensitive_and_idempotent(repo, make_user):
    user = make_user()
    registry = SkillRegistry(repo)
    registry.add_known_skill(user.id, "Python")
    registry.add_known_skill(user.id, "SQL")
    registry.add_skill_to_learn(user.id, "Haskell")

    registry.remove_known_skill(user.id, "python")
    registry.remove_known_skill(user.id, "python")
    registry.remove_skill_to_learn(user.id, "haskell")
    registry.remove_skill_to_learn(user.id, "Elm")

    refreshed = repo.find_user_by_id(user.id)
    assert [s.skillName for s in get_known_skills(refreshed)] == ["SQL"]
    assert refreshed.skills_to_learn == []


@pytest.mark.parametrize("name, level", [("", "Beginner"), ("   ", "Beginner"), ("React", "Guru")])
def test_invalid_input(repo, make_user, name, level):
    user = make_user()
    with pytest.raises(ValidationFailed):
        SkillRegistry(repo).add_known_skill(user.id, name, level)


def test_invalid_priority(repo, make_user):
    user = make_user()
    with pytest.raises(ValidationFailed):
        SkillRegistry(repo).add_skill_to_learn(user.id, "Rust", "Urgent")


def test_unknown_user(repo):
    with pytest.raises(UserNotFound):
        SkillRegistry(repo).add_known_skill("nobody", "React")


def test_legacy_known_skill_shapes():
    legacy = normalize_known_skill({"name": "Go", "verified": True, "level": "advanced", "score": 140})
    assert legacy.skillName == "Go"
    assert legacy.verificationStatus == "Verified"
    assert legacy.level == "Advanced"
    assert legacy.score == 100

    bare = normalize_known_skill("Kotlin")
    assert bare.skillName == "Kotlin"
    assert bare.level == "Beginner"
    assert bare.verificationStatus == "Pending"


@pytest.mark.parametrize("raw_score, expected", [("85%", 85), ("72.6", 72), ("n/a", 0), (None, 0), (True, 0), (float("nan"), 0), (-5, 0)])
def test_legacy_scores_are_parsed_leniently(raw_score, expected):
    assert normalize_known_skill({"skillName": "Go", "score": raw_score}).score == expected


def test_legacy_learning_goal_shapes():
    goal = normalize_learning_goal({"name": "Elixir", "priority": "Someday"})
    assert goal.skillName == "Elixir"
    assert goal.priority == "Medium"
    assert normalize_learning_goal("Zig").skillName == "Zig"


def test_legacy_rows_are_rewritten_canonically(repo, make_user):
    user = make_user(known=[{"name": "Go", "verified": True}])

    SkillRegistry(repo).add_known_skill(user.id, "Rust")

    stored = repo.find_user_by_id(user.id).known_skills
    assert stored[0]["skillName"] == "Go"
    assert stored[0]["verificationStatus"] == "Verified"
    assert "name" not in stored[0]


def test_record_verification_without_matching_skill(make_user):
    user = make_user(known=[{"skillName": "Go"}])
    assert record_verification(user, "Rust", 90, "Expert", True) is False
    assert record_verification(user, "GO", 90, "Expert", True) is True
    assert user.known_skills[0]["verificationStatus"] == "Verified"

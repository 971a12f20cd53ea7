import pytest

from app.core.exceptions import UserNotFound
from app.models import User


def test_email_lookup_is_case_insensitive(repo, make_user):
    user = make_user()
    assert repo.find_user_by_email(user.email.upper()).id == user.id


def test_find_users_excludes_requester(repo, make_user):
    first, second, third = make_user(), make_user(), make_user()
    assert {u.id for u in repo.find_users(exclude_id=second.id)} == {first.id, third.id}
    assert len(repo.find_users()) == 3


def test_upsert_user_replaces_fields(repo, db, make_user):
    user = make_user(name="Before")
    user_id, email = user.id, user.email
    db.expunge(user)

    repo.upsert_user(User(id=user_id, name="After", email=email, password_hash="x", known_skills=[],
                          skills_to_learn=[], rating=4.0))
    repo.commit()

    stored = repo.find_user_by_id(user_id)
    assert stored.name == "After"
    assert stored.rating == 4.0


def test_atomic_update_persists_in_place_json_changes(repo, db, make_user):
    user = make_user(known=[{"skillName": "Go"}])

    repo.atomic_update_user(user.id, lambda u: u.known_skills.append({"skillName": "Rust"}))
    repo.commit()
    db.expire_all()

    assert [s["skillName"] for s in repo.find_user_by_id(user.id).known_skills] == ["Go", "Rust"]


def test_atomic_update_unknown_user(repo):
    with pytest.raises(UserNotFound):
        repo.atomic_update_user("nobody", lambda u: None)

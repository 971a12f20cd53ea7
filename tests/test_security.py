from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.core.security import (
    authenticate_user,
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.models import User


def test_hash_and_verify():
    hashed = get_password_hash("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)
    assert not verify_password("anything", "")


def test_long_passwords_compare_on_first_72_bytes():
    hashed = get_password_hash("é" * 50)
    assert verify_password("é" * 36 + "ignored tail", hashed)


def test_authenticate_user(repo):
    repo.insert_user(User(name="Ada", email="ada@example.com", password_hash=get_password_hash("s3cret-pass")))
    repo.commit()

    assert authenticate_user(repo, "ADA@example.com", "s3cret-pass").name == "Ada"
    assert authenticate_user(repo, "ada@example.com", "nope") is None
    assert authenticate_user(repo, "ghost@example.com", "s3cret-pass") is None


def test_token_round_trip_and_expiry():
    assert decode_token(create_access_token("user-1"))["sub"] == "user-1"

    expired = create_access_token("user-1", expires_delta=timedelta(seconds=-5))
    with pytest.raises(HTTPException) as exc_info:
        decode_token(expired)
    assert exc_info.value.status_code == 401

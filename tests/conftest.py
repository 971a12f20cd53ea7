import json
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["QUIZ_RETRY_BACKOFF_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.core.exceptions import ExternalServiceError
from app.db.base import Base
from app.db.repository import Repository
from app.db.sessions import get_db, get_session_factory
from app.main import app as fastapi_app
from app.models import User
from app.services.openai_service import get_ai_service


class FakeAIService:
    """Scripted stand-in for OpenAIService.

    `text_responses` are consumed in order by generate_text; an Exception
    instance in the list is raised instead of returned. `match_results` maps
    candidate id to a result dict or an Exception.
    """

    def __init__(self):
        self.text_responses = []
        self.prompts = []
        self.match_results = {}
        self.match_calls = []
        self.roadmap_steps = None

    def generate_text(self, prompt, model=None, temperature=0.7, max_tokens=2000, system_prompt=None):
        self.prompts.append(prompt)
        if not self.text_responses:
            raise ExternalServiceError("no scripted response")
        response = self.text_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def analyze_match(self, requester, candidate):
        self.match_calls.append(candidate.id)
        result = self.match_results.get(candidate.id, ExternalServiceError("matcher down"))
        if isinstance(result, Exception):
            raise result
        return result

    def generate_roadmap_steps(self, skill, current_level=None, target_level=None):
        if isinstance(self.roadmap_steps, Exception):
            raise self.roadmap_steps
        return self.roadmap_steps


def quiz_payload(count=5, correct="A", snippet=None):
    """A well-formed model response with `count` questions."""
    questions = []
    for i in range(count):
        q = {
            "question": f"Question {i + 1}?",
            "options": ["one", "two", "three", "four"],
            "correctAnswer": correct,
        }
        if snippet is not None:
            q["codeSnippet"] = snippet
        questions.append(q)
    return json.dumps({"questions": questions})


@pytest.fixture
def quiz_json():
    return quiz_payload


@pytest.fixture
def settings():
    return Settings(QUIZ_RETRY_BACKOFF_SECONDS=0, RATE_LIMIT_ENABLED=False)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db):
    return Repository(db)


@pytest.fixture
def fake_ai():
    return FakeAIService()


@pytest.fixture
def make_user(repo):
    counter = {"n": 0}

    def _make(name=None, known=None, learn=None, rating=5.0):
        counter["n"] += 1
        n = counter["n"]
        user = repo.insert_user(User(
            name=name or f"User {n}",
            email=f"user{n}@example.com",
            password_hash="not-a-real-hash",
            known_skills=known or [],
            skills_to_learn=learn or [],
            rating=rating,
        ))
        repo.commit()
        return user

    return _make


@pytest.fixture
def client(session_factory, fake_ai):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    fastapi_app.dependency_overrides[get_ai_service] = lambda: fake_ai
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    counter = {"n": 0}

    def _signup(name=None):
        counter["n"] += 1
        n = counter["n"]
        response = client.post("/api/auth/signup", json={
            "name": name or f"Member {n}",
            "email": f"member{n}@example.com",
            "password": "s3cret-pass",
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}

    return _signup

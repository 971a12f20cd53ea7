import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from app.core.exceptions import ExternalServiceError, MalformedModelOutput
from app.services.openai_service import OpenAIService


class StubCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


def _service(settings, *replies):
    completions = StubCompletions(replies)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIService(settings, client=client), completions


def test_generate_text_sends_system_prompt(settings):
    service, completions = _service(settings, '{"ok": true}')

    assert service.generate_text("hello", temperature=0.2) == '{"ok": true}'
    call = completions.calls[0]
    assert call["model"] == settings.OPENAI_MODEL
    assert call["messages"][0]["role"] == "system"
    assert call["messages"][1] == {"role": "user", "content": "hello"}
    assert call["temperature"] == 0.2


def test_sdk_errors_become_external_service_errors(settings):
    error = APIConnectionError(request=httpx.Request("POST", "https://api.example.com"))
    service, _ = _service(settings, error)
    with pytest.raises(ExternalServiceError):
        service.generate_text("hello")


def test_empty_content_is_an_error(settings):
    service, _ = _service(settings, "")
    with pytest.raises(ExternalServiceError):
        service.generate_text("hello")


def test_analyze_match(settings, make_user):
    reply = "```json\n" + json.dumps({
        "score": 82,
        "reasoning": " Bob teaches React. ",
        "commonInterests": ["React", "", "Hiking"],
    }) + "\n```"
    service, completions = _service(settings, reply)
    alice = make_user("Alice", learn=[{"skillName": "React"}])
    bob = make_user("Bob", known=[{"skillName": "React", "verificationStatus": "Verified"}])

    result = service.analyze_match(alice, bob)

    assert result == {"score": 82, "reasoning": "Bob teaches React.", "commonInterests": ["React", "Hiking"]}
    prompt = completions.calls[0]["messages"][1]["content"]
    assert "React (Beginner, Verified)" in prompt


@pytest.mark.parametrize("payload", [
    {"score": 120, "reasoning": "x"},
    {"score": True, "reasoning": "x"},
    {"score": "90", "reasoning": "x"},
    {"score": 50, "reasoning": ""},
    [1, 2],
])
def test_analyze_match_rejects_bad_payloads(settings, make_user, payload):
    service, _ = _service(settings, json.dumps(payload))
    with pytest.raises(MalformedModelOutput):
        service.analyze_match(make_user(), make_user())


def test_generate_roadmap_steps(settings):
    service, _ = _service(settings, json.dumps({"steps": [{"title": "Basics"}]}), '{"plan": "none"}')
    assert service.generate_roadmap_steps("Rust") == [{"title": "Basics"}]
    with pytest.raises(MalformedModelOutput):
        service.generate_roadmap_steps("Rust")

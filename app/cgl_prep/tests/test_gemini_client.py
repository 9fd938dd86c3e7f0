from unittest import mock

import pytest
import requests
from flask import Flask

from app.cgl_prep.services import gemini_client
from app.cgl_prep.services.gemini_client import GeminiClient, extract_json


class _Resp:
    def __init__(self, status_code: int, payload: dict):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if 400 <= self.status_code:
            raise requests.exceptions.HTTPError(response=self)

    def json(self):
        return self._payload


def _text_response(text: str) -> _Resp:
    return _Resp(200, {"candidates": [{"finishReason": "STOP", "content": {"parts": [{"text": text}]}}]})


@pytest.fixture(autouse=True)
def app_context(monkeypatch):
    monkeypatch.setattr(gemini_client.time, "sleep", lambda *_: None)
    app = Flask(__name__)
    with app.app_context():
        yield


def test_extract_json_finds_array_inside_prose():
    text = 'Here are your words:\n[{"word": "Ephemeral"}, {"word": "Sanguine"}]\nGood luck!'
    assert extract_json(text, "array") == [{"word": "Ephemeral"}, {"word": "Sanguine"}]


def test_extract_json_strips_markdown_fences():
    text = '```json\n{"score": 4, "feedback": "Nice"}\n```'
    assert extract_json(text, "object") == {"score": 4, "feedback": "Nice"}


def test_extract_json_object_inside_prose():
    text = 'Evaluation follows. {"grammar": "ok", "score": 7} Hope this helps.'
    assert extract_json(text, "object") == {"grammar": "ok", "score": 7}


def test_extract_json_rejects_wrong_shape_and_garbage():
    assert extract_json('{"word": "x"}', "array") is None
    assert extract_json("I cannot help with that.", "array") is None
    assert extract_json("[not, valid json]", "array") is None
    assert extract_json("", "object") is None


def test_generate_json_parses_candidate_text():
    client = GeminiClient(api_key="test-key")
    reply = _text_response('Sure! [{"idiom": "Break the ice"}]')

    with mock.patch("app.cgl_prep.services.gemini_client.requests.post", return_value=reply) as post:
        result = client.generate_json("prompt", expect="array")

    assert result == [{"idiom": "Break the ice"}]
    assert "key=test-key" in post.call_args[0][0]
    sent = post.call_args[1]["json"]
    assert sent["contents"][0]["parts"][0]["text"] == "prompt"


def test_retries_rate_limit_then_succeeds():
    client = GeminiClient(api_key="test-key")
    responses = [_Resp(429, {}), _text_response('{"ok": true}')]

    with mock.patch("app.cgl_prep.services.gemini_client.requests.post", side_effect=responses) as post:
        result = client.generate_json("prompt", expect="object")

    assert result == {"ok": True}
    assert post.call_count == 2


def test_non_retryable_status_raises():
    client = GeminiClient(api_key="test-key")

    with mock.patch("app.cgl_prep.services.gemini_client.requests.post", return_value=_Resp(400, {})) as post:
        with pytest.raises(requests.exceptions.HTTPError):
            client.generate_text("prompt")

    assert post.call_count == 1


def test_connection_errors_exhaust_retries(monkeypatch):
    monkeypatch.setenv("GEMINI_MAX_RETRIES", "2")
    client = GeminiClient(api_key="test-key")

    with mock.patch(
        "app.cgl_prep.services.gemini_client.requests.post",
        side_effect=requests.exceptions.ConnectionError("down"),
    ) as post:
        with pytest.raises(requests.exceptions.ConnectionError):
            client.generate_text("prompt")

    assert post.call_count == 2


def test_blocked_prompt_yields_empty_text():
    client = GeminiClient(api_key="test-key")
    blocked = _Resp(200, {"promptFeedback": {"blockReason": "SAFETY"}})

    with mock.patch("app.cgl_prep.services.gemini_client.requests.post", return_value=blocked):
        assert client.generate_text("prompt") == ""
        assert client.generate_json("prompt") is None


def test_unconfigured_client_refuses(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_AI_API_KEY", raising=False)
    client = GeminiClient()

    assert client.is_configured is False
    with pytest.raises(RuntimeError):
        client.generate_text("prompt")


def test_google_ai_api_key_is_accepted(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_AI_API_KEY", "alt-key")
    assert GeminiClient().api_key == "alt-key"

import os

# Must be set before the application module is imported
os.environ["FLASK_ENV"] = "testing"

import pytest

from app.cgl_prep.app import app as flask_app
from app.cgl_prep.services.gemini_client import extract_json
from app.cgl_prep.services.storage import reset_storage


class StubGemini:
    """Stands in for GeminiClient: answers every prompt with the same raw text."""

    is_configured = True

    def __init__(self, text: str):
        self.text = text
        self.calls = 0

    def generate_json(self, prompt, expect=None, **kwargs):
        self.calls += 1
        return extract_json(self.text, expect)


@pytest.fixture
def app(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_AI_API_KEY", raising=False)
    flask_app.config.update(TESTING=True, STORAGE_BACKEND="memory")
    with flask_app.app_context():
        reset_storage()
        flask_app.extensions.pop("sentence_evaluator", None)
        yield flask_app
        reset_storage()
        flask_app.extensions.pop("sentence_evaluator", None)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def stub_gemini(monkeypatch):
    """Install a stub client for the content generators; returns a setter."""
    from app.cgl_prep.services import content_generator

    def install(text: str) -> StubGemini:
        stub = StubGemini(text)
        monkeypatch.setattr(content_generator, "get_gemini_client", lambda: stub)
        return stub

    return install


@pytest.fixture
def stub_evaluator(app):
    """Install a sentence evaluator whose Gemini stub replies with the given text."""
    from app.cgl_prep.services.sentence_evaluator import SentenceEvaluator

    def install(text: str) -> StubGemini:
        stub = StubGemini(text)
        app.extensions["sentence_evaluator"] = SentenceEvaluator(client=stub)
        return stub

    return install

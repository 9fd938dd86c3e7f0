"""Daily vocabulary, idiom and GK quiz generation with Gemini, backed by seed fallbacks."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from flask import current_app

from ..utils import generate_id, today_string
from .gemini_client import GeminiClient, get_gemini_client
from .seed_loader import load_seed

CONTENT_SYSTEM_PROMPT = (
    "You are an experienced coach preparing candidates for the SSC CGL (Staff Selection Commission, "
    "Combined Graduate Level) examination. Always return valid JSON that exactly follows the requested "
    "schema, with no markdown fences and no commentary."
)


def request_items(
    prompt: str,
    label: str,
    client: Optional[GeminiClient] = None,
    temperature: float = 0.8,
) -> Optional[List[Dict[str, Any]]]:
    """Ask Gemini for a JSON array of objects.

    Returns:
        The list of dict items, or None when the client is not configured, the
        request fails or the reply holds no JSON array.
    """
    client = client or get_gemini_client()
    if not client or not client.is_configured:
        current_app.logger.error("Gemini API not configured - cannot generate %s", label)
        return None

    try:
        payload = client.generate_json(
            prompt,
            expect="array",
            temperature=temperature,
            system_instruction=CONTENT_SYSTEM_PROMPT,
        )
    except Exception as exc:
        current_app.logger.error("Error generating %s: %s", label, exc)
        return None

    if not isinstance(payload, list):
        current_app.logger.error("Invalid response format for %s - no JSON array found", label)
        return None
    items = [item for item in payload if isinstance(item, dict)]
    current_app.logger.info("Successfully parsed %s %s from Gemini", len(items), label)
    return items


def build_records(
    items: List[Dict[str, Any]],
    builder: Callable[[Dict[str, Any], str], Dict[str, Any]],
) -> List[Dict[str, Any]]:
    today = today_string()
    return [builder(item, today) for item in items]


def _text(item: Dict[str, Any], key: str, default: str = "") -> str:
    value = item.get(key)
    if value is None:
        return default
    value = str(value).strip()
    return value or default


# --------------------------------------------------------------------------- #
# VOCABULARY
# --------------------------------------------------------------------------- #


def build_vocabulary_word(item: Dict[str, Any], today: str) -> Dict[str, Any]:
    return {
        "id": generate_id(),
        "word": _text(item, "word"),
        "meaning": _text(item, "meaning"),
        "synonym": _text(item, "synonym"),
        "example": _text(item, "example"),
        "field": _text(item, "field", "general"),
        "learned": False,
        "difficult": False,
        "dateAdded": today,
    }


def generate_vocabulary(count: int = 10, client: Optional[GeminiClient] = None) -> List[Dict[str, Any]]:
    """Generate today's vocabulary words, falling back to the seed list on failure."""
    prompt = (
        f"Generate exactly {count} advanced English vocabulary words suitable for SSC CGL preparation.\n"
        "For each word, provide:\n"
        "1. Word\n"
        "2. Meaning (concise definition)\n"
        "3. Synonym\n"
        "4. Example sentence using the word\n"
        "5. Field of usage (formal, academic, literary, etc.)\n\n"
        "Return the response as a valid JSON array with objects containing: word, meaning, synonym, example, field.\n"
        "Ensure words are challenging but relevant for competitive exams.\n\n"
        "Example format:\n"
        '[{"word": "Example", "meaning": "A representative form or pattern", "synonym": "Sample", '
        '"example": "This is an example sentence.", "field": "academic"}]'
    )
    current_app.logger.info("Generating %s vocabulary words...", count)
    items = request_items(prompt, "vocabulary words", client)
    if items:
        if len(items) < count:
            current_app.logger.warning("Gemini only returned %s words, expected %s", len(items), count)
        return build_records(items[:count], build_vocabulary_word)

    current_app.logger.warning("Using fallback vocabulary data")
    return build_records(load_seed("vocabulary.json"), build_vocabulary_word)


# --------------------------------------------------------------------------- #
# IDIOMS
# --------------------------------------------------------------------------- #


def build_idiom(item: Dict[str, Any], today: str) -> Dict[str, Any]:
    return {
        "id": generate_id(),
        "idiom": _text(item, "idiom"),
        "meaning": _text(item, "meaning"),
        "example": _text(item, "example"),
        "context": _text(item, "context", "general"),
        "practiced": False,
        "mastered": False,
        "dateAdded": today,
    }


def generate_idioms(count: int = 5, client: Optional[GeminiClient] = None) -> List[Dict[str, Any]]:
    """Generate today's idioms and phrases."""
    prompt = (
        f"Generate {count} useful English idioms and phrases for SSC CGL preparation.\n"
        "For each idiom, provide:\n"
        "1. Idiom/Phrase\n"
        "2. Meaning\n"
        "3. Example sentence\n"
        "4. Context where it's commonly used\n\n"
        "Return as valid JSON array with objects containing: idiom, meaning, example, context."
    )
    items = request_items(prompt, "idioms", client)
    if items:
        return build_records(items, build_idiom)

    current_app.logger.warning("Using fallback idioms data")
    return build_records(load_seed("idioms.json"), build_idiom)


# --------------------------------------------------------------------------- #
# GK QUIZ
# --------------------------------------------------------------------------- #


def build_gk_question(item: Dict[str, Any], today: str) -> Dict[str, Any]:
    options = item.get("options") or []
    if isinstance(options, dict):
        # {"A": "...", "B": "..."} style
        options = [options[key] for key in sorted(options)]
    return {
        "id": generate_id(),
        "question": _text(item, "question"),
        "options": [str(option) for option in options if option is not None],
        "correct": _text(item, "correct", "A"),
        "explanation": _text(item, "explanation"),
        "topic": _text(item, "topic", "General Knowledge"),
        "dateAdded": today,
    }


def generate_gk_questions(count: int = 5, client: Optional[GeminiClient] = None) -> List[Dict[str, Any]]:
    """Generate today's multiple choice GK questions."""
    prompt = (
        f"Generate {count} multiple choice questions for SSC CGL General Knowledge preparation.\n"
        "Cover topics like: History, Geography, Politics, Science, Current Affairs, Sports, Literature.\n\n"
        "For each question, provide:\n"
        "1. Question text\n"
        "2. Four options (A, B, C, D)\n"
        "3. Correct answer (letter)\n"
        "4. Explanation\n"
        "5. Topic/Category\n\n"
        "Return as valid JSON array with objects containing: question, options, correct, explanation, topic.\n"
        "options must be an array of four strings without letter prefixes."
    )
    items = request_items(prompt, "GK questions", client, temperature=0.6)
    if items:
        return build_records(items, build_gk_question)

    current_app.logger.warning("Using fallback GK questions")
    return build_records(load_seed("gk_questions.json"), build_gk_question)

"""Current affairs digests and daily GK facts."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import current_app

from ..utils import generate_id, today_string
from .content_generator import build_records, request_items
from .gemini_client import GeminiClient
from .seed_loader import load_seed

FACT_CATEGORIES = [
    "Current Affairs (recent events, awards, appointments)",
    "Indian History & Culture",
    "Geography (India & World)",
    "Science & Technology",
    "Economy & Finance",
    "Polity & Governance",
    "Environment & Ecology",
    "Sports & Entertainment",
]

IMPORTANCE_LEVELS = ("high", "medium", "low")
DIFFICULTY_LEVELS = ("easy", "medium", "hard")


def build_news_item(item: Dict[str, Any], today: str) -> Dict[str, Any]:
    return {
        "id": generate_id(),
        "title": str(item.get("title") or "").strip() or "Current Affairs Update",
        "summary": str(item.get("summary") or "").strip() or "Important development in current affairs.",
        "source": str(item.get("source") or "").strip() or "News Source",
        "isRead": False,
        "isBookmarked": False,
        "dateAdded": today,
    }


def generate_news(count: int = 5, client: Optional[GeminiClient] = None) -> List[Dict[str, Any]]:
    """Generate today's current affairs topics."""
    prompt = (
        f"Generate {count} important current affairs topics for SSC CGL preparation.\n"
        "Include recent developments in:\n"
        "1. Government policies and schemes\n"
        "2. International relations\n"
        "3. Science and technology\n"
        "4. Sports achievements\n"
        "5. Awards and recognitions\n\n"
        "For each topic, provide:\n"
        "- Title (concise and informative)\n"
        "- Summary (2-3 sentences explaining the key points)\n"
        "- Source (realistic news source name)\n\n"
        "Return as valid JSON array with objects containing: title, summary, source.\n"
        "Make sure the information is current and relevant for competitive exam preparation."
    )
    items = request_items(prompt, "current affairs", client)
    if items:
        return build_records(items, build_news_item)

    current_app.logger.warning("Using fallback current affairs")
    return build_records(load_seed("news.json"), build_news_item)


def _as_list(value: Any, default: List[str]) -> List[str]:
    if isinstance(value, str):
        value = [part.strip() for part in value.split(",")]
    if not isinstance(value, list):
        return list(default)
    cleaned = [str(entry).strip() for entry in value if str(entry).strip()]
    return cleaned or list(default)


def build_gk_fact(item: Dict[str, Any], today: str) -> Dict[str, Any]:
    importance = str(item.get("importance") or "").lower()
    difficulty = str(item.get("difficulty") or "").lower()
    return {
        "id": generate_id(),
        "title": str(item.get("title") or "").strip() or "General Knowledge Fact",
        "description": str(item.get("description") or "").strip() or "Important information for competitive exams.",
        "category": str(item.get("category") or "").strip() or "General",
        "importance": importance if importance in IMPORTANCE_LEVELS else "medium",
        "difficulty": difficulty if difficulty in DIFFICULTY_LEVELS else "medium",
        "tags": _as_list(item.get("tags"), ["general"]),
        "relatedTopics": _as_list(item.get("relatedTopics"), []),
        "source": str(item.get("source") or "").strip() or "AI Generated",
        "learned": False,
        "dateAdded": today,
    }


def generate_gk_facts(
    count: int = 8,
    minimum: int = 5,
    client: Optional[GeminiClient] = None,
) -> List[Dict[str, Any]]:
    """Generate today's GK facts.

    A short AI reply is padded with seed facts up to ``minimum``; a failed one
    is replaced by the seed facts entirely.
    """
    categories = "\n".join(f"- {category}" for category in FACT_CATEGORIES)
    prompt = (
        f"Generate {count} important and current General Knowledge facts for SSC CGL preparation.\n"
        "Focus on recent developments, current affairs, and important static GK.\n\n"
        f"Categories to cover:\n{categories}\n\n"
        "For each fact, provide:\n"
        "- A clear, concise title\n"
        "- Detailed description (2-3 sentences)\n"
        "- Category\n"
        "- Importance level (high/medium/low)\n"
        "- Difficulty level (easy/medium/hard)\n"
        "- 2-3 relevant tags\n"
        "- Related topics (optional)\n\n"
        "Return only a JSON array with this exact structure:\n"
        '[{"title": "Title of the fact", "description": "Detailed explanation of the fact", '
        '"category": "Category name", "importance": "high/medium/low", "difficulty": "easy/medium/hard", '
        '"tags": ["tag1", "tag2", "tag3"], "relatedTopics": ["topic1", "topic2"]}]'
    )
    items = request_items(prompt, "GK facts", client, temperature=0.7)
    fallback = load_seed("gk_facts.json")
    if not items:
        current_app.logger.warning("Using fallback GK facts")
        return build_records(fallback, build_gk_fact)

    facts = build_records(items, build_gk_fact)
    if len(facts) < minimum:
        needed = minimum - len(facts)
        current_app.logger.warning("Gemini returned %s GK facts; padding with %s fallback facts", len(facts), needed)
        facts.extend(build_records(fallback[:needed], build_gk_fact))
    return facts

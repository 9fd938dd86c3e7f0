"""Utility functions for the Flask application."""
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from flask import jsonify

_CHOICE_PREFIX_PATTERN = re.compile(r'^\s*([A-Z])[\)\.\:\-\s]')


def generate_id() -> str:
    """Return a short random record id."""
    return uuid4().hex[:9]


def utcnow() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def today_string() -> str:
    """Today's UTC calendar date, used as the daily content partition key."""
    return utcnow().date().isoformat()


def now_iso() -> str:
    """Full UTC timestamp in ISO format."""
    return utcnow().isoformat()


def merge_updates(record: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow-merge updates over a record. The record id is never overwritten."""
    merged = dict(record)
    for key, value in updates.items():
        if key == 'id':
            continue
        merged[key] = value
    return merged


def success_response(data: Any, message: str, status: int = 200):
    return jsonify({'success': True, 'data': data, 'message': message}), status


def error_response(error: str, status: int, message: Optional[str] = None):
    payload = {'success': False, 'error': error}
    if message:
        payload['message'] = message
    return jsonify(payload), status


# --------------------------------------------------------------------------- #
# MULTIPLE CHOICE ANSWERS
# --------------------------------------------------------------------------- #


def extract_choice_letter(text: Optional[str]) -> str:
    """Return the option letter in answers like 'B', 'b', 'B) Delhi' or 'B. Delhi'."""
    if not text:
        return ''
    stripped = text.strip()
    if not stripped:
        return ''
    if len(stripped) == 1 and stripped.isalpha():
        return stripped.upper()
    match = _CHOICE_PREFIX_PATTERN.match(stripped)
    if match:
        return match.group(1).upper()
    return ''


def option_letter_map(options: Optional[List[str]]) -> Dict[str, str]:
    """Map option letters to option text, assigning A, B, C... by position."""
    letter_map: Dict[str, str] = {}
    for idx, option in enumerate((options or [])[:26]):
        if isinstance(option, str) and option.strip():
            letter_map[chr(ord('A') + idx)] = option.strip()
    return letter_map


def _resolve_letter(answer: str, letter_map: Dict[str, str]) -> str:
    for letter, option in letter_map.items():
        if answer.casefold() == option.casefold():
            return letter
    return extract_choice_letter(answer)


def answers_match(user_answer: str, correct_answer: str, options: Optional[List[str]] = None) -> bool:
    """Compare a submitted answer against the stored correct answer.

    Either side may be a bare letter, a lettered option ("B) Delhi") or the
    option text itself.
    """
    user = (user_answer or '').strip()
    correct = (correct_answer or '').strip()
    if not user or not correct:
        return False
    if user.casefold() == correct.casefold():
        return True

    letter_map = option_letter_map(options)
    user_letter = _resolve_letter(user, letter_map)
    correct_letter = _resolve_letter(correct, letter_map)
    return bool(user_letter) and user_letter == correct_letter

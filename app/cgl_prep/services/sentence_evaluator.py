"""
Scoring of learner-written sentences with Gemini.
Used by the practice page, the vocabulary "write your own example" box and idiom practice.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import current_app

from .gemini_client import GeminiClient, get_gemini_client

PRACTICE_FALLBACK = {
    'grammar': 'Unable to evaluate',
    'clarity': 'Unable to evaluate',
    'usage': 'Unable to evaluate',
    'suggestions': 'Please try again',
    'score': 5,
}

UNPARSEABLE_FALLBACK = {
    'score': 3,
    'feedback': 'Good effort! Keep practicing to improve your sentence construction.',
    'suggestions': ['Try to make the sentence more specific', 'Consider using more descriptive words'],
}

UNAVAILABLE_FALLBACK = {
    'score': 3,
    'feedback': 'Unable to evaluate at the moment, but great job on creating your own example!',
    'suggestions': [],
}


def _clamp_score(value: Any, low: int, high: int, default: int) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return default
    return max(low, min(high, score))


def _as_suggestions(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if str(item).strip()]
    return []


class SentenceEvaluator:
    """Grade sentences for grammar, clarity and correct use of a target word or idiom."""

    def __init__(self, client: Optional[GeminiClient] = None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_gemini_client()
        return self._client

    def _ask(self, prompt: str) -> Optional[Any]:
        """Return the parsed JSON object, or None if the reply had none. Transport errors propagate."""
        if not self.client or not self.client.is_configured:
            raise RuntimeError('Gemini API not configured')
        return self.client.generate_json(prompt, expect='object', temperature=0.2)

    def evaluate_practice(self, user_sentence: str, target_word: str) -> Dict[str, Any]:
        """Evaluate a practice sentence; score is 1-10."""
        prompt = f"""Evaluate this sentence for grammar, clarity, and correct usage of the word "{target_word}":

Sentence: "{user_sentence}"

Provide feedback on:
1. Grammar correctness
2. Clarity and flow
3. Appropriate usage of the target word
4. Suggestions for improvement
5. Overall score (1-10)

Return as valid JSON with: grammar, clarity, usage, suggestions, score."""

        try:
            evaluation = self._ask(prompt)
        except Exception as e:
            current_app.logger.error(f"Error evaluating practice: {e}")
            evaluation = None

        if not isinstance(evaluation, dict):
            return dict(PRACTICE_FALLBACK)

        evaluation['score'] = _clamp_score(evaluation.get('score'), 1, 10, PRACTICE_FALLBACK['score'])
        return evaluation

    def evaluate_sentence(self, word: str, sentence: str, word_meaning: Optional[str] = None) -> Dict[str, Any]:
        """Evaluate a learner's own example sentence for a vocabulary word; score is 1-5."""
        prompt = f"""Evaluate this sentence for the word "{word}" (meaning: {word_meaning or 'not provided'}):

Sentence: "{sentence}"

Please evaluate based on:
1. Correct usage of the word in context
2. Grammar and sentence structure
3. Creativity and clarity
4. Appropriateness for SSC CGL preparation

Return a JSON response with:
{{
  "score": number (1-5),
  "feedback": "detailed feedback on the sentence",
  "suggestions": ["suggestion1", "suggestion2"] (if score < 4)
}}

Be encouraging but honest. For scores 4-5, focus on what they did well. For scores 1-3, provide constructive suggestions."""
        return self._evaluate_short(prompt, 'sentence')

    def evaluate_idiom(self, idiom: Dict[str, Any], user_sentence: str) -> Dict[str, Any]:
        """Evaluate a sentence written with an idiom; same shape as evaluate_sentence."""
        prompt = f"""Evaluate how well this sentence uses the idiom "{idiom.get('idiom', '')}" (meaning: {idiom.get('meaning') or 'not provided'}):

Sentence: "{user_sentence}"

Please evaluate based on:
1. Whether the idiom is used with its idiomatic (not literal) meaning
2. Grammar and sentence structure
3. Naturalness of the context
4. Appropriateness for SSC CGL descriptive writing

Return a JSON response with:
{{
  "score": number (1-5),
  "feedback": "detailed feedback on the sentence",
  "suggestions": ["suggestion1", "suggestion2"] (if score < 4)
}}"""
        return self._evaluate_short(prompt, 'idiom sentence')

    def _evaluate_short(self, prompt: str, label: str) -> Dict[str, Any]:
        try:
            evaluation = self._ask(prompt)
        except Exception as e:
            current_app.logger.error(f"Error evaluating {label}: {e}")
            return dict(UNAVAILABLE_FALLBACK)

        if not isinstance(evaluation, dict):
            current_app.logger.warning(f"No JSON found in {label} evaluation, using fallback")
            return dict(UNPARSEABLE_FALLBACK)

        return {
            'score': _clamp_score(evaluation.get('score'), 1, 5, UNPARSEABLE_FALLBACK['score']),
            'feedback': str(evaluation.get('feedback') or UNPARSEABLE_FALLBACK['feedback']),
            'suggestions': _as_suggestions(evaluation.get('suggestions')),
        }


def get_sentence_evaluator() -> SentenceEvaluator:
    """Singleton getter for the sentence evaluator."""
    evaluator = current_app.extensions.get('sentence_evaluator')
    if evaluator is None:
        evaluator = current_app.extensions['sentence_evaluator'] = SentenceEvaluator()
    return evaluator

"""Client wrapper around the Google Gemini Generative Language API."""
from __future__ import annotations

import json
import os
import re
import time
from typing import Any, Dict, Optional

import requests
from flask import current_app

_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class GeminiClient:
    """Lightweight client for prompt-in, text-out generation via Gemini."""

    DEFAULT_MODEL = "gemini-2.5-flash"
    DEFAULT_TIMEOUT = 40
    DEFAULT_MAX_RETRIES = 3
    RETRY_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504}
    BACKOFF_INITIAL_SECONDS = 1.5
    BACKOFF_MAX_SECONDS = 30

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")
        self.model = os.getenv("GEMINI_MODEL", self.DEFAULT_MODEL)
        self.api_root = os.getenv(
            "GEMINI_API_URL",
            f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent",
        )
        try:
            self.timeout = int(os.getenv("GEMINI_TIMEOUT_SECONDS", str(self.DEFAULT_TIMEOUT)))
        except ValueError:
            self.timeout = self.DEFAULT_TIMEOUT
        try:
            self.max_retries = max(1, int(os.getenv("GEMINI_MAX_RETRIES", str(self.DEFAULT_MAX_RETRIES))))
        except ValueError:
            self.max_retries = self.DEFAULT_MAX_RETRIES

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate_text(
        self,
        prompt: str,
        temperature: float = 0.8,
        system_instruction: Optional[str] = None,
        response_mime: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """Send a prompt and return the raw text of the first usable candidate.

        Raises:
            RuntimeError: if the client has no API key.
            requests.exceptions.RequestException: once retries are exhausted.
        """
        if not self.is_configured:
            raise RuntimeError("Gemini API not configured - API key missing")

        generation_config: Dict[str, Any] = {"temperature": temperature}
        if response_mime:
            generation_config["responseMimeType"] = response_mime
        if max_output_tokens is not None:
            generation_config["maxOutputTokens"] = max_output_tokens
        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        data = self._post_with_retries(payload)
        text, finish_reason = self._extract_text_and_finish_reason(data)
        if not text:
            current_app.logger.error(
                "Gemini response contained empty text. Finish reason: %s, Response: %s",
                finish_reason,
                str(data)[:500],
            )
        return text

    def generate_json(
        self,
        prompt: str,
        expect: Optional[str] = None,
        temperature: float = 0.8,
        system_instruction: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
    ) -> Optional[Any]:
        """Send a prompt and pull a JSON value out of the reply.

        Args:
            prompt: The prompt to send to Gemini
            expect: "array", "object" or None for either
            temperature: Temperature for generation (0.0-1.0)
            system_instruction: Optional system instruction
            max_output_tokens: Optional max output tokens

        Returns:
            Parsed JSON value, or None when the reply holds no usable JSON
        """
        text = self.generate_text(
            prompt,
            temperature=temperature,
            system_instruction=system_instruction,
            max_output_tokens=max_output_tokens,
        )
        parsed = extract_json(text, expect)
        if parsed is None and text:
            current_app.logger.error(
                "Gemini JSON parsing failed. Text length: %s, First 500 chars: %s",
                len(text),
                text[:500],
            )
        return parsed

    def _post_with_retries(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST the payload, retrying transient failures with exponential backoff."""
        backoff = self.BACKOFF_INITIAL_SECONDS
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = requests.post(
                    f"{self.api_root}?key={self.api_key}",
                    json=payload,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                try:
                    return response.json()
                except ValueError as exc:
                    current_app.logger.error("Failed to parse Gemini response as JSON: %s", exc)
                    return {}

            except requests.exceptions.HTTPError as exc:
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in self.RETRY_STATUS_CODES or last_attempt:
                    current_app.logger.error("Gemini HTTP error: %s - %s", status_code, exc)
                    raise
                reason = f"HTTP {status_code}"

            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
                if last_attempt:
                    current_app.logger.error(
                        "Gemini request failed after retries due to timeout/connection issue: %s", exc
                    )
                    raise
                reason = f"timeout/connection error ({exc})"

            wait = min(backoff, self.BACKOFF_MAX_SECONDS)
            current_app.logger.warning(
                "Gemini %s for model %s. Retrying in %.1fs (attempt %s/%s).",
                reason,
                self.model,
                wait,
                attempt + 1,
                self.max_retries,
            )
            time.sleep(wait)
            backoff *= 2
        return {}

    @staticmethod
    def _extract_text_and_finish_reason(data: Dict[str, Any]) -> tuple[str, Optional[str]]:
        """Return the joined text parts of the first candidate that has any, plus its finish reason."""
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                current_app.logger.error("Gemini blocked request. Reason: %s", block_reason)
            else:
                current_app.logger.warning("Gemini response missing candidates. Full response: %s", data)
            return "", None

        fallback_finish: Optional[str] = None
        for cand in candidates:
            finish_reason = cand.get("finishReason")
            if not fallback_finish:
                fallback_finish = finish_reason
            parts = (cand.get("content") or {}).get("parts", [])
            collected = [
                part["text"]
                for part in parts
                if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"].strip()
            ]
            if collected:
                return "".join(collected), finish_reason

        return "", fallback_finish


def extract_json(text: Optional[str], expect: Optional[str] = None) -> Optional[Any]:
    """Parse a JSON array or object out of free model text.

    Markdown fences are stripped and a direct parse is tried first; otherwise
    the span from the first opening bracket to the last closing bracket is
    cut out with a regex and parsed.
    """
    if not text:
        return None

    text = text.strip()
    fenced = _FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        parsed = json.loads(text)
        if _has_shape(parsed, expect):
            return parsed
    except json.JSONDecodeError:
        pass

    if expect == "array":
        patterns = [_ARRAY_PATTERN]
    elif expect == "object":
        patterns = [_OBJECT_PATTERN]
    else:
        patterns = [_ARRAY_PATTERN, _OBJECT_PATTERN]

    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            continue
        if _has_shape(parsed, expect):
            return parsed
    return None


def _has_shape(value: Any, expect: Optional[str]) -> bool:
    if expect == "array":
        return isinstance(value, list)
    if expect == "object":
        return isinstance(value, dict)
    return isinstance(value, (list, dict))


def get_gemini_client() -> GeminiClient:
    """Factory helper to allow lazy imports without circular references."""
    return GeminiClient()

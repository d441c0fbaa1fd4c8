"""
Pattern Recognition Service boundary

The converter can ask an external service to name the behavior a method
performs (e.g. "Login flow") from the ordered list of element actions it
recorded while translating the method. The service is opaque: it returns
a ranked, possibly empty list of named patterns, and any failure is
absorbed so conversion never depends on it.

An OpenAI-backed recognizer is provided; it is only built when enabled
in settings and an API key is configured.
"""

import hashlib
import json
import time
from datetime import datetime
from typing import Any, Protocol

import structlog
from openai import OpenAI
from pydantic import BaseModel, Field, ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from pomshift.config import Settings, get_settings

logger = structlog.get_logger()


class RecordedAction(BaseModel):
    """One element action recorded while translating a method."""

    action: str
    target: str | None = None
    value: str | None = None


class RecognizedPattern(BaseModel):
    """A named behavioral pattern with a confidence score."""

    name: str
    description: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class PatternRecognizer(Protocol):
    def recognize(self, actions: list[RecordedAction]) -> list[RecognizedPattern]:
        ...


def safe_recognize(
    recognizer: PatternRecognizer | None,
    actions: list[RecordedAction],
) -> list[RecognizedPattern]:
    """
    Call a recognizer, ranking its answer by confidence.

    Returns an empty list when there is no recognizer, no actions, or the
    recognizer fails in any way.
    """
    if recognizer is None or not actions:
        return []
    try:
        patterns = recognizer.recognize(list(actions)) or []
    except Exception as e:
        logger.info("pattern_recognition_failed", error=str(e))
        return []
    ranked = [p for p in patterns if isinstance(p, RecognizedPattern)]
    return sorted(ranked, key=lambda p: p.confidence, reverse=True)


# Simple in-memory cache
_cache: dict[str, tuple[Any, datetime]] = {}


def _get_cache_key(prompt: str, model: str) -> str:
    """Generate cache key from prompt and model."""
    content = f"{model}:{prompt}"
    return hashlib.sha256(content.encode()).hexdigest()


def _get_cached(key: str, ttl: int) -> Any | None:
    """Get cached result if not expired."""
    if key in _cache:
        result, timestamp = _cache[key]
        age = (datetime.utcnow() - timestamp).total_seconds()
        if age < ttl:
            return result
        del _cache[key]
    return None


def _set_cache(key: str, value: Any) -> None:
    """Cache a result."""
    _cache[key] = (value, datetime.utcnow())


class OpenAIPatternRecognizer:
    """
    Pattern recognizer backed by the OpenAI chat completions API.
    """

    SYSTEM_PROMPT = """You are an expert QA automation engineer.
Given an ordered list of UI actions taken by one test method, name the
user-level behavior they implement (for example "Login flow" or
"Search and open first result").

Output format: JSON object {"patterns": [{"name": str, "description": str,
"confidence": float between 0 and 1}]}, best match first. Return an empty
list when no behavior is recognizable."""

    def __init__(self, settings: Settings | None = None, client: OpenAI | None = None):
        self.settings = settings or get_settings()
        self.client = client or OpenAI(api_key=self.settings.openai_api_key)
        self.model = self.settings.openai_model

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _call_openai(self, messages: list[dict]) -> str:
        """Make OpenAI API call with retry logic."""
        start = time.time()

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.settings.pattern_max_tokens,
            temperature=self.settings.openai_temperature,
            response_format={"type": "json_object"},
        )

        duration_ms = (time.time() - start) * 1000
        tokens = response.usage.total_tokens if response.usage else 0
        logger.info(
            "openai_call_complete",
            model=self.model,
            tokens=tokens,
            duration_ms=round(duration_ms, 2),
        )
        return response.choices[0].message.content or ""

    def recognize(self, actions: list[RecordedAction]) -> list[RecognizedPattern]:
        payload = json.dumps([a.model_dump(exclude_none=True) for a in actions])

        cache_key = _get_cache_key(payload, self.model)
        cached = _get_cached(cache_key, self.settings.pattern_cache_ttl)
        if cached is not None:
            return [RecognizedPattern(**p) for p in cached]

        messages = [
            {"role": "system", "content": self.SYSTEM_PROMPT},
            {"role": "user", "content": f"Actions:\n{payload}"},
        ]
        content = self._call_openai(messages)

        try:
            data = json.loads(content)
            items = data.get("patterns", []) if isinstance(data, dict) else data
            patterns = [RecognizedPattern(**item) for item in items]
        except (json.JSONDecodeError, TypeError, AttributeError, ValidationError) as e:
            logger.info("pattern_response_unparseable", error=str(e))
            return []

        _set_cache(cache_key, [p.model_dump() for p in patterns])
        return patterns


def get_pattern_recognizer(settings: Settings | None = None) -> PatternRecognizer | None:
    """Build the configured recognizer, or None when the service is disabled."""
    settings = settings or get_settings()
    if not settings.pattern_service_configured:
        return None
    return OpenAIPatternRecognizer(settings)

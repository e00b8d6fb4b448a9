"""Recommend the next syllable to practice via a chat-completion service."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from .config import Settings, get_settings
from .errors import ConfigurationError, RecommendationUnavailableError
from .pronunciation import RecommendationResult, SyllableStat
from .telemetry import emit_event

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    "You are a Mandarin Chinese tutor helping a student practice pinyin pronunciation. "
    "Here is the student's performance history for syllables they have attempted at least 10 times:\n\n"
    "{history}\n\n"
    "Based on this information, suggest exactly ONE syllable for them to practice next. "
    "Favor their weak areas (low accuracy) and pick something one appropriate difficulty step ahead. "
    "If they struggle with certain sounds, suggest a similar sound to practice. "
    "Respond with ONLY a JSON object in this format: "
    '{{"syllable": "the syllable in plain pinyin", "displayForm": "the syllable with tone marks"}}'
)


def format_stat_line(stat: SyllableStat) -> str:
    accuracy = stat.accuracy_percent if stat.accuracy_percent is not None else 0.0
    return f"{stat.syllable}: {accuracy:.1f}% accuracy ({stat.correct}/{stat.total_attempts} correct)"


def build_prompt(stats: Sequence[SyllableStat]) -> str:
    history = "\n".join(format_stat_line(stat) for stat in stats)
    return PROMPT_TEMPLATE.format(history=history)


def parse_recommendation(content: Optional[str]) -> Optional[RecommendationResult]:
    """Return the recommendation when ``content`` is a JSON object with both keys."""
    if not content:
        return None
    try:
        parsed = json.loads(content)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    try:
        return RecommendationResult.model_validate(parsed)
    except ValidationError:
        return None


def no_backoff(retry_number: int) -> float:
    return 0.0


def exponential_backoff(base_seconds: float = 0.5, cap_seconds: float = 8.0) -> Callable[[int], float]:
    def _delay(retry_number: int) -> float:
        return min(cap_seconds, base_seconds * (2 ** (retry_number - 1)))

    return _delay


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget plus the delay to wait before each retry.

    ``backoff`` receives the 1-based retry number (the first retry is 1).
    """

    max_attempts: int = 4
    backoff: Callable[[int], float] = no_backoff
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def attempts(self) -> Iterator[int]:
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay = self.backoff(attempt - 1)
                if delay > 0:
                    self.sleep(delay)
            yield attempt


class ChatMessagePayload(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class ChatChoicePayload(BaseModel):
    message: ChatMessagePayload


class ChatCompletionPayload(BaseModel):
    choices: List[ChatChoicePayload] = Field(default_factory=list)


class RecommendationAttemptError(RuntimeError):
    """A single attempt failed; the retry loop records it and moves on."""


class RecommendationClient:
    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 200,
        timeout_seconds: float = 30.0,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY must be configured before requesting recommendations.")
        self._api_key = api_key
        self._endpoint = endpoint
        self._model = model
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds
        self._retry_policy = retry_policy or RetryPolicy()
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.Client] = None,
    ) -> "RecommendationClient":
        return cls(
            settings.openai_api_key or "",
            endpoint=settings.recommendation_endpoint,
            model=settings.recommendation_model,
            max_tokens=settings.recommendation_max_tokens,
            timeout_seconds=settings.recommendation_timeout_seconds,
            retry_policy=retry_policy or RetryPolicy(max_attempts=settings.recommendation_attempts),
            client=client,
        )

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self._max_tokens,
        }

    def recommend(self, stats: Sequence[SyllableStat]) -> RecommendationResult:
        body = self.build_request(build_prompt(stats))
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        local_client = self._client or httpx.Client(timeout=self._timeout_seconds)
        close_client = self._client is None
        last_error: Optional[str] = None
        attempts = 0
        try:
            for attempt in self._retry_policy.attempts():
                attempts = attempt
                try:
                    result = self._attempt(local_client, body, headers)
                except RecommendationAttemptError as exc:
                    last_error = str(exc)
                    logger.warning("Recommendation attempt %s failed: %s", attempt, last_error)
                    emit_event("recommendation_attempt_failed", attempt=attempt, reason=last_error)
                    continue
                emit_event(
                    "recommendation_issued",
                    attempt=attempt,
                    syllable=result.syllable,
                    stats_count=len(stats),
                )
                return result
        finally:
            if close_client:
                local_client.close()

        raise RecommendationUnavailableError(last_error, attempts=attempts)

    def _attempt(
        self, client: httpx.Client, body: Dict[str, Any], headers: Dict[str, str]
    ) -> RecommendationResult:
        try:
            response = client.post(self._endpoint, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise RecommendationAttemptError(f"Failed to call recommendation service: {exc}") from exc

        if not response.is_success:
            raise RecommendationAttemptError(
                f"Recommendation service error: {response.status_code} - {response.text}"
            )

        try:
            payload = ChatCompletionPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise RecommendationAttemptError(f"Failed to parse recommendation service response: {exc}") from exc

        if not payload.choices:
            raise RecommendationAttemptError("No response from recommendation service")

        content = payload.choices[0].message.content
        result = parse_recommendation(content)
        if result is None:
            raise RecommendationAttemptError(f"Invalid response format: {content}")
        return result


@lru_cache
def get_recommendation_client() -> RecommendationClient:
    return RecommendationClient.from_settings(get_settings())


__all__ = [
    "PROMPT_TEMPLATE",
    "RecommendationAttemptError",
    "RecommendationClient",
    "RetryPolicy",
    "build_prompt",
    "exponential_backoff",
    "format_stat_line",
    "get_recommendation_client",
    "no_backoff",
    "parse_recommendation",
]

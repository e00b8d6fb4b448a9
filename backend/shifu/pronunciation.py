"""Pronunciation practice records and the statistics derived from them."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, StrictStr

MIN_ATTEMPTS_FOR_STATS = 10
MAX_USERNAME_LENGTH = 128
MAX_SYLLABLE_LENGTH = 64


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive timestamps as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PronunciationRecord(BaseModel):
    username: str
    syllable: str
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    last_updated: datetime

    @property
    def total_attempts(self) -> int:
        return self.correct_count + self.incorrect_count

    @classmethod
    def first_attempt(
        cls, username: str, syllable: str, *, correct: bool, timestamp: datetime
    ) -> "PronunciationRecord":
        return cls(
            username=username,
            syllable=syllable,
            correct_count=1 if correct else 0,
            incorrect_count=0 if correct else 1,
            last_updated=timestamp,
        )


class SyllableStat(BaseModel):
    syllable: str
    correct: int = Field(ge=0)
    incorrect: int = Field(ge=0)
    total_attempts: int = Field(ge=0)
    accuracy_percent: Optional[float] = None

    @classmethod
    def from_counts(cls, syllable: str, correct: int, incorrect: int) -> "SyllableStat":
        total = correct + incorrect
        accuracy = 100.0 * correct / total if total > 0 else None
        return cls(
            syllable=syllable,
            correct=correct,
            incorrect=incorrect,
            total_attempts=total,
            accuracy_percent=accuracy,
        )

    @classmethod
    def from_record(cls, record: PronunciationRecord) -> "SyllableStat":
        return cls.from_counts(record.syllable, record.correct_count, record.incorrect_count)

    @property
    def is_reliable(self) -> bool:
        return self.total_attempts >= MIN_ATTEMPTS_FOR_STATS


class RecommendationResult(BaseModel):
    """Next syllable suggested by the recommendation service."""

    syllable: StrictStr
    display_form: StrictStr = Field(alias="displayForm")

    def as_payload(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


__all__ = [
    "MAX_SYLLABLE_LENGTH",
    "MAX_USERNAME_LENGTH",
    "MIN_ATTEMPTS_FOR_STATS",
    "PronunciationRecord",
    "RecommendationResult",
    "SyllableStat",
    "ensure_utc",
]

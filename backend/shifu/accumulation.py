"""Fold practice attempts into per-user, per-syllable counters."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Tuple

from .errors import DuplicateRecordError, InvalidInputError, StoreUnavailableError
from .practice_store import PronunciationStore, pronunciation_store
from .pronunciation import MAX_SYLLABLE_LENGTH, MAX_USERNAME_LENGTH, PronunciationRecord, ensure_utc
from .telemetry import emit_event

logger = logging.getLogger(__name__)

RecordKey = Tuple[str, str]


@dataclass(frozen=True)
class AttemptAck:
    created: bool
    record: PronunciationRecord


class KeyedLocks:
    """Process-local lock registry; one lock per key, dropped when idle."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[RecordKey, threading.Lock] = {}
        self._waiters: Dict[RecordKey, int] = {}

    @contextmanager
    def hold(self, key: RecordKey) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._waiters[key] - 1
                if remaining:
                    self._waiters[key] = remaining
                else:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def require_identifier(value: Optional[str], field: str, max_length: Optional[int] = None) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{field} is required")
    if max_length is not None and len(value) > max_length:
        raise InvalidInputError(f"{field} must be at most {max_length} characters")
    return value


class AccumulationService:
    def __init__(self, store: Optional[PronunciationStore] = None, locks: Optional[KeyedLocks] = None) -> None:
        self._store = store or pronunciation_store
        self._locks = locks or KeyedLocks()

    def record_attempt(
        self,
        username: str,
        syllable: str,
        was_correct: bool,
        timestamp: Optional[datetime] = None,
    ) -> AttemptAck:
        username = require_identifier(username, "username", MAX_USERNAME_LENGTH)
        syllable = require_identifier(syllable, "syllable", MAX_SYLLABLE_LENGTH)
        observed_at = ensure_utc(timestamp) if timestamp else datetime.now(timezone.utc)

        with self._locks.hold((username, syllable)):
            ack = self._upsert(username, syllable, was_correct, observed_at)

        emit_event(
            "practice_attempt_recorded",
            username=username,
            syllable=syllable,
            correct=was_correct,
            created=ack.created,
            total_attempts=ack.record.total_attempts,
        )
        return ack

    def _upsert(self, username: str, syllable: str, correct: bool, timestamp: datetime) -> AttemptAck:
        existing = self._store.find_one(username, syllable)
        if existing is None:
            record = PronunciationRecord.first_attempt(username, syllable, correct=correct, timestamp=timestamp)
            try:
                return AttemptAck(created=True, record=self._store.insert_one(record))
            except DuplicateRecordError:
                # Another process inserted the key between our read and write.
                logger.info(
                    "Concurrent insert detected for username=%s syllable=%s; incrementing instead",
                    username,
                    syllable,
                )

        updated = self._store.increment(username, syllable, correct=correct, timestamp=timestamp)
        if updated is None:
            raise StoreUnavailableError(
                f"Practice record for {username}/{syllable} disappeared during update"
            )
        return AttemptAck(created=False, record=updated)


accumulation_service = AccumulationService()

__all__ = [
    "AccumulationService",
    "AttemptAck",
    "KeyedLocks",
    "accumulation_service",
    "require_identifier",
]

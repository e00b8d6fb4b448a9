"""Session-managing facade over the pronunciation record repository.

Every call opens its own ``session_scope`` so the shared engine is the only
state held between requests. Driver failures and engine configuration
errors are translated into ``StoreUnavailableError``; ``DuplicateRecordError``
passes through so the accumulation service can resolve insert races.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterator

from sqlalchemy.exc import SQLAlchemyError

from .db.session import session_scope
from .errors import ConfigurationError, StoreUnavailableError
from .pronunciation import PronunciationRecord

if TYPE_CHECKING:
    from .repositories.pronunciation_records import PronunciationRecordRepository

logger = logging.getLogger(__name__)


def _repo() -> "PronunciationRecordRepository":
    from .repositories.pronunciation_records import pronunciation_records as repository

    return repository


def _unavailable(action: str, exc: Exception) -> StoreUnavailableError:
    logger.error("Practice store %s failed: %s", action, exc)
    return StoreUnavailableError(f"Failed to {action} practice records: {exc}")


class PronunciationStore:
    def find(self, username: str) -> Iterator[PronunciationRecord]:
        """Lazily yield every record for ``username``."""
        try:
            with session_scope(commit=False) as session:
                yield from _repo().find(session, username)
        except (SQLAlchemyError, ConfigurationError) as exc:
            raise _unavailable("query", exc) from exc

    def find_one(self, username: str, syllable: str) -> PronunciationRecord | None:
        try:
            with session_scope(commit=False) as session:
                return _repo().find_one(session, username, syllable)
        except (SQLAlchemyError, ConfigurationError) as exc:
            raise _unavailable("query", exc) from exc

    def insert_one(self, record: PronunciationRecord) -> PronunciationRecord:
        try:
            with session_scope() as session:
                return _repo().insert_one(session, record)
        except (SQLAlchemyError, ConfigurationError) as exc:
            raise _unavailable("insert", exc) from exc

    def increment(
        self, username: str, syllable: str, *, correct: bool, timestamp: datetime
    ) -> PronunciationRecord | None:
        try:
            with session_scope() as session:
                return _repo().increment(session, username, syllable, correct=correct, timestamp=timestamp)
        except (SQLAlchemyError, ConfigurationError) as exc:
            raise _unavailable("update", exc) from exc

    def list_recent(self, username: str) -> list[PronunciationRecord]:
        try:
            with session_scope(commit=False) as session:
                return _repo().list_recent(session, username)
        except (SQLAlchemyError, ConfigurationError) as exc:
            raise _unavailable("query", exc) from exc


pronunciation_store = PronunciationStore()

__all__ = ["PronunciationStore", "pronunciation_store"]

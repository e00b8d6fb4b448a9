"""Database-backed pronunciation record repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import DateTime, case, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import PronunciationRecordModel
from ..errors import DuplicateRecordError
from ..pronunciation import PronunciationRecord, ensure_utc

FIND_BATCH_SIZE = 100


class PronunciationRecordRepository:
    """Document-style primitives over the ``pronunciation_records`` table."""

    def find(self, session: Session, username: str) -> Iterator[PronunciationRecord]:
        stmt = (
            select(PronunciationRecordModel)
            .where(PronunciationRecordModel.username == username)
            .execution_options(yield_per=FIND_BATCH_SIZE)
        )
        for model in session.execute(stmt).scalars():
            yield self._to_domain(model)

    def find_one(self, session: Session, username: str, syllable: str) -> PronunciationRecord | None:
        model = self._get_model(session, username, syllable)
        if model is None:
            return None
        return self._to_domain(model)

    def insert_one(self, session: Session, record: PronunciationRecord) -> PronunciationRecord:
        model = PronunciationRecordModel(
            username=record.username,
            syllable=record.syllable,
            correct_count=record.correct_count,
            incorrect_count=record.incorrect_count,
            last_updated=ensure_utc(record.last_updated),
        )
        session.add(model)
        try:
            session.flush()
        except IntegrityError as exc:
            raise DuplicateRecordError(
                f"Record already exists for username={record.username!r} syllable={record.syllable!r}"
            ) from exc
        return self._to_domain(model)

    def increment(
        self,
        session: Session,
        username: str,
        syllable: str,
        *,
        correct: bool,
        timestamp: datetime,
    ) -> PronunciationRecord | None:
        """Bump one counter in a single statement; ``None`` when no record matched."""
        counter = PronunciationRecordModel.correct_count if correct else PronunciationRecordModel.incorrect_count
        observed_at = literal(ensure_utc(timestamp), type_=DateTime(timezone=True))
        stmt = (
            update(PronunciationRecordModel)
            .where(
                PronunciationRecordModel.username == username,
                PronunciationRecordModel.syllable == syllable,
            )
            .values(
                {
                    counter: counter + 1,
                    PronunciationRecordModel.last_updated: case(
                        (PronunciationRecordModel.last_updated < observed_at, observed_at),
                        else_=PronunciationRecordModel.last_updated,
                    ),
                    PronunciationRecordModel.updated_at: datetime.now(timezone.utc),
                }
            )
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.find_one(session, username, syllable)

    def list_recent(self, session: Session, username: str) -> list[PronunciationRecord]:
        stmt = (
            select(PronunciationRecordModel)
            .where(PronunciationRecordModel.username == username)
            .order_by(PronunciationRecordModel.last_updated.desc(), PronunciationRecordModel.syllable.asc())
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def _get_model(self, session: Session, username: str, syllable: str) -> PronunciationRecordModel | None:
        stmt = (
            select(PronunciationRecordModel)
            .where(
                PronunciationRecordModel.username == username,
                PronunciationRecordModel.syllable == syllable,
            )
            .execution_options(populate_existing=True)
        )
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _to_domain(model: PronunciationRecordModel) -> PronunciationRecord:
        return PronunciationRecord(
            username=model.username,
            syllable=model.syllable,
            correct_count=model.correct_count,
            incorrect_count=model.incorrect_count,
            last_updated=ensure_utc(model.last_updated),
        )


pronunciation_records = PronunciationRecordRepository()

__all__ = ["FIND_BATCH_SIZE", "PronunciationRecordRepository", "pronunciation_records"]

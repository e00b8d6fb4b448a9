"""ORM models backing the practice store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..pronunciation import MAX_SYLLABLE_LENGTH, MAX_USERNAME_LENGTH
from .base import Base, TimestampMixin


class PronunciationRecordModel(TimestampMixin, Base):
    __tablename__ = "pronunciation_records"
    __table_args__ = (
        UniqueConstraint("username", "syllable", name="uq_pronunciation_user_syllable"),
        CheckConstraint("correct_count >= 0", name="ck_pronunciation_correct_nonnegative"),
        CheckConstraint("incorrect_count >= 0", name="ck_pronunciation_incorrect_nonnegative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(MAX_USERNAME_LENGTH), nullable=False, index=True)
    syllable: Mapped[str] = mapped_column(String(MAX_SYLLABLE_LENGTH), nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    incorrect_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


__all__ = ["PronunciationRecordModel"]

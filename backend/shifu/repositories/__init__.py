"""Session-level repositories for persisted practice data."""

from .pronunciation_records import PronunciationRecordRepository, pronunciation_records

__all__ = ["PronunciationRecordRepository", "pronunciation_records"]

"""Practice endpoints consumed by the pronunciation trainer frontend."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from .accumulation import AccumulationService, accumulation_service, require_identifier
from .practice_store import PronunciationStore, pronunciation_store
from .pronunciation import MAX_USERNAME_LENGTH, PronunciationRecord
from .recommendation_client import RecommendationClient, get_recommendation_client
from .stats_aggregator import StatsAggregator, stats_aggregator

router = APIRouter(prefix="/api/v0", tags=["practice"])
logger = logging.getLogger(__name__)


class PracticeAttemptRequest(BaseModel):
    syllable: str = Field(default="", validation_alias=AliasChoices("syllable", "pinyin"))
    correct: bool = False
    timestamp: Optional[datetime] = None


def get_accumulation_service() -> AccumulationService:
    return accumulation_service


def get_stats_aggregator() -> StatsAggregator:
    return stats_aggregator


def get_pronunciation_store() -> PronunciationStore:
    return pronunciation_store


def _record_payload(record: PronunciationRecord) -> Dict[str, Any]:
    return {
        "syllable": record.syllable,
        "correct": record.correct_count,
        "incorrect": record.incorrect_count,
        "total_attempts": record.total_attempts,
        "last_updated": record.last_updated.isoformat(),
    }


@router.post("/pronounce")
def record_pronunciation_attempt(
    payload: PracticeAttemptRequest,
    username: Optional[str] = Header(default=None),
    service: AccumulationService = Depends(get_accumulation_service),
) -> JSONResponse:
    username = require_identifier(username, "username", MAX_USERNAME_LENGTH)
    ack = service.record_attempt(username, payload.syllable, payload.correct, payload.timestamp)
    if ack.created:
        status_code = status.HTTP_201_CREATED
        message = "Pronounce inserted successfully"
    else:
        status_code = status.HTTP_200_OK
        message = "Pronounce updated successfully"
    return JSONResponse(
        status_code=status_code,
        content={"result": "success", "message": message, "record": _record_payload(ack.record)},
    )


@router.get("/pronounce")
def list_pronunciation_records(
    username: Optional[str] = Header(default=None),
    store: PronunciationStore = Depends(get_pronunciation_store),
) -> Dict[str, Any]:
    username = require_identifier(username, "username", MAX_USERNAME_LENGTH)
    records = store.list_recent(username)
    return {
        "result": "success",
        "count": len(records),
        "records": [_record_payload(record) for record in records],
    }


@router.get("/pinyin/recommend")
def recommend_next_syllable(
    username: Optional[str] = Header(default=None),
    aggregator: StatsAggregator = Depends(get_stats_aggregator),
    client: RecommendationClient = Depends(get_recommendation_client),
) -> Dict[str, Any]:
    username = require_identifier(username, "username", MAX_USERNAME_LENGTH)
    stats = aggregator.collect_stats(username)
    recommendation = client.recommend(stats)
    logger.info(
        "Recommended %s for username=%s from %s syllable stats",
        recommendation.syllable,
        username,
        len(stats),
    )
    return {
        "result": "success",
        "stats": [stat.model_dump(mode="json") for stat in stats],
        "recommendation": recommendation.as_payload(),
    }


__all__ = [
    "PracticeAttemptRequest",
    "get_accumulation_service",
    "get_pronunciation_store",
    "get_stats_aggregator",
    "router",
]

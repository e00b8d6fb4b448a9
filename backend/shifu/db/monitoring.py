"""Connection pool counters for the shared practice-store engine."""

from __future__ import annotations

import os
import time
from collections import Counter
from typing import Dict

from sqlalchemy import event
from sqlalchemy.engine import Engine

from ..telemetry import emit_event

_POOL_EVENTS = ("connect", "checkout", "checkin")
_TELEMETRY_INTERVAL = float(os.getenv("SHIFU_DB_TELEMETRY_INTERVAL", "30"))


class PoolCounters:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self.counts: Counter[str] = Counter()
        self.last_emit = 0.0

    def observe(self, pool_event: str) -> None:
        self.counts[pool_event] += 1
        now = time.time()
        if _TELEMETRY_INTERVAL > 0 and now - self.last_emit < _TELEMETRY_INTERVAL:
            return
        self.last_emit = now
        emit_event("db_pool_status", event=f"db_pool_{pool_event}", **self.snapshot())

    def snapshot(self) -> Dict[str, object]:
        return {
            "status": pool_status(self._engine),
            "connects": self.counts["connect"],
            "checkouts": self.counts["checkout"],
            "checkins": self.counts["checkin"],
        }


_COUNTERS: Dict[int, PoolCounters] = {}


def instrument_engine(engine: Engine) -> None:
    """Count pool connects/checkouts/checkins and emit periodic snapshots."""
    if id(engine) in _COUNTERS:
        return
    counters = PoolCounters(engine)
    _COUNTERS[id(engine)] = counters

    for pool_event in _POOL_EVENTS:
        event.listen(engine, pool_event, _listener(counters, pool_event))


def _listener(counters: PoolCounters, pool_event: str):  # type: ignore[no-untyped-def]
    def _on_event(*_args: object) -> None:
        counters.observe(pool_event)

    return _on_event


def get_pool_snapshot(engine: Engine) -> Dict[str, object]:
    counters = _COUNTERS.get(id(engine))
    if counters is None:
        return {"status": pool_status(engine), "connects": 0, "checkouts": 0, "checkins": 0}
    return counters.snapshot()


def forget_engine(engine: Engine) -> None:
    _COUNTERS.pop(id(engine), None)


def pool_status(engine: Engine) -> str:
    try:
        return engine.pool.status()  # type: ignore[no-untyped-call]
    except Exception as exc:  # pragma: no cover - pool without status support
        return f"unavailable: {exc}"


__all__ = [
    "PoolCounters",
    "forget_engine",
    "get_pool_snapshot",
    "instrument_engine",
    "pool_status",
]

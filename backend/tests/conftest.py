from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy.engine import Engine

os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("SHIFU_DATABASE_URL", "sqlite://")

from shifu.config import get_settings  # noqa: E402
from shifu.db.base import Base  # noqa: E402
from shifu.db.session import dispose_engine, get_engine  # noqa: E402
from shifu.recommendation_client import get_recommendation_client  # noqa: E402
from shifu.telemetry import clear_listeners  # noqa: E402


@pytest.fixture
def practice_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Engine]:
    db_path = tmp_path / "shifu.db"
    monkeypatch.setenv("SHIFU_DATABASE_URL", f"sqlite:///{db_path}")
    get_settings.cache_clear()
    get_recommendation_client.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    dispose_engine()
    get_settings.cache_clear()
    get_recommendation_client.cache_clear()


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Iterator[None]:
    yield
    clear_listeners()

"""Bring the practice store schema up to date.

``python -m scripts.run_migrations [revision]`` from ``backend/`` waits until
the database answers, then runs ``alembic upgrade``. It migrates the same
database the API uses (``Settings.resolved_database_url``).
"""

from __future__ import annotations

import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from shifu.config import get_settings
from shifu.logging_config import configure_logging

logger = logging.getLogger("shifu.migrations")

BACKEND_ROOT = Path(__file__).resolve().parent.parent
READY_TIMEOUT_SECONDS = float(os.getenv("SHIFU_DB_READY_TIMEOUT", "60"))
READY_POLL_SECONDS = 2.0


def alembic_config(database_url: str) -> Config:
    config = Config(str(BACKEND_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    # ConfigParser interpolation would otherwise eat percent-encoded credentials.
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


def wait_until_ready(database_url: str, *, timeout: float = READY_TIMEOUT_SECONDS) -> None:
    engine = create_engine(database_url, pool_pre_ping=True)
    deadline = time.monotonic() + timeout
    try:
        while True:
            try:
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                return
            except OperationalError as exc:
                if time.monotonic() >= deadline:
                    raise RuntimeError(f"Practice store unreachable after {timeout:g}s") from exc
                logger.warning("Practice store not ready yet: %s", exc.orig)
                time.sleep(READY_POLL_SECONDS)
    finally:
        engine.dispose()


def upgrade(
    revision: str = "head",
    *,
    database_url: Optional[str] = None,
    timeout: float = READY_TIMEOUT_SECONDS,
) -> None:
    database_url = database_url or get_settings().resolved_database_url
    wait_until_ready(database_url, timeout=timeout)
    command.upgrade(alembic_config(database_url), revision)
    logger.info("Practice store schema upgraded to %s", revision)


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging()
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        upgrade(args[0] if args else "head")
    except (RuntimeError, SQLAlchemyError, CommandError) as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""SQLite engine policy and timestamp helpers shared by the stores."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def to_utc_aware_datetime(value: datetime) -> datetime:
    """SQLite hands back naive timestamps; treat them as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def build_sqlite_engine(*, db_path: Path, busy_timeout_ms: int = 5_000) -> Engine:
    """Unpooled engine for one SQLite file, shared by worker threads."""

    db_path.parent.mkdir(parents=True, exist_ok=True)
    busy_timeout_ms = max(1, busy_timeout_ms)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": max(1.0, busy_timeout_ms / 1000)},
        poolclass=NullPool,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for pragma in (*SQLITE_PRAGMAS, f"PRAGMA busy_timeout = {busy_timeout_ms}"):
                cursor.execute(pragma)
        finally:
            cursor.close()

    return engine

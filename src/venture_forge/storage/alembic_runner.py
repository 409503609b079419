"""Programmatic Alembic upgrades for the startup record database."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def alembic_config(db_path: Path) -> Config:
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return config


def current_revision(db_path: Path) -> str | None:
    """Revision stamped in the database, ``None`` for an empty file."""

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as connection:
            return MigrationContext.configure(connection).get_current_revision()
    finally:
        engine.dispose()


def upgrade_head(db_path: Path) -> None:
    """Bring the schema to the latest revision; no-op when it is already there."""

    config = alembic_config(db_path)
    head = ScriptDirectory.from_config(config).get_current_head()
    current = current_revision(db_path)
    if current == head:
        return
    logger.info("Migrating %s from %s to %s", db_path, current or "empty", head)
    command.upgrade(config, "head")

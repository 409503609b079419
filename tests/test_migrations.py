import sqlite3
from pathlib import Path

import allure

from venture_forge.orchestrator.repository import StartupRepository
from venture_forge.storage.alembic_runner import current_revision

pytestmark = [
    allure.epic("Startup Records"),
    allure.feature("Persistence"),
]


def test_alembic_schema_is_initialized_to_head(tmp_path: Path) -> None:
    db_path = tmp_path / "migrations.db"
    repository = StartupRepository(db_path)
    assert current_revision(db_path) is None
    repository.init_schema()
    repository.init_schema()
    repository.close()
    assert current_revision(db_path) == "20261019_0001"

    connection = sqlite3.connect(db_path)
    try:
        version = connection.execute("SELECT version_num FROM alembic_version").fetchall()
        assert version == [("20261019_0001",)]

        user = connection.execute(
            "SELECT user_id FROM users WHERE user_id = 'default_user'"
        ).fetchone()
        assert user is not None

        tables = connection.execute(
            """
            SELECT name
            FROM sqlite_master
            WHERE type = 'table'
              AND name IN ('startups', 'startup_artifacts', 'api_key_pool_states',
                           'task_run_events')
            ORDER BY name
            """
        ).fetchall()
        assert [row[0] for row in tables] == [
            "api_key_pool_states",
            "startup_artifacts",
            "startups",
            "task_run_events",
        ]
    finally:
        connection.close()

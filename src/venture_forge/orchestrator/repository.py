"""Startup record store backed by SQLModel + SQLite."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from pathlib import Path
from uuid import uuid4

from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from venture_forge.errors import RecordNotFound
from venture_forge.orchestrator.models import (
    ArtifactView,
    ArtifactWrite,
    StartupCreate,
    StartupView,
    TaskRunEventView,
    TaskRunEventWrite,
    TaskRunStatus,
)
from venture_forge.storage.alembic_runner import upgrade_head
from venture_forge.storage.common import build_sqlite_engine, to_utc_aware_datetime, utc_now
from venture_forge.storage.sqlmodel_models import (
    DEFAULT_USER_ID,
    AppUser,
    Startup,
    StartupArtifact,
    TaskRunEvent,
)

logger = logging.getLogger(__name__)


class StartupRepository:
    """Record store facade scoped to one verified user.

    Every read and write filters by ``user_id``; a startup owned by someone
    else is indistinguishable from a missing one.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        user_id: str = DEFAULT_USER_ID,
        user_name: str = "Default User",
        sqlite_busy_timeout_ms: int = 5_000,
    ) -> None:
        self.db_path = db_path
        self.user_id = user_id
        self.user_name = user_name
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations and ensure actor context exists."""

        upgrade_head(self.db_path)
        self._ensure_actor_context()

    def _ensure_actor_context(self) -> None:
        with Session(self.engine) as session:
            user = session.exec(
                select(AppUser).where(AppUser.user_id == self.user_id),
            ).one_or_none()
            if user is not None:
                return
            session.add(
                AppUser(
                    user_id=self.user_id,
                    display_name=self.user_name,
                    created_at=utc_now(),
                ),
            )
            session.commit()

    def create_startup(self, payload: StartupCreate) -> StartupView:
        name = payload.name.strip()
        idea = payload.idea.strip()
        if not name:
            raise ValueError("Startup name must not be empty")
        if not idea:
            raise ValueError("Startup idea must not be empty")

        now = utc_now()
        with Session(self.engine) as session:
            row = Startup(
                startup_id=payload.startup_id or str(uuid4()),
                user_id=self.user_id,
                name=name,
                idea=idea,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.info("Created startup %s (%s)", row.startup_id, row.name)
            return _to_startup_view(row, [])

    def get_startup(self, startup_id: str) -> StartupView:
        """Point read with every present artifact; raises ``RecordNotFound``."""

        with Session(self.engine) as session:
            row = self._owned_startup(session, startup_id)
            artifacts = session.exec(
                select(StartupArtifact).where(StartupArtifact.startup_id == startup_id),
            ).all()
            return _to_startup_view(row, artifacts)

    def list_startups(self, *, limit: int = 50) -> list[StartupView]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(Startup)
                .where(Startup.user_id == self.user_id)
                .order_by(col(Startup.created_at).desc(), col(Startup.startup_id).asc())
                .limit(max(1, limit)),
            ).all()
            if not rows:
                return []
            artifacts_by_startup: dict[str, list[StartupArtifact]] = defaultdict(list)
            for artifact in session.exec(
                select(StartupArtifact).where(
                    col(StartupArtifact.startup_id).in_([row.startup_id for row in rows]),
                ),
            ).all():
                artifacts_by_startup[artifact.startup_id].append(artifact)
            return [
                _to_startup_view(row, artifacts_by_startup[row.startup_id]) for row in rows
            ]

    def patch_artifacts(self, startup_id: str, writes: Sequence[ArtifactWrite]) -> None:
        """Atomically write the given fields; overwriting clears a stale evaluation URL."""

        if not writes:
            return
        now = utc_now()
        with Session(self.engine) as session:
            startup = self._owned_startup(session, startup_id)
            for write in writes:
                row = session.get(StartupArtifact, (startup_id, write.field))
                if row is None:
                    session.add(
                        StartupArtifact(
                            startup_id=startup_id,
                            field=write.field,
                            task_id=write.task_id,
                            value=write.value,
                            evaluation_url=None,
                            created_at=now,
                            updated_at=now,
                        ),
                    )
                    continue
                row.task_id = write.task_id
                row.value = write.value
                row.evaluation_url = None
                row.updated_at = now
                session.add(row)
            startup.updated_at = now
            session.add(startup)
            session.commit()

    def set_evaluation_url(
        self,
        startup_id: str,
        field: str,
        url: str,
        *,
        written_value: str,
    ) -> bool:
        """Attach ``url`` only while the artifact still holds ``written_value``.

        Returns ``False`` when a newer write replaced the scored value.
        """

        with Session(self.engine) as session:
            self._owned_startup(session, startup_id)
            result = session.exec(
                sa_update(StartupArtifact)
                .where(
                    col(StartupArtifact.startup_id) == startup_id,
                    col(StartupArtifact.field) == field,
                    col(StartupArtifact.value) == written_value,
                )
                .values(evaluation_url=url, updated_at=utc_now()),
            )
            if result.rowcount != 1:
                session.rollback()
                logger.info(
                    "Evaluation URL for %s/%s superseded by a newer artifact write",
                    startup_id,
                    field,
                )
                return False
            session.commit()
            return True

    def add_task_run_event(self, payload: TaskRunEventWrite) -> None:
        with Session(self.engine) as session:
            session.add(
                TaskRunEvent(
                    startup_id=payload.startup_id,
                    user_id=self.user_id,
                    task_id=payload.task_id,
                    status=payload.status.value,
                    forced=payload.forced,
                    reason=payload.reason,
                    duration_ms=payload.duration_ms,
                    created_at=utc_now(),
                ),
            )
            session.commit()

    def list_task_run_events(
        self,
        *,
        startup_id: str | None = None,
        task_id: str | None = None,
        limit: int = 50,
    ) -> list[TaskRunEventView]:
        with Session(self.engine) as session:
            statement = select(TaskRunEvent).where(TaskRunEvent.user_id == self.user_id)
            if startup_id is not None:
                statement = statement.where(TaskRunEvent.startup_id == startup_id)
            if task_id is not None:
                statement = statement.where(TaskRunEvent.task_id == task_id)
            rows = session.exec(
                statement.order_by(
                    col(TaskRunEvent.created_at).desc(),
                    col(TaskRunEvent.id).desc(),
                ).limit(max(1, limit)),
            ).all()
        return [
            TaskRunEventView(
                event_id=int(row.id or 0),
                startup_id=row.startup_id,
                task_id=row.task_id,
                status=TaskRunStatus(row.status),
                forced=row.forced,
                reason=row.reason,
                duration_ms=row.duration_ms,
                created_at=to_utc_aware_datetime(row.created_at),
            )
            for row in rows
        ]

    def _owned_startup(self, session: Session, startup_id: str) -> Startup:
        row = session.get(Startup, startup_id)
        if row is None or row.user_id != self.user_id:
            raise RecordNotFound(startup_id)
        return row


def _to_startup_view(row: Startup, artifacts: Sequence[StartupArtifact]) -> StartupView:
    return StartupView(
        startup_id=row.startup_id,
        user_id=row.user_id,
        name=row.name,
        idea=row.idea,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
        artifacts={
            artifact.field: ArtifactView(
                field=artifact.field,
                task_id=artifact.task_id,
                value=artifact.value,
                evaluation_url=artifact.evaluation_url,
                updated_at=to_utc_aware_datetime(artifact.updated_at),
            )
            for artifact in artifacts
        },
    )

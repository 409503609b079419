"""SQLModel ORM tables for startup records, key pools and task audit."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, PrimaryKeyConstraint, Text
from sqlmodel import Field, SQLModel

DEFAULT_USER_ID = "default_user"


class AppUser(SQLModel, table=True):
    __tablename__ = "users"  # type: ignore[bad-override]

    user_id: str = Field(primary_key=True, index=True)
    display_name: str = Field(index=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Startup(SQLModel, table=True):
    __tablename__ = "startups"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_startups_owner_time", "user_id", "created_at"),)

    startup_id: str = Field(primary_key=True)
    user_id: str = Field(
        default=DEFAULT_USER_ID,
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            server_default=DEFAULT_USER_ID,
            index=True,
        ),
    )
    name: str
    idea: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class StartupArtifact(SQLModel, table=True):
    """One present artifact field of a startup record."""

    __tablename__ = "startup_artifacts"  # type: ignore[bad-override]
    __table_args__ = (PrimaryKeyConstraint("startup_id", "field", name="pk_startup_artifacts"),)

    startup_id: str = Field(
        sa_column=Column(
            ForeignKey("startups.startup_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    field: str
    task_id: str
    value: str = Field(sa_column=Column(Text, nullable=False))
    evaluation_url: str | None = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ApiKeyPoolState(SQLModel, table=True):
    """Persisted rotation cursor for one provider key pool."""

    __tablename__ = "api_key_pool_states"  # type: ignore[bad-override]

    service: str = Field(primary_key=True)
    key_index: int = Field(default=0)
    rotations: int = Field(default=0)
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class TaskRunEvent(SQLModel, table=True):
    __tablename__ = "task_run_events"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_task_run_events_startup_time", "startup_id", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    startup_id: str = Field(
        sa_column=Column(
            ForeignKey("startups.startup_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    user_id: str = Field(index=True)
    task_id: str = Field(index=True)
    status: str = Field(index=True)
    forced: bool = Field(default=False)
    reason: str | None = Field(default=None, sa_column=Column(Text))
    duration_ms: int | None = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))

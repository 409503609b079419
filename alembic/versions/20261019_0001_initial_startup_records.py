"""Initial schema: users, startup records, artifacts, key pools, task audit."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_users_user_id", "users", ["user_id"])
    op.create_index("ix_users_display_name", "users", ["display_name"])

    op.create_table(
        "startups",
        sa.Column("startup_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), server_default="default_user", nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("idea", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("startup_id"),
    )
    op.create_index("ix_startups_user_id", "startups", ["user_id"])
    op.create_index("idx_startups_owner_time", "startups", ["user_id", "created_at"])

    op.create_table(
        "startup_artifacts",
        sa.Column("startup_id", sa.String(), nullable=False),
        sa.Column("field", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("evaluation_url", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["startup_id"], ["startups.startup_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("startup_id", "field", name="pk_startup_artifacts"),
    )

    op.create_table(
        "api_key_pool_states",
        sa.Column("service", sa.String(), nullable=False),
        sa.Column("key_index", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("rotations", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("service"),
    )

    op.create_table(
        "task_run_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("startup_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("forced", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["startup_id"], ["startups.startup_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_run_events_user_id", "task_run_events", ["user_id"])
    op.create_index("ix_task_run_events_task_id", "task_run_events", ["task_id"])
    op.create_index("ix_task_run_events_status", "task_run_events", ["status"])
    op.create_index(
        "idx_task_run_events_startup_time",
        "task_run_events",
        ["startup_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_task_run_events_startup_time", table_name="task_run_events")
    op.drop_index("ix_task_run_events_status", table_name="task_run_events")
    op.drop_index("ix_task_run_events_task_id", table_name="task_run_events")
    op.drop_index("ix_task_run_events_user_id", table_name="task_run_events")
    op.drop_table("task_run_events")
    op.drop_table("api_key_pool_states")
    op.drop_table("startup_artifacts")
    op.drop_index("idx_startups_owner_time", table_name="startups")
    op.drop_index("ix_startups_user_id", table_name="startups")
    op.drop_table("startups")
    op.drop_index("ix_users_display_name", table_name="users")
    op.drop_index("ix_users_user_id", table_name="users")
    op.drop_table("users")

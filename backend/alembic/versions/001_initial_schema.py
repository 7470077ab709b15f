"""initial schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "migrations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("project_name", sa.String(500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_migrations_user_id", "migrations", ["user_id"])
    op.create_index("ix_migrations_created_at", "migrations", ["created_at"])

    op.create_table(
        "migration_files",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "migration_id", sa.String(36),
            sa.ForeignKey("migrations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("file_name", sa.String(500), nullable=False),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("file_type", sa.String(20), nullable=False),
        sa.Column("original_content", sa.Text, nullable=False),
        sa.Column("converted_content", sa.Text, nullable=True),
        sa.Column("conversion_status", sa.String(20), nullable=False),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("data_type_mapping", sa.JSON, nullable=True),
        sa.Column("performance_metrics", sa.JSON, nullable=True),
        sa.Column("issues", sa.JSON, nullable=True),
        sa.Column("deployment_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_migration_files_migration_id", "migration_files", ["migration_id"])

    op.create_table(
        "deployment_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "migration_id", sa.String(36),
            sa.ForeignKey("migrations.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("lines_of_sql", sa.Integer, nullable=False),
        sa.Column("file_count", sa.Integer, nullable=False),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_deployment_logs_user_id", "deployment_logs", ["user_id"])
    op.create_index("ix_deployment_logs_migration_id", "deployment_logs", ["migration_id"])


def downgrade() -> None:
    op.drop_table("deployment_logs")
    op.drop_table("migration_files")
    op.drop_table("migrations")
    op.drop_table("users")

"""Create users and 24-hour status tables with views, reactions and comments."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql as psql

# revision identifiers, used by Alembic.
revision: str = "20261019_create_status_tables"
down_revision: str | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("display_name", sa.String(length=150), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "statuses",
        sa.Column("id", psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", psql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status_type", sa.String(length=20), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("media_type", sa.String(length=100), nullable=True),
        sa.Column("background_color", sa.String(length=7), nullable=False, server_default="#1a1f3a"),
        sa.Column("views_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reactions_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comments_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("status_type IN ('text', 'image', 'video')", name="ck_statuses_status_type"),
        sa.CheckConstraint(
            "views_count >= 0 AND reactions_count >= 0 AND comments_count >= 0",
            name="ck_statuses_counts",
        ),
    )
    op.create_index("ix_statuses_user_id", "statuses", ["user_id"])
    op.create_index("ix_statuses_expires_at", "statuses", ["expires_at"])

    op.create_table(
        "status_views",
        sa.Column("id", psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("status_id", psql.UUID(as_uuid=True), sa.ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", psql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("viewed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("status_id", "user_id", name="uq_status_views_status_user"),
    )
    op.create_index("ix_status_views_status_id", "status_views", ["status_id"])
    op.create_index("ix_status_views_user_id", "status_views", ["user_id"])

    op.create_table(
        "status_reactions",
        sa.Column("id", psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("status_id", psql.UUID(as_uuid=True), sa.ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", psql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("emoji", sa.String(length=10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("status_id", "user_id", name="uq_status_reactions_status_user"),
    )
    op.create_index("ix_status_reactions_status_id", "status_reactions", ["status_id"])
    op.create_index("ix_status_reactions_user_id", "status_reactions", ["user_id"])

    op.create_table(
        "status_comments",
        sa.Column("id", psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("status_id", psql.UUID(as_uuid=True), sa.ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", psql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_status_comments_status_id", "status_comments", ["status_id"])
    op.create_index("ix_status_comments_user_id", "status_comments", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_status_comments_user_id", table_name="status_comments")
    op.drop_index("ix_status_comments_status_id", table_name="status_comments")
    op.drop_table("status_comments")
    op.drop_index("ix_status_reactions_user_id", table_name="status_reactions")
    op.drop_index("ix_status_reactions_status_id", table_name="status_reactions")
    op.drop_table("status_reactions")
    op.drop_index("ix_status_views_user_id", table_name="status_views")
    op.drop_index("ix_status_views_status_id", table_name="status_views")
    op.drop_table("status_views")
    op.drop_index("ix_statuses_expires_at", table_name="statuses")
    op.drop_index("ix_statuses_user_id", table_name="statuses")
    op.drop_table("statuses")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")

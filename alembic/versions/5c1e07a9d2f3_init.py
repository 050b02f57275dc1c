"""init

Revision ID: 5c1e07a9d2f3
Revises:
Create Date: 2026-10-17 10:42:18.318204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e07a9d2f3"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("login_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(512), nullable=True),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_users_login_name", "users", ["login_name"], unique=True)
    op.create_index("idx_users_email", "users", ["email"], unique=True)

    # Reachable on `{slug}.{console domain}`, and on `custom_domain` once verified
    op.create_table(
        "communities",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("name", sa.String(512), nullable=False),
        sa.Column("slug", sa.String(64), nullable=False),
        sa.Column("custom_domain", sa.String(253), nullable=True),
        sa.Column("domain_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_communities_slug", "communities", ["slug"], unique=True)
    op.create_index(
        "idx_communities_custom_domain", "communities", ["custom_domain"], unique=True
    )

    # `community_id` is null for console sessions
    op.create_table(
        "sessions",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "community_id",
            sa.String(26),
            sa.ForeignKey("communities.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_sessions_token", "sessions", ["token"], unique=True)
    op.create_index("idx_sessions_user_id", "sessions", ["user_id"])
    op.create_index("idx_sessions_expires_at", "sessions", ["expires_at"])

    op.create_table(
        "exchange_tokens",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_domain", sa.String(253), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "idx_exchange_tokens_token", "exchange_tokens", ["token"], unique=True
    )
    op.create_index(
        "idx_exchange_tokens_expires_at", "exchange_tokens", ["expires_at"]
    )


def downgrade() -> None:
    op.drop_table("exchange_tokens")
    op.drop_table("sessions")
    op.drop_table("communities")
    op.drop_table("users")

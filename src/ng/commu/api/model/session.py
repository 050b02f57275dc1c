"""Session and exchange-token models.

Sessions are opaque bearer credentials, optionally scoped to a single community.
Exchange tokens are short-lived, single-use credentials that carry an identity
from the console domain to one community domain.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ng.commu.api.model.base import Base, str64, ulidpk, timestamp


class Session(Base):
    """Login session.

    `community_id` is null for console sessions. It is fixed at creation and
    sessions are never updated, only created and deleted.
    """
    __tablename__ = "sessions"

    id: Mapped[ulidpk]
    token: Mapped[str64] = mapped_column(unique=True)
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id"), nullable=False
    )
    community_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("communities.id"), nullable=True
    )
    created_at: Mapped[timestamp]
    expires_at: Mapped[timestamp]

    __table_args__ = (
        Index("idx_sessions_user_id", "user_id"),
        Index("idx_sessions_expires_at", "expires_at"),
    )


class ExchangeToken(Base):
    """One-time SSO hand-off credential bound to a user and a target hostname."""
    __tablename__ = "exchange_tokens"

    id: Mapped[ulidpk]
    token: Mapped[str64] = mapped_column(unique=True)
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id"), nullable=False
    )
    target_domain: Mapped[str] = mapped_column(String(253), nullable=False)
    created_at: Mapped[timestamp]
    expires_at: Mapped[timestamp]
    consumed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("idx_exchange_tokens_expires_at", "expires_at"),)

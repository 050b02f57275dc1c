"""Console account model.

A user owns one console-level account; per-community personas (profiles) live
elsewhere and are out of scope for the authentication service.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ng.commu.api.model.base import Base, str128, ulidpk, timestamp


class User(Base):
    """Console account with bcrypt password credentials.

    Soft-deleted users keep their row but can neither log in nor authenticate
    with a session minted before the deletion.
    """
    __tablename__ = "users"

    id: Mapped[ulidpk]
    login_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[Optional[str]] = mapped_column(String(512), nullable=True, unique=True)
    password_hash: Mapped[str128]
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[timestamp]
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

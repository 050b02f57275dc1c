"""Community ("커뮤") tenant model and domain helpers."""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ng.commu.api.model.base import Base, str512, ulidpk, timestamp


class Community(Base):
    """A tenant instance addressed by `{slug}.{console domain}` or a verified custom domain."""
    __tablename__ = "communities"

    id: Mapped[ulidpk]
    name: Mapped[str512]
    slug: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    custom_domain: Mapped[Optional[str]] = mapped_column(
        String(253), nullable=True, unique=True
    )
    domain_verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[timestamp]
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


def normalize_domain(domain: str) -> str:
    return domain.strip().rstrip(".").lower()

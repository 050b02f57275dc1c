from datetime import datetime, timezone

from sqlalchemy import DateTime, String, orm
from sqlalchemy.orm import mapped_column
from ulid import ULID

from typing_extensions import Annotated

str64 = Annotated[str, 64]
str128 = Annotated[str, 128]
str512 = Annotated[str, 512]
ulidpk = Annotated[str, mapped_column(String(26), primary_key=True)]
timestamp = Annotated[datetime, mapped_column(DateTime(timezone=True), nullable=False)]


class Base(orm.DeclarativeBase):
    type_annotation_map = {
        str64: String(64),
        str128: String(128),
        str512: String(512),
        ulidpk: String(26),
    }


def new_id() -> str:
    return str(ULID())


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from backends that drop tzinfo (SQLite)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

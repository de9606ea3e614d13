"""커스텀 SQLAlchemy 컬럼 타입.

Custom SQLAlchemy column types shared by the attendance and schedule models.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB


class TZDateTime(TypeDecorator):
    """UTC로 정규화된 timezone-aware 시각 컬럼.

    Timezone-aware timestamp column. Values are normalised to UTC on the way
    in and always come back aware, including on SQLite which has no native
    timezone support. Naive datetimes are rejected so local wall-clock
    values can never be stored by accident.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError("TZDateTime requires a timezone-aware datetime")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# JSON 문서 컬럼 — JSONB on PostgreSQL, plain JSON elsewhere
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    """created_at/updated_at 기본값 (Default factory for audit timestamps)."""
    return datetime.now(timezone.utc)

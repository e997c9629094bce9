"""Table metadata for the library database."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import Any, Final, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)

NAMING_CONVENTION: Final[dict[str, str]] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

UUIDColumnType = Uuid[uuid.UUID]
SCHEDULE_STATE_ROW_ID: Final = 1


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """Ordered list of strings stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: list[str] | tuple[str, ...] | None, dialect: Dialect
    ) -> str:
        _ = dialect
        return json.dumps([str(item) for item in value or ()])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if not value:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        return [item for item in cast(list[Any], loaded) if isinstance(item, str)]


class StringMapType(TypeDecorator[dict[str, str]]):
    """String-to-string mapping stored as a JSON object with sorted keys."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps({str(k): str(v) for k, v in (value or {}).items()}, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, str]:
        _ = dialect
        if not value:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        items = cast(dict[Any, Any], loaded)
        return {str(k): str(v) for k, v in items.items() if isinstance(v, str)}


paper_table = Table(
    "paper",
    metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("title", String(1024), nullable=False, default=""),
    Column("venue", String(512), nullable=False, default=""),
    Column("year", Integer, nullable=True),
    Column("authors", StringListType(), nullable=False),
    Column("identifiers", StringMapType(), nullable=False),
    Column("main_path", String(2048), nullable=True),
    Column("supplementary_paths", StringListType(), nullable=False),
    Column("flagged", Boolean, nullable=False, default=False),
    Column("note", Text, nullable=False, default=""),
    Column("file_hash", String(64), nullable=True),
    Column("added_at", UTCDateTime(), nullable=False),
    Index("ix_paper_added_at", "added_at"),
    Index("ix_paper_venue", "venue"),
)

categorizer_table = Table(
    "categorizer",
    metadata,
    Column("id", String(320), primary_key=True),
    Column("kind", String(16), nullable=False),
    Column("name", String(300), nullable=False),
    Column("count", Integer, nullable=False, default=0),
    UniqueConstraint("kind", "name"),
)

paper_categorizer_table = Table(
    "paper_categorizer",
    metadata,
    Column(
        "paper_id",
        UUIDColumnType,
        ForeignKey("paper.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("kind", String(16), primary_key=True),
    Column("name", String(300), primary_key=True),
    Index("ix_paper_categorizer_kind_name", "kind", "name"),
)

schedule_state_table = Table(
    "schedule_state",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("last_run_at", UTCDateTime(), nullable=True),
    Column("interval_days", Float, nullable=True),
)

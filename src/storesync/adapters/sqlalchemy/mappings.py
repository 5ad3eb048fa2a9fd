"""SQLAlchemy table metadata for persisted flat records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


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


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

flat_record_table = Table(
    "flat_record",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("collection", String, nullable=False, index=True),
    Column("date", String, nullable=False),
    Column("store", String, nullable=False),
    Column("supplier", String, nullable=True),
    Column("category", String, nullable=True),
    Column("item_name", String, nullable=True),
    Column("cost", Float, nullable=True),
    Column("amount", Float, nullable=True),
    Column("extra", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("version", Integer, nullable=False, default=1),
    Index("ix_flat_record_collection_date_store", "collection", "date", "store"),
)

# Columns that a ``FlatRecord`` field maps onto one-to-one.
RECORD_COLUMNS: tuple[str, ...] = (
    "date",
    "store",
    "supplier",
    "category",
    "item_name",
    "cost",
    "amount",
)


def create_all_tables(engine: Engine) -> None:
    metadata.create_all(engine)

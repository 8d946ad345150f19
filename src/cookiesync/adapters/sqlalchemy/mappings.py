"""SQLAlchemy table metadata for the synchronized store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, Dialect, MetaData, String, Table, Text, TypeDecorator

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData()


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


# One row per storage key; ``version`` changes on every write so that replicas
# polling the table can tell their own writes from other devices' writes.
synced_items_table = Table(
    "synced_items",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("version", String(32), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the store metadata."""

    log.info("Creating synchronized store tables")
    metadata.create_all(engine, checkfirst=True)

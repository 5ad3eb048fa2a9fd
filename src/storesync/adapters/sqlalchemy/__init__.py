"""SQLAlchemy adapter package for storesync."""

from __future__ import annotations

from .mappings import create_all_tables, flat_record_table, metadata
from .repositories import SqlAlchemyRecordRepositories, SqlAlchemyRecordRepository
from .unit_of_work import (
    SqlAlchemyRecordUnitOfWork,
    StartupError,
    configured_engine,
    enable_sqlite_savepoints,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyRecordRepositories",
    "SqlAlchemyRecordRepository",
    "SqlAlchemyRecordUnitOfWork",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "enable_sqlite_savepoints",
    "flat_record_table",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]

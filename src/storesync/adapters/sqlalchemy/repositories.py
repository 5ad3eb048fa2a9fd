"""Repository implementations backed by SQLAlchemy sessions.

Session calls are synchronous; the coroutine methods satisfy the async
repository port and complete without suspending. Each write runs in its own
savepoint so a failed statement leaves earlier writes of the surrounding
transaction intact. Driver and database failures surface as
``PersistenceError``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from storesync.adapters.sqlalchemy.mappings import RECORD_COLUMNS, flat_record_table
from storesync.domain.errors import MissingRecordError, PersistenceError
from storesync.domain.model import FlatRecord

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import Executable, Result, Row, Select
    from sqlalchemy.orm import Session


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyRecordRepository:
    def __init__(
        self,
        session: Session,
        collection: str,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.session = session
        self.collection = collection
        self._clock = clock

    async def add(self, record: FlatRecord) -> int:
        now = self._clock()
        stmt = insert(flat_record_table).values(
            collection=self.collection,
            created_at=now,
            updated_at=now,
            version=1,
            **self._column_values(record),
        )
        result = self._write(stmt, "Failed to add record")
        primary_key = result.inserted_primary_key
        if primary_key is None:
            raise PersistenceError("Insert did not return a primary key")
        return int(primary_key[0])

    async def get(self, record_id: int) -> FlatRecord | None:
        stmt = self._select().where(flat_record_table.c.id == record_id)
        row = self._read(stmt, f"Failed to load record {record_id}").one_or_none()
        return None if row is None else self._to_record(row)

    async def get_all(self) -> list[FlatRecord]:
        stmt = self._select().order_by(flat_record_table.c.id)
        return [self._to_record(row) for row in self._read(stmt, "Failed to load records")]

    async def get_by_date_range(self, start: str, end: str) -> list[FlatRecord]:
        stmt = (
            self._select()
            .where(flat_record_table.c.date.between(start, end))
            .order_by(flat_record_table.c.id)
        )
        rows = self._read(stmt, f"Failed to load records from {start} to {end}")
        return [self._to_record(row) for row in rows]

    async def update(self, record_id: int, changes: Mapping[str, object]) -> None:
        existing = await self.get(record_id)
        if existing is None:
            raise MissingRecordError(record_id)
        updated = existing.with_changes(changes)
        stmt = (
            update(flat_record_table)
            .where(flat_record_table.c.id == record_id)
            .values(
                updated_at=self._clock(),
                version=existing.version + 1,
                **self._column_values(updated),
            )
        )
        self._write(stmt, f"Failed to update record {record_id}")

    async def delete(self, record_id: int) -> None:
        if await self.get(record_id) is None:
            raise MissingRecordError(record_id)
        stmt = delete(flat_record_table).where(flat_record_table.c.id == record_id)
        self._write(stmt, f"Failed to delete record {record_id}")

    async def clear(self) -> None:
        stmt = delete(flat_record_table).where(flat_record_table.c.collection == self.collection)
        self._write(stmt, f"Failed to clear {self.collection}")

    async def count(self) -> int:
        stmt = (
            select(func.count())
            .select_from(flat_record_table)
            .where(flat_record_table.c.collection == self.collection)
        )
        return int(self._read(stmt, f"Failed to count {self.collection}").scalar_one())

    async def query(self, **filters: object) -> list[FlatRecord]:
        stmt = self._select().order_by(flat_record_table.c.id)
        extra_filters: dict[str, object] = {}
        for name, value in filters.items():
            if name in RECORD_COLUMNS:
                stmt = stmt.where(flat_record_table.c[name] == value)
            else:
                extra_filters[name] = value
        rows = self._read(stmt, f"Failed to query {self.collection}")
        records = [self._to_record(row) for row in rows]
        return [
            record
            for record in records
            if all(record.extra.get(name) == value for name, value in extra_filters.items())
        ]

    def _select(self) -> Select[Any]:
        return select(flat_record_table).where(flat_record_table.c.collection == self.collection)

    def _read(self, stmt: Executable, failure: str) -> Result[Any]:
        try:
            return self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"{failure}: {exc}") from exc

    def _write(self, stmt: Executable, failure: str) -> Result[Any]:
        try:
            with self.session.begin_nested():
                return self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"{failure}: {exc}") from exc

    @staticmethod
    def _column_values(record: FlatRecord) -> dict[str, object]:
        values: dict[str, object] = {name: getattr(record, name) for name in RECORD_COLUMNS}
        values["extra"] = dict(record.extra)
        return values

    @staticmethod
    def _to_record(row: Row[Any]) -> FlatRecord:
        mapping = row._mapping  # noqa: SLF001
        return FlatRecord(
            id=cast("int", mapping["id"]),
            date=cast("str", mapping["date"]),
            store=cast("str", mapping["store"]),
            supplier=mapping["supplier"],
            category=mapping["category"],
            item_name=mapping["item_name"],
            cost=mapping["cost"],
            amount=mapping["amount"],
            extra=dict(mapping["extra"] or {}),
            created_at=mapping["created_at"],
            updated_at=mapping["updated_at"],
            version=cast("int", mapping["version"]),
        )


class SqlAlchemyRecordRepositories:
    """Per-collection repositories sharing one session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._repositories: dict[str, SqlAlchemyRecordRepository] = {}

    def __call__(self, collection: str) -> SqlAlchemyRecordRepository:
        repository = self._repositories.get(collection)
        if repository is None:
            repository = SqlAlchemyRecordRepository(self.session, collection)
            self._repositories[collection] = repository
        return repository


if TYPE_CHECKING:
    from storesync.domain.ports.persistence import RecordRepository, RecordRepositoryProvider

    _session_stub = cast("Session", object())
    _repo_check: RecordRepository = SqlAlchemyRecordRepository(_session_stub, "purchase")
    _repos_check: RecordRepositoryProvider = SqlAlchemyRecordRepositories(_session_stub)

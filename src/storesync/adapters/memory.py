"""Dictionary-backed record repositories for previews, tests and scripting."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from storesync.domain.errors import MissingRecordError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from storesync.domain.model import FlatRecord


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryRecordRepository:
    """Ordered in-process store; identities are assigned from a counter starting at 1."""

    def __init__(self, collection: str, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.collection = collection
        self._clock = clock
        self._records: dict[int, FlatRecord] = {}
        self._next_id = 1

    async def add(self, record: FlatRecord) -> int:
        record_id = self._next_id
        self._next_id += 1
        now = self._clock()
        self._records[record_id] = replace(
            record, id=record_id, created_at=now, updated_at=now, version=1
        )
        return record_id

    async def get(self, record_id: int) -> FlatRecord | None:
        return self._records.get(record_id)

    async def get_all(self) -> list[FlatRecord]:
        return [self._records[record_id] for record_id in sorted(self._records)]

    async def update(self, record_id: int, changes: Mapping[str, object]) -> None:
        existing = self._records.get(record_id)
        if existing is None:
            raise MissingRecordError(record_id)
        updated = existing.with_changes(changes)
        self._records[record_id] = replace(
            updated,
            id=record_id,
            created_at=existing.created_at,
            updated_at=self._clock(),
            version=existing.version + 1,
        )

    async def delete(self, record_id: int) -> None:
        if record_id not in self._records:
            raise MissingRecordError(record_id)
        del self._records[record_id]

    async def clear(self) -> None:
        self._records.clear()

    async def count(self) -> int:
        return len(self._records)

    async def query(self, **filters: object) -> list[FlatRecord]:
        return [
            record
            for record in await self.get_all()
            if all(_field_value(record, name) == value for name, value in filters.items())
        ]

    async def get_by_date_range(self, start: str, end: str) -> list[FlatRecord]:
        return [record for record in await self.get_all() if start <= record.date <= end]


class InMemoryRecordStore:
    """Provider handing out one ``InMemoryRecordRepository`` per collection."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._repositories: dict[str, InMemoryRecordRepository] = {}

    def __call__(self, collection: str) -> InMemoryRecordRepository:
        repository = self._repositories.get(collection)
        if repository is None:
            repository = InMemoryRecordRepository(collection, clock=self._clock)
            self._repositories[collection] = repository
        return repository

    @property
    def collections(self) -> tuple[str, ...]:
        return tuple(self._repositories)


def _field_value(record: FlatRecord, name: str) -> object:
    if hasattr(record, name):
        return getattr(record, name)
    return record.extra.get(name)


if TYPE_CHECKING:
    from storesync.domain.ports.persistence import RecordRepository, RecordRepositoryProvider

    _repo_check: RecordRepository = InMemoryRecordRepository("check")
    _provider_check: RecordRepositoryProvider = InMemoryRecordStore()

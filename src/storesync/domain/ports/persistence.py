"""Ports for persisting flat records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from storesync.domain.model import FlatRecord


@runtime_checkable
class RecordRepository(Protocol):
    """Ordered key-value store for one collection of flat records.

    Every operation may suspend. ``add`` assigns the identity and stamps
    ``created_at``/``updated_at``/``version=1``; ``update`` keeps ``created_at``,
    refreshes ``updated_at`` and bumps ``version``. ``update`` and ``delete``
    raise ``MissingRecordError`` for unknown identities.
    """

    async def add(self, record: FlatRecord) -> int: ...

    async def get(self, record_id: int) -> FlatRecord | None: ...

    async def get_all(self) -> list[FlatRecord]:
        """Return every record ordered by ascending identity."""
        ...

    async def update(self, record_id: int, changes: Mapping[str, object]) -> None: ...

    async def delete(self, record_id: int) -> None: ...

    async def clear(self) -> None: ...

    async def count(self) -> int: ...

    async def query(self, **filters: object) -> list[FlatRecord]: ...

    async def get_by_date_range(self, start: str, end: str) -> list[FlatRecord]:
        """Return records dated within ``start``..``end`` inclusive, by ascending identity."""
        ...


@runtime_checkable
class RecordRepositoryProvider(Protocol):
    """Resolve a collection name to its repository."""

    def __call__(self, collection: str) -> RecordRepository: ...

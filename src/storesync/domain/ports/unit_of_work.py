"""Transaction boundary around the record repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from storesync.domain.ports.persistence import RecordRepositoryProvider


@runtime_checkable
class RecordUnitOfWork(Protocol):
    """One transaction over every record collection.

    Repositories handed out by ``repositories`` are only valid inside the
    ``with`` block. Leaving the block with an exception rolls back; nothing is
    committed implicitly.
    """

    @property
    def repositories(self) -> RecordRepositoryProvider: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

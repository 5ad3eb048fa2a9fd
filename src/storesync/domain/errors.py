"""Error taxonomy for reconciliation and merge operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storesync.domain.model import FlatRecord


class StoresyncError(Exception):
    """Base class for domain errors."""


class UnknownDataTypeError(StoresyncError, KeyError):
    """Raised when a data type has no registered mapping."""

    def __init__(self, data_type: str) -> None:
        self.data_type = data_type
        super().__init__(f"Unknown data type: {data_type}")

    def __str__(self) -> str:
        return str(self.args[0])


class ConcurrentImportError(StoresyncError, RuntimeError):
    """Raised when an import is requested while another is still running."""


class PersistenceError(StoresyncError):
    """Raised by persistence adapters when an operation is rejected."""


class MissingRecordError(PersistenceError, LookupError):
    """Raised when an update/delete targets an identity that does not exist."""

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"Record with id {record_id} not found")


class RecordApplyError(StoresyncError):
    """A single record failed to be added or updated during a merge."""

    def __init__(self, *, index: int, record: FlatRecord, cause: Exception) -> None:
        self.index = index
        self.record = record
        self.cause = cause
        super().__init__(f"Record #{index} could not be applied: {cause}")

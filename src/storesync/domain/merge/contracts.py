"""Result types for flat record imports and merge previews."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from datetime import datetime

    from storesync.domain.errors import RecordApplyError
    from storesync.domain.model import DataType, FlatRecord, MergeMode


ProgressCallback: TypeAlias = Callable[[int, int], None]


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorDetail:
    """One record that failed to apply, by position in the incoming batch."""

    index: int
    data: dict[str, object]
    error: str

    @classmethod
    def from_error(cls, error: RecordApplyError) -> ErrorDetail:
        return cls(
            index=error.index,
            data=error.record.to_dict(include_metadata=False),
            error=str(error.cause),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportSummary:
    """Outcome of one ``import_data`` call."""

    data_type: DataType
    mode: MergeMode
    added: int = 0
    updated: int = 0
    skipped: int = 0
    error_details: tuple[ErrorDetail, ...] = ()
    duration_ms: int = 0
    timestamp: datetime | None = None

    @property
    def errors(self) -> int:
        return len(self.error_details)

    def to_dict(self) -> dict[str, object]:
        return {
            "data_type": self.data_type.value,
            "mode": self.mode.value,
            "added": self.added,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.errors,
            "error_details": [
                {"index": detail.index, "data": detail.data, "error": detail.error}
                for detail in self.error_details
            ],
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True, slots=True)
class UpdateCandidate:
    existing: FlatRecord
    incoming: FlatRecord


@dataclass(frozen=True, slots=True)
class MergeConflict:
    """Incoming record whose duplicate key matches several stored records."""

    incoming: FlatRecord
    candidates: tuple[FlatRecord, ...]


@dataclass(slots=True)
class MergePreview:
    """Read-only classification of an incoming batch against stored records."""

    to_add: list[FlatRecord] = field(default_factory=list["FlatRecord"])
    to_update: list[UpdateCandidate] = field(default_factory=list[UpdateCandidate])
    unchanged: list[FlatRecord] = field(default_factory=list["FlatRecord"])
    conflicts: list[MergeConflict] = field(default_factory=list[MergeConflict])

    def counts(self) -> dict[str, int]:
        return {
            "to_add": len(self.to_add),
            "to_update": len(self.to_update),
            "unchanged": len(self.unchanged),
            "conflicts": len(self.conflicts),
        }

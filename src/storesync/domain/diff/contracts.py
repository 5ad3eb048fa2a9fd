"""Result types produced by the diff engine."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from storesync.domain.model import DataType


LeafValue: TypeAlias = float | int | str | None


class ChangeKind(StrEnum):
    INSERT = "insert"
    MODIFY = "modify"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldChange:
    """One detected difference at a store/day/field path."""

    store_id: str
    store_name: str
    day: int
    field_path: str
    old_value: LeafValue
    new_value: LeafValue

    @property
    def location(self) -> tuple[str, int, str]:
        return (self.store_id, self.day, self.field_path)


@dataclass(frozen=True, slots=True, kw_only=True)
class DataTypeDiff:
    data_type: DataType
    data_type_name: str
    inserts: tuple[FieldChange, ...] = ()
    modifications: tuple[FieldChange, ...] = ()
    removals: tuple[FieldChange, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.inserts or self.modifications or self.removals)

    @property
    def requires_review(self) -> bool:
        return bool(self.modifications or self.removals)

    def changes(self, kind: ChangeKind) -> tuple[FieldChange, ...]:
        match kind:
            case ChangeKind.INSERT:
                return self.inserts
            case ChangeKind.MODIFY:
                return self.modifications
            case ChangeKind.REMOVE:
                return self.removals


@dataclass(frozen=True, slots=True, kw_only=True)
class DiffResult:
    diffs: tuple[DataTypeDiff, ...] = ()
    auto_approved: tuple[DataType, ...] = ()

    @property
    def needs_confirmation(self) -> bool:
        return any(diff.requires_review for diff in self.diffs)

    def diff_for(self, data_type: DataType) -> DataTypeDiff | None:
        return next((diff for diff in self.diffs if diff.data_type == data_type), None)

    def to_dict(self) -> dict[str, object]:
        return {
            "diffs": [asdict(diff) for diff in self.diffs],
            "needs_confirmation": self.needs_confirmation,
            "auto_approved": [data_type.value for data_type in self.auto_approved],
        }


def format_leaf(value: object) -> LeafValue:
    """Coerce a flattened leaf into a serialisable FieldChange value."""

    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int | float | str):
        return value
    return json.dumps(value, default=str, separators=(",", ":"))

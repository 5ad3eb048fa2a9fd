"""Hierarchical diff between an existing and an incoming snapshot.

The engine walks every store/day tree data type that took part in the current
import and classifies each flattened leaf as an insert, a modification or a
removal. Inserts alone never require confirmation; any modification or removal
does.

Zero and missing values are interchangeable for insert/removal detection: a day
with ``cost=0`` is indistinguishable from a day without ``cost``. That rule
lives in ``_has_value``, not in ``values_equal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from storesync.domain.model import (
    CATEGORY_SALES_TYPES,
    STORE_DAY_TYPES,
    DataType,
    data_type_name,
    parse_data_type,
)

from .category_sales import diff_category_sales
from .contracts import DataTypeDiff, DiffResult, FieldChange, format_leaf
from .equality import values_equal
from .flatten import flatten_entry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from storesync.domain.model import DayEntry, Snapshot, StoreDayRecord


log = getLogger(__name__)


def calculate_diff(
    existing: Snapshot,
    incoming: Snapshot,
    imported_types: Iterable[str],
) -> DiffResult:
    """Diff ``incoming`` against ``existing`` for the data types in ``imported_types``.

    Types outside ``imported_types`` are ignored even if both snapshots carry
    data for them. Raises ``UnknownDataTypeError`` for unrecognised type names
    before any comparison happens. Neither snapshot is mutated.
    """

    requested = {parse_data_type(str(name)) for name in imported_types}
    store_names = StoreNameResolver(existing=existing, incoming=incoming)
    accumulator = _DiffAccumulator()

    for data_type in STORE_DAY_TYPES:
        if data_type not in requested:
            continue
        existing_record = existing.record_for(data_type)
        incoming_record = incoming.record_for(data_type)

        if not existing_record:
            accumulator.approve(data_type)
            continue
        if not incoming_record:
            continue

        accumulator.collect(
            diff_store_day_record(
                existing_record,
                incoming_record,
                data_type=data_type,
                store_names=store_names,
            )
        )

    for data_type in CATEGORY_SALES_TYPES:
        if data_type not in requested:
            continue
        existing_rows = existing.category_records_for(data_type)
        incoming_rows = incoming.category_records_for(data_type)

        if not existing_rows:
            accumulator.approve(data_type)
            continue
        if not incoming_rows:
            continue

        accumulator.collect(
            diff_category_sales(
                existing_rows,
                incoming_rows,
                data_type=data_type,
                store_names=store_names,
            )
        )

    result = accumulator.result()
    log.debug(
        "Diff computed: types=%s, diffs=%s, auto_approved=%s, needs_confirmation=%s",
        sorted(requested),
        len(result.diffs),
        list(result.auto_approved),
        result.needs_confirmation,
    )
    return result


def diff_store_day_record(
    existing: StoreDayRecord,
    incoming: StoreDayRecord,
    *,
    data_type: DataType,
    store_names: StoreNameResolver,
) -> DataTypeDiff:
    """Field-level diff of two non-empty store/day trees."""

    changes = _ChangeCollector(store_names=store_names)

    for store_id, incoming_days in incoming.items():
        existing_days = existing.get(store_id)

        for day, incoming_entry in incoming_days.items():
            existing_entry = existing_days.get(day) if existing_days is not None else None
            if existing_entry is None:
                changes.insert_all(store_id, day, incoming_entry)
            else:
                changes.compare_entries(store_id, day, existing_entry, incoming_entry)

        if existing_days is not None:
            for day, existing_entry in existing_days.items():
                if incoming_days.get(day) is None:
                    changes.remove_all(store_id, day, existing_entry)

    for store_id, existing_days in existing.items():
        if incoming.get(store_id) is not None:
            continue
        for day, existing_entry in existing_days.items():
            changes.remove_all(store_id, day, existing_entry)

    return changes.build(data_type)


def summarize_diff(result: DiffResult) -> str:
    """Return a short human-readable tally, e.g. ``"2 inserted, 1 modified"``."""

    inserts = sum(len(diff.inserts) for diff in result.diffs)
    modifications = sum(len(diff.modifications) for diff in result.diffs)
    removals = sum(len(diff.removals) for diff in result.diffs)

    parts: list[str] = []
    if inserts:
        parts.append(f"{inserts} inserted")
    if modifications:
        parts.append(f"{modifications} modified")
    if removals:
        parts.append(f"{removals} removed")
    return ", ".join(parts) or "no changes"


@dataclass(frozen=True, slots=True)
class StoreNameResolver:
    """Look up display names in the existing snapshot first, then the incoming one."""

    existing: Snapshot
    incoming: Snapshot

    def __call__(self, store_id: str) -> str:
        return self.existing.store_name(store_id) or self.incoming.store_name(store_id) or store_id


@dataclass(slots=True)
class _DiffAccumulator:
    diffs: list[DataTypeDiff] = field(default_factory=list[DataTypeDiff])
    auto_approved: list[DataType] = field(default_factory=list[DataType])

    def approve(self, data_type: DataType) -> None:
        self.auto_approved.append(data_type)

    def collect(self, diff: DataTypeDiff) -> None:
        # A type without any change is neither listed nor auto-approved.
        if not diff.has_changes:
            return
        self.diffs.append(diff)
        if not diff.requires_review:
            self.auto_approved.append(diff.data_type)

    def result(self) -> DiffResult:
        return DiffResult(diffs=tuple(self.diffs), auto_approved=tuple(self.auto_approved))


@dataclass(slots=True)
class _ChangeCollector:
    store_names: StoreNameResolver
    inserts: list[FieldChange] = field(default_factory=list[FieldChange])
    modifications: list[FieldChange] = field(default_factory=list[FieldChange])
    removals: list[FieldChange] = field(default_factory=list[FieldChange])

    def insert_all(self, store_id: str, day: int, entry: DayEntry) -> None:
        for path, new_value in flatten_entry(entry).items():
            if _has_value(new_value):
                self.inserts.append(self._change(store_id, day, path, None, new_value))

    def remove_all(self, store_id: str, day: int, entry: DayEntry) -> None:
        for path, old_value in flatten_entry(entry).items():
            if _has_value(old_value):
                self.removals.append(self._change(store_id, day, path, old_value, None))

    def compare_entries(
        self,
        store_id: str,
        day: int,
        existing_entry: DayEntry,
        incoming_entry: DayEntry,
    ) -> None:
        old_fields = flatten_entry(existing_entry)
        new_fields = flatten_entry(incoming_entry)

        for path, new_value in new_fields.items():
            old_value = old_fields.get(path)
            if not _has_value(old_value):
                if _has_value(new_value):
                    self.inserts.append(self._change(store_id, day, path, None, new_value))
            elif not _has_value(new_value):
                # reported by the removal pass below
                continue
            elif not values_equal(old_value, new_value):
                self.modifications.append(
                    self._change(store_id, day, path, old_value, new_value)
                )

        for path, old_value in old_fields.items():
            if _has_value(old_value) and not _has_value(new_fields.get(path)):
                self.removals.append(self._change(store_id, day, path, old_value, None))

    def build(self, data_type: DataType) -> DataTypeDiff:
        return DataTypeDiff(
            data_type=data_type,
            data_type_name=data_type_name(data_type),
            inserts=tuple(self.inserts),
            modifications=tuple(self.modifications),
            removals=tuple(self.removals),
        )

    def _change(
        self,
        store_id: str,
        day: int,
        path: str,
        old_value: object,
        new_value: object,
    ) -> FieldChange:
        return FieldChange(
            store_id=store_id,
            store_name=self.store_names(store_id),
            day=day,
            field_path=path,
            old_value=format_leaf(old_value),
            new_value=format_leaf(new_value),
        )


def _has_value(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, int | float):
        return value != 0
    return True

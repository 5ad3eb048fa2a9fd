"""Diff for flat category/time-slot sales arrays.

These rows are keyed by ``(day, store, department, line, class)`` codes rather
than nested under a store/day tree, so they get their own identity-map diff.
Changes are reported per location ``(store, day, department>line>class names)``:
rows whose codes differ but whose names coincide are summed into one location,
so each location appears in at most one bucket. The emptiness and
auto-approval rules are applied by the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from storesync.domain.model import data_type_name

from .contracts import DataTypeDiff, FieldChange
from .equality import values_equal

if TYPE_CHECKING:
    from collections.abc import Iterable

    from storesync.domain.model import CategoryRecordKey, CategoryTimeSalesRecord, DataType

_Location: TypeAlias = tuple[str, int, str]


@dataclass(slots=True)
class _Side:
    amount: float = 0
    quantity: float = 0

    def add(self, row: CategoryTimeSalesRecord) -> None:
        self.amount += row.total_amount
        self.quantity += row.total_quantity


@dataclass(slots=True)
class _Tally:
    old: _Side | None = None
    new: _Side | None = None


def diff_category_sales(
    existing: Iterable[CategoryTimeSalesRecord],
    incoming: Iterable[CategoryTimeSalesRecord],
    *,
    data_type: DataType,
    store_names: Callable[[str], str],
) -> DataTypeDiff:
    # incoming first: inserts and modifications follow incoming order,
    # removals follow existing order
    tallies: dict[_Location, _Tally] = {}
    for row in _index(incoming).values():
        tally = tallies.setdefault(_location(row), _Tally())
        tally.new = tally.new or _Side()
        tally.new.add(row)
    for row in _index(existing).values():
        tally = tallies.setdefault(_location(row), _Tally())
        tally.old = tally.old or _Side()
        tally.old.add(row)

    inserts: list[FieldChange] = []
    modifications: list[FieldChange] = []
    removals: list[FieldChange] = []

    for location, tally in tallies.items():
        old, new = tally.old, tally.new
        if old is None and new is not None:
            if new.amount != 0:
                inserts.append(_change(location, store_names, None, new.amount))
        elif new is None and old is not None:
            if old.amount != 0:
                removals.append(_change(location, store_names, old.amount, None))
        elif old is not None and new is not None:
            if not (
                values_equal(old.amount, new.amount) and values_equal(old.quantity, new.quantity)
            ):
                modifications.append(_change(location, store_names, old.amount, new.amount))

    return DataTypeDiff(
        data_type=data_type,
        data_type_name=data_type_name(data_type),
        inserts=tuple(inserts),
        modifications=tuple(modifications),
        removals=tuple(removals),
    )


def _index(
    rows: Iterable[CategoryTimeSalesRecord],
) -> dict[CategoryRecordKey, CategoryTimeSalesRecord]:
    # later rows win for a repeated key
    return {row.key: row for row in rows}


def _location(row: CategoryTimeSalesRecord) -> _Location:
    return (row.store_id, row.day, row.field_path)


def _change(
    location: _Location,
    store_names: Callable[[str], str],
    old_value: float | None,
    new_value: float | None,
) -> FieldChange:
    store_id, day, field_path = location
    return FieldChange(
        store_id=store_id,
        store_name=store_names(store_id),
        day=day,
        field_path=field_path,
        old_value=old_value,
        new_value=new_value,
    )

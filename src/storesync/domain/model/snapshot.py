"""Snapshot types: store/day trees and flat category sales records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, cast, TypeAlias

from storesync.domain.errors import UnknownDataTypeError

from .enums import CATEGORY_SALES_TYPES, STORE_DAY_TYPES, DataType

if TYPE_CHECKING:
    from collections.abc import Iterable


DayEntry: TypeAlias = Mapping[str, object]
StoreDayRecord: TypeAlias = Mapping[str, Mapping[int, DayEntry]]
CategoryRecordKey: TypeAlias = tuple[int, str, str, str, str]

_EMPTY_RECORD: StoreDayRecord = {}


@dataclass(frozen=True, slots=True)
class CategoryCode:
    code: str
    name: str


@dataclass(frozen=True, slots=True)
class TimeSlot:
    hour: int
    quantity: float
    amount: float


@dataclass(frozen=True, slots=True, kw_only=True)
class CategoryTimeSalesRecord:
    """One department/line/class row of time-slot sales for a store and day."""

    day: int
    store_id: str
    department: CategoryCode
    line: CategoryCode
    klass: CategoryCode
    total_quantity: float = 0
    total_amount: float = 0
    time_slots: tuple[TimeSlot, ...] = ()

    @property
    def key(self) -> CategoryRecordKey:
        return (self.day, self.store_id, self.department.code, self.line.code, self.klass.code)

    @property
    def field_path(self) -> str:
        return f"{self.department.name}>{self.line.name}>{self.klass.name}"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> CategoryTimeSalesRecord:
        slots_raw = cast("Iterable[Mapping[str, object]]", payload.get("time_slots") or ())
        return cls(
            day=int(cast("int", payload["day"])),
            store_id=str(payload["store_id"]),
            department=_category_code(payload["department"]),
            line=_category_code(payload["line"]),
            klass=_category_code(payload["klass"]),
            total_quantity=_number(payload.get("total_quantity")),
            total_amount=_number(payload.get("total_amount")),
            time_slots=tuple(
                TimeSlot(
                    hour=int(cast("int", slot["hour"])),
                    quantity=_number(slot.get("quantity")),
                    amount=_number(slot.get("amount")),
                )
                for slot in slots_raw
            ),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class Snapshot:
    """Point-in-time view of every diffable data category.

    ``stores`` maps store identifiers to display names and is the only source of
    store names used while diffing.
    """

    stores: Mapping[str, str] = field(default_factory=dict[str, str])
    records: Mapping[DataType, StoreDayRecord] = field(
        default_factory=dict[DataType, StoreDayRecord]
    )
    category_time_sales: Mapping[DataType, tuple[CategoryTimeSalesRecord, ...]] = field(
        default_factory=dict[DataType, tuple[CategoryTimeSalesRecord, ...]]
    )

    def __post_init__(self) -> None:
        for data_type in self.records:
            if data_type not in STORE_DAY_TYPES:
                raise ValueError(f"{data_type} is not a store/day data type")
        for data_type in self.category_time_sales:
            if data_type not in CATEGORY_SALES_TYPES:
                raise ValueError(f"{data_type} is not a category sales data type")

    def record_for(self, data_type: DataType) -> StoreDayRecord:
        return self.records.get(data_type, _EMPTY_RECORD)

    def category_records_for(self, data_type: DataType) -> tuple[CategoryTimeSalesRecord, ...]:
        return self.category_time_sales.get(data_type, ())

    def store_name(self, store_id: str) -> str | None:
        return self.stores.get(store_id)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> Snapshot:
        """Build a snapshot from JSON-like data.

        Expected shape::

            {
                "stores": {"1": "Main street"},
                "sales": {"1": {"1": {"sales": 50000}}},
                "category_time_sales": [{...}, ...],
            }

        Day keys may be strings; they are coerced to ``int``.
        """

        stores_raw = cast("Mapping[str, object]", payload.get("stores") or {})
        records: dict[DataType, StoreDayRecord] = {}
        category_time_sales: dict[DataType, tuple[CategoryTimeSalesRecord, ...]] = {}
        for name, value in payload.items():
            if name == "stores":
                continue
            data_type = parse_data_type(name)
            if data_type in STORE_DAY_TYPES:
                records[data_type] = _store_day_record(cast("Mapping[str, object]", value))
            elif data_type in CATEGORY_SALES_TYPES:
                rows = cast("Iterable[Mapping[str, object]]", value or ())
                category_time_sales[data_type] = tuple(
                    CategoryTimeSalesRecord.from_mapping(row) for row in rows
                )
        return cls(
            stores={str(store_id): str(name) for store_id, name in stores_raw.items()},
            records=records,
            category_time_sales=category_time_sales,
        )


def parse_data_type(name: str) -> DataType:
    """Return the ``DataType`` for ``name`` or raise ``UnknownDataTypeError``."""

    try:
        return DataType(name)
    except ValueError as exc:
        raise UnknownDataTypeError(name) from exc


def _store_day_record(payload: Mapping[str, object]) -> StoreDayRecord:
    record: dict[str, dict[int, DayEntry]] = {}
    for store_id, days in payload.items():
        days_map = cast("Mapping[object, DayEntry]", days)
        record[str(store_id)] = {int(cast("int", day)): entry for day, entry in days_map.items()}
    return record


def _category_code(value: object) -> CategoryCode:
    mapping = cast("Mapping[str, object]", value)
    return CategoryCode(code=str(mapping["code"]), name=str(mapping.get("name", mapping["code"])))


def _number(value: object) -> float:
    if value is None:
        return 0
    if isinstance(value, int | float):
        return value
    return float(cast("str", value))

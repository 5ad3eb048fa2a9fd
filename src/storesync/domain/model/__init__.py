"""Domain model package."""

from __future__ import annotations

from .enums import (
    CATEGORY_SALES_TYPES,
    DATA_TYPE_NAMES,
    STORE_DAY_TYPES,
    DataType,
    MergeMode,
    data_type_name,
)
from .records import DOMAIN_FIELDS, METADATA_FIELDS, DuplicateKey, FlatRecord
from .snapshot import (
    CategoryCode,
    CategoryRecordKey,
    CategoryTimeSalesRecord,
    DayEntry,
    Snapshot,
    StoreDayRecord,
    TimeSlot,
    parse_data_type,
)

__all__ = [
    "CATEGORY_SALES_TYPES",
    "DATA_TYPE_NAMES",
    "DOMAIN_FIELDS",
    "METADATA_FIELDS",
    "STORE_DAY_TYPES",
    "CategoryCode",
    "CategoryRecordKey",
    "CategoryTimeSalesRecord",
    "DataType",
    "DayEntry",
    "DuplicateKey",
    "FlatRecord",
    "MergeMode",
    "Snapshot",
    "StoreDayRecord",
    "TimeSlot",
    "data_type_name",
    "parse_data_type",
]

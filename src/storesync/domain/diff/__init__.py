"""Snapshot diffing: equality oracle, tree flattener and diff engine."""

from __future__ import annotations

from .category_sales import diff_category_sales
from .contracts import ChangeKind, DataTypeDiff, DiffResult, FieldChange
from .engine import StoreNameResolver, calculate_diff, diff_store_day_record, summarize_diff
from .equality import NUMERIC_TOLERANCE, values_equal
from .flatten import flatten_entry

__all__ = [
    "NUMERIC_TOLERANCE",
    "ChangeKind",
    "DataTypeDiff",
    "DiffResult",
    "FieldChange",
    "StoreNameResolver",
    "calculate_diff",
    "diff_category_sales",
    "diff_store_day_record",
    "flatten_entry",
    "summarize_diff",
    "values_equal",
]

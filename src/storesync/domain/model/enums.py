"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class DataType(StrEnum):
    """Data categories a snapshot can carry."""

    PURCHASE = "purchase"
    SALES = "sales"
    DISCOUNT = "discount"
    PREV_YEAR_SALES = "prev_year_sales"
    PREV_YEAR_DISCOUNT = "prev_year_discount"
    INTER_STORE_IN = "inter_store_in"
    INTER_STORE_OUT = "inter_store_out"
    FLOWERS = "flowers"
    DIRECT_PRODUCE = "direct_produce"
    CONSUMABLES = "consumables"

    # Flat analytic arrays keyed by department/line/class:
    CATEGORY_TIME_SALES = "category_time_sales"
    PREV_YEAR_CATEGORY_TIME_SALES = "prev_year_category_time_sales"

    # Known but never diffed:
    SETTINGS = "settings"
    BUDGET = "budget"


class MergeMode(StrEnum):
    """Policy used when applying a flat record batch to persistence."""

    REPLACE = "replace"
    APPEND = "append"
    SMART = "smart"
    SKIP = "skip"


DATA_TYPE_NAMES: Final[dict[DataType, str]] = {
    DataType.PURCHASE: "Purchases",
    DataType.SALES: "Sales",
    DataType.DISCOUNT: "Discounts",
    DataType.PREV_YEAR_SALES: "Prior-year sales",
    DataType.PREV_YEAR_DISCOUNT: "Prior-year discounts",
    DataType.INTER_STORE_IN: "Inter-store transfers in",
    DataType.INTER_STORE_OUT: "Inter-store transfers out",
    DataType.FLOWERS: "Flowers",
    DataType.DIRECT_PRODUCE: "Direct produce",
    DataType.CONSUMABLES: "Consumables",
    DataType.CATEGORY_TIME_SALES: "Category time-slot sales",
    DataType.PREV_YEAR_CATEGORY_TIME_SALES: "Prior-year category time-slot sales",
    DataType.SETTINGS: "Inventory settings",
    DataType.BUDGET: "Budget",
}

# Store/day tree types, in the order they are diffed.
STORE_DAY_TYPES: Final[tuple[DataType, ...]] = (
    DataType.PURCHASE,
    DataType.SALES,
    DataType.DISCOUNT,
    DataType.PREV_YEAR_SALES,
    DataType.PREV_YEAR_DISCOUNT,
    DataType.INTER_STORE_IN,
    DataType.INTER_STORE_OUT,
    DataType.FLOWERS,
    DataType.DIRECT_PRODUCE,
    DataType.CONSUMABLES,
)

CATEGORY_SALES_TYPES: Final[tuple[DataType, ...]] = (
    DataType.CATEGORY_TIME_SALES,
    DataType.PREV_YEAR_CATEGORY_TIME_SALES,
)


def data_type_name(data_type: DataType) -> str:
    return DATA_TYPE_NAMES.get(data_type, data_type.value)

"""Flat persisted records and their duplicate-key identity."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import TYPE_CHECKING, Final, cast, TypeAlias

if TYPE_CHECKING:
    from datetime import datetime


DuplicateKey: TypeAlias = str

# Fields owned by the persistence layer, never supplied by an import.
METADATA_FIELDS: Final[frozenset[str]] = frozenset({"id", "created_at", "updated_at", "version"})
DOMAIN_FIELDS: Final[tuple[str, ...]] = (
    "date",
    "store",
    "supplier",
    "category",
    "item_name",
    "cost",
    "amount",
)


@dataclass(frozen=True, slots=True, kw_only=True)
class FlatRecord:
    """One flat business record (purchase line, sales line, ...).

    ``id``/``created_at``/``updated_at``/``version`` are assigned by the
    repository; records built from an import carry ``None``/``0`` there.
    """

    date: str
    store: str
    supplier: str | None = None
    category: str | None = None
    item_name: str | None = None
    cost: float | None = None
    amount: float | None = None
    extra: Mapping[str, object] = field(default_factory=dict[str, object])

    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    @property
    def duplicate_key(self) -> DuplicateKey:
        """``date|store|supplier-or-category``; missing parts become empty strings."""

        return "|".join((self.date or "", self.store or "", self.supplier or self.category or ""))

    def field_values(self) -> dict[str, object]:
        """Return the domain fields that are set, suitable as an update payload."""

        values: dict[str, object] = {
            name: getattr(self, name)
            for name in DOMAIN_FIELDS
            if getattr(self, name) is not None
        }
        if self.extra:
            values["extra"] = dict(self.extra)
        return values

    def to_dict(self, *, include_metadata: bool = True) -> dict[str, object]:
        payload: dict[str, object] = {name: getattr(self, name) for name in DOMAIN_FIELDS}
        payload.update(self.extra)
        if include_metadata:
            payload["id"] = self.id
            payload["created_at"] = self.created_at.isoformat() if self.created_at else None
            payload["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
            payload["version"] = self.version
        return payload

    def with_changes(self, changes: Mapping[str, object]) -> FlatRecord:
        """Return a copy with domain fields (and ``extra``) replaced from ``changes``."""

        known = {f.name for f in fields(self)} - METADATA_FIELDS
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown record fields: {', '.join(sorted(unknown))}")
        return replace(self, **dict(changes))  # pyright: ignore[reportArgumentType]

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> FlatRecord:
        """Build an import record from a JSON-like mapping.

        Unknown keys are kept in ``extra``; metadata keys are ignored.
        """

        if not payload.get("date") or not payload.get("store"):
            raise ValueError("Flat records require 'date' and 'store'")
        extra = {
            key: value
            for key, value in payload.items()
            if key not in DOMAIN_FIELDS and key not in METADATA_FIELDS
        }
        return cls(
            date=str(payload["date"]),
            store=str(payload["store"]),
            supplier=_optional_str(payload.get("supplier")),
            category=_optional_str(payload.get("category")),
            item_name=_optional_str(payload.get("item_name")),
            cost=_optional_number(payload.get("cost")),
            amount=_optional_number(payload.get("amount")),
            extra=extra,
        )


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _optional_number(value: object) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid amount")
    if isinstance(value, int | float):
        return value
    return float(cast("str", value))

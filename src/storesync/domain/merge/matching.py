"""Duplicate detection for flat records.

Records sharing a duplicate key (``date|store|supplier-or-category``) are
candidates for the same real-world fact. When several candidates exist the one
agreeing on the most similarity fields wins; ties keep the earliest candidate.
Candidates arrive in repository order (ascending identity) followed by records
inserted earlier in the same batch, so the choice is deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from storesync.domain.model import DuplicateKey, FlatRecord


SIMILARITY_FIELDS: Final[tuple[str, ...]] = ("cost", "amount", "item_name", "category", "supplier")
IMPORTANT_FIELDS: Final[tuple[str, ...]] = ("cost", "amount", "item_name")


def similarity_score(incoming: FlatRecord, candidate: FlatRecord) -> int:
    return sum(
        1 for name in SIMILARITY_FIELDS if getattr(incoming, name) == getattr(candidate, name)
    )


def find_best_match(incoming: FlatRecord, candidates: Sequence[FlatRecord]) -> FlatRecord:
    """Return the candidate most similar to ``incoming``."""

    if not candidates:
        raise ValueError("find_best_match requires at least one candidate")
    if len(candidates) == 1:
        return candidates[0]

    best = candidates[0]
    best_score = similarity_score(incoming, best)
    for candidate in candidates[1:]:
        score = similarity_score(incoming, candidate)
        if score > best_score:
            best, best_score = candidate, score
    return best


def has_important_changes(existing: FlatRecord, incoming: FlatRecord) -> bool:
    """Whether applying ``incoming`` would change a value that matters.

    Fields left unset on the incoming record never count as a change.
    """

    for name in IMPORTANT_FIELDS:
        new_value = getattr(incoming, name)
        if new_value is not None and getattr(existing, name) != new_value:
            return True
    return False


@dataclass(slots=True)
class DuplicateIndex:
    """Stored records bucketed by duplicate key, updated as a batch is applied."""

    buckets: dict[DuplicateKey, list[FlatRecord]] = field(
        default_factory=dict["DuplicateKey", list["FlatRecord"]]
    )

    @classmethod
    def from_records(cls, records: Iterable[FlatRecord]) -> DuplicateIndex:
        index = cls()
        for record in records:
            index.add(record)
        return index

    def candidates(self, key: DuplicateKey) -> tuple[FlatRecord, ...]:
        return tuple(self.buckets.get(key, ()))

    def add(self, record: FlatRecord) -> None:
        self.buckets.setdefault(record.duplicate_key, []).append(record)

    def refresh(self, previous: FlatRecord, current: FlatRecord) -> None:
        """Swap the indexed copy of ``previous`` for ``current`` after an update."""

        bucket = self.buckets.get(previous.duplicate_key, [])
        for position, indexed in enumerate(bucket):
            if indexed is previous or (indexed.id is not None and indexed.id == previous.id):
                break
        else:
            raise KeyError(f"Record {previous.id} is not indexed under {previous.duplicate_key!r}")

        if current.duplicate_key == previous.duplicate_key:
            bucket[position] = current
            return
        del bucket[position]
        if not bucket:
            del self.buckets[previous.duplicate_key]
        self.add(current)

    def __contains__(self, key: object) -> bool:
        return key in self.buckets

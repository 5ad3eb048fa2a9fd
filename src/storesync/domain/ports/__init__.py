"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import RecordRepository, RecordRepositoryProvider
from .unit_of_work import RecordUnitOfWork

__all__ = [
    "RecordRepository",
    "RecordRepositoryProvider",
    "RecordUnitOfWork",
]

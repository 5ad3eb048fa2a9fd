"""Flat record merge engine and duplicate matching."""

from __future__ import annotations

from .contracts import (
    ErrorDetail,
    ImportSummary,
    MergeConflict,
    MergePreview,
    ProgressCallback,
    UpdateCandidate,
)
from .manager import DEFAULT_COLLECTIONS, ImportManager
from .matching import (
    IMPORTANT_FIELDS,
    SIMILARITY_FIELDS,
    DuplicateIndex,
    find_best_match,
    has_important_changes,
    similarity_score,
)

__all__ = [
    "DEFAULT_COLLECTIONS",
    "IMPORTANT_FIELDS",
    "SIMILARITY_FIELDS",
    "DuplicateIndex",
    "ErrorDetail",
    "ImportManager",
    "ImportSummary",
    "MergeConflict",
    "MergePreview",
    "ProgressCallback",
    "UpdateCandidate",
    "find_best_match",
    "has_important_changes",
    "similarity_score",
]

"""Tolerant value comparison used by the diff engine."""

from __future__ import annotations

import json
from typing import Final

NUMERIC_TOLERANCE: Final[float] = 0.001


def values_equal(a: object, b: object) -> bool:
    """Return whether two leaf values should be treated as unchanged.

    Numbers compare within ``NUMERIC_TOLERANCE`` (spreadsheet arithmetic drifts);
    anything else falls back to comparing canonical JSON. Never raises.
    """

    if a is b:
        return True
    if _is_number(a) and _is_number(b):
        return abs(a - b) < NUMERIC_TOLERANCE  # type: ignore[operator]
    try:
        if a == b:
            return True
    except (TypeError, ValueError):
        pass
    canonical_a = _canonical(a)
    canonical_b = _canonical(b)
    return canonical_a is not None and canonical_a == canonical_b


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _canonical(value: object) -> str | None:
    try:
        return json.dumps(value, sort_keys=True, default=str, separators=(",", ":"))
    except (TypeError, ValueError):
        return None

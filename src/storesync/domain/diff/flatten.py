"""Flatten nested day entries into dotted field paths."""

from __future__ import annotations

from collections.abc import Mapping


def flatten_entry(entry: Mapping[str, object], prefix: str = "") -> dict[str, object]:
    """Return ``{"a.b.c": leaf}`` for every leaf of ``entry``.

    Nested mappings recurse; lists, tuples and scalars are leaves, so arrays of
    records are compared as opaque values.
    """

    flat: dict[str, object] = {}
    for key, value in entry.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_entry(value, path))  # pyright: ignore[reportUnknownArgumentType]
        else:
            flat[path] = value
    return flat

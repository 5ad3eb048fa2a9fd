from __future__ import annotations

from storesync.domain.diff import flatten_entry


def test_flatten_entry_joins_nested_keys_with_dots() -> None:
    entry = {"sales": 100, "breakdown": {"food": {"fresh": 60, "dry": 40}, "other": 0}}

    assert flatten_entry(entry) == {
        "sales": 100,
        "breakdown.food.fresh": 60,
        "breakdown.food.dry": 40,
        "breakdown.other": 0,
    }


def test_flatten_entry_keeps_lists_as_leaves() -> None:
    entry = {"items": [{"name": "a"}, {"name": "b"}], "meta": {"tags": ["x", "y"]}}

    flat = flatten_entry(entry)

    assert flat == {"items": [{"name": "a"}, {"name": "b"}], "meta.tags": ["x", "y"]}


def test_flatten_entry_applies_prefix_and_handles_empty_entry() -> None:
    assert flatten_entry({"a": 1}, "root") == {"root.a": 1}
    assert flatten_entry({}) == {}

from __future__ import annotations

import pytest

from storesync.domain.diff import NUMERIC_TOLERANCE, values_equal


@pytest.mark.parametrize(
    ("a", "b"),
    [
        (1.0, 1.0005),
        (50000, 50000.0),
        (0, 0.0009),
        ("abc", "abc"),
        (None, None),
        ([1, 2, 3], [1, 2, 3]),
        ({"b": 1, "a": 2}, {"a": 2, "b": 1}),
    ],
)
def test_values_equal_accepts_equivalent_values(a: object, b: object) -> None:
    assert values_equal(a, b)
    assert values_equal(b, a)


@pytest.mark.parametrize(
    ("a", "b"),
    [
        (1.0, 1.002),
        (50000, 60000),
        ("abc", "abd"),
        (None, 0),
        ("1", 1),
        ([1, 2], [2, 1]),
        (True, 1.5),
    ],
)
def test_values_equal_rejects_different_values(a: object, b: object) -> None:
    assert not values_equal(a, b)


def test_tolerance_boundary_is_exclusive() -> None:
    assert values_equal(10.0, 10.0 + NUMERIC_TOLERANCE / 2)
    assert not values_equal(10.0, 10.0 + NUMERIC_TOLERANCE * 2)


def test_values_equal_never_raises_on_unserialisable_values() -> None:
    class Opaque:
        def __eq__(self, other: object) -> bool:
            raise TypeError("no comparison")

        __hash__ = object.__hash__

    assert values_equal(Opaque(), Opaque()) is False

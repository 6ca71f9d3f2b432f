# gifstack - Uniformity checks
"""
Helpers to confirm that a sequence of values agrees on a single value.

Used for layer geometry at startup and for frame delays on every iteration.
"""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

T = TypeVar("T")


class NonUniformError(ValueError):
    """Raised when a sequence is empty or holds differing values.

    :ivar values: The values inspected up to and including the first
        mismatch. Empty if the sequence was empty.
    """

    def __init__(self, values: list[Any]):
        if values:
            message = f"values are not uniform: {values}"
        else:
            message = "no values to compare"
        super().__init__(message)
        self.values = values


def get_all_same(values: Iterable[T]) -> T:
    """
    Returns the single value shared by all elements of ``values``.

    :param values: Any iterable of comparable values
    :return: The common value
    :raises NonUniformError: If ``values`` is empty or any element differs
        from the first one
    """
    iterator = iter(values)
    seen: list[T] = []
    try:
        first = next(iterator)
    except StopIteration:
        raise NonUniformError(seen) from None
    seen.append(first)
    for item in iterator:
        seen.append(item)
        if item != first:
            raise NonUniformError(seen)
    return first


def is_uniform(values: Iterable[Any]) -> bool:
    """True if ``values`` is non-empty and all elements are equal."""
    try:
        get_all_same(values)
    except NonUniformError:
        return False
    return True


__all__ = ["NonUniformError", "get_all_same", "is_uniform"]

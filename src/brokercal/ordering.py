from __future__ import annotations
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def reorder(items: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """Return a copy of ``items`` with one element moved, splice style."""
    n = len(items)
    if not 0 <= from_index < n:
        raise IndexError(f"from_index {from_index} out of range for {n} items")
    if not 0 <= to_index < n:
        raise IndexError(f"to_index {to_index} out of range for {n} items")
    out = list(items)
    out.insert(to_index, out.pop(from_index))
    return out

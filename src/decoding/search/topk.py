"""
Bounded top-k selection.

Keeps a descending list of at most ``k`` items and inserts each new item
after every kept item that is not smaller than it. Runs in O(n * k), which
beats a full sort for the small beam widths used in decoding, and is
stable: among equal keys the first one seen keeps its slot.
"""

from typing import Callable, Iterable, List, Optional, TypeVar


T = TypeVar("T")


def top_k(
    items: Iterable[T],
    k: int,
    key: Optional[Callable[[T], float]] = None
) -> List[T]:
    """Return the ``k`` largest items in descending order.

    Args:
        items: Items to select from.
        k: Number of items to keep.
        key: Maps an item to its ranking value (identity by default).

    Returns:
        Up to ``k`` items, largest first.
    """
    if k <= 0:
        return []
    if key is None:
        key = lambda item: item

    kept: List[T] = []
    kept_keys: List[float] = []

    for item in items:
        value = key(item)

        # Walk left past kept items strictly smaller than value
        i = len(kept) - 1
        while i >= 0 and kept_keys[i] < value:
            i -= 1

        if i < k - 1:
            kept.insert(i + 1, item)
            kept_keys.insert(i + 1, value)
            if len(kept) > k:
                kept.pop()
                kept_keys.pop()

    return kept


def top_k_indices(values, k: int, min_value: Optional[float] = None) -> List[tuple]:
    """Select the ``k`` largest entries of a probability vector.

    Ties go to the lower index since indices are visited in order.

    Args:
        values: Sequence of floats indexed by token ID.
        k: Number of entries to keep.
        min_value: Entries ``<= min_value`` are skipped.

    Returns:
        List of ``(index, value)`` pairs, largest value first.
    """
    pairs = enumerate(values)
    if min_value is not None:
        pairs = ((i, v) for i, v in pairs if v > min_value)
    return top_k(pairs, k, key=lambda pair: pair[1])

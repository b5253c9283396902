"""
Time-window overlap primitives shared by the resolver.

All windows are half-open: ``[start, end)``. Two windows that merely touch
(one ends exactly when the other starts) do not overlap.
"""

from datetime import datetime
from typing import Iterable, Protocol


class Window(Protocol):
    start: datetime
    end: datetime


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """
    Check whether two time windows overlap.

    Args:
        start_a, end_a: First window
        start_b, end_b: Second window

    Returns:
        True if ``start_a < end_b and start_b < end_a``

    Complexity: O(1)
    """
    return start_a < end_b and start_b < end_a


def window_overlaps(a: Window, b: Window) -> bool:
    return overlaps(a.start, a.end, b.start, b.end)


def any_overlap(target: Window, windows: Iterable[Window]) -> bool:
    return any(window_overlaps(target, w) for w in windows)

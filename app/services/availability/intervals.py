# ===== app/services/availability/intervals.py =====
"""
Half-open interval helpers.

Intervals are ``(start, end)`` tuples with ``start < end``; the bounds can be
minute offsets or aware datetimes, anything that orders. Touching intervals
(``a.end == b.start``) do not overlap.
"""
from typing import List, Tuple, Any

Interval = Tuple[Any, Any]


def overlaps(a: Interval, b: Interval) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def merge_intervals(intervals: List[Interval]) -> List[Interval]:
    """Union of the given intervals, sorted, with touching ones joined"""
    merged: List[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def subtract_intervals(intervals: List[Interval], blockers: List[Interval]) -> List[Interval]:
    """
    Remove every blocker from every interval.

    A blocker strictly inside an interval splits it in two. The result is
    sorted and contains no empty pieces.
    """
    result = merge_intervals(intervals)
    for b_start, b_end in merge_intervals(blockers):
        pieces = []
        for start, end in result:
            if b_end <= start or b_start >= end:
                pieces.append((start, end))
                continue
            if start < b_start:
                pieces.append((start, b_start))
            if b_end < end:
                pieces.append((b_end, end))
        result = pieces
    return result


def find_overlap(intervals: List[Interval]):
    """Return the first pair of overlapping intervals, or None"""
    ordered = sorted(intervals)
    for previous, current in zip(ordered, ordered[1:]):
        if overlaps(previous, current):
            return previous, current
    return None

"""Line interval helpers: merging touched lines and overlap tests."""

from __future__ import annotations

from typing import Iterable

from .data import LineRange


def merge_line_numbers(lines: Iterable[int]) -> list[LineRange]:
    """
    Collapse line numbers into the minimal list of contiguous intervals.

    The input must be non-decreasing. Duplicates are tolerated; unsorted
    input yields fragmented or wrongly merged ranges and is not detected.

    Example:
        >>> merge_line_numbers([1, 2, 3, 7])
        [LineRange(start=1, end=4), LineRange(start=7, end=8)]
    """
    ranges: list[LineRange] = []
    iterator = iter(lines)
    try:
        start = next(iterator)
    except StopIteration:
        return ranges

    last = start
    for line in iterator:
        if line == last:
            continue
        if line != last + 1:
            ranges.append(LineRange(start, last + 1))
            start = line
        last = line
    ranges.append(LineRange(start, last + 1))
    return ranges


def has_intersection(first: LineRange, second: LineRange) -> bool:
    """Half-open overlap test. Empty intervals intersect nothing."""
    if first.is_empty or second.is_empty:
        return False
    return first.start < second.end and second.start < first.end

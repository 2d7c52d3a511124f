"""
Change sets: the lines a commit touched in one file.

A ChangeSet is created per (commit, file) pair by the git collaborator,
filled with zero-based touched line numbers, and then read to obtain the
merged line intervals or their literal text.
"""

from __future__ import annotations

from .data import LineRange
from .intervals import merge_line_numbers


def split_source_lines(source: str) -> list[str]:
    """Split on newline characters only, keeping them, as git and tree-sitter count rows."""
    lines = [line + "\n" for line in source.split("\n")]
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


class ChangeSetRangeError(IndexError):
    """A touched line lies outside the stored source text."""

    def __init__(self, filename: str, interval: LineRange, line_count: int) -> None:
        self.filename = filename
        self.interval = interval
        self.line_count = line_count
        super().__init__(
            f"{filename or '<unnamed>'}: interval {interval} exceeds "
            f"source of {line_count} lines"
        )


class ChangeSet:
    """Touched line numbers of one file, bound to that file's source text."""

    def __init__(self, filename: str, source: str) -> None:
        self.filename = filename
        self.source = source
        self.source_lines: list[str] = split_source_lines(source)
        self.lines: list[int] = []

    def add_line(self, line_number: int) -> None:
        self.lines.append(line_number)

    def add_lines(self, line_numbers) -> None:
        self.lines.extend(line_numbers)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def __len__(self) -> int:
        return len(self.lines)

    def ranges(self) -> list[LineRange]:
        """Minimal contiguous intervals covering the touched lines."""
        return merge_line_numbers(sorted(self.lines))

    def text_ranges(self) -> list[str]:
        """
        Literal source text of each interval from ``ranges()``.

        Raises:
            ChangeSetRangeError: an interval ends past the last source line,
                meaning the line numbers and the source are out of sync.
        """
        line_count = len(self.source_lines)
        texts = []
        for interval in self.ranges():
            if interval.start < 0 or interval.end > line_count:
                raise ChangeSetRangeError(self.filename, interval, line_count)
            texts.append("".join(self.source_lines[interval.start:interval.end]))
        return texts

    def __repr__(self) -> str:
        return f"ChangeSet(filename={self.filename!r}, lines={self.lines!r})"

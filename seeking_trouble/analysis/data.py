"""
Data structures for change-set and region analysis.

Line numbers are zero-based rows, the same convention tree-sitter uses
for node points. Intervals are half-open ``[start, end)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union


FUNCTION_KINDS = frozenset({"function_definition"})


@dataclass(frozen=True)
class LineRange:
    """A half-open ``[start, end)`` range of line numbers."""
    start: int
    end: int

    @classmethod
    def single(cls, line: int) -> LineRange:
        return cls(line, line + 1)

    @classmethod
    def coerce(cls, value: LineRangeLike) -> LineRange:
        """Accept a LineRange, a builtin ``range`` or a ``(start, end)`` pair."""
        if isinstance(value, LineRange):
            return value
        if isinstance(value, range):
            return cls(value.start, value.stop)
        start, end = value
        return cls(int(start), int(end))

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def contains(self, line: int) -> bool:
        return self.start <= line < self.end

    def with_start(self, start: int) -> LineRange:
        return LineRange(start, self.end)

    def __len__(self) -> int:
        return max(0, self.end - self.start)

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


LineRangeLike = Union[LineRange, range, Tuple[int, int]]


@dataclass(frozen=True)
class SourceRange:
    """Byte offsets of a node within the source it was parsed from."""
    start_byte: int
    end_byte: int

    def slice(self, source: str | bytes) -> str | bytes:
        """Extract the content from source using this range."""
        return source[self.start_byte:self.end_byte]


@dataclass(frozen=True)
class SyntaxNodeView:
    """
    Grammar-independent view of a syntax tree node.

    Attributes:
        kind: Grammar node type (e.g. "function_definition", "type_definition")
        start_line: First row the node occupies
        end_line: Last row the node occupies (inclusive)
        byte_range: Exact byte offsets of the node in the parsed source
        name: Declared identifier for function definitions, if resolvable
    """
    kind: str
    start_line: int
    end_line: int
    byte_range: SourceRange
    name: Optional[str] = None

    @property
    def line_range(self) -> LineRange:
        return LineRange(self.start_line, self.end_line + 1)

    @property
    def is_function(self) -> bool:
        return self.kind in FUNCTION_KINDS


KindFilter = Callable[[SyntaxNodeView], bool]


def any_kind(node: SyntaxNodeView) -> bool:
    return True


def function_kind(node: SyntaxNodeView) -> bool:
    return node.is_function


def kinds(*names: str) -> KindFilter:
    """Build a filter accepting only the given node kinds."""
    accepted = frozenset(names)
    return lambda node: node.kind in accepted


@dataclass(frozen=True)
class ExtractedRegion:
    """Source text of one extracted syntax node, detached from the tree."""
    text: str
    kind: str
    lines: LineRange
    name: Optional[str] = None

    @property
    def line_count(self) -> int:
        return len(self.lines)

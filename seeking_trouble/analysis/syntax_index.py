"""Lookup of the top-level syntax node associated with a line."""

from __future__ import annotations

from typing import Optional

from .c_parser import CParser, ParsedSource
from .data import LineRange, SyntaxNodeView
from .intervals import has_intersection


class SyntaxIndex:
    """
    Finds the first top-level node reachable from the start of a query range.

    The lookup is a single shallow descent: the tree cursor moves from the
    root to the first child extending beyond ``(query.start, 0)``. That
    child is the candidate; it is returned only if its lines overlap the
    query.
    """

    def __init__(self, parsed: ParsedSource, parser: Optional[CParser] = None) -> None:
        self.parsed = parsed
        self._parser = parser or CParser()

    def find_next(self, query: LineRange) -> Optional[SyntaxNodeView]:
        """
        Return the candidate node for ``query`` or None.

        None is a normal outcome: the range falls in a gap between
        declarations or lies past the end of the tree.
        """
        if query.is_empty:
            return None

        cursor = self.parsed.tree.walk()
        if cursor.goto_first_child_for_point((query.start, 0)) is None:
            return None

        candidate = self._parser.describe(cursor.node)
        if has_intersection(query, candidate.line_range):
            return candidate
        return None

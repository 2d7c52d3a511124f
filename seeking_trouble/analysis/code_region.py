"""
Region extraction: whole syntactic units touched by a line range.

A CodeRegion owns the parsed source of one file. Given a line range it
walks the top-level nodes overlapping the range from left to right and
returns their complete source text, never clipped to the range.
"""

from __future__ import annotations

import logging
from typing import Optional

from .c_parser import CParser, ParsedSource
from .data import (
    ExtractedRegion,
    KindFilter,
    LineRange,
    LineRangeLike,
    any_kind,
    function_kind,
)
from .syntax_index import SyntaxIndex

logger = logging.getLogger(__name__)


class CodeRegion:
    """
    Extracts syntactic units of one source text by line range.

    The source is parsed once on construction; the resulting tree and the
    text it came from live and die with this object.
    """

    def __init__(
        self, source: str | bytes | ParsedSource, parser: Optional[CParser] = None
    ) -> None:
        self._parser = parser or CParser()
        if isinstance(source, ParsedSource):
            self.parsed = source
        else:
            self.parsed = self._parser.parse(source)
        self.index = SyntaxIndex(self.parsed, self._parser)

    def extract_regions(
        self, line_range: LineRangeLike, kind_filter: KindFilter = any_kind
    ) -> list[ExtractedRegion]:
        """
        Walk the top-level nodes overlapping ``line_range``.

        Each step asks the index for the next candidate; a candidate is kept
        when ``kind_filter`` accepts it, and the walk always resumes on the
        row after the candidate's last row. The lower bound strictly grows,
        so the walk ends within ``len(line_range)`` steps.
        """
        remaining = LineRange.coerce(line_range)
        regions: list[ExtractedRegion] = []

        while not self.parsed.is_empty and not remaining.is_empty:
            node = self.index.find_next(remaining)
            if node is None:
                break
            if kind_filter(node):
                regions.append(
                    ExtractedRegion(
                        text=self.parsed.text_of(node.byte_range),
                        kind=node.kind,
                        lines=node.line_range,
                        name=node.name,
                    )
                )
            remaining = remaining.with_start(node.end_line + 1)

        logger.debug("Extracted %d regions for lines %s", len(regions), line_range)
        return regions

    def extract_compounds_by(
        self, line_range: LineRangeLike, kind_filter: KindFilter
    ) -> list[str]:
        return [r.text for r in self.extract_regions(line_range, kind_filter)]

    def extract_compound(self, line_range: LineRangeLike) -> list[str]:
        """Every top-level construct touched by the range."""
        return self.extract_compounds_by(line_range, any_kind)

    def extract_functions(self, line_range: LineRangeLike) -> list[str]:
        """Only function definitions touched by the range."""
        return self.extract_compounds_by(line_range, function_kind)

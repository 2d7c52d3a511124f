"""
Analysis module for change sets and syntax-aware region extraction.

This module turns touched line numbers into merged intervals and, using
tree-sitter's C grammar, into the whole top-level constructs those
intervals touch.
"""

from .data import (
    ExtractedRegion,
    LineRange,
    SourceRange,
    SyntaxNodeView,
    any_kind,
    function_kind,
    kinds,
)
from .intervals import has_intersection, merge_line_numbers
from .change_set import ChangeSet, ChangeSetRangeError
from .c_parser import CParser, CParseError, ParsedSource, parse_c_source
from .syntax_index import SyntaxIndex
from .code_region import CodeRegion

__all__ = [
    "ChangeSet",
    "ChangeSetRangeError",
    "CodeRegion",
    "CParseError",
    "CParser",
    "ExtractedRegion",
    "LineRange",
    "ParsedSource",
    "SourceRange",
    "SyntaxIndex",
    "SyntaxNodeView",
    "any_kind",
    "function_kind",
    "has_intersection",
    "kinds",
    "merge_line_numbers",
    "parse_c_source",
]

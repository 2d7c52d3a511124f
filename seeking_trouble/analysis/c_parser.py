"""
C source code parser using tree-sitter.

Parses C source once into a ParsedSource, the immutable pairing of the
source bytes and the tree built from them. Node byte offsets are only
meaningful against that exact text, so the two are never handed out
separately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import tree_sitter
import tree_sitter_c

from .data import SourceRange, SyntaxNodeView

logger = logging.getLogger(__name__)

C_LANGUAGE = tree_sitter.Language(tree_sitter_c.language())

_FUNCTION_DECLARATOR_KINDS = (
    "function_declarator",
    "pointer_declarator",
    "parenthesized_declarator",
)
_DECLARATOR_KINDS = _FUNCTION_DECLARATOR_KINDS + ("array_declarator",)


class CParseError(RuntimeError):
    """Raised when source text cannot be turned into a usable syntax tree."""


@dataclass(frozen=True)
class ParsedSource:
    """
    Source text bundled with its syntax tree.

    Attributes:
        source: UTF-8 encoded source the tree was parsed from
        tree: tree-sitter Tree for ``source``
    """
    source: bytes
    tree: tree_sitter.Tree

    @property
    def root(self) -> tree_sitter.Node:
        return self.tree.root_node

    @property
    def is_empty(self) -> bool:
        return not self.source

    @property
    def has_errors(self) -> bool:
        return self.root.has_error

    def text_of(self, byte_range: SourceRange) -> str:
        """Exact source text of a byte range, decoded leniently."""
        return byte_range.slice(self.source).decode("utf-8", errors="replace")


class CParser:
    """
    Parser for C source files.

    One tree-sitter Parser is held per instance; parsing is one-shot and
    non-incremental.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict
        self._parser = tree_sitter.Parser(C_LANGUAGE)

    def parse(self, source: str | bytes, strict: Optional[bool] = None) -> ParsedSource:
        """
        Parse C source into a ParsedSource.

        Args:
            source: Source text; ``str`` is encoded as UTF-8.
            strict: Reject trees containing syntax errors. Defaults to the
                    parser's own setting.

        Raises:
            CParseError: no tree was produced, or (strict) the tree has errors.
        """
        source_bytes = source.encode("utf-8") if isinstance(source, str) else bytes(source)
        tree = self._parser.parse(source_bytes)
        if tree is None:
            raise CParseError("tree-sitter returned no tree")

        parsed = ParsedSource(source=source_bytes, tree=tree)
        if parsed.has_errors:
            if self.strict if strict is None else strict:
                raise CParseError("source contains syntax errors")
            logger.debug("Parsed source with syntax errors (%d bytes)", len(source_bytes))
        return parsed

    def describe(self, node: tree_sitter.Node) -> SyntaxNodeView:
        """Build the grammar-independent view of a node."""
        start_row = node.start_point[0]
        end_row, end_column = node.end_point[0], node.end_point[1]
        # A node ending at column 0 stops before that row.
        if end_column == 0 and end_row > start_row:
            end_row -= 1

        name = None
        if node.type == "function_definition":
            name = self._extract_function_name(node)

        return SyntaxNodeView(
            kind=node.type,
            start_line=start_row,
            end_line=end_row,
            byte_range=SourceRange(node.start_byte, node.end_byte),
            name=name,
        )

    def _extract_function_name(self, func_def_node: tree_sitter.Node) -> Optional[str]:
        """
        Extract function name from a function_definition node.
        
        Handles various declarator nestings:
        - Direct: void foo(void)
        - Pointer: int *foo(void)
        - Double pointer: char **foo(void)
        - Function pointer return: int (*foo(void))(int)
        - Parenthesized: void (foo)(void)
        """
        declarator = None
        for child in func_def_node.children:
            if child.type in _FUNCTION_DECLARATOR_KINDS:
                declarator = child
                break
        
        if not declarator:
            return None
        
        return self._find_identifier_in_declarator(declarator)
    
    def _find_identifier_in_declarator(self, node: tree_sitter.Node) -> Optional[str]:
        """Recursively find the identifier in nested declarators."""
        if node.type == "identifier":
            return node.text.decode("utf-8") if node.text else None
        
        for child in node.children:
            if child.type == "identifier":
                return child.text.decode("utf-8") if child.text else None
            elif child.type in _DECLARATOR_KINDS:
                result = self._find_identifier_in_declarator(child)
                if result:
                    return result
        
        return None


def parse_c_source(source: str | bytes, strict: bool = False) -> ParsedSource:
    """
    Parse C source text with a fresh CParser.

    Example:
        >>> parsed = parse_c_source("int main(void) { return 0; }")
        >>> parsed.root.type
        'translation_unit'
    """
    return CParser(strict=strict).parse(source)

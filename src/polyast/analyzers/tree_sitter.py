"""Tree-sitter backed analyzer base.

Converts a native tree-sitter parse tree into generic ``ASTNode`` trees:
- Only named nodes are emitted; punctuation and keywords are folded into
  their parent's properties by the dialect's ``describe`` hook
- Node types are converted to PascalCase (``class_declaration`` ->
  ``ClassDeclaration``, ``ERROR`` -> ``Error``)
- Every node carries its byte span and 1-based line / 0-based column range
- Leaves carry their source ``text``

The walk is iterative, so deeply nested sources cannot exhaust the stack.
"""

import threading
from abc import abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from polyast.analyzers.base import GrammarUnavailableError, LanguageAnalyzer, ParseError
from polyast.models.ast import ASTNode, PropertyValue
from polyast.utils.logging import get_logger

_logger = get_logger(__name__)

WHITESPACE = b" \t\r\n\f\v"

Properties = dict[str, PropertyValue | None]


@dataclass(frozen=True)
class Shift:
    """Offset applied to positions of a tree parsed from a slice of a file.

    ``column`` applies only to nodes on the slice's first row.
    """

    byte: int = 0
    row: int = 0
    column: int = 0


NO_SHIFT = Shift()


@dataclass
class Conversion:
    """Result of converting one native tree."""

    root: ASTNode
    error_count: int = 0
    error_bytes: int = 0


@lru_cache(maxsize=1024)
def pascal_case(node_type: str) -> str:
    """Convert a tree-sitter node type to a PascalCase category name."""
    parts = [part for part in node_type.split("_") if part]
    if not parts:
        return node_type
    return "".join(part[:1].upper() + part[1:].lower() for part in parts)


def non_whitespace_length(data: bytes) -> int:
    return len(data.translate(None, WHITESPACE))


def node_text(native: Any, source: bytes) -> str:
    """Source text covered by a native node."""
    return source[native.start_byte : native.end_byte].decode("utf-8", errors="replace")


def field_text(native: Any, field_name: str, source: bytes) -> str | None:
    """Text of a named field child, or None if the field is absent."""
    child = native.child_by_field_name(field_name)
    if child is None:
        return None
    return node_text(child, source)


def children_of_type(native: Any, *types: str) -> list[Any]:
    return [child for child in native.children if child.type in types]


def has_token(native: Any, token: str) -> bool:
    """Return True if a direct child token has the given type."""
    return any(child.type == token for child in native.children)


class GrammarCache:
    """Lazily created tree-sitter parsers, one set per thread.

    tree-sitter ``Parser`` objects keep mutable state, so worker threads
    never share one.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def parser(self, grammar: str) -> Any:
        """Return this thread's parser for ``grammar``.

        Raises:
            GrammarUnavailableError: If the grammar cannot be loaded
        """
        parsers: dict[str, Any] = self._local.__dict__.setdefault("parsers", {})
        parser = parsers.get(grammar)
        if parser is not None:
            return parser

        try:
            from tree_sitter_language_pack import get_parser
        except ImportError as e:
            raise GrammarUnavailableError(
                grammar, f"tree-sitter-language-pack not installed: {e}"
            ) from e

        try:
            parser = get_parser(grammar)
        except Exception as e:
            raise GrammarUnavailableError(
                grammar, f"Failed to initialize parser for {grammar}: {e}"
            ) from e

        _logger.debug(f"Initialized tree-sitter parser for {grammar}")
        parsers[grammar] = parser
        return parser

    def available(self, grammar: str) -> bool:
        try:
            self.parser(grammar)
            return True
        except GrammarUnavailableError:
            return False


GRAMMARS = GrammarCache()


def span_properties(native: Any, shift: Shift = NO_SHIFT) -> Properties:
    """Span and position properties for a native node."""
    start_row, start_column = native.start_point
    end_row, end_column = native.end_point
    return {
        "span_start": native.start_byte + shift.byte,
        "span_length": native.end_byte - native.start_byte,
        "start_line": start_row + shift.row + 1,
        "start_column": start_column + (shift.column if start_row == 0 else 0),
        "end_line": end_row + shift.row + 1,
        "end_column": end_column + (shift.column if end_row == 0 else 0),
    }


def convert_tree(
    native_root: Any,
    source: bytes,
    describe: Any,
    shift: Shift = NO_SHIFT,
    root_type: str | None = None,
) -> Conversion:
    """Convert a native tree into a generic one.

    Args:
        native_root: tree-sitter root node
        source: Bytes the native offsets index into
        describe: Callable ``(native, source) -> dict`` adding dialect properties
        shift: Offset to add when the tree was parsed from a slice
        root_type: Replacement ``node_type`` for the root

    Returns:
        Conversion holding the root, error count and error-covered bytes
    """

    def make(native: Any) -> ASTNode:
        node = ASTNode(node_type=pascal_case(native.type))
        for key, value in span_properties(native, shift).items():
            node.set(key, value)
        for key, value in describe(native, source).items():
            node.set(key, value)
        if native.is_missing:
            node.set("is_missing", True)
        return node

    root = make(native_root)
    if root_type:
        root.node_type = root_type
    conversion = Conversion(root=root)

    stack: list[tuple[Any, ASTNode, bool]] = [(native_root, root, False)]
    while stack:
        native, node, inside_error = stack.pop()
        if native.is_error:
            conversion.error_count += 1
            if not inside_error:
                conversion.error_bytes += non_whitespace_length(
                    source[native.start_byte : native.end_byte]
                )
            inside_error = True

        named = []
        for child in native.children:
            if child.is_missing and not child.is_named:
                conversion.error_count += 1
            if child.is_named:
                named.append(child)

        if not named:
            if node is not root:
                node.set("text", node_text(native, source))
            continue

        for child in named:
            if child.is_missing:
                conversion.error_count += 1
            stack.append((child, node.add_child(make(child)), inside_error))

    return conversion


class TreeSitterAnalyzer(LanguageAnalyzer):
    """Analyzer whose dialect is parsed by a tree-sitter grammar.

    Subclasses set ``grammar`` and ``capabilities`` and implement ``describe``.
    """

    grammar: str

    def parse(self, source: bytes) -> Any:
        """Parse bytes with this thread's parser and return the native tree."""
        return GRAMMARS.parser(self.grammar).parse(source)

    def check_available(self) -> bool:
        """Return True if the grammar can be loaded."""
        return GRAMMARS.available(self.grammar)

    @abstractmethod
    def describe(self, native: Any, source: bytes) -> Properties:
        """Return dialect-specific properties for a native node."""

    def convert(self, source: bytes, shift: Shift = NO_SHIFT) -> Conversion:
        """Parse and convert without judging the error ratio."""
        tree = self.parse(source)
        return convert_tree(
            tree.root_node,
            source,
            self.describe,
            shift=shift,
            root_type=self.capabilities.root_type,
        )

    def build_tree(self, path: str, source: bytes) -> tuple[ASTNode, int]:
        tree = self.parse(source)
        native_root = tree.root_node
        if native_root.is_error:
            raise ParseError(path, "no recognizable syntax", error_ratio=1.0)

        conversion = convert_tree(
            native_root, source, self.describe, root_type=self.capabilities.root_type
        )
        if conversion.error_count:
            total = non_whitespace_length(source)
            ratio = conversion.error_bytes / total if total else 0.0
            if ratio > self.max_error_ratio or self.max_error_ratio == 0.0:
                raise ParseError(
                    path,
                    f"{conversion.error_count} syntax error(s) covering {ratio:.0%} of the source",
                    error_ratio=ratio,
                )
            _logger.debug(
                f"Recovered {conversion.error_count} syntax error(s) in {path} ({ratio:.0%})"
            )
        return conversion.root, conversion.error_count

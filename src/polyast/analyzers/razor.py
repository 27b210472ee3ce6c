"""Razor template analyzer.

Razor mixes HTML markup with embedded C#. Analysis runs in three passes:

1. A byte scanner splits out the code constructs (directives, comments,
   ``@{ }`` / ``@code { }`` blocks, control blocks, explicit and implicit
   expressions). Code bodies are split into code and markup runs: a tag,
   an ``@:`` line or a nested ``@`` construct in statement position starts
   markup. Unterminated constructs raise ``ParseError``.
2. The markup is parsed once with the tree-sitter ``html`` grammar over a
   view of the file where code regions are blanked to spaces, so all byte
   offsets and line numbers stay those of the original file.
3. Each code construct becomes a node inserted into the deepest node
   containing it. Its code is parsed as C# over a view with the markup runs
   blanked, and markup nodes are placed inside the C# nodes enclosing them.

The root node type is ``TemplateDocument``.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any

from polyast.analyzers.base import (
    DEFAULT_MAX_ERROR_RATIO,
    AnalyzerCapabilities,
    LanguageAnalyzer,
    ParseError,
)
from polyast.analyzers.csharp import CSharpAnalyzer
from polyast.analyzers.tree_sitter import (
    GRAMMARS,
    Conversion,
    Properties,
    Shift,
    children_of_type,
    convert_tree,
    node_text,
    non_whitespace_length,
)
from polyast.extractors.vocabulary import CSHARP_VOCABULARY
from polyast.models.ast import ASTNode
from polyast.utils.logging import get_logger

_logger = get_logger(__name__)

DIRECTIVES = frozenset(
    {
        "addTagHelper",
        "attribute",
        "implements",
        "inherits",
        "inject",
        "layout",
        "model",
        "namespace",
        "page",
        "preservewhitespace",
        "removeTagHelper",
        "rendermode",
        "tagHelperPrefix",
        "typeparam",
        "using",
    }
)

CODE_BLOCK_KEYWORDS = frozenset({"code", "functions"})

CONTROL_KEYWORDS = frozenset(
    {"if", "foreach", "for", "while", "switch", "using", "lock", "try", "do", "section"}
)

# Clauses that may follow a control block's closing brace
CONTINUATIONS = {"if": ("else",), "try": ("catch", "finally"), "do": ("while",)}

# Members of @code / @functions blocks are parsed inside this wrapper
MEMBER_WRAPPER = b"class __RazorCode {"

# Switch sections are parsed inside this wrapper
SWITCH_WRAPPER = b"switch (__razor) {"

VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)

NEWLINE = re.compile(rb"\n")


def _is_ident_start(byte: int) -> bool:
    return byte == 0x5F or 0x41 <= byte <= 0x5A or 0x61 <= byte <= 0x7A or byte >= 0x80


def _is_ident_byte(byte: int) -> bool:
    return _is_ident_start(byte) or 0x30 <= byte <= 0x39


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _blank(data: bytes | bytearray) -> bytes:
    """Replace everything but newlines with spaces."""
    return bytes(b if b == 0x0A else 0x20 for b in data)


class LineIndex:
    """Maps byte offsets to 1-based lines and 0-based byte columns."""

    def __init__(self, source: bytes) -> None:
        self._starts = [0] + [match.end() for match in NEWLINE.finditer(source)]

    def position(self, offset: int) -> tuple[int, int]:
        row = bisect_right(self._starts, offset) - 1
        return row + 1, offset - self._starts[row]


@dataclass
class Segment:
    """One Razor code construct found by the scanner.

    Attributes:
        node_type: Generic node type to emit
        start: Byte offset of the ``@`` transition
        end: Byte offset just past the construct
        properties: Scalar properties for the emitted node
        content: C# content range for code blocks
        bodies: Body ranges for control blocks
        markup: Markup runs inside the content or bodies, in source order
        children: Constructs nested in the markup runs
    """

    node_type: str
    start: int
    end: int
    properties: Properties = field(default_factory=dict)
    content: tuple[int, int] | None = None
    bodies: list[tuple[int, int]] = field(default_factory=list)
    markup: list[tuple[int, int]] = field(default_factory=list)
    children: list["Segment"] = field(default_factory=list)

    def code_ranges(self) -> list[tuple[int, int]]:
        """Ranges holding code rather than markup."""
        ranges = []
        cursor = self.start
        for run_start, run_end in self.markup:
            if cursor < run_start:
                ranges.append((cursor, run_start))
            cursor = run_end
        if cursor < self.end:
            ranges.append((cursor, self.end))
        return ranges

    def code_parts(self) -> list[tuple[int, int]]:
        """Ranges parsed as C#: the block content or each control body."""
        if self.content is not None:
            return [self.content]
        if self.properties.get("keyword") == "section":
            return []
        return list(self.bodies)

    def flatten(self) -> list["Segment"]:
        """This segment and its nested segments, in pre-order."""
        result = []
        stack = [self]
        while stack:
            segment = stack.pop()
            result.append(segment)
            stack.extend(reversed(segment.children))
        return result


class RazorScanner:
    """Finds Razor code constructs in template bytes."""

    def __init__(self, source: bytes, path: str) -> None:
        self.source = source
        self.path = path
        self.lines = LineIndex(source)

    def _fail(self, offset: int, what: str) -> ParseError:
        line, column = self.lines.position(offset)
        return ParseError(self.path, f"unterminated {what} at line {line}, column {column}")

    def scan(self) -> list[Segment]:
        return self.segments(0, len(self.source))

    def segments(self, start: int, end: int) -> list[Segment]:
        """Scan markup in ``[start, end)`` for constructs, recursing into bodies."""
        found = []
        cursor = start
        while cursor < end:
            at = self.source.find(b"@", cursor, end)
            if at < 0:
                break
            segment, cursor = self._read_transition(at, end)
            if segment is not None:
                for run_start, run_end in segment.markup:
                    segment.children.extend(self.segments(run_start, run_end))
                found.append(segment)
        return found

    def split_code(self, start: int, end: int) -> list[tuple[int, int]]:
        """Find the markup runs inside a code body.

        Markup starts in statement position (after ``;``, ``{``, ``}``, ``:``
        or at the start of the body) with a tag, an ``@:`` line or a nested
        ``@`` construct. Everything else is code.
        """
        src = self.source
        runs = []
        cursor = start
        statement = True
        while cursor < end:
            byte = src[cursor]
            following = src[cursor + 1] if cursor + 1 < end else 0
            if byte in b" \t\r\n":
                cursor += 1
                continue
            if byte == 0x2F and following == 0x2F:
                newline = src.find(b"\n", cursor, end)
                cursor = end if newline < 0 else newline + 1
                continue
            if byte == 0x2F and following == 0x2A:
                close = src.find(b"*/", cursor + 2, end)
                cursor = end if close < 0 else close + 2
                continue

            if statement and byte == 0x3C and (_is_ident_start(following) or following == 0x2F):
                run_end = self._element_end(cursor, end)
                runs.append((cursor, run_end))
                cursor = run_end
                continue
            if statement and byte == 0x40 and following == 0x3A:
                newline = src.find(b"\n", cursor, end)
                run_end = end if newline < 0 else newline
                runs.append((cursor, run_end))
                cursor = run_end
                continue
            if statement and byte == 0x40 and following != 0x22:
                segment, run_end = self._read_transition(cursor, end)
                if segment is not None:
                    runs.append((cursor, run_end))
                    cursor = run_end
                    continue

            if byte == 0x22:
                cursor = self._skip_string(cursor, end)
            elif byte == 0x27:
                cursor = self._skip_char(cursor, end)
            elif byte == 0x40 and following == 0x22:
                cursor = self._skip_verbatim(cursor, end)
            else:
                cursor += 1
            statement = byte in b";{}:"
        return runs

    def _tag_end(self, lt: int, end: int) -> int:
        """Index just past the ``>`` closing the tag opened at ``lt``."""
        src = self.source
        cursor = lt + 1
        while cursor < end:
            byte = src[cursor]
            if byte in b"\"'":
                close = src.find(bytes([byte]), cursor + 1, end)
                if close < 0:
                    return end
                cursor = close + 1
                continue
            if byte == 0x3E:
                return cursor + 1
            cursor += 1
        return end

    def _tag_name_end(self, index: int, end: int) -> int:
        while index < end and (_is_ident_byte(self.source[index]) or self.source[index] in b"-:."):
            index += 1
        return index

    def _element_end(self, lt: int, end: int) -> int:
        """Index just past the element starting at ``lt``.

        An element never closed runs to the end of the body.
        """
        src = self.source
        tag_end = self._tag_end(lt, end)
        if src[lt + 1] == 0x2F or src[tag_end - 1] != 0x3E:
            return tag_end
        name_end = self._tag_name_end(lt + 1, end)
        name = src[lt + 1 : name_end]
        if src[tag_end - 2] == 0x2F or _decode(name).lower() in VOID_ELEMENTS:
            return tag_end

        depth = 1
        cursor = tag_end
        while cursor < end:
            lt = src.find(b"<", cursor, end)
            if lt < 0:
                break
            closing = lt + 1 < end and src[lt + 1] == 0x2F
            name_start = lt + 2 if closing else lt + 1
            if self._tag_name_end(name_start, end) != name_start + len(name) or (
                src[name_start : name_start + len(name)] != name
            ):
                cursor = lt + 1
                continue
            cursor = self._tag_end(lt, end)
            if closing:
                depth -= 1
                if depth == 0:
                    return cursor
            elif src[cursor - 2] != 0x2F:
                depth += 1
        return end

    # =========================================================================
    # Lexical helpers
    # =========================================================================

    def _skip_ws(self, index: int, end: int) -> int:
        while index < end and self.source[index] in b" \t\r\n":
            index += 1
        return index

    def _identifier_end(self, index: int, end: int) -> int:
        while index < end and _is_ident_byte(self.source[index]):
            index += 1
        return index

    def _word_at(self, index: int, end: int) -> tuple[str, int]:
        if index < end and _is_ident_start(self.source[index]):
            word_end = self._identifier_end(index, end)
            return _decode(self.source[index:word_end]), word_end
        return "", index

    def _skip_string(self, index: int, end: int) -> int:
        """Skip a regular string literal; an unclosed quote is plain text."""
        src = self.source
        cursor = index + 1
        while cursor < end:
            byte = src[cursor]
            if byte == 0x5C:
                cursor += 2
                continue
            if byte == 0x22:
                return cursor + 1
            if byte == 0x0A:
                break
            cursor += 1
        return index + 1

    def _skip_verbatim(self, index: int, end: int) -> int:
        """Skip ``@"..."`` where ``""`` escapes a quote."""
        src = self.source
        cursor = index + 2
        while cursor < end:
            if src[cursor] == 0x22:
                if cursor + 1 < end and src[cursor + 1] == 0x22:
                    cursor += 2
                    continue
                return cursor + 1
            cursor += 1
        return index + 1

    def _skip_char(self, index: int, end: int) -> int:
        """Skip a character literal; apostrophes in markup text are left alone."""
        close = self.source.find(b"'", index + 1, min(end, index + 10))
        if close < 0 or b"\n" in self.source[index:close]:
            return index + 1
        return close + 1

    def match(self, open_index: int, end: int) -> int:
        """Return the index of the bracket closing the one at ``open_index``.

        String literals and comments are skipped.

        Raises:
            ParseError: If the bracket is never closed
        """
        src = self.source
        opener = src[open_index]
        closer = {0x28: 0x29, 0x5B: 0x5D, 0x7B: 0x7D}[opener]
        depth = 1
        cursor = open_index + 1
        while cursor < end:
            byte = src[cursor]
            following = src[cursor + 1] if cursor + 1 < end else 0
            if byte == 0x22:
                cursor = self._skip_string(cursor, end)
            elif byte == 0x27:
                cursor = self._skip_char(cursor, end)
            elif byte == 0x40 and following == 0x22:
                cursor = self._skip_verbatim(cursor, end)
            elif byte == 0x40 and following == 0x2A:
                close = src.find(b"*@", cursor + 2, end)
                if close < 0:
                    raise self._fail(cursor, "comment")
                cursor = close + 2
            elif byte == 0x2F and following == 0x2F:
                newline = src.find(b"\n", cursor, end)
                cursor = end if newline < 0 else newline + 1
            elif byte == 0x2F and following == 0x2A:
                close = src.find(b"*/", cursor + 2, end)
                cursor = end if close < 0 else close + 2
            else:
                if byte == opener:
                    depth += 1
                elif byte == closer:
                    depth -= 1
                    if depth == 0:
                        return cursor
                cursor += 1
        raise self._fail(open_index, "block" if opener == 0x7B else "expression")

    # =========================================================================
    # Constructs
    # =========================================================================

    def _read_transition(self, at: int, end: int) -> tuple[Segment | None, int]:
        src = self.source
        after = at + 1
        # e-mail addresses and other embedded @ are literal text
        if at > 0 and _is_ident_byte(src[at - 1]):
            return None, after
        if after >= end:
            return None, after

        byte = src[after]
        if byte == 0x40:
            return None, after + 1

        if byte == 0x2A:
            close = src.find(b"*@", after + 1, end)
            if close < 0:
                raise self._fail(at, "comment")
            text = _decode(src[after + 1 : close]).strip()
            return Segment("RazorComment", at, close + 2, {"text": text}), close + 2

        if byte == 0x7B:
            close = self.match(after, end)
            segment = Segment(
                "CodeBlock",
                at,
                close + 1,
                content=(after + 1, close),
                markup=self.split_code(after + 1, close),
            )
            return segment, close + 1

        if byte == 0x28:
            close = self.match(after, end)
            expression = _decode(src[after + 1 : close]).strip()
            return (
                Segment("ExplicitExpression", at, close + 1, {"expression": expression}),
                close + 1,
            )

        word, word_end = self._word_at(after, end)
        if not word:
            return None, after

        if word in CODE_BLOCK_KEYWORDS:
            brace = self._skip_ws(word_end, end)
            if brace < end and src[brace] == 0x7B:
                close = self.match(brace, end)
                segment = Segment(
                    "CodeBlock", at, close + 1, {"keyword": word}, content=(brace + 1, close)
                )
                return segment, close + 1

        if word in CONTROL_KEYWORDS and not (
            word == "using" and self._is_using_directive(word_end, end)
        ):
            segment = self._read_control(at, word, word_end, end)
            if segment is not None:
                return segment, segment.end

        if word in DIRECTIVES:
            return self._read_directive(at, word, word_end, end)

        expression_start = after
        if word == "await":
            operand = self._skip_ws(word_end, end)
            if operand < end and _is_ident_start(src[operand]):
                word_end = self._identifier_end(operand, end)
        # Directive attributes (@onclick="...", @bind-Value, @on:event) are markup
        if word_end < end and src[word_end] in b"=-:":
            return None, word_end
        expression_end = self._implicit_end(word_end, end)
        expression = _decode(src[expression_start:expression_end])
        return (
            Segment("ImplicitExpression", at, expression_end, {"expression": expression}),
            expression_end,
        )

    def _is_using_directive(self, word_end: int, end: int) -> bool:
        following = self._skip_ws(word_end, end)
        return following < end and self.source[following] != 0x28

    def _read_directive(
        self, at: int, word: str, word_end: int, end: int
    ) -> tuple[Segment, int]:
        line_end = self.source.find(b"\n", word_end, end)
        if line_end < 0:
            line_end = end
        stop = line_end
        while stop > word_end and self.source[stop - 1] in b" \t\r":
            stop -= 1
        value = _decode(self.source[word_end:stop]).strip()
        segment = Segment("RazorDirective", at, stop, {"name": word, "value": value or None})
        return segment, line_end

    def _implicit_end(self, index: int, end: int) -> int:
        """Extend an implicit expression over member access, calls and indexers."""
        src = self.source
        while index < end:
            byte = src[index]
            following = src[index + 1] if index + 1 < end else 0
            if byte == 0x2E and _is_ident_start(following):
                index = self._identifier_end(index + 1, end)
            elif byte == 0x3F and following == 0x2E and index + 2 < end and _is_ident_start(src[index + 2]):
                index = self._identifier_end(index + 2, end)
            elif byte in (0x28, 0x5B):
                index = self.match(index, end) + 1
            else:
                break
        return index

    def _read_control(self, at: int, word: str, word_end: int, end: int) -> Segment | None:
        src = self.source
        properties: Properties = {"keyword": word}
        cursor = self._skip_ws(word_end, end)

        if word == "section":
            name, name_end = self._word_at(cursor, end)
            properties["condition"] = name or None
            cursor = self._skip_ws(name_end, end)
        elif cursor < end and src[cursor] == 0x28:
            close = self.match(cursor, end)
            properties["condition"] = _decode(src[cursor + 1 : close]).strip()
            cursor = self._skip_ws(close + 1, end)
        elif word not in ("try", "do"):
            return None

        if cursor >= end or src[cursor] != 0x7B:
            return None
        close = self.match(cursor, end)
        bodies = [(cursor + 1, close)]
        segment_end = close + 1

        while word in CONTINUATIONS:
            clause_start = self._skip_ws(segment_end, end)
            clause, clause_end = self._word_at(clause_start, end)
            if clause not in CONTINUATIONS[word]:
                break
            cursor = self._skip_ws(clause_end, end)
            if clause == "else":
                nested, nested_end = self._word_at(cursor, end)
                if nested == "if":
                    cursor = self._skip_ws(nested_end, end)
            if cursor < end and src[cursor] == 0x28:
                cursor = self._skip_ws(self.match(cursor, end) + 1, end)
            if word == "do":
                segment_end = cursor + 1 if cursor < end and src[cursor] == 0x3B else cursor
                break
            if cursor >= end or src[cursor] != 0x7B:
                break
            close = self.match(cursor, end)
            bodies.append((cursor + 1, close))
            segment_end = close + 1

        if word == "section":
            markup = bodies
        else:
            markup = [run for start, stop in bodies for run in self.split_code(start, stop)]
        return Segment("ControlBlock", at, segment_end, properties, bodies=bodies, markup=markup)


def _describe_markup(native: Any, source: bytes) -> Properties:
    kind = native.type
    if kind in ("element", "script_element", "style_element"):
        for tag in children_of_type(native, "start_tag", "self_closing_tag"):
            names = children_of_type(tag, "tag_name")
            if names:
                return {"name": node_text(names[0], source)}
        return {}
    if kind in ("start_tag", "end_tag", "self_closing_tag"):
        names = children_of_type(native, "tag_name")
        return {"name": node_text(names[0], source)} if names else {}
    if kind == "attribute":
        names = children_of_type(native, "attribute_name")
        return {"name": node_text(names[0], source)} if names else {}
    return {}


def _span(node: ASTNode) -> tuple[int, int]:
    start = node.get("span_start", 0)
    return start, start + node.get("span_length", 0)


class RazorAnalyzer(LanguageAnalyzer):
    """Analyzer for Razor templates (``.cshtml`` and ``.razor``).

    Embedded C# is parsed by a ``CSharpAnalyzer``; Razor files belong to
    ``.csproj`` projects, so this analyzer claims no project extension.
    """

    markup_grammar = "html"
    capabilities = AnalyzerCapabilities(
        language="razor",
        file_extensions=frozenset({".cshtml", ".razor"}),
        root_type="TemplateDocument",
        name="Razor",
        description="Razor templates: html markup with embedded C#",
    )
    vocabulary = CSHARP_VOCABULARY.for_language("razor")

    def __init__(
        self,
        max_error_ratio: float = DEFAULT_MAX_ERROR_RATIO,
        code_analyzer: CSharpAnalyzer | None = None,
    ) -> None:
        super().__init__(max_error_ratio)
        self._code = code_analyzer or CSharpAnalyzer(max_error_ratio)

    def check_available(self) -> bool:
        return GRAMMARS.available(self.markup_grammar) and self._code.check_available()

    def build_tree(self, path: str, source: bytes) -> tuple[ASTNode, int]:
        scanner = RazorScanner(source, path)
        segments = scanner.scan()

        view = bytearray(source)
        for segment in segments:
            for nested in segment.flatten():
                for start, stop in nested.code_ranges():
                    view[start:stop] = _blank(view[start:stop])
                for start, _ in nested.markup:
                    if source.startswith(b"@:", start):
                        view[start : start + 2] = b"  "
        markup_view = bytes(view)

        tree = GRAMMARS.parser(self.markup_grammar).parse(markup_view)
        conversion = convert_tree(
            tree.root_node,
            source,
            _describe_markup,
            root_type=self.capabilities.root_type,
        )
        root = conversion.root
        # The document spans the file, not just its first markup byte
        self._set_span(root, 0, len(source), scanner.lines)
        error_count = conversion.error_count
        error_bytes = conversion.error_bytes

        for segment in segments:
            for nested in segment.flatten():
                node, errors, covered = self._segment_node(nested, source, scanner.lines)
                error_count += errors
                error_bytes += covered
                self._insert(root, node, source, markup_view, scanner.lines)

        if error_count:
            total = non_whitespace_length(source)
            ratio = error_bytes / total if total else 0.0
            if ratio > self.max_error_ratio or self.max_error_ratio == 0.0:
                raise ParseError(
                    path,
                    f"{error_count} syntax error(s) covering {ratio:.0%} of the template",
                    error_ratio=ratio,
                )
            _logger.debug(f"Recovered {error_count} syntax error(s) in {path}")
        return root, error_count

    # =========================================================================
    # Node construction
    # =========================================================================

    @staticmethod
    def _set_span(node: ASTNode, start: int, end: int, lines: LineIndex) -> None:
        start_line, start_column = lines.position(start)
        end_line, end_column = lines.position(end)
        node.set("span_start", start)
        node.set("span_length", end - start)
        node.set("start_line", start_line)
        node.set("start_column", start_column)
        node.set("end_line", end_line)
        node.set("end_column", end_column)

    def _positioned(
        self, node_type: str, start: int, end: int, lines: LineIndex
    ) -> ASTNode:
        node = ASTNode(node_type=node_type)
        self._set_span(node, start, end, lines)
        return node

    def _segment_node(
        self, segment: Segment, source: bytes, lines: LineIndex
    ) -> tuple[ASTNode, int, int]:
        """Build the node for one construct, parsing its C# parts."""
        node = self._positioned(segment.node_type, segment.start, segment.end, lines)
        for key, value in segment.properties.items():
            node.set(key, value)

        error_count = error_bytes = 0
        for start, end in segment.code_parts():
            conversion, members = self._parse_code(segment, start, end, source, lines)
            for child in members.detach_children():
                node.add_child(child)
            error_count += conversion.error_count
            error_bytes += conversion.error_bytes
        return node, error_count, error_bytes

    def _parse_code(
        self, segment: Segment, start: int, end: int, source: bytes, lines: LineIndex
    ) -> tuple[Conversion, ASTNode]:
        """Parse ``[start, end)`` as C# with its markup runs blanked.

        Returns:
            The conversion and the node whose children are the parsed code
        """
        code = bytearray(source[start:end])
        for run_start, run_end in segment.markup:
            if start <= run_start and run_end <= end:
                code[run_start - start : run_end - start] = _blank(
                    code[run_start - start : run_end - start]
                )

        keyword = segment.properties.get("keyword")
        if keyword in CODE_BLOCK_KEYWORDS:
            wrapper, wrapper_type, body_type = MEMBER_WRAPPER, "ClassDeclaration", "DeclarationList"
        elif keyword == "switch":
            wrapper, wrapper_type, body_type = SWITCH_WRAPPER, "SwitchStatement", "SwitchBody"
        else:
            wrapper, wrapper_type, body_type = b"", "", ""

        line, column = lines.position(start)
        shift = Shift(byte=start - len(wrapper), row=line - 1, column=column - len(wrapper))
        if not wrapper:
            conversion = self._code.convert(bytes(code), shift)
            return conversion, conversion.root
        conversion = self._code.convert(wrapper + bytes(code) + b"}", shift)
        return conversion, self._wrapped_members(conversion.root, wrapper_type, body_type)

    @staticmethod
    def _wrapped_members(root: ASTNode, wrapper_type: str, body_type: str) -> ASTNode:
        wrapper = next((n for n in root.walk() if n.node_type == wrapper_type), None)
        if wrapper is not None:
            body = wrapper.first_child(body_type)
            if body is not None:
                return body
        return root

    # =========================================================================
    # Merging code nodes into the markup tree
    # =========================================================================

    @staticmethod
    def _place(parent: ASTNode, child: ASTNode) -> None:
        """Insert ``child`` in span order under the deepest node containing it."""
        start, end = _span(child)
        while True:
            container = None
            for candidate in parent.children:
                if candidate.node_type == "Text" and not candidate.children:
                    continue
                candidate_start, candidate_end = _span(candidate)
                if candidate_start <= start and end <= candidate_end:
                    container = candidate
                    break
            if container is None:
                break
            parent = container

        position = len(parent.children)
        for index, sibling in enumerate(parent.children):
            if _span(sibling)[0] >= start:
                position = index
                break
        parent.insert_child(position, child)

    def _insert(
        self, root: ASTNode, node: ASTNode, source: bytes, view: bytes, lines: LineIndex
    ) -> None:
        """Insert ``node`` under the deepest node containing its span.

        Text leaves overlapping the span are split around it, and siblings
        lying wholly inside the span are moved under ``node``.
        """
        start, end = _span(node)
        parent = root
        while True:
            container = None
            for child in parent.children:
                if child.node_type == "Text" and not child.children:
                    continue
                child_start, child_end = _span(child)
                if child_start <= start and end <= child_end:
                    container = child
                    break
            if container is None:
                break
            parent = container

        siblings = []
        for child in parent.detach_children():
            child_start, child_end = _span(child)
            if (
                child.node_type == "Text"
                and not child.children
                and child_start < end
                and start < child_end
            ):
                siblings.extend(
                    self._split_text(child_start, child_end, start, end, source, view, lines)
                )
            else:
                siblings.append(child)

        placed = False
        for child in siblings:
            child_start, child_end = _span(child)
            if start <= child_start and child_end <= end:
                self._place(node, child)
                continue
            if not placed and child_start >= start:
                parent.add_child(node)
                placed = True
            parent.add_child(child)
        if not placed:
            parent.add_child(node)

    def _split_text(
        self,
        text_start: int,
        text_end: int,
        start: int,
        end: int,
        source: bytes,
        view: bytes,
        lines: LineIndex,
    ) -> list[ASTNode]:
        """Cut a markup text run at a code construct's boundaries."""
        pieces = []
        for piece_start, piece_end in (
            (text_start, min(text_end, start)),
            (max(text_start, start), min(text_end, end)),
            (max(text_start, end), text_end),
        ):
            while piece_start < piece_end and view[piece_start] in b" \t\r\n":
                piece_start += 1
            while piece_end > piece_start and view[piece_end - 1] in b" \t\r\n":
                piece_end -= 1
            if piece_start >= piece_end:
                continue
            piece = self._positioned("Text", piece_start, piece_end, lines)
            piece.set("text", _decode(source[piece_start:piece_end]))
            pieces.append(piece)
        return pieces

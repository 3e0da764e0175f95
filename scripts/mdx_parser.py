#!/usr/bin/env python3
"""
MDX Document Parser

Builds an mdx_ast tree from Markdown-with-components source, using
markdown-it-py for the Markdown parts.

Key Features:
- JSX block tags (<Steps>, <TabsBarItem id={"a"} />, <div>) become Component nodes;
  attribute expressions may nest braces and span lines
- Markdown between tags is parsed with markdown-it-py and keeps real line/column
- Leading YAML frontmatter and top-level import/export lines are kept as nodes
- Fenced code is never scanned for tags
- Unbalanced tags raise MdxParseError with the offending position
- Cache parsed trees by key

A line is treated as a tag line when its first non-blank characters open or
close a JSX tag. Components used inline in the middle of prose stay part of
that prose.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from markdown_it import MarkdownIt
from markdown_it.token import Token

from mdx_ast import Attribute, Component, Element, Node, Paragraph, Position, Root, Text

logger = logging.getLogger(__name__)


# Tag name must be followed by whitespace, '/', '>' or the end of the segment,
# so autolinks such as <https://example.com> are left to Markdown
TAG_START_PATTERN = re.compile(r"<(?P<closing>/)?(?P<name>[A-Za-z][\w.-]*)(?=[\s/>]|$)")
TAG_LINE_PATTERN = re.compile(r"^\s*" + TAG_START_PATTERN.pattern)

ATTRIBUTE_NAME_PATTERN = re.compile(r"""[^\s=<>/"'{}]+""")
ATTRIBUTE_EQUALS_PATTERN = re.compile(r"\s*=\s*")
FENCE_PATTERN = re.compile(r"^(`{3,}|~{3,})")
ESM_PATTERN = re.compile(r"^(import|export)\s")

# markdown-it token base type -> node kind
BLOCK_KINDS = {
    "heading": "heading",
    "bullet_list": "list",
    "ordered_list": "list",
    "list_item": "listItem",
    "blockquote": "blockquote",
    "table": "table",
    "thead": "tableHead",
    "tbody": "tableBody",
    "tr": "tableRow",
    "th": "tableCell",
    "td": "tableCell",
    "fence": "code",
    "code_block": "code",
    "hr": "thematicBreak",
    "html_block": "html",
}


class MdxParseError(Exception):
    """
    Raised when a document cannot be turned into a tree.

    Attributes:
        reason: Description of the problem
        line: Line number (1-based)
        column: Column number (1-based)
    """

    def __init__(self, reason: str, line: int, column: int):
        super().__init__(f"{reason} ({line}:{column})")
        self.reason = reason
        self.line = line
        self.column = column


@dataclass
class _OpenComponent:
    name: str
    attributes: Tuple[Attribute, ...]
    position: Position
    children: List[Node] = field(default_factory=list)

    def build(self) -> Component:
        return Component(
            name=self.name,
            attributes=self.attributes,
            children=tuple(self.children),
            position=self.position,
        )


def _kind_for(token: Token) -> str:
    base = token.type[:-len("_open")] if token.type.endswith("_open") else token.type
    return BLOCK_KINDS.get(base, base)


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def _offset_position(segment: str, first_line: int, offset: int) -> Position:
    """Map an offset inside a (possibly multi-line) segment to a position."""
    line = first_line + segment.count("\n", 0, offset)
    column = offset - segment.rfind("\n", 0, offset)
    return Position(line=line, column=column)


@dataclass(frozen=True)
class _Tag:
    name: str
    closing: bool
    self_closing: bool
    attributes: str
    start: int
    end: int


def _expression_end(source: str, start: int) -> Optional[int]:
    """
    Offset just past the brace matching the '{' at start.

    Nested braces are counted; braces inside string literals are ignored.
    Returns None when the expression is not closed within source.
    """
    depth = 0
    quote = None
    index = start
    while index < len(source):
        char = source[index]
        if quote:
            if char == "\\":
                index += 1
            elif char == quote:
                quote = None
        elif char in "\"'`":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
        index += 1
    return None


def _tag_end(segment: str, start: int) -> Optional[int]:
    """Offset just past the '>' ending a tag whose attributes begin at start, or None."""
    quote = None
    index = start
    while index < len(segment):
        char = segment[index]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "{":
            end = _expression_end(segment, index)
            if end is None:
                return None
            index = end
            continue
        elif char == ">":
            return index + 1
        index += 1
    return None


def scan_tags(segment: str) -> Tuple[List[_Tag], Optional[int]]:
    """
    Find the tags in a tag-line segment.

    Returns:
        Complete tags in order, and the offset of a trailing tag that is
        still missing its closing '>' (None when every tag is complete)
    """
    tags = []
    cursor = 0
    while True:
        match = TAG_START_PATTERN.search(segment, cursor)
        if match is None:
            return tags, None

        end = _tag_end(segment, match.end())
        if end is None:
            return tags, match.start()

        body = segment[match.end():end - 1].rstrip()
        self_closing = body.endswith("/")
        tags.append(_Tag(
            name=match.group("name"),
            closing=bool(match.group("closing")),
            self_closing=self_closing,
            attributes=body[:-1] if self_closing else body,
            start=match.start(),
            end=end,
        ))
        cursor = end


def _expression_value(expression: str) -> str:
    """Unquote string literals written as {"value"}; keep other expressions as source."""
    expression = expression.strip()
    if len(expression) >= 2 and expression[0] == expression[-1] and expression[0] in "\"'`":
        return expression[1:-1]
    return expression


def parse_attributes(source: str) -> Tuple[Attribute, ...]:
    """
    Parse the attribute part of a component tag.

    Example:
        >>> parse_attributes(' id="a" title={"A"} hidden')
        (Attribute(name='id', value='a'), Attribute(name='title', value='A'), Attribute(name='hidden', value=None))
    """
    attributes = []
    index = 0
    while index < len(source):
        if source[index].isspace():
            index += 1
            continue

        if source[index] == "{":
            # Spread attribute, no name to record
            index = _expression_end(source, index) or len(source)
            continue

        name = ATTRIBUTE_NAME_PATTERN.match(source, index)
        if name is None:
            index += 1
            continue
        index = name.end()

        value = None
        equals = ATTRIBUTE_EQUALS_PATTERN.match(source, index)
        if equals and equals.end() < len(source):
            index = equals.end()
            opener = source[index]
            if opener in "\"'":
                close = source.find(opener, index + 1)
                if close == -1:
                    close = len(source)
                value = source[index + 1:close]
                index = close + 1
            elif opener == "{":
                end = _expression_end(source, index)
                if end is None:
                    value, index = _expression_value(source[index + 1:]), len(source)
                else:
                    value, index = _expression_value(source[index + 1:end - 1]), end

        attributes.append(Attribute(name=name.group(), value=value))
    return tuple(attributes)


def flatten_inline(children: List[Token]) -> str:
    """Flatten markdown-it inline tokens to their literal text."""
    parts = []
    for child in children:
        if child.type in ("text", "code_inline", "image"):
            parts.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            parts.append("\n")
    return "".join(parts)


class _TreeBuilder:
    """Single-use line scanner that assembles the tree for one document."""

    def __init__(self, md: MarkdownIt, text: str):
        self._md = md
        self._lines = text.splitlines()
        self._root: List[Node] = []
        self._stack: List[_OpenComponent] = []
        self._pending: List[Tuple[int, str]] = []
        self._fence: Optional[str] = None

    def build(self) -> Root:
        index = self._consume_frontmatter()

        while index < len(self._lines):
            line = self._lines[index]
            stripped = line.strip()

            if self._fence is not None:
                self._pending.append((index + 1, line))
                if stripped.startswith(self._fence) and not stripped.lstrip(self._fence[0]):
                    self._fence = None
                index += 1
                continue

            fence = FENCE_PATTERN.match(stripped)
            if fence:
                self._fence = fence.group(1)
                self._pending.append((index + 1, line))
                index += 1
                continue

            if not self._stack and ESM_PATTERN.match(line):
                self._flush()
                self._append(Element(kind="mdxjsEsm", value=line, position=Position(index + 1, 1)))
                index += 1
                continue

            if TAG_LINE_PATTERN.match(line):
                index = self._consume_tag_line(index)
                continue

            self._pending.append((index + 1, line))
            index += 1

        self._flush()

        if self._stack:
            unclosed = self._stack[-1]
            last_line = len(self._lines)
            raise MdxParseError(
                f"Expected a closing tag for `<{unclosed.name}>` "
                f"({unclosed.position.line}:{unclosed.position.column}) before the end of the document",
                last_line,
                len(self._lines[-1]) + 1 if self._lines else 1,
            )

        return Root(children=tuple(self._root), position=Position(line=1, column=1))

    def _consume_frontmatter(self) -> int:
        if not self._lines or self._lines[0].strip() != "---":
            return 0
        for end in range(1, len(self._lines)):
            if self._lines[end].strip() == "---":
                self._append(Element(
                    kind="yaml",
                    value="\n".join(self._lines[1:end]),
                    position=Position(line=1, column=1),
                ))
                return end + 1
        return 0

    def _consume_tag_line(self, index: int) -> int:
        first_line = index + 1
        segment = self._lines[index]

        # An opening tag may spread its attributes over several lines
        tags, unterminated = scan_tags(segment)
        while unterminated is not None:
            if index + 1 >= len(self._lines):
                position = _offset_position(segment, first_line, unterminated)
                raise MdxParseError(
                    "Unexpected end of file in tag, expected a closing `>`",
                    position.line,
                    position.column,
                )
            index += 1
            segment = f"{segment}\n{self._lines[index]}"
            tags, unterminated = scan_tags(segment)

        self._flush()

        cursor = 0
        for tag in tags:
            self._add_inline_text(segment, first_line, cursor, tag.start)
            self._handle_tag(tag, _offset_position(segment, first_line, tag.start))
            cursor = tag.end
        self._add_inline_text(segment, first_line, cursor, len(segment))

        return index + 1

    def _handle_tag(self, tag: _Tag, position: Position) -> None:
        name = tag.name

        if tag.closing:
            if not self._stack:
                raise MdxParseError(
                    f"Unexpected closing tag `</{name}>`, expected an opening tag first",
                    position.line,
                    position.column,
                )
            current = self._stack[-1]
            if current.name != name:
                raise MdxParseError(
                    f"Unexpected closing tag `</{name}>`, expected corresponding closing tag "
                    f"for `<{current.name}>` ({current.position.line}:{current.position.column})",
                    position.line,
                    position.column,
                )
            self._stack.pop()
            self._append(current.build())
            return

        attributes = parse_attributes(tag.attributes)
        if tag.self_closing:
            self._append(Component(name=name, attributes=attributes, position=position))
        else:
            self._stack.append(_OpenComponent(name=name, attributes=attributes, position=position))

    def _add_inline_text(self, segment: str, first_line: int, start: int, end: int) -> None:
        text = segment[start:end]
        if not text.strip():
            return

        position = _offset_position(segment, first_line, start + _indent_width(text))
        tokens = self._md.parseInline(text.strip())
        value = flatten_inline(tokens[0].children or []) if tokens else text.strip()
        self._append(Paragraph(children=(Text(value=value, position=position),), position=position))

    def _flush(self) -> None:
        """Parse the Markdown lines collected since the last tag line."""
        pending, self._pending = self._pending, []
        content = [line for _, line in pending if line.strip()]
        if not content:
            return

        indent = min(_indent_width(line) for line in content)
        text = "\n".join(line[indent:] if line.strip() else "" for _, line in pending)

        for node in self._convert(self._md.parse(text), first_line=pending[0][0]):
            self._append(node)

    def _convert(self, tokens: List[Token], first_line: int) -> List[Node]:
        stack: List[Tuple[Optional[Token], List[Node]]] = [(None, [])]

        for token in tokens:
            if token.nesting == 1:
                stack.append((token, []))
            elif token.nesting == -1:
                opening, children = stack.pop()
                position = self._token_position(opening, first_line)
                if opening.type == "paragraph_open":
                    node = Paragraph(children=tuple(children), position=position)
                else:
                    node = Element(kind=_kind_for(opening), children=tuple(children), position=position)
                stack[-1][1].append(node)
            elif token.type == "inline":
                stack[-1][1].append(Text(
                    value=flatten_inline(token.children or []),
                    position=self._token_position(token, first_line),
                ))
            else:
                stack[-1][1].append(Element(
                    kind=_kind_for(token),
                    value=token.content,
                    position=self._token_position(token, first_line),
                ))

        return stack[0][1]

    def _token_position(self, token: Optional[Token], first_line: int) -> Optional[Position]:
        if token is None or not token.map:
            return None
        line = first_line + token.map[0]
        return Position(line=line, column=_indent_width(self._lines[line - 1]) + 1)

    def _append(self, node: Node) -> None:
        if self._stack:
            self._stack[-1].children.append(node)
        else:
            self._root.append(node)


class MdxParser:
    """
    MDX document parser with tree caching.

    Avoids re-parsing the same document when several checks need its tree.
    """

    def __init__(self):
        """Initialize parser with markdown-it-py instance."""
        self._md = MarkdownIt()
        self._cache: Dict[str, Root] = {}

    def parse_mdx(self, text: str, cache_key: Optional[str] = None) -> Root:
        """
        Parse MDX text to a document tree.

        Args:
            text: MDX source
            cache_key: Optional key for caching the parsed tree

        Returns:
            Root node of the document tree

        Raises:
            MdxParseError: If component tags are unbalanced or unterminated

        Example:
            >>> parser = MdxParser()
            >>> tree = parser.parse_mdx("<Steps>\\n<Step>\\nOne\\n</Step>\\n</Steps>")
            >>> tree.children[0].name
            'Steps'
        """
        if cache_key and cache_key in self._cache:
            logger.debug("Tree cache hit for %s", cache_key)
            return self._cache[cache_key]

        tree = _TreeBuilder(self._md, text).build()

        if cache_key:
            self._cache[cache_key] = tree

        return tree

    def clear_cache(self):
        """Clear the tree cache."""
        self._cache.clear()


# Global parser instance for module-level functions
_parser = MdxParser()


def parse_mdx(text: str, cache_key: Optional[str] = None) -> Root:
    """
    Parse MDX text to a document tree (module-level function).

    Args:
        text: MDX source
        cache_key: Optional key for caching the parsed tree

    Returns:
        Root node of the document tree

    Raises:
        MdxParseError: If component tags are unbalanced or unterminated
    """
    return _parser.parse_mdx(text, cache_key)


if __name__ == '__main__':
    # Example usage
    import sys

    from mdx_ast import get_node_text, iter_children

    if len(sys.argv) < 2:
        print("Usage: mdx_parser.py <mdx_file>")
        print("\nParses an MDX file and prints its document tree.")
        sys.exit(1)

    with open(sys.argv[1], 'r', encoding='utf-8') as f:
        source = f.read()

    try:
        document = parse_mdx(source)
    except MdxParseError as e:
        print(f"Parse error at {e.line}:{e.column}: {e.reason}", file=sys.stderr)
        sys.exit(1)

    def show(node: Node, depth: int = 0) -> None:
        label = getattr(node, "name", None) or node.kind
        where = f"{node.position.line}:{node.position.column}" if node.position else "-"
        snippet = get_node_text(node).replace("\n", " ")[:40] if node.kind in ("paragraph", "text") else ""
        print(f"{'  ' * depth}{label} [{where}] {snippet}".rstrip())
        for child in iter_children(node):
            show(child, depth + 1)

    show(document)

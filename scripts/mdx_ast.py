#!/usr/bin/env python3
"""
MDX Document Tree Model

Node types for parsed Markdown-with-components documents, plus the generic
helpers every structural rule builds on.

Key Features:
- Closed set of immutable node variants (Root, Component, Paragraph, Text, Element)
- Depth-first, pre-order traversal driven by a predicate
- Flattened text extraction for prose nodes
- Strict access to source positions
"""

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple, Union


ROOT = "root"
COMPONENT = "component"
PARAGRAPH = "paragraph"
TEXT = "text"


class MissingPositionError(ValueError):
    """Raised when a node that must be anchored in the source has no position."""
    pass


@dataclass(frozen=True)
class Position:
    """
    Start of a node in the source document.

    Attributes:
        line: Line number (1-based)
        column: Column number (1-based)
    """
    line: int
    column: int


@dataclass(frozen=True)
class Attribute:
    """A name/value pair on a component tag. Bare attributes have value None."""
    name: str
    value: Optional[str] = None


@dataclass(frozen=True)
class Text:
    value: str
    position: Optional[Position] = None
    kind: str = field(default=TEXT, init=False)


@dataclass(frozen=True)
class Paragraph:
    children: Tuple["Node", ...] = ()
    position: Optional[Position] = None
    kind: str = field(default=PARAGRAPH, init=False)


@dataclass(frozen=True)
class Component:
    """
    An MDX block element such as <Steps> or <TabsBarItem id="a">.

    Attributes:
        name: Component name as written in the tag
        attributes: Tag attributes in source order
        children: Child nodes in source order
        position: Position of the opening tag
    """
    name: str
    attributes: Tuple[Attribute, ...] = ()
    children: Tuple["Node", ...] = ()
    position: Optional[Position] = None
    kind: str = field(default=COMPONENT, init=False)


@dataclass(frozen=True)
class Element:
    """
    Any other construct (heading, list, code, html, yaml, mdxjsEsm, ...).

    The kind is kept verbatim; value holds literal content for leaf
    constructs such as code blocks.
    """
    kind: str
    children: Tuple["Node", ...] = ()
    value: Optional[str] = None
    position: Optional[Position] = None


@dataclass(frozen=True)
class Root:
    children: Tuple["Node", ...] = ()
    position: Optional[Position] = None
    kind: str = field(default=ROOT, init=False)


Node = Union[Root, Component, Paragraph, Text, Element]


def iter_children(node: Node) -> Tuple[Node, ...]:
    """Return a node's children, or an empty tuple for leaf nodes."""
    return getattr(node, "children", None) or ()


def visit(tree: Node, predicate: Callable[[Node], bool], visitor: Callable[[Node], None]) -> None:
    """
    Walk a tree depth-first, pre-order, calling visitor on every matching node.

    A node is visited before its children and children are visited left to
    right. Traversal continues below a matched node, so nested matches are
    visited too.

    Args:
        tree: Root of the (sub)tree to walk
        predicate: Selects the nodes of interest
        visitor: Called once per selected node, in traversal order

    Example:
        >>> tree = Root(children=(Component(name="Steps"),))
        >>> found = []
        >>> visit(tree, lambda n: n.kind == COMPONENT, found.append)
        >>> [n.name for n in found]
        ['Steps']
    """
    for node in walk(tree):
        if predicate(node):
            visitor(node)


def walk(tree: Node) -> Iterator[Node]:
    """Yield every node of a tree in pre-order."""
    # Iterative: nesting depth is not bounded by the recursion limit
    stack: List[Node] = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(iter_children(node)))


def component_name(node: Node) -> Optional[str]:
    """Return the component name, or None for non-component nodes."""
    if isinstance(node, Component):
        return node.name
    return None


def is_component(name: str) -> Callable[[Node], bool]:
    """Build a predicate matching components with the given name."""
    return lambda node: component_name(node) == name


def start_position(node: Node) -> Position:
    """
    Return a node's start position.

    Raises:
        MissingPositionError: If the node carries no position
    """
    if node.position is None:
        raise MissingPositionError(
            f"{node.kind} node has no source position; the document tree is malformed"
        )
    return node.position


def get_attribute_values(node: Node, name: str) -> List[str]:
    """Return the non-empty values of every attribute called name on a component."""
    if not isinstance(node, Component):
        return []
    return [attr.value for attr in node.attributes if attr.name == name and attr.value is not None]


def get_node_text(node: Node) -> str:
    """
    Flatten the literal text below a node.

    Text and valued Element nodes contribute their value; containers
    contribute the concatenation of their children.
    """
    value = getattr(node, "value", None)
    if isinstance(value, str):
        return value
    return "".join(get_node_text(child) for child in iter_children(node))


def is_empty_paragraph(node: Node) -> bool:
    """True for paragraph nodes holding only whitespace."""
    return isinstance(node, Paragraph) and not get_node_text(node).strip()

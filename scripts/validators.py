#!/usr/bin/env python3
"""
Structural validators for MDX component usage.

Each validator is a plain function taking a document tree and returning the
list of Diagnostic values it found. Validators never mutate the tree and keep
no state between calls, so the same tree always yields the same diagnostics in
the same order.

Shipped rules:
- <Steps> may only contain <Step> children
- <Tabs> must hold exactly one <TabsBar> and one <TabsPages>, whose
  <TabsBarItem>/<TabsPageItem> ids pair up one-to-one and are unique

Adding a rule means writing a new function and appending it to VALIDATORS.
"""

import logging
from collections import Counter
from typing import Callable, Iterable, List, Optional, Sequence

from diagnostics import Diagnostic
from mdx_ast import (
    Component,
    Node,
    Paragraph,
    component_name,
    get_attribute_values,
    get_node_text,
    is_component,
    is_empty_paragraph,
    start_position,
    visit,
)

logger = logging.getLogger(__name__)

Validator = Callable[[Node], List[Diagnostic]]

DESCRIPTOR_MAX_LENGTH = 30


def node_descriptor(node: Node) -> str:
    """
    Describe a node in a few characters for use in diagnostics.

    Components render as <Name>, paragraphs as a quoted snippet of their text
    (truncated to 30 characters), anything else as its kind.

    Example:
        >>> node_descriptor(Component(name="Step"))
        '<Step>'
    """
    if isinstance(node, Component):
        return f"<{node.name}>"

    if isinstance(node, Paragraph):
        text = get_node_text(node).replace("\n", "")
        truncated = text[:DESCRIPTOR_MAX_LENGTH]
        if len(truncated) != len(text):
            truncated += "..."
        return f'"{truncated}"'

    return node.kind


def check_paired_container(tree: Node, container: str, child: str) -> List[Diagnostic]:
    """
    Check that every <container> holds only <child> components as immediate children.

    Args:
        tree: Document tree
        container: Name of the container component
        child: Name of the only component allowed directly inside it

    Returns:
        One diagnostic per disallowed child, anchored at that child

    Raises:
        MissingPositionError: If a disallowed child has no source position
    """
    errors: List[Diagnostic] = []

    def check(node: Node) -> None:
        for item in node.children:
            if component_name(item) == child:
                continue
            errors.append(Diagnostic.at(
                start_position(item),
                f"<{container}> component must only contain <{child}> components "
                f"as immediate children but found {node_descriptor(item)}",
            ))

    visit(tree, is_component(container), check)
    return errors


def get_duplicate_ids(ids: Iterable[str]) -> List[str]:
    """Return each id occurring more than once, sorted."""
    counts = Counter(ids)
    return sorted(value for value, count in counts.items() if count > 1)


def _item_ids(collection: Component, item: str) -> List[str]:
    ids: List[str] = []
    for node in collection.children:
        if component_name(node) == item:
            ids.extend(get_attribute_values(node, "id"))
    return ids


def check_bar_pages_pairing(
    tree: Node,
    wrapper: str,
    bar: str,
    pages: str,
    bar_item: str,
    page_item: str,
) -> List[Diagnostic]:
    """
    Check the two-level <wrapper>/<bar>/<pages> contract.

    For every <wrapper>:
    1. Immediate children must be <bar> or <pages> (empty paragraphs are skipped)
    2. At most one <bar> and one <pages>
    3. Both <bar> and <pages> must be present; otherwise item checks are skipped
    4. Every <bar_item> id needs a matching <page_item> id and vice versa
    5. Ids must be unique within the bar and within the pages

    When several <bar> or <pages> children exist, the first one of each feeds
    the item checks. Item-level diagnostics are anchored at the wrapper and
    sorted by id.

    Args:
        tree: Document tree
        wrapper: Name of the wrapper component (e.g. "Tabs")
        bar: Name of the bar collection (e.g. "TabsBar")
        pages: Name of the pages collection (e.g. "TabsPages")
        bar_item: Name of the items inside the bar (e.g. "TabsBarItem")
        page_item: Name of the items inside the pages (e.g. "TabsPageItem")

    Returns:
        Diagnostics for every wrapper, in traversal order
    """
    errors: List[Diagnostic] = []

    def report(node: Node, reason: str) -> None:
        errors.append(Diagnostic.at(start_position(node), reason))

    def check(node: Node) -> None:
        for item in node.children:
            if component_name(item) in (bar, pages) or is_empty_paragraph(item):
                continue
            report(
                item,
                f"<{wrapper}> component must only contain <{bar}> and <{pages}> components "
                f"as immediate children but found {node_descriptor(item)}",
            )

        bars = [item for item in node.children if component_name(item) == bar]
        page_sets = [item for item in node.children if component_name(item) == pages]

        if len(bars) > 1:
            report(node, f"<{wrapper}> can only have one <{bar}> child")
        if len(page_sets) > 1:
            report(node, f"<{wrapper}> can only have one <{pages}> child")

        bar_node: Optional[Component] = bars[0] if bars else None
        pages_node: Optional[Component] = page_sets[0] if page_sets else None

        if bar_node is None:
            report(
                node,
                f"No <{bar}> found! <{wrapper}> component must contain <{bar}> as an immediate child",
            )
        if pages_node is None:
            report(
                node,
                f"No <{pages}> found! <{wrapper}> component must contain <{pages}> as an immediate child",
            )

        if bar_node is None or pages_node is None:
            return

        bar_ids = _item_ids(bar_node, bar_item)
        page_ids = _item_ids(pages_node, page_item)

        for missing in sorted(set(bar_ids) - set(page_ids)):
            report(
                node,
                f'Found a <{bar_item}> with id "{missing}" but no corresponding <{page_item}>. '
                f"{wrapper} components must come in pairs.",
            )
        for missing in sorted(set(page_ids) - set(bar_ids)):
            report(
                node,
                f'Found a <{page_item}> with id "{missing}" but no corresponding <{bar_item}>. '
                f"{wrapper} components must come in pairs.",
            )

        for duplicate in get_duplicate_ids(bar_ids):
            report(
                node,
                f'Found a <{bar_item}> with a duplicate id "{duplicate}". '
                f"<{bar_item}>s must have unique ids.",
            )
        for duplicate in get_duplicate_ids(page_ids):
            report(
                node,
                f'Found a <{page_item}> with a duplicate id "{duplicate}". '
                f"<{page_item}>s must have unique ids.",
            )

    visit(tree, is_component(wrapper), check)
    return errors


def validate_steps(tree: Node) -> List[Diagnostic]:
    """<Steps> may only contain <Step> components."""
    return check_paired_container(tree, "Steps", "Step")


def validate_tabs(tree: Node) -> List[Diagnostic]:
    """<Tabs> must pair <TabsBarItem>s with <TabsPageItem>s by id."""
    return check_bar_pages_pairing(
        tree,
        wrapper="Tabs",
        bar="TabsBar",
        pages="TabsPages",
        bar_item="TabsBarItem",
        page_item="TabsPageItem",
    )


# Registration order is output order
VALIDATORS: List[Validator] = [validate_steps, validate_tabs]


def run_validators(tree: Node, validators: Optional[Sequence[Validator]] = None) -> List[Diagnostic]:
    """
    Run validators against a tree and concatenate their diagnostics.

    Args:
        tree: Document tree
        validators: Validators to run, in order (default: VALIDATORS)

    Returns:
        Diagnostics of the first validator, then the second, and so on
    """
    if validators is None:
        validators = VALIDATORS

    errors: List[Diagnostic] = []
    for validator in validators:
        found = validator(tree)
        logger.debug("%s: %d diagnostic(s)", getattr(validator, "__name__", validator), len(found))
        errors.extend(found)
    return errors

"""Expression dispatcher: turns expressions into typed tree nodes."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING

from hephaestus import syntax
from hephaestus.errors import BadFormat
from hephaestus.nodes import (
    MultiComponent,
    Node,
    Skeleton,
    Text,
    UnsupportedComponent,
    WrapperComponent,
)
from hephaestus.registry import TagRegistry, default_registry

if TYPE_CHECKING:
    from hephaestus.registry import Parser

logger = logging.getLogger(__name__)

# Registry in effect for nested parser callbacks, which only receive a string
_registry: ContextVar[TagRegistry] = ContextVar(
    "hephaestus_registry",
    default=default_registry,
)


def parse(expr: str, registry: TagRegistry | None = None) -> Node:
    """Parse a complete expression into a tree.

    References are left unresolved; see
    :func:`hephaestus.resolution.compile_component_tree`.

    Args:
        expr: Expression text
        registry: Tag registry to use instead of the default one

    Returns:
        The root node, a MultiComponent if the expression holds several
        top-level siblings

    """
    return parse_expr(expr, registry=registry)


def parse_expr(expr: str, registry: TagRegistry | None = None) -> Node:
    """Parse an expression, recursively.

    Each top-level bracket group is dispatched on its bracket: ``<...>`` to
    the Skeleton parser, ``[...]`` to the MultiComponent parser and
    ``{tag:...}`` to the parser registered for ``tag``; ``{...}`` without a
    tag is Text. Unknown tags, stray text and groups whose parser raises
    BadFormat are kept verbatim as UnsupportedComponents.

    Args:
        expr: Expression text
        registry: Tag registry to use for this call and every nested one

    Returns:
        The parsed node; several top-level groups yield a MultiComponent,
        an empty expression an empty MultiComponent

    """
    if registry is not None:
        token = _registry.set(registry)
        try:
            return parse_expr(expr)
        finally:
            _registry.reset(token)

    nodes = [_parse_segment(text, is_group) for text, is_group in syntax.split_groups(expr)]
    if len(nodes) == 1:
        return nodes[0]
    return MultiComponent(*nodes)


def _parse_segment(text: str, is_group: bool) -> Node:
    if not is_group:
        logger.debug("Keeping stray text %r verbatim", text)
        return UnsupportedComponent(full_expr=text, inner=text)

    inner = text[1:-1]
    tag: str | None = None
    parser: Parser | None
    match text[0]:
        case "<":
            parser, body = Skeleton.parse, inner
        case "[":
            parser, body = MultiComponent.parse, inner
        case _:
            tag, body = _split_tag(inner)
            parser = Text.parse if tag is None else _registry.get().lookup(tag)

    if parser is None:
        logger.debug("No parser registered for tag '%s', keeping %r", tag, text)
        return UnsupportedComponent(tag=tag, full_expr=text, inner=body)
    try:
        return parser(body)
    except BadFormat as e:
        logger.debug("Keeping %r verbatim: %s", text, e)
        return UnsupportedComponent(tag=tag, full_expr=text, inner=body)


def _split_tag(inner: str) -> tuple[str | None, str]:
    """Split ``tag:body``; no tag when the head is not a plain token."""
    colon = syntax.index_of(inner, ":")
    if colon < 0 or syntax.has_unescaped(inner[:colon]):
        return None, inner
    return inner[:colon], inner[colon + 1 :]


def list_tag_names(registry: TagRegistry | None = None) -> list[str]:
    """Return the registered tag names, in registration order."""
    return (registry if registry is not None else _registry.get()).tag_names()


def clean(node: Node) -> Node:
    """Remove semantically empty nodes from a tree, in place.

    Empty Text without an id, empty MultiComponents and whitespace-only
    passthroughs are dropped from every sibling run, and nested runs are
    flattened into their parent. A top-level run left with one element is
    replaced by that element.

    Returns:
        The cleaned root

    """
    cleaned = _clean(node)
    match cleaned:
        case MultiComponent() if cleaned.size() == 1:
            return cleaned.get(0)
        case _:
            return cleaned


def _clean(node: Node) -> Node:
    match node:
        case MultiComponent():
            kept: list[Node] = []
            for child in node:
                child = _clean(child)  # noqa: PLW2901
                if _is_empty(child):
                    continue
                if isinstance(child, MultiComponent):
                    kept.extend(child)
                else:
                    kept.append(child)
            node.set_components(*kept)
        case WrapperComponent():
            _clean(node.children)
            node.set_children(node.children)
    return node


def _is_empty(node: Node) -> bool:
    match node:
        case Text(text="", id=None):
            return True
        case MultiComponent():
            return node.is_empty()
        case UnsupportedComponent(full_expr=full) if not full.strip():
            return True
        case _:
            return False

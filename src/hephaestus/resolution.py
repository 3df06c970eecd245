"""Reference resolution pass linking Refs to their target nodes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hephaestus.errors import DuplicateIdentifier
from hephaestus.nodes import Node, Ref, Skeleton

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

type Resolver = Callable[[Ref], None]


def index_identifiers(root: Node) -> dict[str, list[Node]]:
    """Map every identifier in the tree to the nodes carrying it.

    Skeletons are indexed by name and id, other nodes by id. Payloads
    attached to Skeletons are not indexed.
    """
    index: dict[str, list[Node]] = {}

    def visit(node: Node, _depth: int) -> None:
        for identifier in node.identifiers():
            nodes = index.setdefault(identifier, [])
            if not any(n is node for n in nodes):
                nodes.append(node)

    root.for_each(visit)
    return index


def default_resolver(root: Node) -> Resolver:
    """Build a resolver binding each Ref to the node of ``root`` it names.

    Unknown identifiers leave the Ref unresolved.

    Raises (when called):
        DuplicateIdentifier: If the identifier is carried by several nodes

    """
    index = index_identifiers(root)

    def resolve(ref: Ref) -> None:
        candidates = index.get(ref.id or "", [])
        if not candidates:
            logger.debug("Reference '%s' left unresolved", ref.id)
            return
        if len(candidates) > 1:
            msg = (
                f"Reference '{ref.id}' is ambiguous: {len(candidates)} nodes "
                "carry this identifier."
            )
            raise DuplicateIdentifier(msg)
        ref.refer_to(candidates[0])

    return resolve


def compile_component_tree(root: Node, resolver: Resolver | None = None) -> Node:
    """Resolve the references attached to every Skeleton of a tree.

    Each Skeleton whose ``component`` is a Ref hands it to ``resolver``,
    which locates the target and calls ``Ref.refer_to``. Running the pass
    again is safe as long as the resolver is deterministic.

    Args:
        root: Root of a parsed tree
        resolver: Callback resolving a single Ref; defaults to
            :func:`default_resolver` over ``root``

    Returns:
        ``root``, now linked

    Raises:
        DuplicateIdentifier: If the default resolver meets an ambiguous
            identifier

    """
    resolve = resolver if resolver is not None else default_resolver(root)

    def visit(node: Node, _depth: int) -> None:
        match node:
            case Skeleton():
                node.compile(resolve)
            case _:
                pass

    root.for_each(visit)
    return root

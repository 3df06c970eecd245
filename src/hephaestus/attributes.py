"""Attribute marshalling between node fields and ``name=value;...`` segments.

Every node class declares the fields it serializes as attributes in an
``attributes`` table of :class:`Attribute` descriptors. The schema of a
class is the concatenation of the tables along its MRO, base classes first,
so the order of the serialized segment is the declaration order.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cache
from typing import TYPE_CHECKING, Any

from hephaestus import syntax
from hephaestus.errors import BadFormat

if TYPE_CHECKING:
    from collections.abc import Callable

    from hephaestus.nodes import Node


def _identity(value: str) -> Any:
    return value


@dataclass(frozen=True)
class Attribute:
    """A node field serialized into the attribute segment.

    Attributes:
        name: Field name, also the key written in the expression
        encode: Converts the field value to its unescaped string form
        decode: Converts the unescaped string form back to a field value

    """

    name: str
    encode: Callable[[Any], str] = str
    decode: Callable[[str], Any] = _identity


@cache
def attribute_schema(cls: type[Node]) -> tuple[Attribute, ...]:
    """Get the attribute descriptors of a node class in declaration order."""
    schema: dict[str, Attribute] = {}
    for klass in reversed(cls.__mro__):
        for attribute in klass.__dict__.get("attributes", ()):
            schema.setdefault(attribute.name, attribute)
    return tuple(schema.values())


def extract_attributes(node: Node) -> str:
    """Serialize the attributes of ``node``.

    Attributes whose value is None are omitted.

    Returns:
        ``name=value`` pairs joined by ``;`` with escaped values, or ``""``

    """
    pairs = []
    for attribute in attribute_schema(type(node)):
        value = getattr(node, attribute.name)
        if value is None:
            continue
        pairs.append(
            f"{syntax.compile(attribute.name)}={syntax.compile(attribute.encode(value))}"
        )
    return ";".join(pairs)


def search_attributes_in_expr(expr: str) -> tuple[str, str] | None:
    """Split an inner expression into its attribute segment and body.

    The attribute segment is everything before the first unescaped opening
    bracket. It only counts as one when it holds an unescaped ``=``.

    Returns:
        ``(attributes, body)``, or None if ``expr`` has no attribute segment

    """
    end = next(
        (
            i
            for i in range(len(expr))
            if syntax.char_at_equals_any(expr, i, *syntax.BRACKETS)
        ),
        len(expr),
    )
    segment = expr[:end]
    if not segment or syntax.index_of(segment, "=") < 0:
        return None
    return segment, expr[end:]


def inject_attributes(node: Node, segment: str) -> None:
    """Set the attributes of ``node`` from a serialized segment.

    Args:
        node: Node receiving the decoded values
        segment: ``name=value;...`` with escaped values

    Raises:
        BadFormat: If a pair has no ``=`` or names an unknown attribute

    """
    schema = {a.name: a for a in attribute_schema(type(node))}
    for pair in syntax.split(segment, ";"):
        if not pair:
            continue
        eq = syntax.index_of(pair, "=")
        if eq < 0:
            msg = "Attribute is missing '='."
            raise BadFormat(msg, pair)
        name = syntax.decompile(pair[:eq])
        if (attribute := schema.get(name)) is None:
            msg = f"Unknown attribute '{name}' for {type(node).__name__}."
            raise BadFormat(msg, segment)
        setattr(node, attribute.name, attribute.decode(syntax.decompile(pair[eq + 1 :])))

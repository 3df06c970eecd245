"""Tag registry mapping tag names to node parsers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hephaestus.errors import MissingParserDeclaration, RegistryFrozen

if TYPE_CHECKING:
    from collections.abc import Callable

    from hephaestus.nodes import Node

logger = logging.getLogger(__name__)

type Parser = Callable[[str], Node]


class TagRegistry:
    """Mapping from tag name to the parser of the node kind using that tag.

    Node classes declared with ``tag=...`` register themselves into
    :data:`default_registry` (or the ``registry=`` given in the class
    statement). Registries are written once per tag and read thereafter;
    :meth:`freeze` makes that explicit.

    Usage:
        registry = TagRegistry()
        registry.register("note", Note.parse)
        tree = parse("{note:hello}", registry=registry)
    """

    def __init__(self, parsers: dict[str, Parser] | None = None) -> None:
        """Initialize the registry, optionally from existing tag/parser pairs."""
        self._parsers: dict[str, Parser] = dict(parsers or {})
        self._frozen = False

    def register(self, tag: str, parser: Parser | None) -> None:
        """Register the parser used for expressions tagged ``tag``.

        Args:
            tag: Tag name as written in ``{tag:...}``
            parser: Function turning the body after ``tag:`` into a node

        Raises:
            MissingParserDeclaration: If ``parser`` is not callable
            RegistryFrozen: If the registry was frozen
            ValueError: If ``tag`` is already registered to another parser

        """
        if not callable(parser):
            msg = f"Tag '{tag}' was declared without a parser."
            raise MissingParserDeclaration(msg)
        if self._frozen:
            msg = f"Cannot register tag '{tag}': registry is frozen."
            raise RegistryFrozen(msg)
        if (existing := self._parsers.get(tag)) is not None and existing != parser:
            msg = (
                f"Tag '{tag}' already registered to {existing}. "
                "Choose a different tag."
            )
            raise ValueError(msg)
        self._parsers[tag] = parser
        logger.debug("Registered tag '%s'", tag)

    def lookup(self, tag: str) -> Parser | None:
        """Return the parser registered for ``tag``, or None."""
        return self._parsers.get(tag)

    def tag_names(self) -> list[str]:
        """Return all registered tags in registration order."""
        return list(self._parsers)

    def freeze(self) -> None:
        """Reject any further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        """Whether the registry rejects registration."""
        return self._frozen

    def copy(self) -> TagRegistry:
        """Return an unfrozen registry with the same tags."""
        return TagRegistry(self._parsers)

    def __contains__(self, tag: object) -> bool:
        return tag in self._parsers

    def __len__(self) -> int:
        return len(self._parsers)

    def __repr__(self) -> str:
        return f"TagRegistry({self.tag_names()!r})"


default_registry = TagRegistry()

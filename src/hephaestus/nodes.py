"""Document tree node kinds with automatic tag registration."""

from __future__ import annotations

import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from hephaestus import syntax
from hephaestus.attributes import (
    Attribute,
    extract_attributes,
    inject_attributes,
    search_attributes_in_expr,
)
from hephaestus.errors import BadFormat, UnsupportedStructuralOperation
from hephaestus.registry import TagRegistry, default_registry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

type Action = Callable[[Node, int], None]


def _parse_expr(expr: str) -> Node:
    from hephaestus.parser import parse_expr  # noqa: PLC0415

    return parse_expr(expr)


def _expr_of(node: Node) -> str:
    return node.expr()


@dataclass
class Style:
    """Opaque visual style payload carried by every node.

    Parsing and serialization never look inside it.
    """

    properties: dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class Node(ABC):
    """Base for document tree nodes.

    Subclasses become dataclasses automatically. Passing ``tag`` in the
    class statement registers the class's ``parse`` classmethod under that
    tag, in ``registry`` if given or in the default registry otherwise.

    Example:
        class Note(WrapperComponent, tag="note"):
            author: str | None = None

            attributes = (Attribute("author"),)

    """

    tag_name: ClassVar[str] = "undefined"
    attributes: ClassVar[tuple[Attribute, ...]] = (Attribute("id"),)

    id: str | None = field(default=None, kw_only=True)
    style: Style = field(default_factory=Style, kw_only=True, repr=False)

    def __init_subclass__(
        cls,
        tag: str | None = None,
        registry: TagRegistry | None = None,
        **kwargs: Any,
    ) -> None:
        """Turn the subclass into a dataclass and register its tag."""
        super().__init_subclass__(**kwargs)
        dataclass(eq=False)(cls)
        if tag is None:
            return
        cls.tag_name = tag
        target = registry if registry is not None else default_registry
        target.register(tag, getattr(cls, "parse", None))

    @abstractmethod
    def expr(self) -> str:
        """Serialize this node to its expression."""
        ...

    def __str__(self) -> str:
        return self.expr()

    def identifiers(self) -> tuple[str, ...]:
        """Identifiers a reference can use to target this node."""
        return () if self.id is None else (self.id,)

    def for_each(self, action: Action, depth: int = 0) -> None:
        """Visit this node and its descendants in preorder.

        Args:
            action: Called with each node and its depth
            depth: Depth of this node

        """
        action(self, depth)

    def parallel_traversal(self, action: Action, depth: int = 0) -> None:
        """Visit this node and its descendants level by level.

        Every node at a given depth is visited before any deeper node.

        Args:
            action: Called with each node and its depth
            depth: Depth of this node

        """
        _visit_level(list(_flatten([self])), action, depth)

    def find(self, identifier: str) -> Node | None:
        """Return the first node in preorder carrying ``identifier``."""
        found: list[Node] = []

        def visit(node: Node, _depth: int) -> None:
            if not found and identifier in node.identifiers():
                found.append(node)

        self.for_each(visit)
        return found[0] if found else None

    def generate_expr(self, inner: str) -> str:
        """Wrap ``inner`` as ``{tag:attributes inner}``."""
        return "{" + self.tag_name + ":" + extract_attributes(self) + inner + "}"


def _flatten(nodes: Iterable[Node]) -> Iterator[Node]:
    """Expand MultiComponents into their elements, recursively."""
    for node in nodes:
        match node:
            case MultiComponent():
                yield from _flatten(node)
            case _:
                yield node


def _visit_level(level: list[Node], action: Action, depth: int) -> None:
    following: list[Node] = []
    for node in level:
        match node:
            case WrapperComponent(children=children):
                following.extend(_flatten(children))
        action(node, depth)
    if following:
        _visit_level(following, action, depth + 1)


class Text(Node):
    """Leaf holding a raw string."""

    text: str = ""

    def expr(self) -> str:
        """Serialize as ``{escaped text}``."""
        return "{" + syntax.compile(self.text) + "}"

    @classmethod
    def parse(cls, expr: str) -> Text:
        """Build a Text from the escaped body of ``{...}``.

        Raises:
            BadFormat: If the body holds unescaped reserved characters

        """
        if syntax.has_unescaped(expr):
            msg = "Text holds unescaped reserved characters."
            raise BadFormat(msg, expr)
        return cls(syntax.decompile(expr))


class Ref(Node, tag="ref"):
    """Placeholder for another node, identified by its ``id``.

    Until :meth:`refer_to` is called the reference serializes as
    ``{ref:id}``; afterwards it serializes exactly as its target.
    """

    def __init__(self, id: str | None = None, *, style: Style | None = None) -> None:  # noqa: A002
        """Initialize with the identifier of the target node."""
        self.id = id
        self.style = style if style is not None else Style()
        self._target: Node | None = None
        self._expanding = False

    @property
    def target(self) -> Node | None:
        """The node this reference resolved to, if any."""
        return self._target

    @property
    def resolved(self) -> bool:
        """Whether :meth:`refer_to` was called."""
        return self._target is not None

    def refer_to(self, target: Node) -> None:
        """Bind this reference to ``target``.

        Binding again to the same node is a no-op.

        Raises:
            ValueError: If already bound to a different node

        """
        if self._target is not None and self._target is not target:
            msg = f"Reference '{self.id}' is already bound to another node."
            raise ValueError(msg)
        self._target = target

    def identifiers(self) -> tuple[str, ...]:
        """References name their target, not themselves."""
        return ()

    def expr(self) -> str:
        """Serialize as the target, or as ``{ref:id}`` while unresolved."""
        if self._target is None or self._expanding:
            return "{" + self.tag_name + ":" + syntax.compile(self.id or "") + "}"
        self._expanding = True
        try:
            return self._target.expr()
        finally:
            self._expanding = False

    @classmethod
    def parse(cls, expr: str) -> Ref:
        """Build an unresolved reference from the body of ``{ref:...}``."""
        if syntax.has_unescaped(expr):
            msg = "Reference identifier holds unescaped reserved characters."
            raise BadFormat(msg, expr)
        return cls(syntax.decompile(expr))


class MultiComponent(Node):
    """Ordered run of sibling nodes.

    A MultiComponent is not a tree level of its own: traversals visit its
    elements at the depth of the MultiComponent.
    """

    def __init__(
        self,
        *components: Node,
        id: str | None = None,  # noqa: A002
        style: Style | None = None,
    ) -> None:
        """Initialize with sibling nodes in order."""
        self.id = id
        self.style = style if style is not None else Style()
        self.components: list[Node] = list(components)

    def __repr__(self) -> str:
        return f"MultiComponent({', '.join(map(repr, self.components))})"

    def set_components(self, *components: Node) -> None:
        """Replace all elements."""
        self.components = list(components)

    def for_each(self, action: Action, depth: int = 0) -> None:
        """Visit every element, and their descendants, in preorder."""
        for component in self.components:
            component.for_each(action, depth)

    def expr(self) -> str:
        """Serialize as ``""``, the single element, or ``[...]``."""
        if not self.components:
            return ""
        if len(self.components) == 1:
            return self.components[0].expr()
        return "[" + "".join(c.expr() for c in self.components) + "]"

    def size(self) -> int:
        return len(self.components)

    def is_empty(self) -> bool:
        return not self.components

    def contains(self, component: Node) -> bool:
        return any(c is component for c in self.components)

    def contains_all(self, components: Iterable[Node]) -> bool:
        return all(self.contains(c) for c in components)

    def add(self, component: Node) -> None:
        self.components.append(component)

    def add_all(self, components: Iterable[Node]) -> None:
        self.components.extend(components)

    def remove(self, index: int) -> None:
        del self.components[index]

    def clear(self) -> None:
        self.components = []

    def get(self, index: int) -> Node:
        return self.components[index]

    def map[T](self, fn: Callable[[Node, int, MultiComponent], T]) -> list[T]:
        """Apply ``fn(component, index, self)`` to every element."""
        return [fn(c, i, self) for i, c in enumerate(self.components)]

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.components)

    def __getitem__(self, index: int) -> Node:
        return self.components[index]

    def __contains__(self, component: object) -> bool:
        return any(c is component for c in self.components)

    @classmethod
    def parse(cls, expr: str) -> MultiComponent:
        """Build siblings from the inside of ``[...]``."""
        match _parse_expr(expr):
            case MultiComponent() as multi:
                return multi
            case single:
                return cls(single)


class WrapperComponent(Node):
    """Tagged node owning a run of children.

    Serializes as ``{tag:attributes children}``. Any tagged subclass is
    parsed by the generic :meth:`parse`: attribute segment first, then the
    children expression.
    """

    children: MultiComponent = field(default_factory=MultiComponent, kw_only=True)

    def __post_init__(self) -> None:
        self.set_children(self.children)

    def set_children(self, children: MultiComponent) -> None:
        """Replace the children run."""
        self.children = children

    def append_child(self, child: Node) -> None:
        self.children.add(child)

    def child(self, index: int) -> Node:
        return self.children.get(index)

    def remove_child(self, index: int) -> None:
        self.children.remove(index)

    def for_each(self, action: Action, depth: int = 0) -> None:
        """Visit this node, then its children one level deeper."""
        action(self, depth)
        self.children.for_each(action, depth + 1)

    def expr(self) -> str:
        return self.generate_expr(self.children.expr())

    @classmethod
    def parse(cls, expr: str) -> WrapperComponent:
        """Build a wrapper from the body following ``tag:``."""
        node = cls()
        node.parse_body(expr)
        return node

    def parse_body(self, expr: str) -> None:
        """Inject the attribute segment of ``expr`` and parse the rest as children."""
        body = expr
        if (found := search_attributes_in_expr(expr)) is not None:
            segment, body = found
            inject_attributes(self, segment)
        match _parse_expr(body):
            case MultiComponent() as children:
                self.set_children(children)
            case child:
                self.set_children(MultiComponent(child))


class Skeleton(WrapperComponent):
    """Named structural node, the backbone of a document.

    Children are restricted to Skeletons, each holding a weak reference back
    to its parent. ``component`` attaches an arbitrary payload node, usually
    a :class:`Ref` linked up by the resolution pass.
    """

    attributes = (Attribute("component", encode=_expr_of, decode=_parse_expr),)

    name: str | None = None
    component: Node | None = field(default=None, kw_only=True)
    _parent: weakref.ref[Skeleton] | None = field(default=None, init=False, repr=False)

    @property
    def parent(self) -> Skeleton | None:
        """The Skeleton this node was appended to, if still alive."""
        return self._parent() if self._parent is not None else None

    def set_parent(self, parent: Skeleton) -> None:
        self._parent = weakref.ref(parent)

    def set_children(self, children: MultiComponent) -> None:
        """Replace the children run, linking every child back to this node.

        Raises:
            UnsupportedStructuralOperation: If a child is not a Skeleton

        """
        for child in children:
            self._check_child(child)
        self.children = children
        for child in children:
            child.set_parent(self)  # type: ignore[attr-defined]

    def append_child(self, child: Node) -> None:
        """Append a Skeleton child and link it back to this node.

        Raises:
            UnsupportedStructuralOperation: If ``child`` is not a Skeleton

        """
        self._check_child(child)
        super().append_child(child)
        child.set_parent(self)  # type: ignore[attr-defined]

    def _check_child(self, child: Node) -> None:
        match child:
            case Skeleton():
                return
            case _:
                msg = (
                    f"Skeleton '{self.name}' only accepts Skeleton children, "
                    f"got {type(child).__name__}."
                )
                raise UnsupportedStructuralOperation(msg)

    def identifiers(self) -> tuple[str, ...]:
        """The skeleton name and, when different, its id."""
        names = () if self.name is None else (self.name,)
        return names + tuple(i for i in super().identifiers() if i not in names)

    def compile(self, resolver: Callable[[Ref], None]) -> None:
        """Hand the attached reference, if any, to ``resolver``."""
        match self.component:
            case Ref() as ref:
                resolver(ref)
            case _:
                pass

    def expr(self) -> str:
        """Serialize as ``<name:attributes children>``, or ``<name>``."""
        name = syntax.compile(self.name or "")
        rest = extract_attributes(self) + self.children.expr()
        return f"<{name}:{rest}>" if rest else f"<{name}>"

    @classmethod
    def parse(cls, expr: str) -> Skeleton:
        """Build a skeleton from the inside of ``<...>``.

        Raises:
            BadFormat: If the name is malformed or a child is not a Skeleton

        """
        colon = syntax.index_of(expr, ":")
        name, rest = (expr, "") if colon < 0 else (expr[:colon], expr[colon + 1 :])
        if syntax.has_unescaped(name):
            msg = "Malformed skeleton name."
            raise BadFormat(msg, expr)
        node = cls(syntax.decompile(name))
        try:
            node.parse_body(rest)
        except UnsupportedStructuralOperation as e:
            raise BadFormat(str(e), expr) from e
        return node


class TextBlock(Node):
    """Tagged leaf carrying one opaque Text payload.

    Serializes as ``{tag:attributes {text}}``. The payload is not
    interpreted.
    """

    content: Text = field(default_factory=Text)

    def __post_init__(self) -> None:
        if isinstance(self.content, str):
            self.content = Text(self.content)

    def expr(self) -> str:
        return self.generate_expr(self.content.expr())

    @classmethod
    def parse(cls, expr: str) -> TextBlock:
        """Build a block from the body following ``tag:``.

        Raises:
            BadFormat: If the body is not a single Text

        """
        node = cls()
        body = expr
        if (found := search_attributes_in_expr(expr)) is not None:
            segment, body = found
            inject_attributes(node, segment)
        match _parse_expr(body):
            case Text() as content:
                node.content = content
            case _:
                msg = f"{cls.__name__} expects a single text body."
                raise BadFormat(msg, expr)
        return node


class HTMLBlock(TextBlock, tag="html"):
    """Opaque HTML payload."""

    @property
    def html(self) -> Text:
        return self.content


class MDBlock(TextBlock, tag="md"):
    """Opaque Markdown payload."""

    @property
    def markdown(self) -> Text:
        return self.content


class UnsupportedComponent(Node):
    """Unrecognized or malformed expression kept verbatim.

    Attributes:
        tag: Tag token of the original expression, if it had one
        full_expr: The original expression, returned unchanged by expr()
        inner: What was left of the expression after the tag

    """

    tag: str | None = None
    full_expr: str = ""
    inner: str = ""

    def expr(self) -> str:
        return self.full_expr

"""Tests for hephaestus.nodes module."""

import gc

import pytest

from hephaestus.errors import UnsupportedStructuralOperation
from hephaestus.nodes import (
    HTMLBlock,
    MDBlock,
    MultiComponent,
    Node,
    Ref,
    Skeleton,
    Style,
    Text,
    UnsupportedComponent,
    WrapperComponent,
)
from hephaestus.registry import TagRegistry

_registry = TagRegistry()


class Section(WrapperComponent, tag="section", registry=_registry):
    """Generic tagged wrapper."""


def _tree() -> Skeleton:
    """Build A(B(D), C)."""
    a, b, c, d = Skeleton("A"), Skeleton("B"), Skeleton("C"), Skeleton("D")
    b.append_child(d)
    a.append_child(b)
    a.append_child(c)
    return a


class TestNodeBasics:
    """Test behavior shared by all nodes."""

    def test_str_is_expr(self) -> None:
        """Test that str() serializes the node."""
        node = Text("hi")
        assert str(node) == node.expr() == "{hi}"

    def test_untagged_kind(self) -> None:
        """Test the default tag name."""
        assert Text.tag_name == "undefined"
        assert Skeleton.tag_name == "undefined"

    def test_tagged_kinds(self) -> None:
        """Test tag names of the built-in tagged kinds."""
        assert Ref.tag_name == "ref"
        assert HTMLBlock.tag_name == "html"
        assert MDBlock.tag_name == "md"

    def test_style_is_carried(self) -> None:
        """Test that style is stored but never serialized."""
        node = Text("hi", style=Style({"color": "red"}))
        assert node.style.properties == {"color": "red"}
        assert node.expr() == "{hi}"

    def test_nodes_compare_by_identity(self) -> None:
        """Test that structurally equal nodes stay distinct."""
        assert Text("a") != Text("a")

    def test_node_is_abstract(self) -> None:
        """Test that the base class cannot be instantiated."""
        with pytest.raises(TypeError):
            Node()  # type: ignore[abstract]


class TestText:
    """Test the Text leaf."""

    def test_expr_escapes(self) -> None:
        """Test that reserved characters are escaped."""
        assert Text("a{b}").expr() == "{a^{b^}}"

    def test_empty(self) -> None:
        """Test the empty text."""
        assert Text().expr() == "{}"


class TestMultiComponent:
    """Test sibling runs."""

    def test_expr_empty(self) -> None:
        """Test that no siblings serialize to nothing."""
        assert MultiComponent().expr() == ""

    def test_expr_single(self) -> None:
        """Test that one sibling serializes as itself."""
        assert MultiComponent(Text("a")).expr() == "{a}"

    def test_expr_many(self) -> None:
        """Test that several siblings are bracketed."""
        assert MultiComponent(Text("a"), Text("b")).expr() == "[{a}{b}]"

    def test_sequence_api(self) -> None:
        """Test the collection operations."""
        a, b, c = Text("a"), Text("b"), Text("c")
        multi = MultiComponent(a)
        multi.add(b)
        multi.add_all([c])

        assert multi.size() == len(multi) == 3
        assert multi.get(1) is b
        assert multi[2] is c
        assert list(multi) == [a, b, c]
        assert multi.contains(a)
        assert a in multi
        assert not multi.contains(Text("a"))
        assert multi.contains_all([a, c])

        multi.remove(0)
        assert list(multi) == [b, c]

        multi.clear()
        assert multi.is_empty()

    def test_duplicates_allowed(self) -> None:
        """Test that the same node may appear twice."""
        a = Text("a")
        assert MultiComponent(a, a).expr() == "[{a}{a}]"

    def test_map(self) -> None:
        """Test map passes element, index and the run itself."""
        multi = MultiComponent(Text("a"), Text("b"))
        assert multi.map(lambda c, i, m: (c.expr(), i, m is multi)) == [
            ("{a}", 0, True),
            ("{b}", 1, True),
        ]


class TestWrapperComponent:
    """Test tagged wrappers."""

    def test_expr(self) -> None:
        """Test {tag:attributes children}."""
        section = Section(id="s", children=MultiComponent(Text("a"), Text("b")))
        assert section.expr() == "{section:id=s[{a}{b}]}"

    def test_expr_empty(self) -> None:
        """Test a wrapper without attributes or children."""
        assert Section().expr() == "{section:}"

    def test_child_operations(self) -> None:
        """Test append_child, child and remove_child."""
        section = Section()
        a, b = Text("a"), Text("b")
        section.append_child(a)
        section.append_child(b)

        assert section.child(1) is b
        section.remove_child(0)
        assert list(section.children) == [b]

    def test_accepts_any_child(self) -> None:
        """Test that a plain wrapper is not restricted to skeletons."""
        section = Section()
        section.append_child(Skeleton("X"))
        section.append_child(Text("t"))
        assert section.expr() == "{section:[<X>{t}]}"


class TestSkeleton:
    """Test skeleton structure and serialization."""

    def test_append_sets_parent(self) -> None:
        """Test that appending links the child back."""
        parent, child = Skeleton("P"), Skeleton("C")
        parent.append_child(child)

        assert child.parent is parent
        assert parent.child(0) is child

    def test_append_non_skeleton_raises(self) -> None:
        """Test the skeleton-only children constraint."""
        with pytest.raises(UnsupportedStructuralOperation):
            Skeleton("P").append_child(Text("t"))

    def test_constructor_children_linked(self) -> None:
        """Test that children passed at construction are linked too."""
        child = Skeleton("C")
        parent = Skeleton("P", children=MultiComponent(child))
        assert child.parent is parent

    def test_constructor_rejects_non_skeleton(self) -> None:
        """Test the constraint on constructor children."""
        with pytest.raises(UnsupportedStructuralOperation):
            Skeleton("P", children=MultiComponent(Text("t")))

    def test_parent_is_not_owned(self) -> None:
        """Test that the back-reference does not keep the parent alive."""
        parent, child = Skeleton("P"), Skeleton("C")
        parent.append_child(child)
        del parent
        gc.collect()
        assert child.parent is None

    def test_remove_child_keeps_parent(self) -> None:
        """Test that removal does not clear the back-reference."""
        parent, child = Skeleton("P"), Skeleton("C")
        parent.append_child(child)
        parent.remove_child(0)

        assert parent.children.is_empty()
        assert child.parent is parent

    def test_expr_bare(self) -> None:
        """Test <name> when there is nothing else to write."""
        assert Skeleton("X").expr() == "<X>"

    def test_expr_with_attributes_and_children(self) -> None:
        """Test <name:attributes children>."""
        root = Skeleton("X", id="x1")
        root.append_child(Skeleton("Y"))
        assert root.expr() == "<X:id=x1<Y>>"

    def test_expr_escapes_name(self) -> None:
        """Test that reserved characters in names are escaped."""
        assert Skeleton("a:b").expr() == "<a^:b>"

    def test_expr_many_children(self) -> None:
        """Test that several children are bracketed."""
        assert _tree().expr() == "<A:[<B:<D>><C>]>"

    def test_identifiers(self) -> None:
        """Test that skeletons are identified by name and id."""
        assert Skeleton("X", id="x1").identifiers() == ("X", "x1")
        assert Skeleton("X", id="X").identifiers() == ("X",)
        assert Skeleton().identifiers() == ()


class TestRef:
    """Test references."""

    def test_unresolved_expr(self) -> None:
        """Test the placeholder form."""
        ref = Ref("Y")
        assert ref.expr() == "{ref:Y}"
        assert not ref.resolved

    def test_resolved_expr_is_target(self) -> None:
        """Test that a resolved reference serializes as its target."""
        target = Skeleton("Y", id="y")
        ref = Ref("Y")
        ref.refer_to(target)

        assert ref.resolved
        assert ref.target is target
        assert ref.expr() == target.expr() == "<Y:id=y>"

    def test_refer_to_same_target_is_idempotent(self) -> None:
        """Test rebinding to the same node."""
        target = Skeleton("Y")
        ref = Ref("Y")
        ref.refer_to(target)
        ref.refer_to(target)
        assert ref.target is target

    def test_refer_to_other_target_raises(self) -> None:
        """Test that a reference binds once."""
        ref = Ref("Y")
        ref.refer_to(Skeleton("Y"))
        with pytest.raises(ValueError, match="already bound"):
            ref.refer_to(Skeleton("Z"))

    def test_not_an_identifier_holder(self) -> None:
        """Test that a reference does not claim its target's identifier."""
        assert Ref("Y").identifiers() == ()

    def test_cycle_falls_back_to_placeholder(self) -> None:
        """Test that a self-reference serializes without recursing forever."""
        skeleton = Skeleton("X")
        ref = Ref("X")
        skeleton.component = ref
        ref.refer_to(skeleton)

        assert skeleton.expr() == "<X:component=^<X^:component^=^^^{ref^^^:X^^^}^>>"


class TestTextBlocks:
    """Test html and md payload blocks."""

    def test_html_expr(self) -> None:
        """Test {html:{text}}."""
        block = HTMLBlock(Text("<b>"))
        assert block.expr() == "{html:{^<b^>}}"
        assert block.html.text == "<b>"

    def test_md_expr_with_id(self) -> None:
        """Test attributes on a block."""
        block = MDBlock(Text("# t"), id="m")
        assert block.expr() == "{md:id=m{# t}}"
        assert block.markdown.text == "# t"

    def test_string_content(self) -> None:
        """Test that a plain string payload is wrapped in Text."""
        assert isinstance(MDBlock("x").content, Text)


class TestUnsupportedComponent:
    """Test the passthrough node."""

    def test_expr_is_original(self) -> None:
        """Test that the original text is returned untouched."""
        node = UnsupportedComponent(tag="zzz", full_expr="{zzz:body}", inner="body")
        assert node.expr() == "{zzz:body}"


class TestForEach:
    """Test preorder traversal."""

    def test_preorder_with_depth(self) -> None:
        """Test visiting order and depths."""
        visited: list[tuple[str | None, int]] = []
        _tree().for_each(lambda n, d: visited.append((n.name, d)))  # type: ignore[attr-defined]

        assert visited == [("A", 0), ("B", 1), ("D", 2), ("C", 1)]

    def test_multi_component_is_transparent(self) -> None:
        """Test that siblings are visited at the run's depth."""
        visited: list[tuple[str, int]] = []
        MultiComponent(Text("a"), Text("b")).for_each(
            lambda n, d: visited.append((n.expr(), d)),
        )
        assert visited == [("{a}", 0), ("{b}", 0)]

    def test_start_depth(self) -> None:
        """Test a custom starting depth."""
        depths: list[int] = []
        _tree().for_each(lambda _n, d: depths.append(d), depth=3)
        assert depths == [3, 4, 5, 4]

    def test_leaf_blocks_not_descended(self) -> None:
        """Test that payload text is not visited."""
        visited: list[Node] = []
        MDBlock("x").for_each(lambda n, _d: visited.append(n))
        assert len(visited) == 1

    def test_find(self) -> None:
        """Test search by identifier."""
        tree = _tree()
        found = tree.find("D")
        assert isinstance(found, Skeleton)
        assert found.name == "D"
        assert tree.find("missing") is None


class TestParallelTraversal:
    """Test level-order traversal."""

    def test_level_order(self) -> None:
        """Test that each level is finished before the next starts."""
        visited: list[tuple[str | None, int]] = []
        _tree().parallel_traversal(lambda n, d: visited.append((n.name, d)))  # type: ignore[attr-defined]

        assert visited == [("A", 0), ("B", 1), ("C", 1), ("D", 2)]

    def test_levels_across_sibling_subtrees(self) -> None:
        """Test ordering across unbalanced sibling subtrees."""
        left, right = _tree(), Skeleton("R")
        right.append_child(Skeleton("S"))
        visited: list[tuple[str | None, int]] = []
        MultiComponent(left, right).parallel_traversal(
            lambda n, d: visited.append((n.name, d)),  # type: ignore[attr-defined]
        )

        assert visited == [
            ("A", 0),
            ("R", 0),
            ("B", 1),
            ("C", 1),
            ("S", 1),
            ("D", 2),
        ]

    def test_same_nodes_as_preorder(self) -> None:
        """Test that both traversals visit every node exactly once."""
        section = Section(children=MultiComponent(_tree(), Text("t")))
        preorder: list[Node] = []
        level_order: list[Node] = []
        section.for_each(lambda n, _d: preorder.append(n))
        section.parallel_traversal(lambda n, _d: level_order.append(n))

        assert len(preorder) == len(level_order) == 6
        assert {id(n) for n in preorder} == {id(n) for n in level_order}

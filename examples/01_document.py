"""
Document Example
================

A small page layout demonstrating:
- Defining a custom wrapper kind with its own attributes
- Parsing an expression into a tree
- Resolving references between parts of the tree
- Serializing the tree back to an expression
"""

import logging

from hephaestus import (
    Attribute,
    MDBlock,
    Skeleton,
    WrapperComponent,
    clean,
    compile_component_tree,
    parse,
)


# ============================================================================
# Define Nodes
# ============================================================================

class Callout(WrapperComponent, tag="callout"):
    """Highlighted box around its children."""
    kind: str | None = None

    attributes = (Attribute("kind"),)


# ============================================================================
# Example: Page Layout
# ============================================================================

PAGE = (
    "[<page:id=home;component=^{ref^:intro^}[<header><body:<footer>>]>"
    "{md:id=intro{# Welcome}}"
    "{callout:kind=warning{html:{^<b^>Beta^</b^>}}}"
    "{}]"
)


def main():
    """
    Parse a page, link its skeleton to the intro text and print the result.
    """
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    # Parse and drop the empty text at the end
    document = clean(parse(PAGE))
    print("Parsed:")
    print(document.expr())
    print()

    # Walk the skeleton backbone level by level
    print("Skeleton levels:")
    document.parallel_traversal(
        lambda node, depth: print(f"  {'  ' * depth}{node.name}")
        if isinstance(node, Skeleton)
        else None
    )
    print()

    # Link references, then serialize again
    compile_component_tree(document)
    page = document.find("home")
    intro = document.find("intro")
    assert isinstance(page, Skeleton)
    assert isinstance(intro, MDBlock)

    print(f"Reference resolved: {page.component.target is intro}")
    print("Resolved page:")
    print(page.expr())
    print()

    # Custom kinds come back typed
    for node in document:
        match node:
            case Callout(kind=kind):
                print(f"Callout of kind {kind!r}: {node.child(0).html.text}")


if __name__ == "__main__":
    main()

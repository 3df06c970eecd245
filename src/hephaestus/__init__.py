"""hephaestus - Escape-aware markup expressions and their document tree."""

from hephaestus.attributes import (
    Attribute,
    attribute_schema,
    extract_attributes,
    inject_attributes,
    search_attributes_in_expr,
)
from hephaestus.errors import (
    BadFormat,
    DuplicateIdentifier,
    HephaestusError,
    MissingParserDeclaration,
    RegistryFrozen,
    UnsupportedStructuralOperation,
)
from hephaestus.nodes import (
    HTMLBlock,
    MDBlock,
    MultiComponent,
    Node,
    Ref,
    Skeleton,
    Style,
    Text,
    TextBlock,
    UnsupportedComponent,
    WrapperComponent,
)
from hephaestus.parser import (
    clean,
    list_tag_names,
    parse,
    parse_expr,
)
from hephaestus.registry import (
    TagRegistry,
    default_registry,
)
from hephaestus.resolution import (
    compile_component_tree,
    default_resolver,
    index_identifiers,
)

__all__ = [
    # Attributes
    "Attribute",
    # Errors
    "BadFormat",
    "DuplicateIdentifier",
    # Nodes
    "HTMLBlock",
    "HephaestusError",
    "MDBlock",
    "MissingParserDeclaration",
    "MultiComponent",
    "Node",
    "Ref",
    "RegistryFrozen",
    "Skeleton",
    "Style",
    # Registry
    "TagRegistry",
    "Text",
    "TextBlock",
    "UnsupportedComponent",
    "UnsupportedStructuralOperation",
    "WrapperComponent",
    "attribute_schema",
    "clean",
    # Resolution
    "compile_component_tree",
    "default_registry",
    "default_resolver",
    "extract_attributes",
    "index_identifiers",
    "inject_attributes",
    "list_tag_names",
    # Parsing
    "parse",
    "parse_expr",
    "search_attributes_in_expr",
]

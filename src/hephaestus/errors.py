"""Error types raised by the expression grammar and the tree model."""

from __future__ import annotations


class HephaestusError(Exception):
    """Base class for all errors raised by hephaestus."""


class BadFormat(HephaestusError, ValueError):
    """An expression does not have the shape a parser expected.

    The dispatcher recovers from this error by keeping the offending
    expression verbatim in an UnsupportedComponent.
    """

    def __init__(self, message: str, expr: str | None = None) -> None:
        """Initialize with a description and the offending expression.

        Args:
            message: Human-readable description of the mismatch
            expr: The expression that failed to parse, if known

        """
        super().__init__(message if expr is None else f"{message} {expr!r}")
        self.expr = expr


class MissingParserDeclaration(HephaestusError, TypeError):
    """A node kind was registered under a tag without a parser."""


class UnsupportedStructuralOperation(HephaestusError, TypeError):
    """A tree mutation that the target node does not allow."""


class DuplicateIdentifier(HephaestusError, ValueError):
    """A reference targets an identifier carried by more than one node."""


class RegistryFrozen(HephaestusError, RuntimeError):
    """Registration was attempted on a frozen tag registry."""

"""
dtreepy.exceptions
==================

Exceptions raised by the tree engine.

Structural errors derive from :class:`TreeError`:

- ``NoCurrentNodeError``: the cursor does not point at a node that supports
  the requested operation.
- ``CursorOccupiedError``: a node is created at a cursor that already holds one.
- ``AliasError``: a branch cannot be aliased.
- ``BranchIndexError`` / ``AttributeIndexError``: index out of range.
- ``TargetTypeError``: a leaf setter does not match the target type.

Parsing distinguishes fatal errors (``TreeSyntaxError``) from recoverable
problems, which are reported as :class:`ParseDiagnostic` records.
"""

from __future__ import annotations

from dataclasses import dataclass


class TreeError(Exception):
    """Base class of all tree errors."""


class NoCurrentNodeError(TreeError):
    """Raised when the cursor is empty or sits on a node without branches."""


class CursorOccupiedError(TreeError):
    """Raised when a node is created at a non-empty cursor position."""

    def __init__(self) -> None:
        super().__init__("cannot create a node: the cursor position is occupied")


class AliasError(TreeError):
    """Raised when a branch cannot be made an alias of another branch.

    Attributes
    ----------
    source : int
        Index of the branch that should have become the alias.
    destination : int
        Index of the branch it should have referred to.
    """

    def __init__(self, source: int, destination: int, reason: str) -> None:
        super().__init__(f"cannot alias branch {source} to branch {destination}: {reason}")
        self.source = source
        self.destination = destination


class BranchIndexError(TreeError, IndexError):
    """Raised when a branch index is outside the current node's branches."""

    def __init__(self, index: int, width: int) -> None:
        super().__init__(f"branch index {index} out of range (node has {width} branches)")
        self.index = index
        self.width = width


class AttributeIndexError(TreeError, IndexError):
    """Raised when an attribute id or name is not part of the attribute set."""

    def __init__(self, attribute: int | str) -> None:
        super().__init__(f"unknown attribute {attribute!r}")
        self.attribute = attribute


class TargetTypeError(TreeError, TypeError):
    """Raised when leaf data does not fit the type of the target attribute."""


@dataclass(frozen=True)
class ParseDiagnostic:
    """A parse problem and its position in the source text.

    Attributes
    ----------
    message : str
        Human-readable description.
    line, column : int
        Position of the offending token (both 1-indexed).
    token : str
        Text of the offending token.
    """

    message: str
    line: int
    column: int
    token: str = ""

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.message}"


class TreeSyntaxError(TreeError):
    """Raised on a fatal parse error; no usable tree is produced.

    Attributes
    ----------
    message : str
        Description of the fatal error.
    line, column : int
        Position of the offending token (both 1-indexed).
    token : str
        Text of the offending token.
    diagnostics : list[ParseDiagnostic]
        Recoverable problems reported before the fatal error.
    """

    def __init__(self, message: str, line: int, column: int, token: str = "",
                 diagnostics: list[ParseDiagnostic] | None = None) -> None:
        super().__init__(f"{line}:{column}: {message}")
        self.message = message
        self.line = line
        self.column = column
        self.token = token
        self.diagnostics: list[ParseDiagnostic] = list(diagnostics or [])

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(message={self.message!r}, "
                f"line={self.line}, column={self.column}, token={self.token!r})")

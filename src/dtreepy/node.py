"""
dtreepy.node
============

Tree node and branch representation.

Nodes live in an arena owned by :class:`~dtreepy.tree.DecisionTree` and are
referenced by their arena index.  A test node holds one :class:`Branch` per
attribute value (nominal test) or exactly two branches (ordered test: at or
below the cut, above the cut).  A branch is empty, owns a child node, or is
an alias of another branch of the same node; aliases model several attribute
values sharing one subtree.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

import numpy as np


class BranchKind(Enum):
    EMPTY = "empty"
    OWNED = "owned"
    ALIAS = "alias"


@dataclass
class Branch:
    """One slot of a test node.

    ``target`` is the arena index of the child node for an owned branch and
    the index of the referenced sibling branch for an alias.
    """
    kind: BranchKind = BranchKind.EMPTY
    target: int = -1

    @property
    def is_empty(self) -> bool:
        return self.kind is BranchKind.EMPTY

    @property
    def is_owned(self) -> bool:
        return self.kind is BranchKind.OWNED

    @property
    def is_alias(self) -> bool:
        return self.kind is BranchKind.ALIAS


@dataclass(eq=False)
class Node:
    """A leaf or test node.

    Attributes
    ----------
    attid : int
        Test attribute id (test nodes) or target attribute id (leaves).
    is_leaf : bool
        Whether the node is terminal.
    cut : float
        Cut value of an ordered test attribute; NaN otherwise.
    branches : list[Branch]
        Branches of a test node; empty for leaves.
    freqs : ndarray or None
        Class frequencies for a nominal target.  Leaves own this array; for
        test nodes it is the aggregated distribution of the subtree.
    frequency : float
        Number of cases (aggregated for test nodes and nominal leaves).
    error : float
        Misclassified cases (nominal) or sum of squared errors (metric).
    value : int or float
        Most frequent class id (nominal) or mean value (metric).
    """
    attid: int
    is_leaf: bool
    cut: float = math.nan
    branches: list[Branch] = field(default_factory=list)
    freqs: np.ndarray | None = None
    frequency: float = 0.0
    error: float = 0.0
    value: int | float = 0
    has_alias: bool = False

    @property
    def width(self) -> int:
        return len(self.branches)

    def resolve(self, index: int) -> int:
        """Follow the alias chain starting at ``index`` and return the final index."""
        branch = self.branches[index]
        while branch.kind is BranchKind.ALIAS:
            index = branch.target
            branch = self.branches[index]
        return index

    def child(self, index: int) -> int | None:
        """Arena index of the child reached through branch ``index``, if any."""
        branch = self.branches[self.resolve(index)]
        return branch.target if branch.kind is BranchKind.OWNED else None

    def owned(self) -> Iterator[tuple[int, int]]:
        """Yield ``(branch index, child index)`` for every owned branch."""
        for i, branch in enumerate(self.branches):
            if branch.kind is BranchKind.OWNED:
                yield i, branch.target

    def group(self, index: int) -> list[int]:
        """Indices of all branches resolving to the owned branch ``index``.

        The owning branch comes first, followed by its aliases in ascending
        order.
        """
        if not self.has_alias:
            return [index]
        return [index] + [k for k in range(len(self.branches))
                          if k != index and self.resolve(k) == index]

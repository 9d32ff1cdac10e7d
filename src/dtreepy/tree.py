"""
dtreepy.tree
============

Decision and regression tree container.

:class:`DecisionTree` owns an arena of :class:`~dtreepy.node.Node` objects and
a cursor used for incremental, depth-first construction::

    dt = DecisionTree(attset, target="Drug")
    dt.create_node("Blood_pressure")       # root test node
    dt.down(0)                             # move to branch 0 (empty)
    dt.create_node()                       # leaf
    dt.set_frequency(0, 3.0)
    dt.up(root=True)

Nodes are only ever created at an empty cursor position.  Branches of the
current node can be aliased to one another so that several attribute values
share one subtree.  Node statistics (frequency, error, predicted value) are
derived by a bottom-up aggregation that runs lazily the first time they are
needed after a structural change.

Evaluation, printing and rule extraction are implemented in
:mod:`dtreepy.execute`, :mod:`dtreepy.printer` and :mod:`dtreepy.rules`; the
corresponding methods here are thin wrappers.
"""

from __future__ import annotations

import math
from typing import IO, Any, Iterator

import numpy as np

from loguru import logger

from .aggregate import aggregate, used_attributes
from .attributes import Attribute, AttributeSet
from .exceptions import (
    AliasError,
    AttributeIndexError,
    BranchIndexError,
    CursorOccupiedError,
    NoCurrentNodeError,
    TargetTypeError,
)
from .execute import DEFAULT_WEIGHT, Prediction, infer
from .node import Branch, BranchKind, Node
from .printer import DescribeMode, describe
from .rules import RuleSet, extract_rules

# attribute id that creates a leaf instead of a test node
LEAF = None

_STALE = -1.0


class DecisionTree:
    """
    Decision tree (nominal target) or regression tree (metric target).

    Parameters
    ----------
    attset : AttributeSet
        Attribute set the tree refers to.  It is not copied; the tree keeps
        a reference and reads attribute types and domains from it.
    target : int or str or None, default=None
        Id or name of the target attribute.  ``None`` or an out-of-range id
        selects the last attribute of the set.

    Attributes
    ----------
    size : int
        Number of nodes (test nodes and leaves).
    height : int
        Length of the longest path from the root (root only: 1).
    """

    def __init__(self, attset: AttributeSet, target: int | str | None = None):
        n = len(attset)
        if n <= 0:
            raise ValueError("attribute set must contain at least one attribute")
        if isinstance(target, str):
            trgid = attset.attribute_id(target)
            if trgid is None:
                raise AttributeIndexError(target)
        elif target is None or not (0 <= int(target) < n):
            trgid = n - 1
        else:
            trgid = int(target)
        att = attset[trgid]
        if att.is_nominal and att.value_count < 1:
            raise ValueError(f"nominal target {att.name!r} has no values")

        self._attset = attset
        self._trgid = trgid
        self._nominal = att.is_nominal
        self._clscnt = att.value_count if self._nominal else 0

        self._nodes: list[Node | None] = []
        self._root: int | None = None
        self._curr: int | None = None
        # attachment point of the cursor: (parent index, branch index), None for the root
        self._slot: tuple[int, int] | None = None
        self._path: list[tuple[int, tuple[int, int] | None]] = []

        self.size = 0
        self.height = 0
        self._total = 0.0
        self._attcnt = 1

    def __repr__(self) -> str:
        kind = "decision" if self._nominal else "regression"
        return (f"DecisionTree({kind}, target={self.target.name!r}, "
                f"size={self.size}, height={self.height})")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def attset(self) -> AttributeSet:
        return self._attset

    @property
    def target_id(self) -> int:
        return self._trgid

    @property
    def target(self) -> Attribute:
        return self._attset[self._trgid]

    @property
    def is_nominal(self) -> bool:
        """True for a classification tree, False for a regression tree."""
        return self._nominal

    @property
    def class_count(self) -> int:
        """Number of classes (0 for a metric target)."""
        return self._clscnt

    @property
    def buffer_size(self) -> int:
        """Size of the statistics buffer: class count, or 3 for a metric target."""
        return self._clscnt if self._nominal else 3

    @property
    def root(self) -> Node | None:
        return None if self._root is None else self._nodes[self._root]

    @property
    def root_index(self) -> int | None:
        return self._root

    @property
    def current(self) -> Node | None:
        """Node at the cursor, or ``None`` if the cursor position is empty."""
        return None if self._curr is None else self._nodes[self._curr]

    @property
    def at_leaf(self) -> bool:
        node = self.current
        return node is not None and node.is_leaf

    @property
    def depth(self) -> int:
        """Number of nodes on the path above the cursor."""
        return len(self._path)

    def node(self, index: int) -> Node:
        """Return the node stored at arena index ``index``."""
        node = self._nodes[index]
        if node is None:
            raise KeyError(index)
        return node

    def nodes(self) -> Iterator[Node]:
        """Iterate over all nodes in pre-order (branches in ascending order)."""
        if self._root is None:
            return
        stack = [self._root]
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            if not node.is_leaf:
                stack.extend(child for _, child in reversed(list(node.owned())))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def up(self, root: bool = False) -> None:
        """Move the cursor to the parent node, or to the root if ``root`` is set."""
        if root or not self._path:
            self._curr = self._root
            self._slot = None
            self._path.clear()
        else:
            self._curr, self._slot = self._path.pop()

    def down(self, index: int, check: bool = False) -> bool:
        """
        Move the cursor to the child reached through branch ``index``.

        Aliased branches are followed to the branch they resolve to.  If that
        branch is empty the cursor becomes empty and a node may be created
        there with :meth:`create_node`.

        Parameters
        ----------
        index : int
            Branch index of the current node.
        check : bool, default=False
            Only report whether a child exists, do not move the cursor.

        Returns
        -------
        bool
            Whether the branch leads to an existing child node.
        """
        node = self._current_test_node()
        self._check_branch(node, index)
        if check:
            return node.child(index) is not None
        dest = node.resolve(index)
        self._path.append((self._curr, self._slot))
        self._slot = (self._curr, dest)
        branch = node.branches[dest]
        self._curr = branch.target if branch.is_owned else None
        return self._curr is not None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def create_node(self, attid: int | str | None = LEAF, cut: float = math.nan) -> Node:
        """
        Create a node at the (empty) cursor position.

        Parameters
        ----------
        attid : int or str or None, default=LEAF
            Test attribute (id or name).  ``LEAF`` (``None``) creates a leaf.
        cut : float, default=nan
            Cut value of an ordered test attribute.

        Returns
        -------
        Node
            The created node, which becomes the current node.
        """
        if self._curr is not None:
            raise CursorOccupiedError()
        if isinstance(attid, str):
            name = attid
            attid = self._attset.attribute_id(name)
            if attid is None:
                raise AttributeIndexError(name)
        if attid is None or attid < 0:
            node = Node(attid=self._trgid, is_leaf=True, cut=math.nan)
            if self._nominal:
                node.freqs = np.zeros(self._clscnt, dtype=float)
        else:
            if attid >= len(self._attset):
                raise AttributeIndexError(attid)
            att = self._attset[attid]
            width = att.value_count if att.is_nominal else 2
            node = Node(attid=attid, is_leaf=False, cut=float(cut),
                        branches=[Branch() for _ in range(width)])
            if self._nominal:
                node.freqs = np.zeros(self._clscnt, dtype=float)
        index = len(self._nodes)
        self._nodes.append(node)
        if self._slot is None:
            self._root = index
        else:
            parent, b = self._slot
            self._nodes[parent].branches[b] = Branch(BranchKind.OWNED, index)
        self._curr = index
        self.size += 1
        if len(self._path) >= self.height:
            self.height = len(self._path) + 1
        self._attcnt = -1
        self._total = _STALE
        return node

    def alias(self, src: int, dst: int) -> None:
        """Make the empty branch ``src`` of the current node refer to branch ``dst``."""
        node = self._current_test_node()
        self._check_branch(node, src)
        self._check_branch(node, dst)
        if src == dst:
            raise AliasError(src, dst, "a branch cannot refer to itself")
        if not node.branches[src].is_empty:
            raise AliasError(src, dst, "source branch already has a child or alias")
        if node.resolve(dst) == src:
            raise AliasError(src, dst, "alias would form a cycle")
        node.branches[src] = Branch(BranchKind.ALIAS, dst)
        node.has_alias = True

    def resolve(self, index: int) -> int:
        """Return the index of the branch that branch ``index`` of the current node resolves to."""
        node = self._current_test_node()
        self._check_branch(node, index)
        return node.resolve(index)

    def set_frequency(self, cls: int, frq: float) -> None:
        """Set the frequency of class ``cls`` in the current (nominal) leaf."""
        node = self._current_leaf(nominal=True)
        if not (0 <= cls < self._clscnt):
            raise IndexError(f"class id {cls} out of range")
        node.freqs[cls] = float(frq)
        self._total = _STALE

    def get_frequency(self, cls: int) -> float:
        """Return the frequency of class ``cls`` in the current (nominal) leaf."""
        node = self._current_leaf(nominal=True)
        return float(node.freqs[cls])

    def set_prediction(self, value: float, error: float = 0.0, frequency: float = 0.0) -> None:
        """Set mean value, sum of squared errors and frequency of the current (metric) leaf."""
        node = self._current_leaf(nominal=False)
        node.value = float(value)
        node.error = float(error)
        node.frequency = float(frequency)
        self._total = _STALE

    def clear(self) -> int:
        """
        Delete all nodes and return the number of nodes freed.

        Owned branches are visited in post-order; aliased branches are
        skipped, so a shared subtree is freed exactly once.
        """
        freed = 0
        if self._root is not None:
            order: list[int] = []
            stack = [self._root]
            while stack:
                index = stack.pop()
                order.append(index)
                node = self._nodes[index]
                if not node.is_leaf:
                    stack.extend(child for _, child in node.owned())
            for index in reversed(order):
                if self._nodes[index] is None:
                    raise RuntimeError(f"node {index} reached twice while clearing")
                self._nodes[index] = None
                freed += 1
        logger.debug("cleared tree: {} node(s) freed", freed)
        self._nodes = []
        self._root = self._curr = self._slot = None
        self._path.clear()
        self.size = self.height = 0
        self._total = 0.0
        self._attcnt = 1
        return freed

    # ------------------------------------------------------------------
    # Derived information
    # ------------------------------------------------------------------
    def total(self) -> float:
        """Total frequency (number of cases); aggregates node statistics if stale."""
        if self._total < 0:
            self._total = aggregate(self)
        return self._total

    def aggregate(self) -> float:
        """Recompute all node statistics unconditionally and return the total."""
        self._total = aggregate(self)
        return self._total

    def attribute_count(self) -> int:
        """Number of attributes occurring in the tree, including the target."""
        if self._attcnt < 0:
            self._attcnt = len(used_attributes(self) | {self._trgid})
        return self._attcnt

    def used_attributes(self) -> set[int]:
        """Ids of the attributes used as test attributes."""
        return used_attributes(self)

    def infer(self, row: Any = None, weight: float = DEFAULT_WEIGHT) -> Prediction:
        """Evaluate the tree for one row; see :func:`dtreepy.execute.infer`."""
        return infer(self, row, weight)

    def describe(self, file: IO[str] | None = None, mode: DescribeMode = DescribeMode(0),
                 max_width: int = 72) -> str:
        """Render the tree as text; see :func:`dtreepy.printer.describe`."""
        return describe(self, file, mode, max_width)

    def rules(self) -> RuleSet:
        """Convert the tree into a rule set; see :func:`dtreepy.rules.extract_rules`."""
        return extract_rules(self)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _current_test_node(self) -> Node:
        node = self.current
        if node is None:
            raise NoCurrentNodeError("no node at the cursor position")
        if node.is_leaf:
            raise NoCurrentNodeError("the current node is a leaf")
        return node

    def _current_leaf(self, nominal: bool) -> Node:
        node = self.current
        if node is None or not node.is_leaf:
            raise NoCurrentNodeError("the current node is not a leaf")
        if nominal != self._nominal:
            kind = "nominal" if self._nominal else "metric"
            raise TargetTypeError(f"operation does not apply to a {kind} target")
        return node

    @staticmethod
    def _check_branch(node: Node, index: int) -> None:
        if not (0 <= index < node.width):
            raise BranchIndexError(index, node.width)

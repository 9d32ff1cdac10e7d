"""
dtreepy.execute
===============

Evaluation of a tree for a single row.

A row walks down the tree from the root.  At a test node the row's value of
the test attribute selects a branch (aliases resolved).  Three outcomes are
possible:

- the branch owns a child: continue there;
- the value is known but leads nowhere (value not covered by the tree, or an
  empty branch): the node's own aggregated statistics are added, scaled by
  ``weight``;
- the value is unknown (``None``, NaN, an unknown value name, a value equal
  to the cut of an ordered test) or ``weight`` is negative: every owned
  branch is followed and the contributions are summed unweighted.

Leaves add their statistics unweighted.  The accumulated statistics are then
reduced to a :class:`Prediction`.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, NamedTuple

import numpy as np

from .aggregate import leaf_sums

if TYPE_CHECKING:
    from .tree import DecisionTree

# weight of the fallback statistics for known values without a subtree
DEFAULT_WEIGHT = 1e-12


class Prediction(NamedTuple):
    """Result of evaluating a tree for one row.

    Attributes
    ----------
    value : int or float
        Predicted class id (nominal target) or predicted value (metric target).
    support : float
        Sum of the accumulated frequencies.
    confidence : float
        Relative frequency of the predicted class (nominal target) or root
        mean squared error of the prediction (metric target).
    distribution : ndarray or None
        Normalised class distribution; ``None`` for a metric target.
    """
    value: int | float
    support: float
    confidence: float
    distribution: np.ndarray | None


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def branch_index(tree: "DecisionTree", node, row: Any) -> int:
    """
    Return the branch index selected by ``row`` at test node ``node``.

    Returns ``-1`` for an unknown value.  Nominal value ids at or above the
    node's width are returned as they are (known, but not covered).
    """
    att = tree.attset[node.attid]
    x = att.encode(tree.attset.row_value(row, node.attid))
    if x is None:
        return -1
    if att.is_nominal:
        return x
    if x == node.cut:
        return -1
    return 0 if x <= node.cut else 1


def _fallback(tree: "DecisionTree", node, weight: float) -> np.ndarray:
    if tree.is_nominal:
        return node.freqs * weight
    t = node.frequency * weight
    return np.array([t, t * node.value, weight * node.error + t * node.value * node.value])


def accumulate(tree: "DecisionTree", row: Any = None, weight: float = DEFAULT_WEIGHT) -> np.ndarray:
    """
    Walk ``tree`` for ``row`` and return the accumulated statistics.

    Returns
    -------
    ndarray
        Class frequencies (nominal target) or ``[S0, S1, S2]`` (metric target).
    """
    tree.total()
    acc = np.zeros(tree.buffer_size, dtype=float)
    if tree.root_index is None:
        return acc
    stack = [tree.root_index]
    while stack:
        node = tree.node(stack.pop())
        if node.is_leaf:
            acc += node.freqs if tree.is_nominal else leaf_sums(node)
            continue
        k = branch_index(tree, node, row)
        if 0 <= k < node.width:
            child = node.child(k)
            if child is not None:
                stack.append(child)
                continue
        if k >= 0 and weight >= 0:
            acc += _fallback(tree, node, weight)
        else:
            stack.extend(child for _, child in node.owned())
    return acc


def reduce_stats(tree: "DecisionTree", acc: np.ndarray) -> Prediction:
    """Reduce accumulated statistics to a :class:`Prediction`."""
    if not tree.is_nominal:
        s0, s1, s2 = (float(x) for x in acc)
        div = s0 if s0 > 0 else 1.0
        value = s1 / div
        conf = math.sqrt(max(0.0, (s2 - value * s1) / div))
        return Prediction(value, s0, conf, None)
    total = float(acc.sum())
    k = int(np.argmax(acc))
    dist = acc / (total if total > 0 else 1.0)
    conf = min(1.0, max(0.0, float(dist[k])))
    return Prediction(k, total, conf, dist)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def infer(tree: "DecisionTree", row: Any = None, weight: float = DEFAULT_WEIGHT) -> Prediction:
    """
    Evaluate ``tree`` for one row.

    Parameters
    ----------
    tree : DecisionTree
        Tree to evaluate; node statistics are aggregated first if stale.
    row : sequence or mapping, optional
        Values indexed by attribute id, or a mapping from attribute names
        (or ids) to values.  Nominal values may be value ids or names.  If
        omitted the current instance values of the attribute set are used.
    weight : float, default=DEFAULT_WEIGHT
        Weight of a test node's statistics when a known value has no
        subtree.  A negative weight treats such values as unknown.

    Returns
    -------
    Prediction
    """
    return reduce_stats(tree, accumulate(tree, row, weight))

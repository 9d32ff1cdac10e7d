"""
dtreepy.aggregate
=================

Bottom-up computation of node statistics.

For a nominal target every node receives the class distribution of its
subtree, its frequency (sum of the distribution), the most frequent class
(lowest id on ties) and the number of misclassified cases.

For a metric target the sums ``S0 = sum f``, ``S1 = sum f*v`` and
``S2 = sum (e + f*v*v)`` are accumulated over the leaves; a test node gets
``frequency = S0``, ``value = S1 / S0`` and ``error = S2 - value * S1``.

Traversal uses an explicit stack, so arbitrarily deep trees are supported.
Aliased branches are never followed: a shared subtree contributes once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from loguru import logger

if TYPE_CHECKING:
    from .tree import DecisionTree


def _safe_div(a: float, b: float) -> float:
    return a / (b if b > 0 else 1.0)


# ----------------------------------------------------------------------
# Nominal target
# ----------------------------------------------------------------------

def _finish_class_node(node, dist: np.ndarray) -> None:
    k = int(np.argmax(dist))            # first maximum: lowest class id wins
    node.frequency = float(dist.sum())
    node.error = node.frequency - float(dist[k])
    node.value = k


def _aggregate_nominal(tree: "DecisionTree", root: int) -> None:
    # (index, expanded) pairs: a node is finished once all owned children are
    stack: list[tuple[int, bool]] = [(root, False)]
    while stack:
        index, expanded = stack.pop()
        node = tree.node(index)
        if node.is_leaf:
            _finish_class_node(node, node.freqs)
            continue
        if not expanded:
            stack.append((index, True))
            stack.extend((child, False) for _, child in node.owned())
            continue
        dist = np.zeros(tree.class_count, dtype=float)
        for _, child in node.owned():
            dist += tree.node(child).freqs
        node.freqs = dist
        _finish_class_node(node, dist)


# ----------------------------------------------------------------------
# Metric target
# ----------------------------------------------------------------------

def leaf_sums(node) -> np.ndarray:
    """Return ``[S0, S1, S2]`` contributed by a metric leaf."""
    t = node.frequency * node.value
    return np.array([node.frequency, t, node.error + t * node.value], dtype=float)


def _aggregate_metric(tree: "DecisionTree", root: int) -> None:
    sums: dict[int, np.ndarray] = {}
    stack: list[tuple[int, bool]] = [(root, False)]
    while stack:
        index, expanded = stack.pop()
        node = tree.node(index)
        if node.is_leaf:
            sums[index] = leaf_sums(node)
            continue
        if not expanded:
            stack.append((index, True))
            stack.extend((child, False) for _, child in node.owned())
            continue
        acc = np.zeros(3, dtype=float)
        for _, child in node.owned():
            acc += sums.pop(child)
        sums[index] = acc
        mean = _safe_div(acc[1], acc[0])
        node.frequency = float(acc[0])
        node.value = float(mean)
        node.error = float(acc[2] - mean * acc[1])


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def aggregate(tree: "DecisionTree") -> float:
    """
    Recompute the statistics of every node of ``tree``.

    Parameters
    ----------
    tree : DecisionTree
        Tree whose nodes are updated in place.

    Returns
    -------
    float
        Frequency of the root node (0.0 for an empty tree).
    """
    root = tree.root_index
    if root is None:
        return 0.0
    if tree.is_nominal:
        _aggregate_nominal(tree, root)
    else:
        _aggregate_metric(tree, root)
    total = tree.node(root).frequency
    logger.debug("aggregated {} node(s), total frequency {}", tree.size, total)
    return total


def used_attributes(tree: "DecisionTree") -> set[int]:
    """Return the ids of all attributes used as test attributes in ``tree``."""
    used: set[int] = set()
    for node in tree.nodes():
        if not node.is_leaf:
            used.add(node.attid)
    return used

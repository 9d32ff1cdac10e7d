"""
dtreepy.printer
===============

Text rendering of decision and regression trees.

The format reads back with :func:`dtreepy.parser.parse_tree`::

    tree(Drug) =
    { (Blood_pressure)
      high:{ A: 3 },
      low:{ B: 3 },
      normal:{ (Age|41)
      <:{ A: 3 },
      >:{ B: 3 }}};
"""

from __future__ import annotations

from enum import IntFlag
from typing import IO, TYPE_CHECKING, Generator

import math

import numpy as np

from ._stack import run_nested
from .scanner import format_name, format_number

if TYPE_CHECKING:
    from .node import Node
    from .tree import DecisionTree


class DescribeMode(IntFlag):
    """
    Output flags of :func:`describe`.

    - TITLE: comment header naming the kind of tree.
    - INFO:  comment trailer with attribute, level, node and tuple counts.
    - ALIGN: one value per line in branch labels, colons aligned.
    - REL:   relative class frequencies (percent) after absolute ones.
    """
    TITLE = 0x01
    INFO = 0x02
    ALIGN = 0x04
    REL = 0x08


class _Output:
    """Collects text and tracks the current column and indentation."""

    def __init__(self, max_width: int):
        self.parts: list[str] = []
        self.pos = 0
        self.ind = 0
        self.max = max_width if max_width > 0 else math.inf

    def write(self, s: str) -> None:
        self.parts.append(s)
        self.pos += len(s)

    def wrap(self, width: int) -> None:
        """Break the line if ``width`` more characters would not fit."""
        if self.pos + width > self.max and self.pos > self.ind:
            self.indent(True)

    def indent(self, newline: bool) -> None:
        if newline:
            self.parts.append("\n")
            self.pos = 0
        if self.ind > self.pos:
            self.parts.append(" " * (self.ind - self.pos))
            self.pos = self.ind

    def text(self) -> str:
        return "".join(self.parts)


# ----------------------------------------------------------------------
# Leaves
# ----------------------------------------------------------------------

def _class_leaf(out: _Output, tree: "DecisionTree", node: "Node", rel: bool) -> None:
    att = tree.target
    freqs = node.freqs
    total = float(freqs.sum())
    factor = 100.0 / total if total > 0 else 1.0
    k = 0
    for cls, frq in enumerate(freqs):
        if frq <= 0:
            continue
        if k > 0:
            out.write(",")
        item = f"{format_name(att.value_name(cls))}: {format_number(frq)}"
        if rel:
            item += f" ({frq * factor:.1f}%)"
        if out.pos + len(item) > out.max - 4 and out.pos > out.ind:
            out.indent(True)
        elif k > 0:
            out.write(" ")
        out.write(item)
        k += 1


def _metric_leaf(out: _Output, node: "Node") -> None:
    rmse = float(np.sqrt(node.error / node.frequency)) if node.frequency > 0 else 0.0
    text = (f"{format_number(node.value)} ~{format_number(rmse)} "
            f"[{format_number(node.frequency)}]")
    out.wrap(len(text) + 2)
    out.write(text)


# ----------------------------------------------------------------------
# Nodes
# ----------------------------------------------------------------------

def _print_node(out: _Output, tree: "DecisionTree", node: "Node",
                mode: DescribeMode) -> Generator:
    out.write("{ ")
    out.ind += 2
    if node.is_leaf:
        if tree.is_nominal:
            _class_leaf(out, tree, node, bool(mode & DescribeMode.REL))
        else:
            _metric_leaf(out, node)
        out.write(" }")
        out.ind -= 2
        return

    att = tree.attset[node.attid]
    head = "(" + format_name(att.name)
    if att.is_ordered:
        head += "|" + format_number(node.cut)
    out.wrap(len(head) + 1)
    out.write(head + ")")
    out.indent(True)
    align = bool(mode & DescribeMode.ALIGN)
    if att.is_nominal:
        step = max((len(format_name(v)) for v in att.values), default=1) if align else 1
    else:
        step = 1
    for k, (i, child) in enumerate(node.owned()):
        if k > 0:
            out.write(",")
            out.indent(True)
        if att.is_ordered:
            out.wrap(2)
            out.write(">" if i > 0 else "<")
        else:
            group = node.group(i)
            for n in group[:-1]:
                name = format_name(att.value_name(n))
                out.wrap(len(name) + 1)
                out.write(name + ",")
                if align:
                    out.indent(True)
            name = format_name(att.value_name(group[-1]))
            out.wrap(len(name) + 1)
            out.write(name)
        out.ind += step
        out.indent(False)
        out.write(":")
        out.ind += 1
        yield _print_node(out, tree, tree.node(child), mode)
        out.ind -= step + 1
    out.ind -= 2
    if out.pos >= out.max or (out.ind <= 0 and out.pos >= out.max - 1):
        out.indent(True)
    out.write("}")


def _comment_block(lines: list[str], width: int) -> str:
    rule = "-" * width
    return "/*" + rule + "\n" + "".join(f"  {s}\n" for s in lines) + rule + "*/\n"


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def describe(tree: "DecisionTree", file: IO[str] | None = None,
             mode: DescribeMode = DescribeMode(0), max_width: int = 72) -> str:
    """
    Render ``tree`` as text.

    Parameters
    ----------
    tree : DecisionTree
        Tree to print.  Node statistics are aggregated first if stale.
    file : file-like, optional
        If given, the text is also written to it.
    mode : DescribeMode, default=DescribeMode(0)
        Combination of output flags.
    max_width : int, default=72
        Preferred maximal line length; ``<= 0`` disables line breaking.

    Returns
    -------
    str
        The rendered tree, terminated by a newline.
    """
    mode = DescribeMode(mode)
    rule = max_width - 2 if max_width > 0 else 70
    total = tree.total()
    out = _Output(max_width)
    if mode & DescribeMode.TITLE:
        kind = "decision tree" if tree.is_nominal else "regression tree"
        out.parts.append(_comment_block([kind], rule))
    out.parts.append(f"tree({format_name(tree.target.name)}) =\n")
    if tree.root is None:
        out.write("{ }")
    else:
        run_nested(_print_node(out, tree, tree.root, mode))
    out.parts.append(";\n")
    if mode & DescribeMode.INFO:
        out.parts.append("\n" + _comment_block([
            f"number of attributes: {tree.attribute_count() - 1}+1",
            f"number of levels    : {tree.height}",
            f"number of nodes     : {tree.size}",
            f"number of tuples    : {total:g}",
        ], rule))
    text = out.text()
    if file is not None:
        file.write(text)
    return text

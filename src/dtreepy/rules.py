"""
dtreepy.rules
=============

Conversion of a tree into an equivalent list of rules.

Every leaf yields one rule ``target = value <- cond & cond ...`` whose
conditions are collected on the path from the root.  Conditions on the same
attribute are merged as they are added (``Age <= 50`` followed by
``Age <= 40`` keeps ``Age <= 40``; ``Sex in {female, male}`` followed by
``Sex = male`` keeps ``Sex = male``).  A path whose conditions contradict
each other produces no rule.
"""

from __future__ import annotations

import math
from enum import IntFlag
from typing import IO, TYPE_CHECKING, Any, Iterator, NamedTuple

from loguru import logger

from .attributes import AttributeSet
from .scanner import format_name, format_number

if TYPE_CHECKING:
    from .tree import DecisionTree


class Operator(IntFlag):
    """Comparison operators; ``LE``, ``GE`` and ``NE`` combine the base flags."""
    EQ = 0x01
    LT = 0x02
    GT = 0x04
    LE = LT | EQ
    GE = GT | EQ
    NE = LT | GT
    IN = 0x08


_SIGNS = {Operator.EQ: "=", Operator.LT: "<", Operator.GT: ">", Operator.LE: "<=",
          Operator.GE: ">=", Operator.NE: "!=", Operator.IN: "in"}


class RuleMode(IntFlag):
    """
    Output flags of :meth:`RuleSet.describe`.

    - SUPP:   print the support of each rule.
    - CONF:   print the confidence (nominal) or error (metric) of each rule.
    - CONDLN: put every condition on a line of its own.
    - TITLE:  comment header.
    - INFO:   comment trailer with attribute and rule counts.
    """
    SUPP = 0x01
    CONF = 0x02
    CONDLN = 0x04
    TITLE = 0x08
    INFO = 0x10


class Condition(NamedTuple):
    """``att op value``.  For ``IN`` the value is a sorted tuple of value ids."""
    att: int
    op: Operator
    value: Any


def _compare(x: float, y: float) -> Operator:
    if x > y:
        return Operator.GT
    if x < y:
        return Operator.LT
    return Operator.EQ


def _value_set(cond: Condition, width: int) -> set[int]:
    if cond.op == Operator.IN:
        return set(cond.value)
    if cond.op == Operator.EQ:
        return {cond.value}
    return set(range(width)) - {cond.value}


def _from_set(att: int, values: set[int]) -> Condition:
    if len(values) == 1:
        return Condition(att, Operator.EQ, next(iter(values)))
    return Condition(att, Operator.IN, tuple(sorted(values)))


class Rule:
    """
    A rule ``head <- conditions`` with support and confidence.

    Parameters
    ----------
    attset : AttributeSet
        Attribute set the conditions refer to.
    head : Condition, optional
        Rule head, normally ``target = value``.
    """

    def __init__(self, attset: AttributeSet, head: Condition | None = None):
        self.attset = attset
        self.head = head
        self.conditions: list[Condition] = []
        self.support = 0.0
        self.confidence = 0.0

    def __repr__(self) -> str:
        return f"Rule({self.describe()!r})"

    def __len__(self) -> int:
        return len(self.conditions)

    def copy(self) -> "Rule":
        r = Rule(self.attset, self.head)
        r.conditions = list(self.conditions)
        r.support = self.support
        r.confidence = self.confidence
        return r

    def add_condition(self, att: int, op: Operator, value: Any) -> bool:
        """
        Add the condition ``att op value``, merging it with existing
        conditions on the same attribute.

        Returns
        -------
        bool
            False if the condition contradicts the rule; the rule is then
            left unchanged.
        """
        op = Operator(op)
        a = self.attset[att]
        if a.is_nominal:
            if op == Operator.IN:
                value = tuple(sorted(set(value)))
                if not value:
                    return False
                new = _from_set(att, set(value))
            else:
                new = Condition(att, op, int(value))
        else:
            new = Condition(att, op, float(value))

        merged: list[int] = []
        for i, cond in enumerate(self.conditions):
            if cond.att != att:
                continue
            if a.is_nominal:
                values = _value_set(new, a.value_count) & _value_set(cond, a.value_count)
                if not values:
                    return False
                new = _from_set(att, values)
            else:
                cmp = _compare(new.value, cond.value)
                if cmp == Operator.EQ:
                    combined = new.op & cond.op
                    if not combined:
                        return False
                    new = Condition(att, Operator(combined), new.value)
                elif cond.op & cmp:
                    if not new.op & cmp:
                        continue                # bounds in opposite directions: interval
                else:
                    if new.op & cmp:
                        return False
                    new = cond                  # the existing bound is stronger
            merged.append(i)

        if not merged:
            self.conditions.append(new)
            return True
        self.conditions[merged[0]] = new
        for i in reversed(merged[1:]):
            del self.conditions[i]
        return True

    def matches(self, row: Any) -> bool:
        """Whether all conditions hold for ``row``; a null value never matches."""
        for cond in self.conditions:
            att = self.attset[cond.att]
            x = att.encode(self.attset.row_value(row, cond.att))
            if x is None:
                return False
            if cond.op == Operator.IN:
                if x not in cond.value:
                    return False
            elif not cond.op & _compare(x, cond.value):
                return False
        return True

    def describe(self, mode: RuleMode = RuleMode(0), max_width: int = 72) -> str:
        """Render the rule as one (possibly wrapped) statement."""
        return _RuleWriter(self.attset, mode, max_width).rule(self)


class _RuleWriter:

    def __init__(self, attset: AttributeSet, mode: RuleMode, max_width: int):
        self.attset = attset
        self.mode = RuleMode(mode)
        self.max = max_width if max_width > 0 else math.inf
        self.parts: list[str] = []
        self.pos = 0

    def write(self, s: str) -> None:
        self.parts.append(s)
        self.pos += len(s)

    def newline(self, indent: int) -> None:
        self.parts.append("\n" + " " * indent)
        self.pos = indent

    def condition(self, cond: Condition, sep: str) -> None:
        att = self.attset[cond.att]
        text = f"{sep}{format_name(att.name)} {_SIGNS[cond.op]} "
        if att.is_ordered:
            text += format_number(cond.value)
        elif cond.op == Operator.IN:
            text += "{"
        else:
            text += format_name(att.value_name(cond.value))
        if self.pos > 4 and self.pos + len(text) >= self.max:
            self.newline(2 if sep == " & " else 1)
        self.write(text)
        if cond.op != Operator.IN:
            return
        for k, vid in enumerate(cond.value):
            if k > 0:
                self.write(",")
            name = format_name(att.value_name(vid))
            if self.pos > 4 and self.pos + len(name) + 3 > self.max:
                self.newline(4)
            self.write(" " + name)
        self.write(" }")

    def rule(self, rule: Rule) -> str:
        self.parts, self.pos = [], 0
        condln = bool(self.mode & RuleMode.CONDLN)
        if rule.head is None:
            self.write("#")
        else:
            self.condition(rule.head, "")
            if condln and rule.conditions:
                self.newline(1)
        last = len(rule.conditions) - 1
        for k, cond in enumerate(rule.conditions):
            self.condition(cond, " <- " if k == 0 else " & ")
            if condln and k < last:
                self.newline(2)
        if self.mode & (RuleMode.SUPP | RuleMode.CONF):
            info = []
            if self.mode & RuleMode.SUPP:
                info.append(f"{rule.support:g}")
            if self.mode & RuleMode.CONF:
                if rule.head is not None and self.attset[rule.head.att].is_ordered:
                    info.append(f"~{rule.confidence:g}")
                else:
                    info.append(f"{rule.confidence * 100:.2f}%")
            text = " [" + "/".join(info) + "]"
            if self.pos + len(text) > self.max:
                self.newline(2)
                text = text[1:]
            self.write(text)
        self.write(";")
        return "".join(self.parts)


class RuleSet:
    """An ordered list of rules over one attribute set."""

    def __init__(self, attset: AttributeSet):
        self.attset = attset
        self._rules: list[Rule] = []

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def add(self, rule: Rule) -> int:
        """Append a rule and return its index."""
        if rule.attset is not self.attset:
            raise ValueError("rule refers to a different attribute set")
        self._rules.append(rule)
        return len(self._rules) - 1

    def first_match(self, row: Any) -> Rule | None:
        """Return the first rule whose conditions hold for ``row``."""
        for rule in self._rules:
            if rule.matches(row):
                return rule
        return None

    def describe(self, file: IO[str] | None = None,
                 mode: RuleMode = RuleMode.SUPP | RuleMode.CONF,
                 max_width: int = 72) -> str:
        """
        Render the rule set, one rule per statement.

        Parameters
        ----------
        file : file-like, optional
            If given, the text is also written to it.
        mode : RuleMode, default=RuleMode.SUPP | RuleMode.CONF
            Combination of output flags.
        max_width : int, default=72
            Preferred maximal line length; ``<= 0`` disables line breaking.

        Returns
        -------
        str
        """
        mode = RuleMode(mode)
        rule_width = max_width - 2 if max_width > 0 else 70
        writer = _RuleWriter(self.attset, mode, max_width)
        out: list[str] = []
        if mode & RuleMode.TITLE:
            out.append("/*" + "-" * rule_width + "\n  rules\n" + "-" * rule_width + "*/\n")
        out.extend(writer.rule(r) + "\n" for r in self._rules)
        if mode & RuleMode.INFO:
            out.append("\n/*" + "-" * rule_width
                       + f"\n  number of attributes: {len(self.attset)}"
                       + f"\n  number of rules     : {len(self._rules)}\n"
                       + "-" * rule_width + "*/\n")
        text = "".join(out)
        if file is not None:
            file.write(text)
        return text


# ----------------------------------------------------------------------
# Extraction
# ----------------------------------------------------------------------

def extract_rules(tree: "DecisionTree") -> RuleSet:
    """
    Convert ``tree`` into a rule set with one rule per reachable leaf.

    Support is the leaf frequency.  Confidence is ``1 - error/frequency``
    for a nominal target (1 for an empty leaf) and the root mean squared
    error ``sqrt(error/frequency)`` for a metric target (0 for an empty
    leaf).  Rules appear in depth-first order, branches ascending.
    """
    attset = tree.attset
    tree.total()
    rules = RuleSet(attset)
    if tree.root_index is None:
        return rules
    stack: list[tuple[int, Rule]] = [(tree.root_index, Rule(attset))]
    while stack:
        index, path = stack.pop()
        node = tree.node(index)
        if node.is_leaf:
            rule = path.copy()
            value = int(node.value) if tree.is_nominal else float(node.value)
            rule.head = Condition(tree.target_id, Operator.EQ, value)
            rule.support = node.frequency
            if tree.is_nominal:
                rule.confidence = 1 - node.error / node.frequency if node.frequency > 0 else 1.0
            else:
                rule.confidence = math.sqrt(node.error / node.frequency) if node.frequency > 0 else 0.0
            rules.add(rule)
            continue
        att = attset[node.attid]
        children = []
        for i, child in node.owned():
            rule = path.copy()
            if att.is_ordered:
                ok = rule.add_condition(node.attid, Operator.GE if i > 0 else Operator.LE, node.cut)
            else:
                ok = rule.add_condition(node.attid, Operator.IN, node.group(i))
            if ok:
                children.append((child, rule))
        stack.extend(reversed(children))
    logger.debug("extracted {} rule(s) from {} node(s)", len(rules), tree.size)
    return rules

"""
dtreepy.parser
==============

Reading trees from their textual description (see :mod:`dtreepy.printer`).

Errors come in two kinds.  Fatal errors (malformed grammar, invalid numbers,
an unknown target attribute) raise :class:`~dtreepy.exceptions.TreeSyntaxError`.
Recoverable errors (unknown test attribute, unknown or duplicate value in a
branch label, unknown or duplicate class in a leaf) are recorded as
:class:`~dtreepy.exceptions.ParseDiagnostic` entries; the offending part is
skipped and parsing continues, so a best-effort tree is still returned.
"""

from __future__ import annotations

import math
import os
from typing import IO, Generator, NamedTuple

from loguru import logger

from ._stack import run_nested
from .attributes import AttributeSet
from .exceptions import ParseDiagnostic, TreeSyntaxError
from .scanner import EOF, NUM, Scanner, Token
from .tree import DecisionTree

_KEYWORDS = ("tree", "dtree")


class ParseResult(NamedTuple):
    """Parsed tree together with the recoverable problems encountered."""
    tree: DecisionTree
    errors: list[ParseDiagnostic]

    @property
    def ok(self) -> bool:
        return not self.errors


class _Parser:

    def __init__(self, attset: AttributeSet, text: str):
        self.attset = attset
        self.scan = Scanner(text)
        self.errors: list[ParseDiagnostic] = []
        self.tree: DecisionTree | None = None

    # ------------------------------------------------------------------
    # Error reporting
    # ------------------------------------------------------------------
    def fatal(self, message: str, tok: Token | None = None):
        tok = tok or self.scan.token
        if tok.kind == EOF:
            message = f"{message} (unexpected end of input)"
        raise TreeSyntaxError(message, tok.line, tok.column, tok.text, self.errors)

    def warn(self, message: str, tok: Token) -> None:
        diag = ParseDiagnostic(message, tok.line, tok.column, tok.text)
        logger.warning("tree parse: {}", diag)
        self.errors.append(diag)

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------
    def expect(self, c: str) -> Token:
        if not self.scan.at(c):
            self.fatal(f"'{c}' expected")
        return self.scan.next()

    def name(self, what: str) -> Token:
        if not self.scan.token.is_name:
            self.fatal(f"{what} expected")
        return self.scan.next()

    def number(self, lo: float = -math.inf, hi: float = math.inf) -> float:
        tok = self.scan.token
        if tok.kind != NUM:
            self.fatal("number expected")
        x = float(tok.text)
        if not math.isfinite(x) or x < lo or x > hi:
            self.fatal("invalid number")
        self.scan.next()
        return x

    def skip_block(self) -> None:
        """Skip tokens up to and including the '}' closing the current block."""
        depth = 1
        while depth:
            tok = self.scan.next()
            if tok.kind == EOF:
                self.fatal("'}' expected", tok)
            if tok.is_char("{"):
                depth += 1
            elif tok.is_char("}"):
                depth -= 1

    def skip_branch(self) -> None:
        """Skip the rest of a branch label and the subtree that follows it."""
        while not self.scan.at(":"):
            if self.scan.at_end or self.scan.at("{") or self.scan.at("}"):
                self.fatal("':' expected")
            self.scan.next()
        self.scan.next()
        self.expect("{")
        self.skip_block()

    def skip_entry(self) -> None:
        """Skip a class entry of a leaf up to the next ',' or '}'."""
        while not (self.scan.at(",") or self.scan.at("}")):
            if self.scan.at_end:
                self.fatal("'}' expected")
            self.scan.next()

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------
    def parse(self) -> DecisionTree:
        tok = self.scan.token
        if tok.kind == NUM or tok.text not in _KEYWORDS or not tok.is_name:
            self.fatal("'tree' expected")
        self.scan.next()
        self.expect("(")
        tok = self.name("attribute")
        trgid = self.attset.attribute_id(tok.text)
        if trgid is None:
            self.fatal(f"unknown target attribute '{tok.text}'", tok)
        self.tree = DecisionTree(self.attset, trgid)
        self.expect(")")
        self.expect("=")
        run_nested(self.node())
        self.expect(";")
        return self.tree

    def node(self) -> Generator:
        self.expect("{")
        if self.scan.at("}"):
            self.scan.next()
            return
        if not self.scan.at("("):
            self.leaf()
            self.expect("}")
            return

        self.scan.next()
        tok = self.name("attribute")
        attid = self.attset.attribute_id(tok.text)
        if attid is None:
            self.warn(f"unknown attribute '{tok.text}'", tok)
            self.skip_block()
            return
        att = self.attset[attid]
        cut = math.nan
        if att.is_ordered:
            self.expect("|")
            cut = self.number()
        self.expect(")")
        dt = self.tree
        node = dt.create_node(attid, cut)
        first = True
        while not self.scan.at("}"):
            if not first:
                self.expect(",")
            first = False
            v = self.ordered_label(node) if att.is_ordered else self.value_list(att, node)
            if v is None:
                self.skip_branch()
                continue
            self.expect(":")
            dt.down(v)
            yield self.node()
            dt.up()
        self.scan.next()

    def ordered_label(self, node) -> int | None:
        tok = self.scan.token
        if tok.is_char("<"):
            v = 0
        elif tok.is_char(">"):
            v = 1
        else:
            self.warn("'<' or '>' expected", tok)
            return None
        if not node.branches[v].is_empty:
            self.warn(f"duplicate branch '{tok.text}'", tok)
            return None
        self.scan.next()
        return v

    def value_list(self, att, node) -> int | None:
        vids: list[int] = []
        while True:
            tok = self.scan.token
            if not tok.is_name:
                self.fatal("attribute value expected")
            vid = att.value_id(tok.text)
            if vid is None:
                self.warn(f"unknown value '{tok.text}' of attribute '{att.name}'", tok)
                return None
            if vid in vids or not node.branches[vid].is_empty:
                self.warn(f"duplicate value '{tok.text}'", tok)
                return None
            vids.append(vid)
            self.scan.next()
            if not self.scan.at(","):
                break
            self.scan.next()
        for vid in vids[1:]:
            self.tree.alias(vid, vids[0])
        return vids[0]

    def leaf(self) -> None:
        dt = self.tree
        dt.create_node()
        if not dt.is_nominal:
            value = self.number()
            self.expect("~")
            rmse = self.number(0.0)
            self.expect("[")
            frq = self.number(0.0)
            self.expect("]")
            dt.set_prediction(value, rmse * rmse * frq, frq)
            return
        target = dt.target
        seen: set[int] = set()
        while True:
            tok = self.name("class value")
            cls = target.value_id(tok.text)
            if cls is None or cls in seen:
                kind = "unknown" if cls is None else "duplicate"
                self.warn(f"{kind} class '{tok.text}'", tok)
                self.skip_entry()
            else:
                seen.add(cls)
                self.expect(":")
                dt.set_frequency(cls, self.number(0.0))
                if self.scan.at("("):
                    self.scan.next()
                    self.number(0.0, 100.0)
                    self.expect("%")
                    self.expect(")")
            if not self.scan.at(","):
                break
            self.scan.next()


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def parse_tree(attset: AttributeSet, source: str) -> ParseResult:
    """
    Parse the textual description of a tree.

    Parameters
    ----------
    attset : AttributeSet
        Attribute set the tree refers to.  Attribute and value names in the
        text are looked up here.
    source : str
        Text as produced by :func:`dtreepy.printer.describe`.

    Returns
    -------
    ParseResult
        The tree (node statistics aggregated) and the list of recoverable
        problems.

    Raises
    ------
    TreeSyntaxError
        On a fatal error; no tree is returned.
    """
    logger.debug("parsing tree ({} characters)", len(source))
    p = _Parser(attset, source)
    tree = p.parse()
    tree.aggregate()
    logger.debug("parsed tree: {} node(s), {} diagnostic(s)", tree.size, len(p.errors))
    return ParseResult(tree, p.errors)


def load_tree(attset: AttributeSet, fp: IO[str] | str | os.PathLike) -> ParseResult:
    """Parse a tree from an open text file or a file path."""
    if hasattr(fp, "read"):
        return parse_tree(attset, fp.read())
    with open(fp, encoding="utf-8") as fh:
        return parse_tree(attset, fh.read())

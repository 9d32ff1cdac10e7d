"""
dtreepy.scanner
===============

Tokenizer for the textual tree format, and the matching name formatter.

Tokens are

- ``ID``: an identifier-like word or a double-quoted string (value is the
  unescaped text);
- ``NUM``: a word that reads as a decimal number;
- ``CHAR``: any other single character (``{ } ( ) | , : ; = < > ~ [ ] %``);
- ``EOF``: end of input.

White space, ``/* ... */`` and ``// ...`` comments are skipped.
"""

from __future__ import annotations

import re
from typing import Iterator, NamedTuple

from .exceptions import TreeSyntaxError

ID = "ID"
NUM = "NUM"
CHAR = "CHAR"
EOF = "EOF"

_TOKEN_RE = re.compile(r"""
    (?P<ws>[ \t\r\f\v\n]+)
  | (?P<lcomment>//[^\n]*)
  | (?P<bcomment>/\*.*?\*/)
  | (?P<badcomment>/\*)
  | (?P<string>"(?:[^"\\\n]|\\.)*")
  | (?P<badstring>")
  | (?P<word>[A-Za-z0-9_.+\-]+)
  | (?P<char>.)
""", re.VERBOSE | re.DOTALL)

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "f": "\f", "v": "\v",
            "a": "\a", "b": "\b", "0": "\0"}
_UNESCAPES = {v: "\\" + k for k, v in _ESCAPES.items()}
_UNESCAPES.update({'"': '\\"', "\\": "\\\\"})


class Token(NamedTuple):
    kind: str
    text: str
    line: int
    column: int

    def is_char(self, c: str) -> bool:
        return self.kind == CHAR and self.text == c

    @property
    def is_name(self) -> bool:
        """Whether the token can serve as an attribute or value name."""
        return self.kind in (ID, NUM)


def _unescape(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body):
            i += 1
            c = _ESCAPES.get(body[i], body[i])
        out.append(c)
        i += 1
    return "".join(out)


def tokenize(text: str) -> Iterator[Token]:
    """Yield the tokens of ``text``, ending with an ``EOF`` token."""
    line, line_start = 1, 0
    for m in _TOKEN_RE.finditer(text):
        kind = m.lastgroup
        col = m.start() - line_start + 1
        if kind == "badcomment":
            raise TreeSyntaxError("unterminated comment", line, col, "/*")
        if kind == "badstring":
            raise TreeSyntaxError("unterminated string", line, col, '"')
        if kind == "word":
            yield Token(NUM if _NUMBER_RE.fullmatch(m.group()) else ID, m.group(), line, col)
        elif kind == "string":
            yield Token(ID, _unescape(m.group()[1:-1]), line, col)
        elif kind == "char":
            yield Token(CHAR, m.group(), line, col)
        nl = m.group().count("\n")
        if nl and kind in ("ws", "bcomment", "char"):
            line += nl
            line_start = m.start() + m.group().rfind("\n") + 1
    col = len(text) - line_start + 1
    yield Token(EOF, "", line, col)


class Scanner:
    """Token stream with one token of lookahead.

    Parameters
    ----------
    text : str
        Source text.
    """

    def __init__(self, text: str):
        self._tokens = tokenize(text)
        self.token: Token = next(self._tokens)

    def next(self) -> Token:
        """Consume the current token and return it."""
        tok = self.token
        if tok.kind != EOF:
            self.token = next(self._tokens)
        return tok

    def at(self, c: str) -> bool:
        return self.token.is_char(c)

    @property
    def at_end(self) -> bool:
        return self.token.kind == EOF


def format_name(name: str) -> str:
    """Return ``name`` as it must be written so that it scans back unchanged."""
    if _IDENT_RE.fullmatch(name) or _NUMBER_RE.fullmatch(name):
        return name
    return '"' + "".join(_UNESCAPES.get(c, c) for c in name) + '"'


def format_number(x: float) -> str:
    """Shortest text that reads back as the same double (``3.0`` -> ``3``)."""
    x = float(x)
    if x.is_integer() and abs(x) < 1e16:
        return str(int(x))
    return repr(x)

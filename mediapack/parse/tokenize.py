"""CSS tokenization for media query preludes and stylesheets.

Covers the subset of CSS Syntax Level 3 that media queries and rule blocks
need. Comments are dropped; everything else keeps its source offset so that
diagnostics can point back at the original text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# Token kinds
IDENT = "ident"
FUNCTION = "function"
AT_KEYWORD = "at-keyword"
HASH = "hash"
STRING = "string"
NUMBER = "number"
PERCENTAGE = "percentage"
DIMENSION = "dimension"
WHITESPACE = "whitespace"
COLON = "colon"
SEMICOLON = "semicolon"
COMMA = "comma"
LPAREN = "("
RPAREN = ")"
LBRACKET = "["
RBRACKET = "]"
LBRACE = "{"
RBRACE = "}"
DELIM = "delim"

_SIMPLE = {
    ":": COLON,
    ";": SEMICOLON,
    ",": COMMA,
    "(": LPAREN,
    ")": RPAREN,
    "[": LBRACKET,
    "]": RBRACKET,
    "{": LBRACE,
    "}": RBRACE,
}

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.\d+|\d+|\.\d+)(?:[eE][+-]?\d+)?")
_NAME_RE = re.compile(r"(?:[A-Za-z0-9_\-]|[^\x00-\x7f]|\\.)+")
_IDENT_START_RE = re.compile(r"(?:--|-?(?:[A-Za-z_]|[^\x00-\x7f]|\\.))")
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Token:
    """A single CSS token."""

    kind: str
    value: str
    offset: int
    end: int
    number: float | None = None
    unit: str = ""

    def is_ident(self, name: str | None = None) -> bool:
        if self.kind != IDENT:
            return False
        return name is None or self.value.lower() == name

    def is_delim(self, char: str) -> bool:
        return self.kind == DELIM and self.value == char


@dataclass
class TokenStream:
    """Tokens plus the warnings collected while producing them."""

    tokens: list[Token]
    warnings: list[str] = field(default_factory=list)


def _unescape(name: str) -> str:
    return re.sub(r"\\(.)", r"\1", name)


def _starts_ident(text: str, pos: int) -> bool:
    return _IDENT_START_RE.match(text, pos) is not None


def tokenize(text: str) -> TokenStream:
    """Tokenize CSS text.

    Args:
        text: CSS source (a full stylesheet or a media query prelude)

    Returns:
        TokenStream with comments removed. Unterminated strings and comments
        are closed at end of input and reported as warnings.
    """
    tokens: list[Token] = []
    warnings: list[str] = []
    pos = 0
    n = len(text)

    while pos < n:
        ch = text[pos]

        if text.startswith("/*", pos):
            end = text.find("*/", pos + 2)
            if end == -1:
                warnings.append(f"Unterminated comment at offset {pos}")
                pos = n
            else:
                pos = end + 2
            continue

        m = _WS_RE.match(text, pos)
        if m:
            tokens.append(Token(WHITESPACE, " ", pos, m.end()))
            pos = m.end()
            continue

        if ch in "\"'":
            start = pos
            pos += 1
            buf: list[str] = []
            closed = False
            while pos < n:
                c = text[pos]
                if c == "\\" and pos + 1 < n:
                    buf.append(text[pos + 1])
                    pos += 2
                    continue
                if c == ch:
                    pos += 1
                    closed = True
                    break
                if c == "\n":
                    break
                buf.append(c)
                pos += 1
            if not closed:
                warnings.append(f"Unterminated string at offset {start}")
            tokens.append(Token(STRING, "".join(buf), start, pos))
            continue

        if ch in _SIMPLE:
            tokens.append(Token(_SIMPLE[ch], ch, pos, pos + 1))
            pos += 1
            continue

        m = _NUMBER_RE.match(text, pos)
        if m and (ch.isdigit() or ch == "." or (ch in "+-" and not _starts_ident(text, pos))):
            start = pos
            number = float(m.group(0))
            pos = m.end()
            if pos < n and text[pos] == "%":
                tokens.append(Token(PERCENTAGE, text[start:pos + 1], start, pos + 1, number=number, unit="%"))
                pos += 1
                continue
            if pos < n and _starts_ident(text, pos):
                um = _NAME_RE.match(text, pos)
                assert um is not None
                unit = _unescape(um.group(0))
                tokens.append(Token(DIMENSION, text[start:um.end()], start, um.end(), number=number, unit=unit.lower()))
                pos = um.end()
                continue
            tokens.append(Token(NUMBER, m.group(0), start, pos, number=number))
            continue

        if ch == "@" and _starts_ident(text, pos + 1):
            m2 = _NAME_RE.match(text, pos + 1)
            assert m2 is not None
            tokens.append(Token(AT_KEYWORD, _unescape(m2.group(0)), pos, m2.end()))
            pos = m2.end()
            continue

        if ch == "#" and pos + 1 < n and _NAME_RE.match(text, pos + 1):
            m2 = _NAME_RE.match(text, pos + 1)
            assert m2 is not None
            tokens.append(Token(HASH, _unescape(m2.group(0)), pos, m2.end()))
            pos = m2.end()
            continue

        if _starts_ident(text, pos):
            m2 = _NAME_RE.match(text, pos)
            assert m2 is not None
            name = _unescape(m2.group(0))
            if m2.end() < n and text[m2.end()] == "(":
                tokens.append(Token(FUNCTION, name, pos, m2.end() + 1))
                pos = m2.end() + 1
            else:
                tokens.append(Token(IDENT, name, pos, m2.end()))
                pos = m2.end()
            continue

        tokens.append(Token(DELIM, ch, pos, pos + 1))
        pos += 1

    return TokenStream(tokens=tokens, warnings=warnings)


def strip_whitespace(tokens: list[Token]) -> list[Token]:
    """Drop whitespace tokens."""
    return [t for t in tokens if t.kind != WHITESPACE]


def line_of(text: str, offset: int) -> int:
    """1-based line number of an offset in text."""
    return text.count("\n", 0, offset) + 1

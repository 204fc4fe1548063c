"""Media query parsing (Media Queries Level 4 syntax).

Parses the prelude of an ``@media`` rule (or a ``media`` attribute) into a
``MediaQueryList``. Malformed queries follow CSS error recovery: the broken
query becomes ``not all`` and a warning is recorded, while the rest of the
list is kept.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import NamedTuple, Union

from .tokenize import (
    COLON,
    COMMA,
    DELIM,
    DIMENSION,
    FUNCTION,
    IDENT,
    LPAREN,
    NUMBER,
    RPAREN,
    Token,
    strip_whitespace,
    tokenize,
)


@dataclass(frozen=True)
class MediaQuerySyntaxError(ValueError):
    """Raised in strict mode for a malformed media query."""

    message: str
    offset: int
    text: str

    def __str__(self) -> str:
        return f"{self.message} at offset {self.offset} in {self.text!r}"


class _ParseFailure(Exception):
    def __init__(self, message: str, offset: int):
        super().__init__(message)
        self.message = message
        self.offset = offset


class FeatureSpec(NamedTuple):
    """How a media feature is typed and compared."""

    kind: str  # "range" or "discrete"
    value_type: str  # "length", "ratio", "resolution", "integer", "number", "ident"
    keywords: frozenset[str] = frozenset()


def _discrete(*words: str) -> FeatureSpec:
    return FeatureSpec("discrete", "ident", frozenset(words))


FEATURES: dict[str, FeatureSpec] = {
    "width": FeatureSpec("range", "length"),
    "height": FeatureSpec("range", "length"),
    "device-width": FeatureSpec("range", "length"),
    "device-height": FeatureSpec("range", "length"),
    "aspect-ratio": FeatureSpec("range", "ratio"),
    "device-aspect-ratio": FeatureSpec("range", "ratio"),
    "resolution": FeatureSpec("range", "resolution"),
    "-webkit-device-pixel-ratio": FeatureSpec("range", "number"),
    "color": FeatureSpec("range", "integer"),
    "color-index": FeatureSpec("range", "integer"),
    "monochrome": FeatureSpec("range", "integer"),
    "grid": FeatureSpec("discrete", "integer"),
    "orientation": _discrete("portrait", "landscape"),
    "hover": _discrete("none", "hover"),
    "any-hover": _discrete("none", "hover"),
    "pointer": _discrete("none", "coarse", "fine"),
    "any-pointer": _discrete("none", "coarse", "fine"),
    "prefers-color-scheme": _discrete("light", "dark"),
    "prefers-reduced-motion": _discrete("no-preference", "reduce"),
    "prefers-contrast": _discrete("no-preference", "more", "less", "custom"),
    "forced-colors": _discrete("none", "active"),
    "inverted-colors": _discrete("none", "inverted"),
    "update": _discrete("none", "slow", "fast"),
    "scan": _discrete("interlace", "progressive"),
    "overflow-block": _discrete("none", "scroll", "paged"),
    "overflow-inline": _discrete("none", "scroll"),
    "display-mode": _discrete("browser", "minimal-ui", "standalone", "fullscreen", "picture-in-picture"),
}

MEDIA_TYPES = frozenset({"all", "screen", "print", "speech"})

# Recognised by the grammar but never match anything
DEPRECATED_MEDIA_TYPES = frozenset(
    {"tty", "tv", "projection", "handheld", "braille", "embossed", "aural"}
)

_RESERVED_TYPE_NAMES = frozenset({"and", "or", "not", "only", "layer"})

LENGTH_UNITS = frozenset(
    {"px", "em", "rem", "cm", "mm", "q", "in", "pt", "pc", "vw", "vh", "vmin", "vmax"}
)
RESOLUTION_UNITS = frozenset({"dpi", "dpcm", "dppx", "x"})

_COMPARATORS = {"<", "<=", ">", ">=", "="}
_FLIP = {"<": ">", "<=": ">=", ">": "<", ">=": "<=", "=": "="}


def _fmt_number(n: float) -> str:
    if float(n).is_integer():
        return str(int(n))
    return f"{n:.6f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class Value:
    """A media feature value."""

    kind: str  # "number", "dimension", "ratio", "ident"
    number: float = 0.0
    unit: str = ""
    ident: str = ""
    ratio: Fraction | None = None

    def serialize(self) -> str:
        if self.kind == "ident":
            return self.ident
        if self.kind == "ratio":
            assert self.ratio is not None
            return f"{self.ratio.numerator}/{self.ratio.denominator}"
        if self.kind == "dimension":
            return f"{_fmt_number(self.number)}{self.unit}"
        return _fmt_number(self.number)


class Comparison(NamedTuple):
    """A bound on a feature, read as ``feature <op> value``."""

    op: str
    value: Value


@dataclass(frozen=True)
class MediaFeature:
    """A parenthesized media feature test."""

    name: str
    form: str  # "boolean", "plain" or "range"
    comparisons: tuple[Comparison, ...] = ()
    value: Value | None = None
    prefix: str = ""  # "min" or "max" for the legacy plain forms

    def serialize(self) -> str:
        if self.form == "boolean":
            return f"({self.name})"
        if self.form == "plain":
            assert self.value is not None
            name = f"{self.prefix}-{self.name}" if self.prefix else self.name
            if self.prefix and self.name.startswith("-webkit-"):
                name = f"-webkit-{self.prefix}-{self.name[len('-webkit-'):]}"
            return f"({name}: {self.value.serialize()})"
        if len(self.comparisons) == 2:
            lo, hi = self.comparisons
            return f"({lo.value.serialize()} {_FLIP[lo.op]} {self.name} {hi.op} {hi.value.serialize()})"
        c = self.comparisons[0]
        return f"({self.name} {c.op} {c.value.serialize()})"


@dataclass(frozen=True)
class GeneralEnclosed:
    """Parenthesized or functional syntax the parser does not understand."""

    text: str

    def serialize(self) -> str:
        return self.text


@dataclass(frozen=True)
class Not:
    child: "Condition"

    def serialize(self) -> str:
        return f"not {_in_parens(self.child)}"


@dataclass(frozen=True)
class And:
    children: tuple["Condition", ...]

    def serialize(self) -> str:
        return " and ".join(_in_parens(c) for c in self.children)


@dataclass(frozen=True)
class Or:
    children: tuple["Condition", ...]

    def serialize(self) -> str:
        return " or ".join(_in_parens(c) for c in self.children)


Condition = Union[MediaFeature, GeneralEnclosed, Not, And, Or]


def _in_parens(node: Condition) -> str:
    if isinstance(node, (Not, And, Or)):
        return f"({node.serialize()})"
    return node.serialize()


@dataclass(frozen=True)
class MediaQuery:
    """One query of a media query list."""

    qualifier: str = ""  # "", "only" or "not"
    media_type: str | None = None
    condition: Condition | None = None
    valid: bool = True

    def serialize(self) -> str:
        if not self.valid:
            return "not all"
        parts: list[str] = []
        if self.qualifier:
            parts.append(self.qualifier)
        if self.media_type is not None:
            parts.append(self.media_type)
            if self.condition is not None:
                parts.append("and")
                parts.append(_in_parens(self.condition) if isinstance(self.condition, Or) else self.condition.serialize())
        elif self.condition is not None:
            parts.append(self.condition.serialize())
        return " ".join(parts)


@dataclass(frozen=True)
class MediaQueryList:
    """A comma-separated list of media queries; matches if any query matches."""

    queries: tuple[MediaQuery, ...]
    text: str = ""
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def serialize(self) -> str:
        return ", ".join(q.serialize() for q in self.queries)

    def features(self) -> list[MediaFeature]:
        """All media features in the list, in source order."""
        found: list[MediaFeature] = []
        for q in self.queries:
            if q.condition is not None:
                _collect_features(q.condition, found)
        return found


ALL = MediaQueryList(queries=(MediaQuery(media_type="all"),), text="all")


def _collect_features(node: Condition, out: list[MediaFeature]) -> None:
    if isinstance(node, MediaFeature):
        out.append(node)
    elif isinstance(node, Not):
        _collect_features(node.child, out)
    elif isinstance(node, (And, Or)):
        for child in node.children:
            _collect_features(child, out)


def split_feature_name(raw: str) -> tuple[str, str]:
    """Split a feature name into (prefix, name), e.g. ``min-width`` -> ("min", "width")."""
    name = raw.lower()
    if name.startswith("-webkit-min-") or name.startswith("-webkit-max-"):
        return name[8:11], "-webkit-" + name[12:]
    if name.startswith("min-") or name.startswith("max-"):
        return name[:3], name[4:]
    return "", name


class _QueryParser:
    """Recursive-descent parser over the whitespace-stripped tokens of one query."""

    def __init__(self, tokens: list[Token], source: str):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    # -- token helpers -------------------------------------------------

    def peek(self, ahead: int = 0) -> Token | None:
        i = self.pos + ahead
        return self.tokens[i] if i < len(self.tokens) else None

    def next(self) -> Token:
        tok = self.peek()
        if tok is None:
            raise _ParseFailure("Unexpected end of query", self._end_offset())
        self.pos += 1
        return tok

    def _end_offset(self) -> int:
        return self.tokens[-1].end if self.tokens else 0

    def fail(self, message: str, tok: Token | None = None) -> _ParseFailure:
        tok = tok if tok is not None else self.peek()
        return _ParseFailure(message, tok.offset if tok is not None else self._end_offset())

    # -- grammar -------------------------------------------------------

    def parse_query(self) -> MediaQuery:
        if not self.tokens:
            raise _ParseFailure("Empty media query", 0)

        first = self.peek()
        assert first is not None
        second = self.peek(1)

        if first.kind == IDENT and not first.is_ident("not") or (
            first.kind == IDENT and first.is_ident("not") and second is not None and second.kind == IDENT
        ):
            qualifier = ""
            if first.is_ident("not") or first.is_ident("only"):
                qualifier = first.value.lower()
                self.next()
            type_tok = self.next()
            if type_tok.kind != IDENT:
                raise self.fail("Expected media type", type_tok)
            media_type = type_tok.value.lower()
            if media_type in _RESERVED_TYPE_NAMES:
                raise self.fail(f"'{media_type}' is not a valid media type", type_tok)
            condition: Condition | None = None
            if self.peek() is not None:
                tok = self.next()
                if not tok.is_ident("and"):
                    raise self.fail("Expected 'and' after media type", tok)
                condition = self.parse_condition(allow_or=False)
            self._expect_end()
            return MediaQuery(qualifier=qualifier, media_type=media_type, condition=condition)

        condition = self.parse_condition(allow_or=True)
        self._expect_end()
        return MediaQuery(condition=condition)

    def _expect_end(self) -> None:
        tok = self.peek()
        if tok is not None:
            raise self.fail(f"Unexpected token {tok.value!r}", tok)

    def parse_condition(self, allow_or: bool) -> Condition:
        tok = self.peek()
        if tok is None:
            raise self.fail("Expected media condition")
        if tok.is_ident("not"):
            self.next()
            return Not(self.parse_in_parens())

        first = self.parse_in_parens()
        tok = self.peek()
        if tok is None or tok.kind != IDENT:
            return first

        op = tok.value.lower()
        if op not in ("and", "or"):
            raise self.fail(f"Unexpected keyword {tok.value!r}", tok)
        if op == "or" and not allow_or:
            raise self.fail("'or' is not allowed after a media type", tok)

        children = [first]
        while True:
            tok = self.peek()
            if tok is None:
                break
            if tok.kind != IDENT:
                raise self.fail(f"Unexpected token {tok.value!r}", tok)
            if tok.value.lower() != op:
                raise self.fail("Cannot mix 'and' and 'or' without parentheses", tok)
            self.next()
            children.append(self.parse_in_parens())
        return And(tuple(children)) if op == "and" else Or(tuple(children))

    def parse_in_parens(self) -> Condition:
        tok = self.next()
        if tok.kind == FUNCTION:
            if tok.value.lower() in ("and", "or", "not"):
                raise self.fail(f"Missing whitespace after {tok.value!r}", tok)
            end = self._matching_paren(self.pos)
            self.pos = end + 1
            return GeneralEnclosed(self._slice(tok, self.tokens[end]))
        if tok.kind != LPAREN:
            raise self.fail("Expected '('", tok)

        start = self.pos
        end = self._matching_paren(start)
        inner = self.tokens[start:end]
        self.pos = end + 1
        text = self._slice(tok, self.tokens[end])

        if not inner:
            return GeneralEnclosed(text)

        head = inner[0]
        if head.kind in (LPAREN, FUNCTION) or head.is_ident("not"):
            sub = _QueryParser(inner, self.source)
            try:
                node = sub.parse_condition(allow_or=True)
                sub._expect_end()
                return node
            except _ParseFailure:
                return GeneralEnclosed(text)

        feature = _parse_feature(inner, self.source)
        return feature if feature is not None else GeneralEnclosed(text)

    def _matching_paren(self, start: int) -> int:
        depth = 1
        i = start
        while i < len(self.tokens):
            kind = self.tokens[i].kind
            if kind in (LPAREN, FUNCTION):
                depth += 1
            elif kind == RPAREN:
                depth -= 1
                if depth == 0:
                    return i
            i += 1
        raise _ParseFailure("Unbalanced parentheses", self.tokens[start - 1].offset)

    def _slice(self, first: Token, last: Token) -> str:
        return " ".join(self.source[first.offset:last.end].split())


def _parse_value(tokens: list[Token]) -> Value | None:
    # Overflowing literals such as 1e999 leave the value unparsed
    if any(t.number is not None and not math.isfinite(t.number) for t in tokens):
        return None
    if len(tokens) == 1:
        t = tokens[0]
        if t.kind == NUMBER:
            assert t.number is not None
            return Value("number", number=t.number)
        if t.kind == DIMENSION:
            assert t.number is not None
            return Value("dimension", number=t.number, unit=t.unit)
        if t.kind == IDENT:
            return Value("ident", ident=t.value.lower())
        return None
    if len(tokens) == 3 and tokens[1].is_delim("/"):
        a, b = tokens[0], tokens[2]
        if a.kind == NUMBER and b.kind == NUMBER:
            assert a.number is not None and b.number is not None
            if a.number < 0 or b.number <= 0:
                return None
            return Value("ratio", ratio=Fraction(str(a.number)) / Fraction(str(b.number)))
    return None


def _value_fits(spec: FeatureSpec, value: Value) -> bool:
    vt = spec.value_type
    if vt == "length":
        if value.kind == "number":
            return value.number == 0
        return value.kind == "dimension" and value.unit in LENGTH_UNITS
    if vt == "ratio":
        if value.kind == "number":
            return value.number > 0
        return value.kind == "ratio" and value.ratio is not None
    if vt == "resolution":
        return value.kind == "dimension" and value.unit in RESOLUTION_UNITS and value.number >= 0
    if vt == "integer":
        return value.kind == "number" and float(value.number).is_integer() and value.number >= 0
    if vt == "number":
        return value.kind == "number" and value.number >= 0
    return value.kind == "ident" and value.ident in spec.keywords


def _normalize_ratio(spec: FeatureSpec, value: Value) -> Value:
    if spec.value_type == "ratio" and value.kind == "number":
        return Value("ratio", ratio=Fraction(str(value.number)))
    return value


def _split_operators(tokens: list[Token]) -> tuple[list[list[Token]], list[str]] | None:
    """Split range-form tokens on comparison operators.

    ``<=`` and ``>=`` must be written without whitespace between the characters.
    """
    segments: list[list[Token]] = [[]]
    ops: list[str] = []
    i = 0
    while i < len(tokens):
        t = tokens[i]
        if t.kind == DELIM and t.value in "<>=":
            op = t.value
            nxt = tokens[i + 1] if i + 1 < len(tokens) else None
            if t.value in "<>" and nxt is not None and nxt.is_delim("=") and nxt.offset == t.offset + 1:
                op += "="
                i += 1
            ops.append(op)
            segments.append([])
        else:
            segments[-1].append(t)
        i += 1
    if not ops:
        return None
    return segments, ops


def _parse_feature(tokens: list[Token], source: str) -> MediaFeature | None:
    """Parse the inside of ``( ... )`` as a media feature, or return None."""
    head = tokens[0]

    # Boolean context: (hover)
    if len(tokens) == 1:
        if head.kind != IDENT:
            return None
        prefix, name = split_feature_name(head.value)
        if prefix or name not in FEATURES:
            return None
        return MediaFeature(name=name, form="boolean")

    # Plain form: (min-width: 600px)
    if head.kind == IDENT and tokens[1].kind == COLON:
        prefix, name = split_feature_name(head.value)
        spec = FEATURES.get(name)
        if spec is None:
            return None
        if prefix and spec.kind != "range":
            return None
        value = _parse_value(tokens[2:])
        if value is None or not _value_fits(spec, value):
            return None
        value = _normalize_ratio(spec, value)
        if spec.kind == "range":
            op = {"min": ">=", "max": "<=", "": "="}[prefix]
            return MediaFeature(
                name=name,
                form="plain",
                comparisons=(Comparison(op, value),),
                value=value,
                prefix=prefix,
            )
        return MediaFeature(name=name, form="plain", value=value)

    # Range form: (width >= 600px), (600px <= width), (400px < width < 700px)
    split = _split_operators(tokens)
    if split is None:
        return None
    segments, ops = split
    if any(op not in _COMPARATORS for op in ops) or any(not seg for seg in segments):
        return None

    def _feature_name(seg: list[Token]) -> str | None:
        if len(seg) == 1 and seg[0].kind == IDENT:
            prefix, name = split_feature_name(seg[0].value)
            if not prefix and name in FEATURES:
                return name
        return None

    if len(segments) == 2:
        left_name = _feature_name(segments[0])
        right_name = _feature_name(segments[1])
        if left_name is not None:
            name, value_tokens, op = left_name, segments[1], ops[0]
        elif right_name is not None:
            name, value_tokens, op = right_name, segments[0], _FLIP[ops[0]]
        else:
            return None
        spec = FEATURES[name]
        if spec.kind != "range":
            return None
        value = _parse_value(value_tokens)
        if value is None or not _value_fits(spec, value):
            return None
        return MediaFeature(
            name=name,
            form="range",
            comparisons=(Comparison(op, _normalize_ratio(spec, value)),),
        )

    if len(segments) == 3:
        name = _feature_name(segments[1])
        if name is None:
            return None
        spec = FEATURES[name]
        if spec.kind != "range":
            return None
        lo_op, hi_op = ops
        if "=" in (lo_op, hi_op):
            return None
        if lo_op[0] != hi_op[0]:
            return None
        lo = _parse_value(segments[0])
        hi = _parse_value(segments[2])
        if lo is None or hi is None or not _value_fits(spec, lo) or not _value_fits(spec, hi):
            return None
        return MediaFeature(
            name=name,
            form="range",
            comparisons=(
                Comparison(_FLIP[lo_op], _normalize_ratio(spec, lo)),
                Comparison(hi_op, _normalize_ratio(spec, hi)),
            ),
        )

    return None


def _split_queries(tokens: list[Token]) -> list[list[Token]]:
    """Split on top-level commas."""
    groups: list[list[Token]] = [[]]
    depth = 0
    for t in tokens:
        if t.kind in (LPAREN, FUNCTION):
            depth += 1
        elif t.kind == RPAREN:
            depth = max(0, depth - 1)
        if t.kind == COMMA and depth == 0:
            groups.append([])
            continue
        groups[-1].append(t)
    return groups


def parse_media_query_list(text: str, strict: bool = False) -> MediaQueryList:
    """Parse a media query list.

    Args:
        text: Prelude text, e.g. ``"screen and (min-width: 768px), print"``
        strict: Raise MediaQuerySyntaxError on the first malformed query
            instead of replacing it with ``not all``

    Returns:
        MediaQueryList. An empty prelude is equivalent to ``all``.
    """
    stream = tokenize(text)
    tokens = strip_whitespace(stream.tokens)
    warnings: list[str] = list(stream.warnings)

    if not tokens:
        return MediaQueryList(queries=(MediaQuery(media_type="all"),), text=text, warnings=tuple(warnings))

    queries: list[MediaQuery] = []
    for group in _split_queries(tokens):
        try:
            queries.append(_QueryParser(group, text).parse_query())
        except _ParseFailure as e:
            if strict:
                raise MediaQuerySyntaxError(message=e.message, offset=e.offset, text=text) from None
            snippet = " ".join(text[group[0].offset:].split(",")[0].split()) if group else ""
            warnings.append(f"Invalid media query {snippet!r}: {e.message}; treated as 'not all'")
            queries.append(MediaQuery(qualifier="not", media_type="all", valid=False))

    return MediaQueryList(queries=tuple(queries), text=text, warnings=tuple(warnings))

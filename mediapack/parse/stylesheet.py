"""Split CSS into style rules and the media blocks that guard them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .query import MediaQueryList, parse_media_query_list
from .tokenize import (
    AT_KEYWORD,
    COLON,
    COMMA,
    DELIM,
    FUNCTION,
    IDENT,
    LBRACE,
    LBRACKET,
    LPAREN,
    RBRACE,
    RBRACKET,
    RPAREN,
    SEMICOLON,
    STRING,
    WHITESPACE,
    Token,
    line_of,
    tokenize,
)

# At-rules whose block holds ordinary style rules that cascade normally
TRANSPARENT_AT_RULES = frozenset({"supports", "layer", "scope", "document", "-moz-document", "starting-style"})


@dataclass(frozen=True)
class Declaration:
    """A single ``property: value`` pair."""

    property: str
    value: str
    important: bool = False
    line: int = 0


@dataclass
class StyleRule:
    """A qualified rule: selector list plus declarations."""

    selectors: tuple[str, ...]
    declarations: tuple[Declaration, ...]
    order: int
    line: int
    media: tuple[MediaQueryList, ...] = ()
    media_block: int | None = None  # index into Stylesheet.media_blocks
    origin: str = ""

    @property
    def selector_text(self) -> str:
        return ", ".join(self.selectors)


@dataclass
class MediaBlock:
    """An ``@media`` block (or a ``media`` attribute / ``@import`` media list)."""

    index: int
    prelude: str
    query: MediaQueryList
    line: int
    parent: int | None = None
    rules: list[StyleRule] = field(default_factory=list)
    origin: str = ""


@dataclass(frozen=True)
class ImportRule:
    """``@import url(...) <media-list>;``"""

    url: str
    query: MediaQueryList
    line: int
    origin: str = ""


@dataclass(frozen=True)
class AtBlock:
    """Any other block at-rule, recorded but not evaluated."""

    name: str
    prelude: str
    line: int
    origin: str = ""


@dataclass
class Stylesheet:
    """Ordered style rules with their media guards."""

    rules: list[StyleRule] = field(default_factory=list)
    media_blocks: list[MediaBlock] = field(default_factory=list)
    imports: list[ImportRule] = field(default_factory=list)
    at_rules: list[AtBlock] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def block_chain(self, block: MediaBlock) -> list[MediaBlock]:
        """A media block and its enclosing blocks, outermost first."""
        chain = [block]
        while chain[0].parent is not None:
            chain.insert(0, self.media_blocks[chain[0].parent])
        return chain


def _close(tokens: list[Token], start: int, open_kind: str, close_kind: str) -> int:
    """Index of the token closing a block opened just before ``start``, or -1."""
    depth = 1
    for i in range(start, len(tokens)):
        kind = tokens[i].kind
        if kind == open_kind or (open_kind == LPAREN and kind == FUNCTION):
            depth += 1
        elif kind == close_kind:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _split_top_level(tokens: list[Token], sep: str) -> list[list[Token]]:
    groups: list[list[Token]] = [[]]
    depth = 0
    for t in tokens:
        if t.kind in (LPAREN, FUNCTION, LBRACKET, LBRACE):
            depth += 1
        elif t.kind in (RPAREN, RBRACKET, RBRACE):
            depth = max(0, depth - 1)
        if t.kind == sep and depth == 0:
            groups.append([])
            continue
        groups[-1].append(t)
    return groups


class StylesheetBuilder:
    """Accumulates one or more CSS sources into a single Stylesheet.

    Sources are added in document order; rule ``order`` keeps increasing across
    sources so later sources win cascade ties.
    """

    def __init__(self) -> None:
        self.sheet = Stylesheet()
        self._order = 0

    def add_css(
        self,
        text: str,
        media: str | tuple[str, ...] | None = None,
        origin: str = "",
        line_offset: int = 0,
    ) -> "StylesheetBuilder":
        """Parse CSS text and append its rules.

        Args:
            text: CSS source
            media: Optional media query list(s) guarding the whole source
                (from a ``media`` attribute or an ``@import``); a tuple nests
                outermost first
            origin: Label used in warnings (file name, fragment position)
            line_offset: Added to line numbers, for CSS embedded in another file
        """
        stream = tokenize(text)
        label = f"{origin}: " if origin else ""
        self.sheet.warnings.extend(f"{label}{w}" for w in stream.warnings)

        parent: int | None = None
        media_stack: tuple[MediaQueryList, ...] = ()
        preludes = (media,) if isinstance(media, str) else (media or ())
        for prelude in preludes:
            if not prelude.strip() or prelude.strip().lower() == "all":
                continue
            block = self._add_media_block(prelude, parent, line_offset + 1, origin)
            parent = block.index
            media_stack = media_stack + (block.query,)

        ctx = _Context(text=text, tokens=stream.tokens, origin=origin, line_offset=line_offset)
        self._parse_rules(ctx, 0, len(ctx.tokens), media_stack, parent, top_level=True)
        return self

    def build(self) -> Stylesheet:
        return self.sheet

    # -- internals -------------------------------------------------------

    def _warn(self, ctx: "_Context", message: str, offset: int) -> None:
        where = f"{ctx.origin}:" if ctx.origin else "line "
        self.sheet.warnings.append(f"{where}{ctx.line(offset)}: {message}")

    def _add_media_block(self, prelude: str, parent: int | None, line: int, origin: str) -> MediaBlock:
        query = parse_media_query_list(prelude)
        for w in query.warnings:
            self.sheet.warnings.append(f"{origin + ':' if origin else 'line '}{line}: {w}")
        block = MediaBlock(
            index=len(self.sheet.media_blocks),
            prelude=" ".join(prelude.split()),
            query=query,
            line=line,
            parent=parent,
            origin=origin,
        )
        self.sheet.media_blocks.append(block)
        return block

    def _parse_rules(
        self,
        ctx: "_Context",
        start: int,
        end: int,
        media_stack: tuple[MediaQueryList, ...],
        parent: int | None,
        top_level: bool,
    ) -> None:
        tokens = ctx.tokens
        i = start
        while i < end:
            tok = tokens[i]
            if tok.kind in (WHITESPACE, SEMICOLON):
                i += 1
                continue
            if tok.kind == RBRACE:
                self._warn(ctx, "Unexpected '}'", tok.offset)
                i += 1
                continue
            if tok.kind == AT_KEYWORD:
                i = self._parse_at_rule(ctx, i, end, media_stack, parent, top_level)
                continue
            i = self._parse_style_rule(ctx, i, end, media_stack, parent)

    def _parse_at_rule(
        self,
        ctx: "_Context",
        i: int,
        end: int,
        media_stack: tuple[MediaQueryList, ...],
        parent: int | None,
        top_level: bool,
    ) -> int:
        tokens = ctx.tokens
        at = tokens[i]
        name = at.value.lower()
        j = i + 1
        depth = 0
        while j < end:
            kind = tokens[j].kind
            if kind in (LPAREN, FUNCTION, LBRACKET):
                depth += 1
            elif kind in (RPAREN, RBRACKET):
                depth = max(0, depth - 1)
            elif depth == 0 and kind in (SEMICOLON, LBRACE, RBRACE):
                break
            j += 1

        prelude_tokens = tokens[i + 1:j]
        prelude = ctx.slice(prelude_tokens)
        line = ctx.line(at.offset)

        # Statement at-rule
        if j >= end or tokens[j].kind != LBRACE:
            if name == "import":
                self._add_import(ctx, prelude_tokens, line, top_level, at.offset)
            elif name not in ("charset", "namespace", "layer"):
                self._warn(ctx, f"@{name} without a block; ignored", at.offset)
            if j < end and tokens[j].kind == SEMICOLON:
                return j + 1
            return j

        close = _close(tokens, j + 1, LBRACE, RBRACE)
        if close == -1 or close >= end:
            self._warn(ctx, f"Unclosed @{name} block", at.offset)
            close = end

        if name == "media":
            block = self._add_media_block(prelude, parent, line, ctx.origin)
            self._parse_rules(ctx, j + 1, close, media_stack + (block.query,), block.index, top_level=False)
        else:
            self.sheet.at_rules.append(AtBlock(name=name, prelude=prelude, line=line, origin=ctx.origin))
            if name in TRANSPARENT_AT_RULES:
                self._parse_rules(ctx, j + 1, close, media_stack, parent, top_level=False)

        return close + 1

    def _add_import(
        self, ctx: "_Context", prelude: list[Token], line: int, top_level: bool, offset: int
    ) -> None:
        significant = [t for t in prelude if t.kind != WHITESPACE]
        if not significant:
            self._warn(ctx, "@import without URL", offset)
            return
        if not top_level:
            self._warn(ctx, "@import is only valid at the top level; ignored", offset)
            return
        head = significant[0]
        if head.kind == STRING:
            url = head.value
            rest_start = head.end
        elif head.kind == FUNCTION and head.value.lower() == "url":
            close = prelude.index(head) + 1
            close = _close(prelude, close, LPAREN, RPAREN)
            if close == -1:
                self._warn(ctx, "Unclosed url() in @import", offset)
                return
            inner = ctx.text[head.end:prelude[close].offset].strip()
            url = inner.strip("\"'")
            rest_start = prelude[close].end
        else:
            url = ctx.slice(significant[:1])
            rest_start = head.end
        last_end = prelude[-1].end
        media_text = ctx.text[rest_start:last_end].strip()
        # layer(...) and supports(...) conditions precede the media list
        media_text = re.sub(r"^(?:layer(?:\([^)]*\))?|supports\([^)]*\))\s*", "", media_text, flags=re.IGNORECASE)
        query = parse_media_query_list(media_text)
        self.sheet.imports.append(ImportRule(url=url, query=query, line=line, origin=ctx.origin))

    def _parse_style_rule(
        self,
        ctx: "_Context",
        i: int,
        end: int,
        media_stack: tuple[MediaQueryList, ...],
        parent: int | None,
    ) -> int:
        tokens = ctx.tokens
        j = i
        depth = 0
        while j < end:
            kind = tokens[j].kind
            if kind in (LPAREN, FUNCTION, LBRACKET):
                depth += 1
            elif kind in (RPAREN, RBRACKET):
                depth = max(0, depth - 1)
            elif depth == 0 and kind in (LBRACE, RBRACE):
                break
            j += 1

        if j >= end or tokens[j].kind != LBRACE:
            self._warn(ctx, f"Selector without declaration block: {ctx.slice(tokens[i:j])!r}", tokens[i].offset)
            return j

        close = _close(tokens, j + 1, LBRACE, RBRACE)
        if close == -1 or close >= end:
            self._warn(ctx, "Unclosed declaration block", tokens[j].offset)
            close = end

        selectors: list[str] = []
        for group in _split_top_level(tokens[i:j], COMMA):
            text = ctx.slice(group)
            if not text:
                self._warn(ctx, "Empty selector in selector list", tokens[i].offset)
                continue
            selectors.append(text)

        declarations = self._parse_declarations(ctx, j + 1, close)

        if selectors:
            rule = StyleRule(
                selectors=tuple(selectors),
                declarations=tuple(declarations),
                order=self._order,
                line=ctx.line(tokens[i].offset),
                media=media_stack,
                media_block=parent,
                origin=ctx.origin,
            )
            self._order += 1
            self.sheet.rules.append(rule)
            if parent is not None:
                self.sheet.media_blocks[parent].rules.append(rule)

        return close + 1

    def _parse_declarations(self, ctx: "_Context", start: int, end: int) -> list[Declaration]:
        declarations: list[Declaration] = []
        for group in _split_top_level(ctx.tokens[start:end], SEMICOLON):
            significant = [t for t in group if t.kind != WHITESPACE]
            if not significant:
                continue
            head = significant[0]
            if any(t.kind == LBRACE for t in significant):
                self._warn(ctx, "Nested rules are not supported; block skipped", head.offset)
                continue
            if head.kind != IDENT or len(significant) < 2 or significant[1].kind != COLON:
                self._warn(ctx, f"Invalid declaration: {ctx.slice(group)!r}", head.offset)
                continue

            value_tokens = significant[2:]
            important = False
            if (
                len(value_tokens) >= 2
                and value_tokens[-2].kind == DELIM
                and value_tokens[-2].value == "!"
                and value_tokens[-1].is_ident("important")
            ):
                important = True
                value_tokens = value_tokens[:-2]

            prop = head.value if head.value.startswith("--") else head.value.lower()
            value = ctx.slice_span(value_tokens)
            if not value and not prop.startswith("--"):
                self._warn(ctx, f"Empty value for {prop!r}", head.offset)
                continue
            declarations.append(Declaration(property=prop, value=value, important=important, line=ctx.line(head.offset)))
        return declarations


@dataclass
class _Context:
    text: str
    tokens: list[Token]
    origin: str
    line_offset: int

    def line(self, offset: int) -> int:
        return line_of(self.text, offset) + self.line_offset

    def slice(self, tokens: list[Token]) -> str:
        """Source text spanned by tokens with whitespace collapsed."""
        significant = [t for t in tokens if t.kind != WHITESPACE]
        if not significant:
            return ""
        return " ".join(self.text[significant[0].offset:significant[-1].end].split())

    def slice_span(self, tokens: list[Token]) -> str:
        if not tokens:
            return ""
        return " ".join(self.text[tokens[0].offset:tokens[-1].end].split())


def parse_stylesheet(text: str, media: str | None = None, origin: str = "") -> Stylesheet:
    """Parse CSS text into a Stylesheet.

    Args:
        text: CSS source
        media: Optional media query list wrapping the whole sheet
        origin: Label used in warnings

    Returns:
        Stylesheet; syntax problems are reported in ``warnings``.
    """
    return StylesheetBuilder().add_css(text, media=media, origin=origin).build()

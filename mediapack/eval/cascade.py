"""Cascade resolution for the rules that apply to a viewport.

There is no document tree here: every selector is its own cascade target.
Declarations for a selector compete on (importance, specificity, source
order), which is the part of the CSS cascade a stylesheet alone determines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import NamedTuple

from ..parse.stylesheet import StyleRule, Stylesheet
from .evaluate import evaluate_all
from .viewport import Viewport

# Pseudo-elements that may be written with a single colon
_LEGACY_PSEUDO_ELEMENTS = {"before", "after", "first-line", "first-letter"}

# Functional pseudo-classes that take the specificity of their most specific argument
_MATCHES_ARGUMENT = {"not", "is", "has", "matches", "-webkit-any", "-moz-any"}

_NAME_RE = re.compile(r"-?(?:[A-Za-z_\-]|[^\x00-\x7f]|\\.)(?:[A-Za-z0-9_\-]|[^\x00-\x7f]|\\.)*")


class Specificity(NamedTuple):
    """(ids, classes/attributes/pseudo-classes, types/pseudo-elements)"""

    a: int
    b: int
    c: int

    def __str__(self) -> str:
        return f"{self.a},{self.b},{self.c}"


ZERO = Specificity(0, 0, 0)


def _balanced(text: str, start: int) -> int:
    """Index just past the ``)`` matching the ``(`` at ``start``."""
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch in "\"'":
            end = text.find(ch, i + 1)
            i = len(text) if end == -1 else end + 1
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return len(text)


def split_selector_list(text: str) -> list[str]:
    """Split a selector list on top-level commas."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(0, depth - 1)
        if ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return [p for p in parts if p]


def specificity(selector: str) -> Specificity:
    """Compute the specificity of a single complex selector.

    Args:
        selector: One selector (not a list), e.g. ``nav > a.active:hover``

    Returns:
        Specificity triple
    """
    a = b = c = 0
    i = 0
    s = selector
    n = len(s)
    while i < n:
        ch = s[i]
        if ch == "#":
            m = _NAME_RE.match(s, i + 1)
            a += 1
            i = m.end() if m else i + 1
        elif ch == ".":
            m = _NAME_RE.match(s, i + 1)
            b += 1
            i = m.end() if m else i + 1
        elif ch == "[":
            end = s.find("]", i)
            b += 1
            i = n if end == -1 else end + 1
        elif ch == ":":
            if i + 1 < n and s[i + 1] == ":":
                m = _NAME_RE.match(s, i + 2)
                c += 1
                i = m.end() if m else i + 2
                if i < n and s[i] == "(":
                    i = _balanced(s, i)
                continue
            m = _NAME_RE.match(s, i + 1)
            if not m:
                i += 1
                continue
            name = m.group(0).lower()
            i = m.end()
            if i < n and s[i] == "(":
                end = _balanced(s, i)
                arg = s[i + 1:end - 1]
                i = end
                if name in _MATCHES_ARGUMENT:
                    a2, b2, c2 = max((specificity(part) for part in split_selector_list(arg)), default=ZERO)
                    a, b, c = a + a2, b + b2, c + c2
                elif name == "where":
                    pass
                elif name in ("nth-child", "nth-last-child") and re.search(r"\bof\b", arg):
                    of_part = re.split(r"\bof\b", arg, maxsplit=1)[1]
                    a2, b2, c2 = max((specificity(p) for p in split_selector_list(of_part)), default=ZERO)
                    a, b, c = a + a2, b + 1 + b2, c + c2
                else:
                    b += 1
            elif name in _LEGACY_PSEUDO_ELEMENTS:
                c += 1
            else:
                b += 1
        elif ch == "*":
            i += 1
        elif ch.isalpha() or ch in "_-\\" or ord(ch) > 0x7F:
            m = _NAME_RE.match(s, i)
            if not m:
                i += 1
                continue
            i = m.end()
            # ns|type: the namespace prefix does not count
            if i < n and s[i] == "|" and not s.startswith("|=", i):
                continue
            c += 1
        else:
            i += 1
    return Specificity(a, b, c)


@dataclass(frozen=True)
class CascadedDeclaration:
    """A declaration together with the data that decides who wins."""

    selector: str
    property: str
    value: str
    important: bool
    specificity: Specificity
    order: int
    position: int
    line: int
    media: tuple[str, ...] = ()

    @property
    def priority(self) -> tuple[bool, Specificity, int, int]:
        return (self.important, self.specificity, self.order, self.position)


Resolution = dict[str, dict[str, CascadedDeclaration]]


@dataclass(frozen=True)
class Change:
    """A property whose winning value differs between two resolutions."""

    selector: str
    property: str
    before: str | None
    after: str | None


def rule_applies(rule: StyleRule, viewport: Viewport) -> bool:
    return evaluate_all(rule.media, viewport)


def _cascaded(rule: StyleRule, selector: str) -> list[CascadedDeclaration]:
    spec = specificity(selector)
    media = tuple(q.serialize() for q in rule.media)
    return [
        CascadedDeclaration(
            selector=selector,
            property=decl.property,
            value=decl.value,
            important=decl.important,
            specificity=spec,
            order=rule.order,
            position=position,
            line=decl.line,
            media=media,
        )
        for position, decl in enumerate(rule.declarations)
    ]


def applicable_rules(stylesheet: Stylesheet, viewport: Viewport) -> list[StyleRule]:
    """Rules whose enclosing media lists all match, in document order."""
    return [r for r in stylesheet.rules if rule_applies(r, viewport)]


def resolve(stylesheet: Stylesheet, viewport: Viewport) -> Resolution:
    """Resolve the winning declaration per selector and property.

    Args:
        stylesheet: Parsed stylesheet
        viewport: Environment the media queries are evaluated against

    Returns:
        ``{selector: {property: CascadedDeclaration}}``; selectors appear in
        order of first applicable rule, properties in order of first
        declaration.
    """
    result: Resolution = {}
    for rule in applicable_rules(stylesheet, viewport):
        for selector in rule.selectors:
            block = result.setdefault(selector, {})
            for candidate in _cascaded(rule, selector):
                current = block.get(candidate.property)
                if current is None or candidate.priority >= current.priority:
                    block[candidate.property] = candidate
    return result


def diff_resolutions(before: Resolution, after: Resolution) -> list[Change]:
    """List properties whose resolved value changes between two viewports."""
    changes: list[Change] = []
    selectors = list(before) + [s for s in after if s not in before]
    for selector in selectors:
        old = before.get(selector, {})
        new = after.get(selector, {})
        props = list(old) + [p for p in new if p not in old]
        for prop in props:
            a = old[prop].value if prop in old else None
            b = new[prop].value if prop in new else None
            if a != b:
                changes.append(Change(selector=selector, property=prop, before=a, after=b))
    return changes


def _normalize_selector(selector: str) -> str:
    return " ".join(selector.split())


def resolve_element(
    stylesheet: Stylesheet,
    viewport: Viewport,
    selectors: list[str] | tuple[str, ...],
) -> dict[str, CascadedDeclaration]:
    """Resolve declarations for one element described by the selectors it matches.

    The caller states which selectors match the element (there is no DOM to
    match against). Where several selectors of one rule match, the most
    specific one counts, as in CSS.

    Returns:
        ``{property: CascadedDeclaration}`` for the winning declarations
    """
    wanted = {_normalize_selector(s) for s in selectors}
    winners: dict[str, CascadedDeclaration] = {}
    for rule in applicable_rules(stylesheet, viewport):
        matching = [s for s in rule.selectors if _normalize_selector(s) in wanted]
        if not matching:
            continue
        for candidate in _cascaded(rule, max(matching, key=specificity)):
            current = winners.get(candidate.property)
            if current is None or candidate.priority >= current.priority:
                winners[candidate.property] = candidate
    return winners

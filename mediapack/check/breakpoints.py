"""Breakpoint extraction and consistency checks.

Width ranges are read from every media block, converted to px and compared
pairwise: ranges that can never match, ranges that both match exactly at a
shared boundary, and small uncovered gaps between an upper and a lower bound.
Nested blocks are narrowed by their enclosing queries, and blocks for
different media types are never compared with each other.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, Field

from ..config import SWEEP_MARGIN, SWEEP_MAX_WIDTH, SWEEP_MIN_WIDTH
from ..eval.evaluate import evaluate_all, length_to_px
from ..eval.viewport import Viewport
from ..parse.query import And, MediaFeature, MediaQuery
from ..parse.stylesheet import MediaBlock, Stylesheet

# Gaps wider than this are treated as intentional
GAP_WARN_PX = 16.0

RANGE_FEATURES = ("width", "height")


class Finding(BaseModel):
    """A single check result."""

    severity: str  # "error", "warning" or "info"
    code: str
    message: str
    line: int | None = None
    blocks: list[int] = Field(default_factory=list)


class Segment(BaseModel):
    """A run of widths over which the same media blocks are active."""

    start: float
    end: float
    active: list[int]
    preludes: list[str]
    rules: int


@dataclass(frozen=True)
class Interval:
    """A width (or height) range from one media query, in px."""

    feature: str
    lo: float | None
    lo_inclusive: bool
    hi: float | None
    hi_inclusive: bool
    block: int
    prelude: str
    line: int
    units: tuple[str, ...] = ()
    media_type: str | None = None  # None when the query applies to all media
    chain: tuple[int, ...] = ()  # this block and its enclosing blocks

    @property
    def empty(self) -> bool:
        if self.lo is None or self.hi is None:
            return False
        if self.lo > self.hi:
            return True
        return self.lo == self.hi and not (self.lo_inclusive and self.hi_inclusive)

    def contains(self, x: float) -> bool:
        if self.lo is not None and (x < self.lo or (x == self.lo and not self.lo_inclusive)):
            return False
        if self.hi is not None and (x > self.hi or (x == self.hi and not self.hi_inclusive)):
            return False
        return True

    def describe(self) -> str:
        lo = "" if self.lo is None else f"{_px(self.lo)} {'<=' if self.lo_inclusive else '<'} "
        hi = "" if self.hi is None else f" {'<=' if self.hi_inclusive else '<'} {_px(self.hi)}"
        return f"{lo}{self.feature}{hi}"


def _px(v: float) -> str:
    return f"{v:g}px"


def _conjuncts(query: MediaQuery) -> list[MediaFeature] | None:
    """Feature tests of a plain conjunction, or None for or/not/unknown."""
    if not query.valid or query.qualifier == "not":
        return None
    cond = query.condition
    if cond is None:
        return []
    if isinstance(cond, MediaFeature):
        return [cond]
    if isinstance(cond, And) and all(isinstance(c, MediaFeature) for c in cond.children):
        return [c for c in cond.children if isinstance(c, MediaFeature)]
    return None


def query_interval(
    query: MediaQuery,
    feature: str,
    block: MediaBlock,
    viewport: Viewport | None = None,
    enclosing: Sequence[MediaQuery] = (),
    chain: tuple[int, ...] = (),
) -> Interval | None:
    """The range a query imposes on ``feature``, or None if it imposes none.

    Conditions of ``enclosing`` queries (outer ``@media`` blocks) narrow the
    range, since a nested block only applies when every level matches.
    """
    features = _conjuncts(query)
    if not features or not any(f.name == feature and f.comparisons for f in features):
        return None
    viewport = viewport or Viewport()

    media_types = {query.media_type}
    outer: list[MediaFeature] = []
    for q in enclosing:
        conjuncts = _conjuncts(q)
        if conjuncts is None:
            continue
        outer.extend(conjuncts)
        media_types.add(q.media_type)
    media_types -= {None, "all"}
    if len(media_types) > 1:
        # Conflicting media types never match; not a range problem
        return None

    lo: float | None = None
    hi: float | None = None
    lo_inc = hi_inc = True
    units: list[str] = []
    for own, f in [(False, f) for f in outer] + [(True, f) for f in features]:
        if f.name != feature:
            continue
        for comparison in f.comparisons:
            px = length_to_px(comparison.value, viewport)
            # A unitless 0 carries no unit
            if own and (comparison.value.unit or comparison.value.number != 0):
                units.append(comparison.value.unit or "px")
            if comparison.op in (">", ">=", "="):
                inc = comparison.op != ">"
                if lo is None or px > lo or (px == lo and not inc):
                    lo, lo_inc = px, inc
            if comparison.op in ("<", "<=", "="):
                inc = comparison.op != "<"
                if hi is None or px < hi or (px == hi and not inc):
                    hi, hi_inc = px, inc
    return Interval(
        feature=feature,
        lo=lo,
        lo_inclusive=lo_inc,
        hi=hi,
        hi_inclusive=hi_inc,
        block=block.index,
        prelude=block.prelude,
        line=block.line,
        units=tuple(dict.fromkeys(units)),
        media_type=next(iter(media_types), None),
        chain=chain or (block.index,),
    )


def extract_intervals(stylesheet: Stylesheet, feature: str = "width") -> list[Interval]:
    """All simple ``feature`` ranges declared by the stylesheet's media blocks."""
    intervals: list[Interval] = []
    viewport = Viewport()
    for block in stylesheet.media_blocks:
        blocks = stylesheet.block_chain(block)
        # An outer list of several queries is a disjunction and cannot narrow the range
        enclosing = [b.query.queries[0] for b in blocks[:-1] if len(b.query.queries) == 1]
        chain = tuple(b.index for b in blocks)
        for query in block.query.queries:
            interval = query_interval(query, feature, block, viewport, enclosing=enclosing, chain=chain)
            if interval is not None:
                intervals.append(interval)
    return intervals


def find_breakpoints(stylesheet: Stylesheet, feature: str = "width") -> list[float]:
    """Sorted unique thresholds (px) used for ``feature`` anywhere in the stylesheet."""
    viewport = Viewport()
    values: set[float] = set()
    for block in stylesheet.media_blocks:
        for f in block.query.features():
            if f.name == feature:
                for comparison in f.comparisons:
                    values.add(length_to_px(comparison.value, viewport))
    return sorted(values)


def analyze_breakpoints(stylesheet: Stylesheet) -> list[Finding]:
    """Check the declared breakpoint ranges for consistency.

    Returns:
        Findings ordered by severity then line.
    """
    findings: list[Finding] = []

    for feature in RANGE_FEATURES:
        intervals = extract_intervals(stylesheet, feature)

        for iv in intervals:
            if iv.empty:
                findings.append(Finding(
                    severity="error",
                    code="unsatisfiable-range",
                    message=f"@media {iv.prelude!r} can never match: {iv.describe()}",
                    line=iv.line,
                    blocks=[iv.block],
                ))

        live = [iv for iv in intervals if not iv.empty]
        findings.extend(_boundary_overlaps(live))
        findings.extend(_gaps(live))

        units = sorted({u for iv in live for u in iv.units})
        if len(units) > 1:
            findings.append(Finding(
                severity="warning",
                code="mixed-units",
                message=f"{feature} breakpoints mix units: {', '.join(units)}",
                blocks=sorted({iv.block for iv in live}),
            ))

    findings.extend(_duplicate_preludes(stylesheet))

    order = {"error": 0, "warning": 1, "info": 2}
    findings.sort(key=lambda f: (order.get(f.severity, 3), f.line or 0, f.code))
    return findings


def _boundary_overlaps(intervals: list[Interval]) -> list[Finding]:
    findings: list[Finding] = []
    reported: set[tuple[int, int]] = set()
    for upper in intervals:
        if upper.hi is None or not upper.hi_inclusive:
            continue
        for lower in intervals:
            if lower.lo is None or not lower.lo_inclusive or not _comparable(upper, lower):
                continue
            if lower.lo != upper.hi or upper.lo == lower.lo or lower.hi == upper.hi:
                continue
            key = (upper.block, lower.block)
            if key in reported:
                continue
            reported.add(key)
            findings.append(Finding(
                severity="warning",
                code="boundary-overlap",
                message=(
                    f"@media {upper.prelude!r} and @media {lower.prelude!r} both match at "
                    f"{upper.feature} = {_px(upper.hi)}"
                ),
                line=lower.line,
                blocks=[upper.block, lower.block],
            ))
    return findings


def _comparable(a: Interval, b: Interval) -> bool:
    """True when neither block encloses the other and their media types can coexist."""
    if a.block in b.chain or b.block in a.chain:
        return False
    return _same_media(a.media_type, b.media_type)


def _same_media(a: str | None, b: str | None) -> bool:
    return a is None or b is None or a == b


def _gaps(intervals: list[Interval]) -> list[Finding]:
    findings: list[Finding] = []
    reported: set[tuple[float, bool, float, bool, str | None]] = set()
    for a in sorted(intervals, key=lambda iv: (iv.hi is None, iv.hi or 0.0, iv.block)):
        if a.hi is None:
            continue
        hi, hi_inc = a.hi, a.hi_inclusive
        above = [
            b for b in intervals
            if b.lo is not None
            and _comparable(a, b)
            and (b.lo > hi or (b.lo == hi and not b.lo_inclusive and not hi_inc))
        ]
        if not above:
            continue
        b = min(above, key=lambda iv: (iv.lo, iv.lo_inclusive, iv.block))
        lo = b.lo
        assert lo is not None
        media_type = a.media_type or b.media_type
        key = (hi, hi_inc, lo, b.lo_inclusive, media_type)
        if key in reported:
            continue
        reported.add(key)
        if any(_covers_between(iv, hi, lo) for iv in intervals if _same_media(iv.media_type, media_type)):
            continue
        feature = a.feature
        width = lo - hi
        if width == 0:
            findings.append(Finding(
                severity="warning",
                code="boundary-gap",
                message=f"{feature} = {_px(hi)} matches neither @media {a.prelude!r} nor @media {b.prelude!r}",
                line=b.line,
                blocks=[a.block, b.block],
            ))
        elif width <= 1:
            findings.append(Finding(
                severity="info",
                code="fractional-gap",
                message=(
                    f"fractional {feature}s between {_px(hi)} and {_px(lo)} match neither "
                    f"@media {a.prelude!r} nor @media {b.prelude!r}"
                ),
                line=b.line,
                blocks=[a.block, b.block],
            ))
        elif width <= GAP_WARN_PX:
            findings.append(Finding(
                severity="warning",
                code="gap",
                message=(
                    f"{feature}s from {_px(hi)} to {_px(lo)} match neither "
                    f"@media {a.prelude!r} nor @media {b.prelude!r}"
                ),
                line=b.line,
                blocks=[a.block, b.block],
            ))
    return findings


def _covers_between(iv: Interval, hi: float, lo: float) -> bool:
    """True when ``iv`` covers any point strictly between ``hi`` and ``lo``, or the shared point."""
    if hi == lo:
        return iv.contains(hi)
    mid = (hi + lo) / 2
    return iv.contains(mid)


def _duplicate_preludes(stylesheet: Stylesheet) -> list[Finding]:
    seen: dict[str, list[MediaBlock]] = {}
    for block in stylesheet.media_blocks:
        if block.parent is not None:
            continue
        seen.setdefault(block.query.serialize(), []).append(block)
    findings: list[Finding] = []
    for text, blocks in seen.items():
        if len(blocks) < 2:
            continue
        lines = ", ".join(str(b.line) for b in blocks)
        findings.append(Finding(
            severity="info",
            code="duplicate-media",
            message=f"@media {text!r} is declared {len(blocks)} times (lines {lines}); blocks could be merged",
            line=blocks[1].line,
            blocks=[b.index for b in blocks],
        ))
    return findings


def active_blocks(stylesheet: Stylesheet, viewport: Viewport) -> list[int]:
    """Indices of media blocks whose whole nesting chain matches."""
    return [
        block.index
        for block in stylesheet.media_blocks
        if evaluate_all([b.query for b in stylesheet.block_chain(block)], viewport)
    ]


def sweep_widths(stylesheet: Stylesheet, margin: float = SWEEP_MARGIN) -> list[float]:
    """Sample widths around every width breakpoint."""
    widths: set[float] = {SWEEP_MIN_WIDTH, SWEEP_MAX_WIDTH}
    for bp in find_breakpoints(stylesheet, "width"):
        for w in (bp - margin, bp, bp + margin):
            if SWEEP_MIN_WIDTH <= w <= SWEEP_MAX_WIDTH:
                widths.add(round(w, 4))
    return sorted(widths)


def sweep(
    stylesheet: Stylesheet,
    widths: list[float] | None = None,
    base: Viewport | None = None,
) -> list[Segment]:
    """Evaluate the stylesheet across widths and group equal outcomes.

    Args:
        stylesheet: Parsed stylesheet
        widths: Widths to sample (px); defaults to each breakpoint and one
            margin either side
        base: Viewport supplying every characteristic except width

    Returns:
        Segments in increasing width order
    """
    base = base or Viewport()
    samples = sorted(set(widths)) if widths else sweep_widths(stylesheet)
    segments: list[Segment] = []
    for width in samples:
        viewport = base.with_changes(width=width)
        active = active_blocks(stylesheet, viewport)
        if segments and segments[-1].active == active:
            segments[-1].end = width
            continue
        rules = sum(
            1 for r in stylesheet.rules
            if evaluate_all(r.media, viewport)
        )
        segments.append(Segment(
            start=width,
            end=width,
            active=active,
            preludes=[stylesheet.media_blocks[i].prelude for i in active],
            rules=rules,
        ))
    return segments

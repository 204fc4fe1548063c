"""Evaluate media queries against a viewport.

Conditions use the three-valued logic of Media Queries Level 4: a feature
test is True, False or unknown (``None``). Unknown comes from
general-enclosed syntax and propagates through ``not``/``and``/``or``; a query
whose result is unknown does not match.
"""

from __future__ import annotations

from fractions import Fraction

from ..config import CM_PER_INCH, PX_PER_INCH
from ..parse.query import (
    DEPRECATED_MEDIA_TYPES,
    FEATURES,
    MEDIA_TYPES,
    And,
    Condition,
    GeneralEnclosed,
    MediaFeature,
    MediaQuery,
    MediaQueryList,
    Not,
    Or,
    Value,
    parse_media_query_list,
)
from .viewport import Viewport

Tri = bool | None

# Keyword values that are false in a boolean context
_FALSY_KEYWORDS = {"none", "no-preference"}


def length_to_px(value: Value, viewport: Viewport) -> float:
    """Convert a length value to CSS px."""
    n = value.number
    unit = value.unit
    if value.kind == "number" or unit == "px":
        return n
    if unit in ("em", "rem"):
        return n * viewport.font_size
    if unit == "in":
        return n * PX_PER_INCH
    if unit == "cm":
        return n * PX_PER_INCH / CM_PER_INCH
    if unit == "mm":
        return n * PX_PER_INCH / CM_PER_INCH / 10
    if unit == "q":
        return n * PX_PER_INCH / CM_PER_INCH / 40
    if unit == "pt":
        return n * PX_PER_INCH / 72
    if unit == "pc":
        return n * PX_PER_INCH / 6
    if unit == "vw":
        return n * viewport.width / 100
    if unit == "vh":
        return n * viewport.height / 100
    if unit == "vmin":
        return n * min(viewport.width, viewport.height) / 100
    if unit == "vmax":
        return n * max(viewport.width, viewport.height) / 100
    raise ValueError(f"Not a length unit: {unit!r}")


def resolution_to_dppx(value: Value) -> float:
    """Convert a resolution value to dots per CSS px."""
    unit = value.unit
    if value.kind == "number" or unit in ("dppx", "x"):
        return value.number
    if unit == "dpi":
        return value.number / PX_PER_INCH
    if unit == "dpcm":
        return value.number * CM_PER_INCH / PX_PER_INCH
    raise ValueError(f"Not a resolution unit: {unit!r}")


def feature_value(name: str, viewport: Viewport) -> float | Fraction | str:
    """Current value of a media feature for the viewport."""
    if name == "width":
        return viewport.width
    if name == "height":
        return viewport.height
    if name == "device-width":
        return viewport.screen_width
    if name == "device-height":
        return viewport.screen_height
    if name == "aspect-ratio":
        return viewport.aspect_ratio
    if name == "device-aspect-ratio":
        return viewport.device_aspect_ratio
    if name in ("resolution", "-webkit-device-pixel-ratio"):
        return viewport.resolution
    if name == "grid":
        return 1.0 if viewport.grid else 0.0
    if name in ("color", "color-index", "monochrome"):
        return float(getattr(viewport, name.replace("-", "_")))
    return str(getattr(viewport, name.replace("-", "_")))


def _convert(name: str, value: Value, viewport: Viewport) -> float | Fraction | str:
    value_type = FEATURES[name].value_type
    if value_type == "length":
        return length_to_px(value, viewport)
    if value_type == "resolution":
        return resolution_to_dppx(value)
    if value_type == "ratio":
        assert value.ratio is not None
        return value.ratio
    if value_type == "ident":
        return value.ident
    return value.number


def _compare(actual: float | Fraction, op: str, expected: float | Fraction) -> bool:
    if op == "<":
        return actual < expected
    if op == "<=":
        return actual <= expected
    if op == ">":
        return actual > expected
    if op == ">=":
        return actual >= expected
    return actual == expected


def evaluate_feature(feature: MediaFeature, viewport: Viewport) -> bool:
    """Evaluate a single media feature test."""
    actual = feature_value(feature.name, viewport)

    if feature.form == "boolean":
        if isinstance(actual, str):
            return actual not in _FALSY_KEYWORDS
        return actual != 0

    if feature.comparisons:
        assert not isinstance(actual, str)
        for comparison in feature.comparisons:
            expected = _convert(feature.name, comparison.value, viewport)
            assert not isinstance(expected, str)
            if not _compare(actual, comparison.op, expected):
                return False
        return True

    assert feature.value is not None
    return actual == _convert(feature.name, feature.value, viewport)


def evaluate_condition(node: Condition, viewport: Viewport) -> Tri:
    """Evaluate a media condition with three-valued logic."""
    if isinstance(node, MediaFeature):
        return evaluate_feature(node, viewport)
    if isinstance(node, GeneralEnclosed):
        return None
    if isinstance(node, Not):
        inner = evaluate_condition(node.child, viewport)
        return None if inner is None else not inner
    if isinstance(node, And):
        unknown = False
        for child in node.children:
            result = evaluate_condition(child, viewport)
            if result is False:
                return False
            if result is None:
                unknown = True
        return None if unknown else True
    if isinstance(node, Or):
        unknown = False
        for child in node.children:
            result = evaluate_condition(child, viewport)
            if result is True:
                return True
            if result is None:
                unknown = True
        return None if unknown else False
    raise TypeError(f"Unexpected condition node: {type(node).__name__}")


def media_type_matches(media_type: str | None, viewport: Viewport) -> bool:
    if media_type is None or media_type == "all":
        return True
    if media_type in DEPRECATED_MEDIA_TYPES or media_type not in MEDIA_TYPES:
        return False
    return media_type == viewport.media_type


def evaluate_query(query: MediaQuery, viewport: Viewport) -> bool:
    """Evaluate one media query; unknown results do not match."""
    if not query.valid:
        return False

    result: Tri = media_type_matches(query.media_type, viewport)
    if result and query.condition is not None:
        result = evaluate_condition(query.condition, viewport)

    if query.qualifier == "not":
        return False if result is None else not result
    return bool(result)


def evaluate(query_list: MediaQueryList | str, viewport: Viewport) -> bool:
    """Evaluate a media query list: true when any query matches.

    Args:
        query_list: Parsed list or raw prelude text
        viewport: Environment to evaluate against
    """
    if isinstance(query_list, str):
        query_list = parse_media_query_list(query_list)
    return any(evaluate_query(q, viewport) for q in query_list.queries)


def evaluate_all(query_lists: tuple[MediaQueryList, ...] | list[MediaQueryList], viewport: Viewport) -> bool:
    """True when every list in a nesting chain matches."""
    return all(evaluate(q, viewport) for q in query_lists)


def explain(query_list: MediaQueryList | str, viewport: Viewport) -> list[tuple[str, Tri]]:
    """Per-query and per-feature results, for diagnostics.

    Returns:
        ``(text, result)`` pairs: each query followed by its leaf tests.
    """
    if isinstance(query_list, str):
        query_list = parse_media_query_list(query_list)
    rows: list[tuple[str, Tri]] = []
    for q in query_list.queries:
        rows.append((q.serialize(), evaluate_query(q, viewport)))
        if q.condition is not None and q.valid:
            _explain_leaves(q.condition, viewport, rows)
    return rows


def _explain_leaves(node: Condition, viewport: Viewport, rows: list[tuple[str, Tri]]) -> None:
    if isinstance(node, (MediaFeature, GeneralEnclosed)):
        rows.append(("  " + node.serialize(), evaluate_condition(node, viewport)))
    elif isinstance(node, Not):
        _explain_leaves(node.child, viewport, rows)
    elif isinstance(node, (And, Or)):
        for child in node.children:
            _explain_leaves(child, viewport, rows)

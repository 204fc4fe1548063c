"""Media query evaluation and cascade resolution."""

from .cascade import applicable_rules, diff_resolutions, resolve, resolve_element, specificity
from .evaluate import evaluate, evaluate_query, explain
from .viewport import PRESETS, Viewport

__all__ = [
    "Viewport",
    "PRESETS",
    "evaluate",
    "evaluate_query",
    "explain",
    "specificity",
    "applicable_rules",
    "resolve",
    "resolve_element",
    "diff_resolutions",
]

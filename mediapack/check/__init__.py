"""Breakpoint analysis and fragment validation."""

from .breakpoints import Finding, Segment, analyze_breakpoints, find_breakpoints, sweep
from .fragments import validate_document, validate_fragment, validate_html

__all__ = [
    "Finding",
    "Segment",
    "analyze_breakpoints",
    "find_breakpoints",
    "sweep",
    "validate_fragment",
    "validate_html",
    "validate_document",
]

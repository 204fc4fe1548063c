"""JSON and HTML reports."""

from .html import render_sweep, write_sweep_html
from .manifest import EvaluationReport, build_report, compute_sha256, report_json, write_report

__all__ = [
    "EvaluationReport",
    "build_report",
    "compute_sha256",
    "report_json",
    "write_report",
    "render_sweep",
    "write_sweep_html",
]

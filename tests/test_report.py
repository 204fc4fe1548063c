"""Tests for JSON and HTML reports."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from mediapack.check.breakpoints import analyze_breakpoints, sweep
from mediapack.config import SCHEMA_VERSION, TOOL_VERSION
from mediapack.eval.cascade import resolve
from mediapack.eval.viewport import Viewport
from mediapack.parse.sources import load_stylesheet
from mediapack.report.html import render_sweep
from mediapack.report.manifest import build_report, compute_sha256, write_report

CSS = """\
.a { color: red; }
@media (width < 600px) { .a { color: blue !important; } }
@media (max-width: 800px) { .b { x: y } }
@media (min-width: 800px) { .c { x: y } }
"""


class TestManifest(unittest.TestCase):
    def test_compute_sha256(self) -> None:
        self.assertEqual(compute_sha256("abc"), compute_sha256(b"abc"))
        self.assertEqual(len(compute_sha256("abc")), 64)

    def test_report_is_deterministic(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            src = root / "site.css"
            src.write_text(CSS, encoding="utf-8")
            sheet = load_stylesheet(src)
            viewport = Viewport(width=500)

            report = build_report(
                source_path=src,
                stylesheet=sheet,
                viewport=viewport,
                matched=[0, 1],
                resolution=resolve(sheet, viewport),
                findings=analyze_breakpoints(sheet),
            )
            first = write_report(report, root / "out" / "report.json").read_bytes()
            second = write_report(report, root / "again.json").read_bytes()
            self.assertEqual(first, second)
            self.assertTrue(first.endswith(b"\n"))

            payload = json.loads(first)
            self.assertEqual(list(payload), sorted(payload))
            self.assertEqual(payload["schema_version"], SCHEMA_VERSION)
            self.assertEqual(payload["tool_version"], TOOL_VERSION)
            self.assertEqual(payload["source"]["path"], "site.css")
            self.assertEqual(payload["source"]["sha256"], compute_sha256(CSS))
            self.assertEqual(payload["viewport"]["width"], 500)
            self.assertEqual([b["prelude"] for b in payload["matched_blocks"]], ["(width < 600px)", "(max-width: 800px)"])
            self.assertEqual(payload["resolved"][".a"]["color"]["value"], "blue")
            self.assertTrue(payload["resolved"][".a"]["color"]["important"])
            self.assertEqual(payload["resolved"][".a"]["color"]["specificity"], "0,1,0")
            self.assertEqual([f["code"] for f in payload["findings"]], ["boundary-overlap"])
            self.assertEqual(payload["warnings"], [])


class TestSweepHtml(unittest.TestCase):
    def test_render_sweep_escapes_text(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = Path(td) / "site.css"
            src.write_text(CSS, encoding="utf-8")
            sheet = load_stylesheet(src)

        html = render_sweep("<site>.css", sweep(sheet), analyze_breakpoints(sheet))
        self.assertTrue(html.startswith("<!doctype html>"))
        self.assertIn("@media (width &lt; 600px)", html)
        self.assertIn("&lt;site&gt;.css", html)
        self.assertNotIn("<site>", html)
        self.assertIn("boundary-overlap", html)
        self.assertIn('class="bar"', html)

    def test_empty_findings(self) -> None:
        html = render_sweep("empty.css", [], [])
        self.assertIn('<li class="muted">none</li>', html)


if __name__ == "__main__":
    unittest.main()

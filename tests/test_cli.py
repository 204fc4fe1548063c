"""Tests for the command-line interface."""

from __future__ import annotations

import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from mediapack.cli import main

CSS = """\
.nav { display: none; }
@media (min-width: 768px) { .nav { display: flex; } }
@media (max-width: 768px) { .menu { display: block; } }
"""


def _run(argv: list[str]) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestMatch(unittest.TestCase):
    def test_match_exit_codes(self) -> None:
        code, out, _ = _run(["match", "(min-width: 768px)", "--width", "800"])
        self.assertEqual((code, out.strip()), (0, "true"))
        code, out, _ = _run(["match", "(min-width: 768px)", "--width", "500"])
        self.assertEqual((code, out.strip()), (1, "false"))

    def test_match_with_preset_and_flags(self) -> None:
        self.assertEqual(_run(["match", "(hover: none)", "--preset", "mobile"])[0], 0)
        self.assertEqual(_run(["match", "(hover: none)", "--preset", "mobile", "--hover", "hover"])[0], 1)
        self.assertEqual(_run(["match", "(prefers-color-scheme: dark)", "--color-scheme", "dark"])[0], 0)
        self.assertEqual(_run(["match", "(prefers-reduced-motion: reduce)", "--reduced-motion"])[0], 0)
        self.assertEqual(_run(["match", "print", "--media", "print"])[0], 0)
        self.assertEqual(_run(["match", "(min-resolution: 2dppx)", "--dpr", "2"])[0], 0)

    def test_match_warns_on_invalid_query(self) -> None:
        code, out, err = _run(["match", "screen and (color) or (hover)"])
        self.assertEqual(code, 1)
        self.assertIn("Invalid media query", err)

    def test_match_strict_is_usage_error(self) -> None:
        code, _, err = _run(["match", "screen and", "--strict"])
        self.assertEqual(code, 2)
        self.assertTrue(err.startswith("Error: "))

    def test_unknown_preset(self) -> None:
        code, _, err = _run(["match", "all", "--preset", "watch"])
        self.assertEqual(code, 1)
        self.assertIn("Unknown viewport preset", err)

    def test_explain(self) -> None:
        code, out, _ = _run(["match", "(min-width: 600px) and (foo: bar)", "--explain", "--width", "800"])
        self.assertEqual(code, 1)
        self.assertIn("unknown", out)

    def test_missing_argument_is_usage_error(self) -> None:
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                main(["match"])
        self.assertEqual(cm.exception.code, 2)


class TestFileCommands(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name)
        self.css = self.root / "site.css"
        self.css.write_text(CSS, encoding="utf-8")

    def tearDown(self) -> None:
        self._td.cleanup()

    def test_eval_prints_and_writes_json(self) -> None:
        out_path = self.root / "report.json"
        code, out, _ = _run(["eval", str(self.css), "--width", "800", "--json", str(out_path)])
        self.assertEqual(code, 0)
        self.assertIn("display: flex", out)
        payload = json.loads(out_path.read_text(encoding="utf-8"))
        self.assertEqual(payload["resolved"][".nav"]["display"]["value"], "flex")

    def test_eval_element_and_compare(self) -> None:
        code, out, _ = _run(["eval", str(self.css), "--preset", "desktop", "-e", ".nav", "--compare", "mobile"])
        self.assertEqual(code, 0)
        self.assertIn("display: flex", out)
        self.assertIn(".nav { display: flex -> none }", out)

    def test_eval_missing_file(self) -> None:
        code, _, err = _run(["eval", str(self.root / "nope.css")])
        self.assertEqual(code, 1)
        self.assertTrue(err.startswith("Error: "))

    def test_breakpoints(self) -> None:
        code, out, _ = _run(["breakpoints", str(self.css)])
        self.assertEqual(code, 0)
        self.assertIn("width: 768px", out)
        self.assertIn("[boundary-overlap]", out)

    def test_breakpoints_exit_one_on_errors(self) -> None:
        bad = self.root / "bad.css"
        bad.write_text("@media (min-width: 900px) and (max-width: 600px) { .a { x: y } }\n", encoding="utf-8")
        code, out, _ = _run(["breakpoints", str(bad)])
        self.assertEqual(code, 1)
        self.assertIn("bad.css:1: error [unsatisfiable-range]", out)

    def test_sweep_with_html(self) -> None:
        html_path = self.root / "sweep.html"
        code, out, _ = _run(["sweep", str(self.css), "--widths", "500,800", "--html", str(html_path)])
        self.assertEqual(code, 0)
        self.assertIn("(max-width: 768px)", out)
        self.assertIn("(min-width: 768px)", html_path.read_text(encoding="utf-8"))

    def test_sweep_rejects_bad_widths(self) -> None:
        self.assertEqual(_run(["sweep", str(self.css), "--widths", "abc"])[0], 1)
        self.assertEqual(_run(["sweep", str(self.css), "--widths", "0,100"])[0], 2)

    def test_validate(self) -> None:
        self.assertEqual(_run(["validate", str(self.css)])[0], 0)

        bad = self.root / "guide.md"
        bad.write_text("# Guide\n\n```css\n.a { color red }\n```\n", encoding="utf-8")
        code, out, _ = _run(["validate", str(bad)])
        self.assertEqual(code, 1)
        self.assertIn("guide.md:4: error [syntax]", out)

    def test_validate_legacy_encoding(self) -> None:
        legacy = self.root / "legacy.css"
        legacy.write_bytes(b"/* caf\xe9 \xff */\n.a { color: red; }\n")
        code, out, err = _run(["validate", str(legacy)])
        self.assertEqual((code, err), (0, ""))
        self.assertIn("Valid", out)

        page = self.root / "legacy.html"
        page.write_bytes(b"<p>caf\xe9</p>\n<style>@media (min-width: 600px) { .a { x: y } }</style>\n")
        self.assertEqual(_run(["eval", str(page), "--width", "800"])[0], 0)

    def test_sweep_rejects_non_finite_widths(self) -> None:
        self.assertEqual(_run(["sweep", str(self.css), "--widths", "inf"])[0], 2)
        self.assertEqual(_run(["sweep", str(self.css), "--widths", "100,nan"])[0], 2)

    def test_validate_unsupported_file(self) -> None:
        other = self.root / "notes.txt"
        other.write_text("", encoding="utf-8")
        self.assertEqual(_run(["validate", str(other)])[0], 1)


if __name__ == "__main__":
    unittest.main()

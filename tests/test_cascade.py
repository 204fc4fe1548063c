"""Tests for specificity and cascade resolution."""

import unittest

from mediapack.eval.cascade import (
    Specificity,
    applicable_rules,
    diff_resolutions,
    resolve,
    resolve_element,
    specificity,
    split_selector_list,
)
from mediapack.eval.viewport import Viewport
from mediapack.parse.stylesheet import parse_stylesheet

CSS = """\
.btn { color: red; padding: 4px; }
#main .btn { color: green; }
@media (min-width: 768px) {
  .btn { color: blue; }
}
@media print {
  .btn { color: black !important; }
}
"""


class TestSpecificity(unittest.TestCase):
    def test_basic_selectors(self) -> None:
        self.assertEqual(specificity("*"), Specificity(0, 0, 0))
        self.assertEqual(specificity("li"), (0, 0, 1))
        self.assertEqual(specificity("#a .b c"), (1, 1, 1))
        self.assertEqual(specificity("a:hover"), (0, 1, 1))
        self.assertEqual(specificity("input[type=text]"), (0, 1, 1))
        self.assertEqual(specificity("nav > ul li + a.active"), (0, 1, 4))

    def test_pseudo_elements(self) -> None:
        self.assertEqual(specificity("a::before"), (0, 0, 2))
        self.assertEqual(specificity("p:first-line"), (0, 0, 2))

    def test_functional_pseudo_classes(self) -> None:
        self.assertEqual(specificity(":not(#a, .b)"), (1, 0, 0))
        self.assertEqual(specificity(":is(.a, div) span"), (0, 1, 1))
        self.assertEqual(specificity(":where(#x) p"), (0, 0, 1))
        self.assertEqual(specificity("li:nth-child(2n of .important)"), (0, 2, 1))
        self.assertEqual(specificity("li:nth-child(2n+1)"), (0, 1, 1))
        self.assertEqual(specificity("div:has(> img)"), (0, 0, 2))

    def test_namespace_prefix_does_not_count(self) -> None:
        self.assertEqual(specificity("svg|a"), (0, 0, 1))

    def test_str(self) -> None:
        self.assertEqual(str(specificity("#a .b c")), "1,1,1")

    def test_split_selector_list(self) -> None:
        self.assertEqual(split_selector_list("a, b:is(c, d), [x=','] "), ["a", "b:is(c, d)", "[x=',']"])


class TestResolve(unittest.TestCase):
    def setUp(self) -> None:
        self.sheet = parse_stylesheet(CSS)

    def test_applicable_rules(self) -> None:
        self.assertEqual(len(applicable_rules(self.sheet, Viewport(width=500))), 2)
        self.assertEqual(len(applicable_rules(self.sheet, Viewport(width=800))), 3)

    def test_later_rule_wins_under_media(self) -> None:
        narrow = resolve(self.sheet, Viewport(width=500))
        wide = resolve(self.sheet, Viewport(width=800))
        self.assertEqual(narrow[".btn"]["color"].value, "red")
        self.assertEqual(wide[".btn"]["color"].value, "blue")
        self.assertEqual(wide[".btn"]["padding"].value, "4px")
        self.assertEqual(wide[".btn"]["color"].media, ("(min-width: 768px)",))
        self.assertEqual(list(wide), [".btn", "#main .btn"])

    def test_important_beats_order(self) -> None:
        sheet = parse_stylesheet(".a { color: red !important; }\n.a { color: blue; }")
        self.assertEqual(resolve(sheet, Viewport())[".a"]["color"].value, "red")

    def test_element_uses_specificity(self) -> None:
        winners = resolve_element(self.sheet, Viewport(width=800), ["#main  .btn", ".btn"])
        self.assertEqual(winners["color"].value, "green")
        self.assertEqual(winners["color"].selector, "#main .btn")
        self.assertEqual(winners["padding"].value, "4px")

        printed = resolve_element(self.sheet, Viewport.preset("print"), ["#main .btn", ".btn"])
        self.assertEqual(printed["color"].value, "black")
        self.assertTrue(printed["color"].important)

    def test_element_takes_most_specific_selector_of_a_rule(self) -> None:
        sheet = parse_stylesheet("#x, .y { color: red; }\n.y.z { color: blue; }")
        winners = resolve_element(sheet, Viewport(), ["#x", ".y", ".y.z"])
        self.assertEqual(winners["color"].value, "red")
        self.assertEqual(winners["color"].specificity, (1, 0, 0))

    def test_diff_resolutions(self) -> None:
        changes = diff_resolutions(
            resolve(self.sheet, Viewport(width=500)),
            resolve(self.sheet, Viewport(width=800)),
        )
        self.assertEqual(len(changes), 1)
        self.assertEqual((changes[0].selector, changes[0].property), (".btn", "color"))
        self.assertEqual((changes[0].before, changes[0].after), ("red", "blue"))

    def test_diff_reports_added_and_removed(self) -> None:
        sheet = parse_stylesheet("@media (min-width: 600px) { .nav { display: flex; } }")
        changes = diff_resolutions(resolve(sheet, Viewport(width=400)), resolve(sheet, Viewport(width=700)))
        self.assertEqual([(c.selector, c.before, c.after) for c in changes], [(".nav", None, "flex")])


if __name__ == "__main__":
    unittest.main()

"""Tests for stylesheet parsing."""

import unittest

from mediapack.parse.stylesheet import StylesheetBuilder, parse_stylesheet

CSS = """\
.card { color: red; padding: 4px }

@media (min-width: 768px) {
  .card, .panel { color: blue !important; }
}
"""


class TestParseStylesheet(unittest.TestCase):
    def test_rules_and_declarations(self) -> None:
        sheet = parse_stylesheet(CSS)
        self.assertEqual(len(sheet.rules), 2)
        first = sheet.rules[0]
        self.assertEqual(first.selectors, (".card",))
        self.assertEqual([(d.property, d.value) for d in first.declarations], [("color", "red"), ("padding", "4px")])
        self.assertEqual(first.line, 1)
        self.assertEqual(first.media, ())
        self.assertEqual(sheet.warnings, [])

    def test_media_block_guards_rules(self) -> None:
        sheet = parse_stylesheet(CSS)
        self.assertEqual(len(sheet.media_blocks), 1)
        block = sheet.media_blocks[0]
        self.assertEqual(block.prelude, "(min-width: 768px)")
        self.assertEqual(block.line, 3)

        rule = sheet.rules[1]
        self.assertEqual(rule.selectors, (".card", ".panel"))
        self.assertEqual(rule.media_block, 0)
        self.assertEqual(len(rule.media), 1)
        self.assertIs(block.rules[0], rule)
        self.assertTrue(rule.declarations[0].important)
        self.assertEqual(rule.declarations[0].value, "blue")
        self.assertEqual(rule.declarations[0].line, 4)

    def test_nested_media_blocks(self) -> None:
        sheet = parse_stylesheet("@media screen { @media (min-width: 600px) { .a { x: y } } }")
        self.assertEqual(len(sheet.media_blocks), 2)
        inner = sheet.media_blocks[1]
        self.assertEqual(inner.parent, 0)
        self.assertEqual([b.index for b in sheet.block_chain(inner)], [0, 1])
        self.assertEqual(len(sheet.rules[0].media), 2)

    def test_invalid_media_query_warns(self) -> None:
        sheet = parse_stylesheet("@media screen and (color) or (hover) { .a { x: y } }")
        self.assertFalse(sheet.media_blocks[0].query.queries[0].valid)
        self.assertTrue(any("Invalid media query" in w for w in sheet.warnings))

    def test_declaration_errors_warn(self) -> None:
        sheet = parse_stylesheet(".a { color red; margin: ; top: 0 }")
        self.assertEqual([d.property for d in sheet.rules[0].declarations], ["top"])
        self.assertTrue(any("Invalid declaration" in w for w in sheet.warnings))
        self.assertTrue(any("Empty value for 'margin'" in w for w in sheet.warnings))

    def test_unclosed_block_warns(self) -> None:
        sheet = parse_stylesheet(".a { color: red;")
        self.assertEqual(sheet.rules[0].declarations[0].value, "red")
        self.assertIn("line 1: Unclosed declaration block", sheet.warnings)

    def test_empty_selector_warns(self) -> None:
        sheet = parse_stylesheet("a, , b { x: y }")
        self.assertEqual(sheet.rules[0].selectors, ("a", "b"))
        self.assertTrue(any("Empty selector" in w for w in sheet.warnings))

    def test_custom_property_keeps_case(self) -> None:
        sheet = parse_stylesheet(":root { --Main-Color: #fff; COLOR: Red }")
        props = [d.property for d in sheet.rules[0].declarations]
        self.assertEqual(props, ["--Main-Color", "color"])

    def test_imports(self) -> None:
        sheet = parse_stylesheet('@import url("base.css") screen;\n@import "print.css" print;\n@import "all.css";')
        self.assertEqual([i.url for i in sheet.imports], ["base.css", "print.css", "all.css"])
        self.assertEqual(sheet.imports[0].query.serialize(), "screen")
        self.assertEqual(sheet.imports[2].query.serialize(), "all")
        self.assertEqual(sheet.imports[1].line, 2)

    def test_import_layer_prefix_is_not_media(self) -> None:
        sheet = parse_stylesheet('@import "x.css" layer(base) screen;')
        self.assertEqual(sheet.imports[0].query.serialize(), "screen")

    def test_transparent_and_opaque_at_rules(self) -> None:
        sheet = parse_stylesheet(
            "@supports (display: grid) { .g { display: grid } }\n"
            "@keyframes spin { from { opacity: 0 } }\n"
            "@container (min-width: 400px) { .c { x: y } }\n"
        )
        self.assertEqual([r.selectors for r in sheet.rules], [(".g",)])
        self.assertEqual([a.name for a in sheet.at_rules], ["supports", "keyframes", "container"])

    def test_nested_style_rule_is_skipped(self) -> None:
        sheet = parse_stylesheet(".a { color: red; .b { color: blue } }")
        self.assertEqual(len(sheet.rules), 1)
        self.assertTrue(any("Nested rules" in w for w in sheet.warnings))

    def test_origin_labels_warnings(self) -> None:
        sheet = parse_stylesheet(".a { color red }", origin="site.css")
        self.assertTrue(sheet.warnings[0].startswith("site.css:1: Invalid declaration"))


class TestStylesheetBuilder(unittest.TestCase):
    def test_media_tuple_nests_blocks(self) -> None:
        sheet = StylesheetBuilder().add_css(".a { x: y }", media=("screen", "(min-width: 600px)")).build()
        self.assertEqual([b.prelude for b in sheet.media_blocks], ["screen", "(min-width: 600px)"])
        self.assertEqual(sheet.media_blocks[1].parent, 0)
        self.assertEqual(sheet.rules[0].media_block, 1)
        self.assertEqual(len(sheet.rules[0].media), 2)

    def test_order_continues_across_sources(self) -> None:
        builder = StylesheetBuilder()
        builder.add_css(".a { x: 1 }")
        builder.add_css(".a { x: 2 }\n.b { x: 3 }", line_offset=10)
        sheet = builder.build()
        self.assertEqual([r.order for r in sheet.rules], [0, 1, 2])
        self.assertEqual(sheet.rules[2].line, 12)

    def test_all_media_adds_no_block(self) -> None:
        sheet = StylesheetBuilder().add_css(".a { x: y }", media="all").build()
        self.assertEqual(sheet.media_blocks, [])


if __name__ == "__main__":
    unittest.main()

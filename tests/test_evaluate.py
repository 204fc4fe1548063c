"""Tests for viewport modelling and media query evaluation."""

import unittest

from pydantic import ValidationError

from mediapack.eval.evaluate import evaluate, explain, length_to_px, resolution_to_dppx
from mediapack.eval.viewport import PRESETS, Viewport
from mediapack.parse.query import Value


class TestViewport(unittest.TestCase):
    def test_defaults_and_derived_values(self) -> None:
        v = Viewport(width=375, height=667, device_pixel_ratio=2)
        self.assertEqual(v.orientation, "portrait")
        self.assertEqual(v.resolution, 2)
        self.assertEqual(v.screen_width, 375)
        self.assertEqual(v.with_changes(width=800).orientation, "landscape")

    def test_validation(self) -> None:
        with self.assertRaises(ValidationError):
            Viewport(width=0)
        with self.assertRaises(ValidationError):
            Viewport(pointer="stylus")
        with self.assertRaises(ValidationError):
            Viewport(unknown_field=1)
        with self.assertRaises(ValidationError):
            Viewport(width=float("inf"))
        with self.assertRaises(ValidationError):
            Viewport(device_pixel_ratio=float("nan"))
        with self.assertRaises(ValidationError):
            Viewport().with_changes(height=float("inf"))

    def test_frozen(self) -> None:
        v = Viewport()
        with self.assertRaises(ValidationError):
            v.width = 10

    def test_presets(self) -> None:
        mobile = Viewport.preset("mobile")
        self.assertEqual(mobile.width, 375)
        self.assertEqual(mobile.pointer, "coarse")
        self.assertEqual(Viewport.preset("mobile", width=390).width, 390)
        self.assertEqual(Viewport.preset("print").media_type, "print")
        for name in PRESETS:
            Viewport.preset(name)
        with self.assertRaises(ValueError):
            Viewport.preset("watch")

    def test_describe(self) -> None:
        text = Viewport(width=800, height=600, prefers_color_scheme="dark").describe()
        self.assertIn("screen 800x600", text)
        self.assertIn("scheme:dark", text)


class TestUnits(unittest.TestCase):
    def test_length_conversion(self) -> None:
        v = Viewport(width=1000, height=500, font_size=16)
        self.assertEqual(length_to_px(Value("dimension", 48, "em"), v), 768)
        self.assertEqual(length_to_px(Value("dimension", 1, "in"), v), 96)
        self.assertAlmostEqual(length_to_px(Value("dimension", 2.54, "cm"), v), 96)
        self.assertEqual(length_to_px(Value("dimension", 12, "pt"), v), 16)
        self.assertEqual(length_to_px(Value("dimension", 50, "vw"), v), 500)
        self.assertEqual(length_to_px(Value("dimension", 10, "vmin"), v), 50)
        self.assertEqual(length_to_px(Value("number", 0), v), 0)

    def test_resolution_conversion(self) -> None:
        self.assertEqual(resolution_to_dppx(Value("dimension", 192, "dpi")), 2)
        self.assertEqual(resolution_to_dppx(Value("dimension", 2, "x")), 2)
        self.assertAlmostEqual(resolution_to_dppx(Value("dimension", 37.795275, "dpcm")), 1, places=5)


class TestEvaluate(unittest.TestCase):
    def test_width_thresholds(self) -> None:
        v = Viewport(width=768)
        self.assertTrue(evaluate("(min-width: 768px)", v))
        self.assertFalse(evaluate("(max-width: 767px)", v))
        self.assertTrue(evaluate("(min-width: 48em)", v))
        self.assertTrue(evaluate("(width >= 768px)", v))
        self.assertFalse(evaluate("(width > 768px)", v))
        self.assertTrue(evaluate("(400px < width <= 768px)", v))
        self.assertFalse(evaluate("(400px < width < 768px)", v))

    def test_media_types(self) -> None:
        screen = Viewport()
        printer = Viewport.preset("print")
        self.assertTrue(evaluate("screen", screen))
        self.assertFalse(evaluate("print", screen))
        self.assertTrue(evaluate("print", printer))
        self.assertTrue(evaluate("not screen", printer))
        self.assertTrue(evaluate("only screen and (color)", screen))
        self.assertTrue(evaluate("all", printer))
        self.assertFalse(evaluate("tv", screen))
        self.assertTrue(evaluate("not tv", screen))
        self.assertFalse(evaluate("unknown-type", screen))

    def test_query_list_matches_any(self) -> None:
        v = Viewport.preset("print")
        self.assertTrue(evaluate("screen and (min-width: 1px), print", v))
        self.assertFalse(evaluate("screen, speech", v))

    def test_unknown_never_matches(self) -> None:
        v = Viewport()
        self.assertFalse(evaluate("(foo: bar)", v))
        self.assertFalse(evaluate("not (foo: bar)", v))
        self.assertFalse(evaluate("not all and (foo: bar)", v))
        self.assertTrue(evaluate("(foo: bar) or (min-width: 1px)", v))
        self.assertFalse(evaluate("(foo: bar) and (min-width: 1px)", v))
        self.assertFalse(evaluate("(min-aspect-ratio: 1e999)", v))

    def test_invalid_query_is_not_all(self) -> None:
        v = Viewport()
        self.assertFalse(evaluate("screen and (color) or (hover)", v))
        self.assertTrue(evaluate("screen and (color) or (hover), screen", v))

    def test_boolean_context(self) -> None:
        desktop = Viewport.preset("desktop")
        mobile = Viewport.preset("mobile")
        self.assertTrue(evaluate("(hover)", desktop))
        self.assertFalse(evaluate("(hover)", mobile))
        self.assertTrue(evaluate("(pointer)", mobile))
        self.assertFalse(evaluate("(prefers-reduced-motion)", desktop))
        self.assertTrue(evaluate("(color)", desktop))
        self.assertFalse(evaluate("(monochrome)", desktop))
        self.assertFalse(evaluate("(grid)", desktop))

    def test_discrete_features(self) -> None:
        v = Viewport(width=375, height=667, prefers_color_scheme="dark", pointer="coarse")
        self.assertTrue(evaluate("(orientation: portrait)", v))
        self.assertTrue(evaluate("(prefers-color-scheme: dark)", v))
        self.assertTrue(evaluate("(pointer: coarse)", v))
        self.assertFalse(evaluate("(any-pointer: coarse)", v))
        self.assertTrue(evaluate("(overflow-block: scroll)", v))
        self.assertTrue(evaluate("(overflow-block: paged)", Viewport.preset("print")))

    def test_ratio_and_resolution(self) -> None:
        v = Viewport(width=1600, height=900, device_pixel_ratio=2)
        self.assertTrue(evaluate("(aspect-ratio: 16/9)", v))
        self.assertTrue(evaluate("(min-aspect-ratio: 1/1)", v))
        self.assertFalse(evaluate("(max-aspect-ratio: 4/3)", v))
        self.assertTrue(evaluate("(min-resolution: 192dpi)", v))
        self.assertTrue(evaluate("(resolution: 2x)", v))
        self.assertTrue(evaluate("(-webkit-min-device-pixel-ratio: 2)", v))
        self.assertFalse(evaluate("(min-resolution: 3dppx)", v))

    def test_device_size_defaults_to_viewport(self) -> None:
        v = Viewport(width=800, height=600)
        self.assertTrue(evaluate("(device-width: 800px)", v))
        self.assertTrue(evaluate("(min-device-width: 1000px)", v.with_changes(device_width=1920)))

    def test_explain(self) -> None:
        rows = explain("(min-width: 600px) and (foo: bar)", Viewport(width=800))
        self.assertEqual(rows[0], ("(min-width: 600px) and (foo: bar)", False))
        self.assertEqual(rows[1], ("  (min-width: 600px)", True))
        self.assertEqual(rows[2], ("  (foo: bar)", None))


if __name__ == "__main__":
    unittest.main()

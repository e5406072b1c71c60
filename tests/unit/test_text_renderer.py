import math
import sys
import unittest
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

from textraster_renderer.errors import InvalidConfigurationError
from textraster_renderer.text import TextRenderer, parse_color, render_text


class ParseColorTests(unittest.TestCase):
    def test_short_codes_and_names(self):
        self.assertEqual(parse_color("k"), (0, 0, 0))
        self.assertEqual(parse_color("y"), (255, 255, 0))
        self.assertEqual(parse_color("#0000ff"), (0, 0, 255))
        self.assertEqual(parse_color("red"), (255, 0, 0))

    def test_transparent(self):
        self.assertIsNone(parse_color("none"))
        self.assertIsNone(parse_color(None))

    def test_fractional_triplet(self):
        self.assertEqual(parse_color((1.0, 0.5, 0.0)), (255, 128, 0))
        self.assertEqual(parse_color([0, 128, 255]), (0, 128, 255))

    def test_invalid(self):
        with self.assertRaises(InvalidConfigurationError):
            parse_color("not-a-colour")
        with self.assertRaises(InvalidConfigurationError):
            parse_color((1, 2))


class TextRendererTests(unittest.TestCase):
    def setUp(self):
        self.renderer = TextRenderer()

    def test_render_shapes(self):
        result = self.renderer.render("Abc")
        self.assertEqual(result.image.shape, (result.height, result.width, 3))
        self.assertEqual(result.alpha.shape, (result.height, result.width))
        self.assertEqual(result.image.dtype, np.uint8)
        self.assertGreater(int(result.alpha.max()), 0)
        self.assertFalse(result.cropped)

    def test_padding_grows_canvas_exactly(self):
        plain = self.renderer.render("Hi")
        padded = self.renderer.render("Hi", padding=[5, 7, 2, 3])
        self.assertEqual(padded.width - plain.width, 12)
        self.assertEqual(padded.height - plain.height, 5)

    def test_padding_from_config(self):
        plain = self.renderer.render("Hi")
        padded = self.renderer.render("Hi", {"pad": 4})
        self.assertEqual(padded.width - plain.width, 8)

    def test_background_fills_untouched_pixels(self):
        result = self.renderer.render("Hi", {"color": "r", "background": "y"}, padding=4)
        self.assertTrue((result.image[result.alpha == 0] == (255, 255, 0)).all())
        self.assertEqual(tuple(result.image[0, 0]), (255, 255, 0))

    def test_transparent_background_is_white(self):
        result = self.renderer.render("Hi", padding=2)
        self.assertEqual(tuple(result.image[0, 0]), (255, 255, 255))

    def test_autocrop_trims_padding(self):
        padded = self.renderer.render("Hi", padding=10)
        cropped = self.renderer.render("Hi", padding=[math.nan, math.nan, math.nan, math.nan])
        self.assertLess(cropped.width, padded.width - 10)
        self.assertLess(cropped.height, padded.height - 10)
        self.assertGreater(int(cropped.alpha.max()), 0)

    def test_padding_property_matches_padding_argument(self):
        via_arg = self.renderer.render("Hi", padding=math.nan)
        via_config = self.renderer.render("Hi", {"padding": math.nan})
        self.assertEqual((via_config.height, via_config.width), (via_arg.height, via_arg.width))
        self.assertTrue(np.array_equal(via_config.alpha, via_arg.alpha))

    def test_negative_padding_trims(self):
        plain = self.renderer.render("Hi")
        trimmed = self.renderer.render("Hi", padding=[0, 0, -2, -1])
        self.assertEqual(plain.height - trimmed.height, 3)

    def test_multiline_is_taller(self):
        one = self.renderer.render("Hi")
        two = self.renderer.render(["Hi", "Hi"])
        self.assertGreater(two.height, one.height)

    def test_canvas_limit_crops_and_warns(self):
        small = TextRenderer(max_width=20, max_height=20)
        with self.assertLogs("textraster.renderer", level="WARNING") as logs:
            result = small.render("Hello world", {"font_size": 40})
        self.assertTrue(result.cropped)
        self.assertEqual(result.width, 20)
        self.assertEqual(result.height, 20)
        self.assertIn("too large", logs.output[0])

    def test_pixel_units(self):
        points = self.renderer.render("H", {"font_size": 30})
        pixels = self.renderer.render("H", {"font_size": 30, "font_units": "pixels"})
        self.assertLess(pixels.height, points.height)

    def test_invalid_properties(self):
        with self.assertRaises(InvalidConfigurationError):
            self.renderer.render("a", {"font_size": -1})
        with self.assertRaises(InvalidConfigurationError):
            self.renderer.render("a", {"font_weight": "heavy"})
        with self.assertRaises(InvalidConfigurationError):
            self.renderer.render("a", {"interpreter": "markdown"})
        with self.assertRaises(InvalidConfigurationError):
            self.renderer.render("a", {"color": "nope"})

    def test_callable_protocol(self):
        result = self.renderer("x", None)
        self.assertGreater(result.width, 0)

    def test_tex_interpreter(self):
        result = self.renderer.render("\\pi_k", {"interpreter": "tex", "font_size": 24})
        self.assertGreater(int(result.alpha.max()), 0)
        self.assertEqual(result.image.shape[:2], result.alpha.shape)

    def test_render_text_helper(self):
        result = render_text("Abc", padding=1, color="b")
        self.assertGreater(result.width, 2)


if __name__ == "__main__":
    unittest.main()

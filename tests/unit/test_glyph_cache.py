import sys
import unittest
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

from textraster_renderer.errors import InvalidConfigurationError
from textraster_renderer.glyph_cache import GlyphCache
from textraster_renderer.models import FormattingConfig, RenderResult


class _FakeRenderer:
    def __init__(self, height: int = 4, char_width: int = 3, fail_on: str | None = None):
        self.height = height
        self.char_width = char_width
        self.fail_on = fail_on
        self.calls: list[tuple[str, FormattingConfig]] = []

    def __call__(self, text, config):
        if text == self.fail_on:
            raise InvalidConfigurationError(f"cannot render {text}")
        self.calls.append((text, config))
        width = self.char_width * len(text)
        image = np.full((self.height, width, 3), ord(text[0]) % 256, dtype=np.uint8)
        alpha = np.full((self.height, width), 255, dtype=np.uint8)
        return RenderResult(image=image, alpha=alpha, height=self.height, width=width)


class GlyphCacheTests(unittest.TestCase):
    def test_second_resolve_is_all_hits(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer)
        first = cache.resolve(["a", "b", "a"])
        self.assertEqual(len(renderer.calls), 2)

        second = cache.resolve(["a", "b", "a"])
        self.assertEqual(len(renderer.calls), 2)
        self.assertEqual(first, second)
        self.assertEqual(first[0], first[2])

    def test_same_fragment_cached_per_config(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer)
        cache.set_config([("color", "red")])
        red = cache.resolve(["A"])
        cache.set_config([("color", "blue")])
        blue = cache.resolve(["A"])

        entries = cache.get_entries()
        self.assertEqual(len(entries), 2)
        self.assertNotEqual(red, blue)
        self.assertEqual({e.fragment for e in entries}, {"A"})
        self.assertNotEqual(entries[0].config, entries[1].config)

    def test_clear_forces_rerender(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer)
        cache.resolve(["x"])
        cache.clear()
        self.assertEqual(cache.get_entries(), ())
        cache.resolve(["x"])
        self.assertEqual(len(renderer.calls), 2)

    def test_replace_with_snapshot_keeps_hits(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer, config={"font_name": "Mono"})
        indices = cache.resolve(["q", "r"])
        snapshot = cache.get_entries()

        cache.replace(snapshot)
        self.assertEqual(cache.resolve(["q", "r"]), indices)
        self.assertEqual(len(renderer.calls), 2)
        cache.resolve(["s"])
        self.assertEqual(len(renderer.calls), 3)

    def test_replace_logs_new_entry_count(self):
        source = GlyphCache(_FakeRenderer())
        source.resolve(["a", "b"])
        cache = GlyphCache(_FakeRenderer())
        with self.assertLogs("textraster.cache", level="DEBUG") as logs:
            cache.replace(source.get_entries())
        self.assertIn("cache replaced with 2 entries", logs.output[-1])

    def test_hello_scenario(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer)
        cache.clear()
        cache.set_config([("font", "Mono")])
        first = cache.resolve(["H", "i"])
        self.assertEqual(len(renderer.calls), 2)
        self.assertEqual(len(cache.get_entries()), 2)

        second = cache.resolve(["H", "i"])
        self.assertEqual(len(renderer.calls), 2)
        self.assertEqual(first, second)
        self.assertEqual(cache.hits, 2)
        self.assertEqual(cache.misses, 2)

    def test_missing_fragments_render_in_sorted_order(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer)
        indices = cache.resolve(["c", "a", "b", "a"])
        self.assertEqual([text for text, _ in renderer.calls], ["a", "b", "c"])
        self.assertEqual(indices, [2, 0, 1, 0])

    def test_key_order_and_spelling_share_entries(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer)
        cache.set_config([("FontSize", 20), ("Color", "b")])
        cache.resolve(["z"])
        cache.set_config([("color", "b"), ("font_size", 20)])
        cache.resolve(["z"])
        self.assertEqual(len(renderer.calls), 1)

    def test_renderer_failure_keeps_earlier_entries(self):
        renderer = _FakeRenderer(fail_on="c")
        cache = GlyphCache(renderer)
        with self.assertRaises(InvalidConfigurationError):
            cache.resolve(["d", "c", "b", "a"])
        self.assertEqual([e.fragment for e in cache.get_entries()], ["a", "b"])

        cache.resolve(["a", "b"])
        self.assertEqual(len(renderer.calls), 2)

    def test_multi_character_fragments(self):
        renderer = _FakeRenderer()
        cache = GlyphCache(renderer)
        indices = cache.resolve(["\\pi", "xyz"])
        entries = cache.get_entries()
        self.assertEqual(entries[indices[1]].fragment, "xyz")
        self.assertEqual(entries[indices[1]].width, 9)


if __name__ == "__main__":
    unittest.main()

"""
Palette & Color Analysis Test Suite
===================================
"""

import json
import tracemalloc
from typing import List

import cv2
import numpy as np
import pytest

from pixelcore import analysis as analysis_module
from pixelcore import palette as palette_module
from pixelcore.analysis import (
    accessibility, analyze_colors, color_harmony, color_mood, color_name, color_statistics,
    color_temperature, print_safe, simulate_color_blindness, smart_color_suggestions,
    suggest_color_schemes, web_safe,
)
from pixelcore.buffer import PixelBuffer
from pixelcore.errors import PaletteExtractionError
from pixelcore.palette import (
    BucketPaletteExtractor, KMeansPaletteExtractor, PaletteEntry, PaletteExtractor,
    dominant_color, extract_palette, opaque_pixels, select_extractor,
)
from synthetic import create_test_image

BLUE = (0, 0, 255)
RED = (255, 0, 0)


def blue_red(red_alpha=255):
    """10x10 image: 70 blue pixels then 30 red ones."""
    arr = np.zeros((100, 4), dtype=np.uint8)
    arr[:70, :3] = BLUE
    arr[:70, 3] = 255
    arr[70:, :3] = RED
    arr[70:, 3] = red_alpha
    return PixelBuffer.from_array(arr.reshape(10, 10, 4))


class FailingExtractor(PaletteExtractor):
    name = "failing"

    def is_available(self) -> bool:
        return True

    def palette(self, pixels: np.ndarray, count: int) -> List[PaletteEntry]:
        raise cv2.error("kmeans exploded")

    def dominant(self, pixels: np.ndarray):
        raise cv2.error("kmeans exploded")


class UnavailableExtractor(FailingExtractor):
    name = "unavailable"

    def is_available(self) -> bool:
        return False


def entries(*colors):
    return [PaletteEntry.from_rgb(c, 100 / len(colors)) for c in colors]


# ─── Palette extraction ───────────────────────────────────


def test_kmeans_palette_is_exact_for_few_colors():
    result = extract_palette(blue_red(), 5, KMeansPaletteExtractor())
    assert [(e.rgb, e.percentage) for e in result] == [(BLUE, 70.0), (RED, 30.0)]
    assert result[0].hex == "#0000ff"
    assert dominant_color(blue_red(), KMeansPaletteExtractor()) == BLUE


def test_bucket_palette_quantises():
    result = extract_palette(blue_red(), 5, BucketPaletteExtractor())
    assert [(e.rgb, e.percentage) for e in result] == [((0, 0, 240), 70.0), ((240, 0, 0), 30.0)]
    assert dominant_color(blue_red(), BucketPaletteExtractor()) == (0, 0, 224)


def test_transparent_pixels_are_ignored():
    result = extract_palette(blue_red(red_alpha=0), 5)
    assert len(result) == 1
    assert result[0].rgb == BLUE
    assert result[0].percentage == 100.0


def test_fully_transparent_buffer():
    buf = PixelBuffer.solid(4, 4, (200, 10, 10, 0))
    assert extract_palette(buf) == []
    assert dominant_color(buf) == (0, 0, 0)
    report = analyze_colors(buf)
    assert report.palette == []
    assert report.color_temperature.category == "very_cool"
    assert report.color_mood.primary == "gray"
    assert report.statistics.unique_colors == 0


def test_palette_size_must_be_positive():
    with pytest.raises(ValueError):
        extract_palette(blue_red(), 0)


def test_kmeans_is_deterministic_and_covers_every_pixel():
    buf = create_test_image(32, 24, "noise")
    first = extract_palette(buf, 6, KMeansPaletteExtractor())
    second = extract_palette(buf, 6, KMeansPaletteExtractor())
    assert first == second
    assert len(first) <= 6
    assert sum(e.percentage for e in first) == pytest.approx(100.0)
    assert [e.percentage for e in first] == sorted((e.percentage for e in first), reverse=True)


def test_kmeans_assignment_memory_is_bounded():
    buf = create_test_image(1000, 1000, "noise")
    extractor = KMeansPaletteExtractor(sample_limit=5000, attempts=1)
    tracemalloc.start()
    try:
        result = extract_palette(buf, 64, extractor)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()
    assert 1 <= len(result) <= 64
    assert sum(e.percentage for e in result) == pytest.approx(100.0)
    # A dense pixel x centre x channel difference array alone is ~768 MB
    assert peak < 20 * buf.nbytes


def test_assignment_picks_nearest_center():
    pixels = np.array([[0, 0, 0], [250, 250, 250], [120, 130, 125], [10, 240, 5]], dtype=np.uint8)
    centers = np.array([[255, 255, 255], [0, 0, 0], [128, 128, 128], [0, 255, 0]], dtype=np.float32)
    labels = KMeansPaletteExtractor._assign(pixels, centers)
    assert labels.tolist() == [1, 0, 2, 3]


def test_select_extractor_prefers_kmeans():
    assert isinstance(select_extractor(), KMeansPaletteExtractor)


def test_failing_default_extractor_raises(monkeypatch):
    monkeypatch.setattr(palette_module, "DEFAULT_EXTRACTORS", (FailingExtractor, BucketPaletteExtractor))
    with pytest.raises(PaletteExtractionError):
        extract_palette(blue_red(), 5)
    with pytest.raises(PaletteExtractionError):
        dominant_color(blue_red())


def test_unavailable_extractors_are_skipped(monkeypatch):
    monkeypatch.setattr(palette_module, "DEFAULT_EXTRACTORS", (UnavailableExtractor, BucketPaletteExtractor))
    assert isinstance(select_extractor(), BucketPaletteExtractor)
    assert extract_palette(blue_red(), 5)[0].rgb == (0, 0, 240)

    monkeypatch.setattr(palette_module, "DEFAULT_EXTRACTORS", (UnavailableExtractor,))
    with pytest.raises(PaletteExtractionError):
        extract_palette(blue_red(), 5)


def test_explicit_failing_extractor_raises():
    with pytest.raises(PaletteExtractionError):
        extract_palette(blue_red(), 5, FailingExtractor())


# ─── Harmony, temperature, mood ───────────────────────────


def test_harmony_of_red():
    harmony = color_harmony(*RED)
    assert harmony.complementary == ["#00ffff"]
    assert harmony.triadic == ["#00ff00", "#0000ff"]
    assert len(harmony.analogous) == 4
    assert len(harmony.tetradic) == 3
    assert len(harmony.monochromatic) == 2


def test_temperature_categories():
    assert color_temperature(entries(RED)).category == "very_warm"
    assert color_temperature(entries(BLUE)).category == "very_cool"
    empty = color_temperature([])
    assert empty.value_kelvin == 0
    assert empty.category == "very_cool"


@pytest.mark.parametrize("rgb,name", [
    ((255, 0, 0), "red"),
    ((255, 128, 0), "orange"),
    ((0, 255, 0), "green"),
    ((0, 255, 255), "cyan"),
    ((0, 0, 255), "blue"),
    ((255, 0, 255), "purple"),
    ((255, 0, 100), "pink"),
    ((0, 0, 0), "black"),
    ((255, 255, 255), "white"),
    ((128, 128, 128), "gray"),
])
def test_color_names(rgb, name):
    assert color_name(*rgb) == name


def test_mood_merges_secondary_colors():
    mood = color_mood(entries(RED, BLUE))
    assert mood.primary == "red"
    assert mood.secondary == ["blue"]
    assert mood.emotions == ["power", "passion", "energy", "love", "calm", "trust"]
    assert len(mood.associations) <= 6


# ─── Accessibility & recommendations ──────────────────────


def test_black_and_white_contrast():
    audit = accessibility(entries((255, 255, 255), (0, 0, 0)))
    assert len(audit.contrast_ratios) == 1
    pair = audit.contrast_ratios[0]
    assert pair.ratio == 21
    assert pair.wcag_level == "AAA"


def test_contrast_pairs_are_capped_and_sorted():
    colors = [(0, 0, 0), (255, 255, 255), (255, 0, 0), (0, 255, 0), (0, 0, 255), (128, 128, 128)]
    audit = accessibility(entries(*colors), max_pairs=10)
    ratios = [p.ratio for p in audit.contrast_ratios]
    assert len(ratios) == 10
    assert ratios == sorted(ratios, reverse=True)
    assert len(audit.color_blindness_simulation.protanopia) == 6


def test_color_blindness_simulation():
    assert simulate_color_blindness(*RED, "protanopia") == "#918e00"


def test_safe_palettes():
    assert web_safe(100, 0, 0) == "#660000"
    assert print_safe(12, 200, 99) == "#0cc863"


# ─── Statistics & full report ─────────────────────────────


def test_statistics_of_solid_gray():
    stats = color_statistics(PixelBuffer.solid(5, 5, (128, 128, 128, 255)))
    assert stats.unique_colors == 1
    assert stats.avg_saturation == 0
    assert stats.colorfulness == 0
    assert stats.contrast == 0
    assert stats.avg_brightness == pytest.approx(128 / 255)


def test_report_reads_opaque_pixels_once(monkeypatch):
    calls = []

    def counting(buffer):
        calls.append(buffer)
        return opaque_pixels(buffer)

    monkeypatch.setattr(analysis_module, "opaque_pixels", counting)
    buf = create_test_image(16, 12, "interior")
    report = analyze_colors(buf, palette_size=4)
    assert len(calls) == 1
    assert report.palette == extract_palette(buf, 4)
    assert report.statistics == color_statistics(buf)


def test_full_report_is_json_serialisable():
    report = analyze_colors(create_test_image(32, 24, "interior"), palette_size=4)
    data = json.loads(json.dumps(report.to_dict()))
    assert set(data) == {
        "dominant_color", "palette", "color_harmony", "color_temperature",
        "color_mood", "accessibility", "recommendations", "statistics",
    }
    assert 1 <= len(data["palette"]) <= 4
    assert len(data["recommendations"]["web_safe"]) == len(data["palette"])
    assert data["dominant_color"]["hex"].startswith("#")


# ─── Schemes & suggestions ────────────────────────────────


def test_color_schemes():
    schemes = suggest_color_schemes(["#ff0000", "#00ff00", "#0000ff"])
    assert [s.name for s in schemes] == ["monochrome", "complementary", "natural"]
    assert schemes[0].accent == ["#00ffff"]
    assert [s.name for s in suggest_color_schemes([])] == ["natural"]
    assert [s.name for s in suggest_color_schemes(["bogus"])] == ["natural"]


def test_smart_suggestions():
    web = smart_color_suggestions("#ff0000", "web")
    assert [s.type for s in web] == ["complementary", "analogous"]
    assert web[0].colors == ["#00ffff"]
    brand = smart_color_suggestions("#ff0000", "brand")
    assert [s.type for s in brand] == ["monochromatic"]
    assert smart_color_suggestions("#ff0000", "print") == []
    assert smart_color_suggestions("nope", "web") == []

"""
Color-Space Utilities Test Suite
================================
"""

import itertools

import numpy as np
import pytest

from pixelcore.color_space import (
    cmyk_to_rgb, contrast_ratio, hex_to_rgb, hsl_to_rgb, hsl_to_rgb_array, relative_luminance,
    rgb_to_cmyk, rgb_to_hex, rgb_to_hsl, rgb_to_hsl_array,
)

LEVELS = [0, 1, 37, 64, 127, 128, 200, 254, 255]
SAMPLE_COLORS = list(itertools.product(LEVELS, repeat=3))


def test_primary_hues():
    assert rgb_to_hsl(255, 0, 0) == (0.0, 1.0, 0.5)
    h, s, l = rgb_to_hsl(0, 255, 0)
    assert h == pytest.approx(120)
    h, s, l = rgb_to_hsl(0, 0, 255)
    assert h == pytest.approx(240)


def test_achromatic_has_zero_hue_and_saturation():
    h, s, l = rgb_to_hsl(128, 128, 128)
    assert (h, s) == (0.0, 0.0)
    assert l == pytest.approx(128 / 255)


def test_hsl_round_trip():
    for rgb in SAMPLE_COLORS:
        assert hsl_to_rgb(*rgb_to_hsl(*rgb)) == rgb, rgb


def test_hsl_array_matches_scalar():
    colors = np.array(SAMPLE_COLORS, dtype=np.float64)
    h, s, l = rgb_to_hsl_array(colors / 255)
    for i, rgb in enumerate(SAMPLE_COLORS):
        sh, ss, sl = rgb_to_hsl(*rgb)
        assert h[i] == pytest.approx(sh, abs=1e-9)
        assert s[i] == pytest.approx(ss, abs=1e-9)
        assert l[i] == pytest.approx(sl, abs=1e-9)

    back = np.floor(hsl_to_rgb_array(h, s, l) * 255 + 0.5).astype(int)
    assert (back == colors.astype(int)).all()


def test_cmyk_black_is_guarded():
    assert rgb_to_cmyk(0, 0, 0) == (0.0, 0.0, 0.0, 1.0)
    assert cmyk_to_rgb(0, 0, 0, 1) == (0, 0, 0)


def test_cmyk_round_trip():
    for rgb in [(12, 200, 99), (255, 255, 255), (1, 2, 3), (250, 128, 0)]:
        assert cmyk_to_rgb(*rgb_to_cmyk(*rgb)) == rgb


def test_hex_conversion():
    assert rgb_to_hex(255, 0, 128) == "#ff0080"
    assert hex_to_rgb("#FF0080") == (255, 0, 128)
    assert hex_to_rgb("0a0b0c") == (10, 11, 12)


@pytest.mark.parametrize("bad", ["", "#12345", "#gggggg", "red", None])
def test_hex_rejects_garbage(bad):
    with pytest.raises(ValueError):
        hex_to_rgb(bad)


def test_white_on_black_is_exactly_21():
    assert contrast_ratio("#ffffff", "#000000") == 21
    assert contrast_ratio((0, 0, 0), (255, 255, 255)) == 21


def test_contrast_ratio_symmetric_and_bounded():
    colors = SAMPLE_COLORS[::37]
    for a, b in itertools.combinations(colors, 2):
        ratio = contrast_ratio(a, b)
        assert ratio == contrast_ratio(b, a)
        assert 1 <= ratio <= 21


def test_same_color_contrast_is_one():
    assert contrast_ratio("#7f7f7f", "#7f7f7f") == 1


def test_relative_luminance_extremes():
    assert relative_luminance(0, 0, 0) == 0
    assert relative_luminance(255, 255, 255) == pytest.approx(1.0)

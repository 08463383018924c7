"""
Color Grading Test Suite
========================
"""

import pytest

from pixelcore.buffer import PixelBuffer
from pixelcore.grading import ColorGrading, apply_grading
from synthetic import create_test_image


def test_identity_grade():
    buf = create_test_image(20, 12, "noise", alpha=120)
    assert apply_grading(buf, ColorGrading()) == buf


def test_shadow_bias_only_touches_shadows():
    grading = ColorGrading(shadows=(0.2, 0.0, 0.0))
    black = PixelBuffer.solid(2, 2, (0, 0, 0, 255))
    white = PixelBuffer.solid(2, 2, (255, 255, 255, 255))
    assert apply_grading(black, grading).pixel(0, 0) == (51, 0, 0, 255)
    assert apply_grading(white, grading) == white


def test_highlight_and_midtone_zones():
    grading = ColorGrading(midtones=(0, 0, 0.1), highlights=(-0.1, 0, 0))
    mid = PixelBuffer.solid(1, 1, (128, 128, 128, 255))
    light = PixelBuffer.solid(1, 1, (230, 230, 230, 255))
    assert apply_grading(mid, grading).pixel(0, 0)[2] > 128
    assert apply_grading(light, grading).pixel(0, 0)[0] < 230


def test_gain_halves():
    buf = PixelBuffer.solid(2, 2, (200, 100, 50, 255))
    assert apply_grading(buf, ColorGrading(gain=(0.5, 0.5, 0.5))).pixel(1, 1) == (100, 50, 25, 255)


def test_lift_raises_black():
    buf = PixelBuffer.solid(1, 1, (0, 0, 0, 255))
    r, g, b, _ = apply_grading(buf, ColorGrading(lift=(0.1, 0.1, 0.1))).pixel(0, 0)
    assert r == g == b == 26


def test_non_positive_gamma_does_not_blow_up():
    buf = create_test_image(8, 8, "gradient")
    out = apply_grading(buf, ColorGrading(gamma=(0, -1, 0.5)))
    assert out.width == 8


def test_dict_triples():
    grading = ColorGrading.from_dict({"shadows": {"r": 0.1, "b": -0.1}, "gain": [1, 1, 1]})
    assert grading.shadows == (0.1, 0.0, -0.1)
    assert grading.gain == (1.0, 1.0, 1.0)


def test_bad_input_rejected():
    with pytest.raises(ValueError):
        ColorGrading(gain=(1, 1))
    with pytest.raises(ValueError):
        ColorGrading.from_dict({"saturation": (1, 1, 1)})

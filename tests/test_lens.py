"""
Lens Correction Test Suite
==========================
"""

import pytest

from pixelcore.buffer import PixelBuffer
from pixelcore.lens import LensCorrection, PerspectiveCorrection, apply_lens_correction
from synthetic import channels, create_test_image


def test_default_correction_is_identity():
    buf = create_test_image(24, 16, "noise", alpha=200)
    out = apply_lens_correction(buf, LensCorrection())
    assert out == buf
    assert out is not buf


def test_vignetting_correction_brightens_or_darkens_corners():
    buf = PixelBuffer.solid(21, 21, (100, 100, 100, 255))
    brighter = channels(apply_lens_correction(buf, LensCorrection(vignetting=100)))
    darker = channels(apply_lens_correction(buf, LensCorrection(vignetting=-100)))
    assert brighter[0, 0, 0] > 100 and darker[0, 0, 0] < 100
    assert abs(brighter[10, 10, 0] - 100) <= 1
    assert (brighter[:, :, 3] == 255).all()


def test_geometric_corrections_keep_uniform_images():
    buf = PixelBuffer.solid(30, 20, (40, 120, 200, 180))
    for correction in (
        LensCorrection(distortion=60),
        LensCorrection(distortion=-60),
        LensCorrection(chromatic_aberration=100),
        LensCorrection(perspective=PerspectiveCorrection(horizontal=30, vertical=-40, rotation=10)),
    ):
        assert apply_lens_correction(buf, correction) == buf


def test_distortion_moves_pixels():
    buf = create_test_image(40, 30, "interior")
    assert apply_lens_correction(buf, LensCorrection(distortion=80)) != buf


def test_chromatic_aberration_leaves_green_alone():
    buf = create_test_image(30, 30, "interior")
    out = channels(apply_lens_correction(buf, LensCorrection(chromatic_aberration=100)))
    assert (out[:, :, 1] == channels(buf)[:, :, 1]).all()


def test_rotation_is_clamped():
    buf = create_test_image(20, 20, "gradient")
    wild = LensCorrection(perspective=PerspectiveCorrection(rotation=90))
    limit = LensCorrection(perspective=PerspectiveCorrection(rotation=45))
    assert apply_lens_correction(buf, wild) == apply_lens_correction(buf, limit)


def test_from_dict_accepts_camel_case():
    correction = LensCorrection.from_dict({
        "chromaticAberration": 20,
        "perspective": {"rotation": 5},
    })
    assert correction.chromatic_aberration == 20
    assert correction.perspective.rotation == 5
    assert correction.distortion == 0


def test_from_dict_rejects_non_mapping_perspective():
    assert LensCorrection.from_dict({"perspective": None}).perspective == PerspectiveCorrection()
    with pytest.raises(TypeError):
        LensCorrection.from_dict({"perspective": 5})
    with pytest.raises(TypeError):
        LensCorrection.from_dict({"perspective": [1, 2, 3]})


def test_nan_sliders_are_identity():
    nan = float("nan")
    buf = create_test_image(16, 12, "noise")
    correction = LensCorrection(
        distortion=nan, vignetting=nan, chromatic_aberration=nan,
        perspective=PerspectiveCorrection(horizontal=nan, vertical=nan, rotation=nan),
    )
    assert apply_lens_correction(buf, correction) == buf

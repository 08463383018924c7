"""
Tonal Engine Test Suite
=======================
"""

import numpy as np
import pytest

from pixelcore.buffer import PixelBuffer
from pixelcore.spatial import VignetteOptions
from pixelcore.tonal import NoiseOptions, TonalOptions, apply_tonal, luminance_mean
from synthetic import channels, create_test_image


@pytest.mark.parametrize("scene", ["interior", "gradient", "noise"])
def test_default_options_are_identity(scene):
    buf = create_test_image(33, 17, scene)
    assert apply_tonal(buf) == buf
    assert apply_tonal(buf, TonalOptions()) == buf


def test_inactive_noise_and_vignette_are_identity():
    buf = create_test_image(20, 20, "noise")
    options = TonalOptions(noise=NoiseOptions(), vignette=VignetteOptions(enabled=False, intensity=80))
    assert apply_tonal(buf, options) == buf


def test_pure_red_desaturates_to_luminance_gray():
    buf = PixelBuffer.solid(2, 2, (255, 0, 0, 255))
    out = apply_tonal(buf, TonalOptions(saturation=-100))
    for y in range(2):
        for x in range(2):
            r, g, b, a = out.pixel(x, y)
            assert r == g == b
            assert abs(r - 76) <= 1
            assert a == 255


def test_brightness_is_monotonic():
    buf = create_test_image(24, 16, "gradient")
    previous = None
    for brightness in range(-100, 101, 20):
        out = channels(apply_tonal(buf, TonalOptions(brightness=brightness)))
        if previous is not None:
            assert (out[:, :, :3] >= previous[:, :, :3]).all()
            assert out[:, :, :3].mean() >= previous[:, :, :3].mean()
        previous = out


def test_brightness_raises_mean_luminance():
    buf = create_test_image(24, 16, "interior")
    dark = luminance_mean(apply_tonal(buf, TonalOptions(brightness=-30)))
    bright = luminance_mean(apply_tonal(buf, TonalOptions(brightness=30)))
    assert dark < luminance_mean(buf) < bright


def test_out_of_range_parameters_are_clamped():
    buf = create_test_image(16, 16, "gradient")
    assert apply_tonal(buf, TonalOptions(brightness=500)) == apply_tonal(buf, TonalOptions(brightness=100))
    assert apply_tonal(buf, TonalOptions(gamma=0)) == apply_tonal(buf, TonalOptions(gamma=0.1))


def test_contrast_minus_100_flattens_to_mid_gray():
    out = channels(apply_tonal(create_test_image(8, 8, "noise"), TonalOptions(contrast=-100)))
    assert (out[:, :, :3] == 128).all()


def test_exposure_one_stop_doubles():
    buf = PixelBuffer.solid(3, 3, (50, 60, 70, 255))
    assert apply_tonal(buf, TonalOptions(exposure=100)).pixel(1, 1) == (100, 120, 140, 255)


def test_gamma_brightens_midtones():
    buf = PixelBuffer.solid(2, 2, (64, 64, 64, 255))
    r, _, _, _ = apply_tonal(buf, TonalOptions(gamma=2.0)).pixel(0, 0)
    assert r > 100


def test_warmth_shifts_red_up_and_blue_down():
    buf = PixelBuffer.solid(2, 2, (128, 128, 128, 255))
    assert apply_tonal(buf, TonalOptions(warmth=100)).pixel(0, 0) == (148, 138, 108, 255)


def test_tint_moves_green_against_red():
    buf = PixelBuffer.solid(2, 2, (128, 128, 128, 255))
    r, g, b, _ = apply_tonal(buf, TonalOptions(tint=100)).pixel(0, 0)
    assert r > 128 and g < 128 and b == 128


def test_hue_rotation_by_120_turns_red_green():
    buf = PixelBuffer.solid(1, 1, (255, 0, 0, 255))
    assert apply_tonal(buf, TonalOptions(hue=120)).pixel(0, 0) == (0, 255, 0, 255)


def test_full_hue_turn_is_identity():
    buf = create_test_image(10, 10, "noise")
    assert apply_tonal(buf, TonalOptions(hue=360)) == buf


def test_vibrance_moves_dull_pixels_more_than_vivid_ones():
    dull = PixelBuffer.solid(1, 1, (140, 120, 110, 255))
    vivid = PixelBuffer.solid(1, 1, (250, 10, 10, 255))
    dull_out = apply_tonal(dull, TonalOptions(vibrance=80)).pixel(0, 0)
    vivid_out = apply_tonal(vivid, TonalOptions(vibrance=80)).pixel(0, 0)
    dull_shift = sum(abs(a - b) for a, b in zip(dull_out[:3], dull.pixel(0, 0)[:3]))
    vivid_shift = sum(abs(a - b) for a, b in zip(vivid_out[:3], vivid.pixel(0, 0)[:3]))
    assert dull_shift > vivid_shift


def test_highlights_and_shadows_target_their_zone():
    dark = PixelBuffer.solid(2, 2, (40, 40, 40, 255))
    light = PixelBuffer.solid(2, 2, (220, 220, 220, 255))
    assert apply_tonal(dark, TonalOptions(shadows=100)).pixel(0, 0)[0] > 40
    assert apply_tonal(dark, TonalOptions(highlights=100)).pixel(0, 0)[0] == 40
    assert apply_tonal(light, TonalOptions(highlights=100)).pixel(0, 0)[0] < 220


def test_clarity_on_flat_image_is_identity():
    buf = PixelBuffer.solid(12, 12, (90, 100, 110, 255))
    assert apply_tonal(buf, TonalOptions(clarity=80)) == buf
    assert apply_tonal(buf, TonalOptions(clarity=-80)) == buf


def test_alpha_is_preserved():
    buf = create_test_image(10, 10, "noise", alpha=77)
    out = apply_tonal(buf, TonalOptions(brightness=40, saturation=20, vibrance=30))
    assert (out.to_array()[:, :, 3] == 77).all()


def test_input_is_not_modified():
    buf = create_test_image(10, 10, "noise")
    before = bytes(buf.data)
    apply_tonal(buf, TonalOptions(brightness=50, noise=NoiseOptions(grain=50)))
    assert buf.data == before


def test_grain_is_reproducible_and_luminance_only():
    buf = PixelBuffer.solid(16, 16, (128, 128, 128, 255))
    options = TonalOptions(noise=NoiseOptions(grain=80))
    a = apply_tonal(buf, options, rng=np.random.default_rng(5))
    b = apply_tonal(buf, options, rng=np.random.default_rng(5))
    assert a == b
    arr = a.to_array()
    assert (arr[:, :, 0] == arr[:, :, 1]).all() and (arr[:, :, 1] == arr[:, :, 2]).all()
    assert arr[:, :, 0].std() > 0


def test_hard_vignette_blacks_out_everything_but_the_center():
    buf = PixelBuffer.solid(4, 4, (255, 255, 255, 255))
    vignette = VignetteOptions(enabled=True, intensity=100, size=0, feather=0)
    out = apply_tonal(buf, TonalOptions(vignette=vignette))
    for y in range(4):
        for x in range(4):
            expected = (255, 255, 255, 255) if (x, y) == (2, 2) else (0, 0, 0, 255)
            assert out.pixel(x, y) == expected


def test_from_dict():
    options = TonalOptions.from_dict({
        "brightness": 10,
        "vignette": {"enabled": True, "intensity": 40},
        "noise": {"grain": 5},
    })
    assert options.brightness == 10
    assert options.vignette.enabled and options.vignette.intensity == 40
    assert options.noise.grain == 5 and options.noise.reduction == 0


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ValueError):
        TonalOptions.from_dict({"sparkle": 3})


def test_nested_options_reject_unknown_keys():
    with pytest.raises(ValueError):
        TonalOptions.from_dict({"noise": {"grian": 5}})
    with pytest.raises(ValueError):
        TonalOptions.from_dict({"vignette": {"enabled": True, "radius": 30}})


@pytest.mark.parametrize("hue", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_hue_leaves_colors_alone(hue):
    buf = PixelBuffer.solid(3, 3, (255, 0, 0, 255))
    assert apply_tonal(buf, TonalOptions(hue=hue)) == buf


def test_nan_sliders_mean_no_adjustment():
    nan = float("nan")
    buf = create_test_image(12, 10, "gradient")
    options = TonalOptions(
        brightness=nan, contrast=nan, saturation=nan, gamma=nan, exposure=nan,
        clarity=nan, vibrance=nan, warmth=nan,
        noise=NoiseOptions(reduction=nan, sharpen=nan, grain=nan),
    )
    assert apply_tonal(buf, options) == buf
    red = PixelBuffer.solid(2, 2, (255, 0, 0, 255))
    assert apply_tonal(red, TonalOptions(brightness=nan)).pixel(0, 0) == (255, 0, 0, 255)

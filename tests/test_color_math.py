"""
Tests for color-space conversions, white balance and HSL grading.
"""

import pytest
import numpy as np

from filmsim.processing.color.color_math import (
    rgb_to_hsl, hsl_to_rgb, rgb_to_hsv, hsv_to_rgb,
    srgb_to_linear, linear_to_srgb, temperature_to_rgb, luma, smoothstep,
)
from filmsim.processing.color.white_balance import white_balance_multipliers, apply_white_balance
from filmsim.processing.color.color_grading import apply_hsl, band_weights
from filmsim.processing.models import GlobalHSL, BandHSL, HSLShift


@pytest.fixture
def color_grid():
    """Every 17th level on each channel, as uint8 triples."""
    levels = np.arange(0, 256, 17, dtype=np.uint8)
    r, g, b = np.meshgrid(levels, levels, levels, indexing='ij')
    return np.stack([r, g, b], axis=-1).reshape(-1, 3)


class TestHSL:
    """Test RGB <-> HSL conversion."""

    def test_primary_colors(self):
        """Test hue of primaries and secondaries."""
        assert np.allclose(rgb_to_hsl([1, 0, 0]), [0, 1, 0.5])
        assert np.allclose(rgb_to_hsl([0, 1, 0]), [120, 1, 0.5])
        assert np.allclose(rgb_to_hsl([0, 0, 1]), [240, 1, 0.5])
        assert np.allclose(rgb_to_hsl([1, 0, 1]), [300, 1, 0.5])

    def test_gray_has_no_saturation(self):
        """Test achromatic colors."""
        hsl = rgb_to_hsl([0.5, 0.5, 0.5])
        assert hsl[0] == 0
        assert hsl[1] == 0
        assert hsl[2] == pytest.approx(0.5)

    def test_round_trip(self, color_grid):
        """Test hslToRgb(rgbToHsl(c)) recovers c."""
        rgb = color_grid / 255.0
        back = hsl_to_rgb(rgb_to_hsl(rgb))
        assert np.allclose(back, rgb, atol=1e-9)
        assert np.array_equal(np.floor(back * 255 + 0.5).astype(np.uint8), color_grid)

    def test_hue_wraps(self):
        """Test hue is taken modulo 360 on the way back."""
        assert np.allclose(hsl_to_rgb([360, 1, 0.5]), hsl_to_rgb([0, 1, 0.5]))
        assert np.allclose(hsl_to_rgb([-120, 1, 0.5]), [0, 0, 1])

    def test_vectorized_shape(self):
        """Test conversion keeps leading dimensions."""
        image = np.random.default_rng(0).random((4, 5, 3))
        assert rgb_to_hsl(image).shape == (4, 5, 3)
        assert hsl_to_rgb(rgb_to_hsl(image)).shape == (4, 5, 3)


class TestHSV:
    """Test RGB <-> HSV conversion."""

    def test_value_and_saturation(self):
        """Test white, black and a pure color."""
        assert np.allclose(rgb_to_hsv([1, 1, 1]), [0, 0, 1])
        assert np.allclose(rgb_to_hsv([0, 0, 0]), [0, 0, 0])
        assert np.allclose(rgb_to_hsv([0, 0.5, 0]), [120, 1, 0.5])

    def test_round_trip(self, color_grid):
        """Test hsvToRgb(rgbToHsv(c)) recovers c."""
        rgb = color_grid / 255.0
        assert np.allclose(hsv_to_rgb(rgb_to_hsv(rgb)), rgb, atol=1e-9)


class TestTransferFunctions:
    """Test sRGB transfer curves and helpers."""

    def test_known_value(self):
        """Test mid-gray decodes to about 21.4% linear light."""
        assert srgb_to_linear(0.5) == pytest.approx(0.214041, abs=1e-6)

    def test_round_trip(self):
        """Test encode(decode(v)) == v."""
        values = np.linspace(0, 1, 101)
        assert np.allclose(linear_to_srgb(srgb_to_linear(values)), values, atol=1e-12)

    def test_luma_weights(self):
        """Test Rec. 601 weights sum to one."""
        assert luma([255, 255, 255]) == pytest.approx(255)
        assert luma([255, 0, 0]) == pytest.approx(76.245)

    def test_smoothstep_edges(self):
        """Test smoothstep clamps outside its edges."""
        assert smoothstep(0.2, 0.5, 0.1) == 0
        assert smoothstep(0.2, 0.5, 0.6) == 1
        assert smoothstep(0.2, 0.5, 0.35) == pytest.approx(0.5)


class TestTemperature:
    """Test color temperature approximation."""

    def test_warm_light_lacks_blue(self):
        """Test 3000 K is red-heavy."""
        r, g, b = temperature_to_rgb(3000)
        assert r == 1.0
        assert b < g < r

    def test_cool_light_lacks_red(self):
        """Test 10000 K is blue-heavy."""
        r, g, b = temperature_to_rgb(10000)
        assert b == 1.0
        assert r < 1.0

    def test_channels_in_range(self):
        """Test every channel stays in [0, 1] across the slider range."""
        for kelvin in range(2000, 10001, 250):
            rgb = temperature_to_rgb(kelvin)
            assert np.all(rgb > 0)
            assert np.all(rgb <= 1)

    def test_input_clamped(self):
        """Test temperatures below the fit range use its lower bound."""
        assert np.array_equal(temperature_to_rgb(1000), temperature_to_rgb(2000))


class TestWhiteBalance:
    """Test white balance multipliers."""

    def test_neutral_is_identity(self):
        """Test 5500 K with no tint yields unit multipliers."""
        assert np.array_equal(white_balance_multipliers(5500, 0), [1.0, 1.0, 1.0])

    def test_warm_target_boosts_blue(self):
        """Test compensating warm light raises blue."""
        multipliers = white_balance_multipliers(3000, 0)
        assert multipliers[0] == pytest.approx(1.0)
        assert multipliers[2] > 1.0

    def test_tint_bias(self):
        """Test tint lowers green and raises red/blue."""
        multipliers = white_balance_multipliers(5500, 100)
        assert multipliers[0] == pytest.approx(1.05)
        assert multipliers[1] == pytest.approx(0.9)
        assert multipliers[2] == pytest.approx(1.05)

    def test_clamps_to_range(self):
        """Test channels never exceed 255."""
        rgb = np.full((2, 2, 3), 250.0)
        out = apply_white_balance(rgb, 2000, 100)
        assert out.max() <= 255.0
        assert out.min() >= 0.0


class TestHSLGrading:
    """Test the HSL adjustment stage."""

    def test_full_desaturation(self):
        """Test saturation -100 produces gray."""
        rgb = np.array([[200.0, 40.0, 90.0]])
        out = apply_hsl(rgb, GlobalHSL(saturation=-100))
        assert out[0, 0] == out[0, 1] == out[0, 2]

    def test_hue_rotation(self):
        """Test +120 degrees turns red into green."""
        out = apply_hsl(np.array([[255.0, 0.0, 0.0]]), GlobalHSL(hue=120))
        assert np.array_equal(out[0], [0, 255, 0])

    def test_full_turn_is_noop(self, color_grid):
        """Test hue +360 matches hue 0."""
        rgb = color_grid.astype(np.float64)
        assert np.array_equal(apply_hsl(rgb, GlobalHSL(hue=360)), apply_hsl(rgb, GlobalHSL()))
        assert GlobalHSL(hue=360).is_neutral

    def test_output_is_whole_bytes(self):
        """Test results are rounded to integers."""
        rgb = np.array([[123.4, 56.7, 89.1]])
        out = apply_hsl(rgb, GlobalHSL(luminance=7))
        assert np.array_equal(out, np.round(out))

    def test_band_weights_partition(self):
        """Test band weights sum to one for every hue."""
        weights = band_weights(np.arange(0, 360, 7.5))
        assert np.allclose(weights.sum(axis=-1), 1.0)
        assert np.allclose(band_weights(0.0), [1, 0, 0])
        assert np.allclose(band_weights(60.0), [0.5, 0.5, 0])

    def test_band_adjustment_targets_its_band(self):
        """Test a red-band shift leaves blue pixels alone."""
        rgb = np.array([[255.0, 0.0, 0.0], [0.0, 0.0, 255.0]])
        out = apply_hsl(rgb, BandHSL(red=HSLShift(luminance=-20)))
        assert out[0, 0] < 255
        assert np.array_equal(out[1], [0, 0, 255])

    def test_band_luminance_skips_gray(self):
        """Test achromatic pixels are not lightened by a band."""
        rgb = np.array([[128.0, 128.0, 128.0]])
        out = apply_hsl(rgb, BandHSL(red=HSLShift(luminance=50)))
        assert np.array_equal(out[0], [128, 128, 128])

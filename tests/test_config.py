"""
Tests for configuration loading and recipe files.
"""

import json
import logging

import pytest
import numpy as np

from filmsim import config as config_module
from filmsim.config import load_config, get_default_config
from filmsim.io import Recipe, load_image, save_image
from filmsim.processing import AdjustmentParams, PixelBuffer
from filmsim.processing.models import BandHSL, HSLShift, VignetteSettings


class TestConfig:
    """Test YAML configuration handling."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test a nonexistent path falls back to defaults."""
        assert load_config(tmp_path / "nope.yaml") == get_default_config()

    def test_missing_file_warns(self, tmp_path, caplog):
        """Test an explicitly named but missing file is reported."""
        with caplog.at_level(logging.WARNING, logger="filmsim.config"):
            load_config(tmp_path / "nope.yaml")
        assert "Config file not found" in caplog.text

    def test_missing_default_file_quiet(self, tmp_path, monkeypatch, caplog):
        """Test an install without the bundled config.yaml does not warn."""
        monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "config.yaml")
        with caplog.at_level(logging.DEBUG, logger="filmsim.config"):
            assert load_config() == get_default_config()
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_partial_file_merged(self, tmp_path):
        """Test a partial file overrides only what it names."""
        path = tmp_path / "config.yaml"
        path.write_text("preview:\n  max_width: 640\nprocessing:\n  band_rows: 32\n")
        config = load_config(path)
        assert config['preview']['max_width'] == 640
        assert config['preview']['max_height'] == 800
        assert config['processing']['band_rows'] == 32
        assert config['processing']['max_worker_threads'] == 4

    def test_env_expansion(self, tmp_path, monkeypatch):
        """Test ${VAR} references are expanded."""
        monkeypatch.setenv("FILMSIM_TEST_LUTS", "/data/luts")
        path = tmp_path / "config.yaml"
        path.write_text("simulations:\n  directory: ${FILMSIM_TEST_LUTS}/fuji\n")
        assert load_config(path)['simulations']['directory'] == "/data/luts/fuji"

    def test_unknown_variable_kept(self, tmp_path, monkeypatch):
        """Test unset variables are left as written."""
        monkeypatch.delenv("FILMSIM_UNSET_VAR", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("simulations:\n  directory: ${FILMSIM_UNSET_VAR}\n")
        assert load_config(path)['simulations']['directory'] == "${FILMSIM_UNSET_VAR}"

    @pytest.mark.parametrize("content", ["preview: [unclosed", "- just\n- a list\n"])
    def test_invalid_file_uses_defaults(self, tmp_path, content):
        """Test malformed YAML falls back to defaults."""
        path = tmp_path / "config.yaml"
        path.write_text(content)
        assert load_config(path) == get_default_config()

    def test_defaults_are_fresh(self):
        """Test callers cannot mutate shared defaults."""
        config = get_default_config()
        config['preview']['max_width'] = 1
        assert get_default_config()['preview']['max_width'] == 1200

    def test_shipped_config_loads(self):
        """Test the bundled config.yaml matches the defaults."""
        assert load_config() == get_default_config()


class TestRecipes:
    """Test recipe files."""

    @pytest.mark.parametrize("name", ["look.yaml", "look.json"])
    def test_save_and_load(self, tmp_path, name):
        """Test a recipe survives a trip through disk."""
        params = AdjustmentParams(exposure=-0.3, curve=[(0, 0.05), (0.5, 0.55), (1, 1)],
                                  hsl=BandHSL(blue=HSLShift(hue=-10)),
                                  vignette=VignetteSettings(amount=25))
        recipe = Recipe(params, simulation='classic-chrome')
        loaded = Recipe.load(recipe.save(tmp_path / name))
        assert loaded.params == params
        assert loaded.simulation == 'classic-chrome'

    def test_editor_json(self, tmp_path):
        """Test a recipe exported by the web editor is understood."""
        path = tmp_path / "editor.json"
        path.write_text(json.dumps({'exposure': 0.5, 'wbTemp': 4500,
                                    'curvePoints': [{'x': 0, 'y': 0}, {'x': 1, 'y': 0.9}]}))
        recipe = Recipe.load(path)
        assert recipe.params.temperature == 4500.0
        assert recipe.params.curve[-1] == (1.0, 0.9)
        assert recipe.simulation is None

    def test_non_mapping_rejected(self, tmp_path):
        """Test a YAML list is not a recipe."""
        path = tmp_path / "bad.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            Recipe.load(path)


class TestImageIO:
    """Test Pillow-backed image files."""

    def test_png_keeps_alpha(self, tmp_path):
        """Test PNG export and import preserve every sample."""
        pixels = np.random.default_rng(1).integers(0, 256, (7, 9, 4), dtype=np.uint8)
        path = save_image(PixelBuffer(pixels), tmp_path / "out.png")
        assert np.array_equal(load_image(path).pixels, pixels)

    def test_rgb_loads_as_rgba(self, tmp_path):
        """Test three-channel files gain an opaque alpha channel."""
        path = save_image(PixelBuffer.filled(3, 2, (10, 20, 30)), tmp_path / "rgb.png")
        loaded = load_image(path)
        assert loaded.channels == 4
        assert np.all(loaded.alpha == 255)

    def test_jpeg_export(self, tmp_path):
        """Test JPEG export drops alpha and stays close to the source."""
        buffer = PixelBuffer.filled(16, 16, (120, 60, 200, 128))
        path = save_image(buffer, tmp_path / "out.jpg", quality=95)
        loaded = load_image(path)
        assert loaded.size == (16, 16)
        assert np.abs(loaded.rgb.astype(int) - [120, 60, 200]).max() <= 4

    def test_unsupported_format(self, tmp_path):
        """Test unknown suffixes are rejected."""
        with pytest.raises(ValueError):
            save_image(PixelBuffer.filled(2, 2, (0, 0, 0)), tmp_path / "out.bmp")

"""
Tests for 3D LUT parsing, identity detection and trilinear sampling.
"""

import pytest
import numpy as np

from filmsim.processing.color.lut import (
    LUT3D, parse_cube, load_cube, write_cube, format_cube,
)
from filmsim.processing.errors import FormatError


def random_lut(size: int, seed: int = 0) -> LUT3D:
    """LUT with arbitrary node values."""
    rng = np.random.default_rng(seed)
    return LUT3D(size, rng.random(size ** 3 * 3))


SMALL_CUBE = """# Created by hand
TITLE "Swap"
LUT_3D_SIZE 2
DOMAIN_MIN 0.0 0.0 0.0
DOMAIN_MAX 1.0 1.0 1.0

0.0 0.0 0.0
1.0 0.0 0.0
0.0 1.0 0.0
1.0 1.0 0.0
0.0 0.0 1.0
1.0 0.0 1.0
0.0 1.0 1.0
1.0 1.0 1.0
"""


class TestParsing:
    """Test .cube text parsing."""

    def test_parse_declared_size(self):
        """Test a well-formed cube with header lines."""
        lut = parse_cube(SMALL_CUBE)
        assert lut.size == 2
        assert lut.title == "Swap"
        assert lut.data.size == 24
        assert lut.is_identity()

    def test_infer_size_without_declaration(self):
        """Test size is the cube root of the entry count."""
        text = "\n".join(line for line in SMALL_CUBE.splitlines()
                         if not line.startswith("LUT_3D_SIZE"))
        assert parse_cube(text).size == 2

    def test_extra_columns_ignored(self):
        """Test only the first three values of a data line are used."""
        text = "LUT_3D_SIZE 2\n" + "\n".join("0.5 0.5 0.5 9.9" for _ in range(8))
        lut = parse_cube(text)
        assert np.all(lut.data == 0.5)

    def test_count_mismatch(self):
        """Test declared size must match the data."""
        text = SMALL_CUBE.replace("LUT_3D_SIZE 2", "LUT_3D_SIZE 3")
        with pytest.raises(FormatError, match="mismatch"):
            parse_cube(text)

    def test_not_a_perfect_cube(self):
        """Test inference fails for 9 entries."""
        text = "\n".join("0.1 0.2 0.3" for _ in range(9))
        with pytest.raises(FormatError, match="perfect cube"):
            parse_cube(text)

    def test_invalid_size_declaration(self):
        """Test a non-integer size is rejected."""
        with pytest.raises(FormatError, match="LUT_3D_SIZE"):
            parse_cube("LUT_3D_SIZE big\n0 0 0\n")

    def test_non_numeric_token(self):
        """Test garbage inside a data line is rejected."""
        text = SMALL_CUBE.replace("1.0 1.0 0.0", "1.0 x 0.0")
        with pytest.raises(FormatError, match="Non-numeric"):
            parse_cube(text)

    def test_no_data(self):
        """Test a header without data is rejected."""
        with pytest.raises(FormatError, match="No LUT data"):
            parse_cube('TITLE "Empty"\nLUT_3D_SIZE 2\n')

    def test_format_error_is_grading_error(self):
        """Test FormatError belongs to the package hierarchy."""
        from filmsim.processing.errors import GradingError
        assert issubclass(FormatError, GradingError)

    def test_write_and_load(self, tmp_path):
        """Test a written cube loads back with the same values."""
        original = random_lut(5)
        path = write_cube(original, tmp_path / "luts" / "random.cube")
        loaded = load_cube(path)
        assert loaded.size == 5
        assert loaded.title == "random"
        assert np.allclose(loaded.data, original.data, atol=1e-6)
        assert format_cube(loaded).startswith('TITLE "random"\nLUT_3D_SIZE 5\n')


class TestIdentity:
    """Test identity table detection."""

    @pytest.mark.parametrize("size", [8, 16, 32, 64])
    def test_generated_identity(self, size):
        """Test identity cubes are recognized at common sizes."""
        assert LUT3D.identity(size).is_identity()

    @pytest.mark.parametrize("size", [8, 16, 32, 64])
    def test_single_node_perturbation(self, size):
        """Test moving one node beyond tolerance breaks identity."""
        data = LUT3D.identity(size).data.copy()
        data[(size ** 3 // 2) * 3 + 1] += 0.002
        assert not LUT3D(size, data).is_identity()

    def test_within_tolerance(self):
        """Test small deviations still count as identity."""
        data = LUT3D.identity(8).data.copy()
        data[10] += 0.0005
        assert LUT3D(8, data).is_identity()
        assert not LUT3D(8, data).is_identity(tolerance=0.0001)

    def test_node_layout(self):
        """Test red varies fastest in the flat data."""
        lut = LUT3D.identity(4)
        assert np.allclose(lut.data[3:6], [1 / 3, 0, 0])
        assert np.allclose(lut.node(0, 1, 0), [0, 1 / 3, 0])
        assert np.allclose(lut.node(0, 0, 1), lut.data[16 * 3:16 * 3 + 3])

    def test_table_owns_its_data(self):
        """Test edits to the source array do not reach a constructed table."""
        data = LUT3D.identity(4).data.copy()
        lut = LUT3D(4, data)
        assert lut.is_identity()
        data[0] = 0.9
        assert lut.node(0, 0, 0)[0] == 0.0
        assert lut.is_identity()
        assert not lut.data.flags.writeable


class TestSampling:
    """Test trilinear interpolation."""

    def test_exact_at_nodes(self):
        """Test integer grid coordinates return stored values exactly."""
        lut = random_lut(6, seed=3)
        for r, g, b in [(0, 0, 0), (5, 5, 5), (1, 2, 3), (4, 0, 2)]:
            value = lut.interpolate(r, g, b)
            assert np.array_equal(value, lut.node(r, g, b))

    def test_vectorized_nodes(self):
        """Test array queries at nodes match the grid."""
        lut = random_lut(4, seed=1)
        b, g, r = np.indices((4, 4, 4))
        values = lut.interpolate(r, g, b)
        assert np.array_equal(values, lut.grid)

    def test_midpoint_blend(self):
        """Test halfway between two red nodes averages them."""
        lut = random_lut(3, seed=2)
        expected = (lut.node(0, 1, 1) + lut.node(1, 1, 1)) / 2
        assert np.allclose(lut.interpolate(0.5, 1, 1), expected)

    def test_half_texel_mapping(self):
        """Test normalized input is mapped to texel centres."""
        lut = LUT3D.identity(4)
        assert np.allclose(lut.sample(0, 0, 0), [0.125, 0.125, 0.125])
        assert np.allclose(lut.sample(0.5, 0.5, 0.5), [0.5, 0.5, 0.5])

    def test_inputs_clamped(self):
        """Test out-of-range queries behave like the nearest bound."""
        lut = random_lut(5, seed=4)
        assert np.allclose(lut.sample(-1.0, 2.0, 0.3), lut.sample(0.0, 1.0, 0.3))

    def test_apply_scale(self):
        """Test apply works on the 0-255 scale and clamps."""
        data = np.full(2 ** 3 * 3, 1.5)
        lut = LUT3D(2, data)
        out = lut.apply(np.array([[10.0, 20.0, 30.0]]))
        assert np.array_equal(out, [[255.0, 255.0, 255.0]])

    def test_bad_length_rejected(self):
        """Test constructor validates N^3 * 3 values."""
        with pytest.raises(FormatError):
            LUT3D(3, np.zeros(10))

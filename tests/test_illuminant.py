import numpy as np
import pytest

from chromacal.colorimetry.illuminant import (
    cie_d_illuminant,
    daylight_chromaticity,
    daylight_coefficients,
)


class TestDaylightLocus:
    def test_d65_chromaticity(self):
        x, y = daylight_chromaticity(6504.0)
        assert x == pytest.approx(0.3127, abs=5e-4)
        assert y == pytest.approx(0.3291, abs=5e-4)

    def test_d50_chromaticity(self):
        x, y = daylight_chromaticity(5003.0)
        assert x == pytest.approx(0.3457, abs=5e-4)
        assert y == pytest.approx(0.3585, abs=5e-4)

    def test_high_temperature_branch(self):
        x, y = daylight_chromaticity(10000.0)
        assert x == pytest.approx(0.2788, abs=1e-3)
        assert y == pytest.approx(0.2920, abs=1e-3)

    @pytest.mark.parametrize("cct", [4000.0, 6504.0, 10000.0, 25000.0])
    def test_follows_cie_locus(self, cct):
        if cct <= 7000.0:
            x = -4.6070e9 / cct**3 + 2.9678e6 / cct**2 + 0.09911e3 / cct + 0.244063
        else:
            x = -2.0064e9 / cct**3 + 1.9018e6 / cct**2 + 0.24748e3 / cct + 0.237040
        y = -3.0 * x**2 + 2.87 * x - 0.275
        assert daylight_chromaticity(cct) == pytest.approx((x, y), abs=1e-9)

    @pytest.mark.parametrize("cct", [3000.0, 30000.0])
    def test_out_of_range(self, cct):
        with pytest.raises(ValueError):
            daylight_chromaticity(cct)

    def test_d65_coefficients(self):
        m1, m2 = daylight_coefficients(*daylight_chromaticity(6504.0))
        assert m1 == pytest.approx(-0.296, abs=0.01)
        assert m2 == pytest.approx(-0.688, abs=0.01)


class TestDIlluminant:
    def test_combines_basis_and_resamples(self):
        wl_s = np.array([400.0, 500.0, 600.0])
        basis = np.column_stack([np.full(3, 100.0), np.full(3, 10.0), np.full(3, 1.0)])
        m1, m2 = daylight_coefficients(*daylight_chromaticity(5003.0))

        spd = cie_d_illuminant(5003.0, wl_s, basis, np.array([450.0, 600.0, 700.0]))
        expected = 100.0 + 10.0 * m1 + m2
        np.testing.assert_allclose(spd, [expected, expected, 0.0])

    def test_linear_interpolation(self):
        wl_s = np.array([400.0, 500.0])
        basis = np.array([[0.0, 0.0, 0.0], [100.0, 0.0, 0.0]])
        spd = cie_d_illuminant(6504.0, wl_s, basis, np.array([425.0, 475.0]))
        np.testing.assert_allclose(spd, [25.0, 75.0])

    def test_basis_shape_mismatch(self):
        with pytest.raises(ValueError):
            cie_d_illuminant(6504.0, np.arange(3.0), np.ones((3, 2)), np.arange(3.0))

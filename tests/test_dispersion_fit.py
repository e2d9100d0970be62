import numpy as np
import pytest

from chromacal.dispersion.dispersion_fit import (
    fit_polynomial_dispersion,
    fit_spline_dispersion,
    polynomial_powers,
)
from chromacal.dispersion.dispersion_model import make_dispersion_fun


def _lateral_ca(xylambda):
    """Radial, wavelength-dependent magnification about (50, 40)."""
    centred = xylambda[:, :2] - np.array([50.0, 40.0])
    k = 2e-4 * (xylambda[:, 2] - 550.0) / 100.0
    return centred * k[:, None] + 0.05


@pytest.fixture
def samples():
    rng = np.random.default_rng(0)
    n = 60
    xy = rng.uniform(0.0, 100.0, size=(n, 2))
    lam = rng.choice([450.0, 550.0, 650.0], size=n)
    xylambda = np.column_stack([xy, lam])
    return xylambda, _lateral_ca(xylambda)


class TestPolynomialPowers:
    def test_counts(self):
        assert polynomial_powers(0).shape == (1, 3)
        assert polynomial_powers(1).shape == (4, 3)
        assert polynomial_powers(2).shape == (10, 3)
        assert polynomial_powers(3).shape == (20, 3)

    def test_ordering_and_degree(self):
        powers = polynomial_powers(2)
        np.testing.assert_array_equal(powers[0], [0, 0, 0])
        degrees = powers.sum(axis=1)
        assert np.all(np.diff(degrees) >= 0)
        assert degrees.max() == 2

    def test_negative_degree(self):
        with pytest.raises(ValueError):
            polynomial_powers(-1)


class TestSplineFit:
    def test_interpolates_training_points(self, samples):
        xylambda, disparity = samples
        models = fit_spline_dispersion(xylambda, disparity)
        assert len(models) == 1 and models[0].reference_channel is None
        np.testing.assert_allclose(make_dispersion_fun(models)(xylambda), disparity, atol=1e-6)

    def test_smoothing_trades_off_fit(self, samples):
        xylambda, disparity = samples
        noisy = disparity + np.random.default_rng(1).normal(0.0, 1e-3, disparity.shape)
        exact = make_dispersion_fun(fit_spline_dispersion(xylambda, noisy))(xylambda)
        smooth = make_dispersion_fun(fit_spline_dispersion(xylambda, noisy, smoothing=10.0))(xylambda)
        assert np.abs(exact - noisy).max() < 1e-6
        assert np.abs(smooth - noisy).max() > 1e-6

    def test_channel_mode(self):
        rng = np.random.default_rng(2)
        rows = []
        for c in range(3):
            xy = rng.uniform(0.0, 200.0, size=(25, 2))
            rows.append(np.column_stack([xy, np.full(25, c)]))
        xylambda = np.vstack(rows)
        gains = np.array([3e-3, 0.0, -2e-3])
        disparity = (xylambda[:, :2] - 100.0) * gains[xylambda[:, 2].astype(int)][:, None]

        models = fit_spline_dispersion(xylambda, disparity, channel_mode=True, reference_channel=1)
        assert [m.reference_channel for m in models] == [False, True, False]

        f = make_dispersion_fun(models)
        np.testing.assert_allclose(f(xylambda), disparity, atol=1e-6)

        # Affine data is reproduced away from the samples too
        query = np.array([[10.0, 190.0, 0.0], [150.0, 20.0, 2.0], [60.0, 60.0, 1.0]])
        expected = (query[:, :2] - 100.0) * gains[query[:, 2].astype(int)][:, None]
        np.testing.assert_allclose(f(query), expected, atol=1e-6)

    def test_frame_transform_matches_manual_conversion(self, samples):
        xylambda_mm, disparity_mm = samples
        models = fit_spline_dispersion(xylambda_mm, disparity_mm)

        s = 0.25  # mm per pixel; pixel origin at the image corner
        t_frame = np.array([[s, 0.0, -10.0], [0.0, s, -5.0], [0.0, 0.0, 1.0]])
        xy_px = np.array([[100.0, 80.0], [260.0, 300.0], [0.0, 0.0]])
        lam = np.array([[500.0], [600.0], [450.0]])
        xy_mm = xy_px * s + np.array([-10.0, -5.0])

        d_px = make_dispersion_fun(models, t_frame)(np.hstack([xy_px, lam]))
        d_mm = make_dispersion_fun(models)(np.hstack([xy_mm, lam]))
        np.testing.assert_allclose(d_px, d_mm / s, rtol=1e-9, atol=1e-12)

    def test_channel_mode_requires_reference(self, samples):
        xylambda, disparity = samples
        with pytest.raises(ValueError):
            fit_spline_dispersion(xylambda, disparity, channel_mode=True)

    def test_channel_without_samples(self):
        xylambda = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        with pytest.raises(ValueError, match="channel 2"):
            fit_spline_dispersion(
                xylambda, np.zeros((3, 2)), channel_mode=True, reference_channel=1, n_channels=3
            )

    def test_shape_validation(self):
        with pytest.raises(ValueError):
            fit_spline_dispersion(np.zeros((5, 2)), np.zeros((5, 2)))
        with pytest.raises(ValueError):
            fit_spline_dispersion(np.zeros((5, 3)), np.zeros((4, 2)))


class TestPolynomialFit:
    def test_recovers_quadratic(self):
        rng = np.random.default_rng(3)
        xylambda = np.column_stack([
            rng.uniform(0.0, 100.0, 80),
            rng.uniform(0.0, 80.0, 80),
            rng.uniform(420.0, 680.0, 80),
        ])

        def truth(p):
            x, y, lam = p[:, 0], p[:, 1], p[:, 2] - 550.0
            dx = 0.5 + 0.01 * x - 0.002 * y + 1e-5 * x * y + 3e-3 * lam + 1e-6 * lam**2
            dy = -0.2 + 0.004 * y + 2e-5 * y**2 - 1e-5 * x * lam
            return np.column_stack([dx, dy])

        models = fit_polynomial_dispersion(xylambda, truth(xylambda), max_degree=2)
        assert models[0].type == "polynomial"
        assert models[0].powers.shape == (10, 3)

        query = np.array([[5.0, 75.0, 430.0], [95.0, 10.0, 670.0], [50.0, 40.0, 550.0]])
        np.testing.assert_allclose(make_dispersion_fun(models)(query), truth(query), atol=1e-7)

    def test_channel_mode(self):
        rng = np.random.default_rng(4)
        xy = rng.uniform(0.0, 50.0, size=(40, 2))
        xylambda = np.vstack([np.column_stack([xy, np.full(40, c)]) for c in (0, 1)])
        disparity = np.vstack([np.zeros((40, 2)), 0.02 * (xy - 25.0) + 0.1])

        models = fit_polynomial_dispersion(
            xylambda, disparity, max_degree=1, channel_mode=True, reference_channel=0
        )
        assert models[0].reference_channel is True
        d = make_dispersion_fun(models)(xylambda)
        np.testing.assert_allclose(d, disparity, atol=1e-9)

import numpy as np
import pytest
from matplotlib.figure import Figure

from chromacal.evaluation.rgb_evaluation import EvaluationOptions, evaluate_rgb


@pytest.fixture
def ref_rgb():
    return np.random.default_rng(0).uniform(0.2, 1.0, size=(32, 32, 3))


class TestEvaluateRGB:
    def test_identical_images(self, ref_rgb):
        e_rgb, figures = evaluate_rgb(ref_rgb, ref_rgb.copy())
        np.testing.assert_array_equal(e_rgb.mrae, np.zeros(3))
        np.testing.assert_array_equal(e_rgb.rmse, np.zeros(3))
        assert np.all(np.isinf(e_rgb.psnr))
        assert np.isinf(e_rgb.cpsnr)
        assert e_rgb.ssim.shape == (4,)
        np.testing.assert_allclose(e_rgb.ssim, np.ones(4))
        assert e_rgb.mi_within.shape == (3, 2)
        np.testing.assert_allclose(e_rgb.mi_within[:, 0], e_rgb.mi_within[:, 1])
        assert np.all(e_rgb.mi_between > 0)
        assert figures == {}

    def test_scaled_image(self, ref_rgb):
        img = 1.1 * ref_rgb
        e_rgb, _ = evaluate_rgb(img, ref_rgb)
        np.testing.assert_allclose(e_rgb.mrae, np.full(3, 0.1))

        peak = ref_rgb.max()
        expected_rmse = np.sqrt(np.mean((0.1 * ref_rgb) ** 2, axis=(0, 1)))
        np.testing.assert_allclose(e_rgb.rmse, expected_rmse)
        np.testing.assert_allclose(e_rgb.psnr, 10 * np.log10(peak**2 / expected_rmse**2))
        assert e_rgb.cpsnr == pytest.approx(10 * np.log10(peak**2 / np.mean(expected_rmse**2)))
        assert e_rgb.ssim[-1] == pytest.approx(e_rgb.ssim[:3].mean())

    def test_uint8_images(self):
        rng = np.random.default_rng(1)
        ref = rng.integers(10, 256, size=(24, 24, 3), dtype=np.uint8)
        img = np.clip(ref.astype(int) + rng.integers(-5, 6, ref.shape), 0, 255).astype(np.uint8)
        e_rgb, _ = evaluate_rgb(img, ref)
        assert np.all(np.isfinite(e_rgb.psnr))
        assert np.all(e_rgb.ssim < 1.0)
        assert np.all(e_rgb.mrae > 0)

    def test_error_maps(self, ref_rgb):
        _, figures = evaluate_rgb(1.05 * ref_rgb, ref_rgb, EvaluationOptions(error_map=True))
        assert len(figures["error_map"]) == 3
        assert all(isinstance(f, Figure) for f in figures["error_map"])

    def test_dtype_mismatch(self, ref_rgb):
        with pytest.raises(TypeError):
            evaluate_rgb(ref_rgb.astype(np.float32), ref_rgb)

    def test_shape_checks(self, ref_rgb):
        with pytest.raises(ValueError):
            evaluate_rgb(ref_rgb[:, :, 0], ref_rgb[:, :, 0])
        with pytest.raises(ValueError):
            evaluate_rgb(ref_rgb[:16], ref_rgb)

    def test_small_images(self):
        ref = np.random.default_rng(2).uniform(0.2, 1.0, size=(8, 8, 3))
        e_rgb, _ = evaluate_rgb(1.1 * ref, ref)
        np.testing.assert_allclose(e_rgb.mrae, np.full(3, 0.1))
        assert np.all(e_rgb.ssim < 1.0)

    def test_error_map_marks_zero_reference(self, ref_rgb):
        ref = ref_rgb.copy()
        ref[0, 0, :] = 0.0
        img = ref.copy()
        img[0, 0, 0] = 0.9
        _, figures = evaluate_rgb(img, ref, EvaluationOptions(error_map=True))
        red = figures["error_map"][0].axes[0].images[0].get_array()
        green = figures["error_map"][1].axes[0].images[0].get_array()
        assert red[0, 0] == 1.0
        assert green[0, 0] == 0.0

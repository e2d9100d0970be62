import numpy as np

from chromacal.dispersion.spline_kernel import spline_kernel_2d, spline_kernel_3d


def test_kernel_2d_values():
    r = np.array([0.0, 1.0, np.sqrt(np.e)])
    np.testing.assert_allclose(spline_kernel_2d(r), [0.0, 0.0, np.e])


def test_kernel_2d_keeps_shape_and_zero_distance():
    r = np.array([[0.0, 2.0], [0.5, 0.0]])
    g = spline_kernel_2d(r)
    assert g.shape == r.shape
    assert g[0, 0] == 0.0 and g[1, 1] == 0.0
    assert np.isclose(g[0, 1], 4.0 * np.log(4.0))
    assert g[1, 0] < 0  # r² log r² is negative for 0 < r < 1


def test_kernel_3d_is_negated_distance():
    np.testing.assert_array_equal(spline_kernel_3d(np.array([0.0, 2.0, 3.5])), [0.0, -2.0, -3.5])

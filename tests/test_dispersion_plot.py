import numpy as np

from chromacal.dispersion.dispersion_model import DispersionModelData, make_dispersion_fun
from chromacal.dispersion.dispersion_plot import dispersion_grid, plot_dispersion_field


def test_grid_covers_pixel_centres():
    grid = dispersion_grid((64, 128), 550.0, grid_step=32)
    assert grid.shape == (2 * 4, 3)
    np.testing.assert_array_equal(np.unique(grid[:, 0]), [16.0, 48.0, 80.0, 112.0])
    np.testing.assert_array_equal(np.unique(grid[:, 1]), [16.0, 48.0])
    assert np.all(grid[:, 2] == 550.0)


def test_plot_returns_figure():
    model = DispersionModelData(
        type="polynomial",
        t_points=np.eye(3),
        t_lambda=np.eye(2),
        t_disparity_inv=np.eye(3),
        powers=np.array([[0, 0, 0], [1, 0, 0]]),
        coeff_x=np.array([0.0, 0.01]),
        coeff_y=np.array([0.5, 0.0]),
    )
    fig = plot_dispersion_field(make_dispersion_fun(model), (48, 64), 600.0, grid_step=16, title="field")
    assert fig.axes[0].get_title() == "field"

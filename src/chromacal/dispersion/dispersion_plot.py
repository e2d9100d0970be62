"""
dispersion_plot.py — quick-look visualization of a dispersion model

Samples the model on a regular grid over the image and draws the disparity
vectors as a quiver plot. Useful for checking that a fitted model is smooth
and radially structured, as lateral chromatic aberration usually is.
"""

from __future__ import annotations
from typing import Callable, Tuple
import numpy as np
import matplotlib.pyplot as plt


def dispersion_grid(
    image_size: Tuple[int, int],
    lambda_value: float,
    grid_step: int = 32,
) -> np.ndarray:
    """
    (n, 3) query points (x, y, λ) on a regular grid of pixel centres.

    image_size is (height, width); x runs along columns, y along rows.
    """
    h, w = (int(v) for v in image_size)
    step = max(int(grid_step), 1)
    xs = np.arange(step / 2.0, w, step)
    ys = np.arange(step / 2.0, h, step)
    xx, yy = np.meshgrid(xs, ys, indexing="xy")
    return np.column_stack([xx.ravel(), yy.ravel(), np.full(xx.size, float(lambda_value))])


def plot_dispersion_field(
    dispersionfun: Callable[[np.ndarray], np.ndarray],
    image_size: Tuple[int, int],
    lambda_value: float,
    grid_step: int = 32,
    scale: float = 1.0,
    title: str | None = None,
):
    """
    Quiver plot of disparity vectors over the image plane.

    Parameters
    ----------
    dispersionfun : callable
        Output of make_dispersion_fun().
    image_size : (height, width)
        Image extent in the model's input frame (usually pixels).
    lambda_value : float
        Wavelength, or channel index in channel mode.
    grid_step : int
        Spacing of the sample grid.
    scale : float
        Multiplier on the drawn arrows (disparities are often sub-pixel).

    Returns
    -------
    fig : matplotlib Figure
    """
    xylambda = dispersion_grid(image_size, lambda_value, grid_step)
    disparity = dispersionfun(xylambda)
    magnitude = np.linalg.norm(disparity, axis=1)

    fig, ax = plt.subplots(figsize=(7, 6))
    q = ax.quiver(
        xylambda[:, 0], xylambda[:, 1],
        scale * disparity[:, 0], scale * disparity[:, 1],
        magnitude, angles="xy", scale_units="xy", scale=1.0, cmap="viridis",
    )
    fig.colorbar(q, ax=ax, label="Disparity magnitude")
    ax.set_xlim(0, image_size[1])
    ax.set_ylim(image_size[0], 0)  # image convention: y down
    ax.set_aspect("equal")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title(title or f"Dispersion field at λ = {lambda_value:g} (arrows ×{scale:g})")
    fig.tight_layout()
    return fig

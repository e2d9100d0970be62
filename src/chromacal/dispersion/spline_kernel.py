"""
spline_kernel.py — radial basis kernels for thin-plate splines

WHAT THIS MODULE PROVIDES
-------------------------
• spline_kernel_2d(r)  — 2-D thin-plate kernel  r² · log(r²)
• spline_kernel_3d(r)  — 3-D thin-plate kernel  -r

Both take an array of Euclidean distances (any shape) and return an array of
the same shape. They are evaluated on distances between normalized query
points and normalized training points (see dispersion_model.py).

REFERENCES (short list)
-----------------------
• Eberly, D. — Geometric Tools, "Thin Plate Splines" (IntpThinPlateSpline2/3).
  Boost Software License 1.0.
• Duchon, J. (1977). Splines minimizing rotation-invariant semi-norms in
  Sobolev spaces.
"""

from __future__ import annotations
import numpy as np


def spline_kernel_2d(r: np.ndarray) -> np.ndarray:
    """
    2-D thin-plate spline kernel.

    G(r) = r² · log(r²)   for r > 0
    G(0) = 0              (the continuous limit)

    Using log(r²) rather than log(r) only scales the kernel by 2, which the
    fitted basis coefficients absorb.
    """
    r = np.asarray(r, dtype=np.float64)
    y = np.zeros_like(r)
    positive = r > 0
    r2 = r[positive] ** 2
    y[positive] = r2 * np.log(r2)
    return y


def spline_kernel_3d(r: np.ndarray) -> np.ndarray:
    """3-D thin-plate spline kernel, G(r) = -r."""
    return -np.asarray(r, dtype=np.float64)

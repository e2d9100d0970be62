"""
dispersion_model.py — evaluate models of disparity in (x, y, λ)

WHAT THIS MODULE DOES
---------------------
A dispersion model maps an image position and a wavelength (or colour
channel) to a 2-D disparity vector: the offset of the image of a point at
that wavelength relative to its image at the reference wavelength/channel.

Each model is stored as a DispersionModelData record holding:
  • affine normalization of the spatial coordinates (t_points, 3×3, on
    homogeneous [x, y, 1]) and of the wavelength (t_lambda, 2×2, on [λ, 1]),
  • either thin-plate spline coefficients (affine part + radial basis weights
    on the normalized training points) or polynomial coefficients over
    monomials in normalized (x, y, λ),
  • the inverse normalization of the disparity vectors (t_disparity_inv,
    3×3 on homogeneous [dx, dy, 1]).

TWO MODES
---------
• Wavelength mode — the third input column is a wavelength. A single model
  covers all rows; spline models use the 3-D kernel over (x, y, λ).
• Channel mode — the third input column is a colour-channel index
  (0-based). There is one model per channel; rows are dispatched to the
  model of their channel and spline models use the 2-D kernel over (x, y).
  The reference channel has zero disparity by definition.

COORDINATE FRAMES
-----------------
An optional 3×3 affine `t_frame` lets callers query the model in a different
frame (e.g. pixels instead of millimetres from the optical centre). Points
are mapped by t_frame before normalization, and disparities are mapped back
by inv(t_frame) with its translation column removed: disparities are
vectors and must not be translated.

REFERENCES (short list)
-----------------------
• Eberly, D. — Geometric Tools, IntpThinPlateSpline2/3 (Boost license).
• Bookstein, F. L. (1989). Principal warps: thin-plate splines and the
  decomposition of deformations. IEEE TPAMI 11(6).

© 2025 Ali Pouya — chromacal
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Callable, List, Sequence
import numpy as np
from scipy.spatial.distance import cdist

from chromacal.dispersion.spline_kernel import spline_kernel_2d, spline_kernel_3d

MODEL_TYPES = ("spline", "polynomial")
N_SPATIAL_DIM = 2


# -----------------------------------------------------------------------------
# Model record
# -----------------------------------------------------------------------------
@dataclass
class DispersionModelData:
    """
    Parameters of one dispersion model (one channel, or all wavelengths).

    Shared
    ------
    type : "spline" | "polynomial"
    t_points : (3, 3) affine normalization of homogeneous [x, y, 1]
    t_disparity_inv : (3, 3) maps homogeneous normalized disparity to output
    t_lambda : (2, 2) affine normalization of homogeneous [λ, 1]
        (unused by channel-mode splines)

    Thin-plate spline
    -----------------
    coeff_affine : (k + 1, 2) constant term then one row per input dimension
    coeff_basis : (n_train, 2) radial basis weights
    xylambda_training : (n_train, k) normalized training points
        (k = 2 in channel mode, 3 in wavelength mode)

    Polynomial
    ----------
    powers : (n_powers, 3) exponents of (x, y, λ) per monomial
    coeff_x, coeff_y : (n_powers,) coefficients per disparity component

    Channel mode
    ------------
    reference_channel : True for the reference channel, False for the
        others, None when the model is in wavelength mode
    """
    type: str
    t_points: np.ndarray
    t_disparity_inv: np.ndarray
    t_lambda: np.ndarray | None = None

    # Thin-plate spline
    coeff_affine: np.ndarray | None = None
    coeff_basis: np.ndarray | None = None
    xylambda_training: np.ndarray | None = None

    # Polynomial
    powers: np.ndarray | None = None
    coeff_x: np.ndarray | None = None
    coeff_y: np.ndarray | None = None

    # Channel mode
    reference_channel: bool | None = None


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _homogeneous(values: np.ndarray) -> np.ndarray:
    """Append a column of ones."""
    return np.hstack([values, np.ones((values.shape[0], 1))])


def _is_channel_mode(models: Sequence[DispersionModelData]) -> bool:
    flags = [m.reference_channel is not None for m in models]
    if any(flags) and not all(flags):
        raise ValueError(
            "Either all dispersion models or none must define 'reference_channel'."
        )
    return all(flags)


def _normalize_xy(model: DispersionModelData, dataset: np.ndarray) -> np.ndarray:
    """Affine-normalized (x, y); the homogeneous coordinate stays 1."""
    xy = _homogeneous(dataset[:, :2]) @ model.t_points.T
    return xy[:, :N_SPATIAL_DIM]


def _normalize_xylambda(model: DispersionModelData, dataset: np.ndarray) -> np.ndarray:
    """Affine-normalized (x, y, λ)."""
    if model.t_lambda is None:
        raise ValueError("Model is missing the wavelength normalization 't_lambda'.")
    xy = _normalize_xy(model, dataset)
    lam = _homogeneous(dataset[:, 2:3]) @ model.t_lambda.T
    return np.hstack([xy, lam[:, :1]])


# -----------------------------------------------------------------------------
# Normalized-space evaluation
# -----------------------------------------------------------------------------
def _disparity_normalized_spline(
    model: DispersionModelData,
    dataset: np.ndarray,
    channel_mode: bool,
) -> np.ndarray:
    """
    Thin-plate spline in normalized space:

        d(p) = a_0 + Σ_j a_j p_j + Σ_i w_i G(||p - p_i||)
    """
    if channel_mode:
        points = _normalize_xy(model, dataset)
        kernel = spline_kernel_2d
    else:
        points = _normalize_xylambda(model, dataset)
        kernel = spline_kernel_3d

    coeff_affine = np.asarray(model.coeff_affine, dtype=np.float64)
    disparity = coeff_affine[0] + points @ coeff_affine[1:]

    training = np.asarray(model.xylambda_training, dtype=np.float64)
    if points.shape[0] > 0:
        G = kernel(cdist(points, training))
        disparity = disparity + G @ np.asarray(model.coeff_basis, dtype=np.float64)
    return disparity


def polynomial_terms(points: np.ndarray, powers: np.ndarray) -> np.ndarray:
    """
    Monomial ("Vandermonde") matrix: V[i, k] = Π_j points[i, j] ** powers[k, j].

    Returns an (n_points, n_powers) array.
    """
    powers = np.asarray(powers)
    return np.prod(points[:, None, :] ** powers[None, :, :], axis=2)


def _disparity_normalized_poly(model: DispersionModelData, dataset: np.ndarray) -> np.ndarray:
    """Trivariate polynomial in normalized (x, y, λ), one per disparity component."""
    points = _normalize_xylambda(model, dataset)
    V = polynomial_terms(points, model.powers)
    return np.column_stack([V @ np.ravel(model.coeff_x), V @ np.ravel(model.coeff_y)])


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------
def make_dispersion_fun(
    data: DispersionModelData | Sequence[DispersionModelData],
    t_frame: np.ndarray | None = None,
) -> Callable[[np.ndarray], np.ndarray]:
    """
    Create a function evaluating a dispersion model.

    Parameters
    ----------
    data : DispersionModelData or sequence of them
        Output of fit_spline_dispersion(), fit_polynomial_dispersion(), or
        utils.tables.load_dispersion_data(). In channel mode, entry `d`
        models colour channel `d`.
    t_frame : (3, 3) ndarray | None
        Affine transformation applied to homogeneous input points before the
        model's own normalization. Its inverse (without translation) is
        applied to the output disparities.

    Returns
    -------
    dispersionfun : callable
        dispersionfun(xylambda) with xylambda an (n, 3) array of
        (x, y, λ) or (x, y, channel index); returns an (n, 2) float array of
        (dx, dy) disparities.

    Notes
    -----
    • The models passed in are not modified.
    • An unrecognized model type raises ValueError when the function is called.
    """
    if isinstance(data, DispersionModelData):
        data = [data]
    models: List[DispersionModelData] = list(data)
    if not models:
        raise ValueError("At least one dispersion model is required.")
    channel_mode = _is_channel_mode(models)

    if t_frame is not None:
        t_frame = np.asarray(t_frame, dtype=np.float64)
        if t_frame.shape != (3, 3):
            raise ValueError(f"t_frame must be a 3x3 matrix, got shape {t_frame.shape}.")
        # Disparities are vectors: drop the translation of the inverse frame.
        t_frame_disparity = np.linalg.inv(t_frame)
        t_frame_disparity[:, -1] = 0.0
        # Both transforms are affine, so no homogeneous division in between.
        models = [
            replace(
                m,
                t_points=np.asarray(m.t_points, dtype=np.float64) @ t_frame,
                t_disparity_inv=t_frame_disparity @ np.asarray(m.t_disparity_inv, dtype=np.float64),
            )
            for m in models
        ]

    def dispersionfun(xylambda: np.ndarray) -> np.ndarray:
        xylambda = np.atleast_2d(np.asarray(xylambda, dtype=np.float64))
        if xylambda.ndim != 2 or xylambda.shape[1] != 3:
            raise ValueError(
                f"Expected an (n, 3) array of (x, y, lambda) rows, got shape {xylambda.shape}."
            )
        n_all = xylambda.shape[0]
        disparity = np.zeros((n_all, N_SPATIAL_DIM), dtype=np.float64)

        for d, model in enumerate(models):
            if channel_mode:
                if model.reference_channel:
                    continue
                rows = xylambda[:, 2] == d
            else:
                rows = np.ones(n_all, dtype=bool)
            dataset = xylambda[rows]

            if model.type == "polynomial":
                disparity_normalized = _disparity_normalized_poly(model, dataset)
            elif model.type == "spline":
                disparity_normalized = _disparity_normalized_spline(model, dataset, channel_mode)
            else:
                raise ValueError(f"Unrecognized dispersion model type: {model.type!r}")

            disparity_d = _homogeneous(disparity_normalized) @ np.asarray(model.t_disparity_inv).T
            disparity[rows] = disparity_d[:, :N_SPATIAL_DIM]

        return disparity

    return dispersionfun

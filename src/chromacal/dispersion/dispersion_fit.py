"""
dispersion_fit.py — fit thin-plate spline and polynomial dispersion models

WHAT THIS MODULE DOES
---------------------
Builds the DispersionModelData records evaluated by dispersion_model.py from
measured samples: rows of (x, y, λ or channel) and the disparity (dx, dy)
observed at each row.

  1) Normalize. Spatial coordinates are centred and scaled isotropically
     (Hartley-style, mean distance √2 from the centroid), wavelengths are
     standardized, and disparities are centred and scaled isotropically.
     Normalizing keeps the spline system well conditioned and the
     polynomial monomials of comparable magnitude.
  2) Fit in normalized space:
       • Thin-plate spline: solve the (n + k + 1)² system
             [ G + ρI   P ] [ w ]   [ d ]
             [ Pᵀ       0 ] [ a ] = [ 0 ]
         with G the kernel matrix, P = [1, p] the affine design, and ρ a
         smoothing weight (0 = exact interpolation).
       • Polynomial: linear least squares on all monomials of total degree
         ≤ max_degree in (x, y, λ).
  3) Store the inverse disparity normalization so that evaluation returns
     disparities in the caller's units.

In channel mode there is one model per channel, fitted on that channel's
rows only. The reference channel gets a placeholder model flagged
reference_channel=True and no coefficients.

REFERENCES (short list)
-----------------------
• Hartley, R. (1997). In defense of the eight-point algorithm. IEEE TPAMI.
  (isotropic point normalization)
• Wahba, G. (1990). Spline Models for Observational Data. SIAM.
  (smoothing thin-plate splines)
"""

from __future__ import annotations
from itertools import product
from typing import List, Tuple
import numpy as np
import scipy.linalg
from scipy.spatial.distance import cdist

from chromacal.dispersion.dispersion_model import (
    DispersionModelData,
    N_SPATIAL_DIM,
    polynomial_terms,
)
from chromacal.dispersion.spline_kernel import spline_kernel_2d, spline_kernel_3d


# -----------------------------------------------------------------------------
# Normalization transforms
# -----------------------------------------------------------------------------
def _isotropic_transform(points: np.ndarray, target_distance: float) -> np.ndarray:
    """
    Homogeneous (k+1)×(k+1) transform centring `points` and scaling them so
    that their mean distance from the centroid equals `target_distance`.
    """
    k = points.shape[1]
    centroid = points.mean(axis=0)
    mean_distance = float(np.mean(np.linalg.norm(points - centroid, axis=1)))
    scale = target_distance / mean_distance if mean_distance > 0 else 1.0

    T = np.eye(k + 1)
    T[:k, :k] *= scale
    T[:k, k] = -scale * centroid
    return T


def _standardizing_transform(values: np.ndarray) -> np.ndarray:
    """2×2 homogeneous transform mapping values to zero mean, unit std."""
    mean = float(np.mean(values))
    std = float(np.std(values))
    scale = 1.0 / std if std > 0 else 1.0
    return np.array([[scale, -scale * mean], [0.0, 1.0]])


def _apply(T: np.ndarray, values: np.ndarray) -> np.ndarray:
    h = np.hstack([values, np.ones((values.shape[0], 1))]) @ T.T
    return h[:, :-1]


def _normalizations(
    xylambda: np.ndarray,
    disparity: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    t_points = _isotropic_transform(xylambda[:, :2], np.sqrt(2.0))
    t_lambda = _standardizing_transform(xylambda[:, 2])
    t_disparity = _isotropic_transform(disparity, 1.0)

    xy_n = _apply(t_points, xylambda[:, :2])
    lambda_n = _apply(t_lambda, xylambda[:, 2:3])
    disparity_n = _apply(t_disparity, disparity)
    return t_points, t_lambda, np.linalg.inv(t_disparity), xy_n, lambda_n, disparity_n


def _validate_samples(xylambda: np.ndarray, disparity: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    xylambda = np.asarray(xylambda, dtype=np.float64)
    disparity = np.asarray(disparity, dtype=np.float64)
    if xylambda.ndim != 2 or xylambda.shape[1] != 3:
        raise ValueError(f"xylambda must be an (n, 3) array, got shape {xylambda.shape}.")
    if disparity.shape != (xylambda.shape[0], N_SPATIAL_DIM):
        raise ValueError(
            f"disparity must be an ({xylambda.shape[0]}, 2) array, got shape {disparity.shape}."
        )
    return xylambda, disparity


def _channel_subsets(
    xylambda: np.ndarray,
    reference_channel: int | None,
    n_channels: int | None,
) -> Tuple[int, int]:
    if reference_channel is None:
        raise ValueError("reference_channel is required in channel mode.")
    if n_channels is None:
        n_channels = int(np.max(xylambda[:, 2])) + 1
    if not 0 <= reference_channel < n_channels:
        raise ValueError(
            f"reference_channel {reference_channel} out of range for {n_channels} channels."
        )
    return int(reference_channel), int(n_channels)


def _reference_placeholder(model_type: str) -> DispersionModelData:
    return DispersionModelData(
        type=model_type,
        t_points=np.eye(3),
        t_disparity_inv=np.eye(3),
        t_lambda=np.eye(2),
        reference_channel=True,
    )


# -----------------------------------------------------------------------------
# Thin-plate spline
# -----------------------------------------------------------------------------
def _solve_spline(points: np.ndarray, values: np.ndarray, kernel, smoothing: float) -> Tuple[np.ndarray, np.ndarray]:
    """Solve the thin-plate system; returns (coeff_affine, coeff_basis)."""
    n, k = points.shape
    G = kernel(cdist(points, points))
    P = np.hstack([np.ones((n, 1)), points])

    A = np.zeros((n + k + 1, n + k + 1))
    A[:n, :n] = G + smoothing * np.eye(n)
    A[:n, n:] = P
    A[n:, :n] = P.T
    rhs = np.vstack([values, np.zeros((k + 1, values.shape[1]))])

    solution = scipy.linalg.solve(A, rhs)
    return solution[n:], solution[:n]


def _fit_spline_subset(
    xylambda: np.ndarray,
    disparity: np.ndarray,
    channel_mode: bool,
    smoothing: float,
) -> DispersionModelData:
    t_points, t_lambda, t_disparity_inv, xy_n, lambda_n, disparity_n = _normalizations(
        xylambda, disparity
    )
    if channel_mode:
        points, kernel = xy_n, spline_kernel_2d
    else:
        points, kernel = np.hstack([xy_n, lambda_n]), spline_kernel_3d

    coeff_affine, coeff_basis = _solve_spline(points, disparity_n, kernel, smoothing)
    return DispersionModelData(
        type="spline",
        t_points=t_points,
        t_disparity_inv=t_disparity_inv,
        t_lambda=t_lambda,
        coeff_affine=coeff_affine,
        coeff_basis=coeff_basis,
        xylambda_training=points,
        reference_channel=False if channel_mode else None,
    )


def fit_spline_dispersion(
    xylambda: np.ndarray,
    disparity: np.ndarray,
    *,
    channel_mode: bool = False,
    reference_channel: int | None = None,
    n_channels: int | None = None,
    smoothing: float = 0.0,
) -> List[DispersionModelData]:
    """
    Fit thin-plate spline dispersion model(s).

    Parameters
    ----------
    xylambda : (n, 3) ndarray
        Sample positions (x, y) and wavelength, or 0-based channel index in
        channel mode.
    disparity : (n, 2) ndarray
        Observed disparity vectors at the samples.
    channel_mode : bool
        Fit one 2-D spline per colour channel instead of a single 3-D spline.
    reference_channel : int | None
        Channel mode only: index of the channel disparities are relative to.
    n_channels : int | None
        Channel mode only: defaults to max channel index + 1.
    smoothing : float
        Regularization weight ρ added to the kernel diagonal (0 interpolates).

    Returns
    -------
    models : list of DispersionModelData
        One entry (wavelength mode) or one per channel (channel mode).
    """
    xylambda, disparity = _validate_samples(xylambda, disparity)
    if not channel_mode:
        return [_fit_spline_subset(xylambda, disparity, False, smoothing)]

    reference_channel, n_channels = _channel_subsets(xylambda, reference_channel, n_channels)
    models: List[DispersionModelData] = []
    for c in range(n_channels):
        if c == reference_channel:
            models.append(_reference_placeholder("spline"))
            continue
        rows = xylambda[:, 2] == c
        if not rows.any():
            raise ValueError(f"No samples for channel {c}.")
        models.append(_fit_spline_subset(xylambda[rows], disparity[rows], True, smoothing))
    return models


# -----------------------------------------------------------------------------
# Polynomial
# -----------------------------------------------------------------------------
def polynomial_powers(max_degree: int, n_vars: int = 3) -> np.ndarray:
    """
    Exponents of all monomials in `n_vars` variables of total degree
    ≤ max_degree, ordered by degree. Returns an (n_powers, n_vars) int array.
    """
    if max_degree < 0:
        raise ValueError("max_degree must be non-negative.")
    powers = [p for p in product(range(max_degree + 1), repeat=n_vars) if sum(p) <= max_degree]
    powers.sort(key=lambda p: (sum(p), tuple(-e for e in p)))
    return np.array(powers, dtype=np.int64)


def _fit_polynomial_subset(
    xylambda: np.ndarray,
    disparity: np.ndarray,
    powers: np.ndarray,
    channel_mode: bool,
) -> DispersionModelData:
    t_points, t_lambda, t_disparity_inv, xy_n, lambda_n, disparity_n = _normalizations(
        xylambda, disparity
    )
    V = polynomial_terms(np.hstack([xy_n, lambda_n]), powers)
    coeff, *_ = scipy.linalg.lstsq(V, disparity_n)
    return DispersionModelData(
        type="polynomial",
        t_points=t_points,
        t_disparity_inv=t_disparity_inv,
        t_lambda=t_lambda,
        powers=powers,
        coeff_x=coeff[:, 0],
        coeff_y=coeff[:, 1],
        reference_channel=False if channel_mode else None,
    )


def fit_polynomial_dispersion(
    xylambda: np.ndarray,
    disparity: np.ndarray,
    max_degree: int,
    *,
    channel_mode: bool = False,
    reference_channel: int | None = None,
    n_channels: int | None = None,
) -> List[DispersionModelData]:
    """
    Fit polynomial dispersion model(s) in (x, y, λ).

    Same sample conventions as fit_spline_dispersion(). In channel mode the
    normalized λ of each channel subset is constant, so monomials involving λ
    are degenerate; the least-squares solve returns the minimum-norm
    coefficients for them.
    """
    xylambda, disparity = _validate_samples(xylambda, disparity)
    powers = polynomial_powers(max_degree)
    if not channel_mode:
        return [_fit_polynomial_subset(xylambda, disparity, powers, False)]

    reference_channel, n_channels = _channel_subsets(xylambda, reference_channel, n_channels)
    models: List[DispersionModelData] = []
    for c in range(n_channels):
        if c == reference_channel:
            models.append(_reference_placeholder("polynomial"))
            continue
        rows = xylambda[:, 2] == c
        if not rows.any():
            raise ValueError(f"No samples for channel {c}.")
        models.append(_fit_polynomial_subset(xylambda[rows], disparity[rows], powers, True))
    return models

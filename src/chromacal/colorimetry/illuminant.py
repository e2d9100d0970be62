"""
illuminant.py — CIE D-series (daylight) illuminants from a colour temperature

WHAT THIS MODULE DOES
---------------------
Reconstructs the relative spectral power distribution of a CIE daylight
illuminant for a given correlated colour temperature (CCT):

  1) CCT → chromaticity (x_D, y_D) on the CIE daylight locus
  2) (x_D, y_D) → weights M1, M2 of the daylight basis functions
  3) S(λ) = S0(λ) + M1·S1(λ) + M2·S2(λ), resampled onto the requested
     wavelengths

The basis functions S0, S1, S2 are tabulated data (CIE 15:2004, Table T.2)
and are supplied by the caller, e.g. via utils.tables.load_illuminant_basis().

LEARNING NOTES
--------------
• D50 ≈ 5003 K and D65 ≈ 6504 K: the nominal 5000/6500 K were redefined after
  the revision of the second radiation constant (c2 = 1.4388e-2 m·K).
• For D65, M1 ≈ -0.296 and M2 ≈ -0.688.

REFERENCES (short list)
-----------------------
• CIE 15:2004 — Colorimetry, 3rd ed. (daylight locus, basis functions)
• Lindbloom, B. J. — "Spectral Power Distribution of a CIE D-Illuminant",
  brucelindbloom.com
• Wyszecki, G., & Stiles, W. S. (1982). Color Science (2e). Wiley.

© 2025 Ali Pouya — chromacal
"""

from __future__ import annotations
from typing import Tuple
import numpy as np
import colour

CCT_MIN = 4000.0
CCT_MAX = 25000.0


def daylight_chromaticity(cct: float) -> Tuple[float, float]:
    """
    Chromaticity (x_D, y_D) of the CIE daylight locus at `cct` Kelvin.

    Valid for 4000 K ≤ cct ≤ 25000 K; raises ValueError otherwise.
    """
    t = float(cct)
    if not CCT_MIN <= t <= CCT_MAX:
        raise ValueError(
            f"CIE D-illuminants are defined for {CCT_MIN:g} K <= CCT <= {CCT_MAX:g} K, got {t:g} K."
        )
    x_d, y_d = colour.temperature.CCT_to_xy_CIE_D(t)
    return float(x_d), float(y_d)


def daylight_coefficients(x_d: float, y_d: float) -> Tuple[float, float]:
    """Weights (M1, M2) of the S1 and S2 basis functions."""
    m = 0.0241 + 0.2562 * x_d - 0.7341 * y_d
    m1 = (-1.3515 - 1.7703 * x_d + 5.9114 * y_d) / m
    m2 = (0.0300 - 31.4424 * x_d + 30.0717 * y_d) / m
    return float(m1), float(m2)


def cie_d_illuminant(
    cct: float,
    wavelengths_s: np.ndarray,
    s_basis: np.ndarray,
    wavelengths: np.ndarray,
) -> np.ndarray:
    """
    Relative spectral power distribution of a CIE D-illuminant.

    Parameters
    ----------
    cct : float
        Correlated colour temperature in Kelvin.
    wavelengths_s : (n,) ndarray
        Wavelengths (nm, increasing) at which the basis functions are tabulated.
    s_basis : (n, 3) ndarray
        Columns S0, S1, S2.
    wavelengths : (m,) ndarray
        Output wavelengths (nm).

    Returns
    -------
    spd : (m,) float64 ndarray
        Linearly interpolated SPD; zero outside the tabulated range.
    """
    wavelengths_s = np.asarray(wavelengths_s, dtype=np.float64).ravel()
    s_basis = np.asarray(s_basis, dtype=np.float64)
    if s_basis.ndim != 2 or s_basis.shape != (wavelengths_s.size, 3):
        raise ValueError(
            f"Expected S0, S1, S2 as a ({wavelengths_s.size}, 3) array, got shape {s_basis.shape}."
        )

    m1, m2 = daylight_coefficients(*daylight_chromaticity(cct))
    spd = s_basis @ np.array([1.0, m1, m2])

    return np.interp(np.asarray(wavelengths, dtype=np.float64), wavelengths_s, spd, left=0.0, right=0.0)

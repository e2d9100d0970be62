"""
spectral_color.py — spectral reflectances → CIE XYZ → sRGB

WHAT THIS MODULE DOES
---------------------
  1) Resample illuminant, reflectances, and colour-matching functions (CMFs)
     onto the CMF wavelengths inside the range all three cover.
  2) Integrate radiance (reflectance × illuminant) against x̄, ȳ, z̄ with the
     trapezoidal rule, normalized so a perfect white reflector has Y = 1.
  3) Adapt from the illuminant white to D65 (Bradford), since sRGB is
     defined for a D65 white.
  4) Linear sRGB from colour-science's sRGB colourspace, clip to [0, 1],
     then apply the sRGB transfer function (colour.cctf_encoding).

LEARNING NOTES
--------------
• Without adaptation, a neutral patch under D50 renders yellowish in sRGB;
  with it, the illuminant white maps exactly to RGB (1, 1, 1).
• Clipping happens in linear light so that out-of-gamut colours saturate
  per channel rather than bending the tone curve.

REFERENCES (short list)
-----------------------
• Foster, D. H. (2018). Tutorial on Transforming Hyperspectral Images to RGB
  Colour Images.
• Lindbloom, B. J. — "Computing XYZ From Spectral Data", "Chromatic
  Adaptation", brucelindbloom.com
• IEC 61966-2-1:1999 — Default RGB colour space, sRGB.
"""

from __future__ import annotations
from typing import Tuple
import numpy as np
from scipy.integrate import trapezoid
import colour

SRGB = colour.RGB_COLOURSPACES["sRGB"]

# XYZ (Y = 1) of the sRGB (D65) white point
WHITE_D65 = colour.xy_to_XYZ(SRGB.whitepoint)


# -----------------------------------------------------------------------------
# Spectral sampling & integration
# -----------------------------------------------------------------------------
def resample_spectra(
    wavelengths_src: np.ndarray,
    values: np.ndarray,
    wavelengths_dst: np.ndarray,
) -> np.ndarray:
    """
    Linearly resample spectra column-wise; zero outside the source range.

    `values` may be (n,) or (n, k); the output is (m,) or (m, k).
    """
    wavelengths_src = np.asarray(wavelengths_src, dtype=np.float64).ravel()
    wavelengths_dst = np.asarray(wavelengths_dst, dtype=np.float64).ravel()
    values = np.asarray(values, dtype=np.float64)
    if values.shape[0] != wavelengths_src.size:
        raise ValueError(
            f"{values.shape[0]} spectral samples do not match {wavelengths_src.size} wavelengths."
        )
    if values.ndim == 1:
        return np.interp(wavelengths_dst, wavelengths_src, values, left=0.0, right=0.0)
    return np.column_stack([
        np.interp(wavelengths_dst, wavelengths_src, values[:, j], left=0.0, right=0.0)
        for j in range(values.shape[1])
    ])


def _common_wavelengths(wl_cmf: np.ndarray, *ranges: np.ndarray) -> np.ndarray:
    """Mask of the CMF wavelengths covered by every range."""
    lo = max(float(np.min(r)) for r in ranges)
    hi = min(float(np.max(r)) for r in ranges)
    mask = (wl_cmf >= lo) & (wl_cmf <= hi)
    if np.count_nonzero(mask) < 2:
        raise ValueError("Illuminant, reflectance, and CMF wavelength ranges do not overlap.")
    return mask


def reflectance_to_xyz(
    wl_illuminant: np.ndarray,
    spd: np.ndarray,
    wl_reflectance: np.ndarray,
    reflectances: np.ndarray,
    wl_cmf: np.ndarray,
    cmf: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Tristimulus values of reflectances under an illuminant.

    Parameters
    ----------
    wl_illuminant, spd : (n_i,) ndarrays
        Illuminant wavelengths (nm) and relative spectral power.
    wl_reflectance : (n_r,) ndarray
    reflectances : (n_r, n_patches) ndarray
        One column per surface.
    wl_cmf : (n_c,) ndarray
    cmf : (n_c, 3) ndarray
        x̄, ȳ, z̄ colour-matching functions.

    Returns
    -------
    xyz : (n_patches, 3) ndarray
        Normalized so that a perfect reflector has Y = 1.
    white : (3,) ndarray
        XYZ of the illuminant itself (the white point), same normalization.
    """
    wl_cmf = np.asarray(wl_cmf, dtype=np.float64).ravel()
    cmf = np.asarray(cmf, dtype=np.float64)
    if cmf.ndim != 2 or cmf.shape != (wl_cmf.size, 3):
        raise ValueError(f"Expected colour-matching functions of shape ({wl_cmf.size}, 3), got {cmf.shape}.")
    reflectances = np.asarray(reflectances, dtype=np.float64)
    if reflectances.ndim == 1:
        reflectances = reflectances[:, None]

    mask = _common_wavelengths(
        wl_cmf, np.asarray(wl_illuminant, dtype=np.float64), np.asarray(wl_reflectance, dtype=np.float64)
    )
    grid = wl_cmf[mask]
    e = resample_spectra(wl_illuminant, spd, grid)
    r = resample_spectra(wl_reflectance, reflectances, grid)
    c = cmf[mask]

    k = trapezoid(e * c[:, 1], grid)
    if k <= 0:
        raise ValueError("The illuminant has no luminance over the common wavelength range.")

    radiance = r * e[:, None]                                    # (n, n_patches)
    xyz = trapezoid(radiance[:, :, None] * c[:, None, :], grid, axis=0) / k
    white = trapezoid(e[:, None] * c, grid, axis=0) / k
    return xyz, white


# -----------------------------------------------------------------------------
# XYZ → sRGB
# -----------------------------------------------------------------------------
def chromatic_adaptation(xyz: np.ndarray, white_src: np.ndarray, white_dst: np.ndarray) -> np.ndarray:
    """
    Bradford von Kries adaptation of XYZ rows from white_src to white_dst.
    """
    return colour.adaptation.chromatic_adaptation_VonKries(
        np.asarray(xyz, dtype=np.float64),
        np.asarray(white_src, dtype=np.float64),
        np.asarray(white_dst, dtype=np.float64),
        transform="Bradford",
    )


def srgb_encode(linear: np.ndarray) -> np.ndarray:
    """sRGB transfer function (IEC 61966-2-1) on linear values in [0, 1]."""
    return colour.cctf_encoding(np.asarray(linear, dtype=np.float64), function="sRGB")


def xyz_to_srgb(xyz: np.ndarray, white: np.ndarray | None = None) -> np.ndarray:
    """
    Convert XYZ rows (Y = 1 for white) to gamma-encoded sRGB in [0, 1].

    If `white` is given, colours are first adapted from that white point to
    D65 with the Bradford transform.
    """
    xyz = np.asarray(xyz, dtype=np.float64)
    if white is None:
        illuminant, transform = SRGB.whitepoint, None
    else:
        illuminant, transform = colour.XYZ_to_xy(np.asarray(white, dtype=np.float64)), "Bradford"
    linear = colour.XYZ_to_sRGB(
        xyz,
        illuminant=illuminant,
        chromatic_adaptation_transform=transform,
        apply_cctf_encoding=False,
    )
    return srgb_encode(np.clip(linear, 0.0, 1.0))


def reflectance_to_color(
    wl_illuminant: np.ndarray,
    spd: np.ndarray,
    wl_reflectance: np.ndarray,
    reflectances: np.ndarray,
    wl_cmf: np.ndarray,
    cmf: np.ndarray,
    adapt: bool = True,
) -> np.ndarray:
    """
    sRGB colours of surfaces with the given reflectances under an illuminant.

    Returns an (n_patches, 3) float array in [0, 1]. With adapt=True the
    illuminant white is mapped to the sRGB (D65) white.
    """
    xyz, white = reflectance_to_xyz(wl_illuminant, spd, wl_reflectance, reflectances, wl_cmf, cmf)
    return xyz_to_srgb(xyz, white if adapt else None)


def srgb_to_integer(rgb: np.ndarray) -> np.ndarray:
    """8-bit sRGB codes: floor(256 · rgb), clamped to [0, 255]."""
    return np.clip(np.floor(256.0 * np.asarray(rgb, dtype=np.float64)), 0, 255).astype(np.int64)

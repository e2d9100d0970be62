"""
metrics_module.py — image-quality metrics for comparing an estimate to a reference

WHAT THIS MODULE PROVIDES
-------------------------
• relative_absolute_error(img, ref) / mrae(img, ref)
    Per-pixel |I - R| / R and its mean (pixels with R = 0 are ignored).

• rmse(img, ref), psnr(img, ref, peak), cpsnr(rmse_per_channel, peak)
    Root mean square error and peak signal-to-noise ratio in dB. CPSNR pools
    the mean square error over all colour channels before taking the ratio.

• ssim(img, ref)
    Structural Similarity Index (Wang et al. 2004) via scikit-image, with the
    reference parameterization: 11×11 Gaussian window, σ = 1.5, K1 = 0.01,
    K2 = 0.03, population covariances.

• clip_and_remap(img, quantiles) / mutual_information(a, b)
    Mutual information between two 8-bit images from their joint histogram;
    non-8-bit images are first clipped to robust quantiles and remapped.

• error_map(img, ref) / plot_error_map(err_map, title)
    Relative error clipped to [0, 1] (1 where ref = 0 but img ≠ 0), and its plot.

LEARNING NOTES
--------------
• PSNR needs a "peak" value. For images with arbitrary float ranges we use
  the reference's maximum rather than a nominal white level.
• Mutual information between channels of one image measures how
  redundant the channels are; between the same channel of two images it
  measures alignment (used in multispectral registration).
• Demosaicking papers often crop image borders before measuring; we do not.

REFERENCES (short list)
-----------------------
• Wang, Z., Bovik, A. C., Sheikh, H. R., & Simoncelli, E. P. (2004). Image
  quality assessment: from error visibility to structural similarity. IEEE TIP.
• Monno, Y., Kiku, D., Tanaka, M., & Okutomi, M. (2017). Adaptive residual
  interpolation for color and multispectral image demosaicking. Sensors 17(12).
• Ceccarelli, M., et al. (2008). Image registration using non-linear
  diffusion. IGARSS 2008. (fast joint-histogram mutual information)
• Brauers, J., Schulte, B., & Aach, T. (2008). Multispectral filter-wheel
  cameras: geometric distortion model and compensation algorithms. IEEE TIP.
"""

from __future__ import annotations
from typing import Tuple
import numpy as np
import matplotlib.pyplot as plt
from skimage.metrics import structural_similarity


# -----------------------------------------------------------------------------
# Error statistics
# -----------------------------------------------------------------------------
def relative_absolute_error(img: np.ndarray, ref: np.ndarray) -> np.ndarray:
    """
    Per-pixel relative absolute error |img - ref| / ref as float64.

    Pixels where ref == 0 have no defined relative error and are NaN.
    """
    y = np.asarray(img, dtype=np.float64)
    r = np.asarray(ref, dtype=np.float64)
    out = np.full(np.broadcast_shapes(y.shape, r.shape), np.nan)
    np.divide(np.abs(y - r), r, out=out, where=(r != 0))
    return out


def mrae(img: np.ndarray, ref: np.ndarray) -> float:
    """Mean relative absolute error over pixels with a nonzero reference."""
    err = relative_absolute_error(img, ref)
    if np.all(np.isnan(err)):
        return float("nan")
    return float(np.nanmean(err))


def rmse(img: np.ndarray, ref: np.ndarray) -> float:
    """Root mean square error."""
    d = np.asarray(img, dtype=np.float64) - np.asarray(ref, dtype=np.float64)
    return float(np.sqrt(np.mean(d**2)))


def psnr(img: np.ndarray, ref: np.ndarray, peak: float) -> float:
    """
    Peak signal-to-noise ratio in dB:  PSNR = 10 · log10(peak² / MSE).

    Identical images give +inf.
    """
    mse = rmse(img, ref) ** 2
    if mse == 0:
        return float("inf")
    return float(10.0 * np.log10(float(peak) ** 2 / mse))


def cpsnr(rmse_per_channel: np.ndarray, peak: float) -> float:
    """
    Colour PSNR: the MSE is averaged over channels before the log.

        CPSNR = 10 · log10(peak² / mean_c(RMSE_c²))
    """
    mse = float(np.mean(np.asarray(rmse_per_channel, dtype=np.float64) ** 2))
    if mse == 0:
        return float("inf")
    return float(10.0 * np.log10(float(peak) ** 2 / mse))


# -----------------------------------------------------------------------------
# Structural similarity
# -----------------------------------------------------------------------------
def _data_range(img: np.ndarray) -> float:
    """Dynamic range of the dtype: full integer range, or 1.0 for floats."""
    if np.issubdtype(img.dtype, np.integer):
        info = np.iinfo(img.dtype)
        return float(info.max) - float(info.min)
    return 1.0


def _window_size(shape: Tuple[int, ...], max_size: int = 11) -> int:
    """Largest odd window ≤ max_size that fits inside the image."""
    side = min(int(min(shape)), max_size)
    return side if side % 2 == 1 else side - 1


def ssim(img: np.ndarray, ref: np.ndarray) -> float:
    """
    SSIM between two single-channel images of the same dtype.

    The Gaussian window is 11×11; images smaller than that are averaged
    over the largest odd window that fits.
    """
    ref = np.asarray(ref)
    return float(structural_similarity(
        np.asarray(img, dtype=np.float64),
        ref.astype(np.float64),
        win_size=_window_size(ref.shape),
        data_range=_data_range(ref),
        gaussian_weights=True,
        sigma=1.5,
        use_sample_covariance=False,
    ))


# -----------------------------------------------------------------------------
# Mutual information
# -----------------------------------------------------------------------------
def clip_and_remap(img: np.ndarray, quantiles: Tuple[float, float] = (0.01, 0.99)) -> np.ndarray:
    """
    Clip an image to its [q_low, q_high] quantiles and remap linearly to uint8.

    The quantiles are computed over all pixels and channels. A constant image
    maps to zeros.
    """
    x = np.asarray(img, dtype=np.float64)
    lo, hi = np.quantile(x, quantiles)
    if hi <= lo:
        return np.zeros(x.shape, dtype=np.uint8)
    scaled = (np.clip(x, lo, hi) - lo) / (hi - lo)
    return np.round(scaled * 255.0).astype(np.uint8)


def mutual_information(a: np.ndarray, b: np.ndarray, bins: int = 256) -> float:
    """
    Mutual information (bits) between two 8-bit images of the same shape.

        MI = Σ p(a, b) · log2( p(a, b) / (p(a) p(b)) )
    """
    a = np.asarray(a)
    b = np.asarray(b)
    if a.shape != b.shape:
        raise ValueError(f"Images must have the same shape, got {a.shape} and {b.shape}.")

    joint, _, _ = np.histogram2d(
        a.ravel(), b.ravel(), bins=int(bins), range=[[0, 256], [0, 256]]
    )
    p_ab = joint / joint.sum()
    p_a = p_ab.sum(axis=1, keepdims=True)
    p_b = p_ab.sum(axis=0, keepdims=True)

    nz = p_ab > 0
    return float(np.sum(p_ab[nz] * np.log2(p_ab[nz] / (p_a @ p_b)[nz])))


# -----------------------------------------------------------------------------
# Error map helpers
# -----------------------------------------------------------------------------
def error_map(img: np.ndarray, ref: np.ndarray) -> np.ndarray:
    """
    Relative absolute error clipped to [0, 1] for display.

    Where ref == 0 the ratio is unbounded: such pixels are 1 (maximum error)
    unless img is 0 there too, in which case they are 0.
    """
    rel = relative_absolute_error(img, ref)
    undefined = np.isnan(rel)
    differs = np.asarray(img, dtype=np.float64) != np.asarray(ref, dtype=np.float64)
    rel[undefined] = np.where(differs[undefined], 1.0, 0.0)
    return np.clip(rel, 0.0, 1.0)


def plot_error_map(err_map: np.ndarray, title: str = "Relative difference image"):
    """
    Show an error map (see error_map()) on a fixed [0, 1] scale with a colorbar.

    Returns the matplotlib Figure.
    """
    fig, ax = plt.subplots()
    im = ax.imshow(np.clip(err_map, 0.0, 1.0), vmin=0.0, vmax=1.0)
    fig.colorbar(im, ax=ax)
    ax.set_title(title)
    fig.tight_layout()
    return fig

"""
rgb_evaluation.py — compare an estimated colour image with a reference

Computes per-channel MRAE, RMSE, PSNR and SSIM, the pooled CPSNR, and
mutual-information statistics within and between the two images, and
optionally draws per-channel relative error maps.

Images may be integer or floating point, but both must share a dtype. The
PSNR peak is the maximum of the reference image in either case.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Tuple
import numpy as np

from chromacal.evaluation.metrics_module import (
    clip_and_remap,
    cpsnr,
    error_map,
    mrae,
    mutual_information,
    plot_error_map,
    psnr,
    rmse,
    ssim,
)

N_CHANNELS = 3
CHANNEL_NAMES = ("red", "green", "blue")
MI_QUANTILES = (0.01, 0.99)


@dataclass
class EvaluationOptions:
    """
    Graphical output switches.

    error_map : one figure per channel showing |I - R| / R clipped to [0, 1]
        (pixels with R = 0 show 1 unless I = 0 as well)
    """
    error_map: bool = False


@dataclass
class RGBEvaluation:
    """
    Colour error statistics.

    mrae, rmse, psnr : (3,) one value per channel
    cpsnr : PSNR with the MSE pooled over channels
    ssim : (4,) three channels, then their mean
    mi_within : (3, 2) mutual information between channel pairs
        (R-G, G-B, B-R); column 0 = reference image, column 1 = test image
    mi_between : (3,) mutual information between test and reference, per channel
    """
    mrae: np.ndarray
    rmse: np.ndarray
    psnr: np.ndarray
    cpsnr: float
    ssim: np.ndarray
    mi_within: np.ndarray
    mi_between: np.ndarray


def _check_images(img_rgb: np.ndarray, ref_rgb: np.ndarray) -> None:
    if img_rgb.dtype != ref_rgb.dtype:
        raise TypeError(
            f"The two colour images do not have the same datatype ({img_rgb.dtype} vs {ref_rgb.dtype})."
        )
    if img_rgb.ndim != 3 or img_rgb.shape[2] != N_CHANNELS:
        raise ValueError(f"Expected an h x w x 3 colour image, got shape {img_rgb.shape}.")
    if img_rgb.shape != ref_rgb.shape:
        raise ValueError(f"Image shapes differ: {img_rgb.shape} vs {ref_rgb.shape}.")


def evaluate_rgb(
    img_rgb: np.ndarray,
    ref_rgb: np.ndarray,
    options: EvaluationOptions | None = None,
) -> Tuple[RGBEvaluation, Dict[str, List]]:
    """
    Compare a test colour image with a reference colour image.

    Parameters
    ----------
    img_rgb : (h, w, 3) ndarray
        Estimated colour image.
    ref_rgb : (h, w, 3) ndarray
        Ideal/true colour image, same dtype and shape.
    options : EvaluationOptions | None
        Graphical output switches; None disables all figures.

    Returns
    -------
    e_rgb : RGBEvaluation
    figures : dict
        'error_map' → list of three figures, when requested.
    """
    img_rgb = np.asarray(img_rgb)
    ref_rgb = np.asarray(ref_rgb)
    _check_images(img_rgb, ref_rgb)
    options = options or EvaluationOptions()

    peak = float(np.max(ref_rgb))

    mrae_c = np.zeros(N_CHANNELS)
    rmse_c = np.zeros(N_CHANNELS)
    psnr_c = np.zeros(N_CHANNELS)
    ssim_c = np.zeros(N_CHANNELS + 1)
    for c in range(N_CHANNELS):
        mrae_c[c] = mrae(img_rgb[:, :, c], ref_rgb[:, :, c])
        rmse_c[c] = rmse(img_rgb[:, :, c], ref_rgb[:, :, c])
        psnr_c[c] = psnr(img_rgb[:, :, c], ref_rgb[:, :, c], peak)
        ssim_c[c] = ssim(img_rgb[:, :, c], ref_rgb[:, :, c])
    ssim_c[-1] = ssim_c[:-1].mean()

    # Mutual information on 8-bit versions of the images
    if img_rgb.dtype == np.uint8:
        img_int, ref_int = img_rgb, ref_rgb
    else:
        img_int = clip_and_remap(img_rgb, MI_QUANTILES)
        ref_int = clip_and_remap(ref_rgb, MI_QUANTILES)

    mi_within = np.zeros((N_CHANNELS, 2))
    mi_between = np.zeros(N_CHANNELS)
    for c in range(N_CHANNELS):
        c_next = (c + 1) % N_CHANNELS
        mi_within[c, 0] = mutual_information(ref_int[:, :, c], ref_int[:, :, c_next])
        mi_within[c, 1] = mutual_information(img_int[:, :, c], img_int[:, :, c_next])
        mi_between[c] = mutual_information(img_int[:, :, c], ref_int[:, :, c])

    figures: Dict[str, List] = {}
    if options.error_map:
        err = error_map(img_rgb, ref_rgb)
        figures["error_map"] = [
            plot_error_map(err[:, :, c], f"Relative difference image for the {CHANNEL_NAMES[c]} channel")
            for c in range(N_CHANNELS)
        ]

    e_rgb = RGBEvaluation(
        mrae=mrae_c,
        rmse=rmse_c,
        psnr=psnr_c,
        cpsnr=cpsnr(rmse_c, peak),
        ssim=ssim_c,
        mi_within=mi_within,
        mi_between=mi_between,
    )
    return e_rgb, figures

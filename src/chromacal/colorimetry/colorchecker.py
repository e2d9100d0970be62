"""
colorchecker.py — spectral reflectances and sRGB colours of a ColorChecker chart

WHAT THIS FILE DOES
-------------------
1) Loads the CIE daylight basis functions and builds the D-illuminant for a
   chosen CCT; plots its spectral power distribution
2) Loads ColorChecker patch reflectances (one CSV column per patch) and the
   CIE colour-matching functions
3) Computes each patch's sRGB colour under the illuminant
4) Plots every reflectance curve in its own sRGB colour, with a legend
5) Prints the 8-bit sRGB triplet of every patch

INPUT FILES
-----------
• Illuminant CSV (no header): wavelength [nm], S0, S1, S2
• CMF table: wavelength [nm], x̄, ȳ, z̄ (header row optional)
• Reflectance CSV: header row; wavelength column, then one column per patch

REFERENCES (short list)
-----------------------
• Pascale, D. (2016). The ColorChecker Pages. babelcolor.com
  (pre-November 2014 ColorChecker Classic spectral data)
• Lindbloom, B. J. — "Spectral Power Distribution of a CIE D-Illuminant"
• Foster, D. H. (2018). Tutorial on Transforming Hyperspectral Images to RGB
  Colour Images.

© 2025 Ali Pouya — chromacal
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List
import numpy as np
import matplotlib.pyplot as plt

from chromacal.colorimetry.illuminant import cie_d_illuminant
from chromacal.colorimetry.spectral_color import reflectance_to_color, srgb_to_integer
from chromacal.utils.tables import (
    load_color_matching_functions,
    load_illuminant_basis,
    load_reflectances,
)


# -----------------------------------------------------------------------------
# Parameters & results
# -----------------------------------------------------------------------------
@dataclass
class ColorCheckerParams:
    """
    Inputs of the ColorChecker workflow.

    illuminant_path : CSV of the CIE daylight basis (wavelength, S0, S1, S2)
    xyzbar_path : CSV of the CIE colour-matching functions
    reflectances_path : CSV of patch reflectances
    illuminant_temperature : CCT in Kelvin (5003 K = D50)
    """
    illuminant_path: Path
    xyzbar_path: Path
    reflectances_path: Path
    illuminant_temperature: float = 5003.0


@dataclass
class ColorCheckerResult:
    patch_names: List[str]
    rgb: np.ndarray              # (n_patches, 3) float sRGB in [0, 1]
    rgb_integer: np.ndarray      # (n_patches, 3) 8-bit sRGB
    figures: Dict[str, object] = field(default_factory=dict, repr=False)


# -----------------------------------------------------------------------------
# Plots
# -----------------------------------------------------------------------------
def plot_illuminant(wavelengths: np.ndarray, spd: np.ndarray, cct: float):
    fig, ax = plt.subplots()
    ax.plot(wavelengths, spd)
    ax.set_title(f"CIE D-illuminant spectral power distribution for CCT = {cct:g} Kelvin")
    ax.set_xlabel("λ [nm]")
    ax.set_ylabel("Relative power")
    fig.tight_layout()
    return fig


def plot_reflectances(
    wavelengths: np.ndarray,
    reflectances: np.ndarray,
    rgb: np.ndarray,
    patch_names: List[str],
):
    """One line per patch, drawn in the patch's own sRGB colour."""
    fig, ax = plt.subplots(figsize=(9, 6))
    for i, name in enumerate(patch_names):
        ax.plot(wavelengths, reflectances[:, i], color=tuple(rgb[i]), linewidth=2, label=name)
    ax.set_title("ColorChecker spectral reflectances")
    ax.set_xlabel("λ [nm]")
    ax.set_ylabel("Relative spectral reflectance")
    ax.legend(fontsize="small", ncol=2)
    fig.tight_layout()
    return fig


# -----------------------------------------------------------------------------
# Workflow
# -----------------------------------------------------------------------------
def run_colorchecker(params: ColorCheckerParams, outdir: str | Path | None = None) -> ColorCheckerResult:
    """
    Compute, plot, and print the sRGB colours of ColorChecker patches.

    Figures are saved as PNG files to `outdir` when it is given.
    """
    cct = float(params.illuminant_temperature)

    # --- 1) Illuminant ---------------------------------------------------------
    lambda_illuminant, s_illuminant = load_illuminant_basis(params.illuminant_path)
    spd_illuminant = cie_d_illuminant(cct, lambda_illuminant, s_illuminant, lambda_illuminant)
    fig_illuminant = plot_illuminant(lambda_illuminant, spd_illuminant, cct)

    # --- 2) Reflectances & CMFs ------------------------------------------------
    table = load_reflectances(params.reflectances_path)
    lambda_xyzbar, xyzbar = load_color_matching_functions(params.xyzbar_path)

    # --- 3) Patch colours ------------------------------------------------------
    rgb = reflectance_to_color(
        lambda_illuminant, spd_illuminant,
        table.wavelengths, table.reflectances,
        lambda_xyzbar, xyzbar,
    )
    rgb_integer = srgb_to_integer(rgb)

    # --- 4) Plot & print -------------------------------------------------------
    fig_reflectances = plot_reflectances(table.wavelengths, table.reflectances, rgb, table.patch_names)

    print(f"ColorChecker patch sRGB colours under a CCT = {cct:g} Kelvin illuminant:")
    for name, (r, g, b) in zip(table.patch_names, rgb_integer):
        print(f"\t{name}: {r}, {g}, {b}")

    figures = {"illuminant": fig_illuminant, "reflectances": fig_reflectances}
    if outdir is not None:
        outdir = Path(outdir)
        outdir.mkdir(parents=True, exist_ok=True)
        for key, fig in figures.items():
            fig.savefig(outdir / f"colorchecker_{key}.png", dpi=150)
        print(f"[OK] Saved figures to: {outdir.resolve()}")

    return ColorCheckerResult(
        patch_names=table.patch_names,
        rgb=rgb,
        rgb_integer=rgb_integer,
        figures=figures,
    )

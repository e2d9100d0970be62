"""
Command-line driver for the chromacal analyses:
colorchecker | evaluate | dispersion

Module contracts (refresher):
- chromacal.colorimetry.colorchecker.run_colorchecker(ColorCheckerParams, outdir) -> ColorCheckerResult
- chromacal.evaluation.rgb_evaluation.evaluate_rgb(img_rgb, ref_rgb, EvaluationOptions) -> (RGBEvaluation, figures)
- chromacal.dispersion.dispersion_model.make_dispersion_fun(models, t_frame=None) -> callable (n, 3) -> (n, 2)
- chromacal.utils.tables: CSV / image / .mat readers

This file provides:
- run_colorchecker_cli(): patch sRGB colours under a CIE D-illuminant
- run_evaluate_cli():     test vs. reference colour image statistics
- run_dispersion_cli():   quiver plot of a saved dispersion model
  Run via:  python main.py <colorchecker|evaluate|dispersion> [options]
"""

from __future__ import annotations
import argparse
from pathlib import Path
from typing import Sequence

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from chromacal.colorimetry.colorchecker import ColorCheckerParams, run_colorchecker
from chromacal.dispersion.dispersion_model import make_dispersion_fun
from chromacal.dispersion.dispersion_plot import plot_dispersion_field
from chromacal.evaluation.rgb_evaluation import EvaluationOptions, evaluate_rgb, CHANNEL_NAMES
from chromacal.utils.tables import load_dispersion_data, load_image


# -----------------------------------------------------------------------------
# Subcommands
# -----------------------------------------------------------------------------
def run_colorchecker_cli(args: argparse.Namespace) -> None:
    params = ColorCheckerParams(
        illuminant_path=Path(args.illuminant),
        xyzbar_path=Path(args.xyzbar),
        reflectances_path=Path(args.reflectances),
        illuminant_temperature=args.cct,
    )
    run_colorchecker(params, outdir=args.outdir)
    plt.close("all")


def run_evaluate_cli(args: argparse.Namespace) -> None:
    img = load_image(args.test)
    ref = load_image(args.reference)
    if img.dtype != ref.dtype:
        print(f"[WARN] dtype mismatch ({img.dtype} vs {ref.dtype}); comparing as float64.")
        img = img.astype(np.float64)
        ref = ref.astype(np.float64)

    e_rgb, figures = evaluate_rgb(img, ref, EvaluationOptions(error_map=args.error_map))

    print(f"{'channel':>8} {'MRAE':>10} {'RMSE':>10} {'PSNR [dB]':>10} {'SSIM':>8} {'MI(I,R)':>8}")
    for c, name in enumerate(CHANNEL_NAMES):
        print(f"{name:>8} {e_rgb.mrae[c]:10.4g} {e_rgb.rmse[c]:10.4g} {e_rgb.psnr[c]:10.2f} "
              f"{e_rgb.ssim[c]:8.4f} {e_rgb.mi_between[c]:8.3f}")
    print(f"CPSNR ≈ {e_rgb.cpsnr:.2f} dB | mean SSIM ≈ {e_rgb.ssim[-1]:.4f}")
    print("MI within (R-G, G-B, B-R) reference:", np.round(e_rgb.mi_within[:, 0], 3))
    print("MI within (R-G, G-B, B-R) test:     ", np.round(e_rgb.mi_within[:, 1], 3))

    if figures:
        outdir = Path(args.outdir)
        outdir.mkdir(parents=True, exist_ok=True)
        for name, fig in zip(CHANNEL_NAMES, figures["error_map"]):
            fig.savefig(outdir / f"error_map_{name}.png", dpi=150)
        print(f"[OK] Saved error maps to: {outdir.resolve()}")
    plt.close("all")


def run_dispersion_cli(args: argparse.Namespace) -> None:
    models = load_dispersion_data(args.model, variable=args.variable)
    dispersionfun = make_dispersion_fun(models)
    fig = plot_dispersion_field(
        dispersionfun, (args.height, args.width), args.lambda_value,
        grid_step=args.grid_step, scale=args.scale,
    )
    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    fig.savefig(outdir / "dispersion_field.png", dpi=150)
    print(f"[OK] Evaluated {len(models)} model(s); saved plot to: {(outdir / 'dispersion_field.png').resolve()}")
    plt.close("all")


# -----------------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------------
def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Colour-science & camera-calibration analyses")
    sub = p.add_subparsers(dest="command", required=True)

    # --- colorchecker ---
    cc = sub.add_parser("colorchecker", help="sRGB colours of ColorChecker patches under a D-illuminant")
    cc.add_argument("--illuminant", required=True, help="CSV: wavelength, S0, S1, S2")
    cc.add_argument("--xyzbar", required=True, help="CSV: wavelength, xbar, ybar, zbar")
    cc.add_argument("--reflectances", required=True, help="CSV with header: wavelength, one column per patch")
    cc.add_argument("--cct", type=float, default=5003.0, help="illuminant CCT in Kelvin (5003 = D50)")
    cc.add_argument("--outdir", default=None, help="directory for figures (not saved if omitted)")
    cc.set_defaults(func=run_colorchecker_cli)

    # --- evaluate ---
    ev = sub.add_parser("evaluate", help="compare a test colour image with a reference")
    ev.add_argument("--test", required=True, help="test image (.npy or image file)")
    ev.add_argument("--reference", required=True, help="reference image (.npy or image file)")
    ev.add_argument("--error-map", action="store_true", help="save per-channel relative error maps")
    ev.add_argument("--outdir", default="outputs", help="output directory for figures")
    ev.set_defaults(func=run_evaluate_cli)

    # --- dispersion ---
    dp = sub.add_parser("dispersion", help="plot a dispersion model stored in a .mat file")
    dp.add_argument("--model", required=True, help=".mat file with a dispersion model struct array")
    dp.add_argument("--variable", default="dispersion_data", help="struct variable name (e.g. polyfun_data)")
    dp.add_argument("--width", type=int, required=True, help="image width (pixels)")
    dp.add_argument("--height", type=int, required=True, help="image height (pixels)")
    dp.add_argument("--lambda", dest="lambda_value", type=float, required=True,
                    help="wavelength, or 0-based channel index for channel-mode models")
    dp.add_argument("--grid-step", type=int, default=32, help="spacing of sample grid (pixels)")
    dp.add_argument("--scale", type=float, default=1.0, help="arrow length multiplier")
    dp.add_argument("--outdir", default="outputs", help="output directory")
    dp.set_defaults(func=run_dispersion_cli)

    return p.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()

#ColorChecker under D50 (pre-Nov-2014 Babel Color data)
#python main.py colorchecker --illuminant data/cie_d_basis.csv --xyzbar data/ciexyz31_1.csv --reflectances data/colorchecker_2005.csv --cct 5003

#Same chart under D65
#python main.py colorchecker --illuminant data/cie_d_basis.csv --xyzbar data/ciexyz31_1.csv --reflectances data/colorchecker_2005.csv --cct 6504 --outdir results/d65

#Demosaicked vs. ground-truth image, with error maps
#python main.py evaluate --test results/demosaicked.npy --reference data/truth.npy --error-map --outdir results/eval

#Channel-mode dispersion model, red channel (index 0), 1920x1080 sensor
#python main.py dispersion --model results/dispersion.mat --width 1920 --height 1080 --lambda 0 --grid-step 64 --scale 50

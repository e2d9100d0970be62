"""
tables.py — readers for spectral tables, images, and dispersion model files

WHAT THIS MODULE PROVIDES
-------------------------
• read_numeric_table(path)            CSV → float array (header row optional)
• load_illuminant_basis(path)         CIE daylight basis S0, S1, S2
• load_color_matching_functions(path) CIE x̄, ȳ, z̄
• load_reflectances(path)             ColorChecker-style reflectance table
• load_image(path)                    .npy or any format skimage can read
• load_dispersion_data / save_dispersion_data
                                      MATLAB .mat struct arrays ↔ DispersionModelData

FILE CONVENTIONS
----------------
• Spectral CSVs have wavelengths (nm) in the first column.
• Reflectance CSVs have a header row naming the patches.
• Dispersion .mat files hold a struct array with the fields
  type, T_points, T_lambda, T_disparity_inv, coeff_affine, coeff_basis,
  xylambda_training, powers, n_powers, coeff_x, coeff_y and, in channel mode,
  reference_channel. Missing fields are stored as empty matrices.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple
import numpy as np
import pandas as pd
import scipy.io
from skimage import io as skio

from chromacal.dispersion.dispersion_model import DispersionModelData


# -----------------------------------------------------------------------------
# Numeric CSV tables
# -----------------------------------------------------------------------------
def read_numeric_table(path: str | Path) -> np.ndarray:
    """
    Read a CSV file of numbers into a 2-D float64 array.

    A leading non-numeric row (a header) is dropped; any other non-numeric
    cell raises ValueError.
    """
    df = pd.read_csv(path, header=None)
    numeric = df.apply(pd.to_numeric, errors="coerce")
    if len(numeric) and numeric.iloc[0].isna().all():
        numeric = numeric.iloc[1:]
    if numeric.isna().to_numpy().any():
        raise ValueError(f"Non-numeric values in table {path}.")
    return numeric.to_numpy(dtype=np.float64)


def _split_wavelengths(table: np.ndarray, n_columns: int | None, path) -> Tuple[np.ndarray, np.ndarray]:
    if table.ndim != 2 or table.shape[1] < 2:
        raise ValueError(f"Expected a wavelength column followed by data columns in {path}.")
    if n_columns is not None and table.shape[1] != n_columns + 1:
        raise ValueError(
            f"Expected {n_columns} data columns after the wavelength column in {path}, "
            f"got {table.shape[1] - 1}."
        )
    return table[:, 0], table[:, 1:]


def load_illuminant_basis(path: str | Path) -> Tuple[np.ndarray, np.ndarray]:
    """Wavelengths and the (n, 3) daylight basis S0, S1, S2."""
    return _split_wavelengths(read_numeric_table(path), 3, path)


def load_color_matching_functions(path: str | Path) -> Tuple[np.ndarray, np.ndarray]:
    """Wavelengths and the (n, 3) colour-matching functions x̄, ȳ, z̄."""
    return _split_wavelengths(read_numeric_table(path), 3, path)


# -----------------------------------------------------------------------------
# Reflectance tables
# -----------------------------------------------------------------------------
@dataclass
class ReflectanceTable:
    """Spectral reflectances of a set of named patches."""
    wavelengths: np.ndarray      # (n_lambda,)
    reflectances: np.ndarray     # (n_lambda, n_patches)
    patch_names: List[str]


def patch_display_name(header: str) -> str:
    """
    Patch name from a column header: text after the last ':' if any,
    otherwise the header itself.
    """
    header = str(header).strip()
    name = header.split(":")[-1].strip()
    return name or header


def load_reflectances(path: str | Path) -> ReflectanceTable:
    """
    Load a reflectance CSV: header row, wavelength column, one column per patch.
    """
    df = pd.read_csv(path)
    if df.shape[1] < 2:
        raise ValueError(f"Expected a wavelength column and at least one patch column in {path}.")
    values = df.apply(pd.to_numeric, errors="coerce")
    if values.isna().to_numpy().any():
        raise ValueError(f"Non-numeric reflectance values in {path}.")
    return ReflectanceTable(
        wavelengths=values.iloc[:, 0].to_numpy(dtype=np.float64),
        reflectances=values.iloc[:, 1:].to_numpy(dtype=np.float64),
        patch_names=[patch_display_name(c) for c in df.columns[1:]],
    )


# -----------------------------------------------------------------------------
# Images
# -----------------------------------------------------------------------------
def load_image(path: str | Path) -> np.ndarray:
    """Load an image array; dtype is preserved."""
    path = Path(path)
    if path.suffix.lower() == ".npy":
        return np.load(path)
    return skio.imread(path)


# -----------------------------------------------------------------------------
# Dispersion model files (.mat)
# -----------------------------------------------------------------------------
# DispersionModelData attribute -> MATLAB struct field
_MAT_FIELDS = {
    "type": "type",
    "t_points": "T_points",
    "t_lambda": "T_lambda",
    "t_disparity_inv": "T_disparity_inv",
    "coeff_affine": "coeff_affine",
    "coeff_basis": "coeff_basis",
    "xylambda_training": "xylambda_training",
    "powers": "powers",
    "coeff_x": "coeff_x",
    "coeff_y": "coeff_y",
}


def _optional_array(value, n_columns: int | None = None) -> np.ndarray | None:
    if value is None:
        return None
    arr = np.asarray(value, dtype=np.float64)
    if arr.size == 0:
        return None
    if n_columns is None:
        return arr.ravel()
    return arr.reshape(-1, n_columns)


def _model_from_struct(s) -> DispersionModelData:
    fields = set(getattr(s, "_fieldnames", []))
    if "type" not in fields or "T_points" not in fields or "T_disparity_inv" not in fields:
        raise ValueError("Dispersion struct is missing 'type', 'T_points' or 'T_disparity_inv'.")

    def get(name, n_columns=None):
        return _optional_array(getattr(s, name), n_columns) if name in fields else None

    coeff_basis = get("coeff_basis", 2)
    training = get("xylambda_training")
    if training is not None and coeff_basis is not None:
        training = training.reshape(coeff_basis.shape[0], -1)

    reference_channel = None
    if "reference_channel" in fields:
        reference_channel = bool(np.asarray(s.reference_channel).any())

    return DispersionModelData(
        type=str(s.type),
        t_points=get("T_points", 3),
        t_disparity_inv=get("T_disparity_inv", 3),
        t_lambda=get("T_lambda", 2),
        coeff_affine=get("coeff_affine", 2),
        coeff_basis=coeff_basis,
        xylambda_training=training,
        powers=get("powers", 3),
        coeff_x=get("coeff_x"),
        coeff_y=get("coeff_y"),
        reference_channel=reference_channel,
    )


def load_dispersion_data(path: str | Path, variable: str = "dispersion_data") -> List[DispersionModelData]:
    """
    Read a struct array of dispersion models from a MATLAB .mat file.

    Polynomial models saved by MATLAB are conventionally in `polyfun_data`.
    """
    mat = scipy.io.loadmat(path, squeeze_me=True, struct_as_record=False)
    if variable not in mat:
        raise ValueError(f"Variable {variable!r} not found in {path}.")
    structs = np.atleast_1d(mat[variable])
    return [_model_from_struct(s) for s in structs.ravel()]


def save_dispersion_data(
    path: str | Path,
    models: Sequence[DispersionModelData],
    variable: str = "dispersion_data",
) -> None:
    """Write dispersion models as a MATLAB struct array."""
    models = list(models)
    channel_mode = any(m.reference_channel is not None for m in models)
    names = list(_MAT_FIELDS.values()) + ["n_powers"] + (["reference_channel"] if channel_mode else [])

    records = np.empty((len(models),), dtype=[(n, object) for n in names])
    for i, m in enumerate(models):
        for attr, field in _MAT_FIELDS.items():
            value = getattr(m, attr)
            records[field][i] = np.empty((0, 0)) if value is None else value
        records["n_powers"][i] = np.empty((0, 0)) if m.powers is None else np.asarray(m.powers).shape[0]
        if channel_mode:
            records["reference_channel"][i] = bool(m.reference_channel)

    scipy.io.savemat(path, {variable: records})

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
import matplotlib.pyplot as plt


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def _gauss(wl, mu, sigma):
    return np.exp(-0.5 * ((wl - mu) / sigma) ** 2)


@pytest.fixture
def cmf():
    """Smooth stand-ins for the CIE 1931 colour-matching functions, 380–780 nm."""
    wl = np.arange(380.0, 785.0, 5.0)
    xbar = 1.06 * _gauss(wl, 600.0, 38.0) + 0.36 * _gauss(wl, 445.0, 20.0)
    ybar = _gauss(wl, 555.0, 45.0)
    zbar = 1.78 * _gauss(wl, 450.0, 22.0)
    return wl, np.column_stack([xbar, ybar, zbar])


@pytest.fixture
def spectral_files(tmp_path, cmf):
    """Illuminant basis, CMF, and reflectance CSVs in the layouts the loaders expect."""
    wl_s = np.arange(300.0, 835.0, 10.0)
    basis = np.column_stack([
        wl_s,
        np.full(wl_s.size, 100.0),          # S0: flat
        np.linspace(-10.0, 10.0, wl_s.size),
        np.zeros(wl_s.size),
    ])
    illuminant_path = tmp_path / "cie_d_basis.csv"
    np.savetxt(illuminant_path, basis, delimiter=",")

    wl_c, c = cmf
    xyzbar_path = tmp_path / "xyzbar.csv"
    np.savetxt(xyzbar_path, np.column_stack([wl_c, c]), delimiter=",",
               header="wavelength,xbar,ybar,zbar", comments="")

    wl_r = np.arange(380.0, 740.0, 10.0)
    reflectances_path = tmp_path / "reflectances.csv"
    np.savetxt(
        reflectances_path,
        np.column_stack([
            wl_r,
            np.ones(wl_r.size),
            np.zeros(wl_r.size),
            np.full(wl_r.size, 0.18),
        ]),
        delimiter=",",
        header="wavelength,white,black,3: mid gray",
        comments="",
        fmt="%.6g",
    )
    return illuminant_path, xyzbar_path, reflectances_path

"""
chromacal — colour-science & camera-calibration toolkit
========================================================
Small research toolkit organized as:
    colorimetry → evaluation → dispersion → utils (tables)
Each subpackage holds plain, well-documented numeric routines over NumPy
arrays: spectra → sRGB under CIE D-illuminants, colour-image quality
metrics, and thin-plate-spline / polynomial lens dispersion models.

© 2025 Ali Pouya — chromacal
"""

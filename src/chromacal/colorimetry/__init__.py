"""
chromacal.colorimetry
---------------------
CIE D-illuminants, spectral reflectance → XYZ → sRGB, and the
ColorChecker display workflow.
"""

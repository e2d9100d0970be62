"""
chromacal.dispersion
--------------------
Models of lateral chromatic aberration: disparity vectors as a function of
image position and wavelength (or colour channel), represented by
thin-plate splines or trivariate polynomials.
"""

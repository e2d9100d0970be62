"""
chromacal.utils
---------------
Table, image, and model-file readers shared by the other subpackages.
"""

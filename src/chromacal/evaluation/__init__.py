"""
chromacal.evaluation
--------------------
Image-quality metrics (MRAE, RMSE, PSNR/CPSNR, SSIM, mutual information)
and the colour-image comparison built on top of them.
"""

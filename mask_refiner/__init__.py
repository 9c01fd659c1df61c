"""
Product cutout mask refinement.

Takes the probabilistic alpha cutout of a background-removal model and turns
it into a clean product cutout: thresholding, shape correction, mirroring,
edge hardening, manual edits, dilation and final compositing.
"""

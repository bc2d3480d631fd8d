"""
Minutiae extraction modules.

This package turns normalized grayscale images into minutiae:
- Otsu binarization
- Thinning (Zhang-Suen skeletonization)
- Minutiae detection (skeleton neighbor count)
"""

from .thinning import (
    otsu_threshold,
    binarize_image,
    compute_working_scale,
    downscale_for_thinning,
    zhang_suen_iteration,
    thinning_iteration,
    zhang_suen_thinning,
    count_thinning_deletions,
    min_deletions_for_continue,
    Thinner
)
from .minutiae_extraction import (
    MinutiaeType,
    Minutia,
    FeatureSet,
    count_neighbors,
    compute_minutia_angle,
    filter_close_minutiae,
    rescale_minutiae,
    extract_minutiae,
    MinutiaeExtractor
)

__all__ = [
    # Thinning
    'otsu_threshold',
    'binarize_image',
    'compute_working_scale',
    'downscale_for_thinning',
    'zhang_suen_iteration',
    'thinning_iteration',
    'zhang_suen_thinning',
    'count_thinning_deletions',
    'min_deletions_for_continue',
    'Thinner',
    # Minutiae extraction
    'MinutiaeType',
    'Minutia',
    'FeatureSet',
    'count_neighbors',
    'compute_minutia_angle',
    'filter_close_minutiae',
    'rescale_minutiae',
    'extract_minutiae',
    'MinutiaeExtractor',
]

"""
Image preprocessing modules for fingerprint matching.
"""

from .preprocessing import (
    to_uint8,
    ensure_grayscale,
    normalized_dimensions,
    resize_to_normalized_size,
    adaptive_histogram_equalization,
    unsharp_mask,
    enhance_gallery_image,
    preprocess_fingerprint,
    FingerprintPreprocessor
)

__all__ = [
    'to_uint8',
    'ensure_grayscale',
    'normalized_dimensions',
    'resize_to_normalized_size',
    'adaptive_histogram_equalization',
    'unsharp_mask',
    'enhance_gallery_image',
    'preprocess_fingerprint',
    'FingerprintPreprocessor',
]

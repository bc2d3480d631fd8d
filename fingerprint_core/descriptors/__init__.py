"""
Descriptor-based fingerprint matching modules.

This package provides local descriptor extraction and matching:
- Local neighborhood descriptors (distances and relative angles)
- Greedy descriptor assignment and tiered similarity scoring
- The image-to-image verification pipeline
"""

from .local_neighborhood import (
    MinutiaDescriptor,
    normalize_angle,
    compute_descriptor,
    build_descriptors
)
from .descriptor_matching import (
    DescriptorMatch,
    angle_similarity,
    neighbor_similarity,
    descriptor_score,
    compute_score_matrix,
    greedy_assignment,
    aggregate_similarity,
    MinutiaeMatcher,
    GalleryMatchResult,
    MinutiaeMatchingPipeline
)

__all__ = [
    # Descriptors
    'MinutiaDescriptor',
    'normalize_angle',
    'compute_descriptor',
    'build_descriptors',
    # Matching
    'DescriptorMatch',
    'angle_similarity',
    'neighbor_similarity',
    'descriptor_score',
    'compute_score_matrix',
    'greedy_assignment',
    'aggregate_similarity',
    'MinutiaeMatcher',
    'GalleryMatchResult',
    'MinutiaeMatchingPipeline',
]

"""
Contactless-to-contact fingerprint matching core.

Turns normalized ridge images into minutiae and compares two minutiae
sets with tolerant local-descriptor matching.
"""

from fingerprint_core.descriptors.descriptor_matching import (
    GalleryMatchResult,
    MinutiaeMatcher,
    MinutiaeMatchingPipeline
)
from fingerprint_core.minutiae.minutiae_extraction import (
    FeatureSet,
    Minutia,
    MinutiaeExtractor,
    MinutiaeType
)
from fingerprint_core.registry.matcher_interface import MatchResult
from fingerprint_core.utils.config import Config, load_config

__version__ = "0.1.0"

__all__ = [
    'GalleryMatchResult',
    'MinutiaeMatcher',
    'MinutiaeMatchingPipeline',
    'FeatureSet',
    'Minutia',
    'MinutiaeExtractor',
    'MinutiaeType',
    'MatchResult',
    'Config',
    'load_config',
]

"""
Matcher interface shared by matching implementations and reporting layers.
"""

from fingerprint_core.registry.matcher_interface import (
    BaseMatcher,
    MatchResult,
)

__all__ = [
    "BaseMatcher",
    "MatchResult",
]

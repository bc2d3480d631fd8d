"""
Matcher interface definitions.

This module defines the result type and base interface of fingerprint
matchers, providing a standardized API for reporting layers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class MatchResult:
    """
    Result of a fingerprint matching operation.

    Attributes:
        similarity_score: Similarity between 0 and 1 (higher = more similar)
        is_match: Decision at the matcher's threshold
        details: Dictionary containing detailed matching information
    """
    similarity_score: float = 0.0
    is_match: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def confidence(self) -> float:
        """Decision confidence; identical to the similarity score."""
        return self.similarity_score

    @classmethod
    def from_similarity(
        cls,
        similarity: float,
        threshold: float,
        details: Dict[str, Any] = None
    ) -> 'MatchResult':
        """
        Apply the decision rule to a similarity score.

        Args:
            similarity: Similarity score in [0, 1]
            threshold: Minimum similarity for a match

        Returns:
            MatchResult
        """
        return cls(
            similarity_score=similarity,
            is_match=similarity >= threshold,
            details=details or {}
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "similarity_score": self.similarity_score,
            "is_match": self.is_match,
            "confidence": self.confidence,
            "details": self.details,
        }


class BaseMatcher(ABC):
    """
    Abstract base class for feature-set matchers.

    Matchers compare two feature sets and never raise on degenerate
    input; insufficient features yield a zero-score result.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the display name of the matcher.

        Returns:
            Human-readable name
        """
        pass

    @property
    def description(self) -> str:
        """
        Return a description of the matcher.

        Returns:
            Description string
        """
        return ""

    @abstractmethod
    def compute_similarity(self, features_a, features_b) -> float:
        """
        Compute similarity between two feature sets.

        Args:
            features_a: Probe feature set
            features_b: Reference feature set

        Returns:
            Similarity score in [0, 1]
        """
        pass

    @abstractmethod
    def match(self, features_a, features_b) -> MatchResult:
        """
        Compare two feature sets and decide match / no match.

        Args:
            features_a: Probe feature set
            features_b: Reference feature set

        Returns:
            MatchResult containing score and decision
        """
        pass

    def explain(self) -> Dict[str, Any]:
        """
        Return explanation of the matcher's algorithm.

        Returns:
            Dictionary containing algorithm explanation and metadata
        """
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.get_current_parameters(),
        }

    def get_current_parameters(self) -> Dict[str, Any]:
        """
        Get current parameter values.

        Returns:
            Dictionary of parameter names to current values
        """
        return {}

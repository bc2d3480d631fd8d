"""
Descriptor-based fingerprint matching.

This module compares two minutiae sets through their local neighborhood
descriptors and turns the resulting correspondences into a similarity
score and a match decision.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from fingerprint_core.data.preprocessing import FingerprintPreprocessor
from fingerprint_core.descriptors.local_neighborhood import (
    MinutiaDescriptor,
    Neighbor,
    build_descriptors,
    normalize_angle
)
from fingerprint_core.minutiae.minutiae_extraction import (
    FeatureSet,
    Minutia,
    MinutiaeExtractor
)
from fingerprint_core.registry.matcher_interface import BaseMatcher, MatchResult
from fingerprint_core.utils.config import Config, DescriptorConfig, MatcherConfig
from fingerprint_core.utils.logger import ProgressTracker, get_logger, log_duration


logger = get_logger(__name__)


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Matching Problem:
# ----------------
# Given two minutiae sets A = {a_1, ..., a_n} and B = {b_1, ..., b_k}
# captured under unknown small rotation and translation, decide whether
# they come from the same finger.
#
# Approach (Local Descriptor Matching):
# 1. Describe each minutia by its neighbors' distances and relative angles
# 2. Score descriptor pairs:
#        s(a, b) = 0.3 * S_angle + 0.7 * S_neighbors
#    penalized when either component is weak, and 0 for different types
# 3. Greedily assign each a_i to its best unused b_j (one direction, A onto B)
# 4. Aggregate r = matched / max(n, k) through calibrated tiers
#
# The greedy assignment visits A in order, so s(A, B) need not equal
# s(B, A).
# =============================================================================


@dataclass
class DescriptorMatch:
    """
    Represents an accepted descriptor correspondence.

    Attributes:
        idx1: Index in first minutiae set
        idx2: Index in second minutiae set
        score: Descriptor pair score
    """
    idx1: int
    idx2: int
    score: float


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def angle_similarity(
    angle1: float,
    angle2: float,
    tolerance: float = math.pi / 2
) -> float:
    """
    Similarity of two ridge orientations.

    Orientations are defined modulo π, so the angular distance lies in
    [0, π/2].

    Args:
        angle1: First orientation (radians)
        angle2: Second orientation (radians)
        tolerance: Distance at which similarity reaches 0

    Returns:
        Similarity in [0, 1]
    """
    diff = abs(angle1 - angle2) % math.pi
    diff = min(diff, math.pi - diff)
    return _clamp(1.0 - diff / tolerance)


def neighbor_similarity(
    neighbors1: Sequence[Neighbor],
    neighbors2: Sequence[Neighbor],
    config: Optional[MatcherConfig] = None
) -> float:
    """
    Similarity of two neighborhood patterns.

    Each neighbor of the first descriptor is paired with the first unused
    neighbor of the second whose distance and relative angle are both
    within tolerance.

    Args:
        neighbors1: (distance, relative_angle) pairs of the first descriptor
        neighbors2: (distance, relative_angle) pairs of the second descriptor
        config: Matcher configuration

    Returns:
        Similarity in [0, 1]
    """
    config = config or MatcherConfig()

    if not neighbors1 and not neighbors2:
        return config.empty_neighbor_score
    if not neighbors1 or not neighbors2:
        return config.one_sided_neighbor_score

    used = set()
    matched = 0

    for dist1, rel1 in neighbors1:
        for j, (dist2, rel2) in enumerate(neighbors2):
            if j in used:
                continue
            if abs(dist1 - dist2) >= config.neighbor_distance_tolerance:
                continue
            if abs(normalize_angle(rel1 - rel2)) >= config.neighbor_angle_tolerance:
                continue
            used.add(j)
            matched += 1
            break

    average_count = (len(neighbors1) + len(neighbors2)) / 2.0
    return _clamp(2.0 * matched / average_count)


def descriptor_score(
    desc1: MinutiaDescriptor,
    desc2: MinutiaDescriptor,
    config: Optional[MatcherConfig] = None
) -> float:
    """
    Score a pair of minutia descriptors.

    Mathematical Formulation:
    -------------------------
    s = w_a * S_angle + w_n * S_neighbors

    If either component does not exceed the strong-component threshold,
    s is multiplied by the weak-component penalty. Minutiae of different
    types never match.

    Args:
        desc1: First descriptor
        desc2: Second descriptor
        config: Matcher configuration

    Returns:
        Pair score in [0, 1]
    """
    config = config or MatcherConfig()

    if desc1.minutia.minutiae_type != desc2.minutia.minutiae_type:
        return 0.0

    s_angle = angle_similarity(
        desc1.minutia.angle, desc2.minutia.angle, config.angle_tolerance
    )
    s_neighbors = neighbor_similarity(desc1.neighbors, desc2.neighbors, config)

    score = config.angle_weight * s_angle + config.neighbor_weight * s_neighbors

    strong = (s_angle > config.strong_component_threshold and
              s_neighbors > config.strong_component_threshold)
    if not strong:
        score *= config.weak_component_penalty

    return score


def compute_score_matrix(
    descriptors1: Sequence[MinutiaDescriptor],
    descriptors2: Sequence[MinutiaDescriptor],
    config: Optional[MatcherConfig] = None
) -> np.ndarray:
    """
    Compute pairwise scores between two descriptor sets.

    Args:
        descriptors1: First descriptor set
        descriptors2: Second descriptor set
        config: Matcher configuration

    Returns:
        Score matrix of shape (len(descriptors1), len(descriptors2))
    """
    scores = np.zeros((len(descriptors1), len(descriptors2)))

    for i, d1 in enumerate(descriptors1):
        for j, d2 in enumerate(descriptors2):
            scores[i, j] = descriptor_score(d1, d2, config)

    return scores


def greedy_assignment(
    score_matrix: np.ndarray,
    acceptance_threshold: float = 0.75
) -> List[DescriptorMatch]:
    """
    Greedily assign rows to columns of a score matrix.

    Rows are visited in order; each takes the highest-scoring unused
    column (the first one on ties) if that score exceeds the acceptance
    threshold. The assignment is not symmetric: transposing the matrix
    can change the number of matches.

    Args:
        score_matrix: Pairwise scores (rows = first set)
        acceptance_threshold: Minimum score (exclusive) for a match

    Returns:
        List of accepted matches in row order
    """
    n_rows, n_cols = score_matrix.shape
    consumed = np.zeros(n_cols, dtype=bool)
    matches = []

    for i in range(n_rows):
        if consumed.all():
            break

        row = np.where(consumed, -np.inf, score_matrix[i])
        j = int(np.argmax(row))

        if row[j] > acceptance_threshold:
            consumed[j] = True
            matches.append(DescriptorMatch(i, j, float(row[j])))

    return matches


def aggregate_similarity(
    matched_pairs: int,
    high_quality_pairs: int,
    num_minutiae1: int,
    num_minutiae2: int,
    config: Optional[MatcherConfig] = None
) -> Tuple[float, str]:
    """
    Turn correspondence counts into a similarity score.

    Score Formulation:
    ------------------
    r = matched / max(n_1, n_2)

    - r ≤ 0.2:        s = 0.3 * r
    - 0.2 < r ≤ 0.3:  s = 0.6 * r
    - 0.3 < r ≤ 0.5:  s = 0.85 * r
    - r > 0.5:        s = boost * r

    boost is 1.15 when more than half of the matched pairs are high
    quality and there are at least 3 of them, 1.0 otherwise.

    Args:
        matched_pairs: Number of accepted correspondences
        high_quality_pairs: Number of correspondences above the
            high-quality threshold
        num_minutiae1: Size of first set
        num_minutiae2: Size of second set
        config: Matcher configuration

    Returns:
        Tuple of (similarity in [0, 1], name of the tier applied)
    """
    config = config or MatcherConfig()
    largest = max(num_minutiae1, num_minutiae2)

    if largest == 0:
        return 0.0, "insufficient_features"

    ratio = matched_pairs / largest

    if ratio <= config.low_ratio_breakpoint:
        return _clamp(ratio * config.low_ratio_multiplier), "very_low"

    boost = 1.0
    if (high_quality_pairs > matched_pairs / 2 and
            high_quality_pairs >= config.quality_boost_min_count):
        boost = config.quality_boost

    if ratio > config.moderate_ratio_breakpoint:
        return _clamp(ratio * boost), "high"
    if ratio > config.weak_ratio_breakpoint:
        return _clamp(ratio * config.moderate_ratio_multiplier), "moderate"
    return _clamp(ratio * config.weak_ratio_multiplier), "weak"


class MinutiaeMatcher(BaseMatcher):
    """
    Descriptor-based minutiae matcher.

    This matcher compares feature sets through local neighborhood
    descriptors, so no global alignment is required. Each call is
    independent; the matcher keeps no state between comparisons.
    """

    def __init__(
        self,
        config: Optional[MatcherConfig] = None,
        descriptor_config: Optional[DescriptorConfig] = None
    ):
        """
        Initialize minutiae matcher.

        Args:
            config: Scoring constants and decision threshold
            descriptor_config: Descriptor radius and size
        """
        self.config = config or MatcherConfig()
        self.descriptor_config = descriptor_config or DescriptorConfig()

    @property
    def name(self) -> str:
        return "Minutiae"

    @property
    def description(self) -> str:
        return (
            "Greedy local-descriptor matching of ridge endings and "
            "bifurcations with tiered similarity scoring"
        )

    def get_current_parameters(self) -> Dict[str, Any]:
        return {
            "min_minutiae": self.config.min_minutiae,
            "acceptance_threshold": self.config.acceptance_threshold,
            "high_quality_threshold": self.config.high_quality_threshold,
            "match_threshold": self.config.match_threshold,
            "descriptor_radius": self.descriptor_config.radius,
            "max_neighbors": self.descriptor_config.max_neighbors,
        }

    def match_details(
        self,
        features1: Sequence[Minutia],
        features2: Sequence[Minutia]
    ) -> Dict[str, Any]:
        """
        Compare two feature sets and report how the score was obtained.

        Args:
            features1: First feature set (assigned onto the second)
            features2: Second feature set

        Returns:
            Dictionary with 'similarity', 'branch' and match statistics
        """
        minutiae1 = list(features1)
        minutiae2 = list(features2)
        n1, n2 = len(minutiae1), len(minutiae2)

        details: Dict[str, Any] = {
            "num_minutiae1": n1,
            "num_minutiae2": n2,
            "matched_pairs": 0,
            "high_quality_pairs": 0,
            "match_ratio": 0.0,
            "count_ratio": 0.0,
            "pairs": [],
        }

        if min(n1, n2) < max(1, self.config.min_minutiae):
            logger.debug(f"Insufficient minutiae: {n1} vs {n2}")
            details.update(similarity=0.0, branch="insufficient_features")
            return details

        count_ratio = min(n1, n2) / max(n1, n2)
        details["count_ratio"] = count_ratio

        if count_ratio < self.config.count_ratio_floor:
            logger.debug(f"Minutiae counts too dissimilar: {n1} vs {n2}")
            details.update(similarity=self.config.count_ratio_score, branch="count_ratio")
            return details

        descriptors1 = build_descriptors(minutiae1, self.descriptor_config)
        descriptors2 = build_descriptors(minutiae2, self.descriptor_config)

        scores = compute_score_matrix(descriptors1, descriptors2, self.config)
        matches = greedy_assignment(scores, self.config.acceptance_threshold)
        high_quality = sum(
            1 for m in matches if m.score > self.config.high_quality_threshold
        )

        similarity, branch = aggregate_similarity(
            len(matches), high_quality, n1, n2, self.config
        )

        details.update(
            similarity=similarity,
            branch=branch,
            matched_pairs=len(matches),
            high_quality_pairs=high_quality,
            match_ratio=len(matches) / max(n1, n2),
            pairs=[(m.idx1, m.idx2, m.score) for m in matches],
        )
        return details

    def compute_similarity(
        self,
        features1: Sequence[Minutia],
        features2: Sequence[Minutia]
    ) -> float:
        """
        Compute similarity between two feature sets.

        Args:
            features1: First feature set
            features2: Second feature set

        Returns:
            Similarity score in [0, 1]
        """
        return self.match_details(features1, features2)["similarity"]

    def match(
        self,
        features1: Sequence[Minutia],
        features2: Sequence[Minutia]
    ) -> MatchResult:
        """
        Compare two feature sets and apply the decision threshold.

        Args:
            features1: Probe feature set
            features2: Reference feature set

        Returns:
            MatchResult with similarity, decision and confidence
        """
        details = self.match_details(features1, features2)
        similarity = details.pop("similarity")

        return MatchResult.from_similarity(
            similarity, self.config.match_threshold, details
        )


@dataclass
class GalleryMatchResult:
    """
    Result of comparing a probe against several reference images.

    Attributes:
        best: Result of the most similar reference, None if no reference
            produced a positive similarity
        best_index: Index of that reference
        similarities: Similarity per reference, None for failed references
        processed: Number of references that were compared
        failed: Number of references that could not be processed
    """
    best: Optional[MatchResult] = None
    best_index: Optional[int] = None
    similarities: List[Optional[float]] = field(default_factory=list)
    processed: int = 0
    failed: int = 0

    @property
    def is_match(self) -> bool:
        return self.best is not None and self.best.is_match


class MinutiaeMatchingPipeline:
    """
    Complete pipeline for minutiae-based fingerprint verification.

    Combines:
    - Preprocessing (normalization, gallery enhancement)
    - Binarization and thinning
    - Minutiae extraction
    - Descriptor matching
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        preprocessor: Optional[FingerprintPreprocessor] = None,
        extractor: Optional[MinutiaeExtractor] = None,
        matcher: Optional[MinutiaeMatcher] = None
    ):
        """
        Initialize pipeline.

        Args:
            config: Full configuration; components not given explicitly
                are built from it
            preprocessor: FingerprintPreprocessor instance
            extractor: MinutiaeExtractor instance
            matcher: MinutiaeMatcher instance
        """
        self.config = config or Config()
        self.preprocessor = preprocessor or FingerprintPreprocessor(self.config.preprocessing)
        self.extractor = extractor or MinutiaeExtractor(
            self.config.skeleton, self.config.detector
        )
        self.matcher = matcher or MinutiaeMatcher(
            self.config.matcher, self.config.descriptor
        )

    def extract_features(self, image: np.ndarray, from_gallery: bool = False) -> FeatureSet:
        """
        Extract minutiae from an image.

        Args:
            image: Input fingerprint image
            from_gallery: True for unenhanced contact-based photos

        Returns:
            FeatureSet in normalized image coordinates
        """
        source = "gallery" if from_gallery else "contactless"
        with log_duration(logger, f"Feature extraction ({source})"):
            normalized = self.preprocessor(image, from_gallery)
            features = self.extractor.extract(normalized)

        logger.debug(f"Extracted {len(features)} minutiae from {source} image")
        return features

    def verify(
        self,
        probe: np.ndarray,
        reference: np.ndarray,
        probe_from_gallery: bool = False,
        reference_from_gallery: bool = True
    ) -> MatchResult:
        """
        Verify a contactless probe against one contact-based reference.

        Args:
            probe: Contactless fingerprint image
            reference: Contact-based fingerprint image
            probe_from_gallery: Whether the probe still needs enhancement
            reference_from_gallery: Whether the reference needs enhancement

        Returns:
            MatchResult
        """
        probe_features = self.extract_features(probe, probe_from_gallery)
        reference_features = self.extract_features(reference, reference_from_gallery)

        with log_duration(logger, "Similarity computation"):
            result = self.matcher.match(probe_features, reference_features)

        logger.info(
            f"Similarity score: {result.similarity_score:.4f} "
            f"(threshold: {self.matcher.config.match_threshold}) "
            f"-> {'MATCH' if result.is_match else 'NO MATCH'}"
        )
        return result

    def verify_against_gallery(
        self,
        probe: np.ndarray,
        references: Sequence[Optional[np.ndarray]],
        probe_from_gallery: bool = False,
        references_from_gallery: bool = True
    ) -> GalleryMatchResult:
        """
        Verify a probe against every reference image of one identity.

        The probe is extracted once. The reference with the highest
        similarity wins; a later reference replaces it only with a strictly
        higher score. References that are missing or fail to process are
        counted and skipped.

        Args:
            probe: Contactless fingerprint image
            references: Contact-based images of the enrolled identity
            probe_from_gallery: Whether the probe still needs enhancement
            references_from_gallery: Whether references need enhancement

        Returns:
            GalleryMatchResult
        """
        probe_features = self.extract_features(probe, probe_from_gallery)
        result = GalleryMatchResult()
        best_similarity = 0.0
        tracker = ProgressTracker(len(references), logger)

        for index, reference in enumerate(references):
            if reference is None:
                logger.warning(f"Reference {index} could not be loaded")
                result.failed += 1
                result.similarities.append(None)
                tracker.update(failed=True)
                continue

            try:
                reference_features = self.extract_features(reference, references_from_gallery)
                match = self.matcher.match(probe_features, reference_features)
            except Exception as e:
                logger.error(f"Error processing reference {index}: {e}")
                result.failed += 1
                result.similarities.append(None)
                tracker.update(failed=True)
                continue

            result.processed += 1
            result.similarities.append(match.similarity_score)

            if match.similarity_score > best_similarity:
                best_similarity = match.similarity_score
                result.best = match
                result.best_index = index
                logger.debug(
                    f"New best match: reference {index}, "
                    f"similarity={match.similarity_score:.4f}"
                )

            tracker.update()

        tracker.finish()

        if result.best is None:
            logger.warning(
                f"No valid matches found: processed={result.processed}, "
                f"failed={result.failed}"
            )

        return result

"""
Minutiae extraction from fingerprint skeleton images.

This module implements minutiae detection by counting skeleton
neighbors, and the extraction pipeline that turns a normalized
grayscale image into a feature set.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage

from fingerprint_core.minutiae.thinning import Thinner, downscale_for_thinning
from fingerprint_core.utils.config import DetectorConfig, SkeletonConfig
from fingerprint_core.utils.logger import get_logger, log_duration


logger = get_logger(__name__)


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Minutiae:
# ---------
# Minutiae are local discontinuities in the ridge pattern:
# - Ridge ending: A ridge that terminates abruptly
# - Ridge bifurcation: A single ridge that splits into two ridges
#
# Neighbor Count:
# --------------
# On a 1-pixel-wide skeleton the number N(P) of 8-connected foreground
# neighbors classifies a ridge pixel:
# - N = 1: Ridge ending
# - N = 2: Ridge continuing point
# - N = 3: Ridge bifurcation
# - N ≥ 4: Crossing or noise
#
# Orientation:
# The direction from the minutia to its nearest skeleton neighbor. A ridge
# has no preferred sense of travel, so angles are taken modulo π.
# =============================================================================


class MinutiaeType(Enum):
    """Enumeration of minutiae types, valued by skeleton neighbor count."""
    ENDING = 1
    BIFURCATION = 3


@dataclass(frozen=True)
class Minutia:
    """
    Represents a single minutia point.

    Attributes:
        x: X coordinate (column) in original image space
        y: Y coordinate (row) in original image space
        angle: Ridge orientation (radians, range [0, π))
        minutiae_type: Type of minutia (ending or bifurcation)
    """
    x: int
    y: int
    angle: float
    minutiae_type: MinutiaeType

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'x': self.x,
            'y': self.y,
            'angle': self.angle,
            'type': self.minutiae_type.name,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'Minutia':
        """Create from dictionary."""
        return cls(
            x=int(d['x']),
            y=int(d['y']),
            angle=float(d['angle']),
            minutiae_type=MinutiaeType[d['type']]
        )


@dataclass(frozen=True)
class FeatureSet:
    """
    Ordered minutiae of one fingerprint image.

    Attributes:
        minutiae: Minutiae in discovery order
        image_size: (width, height) of the image they were extracted from
    """
    minutiae: Tuple[Minutia, ...] = ()
    image_size: Tuple[int, int] = (0, 0)

    def __post_init__(self):
        object.__setattr__(self, 'minutiae', tuple(self.minutiae))
        object.__setattr__(self, 'image_size', tuple(self.image_size))

    def __len__(self) -> int:
        return len(self.minutiae)

    def __iter__(self) -> Iterator[Minutia]:
        return iter(self.minutiae)

    def __getitem__(self, index: int) -> Minutia:
        return self.minutiae[index]

    def count_by_type(self) -> Dict[str, int]:
        """Number of minutiae per type name."""
        counts = {t.name: 0 for t in MinutiaeType}
        for m in self.minutiae:
            counts[m.minutiae_type.name] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'image_size': list(self.image_size),
            'minutiae': [m.to_dict() for m in self.minutiae],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'FeatureSet':
        """Create from dictionary."""
        return cls(
            minutiae=tuple(Minutia.from_dict(m) for m in d.get('minutiae', [])),
            image_size=tuple(d.get('image_size', (0, 0)))
        )


NEIGHBOR_KERNEL = np.array([
    [1, 1, 1],
    [1, 0, 1],
    [1, 1, 1],
], dtype=np.uint8)


def count_neighbors(skeleton: np.ndarray) -> np.ndarray:
    """
    Count 8-connected foreground neighbors of every pixel.

    Args:
        skeleton: Binary skeleton image

    Returns:
        Array of neighbor counts (0-8)
    """
    binary = (skeleton > 0).astype(np.uint8)
    return ndimage.convolve(binary, NEIGHBOR_KERNEL, mode='constant', cval=0)


def compute_minutia_angle(skeleton: np.ndarray, y: int, x: int) -> float:
    """
    Estimate minutia orientation from its nearest skeleton neighbor.

    Neighbors are scanned row by row from the top-left; on equal distance
    the first one found wins.

    Args:
        skeleton: Binary skeleton image
        y, x: Minutia coordinates

    Returns:
        Orientation angle in radians [0, π)
    """
    h, w = skeleton.shape
    min_dist = math.inf
    nearest_dy, nearest_dx = 0, 0

    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dy == 0 and dx == 0:
                continue
            ny, nx = y + dy, x + dx
            if 0 <= ny < h and 0 <= nx < w and skeleton[ny, nx]:
                dist = math.hypot(dx, dy)
                if dist < min_dist:
                    min_dist = dist
                    nearest_dy, nearest_dx = dy, dx

    angle = math.atan2(nearest_dy, nearest_dx)
    if angle < 0:
        angle += 2 * math.pi

    # Ridge symmetry
    angle = angle % math.pi
    return angle if angle < math.pi else 0.0


def filter_close_minutiae(
    minutiae: Sequence[Minutia],
    min_distance: float = 10.0
) -> List[Minutia]:
    """
    Remove duplicate detections clustered around the same ridge feature.

    Minutiae are visited in order; one is kept only if it lies at least
    min_distance away from every minutia kept before it.

    Args:
        minutiae: Detected minutiae in discovery order
        min_distance: Minimum separation in pixels

    Returns:
        Filtered list of minutiae
    """
    filtered: List[Minutia] = []

    for m in minutiae:
        too_close = any(
            math.hypot(m.x - kept.x, m.y - kept.y) < min_distance
            for kept in filtered
        )
        if not too_close:
            filtered.append(m)

    return filtered


def rescale_minutiae(minutiae: Sequence[Minutia], scale: float) -> List[Minutia]:
    """
    Map minutiae from the downscaled working image to original coordinates.

    Coordinates are divided by the scale factor and truncated, mirroring
    the truncation used when the working size was computed.

    Args:
        minutiae: Minutiae in working-image coordinates
        scale: Downscale factor used for the working image

    Returns:
        Minutiae in original image coordinates
    """
    if scale >= 1.0 or scale <= 0.0:
        return list(minutiae)

    return [
        replace(m, x=int(m.x / scale), y=int(m.y / scale))
        for m in minutiae
    ]


def extract_minutiae(
    skeleton: np.ndarray,
    border_margin: int = 5,
    min_distance: float = 10.0
) -> List[Minutia]:
    """
    Extract minutiae from a skeleton image.

    Algorithm Steps:
    ----------------
    1. Count foreground neighbors of every skeleton pixel
    2. Skip pixels inside the border margin
    3. One neighbor: ridge ending; three neighbors: bifurcation
    4. Estimate orientation
    5. Drop detections closer than min_distance to an earlier one

    Any failure on corrupt or degenerate input yields an empty list.

    Args:
        skeleton: Binary skeleton image
        border_margin: Minimum distance from image border
        min_distance: Minimum separation between kept minutiae

    Returns:
        List of Minutia objects in working-image coordinates
    """
    try:
        skeleton = (skeleton > 0).astype(np.uint8)
        h, w = skeleton.shape
        neighbor_counts = count_neighbors(skeleton)

        candidates = (skeleton == 1) & (
            (neighbor_counts == MinutiaeType.ENDING.value) |
            (neighbor_counts == MinutiaeType.BIFURCATION.value)
        )

        # Border region
        border = np.zeros_like(candidates)
        border[border_margin:h - border_margin, border_margin:w - border_margin] = True
        candidates &= border

        minutiae = []
        for y, x in np.argwhere(candidates):
            minutiae.append(Minutia(
                x=int(x),
                y=int(y),
                angle=compute_minutia_angle(skeleton, int(y), int(x)),
                minutiae_type=MinutiaeType(int(neighbor_counts[y, x]))
            ))

        return filter_close_minutiae(minutiae, min_distance)

    except Exception as e:
        logger.error(f"Error detecting minutiae: {e}")
        return []


class MinutiaeExtractor:
    """
    Configurable minutiae extraction pipeline.

    Downscales the normalized image to the working size, binarizes,
    thins, detects minutiae and maps them back to the input coordinates.
    """

    def __init__(
        self,
        skeleton_config: Optional[SkeletonConfig] = None,
        detector_config: Optional[DetectorConfig] = None
    ):
        """
        Initialize extractor.

        Args:
            skeleton_config: Binarization and thinning settings
            detector_config: Detection settings
        """
        self.skeleton_config = skeleton_config or SkeletonConfig()
        self.detector_config = detector_config or DetectorConfig()
        self.thinner = Thinner(self.skeleton_config)

    def skeletonize(self, image: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Downscale, binarize and thin a grayscale image.

        Args:
            image: Normalized grayscale image

        Returns:
            Tuple of (skeleton, scale_factor)
        """
        working, scale = downscale_for_thinning(image, self.skeleton_config.working_size)
        with log_duration(logger, "Skeletonization"):
            skeleton = self.thinner.process(working)
        logger.debug(f"Skeleton: nonZero={int(np.count_nonzero(skeleton))}")
        return skeleton, scale

    def extract(self, image: np.ndarray) -> FeatureSet:
        """
        Extract minutiae from a normalized grayscale image.

        Args:
            image: Normalized grayscale image

        Returns:
            FeatureSet in the coordinate space of ``image``; empty if
            extraction fails
        """
        try:
            height, width = image.shape[:2]
            skeleton, scale = self.skeletonize(image)

            with log_duration(logger, "Minutiae detection"):
                minutiae = extract_minutiae(
                    skeleton,
                    self.detector_config.border_margin,
                    self.detector_config.min_distance
                )

            minutiae = rescale_minutiae(minutiae, scale)
            logger.info(f"Extracted {len(minutiae)} minutiae from {width}x{height} image")

            return FeatureSet(tuple(minutiae), (width, height))

        except Exception as e:
            logger.error(f"Error extracting minutiae: {e}")
            return FeatureSet()

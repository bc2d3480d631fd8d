"""
Binarization and thinning (skeletonization) of fingerprint images.

This module reduces a grayscale ridge image to a single-pixel-wide
skeleton, which is a prerequisite for minutiae detection.
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from fingerprint_core.utils.config import SkeletonConfig
from fingerprint_core.utils.logger import get_logger


logger = get_logger(__name__)


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Otsu Binarization:
# -----------------
# The global threshold t maximizes the between-class variance
#
#     σ_b²(t) = ω_0(t) ω_1(t) (μ_0(t) - μ_1(t))²
#
# of the intensity histogram. Ridges are darker than valleys, so the
# thresholded image is inverted to make ridges foreground.
#
# Zhang-Suen Algorithm:
# --------------------
# A parallel thinning algorithm that iterates until convergence.
# Each iteration has two sub-iterations.
#
# For a pixel P1 with 8-neighbors P2-P9 (clockwise from top):
#     P9 P2 P3
#     P8 P1 P4
#     P7 P6 P5
#
# Conditions for deletion in sub-iteration 1:
# - 2 ≤ B(P1) ≤ 6   (B = number of non-zero neighbors)
# - A(P1) = 1        (A = number of 01 patterns in P2, P3, ..., P9, P2)
# - P2 * P4 * P6 = 0
# - P4 * P6 * P8 = 0
#
# Sub-iteration 2 differs in last two conditions:
# - P2 * P4 * P8 = 0
# - P2 * P6 * P8 = 0
#
# All pixels of a sub-iteration are tested against the same grid; the
# marked pixels are deleted together before the next sub-iteration.
#
# Reference:
# Zhang, T. Y., & Suen, C. Y. (1984).
# "A fast parallel algorithm for thinning digital patterns."
# Communications of the ACM, 27(3), 236-239.
# =============================================================================


def otsu_threshold(image: np.ndarray) -> float:
    """
    Compute the Otsu global threshold of a grayscale image.

    Args:
        image: Grayscale uint8 image

    Returns:
        Threshold maximizing between-class variance
    """
    threshold, _ = cv2.threshold(image, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return float(threshold)


def binarize_image(image: np.ndarray, invert: bool = True) -> np.ndarray:
    """
    Binarize a fingerprint image with Otsu's global threshold.

    Args:
        image: Grayscale fingerprint image
        invert: Treat dark pixels as ridges (the usual polarity)

    Returns:
        Binary image (ridges = 1, background = 0)
    """
    if image.dtype in [np.float32, np.float64]:
        image = (image * 255).clip(0, 255).astype(np.uint8)

    mode = cv2.THRESH_BINARY_INV if invert else cv2.THRESH_BINARY
    _, binary = cv2.threshold(image, 0, 255, mode + cv2.THRESH_OTSU)

    return (binary > 0).astype(np.uint8)


def compute_working_scale(width: int, height: int, working_size: int = 300) -> float:
    """
    Scale factor that fits an image inside working_size on both sides.

    Images that already fit are not upscaled.

    Args:
        width: Image width
        height: Image height
        working_size: Maximum side length of the working image

    Returns:
        Scale factor in (0, 1]
    """
    if width > working_size or height > working_size:
        return min(working_size / width, working_size / height)
    return 1.0


def downscale_for_thinning(
    image: np.ndarray,
    working_size: int = 300
) -> Tuple[np.ndarray, float]:
    """
    Downscale an image to the thinning working size.

    Args:
        image: Grayscale image
        working_size: Maximum side length of the working image

    Returns:
        Tuple of (working_image, scale_factor)
    """
    height, width = image.shape[:2]
    scale = compute_working_scale(width, height, working_size)

    if scale >= 1.0:
        return image, 1.0

    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))
    resized = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_LINEAR)
    logger.debug(
        f"Downscaled from {width}x{height} to {new_width}x{new_height} for thinning"
    )
    return resized, scale


def get_neighbor_planes(grid: np.ndarray) -> Tuple[np.ndarray, ...]:
    """
    Get the 8-neighbor planes of every interior pixel of a padded grid.

    Neighbor arrangement:
        P9 P2 P3
        P8 P1 P4
        P7 P6 P5

    Args:
        grid: Zero-padded binary image

    Returns:
        Tuple (P2, P3, P4, P5, P6, P7, P8, P9) of arrays shaped like the
        unpadded image
    """
    return (
        grid[:-2, 1:-1],   # P2
        grid[:-2, 2:],     # P3
        grid[1:-1, 2:],    # P4
        grid[2:, 2:],      # P5
        grid[2:, 1:-1],    # P6
        grid[2:, :-2],     # P7
        grid[1:-1, :-2],   # P8
        grid[:-2, :-2],    # P9
    )


def count_transitions(neighbors: Tuple[np.ndarray, ...]) -> np.ndarray:
    """
    Count 0-to-1 transitions in the ordered neighbor sequence.

    This is the A(P1) function in Zhang-Suen algorithm, evaluated for
    every pixel at once.

    Args:
        neighbors: Neighbor planes (P2, ..., P9)

    Returns:
        Array of transition counts
    """
    transitions = np.zeros(neighbors[0].shape, dtype=np.uint8)
    for current, following in zip(neighbors, neighbors[1:] + neighbors[:1]):
        transitions += (current == 0) & (following == 1)
    return transitions


def zhang_suen_iteration(grid: np.ndarray, iteration: int) -> int:
    """
    Perform one sub-iteration of Zhang-Suen thinning in place.

    Args:
        grid: Zero-padded binary image (1 = foreground), modified in place
        iteration: Sub-iteration number (0 or 1)

    Returns:
        Number of deleted pixels
    """
    center = grid[1:-1, 1:-1]
    neighbors = get_neighbor_planes(grid)
    P2, P3, P4, P5, P6, P7, P8, P9 = neighbors

    B = np.zeros(center.shape, dtype=np.uint8)
    for plane in neighbors:
        B += plane
    A = count_transitions(neighbors)

    candidates = (center == 1) & (B >= 2) & (B <= 6) & (A == 1)

    if iteration == 0:
        candidates &= (P2 & P4 & P6) == 0
        candidates &= (P4 & P6 & P8) == 0
    else:
        candidates &= (P2 & P4 & P8) == 0
        candidates &= (P2 & P6 & P8) == 0

    deleted = int(np.count_nonzero(candidates))
    if deleted:
        center[candidates] = 0

    return deleted


def min_deletions_for_continue(
    pixel_count: int,
    fraction: float = 0.002,
    floor: int = 5
) -> int:
    """
    Deletion count below which thinning is treated as converged.

    Args:
        pixel_count: Total number of pixels in the working image
        fraction: Fraction of pixels that must be deleted
        floor: Minimum threshold

    Returns:
        Minimum deletions per sub-iteration
    """
    return max(floor, int(pixel_count * fraction))


def zhang_suen_thinning(
    image: np.ndarray,
    max_iterations: int = 25,
    min_deletions: int = 0
) -> np.ndarray:
    """
    Apply Zhang-Suen thinning algorithm.

    Thinning stops when a full iteration deletes nothing, when
    max_iterations is reached, or when a sub-iteration deletes fewer
    than min_deletions pixels (0 disables early termination).

    Args:
        image: Binary image (ridges = 1, background = 0)
        max_iterations: Maximum number of iteration pairs
        min_deletions: Early termination threshold per sub-iteration

    Returns:
        Thinned (skeletonized) image
    """
    # Owned padded buffer; the caller's array is never modified
    grid = np.pad((image > 0).astype(np.uint8), 1, mode='constant', constant_values=0)

    iterations = 0
    while iterations < max_iterations:
        deleted1 = zhang_suen_iteration(grid, 0)
        if deleted1 < min_deletions:
            break

        deleted2 = zhang_suen_iteration(grid, 1)
        iterations += 1

        if deleted1 == 0 and deleted2 == 0:
            break
        if deleted2 < min_deletions:
            break

    logger.debug(f"Skeletonization completed in {iterations} iterations")

    return grid[1:-1, 1:-1].copy()


def thinning_iteration(grid: np.ndarray) -> int:
    """
    Perform one full Zhang-Suen iteration (both sub-iterations) in place.

    Args:
        grid: Zero-padded binary image, modified in place

    Returns:
        Number of pixels deleted by both sub-iterations
    """
    return zhang_suen_iteration(grid, 0) + zhang_suen_iteration(grid, 1)


def count_thinning_deletions(skeleton: np.ndarray) -> int:
    """
    Count pixels one more full thinning iteration would delete.

    A converged skeleton yields 0.

    Args:
        skeleton: Binary skeleton image

    Returns:
        Number of pixels deleted by both sub-iterations
    """
    grid = np.pad((skeleton > 0).astype(np.uint8), 1, mode='constant', constant_values=0)
    return thinning_iteration(grid)


class Thinner:
    """
    Configurable binarization and thinning processor.
    """

    def __init__(self, config: Optional[SkeletonConfig] = None):
        """
        Initialize thinner.

        Args:
            config: Skeletonization configuration
        """
        self.config = config or SkeletonConfig()

    def thin(self, binary: np.ndarray) -> np.ndarray:
        """
        Thin a binary ridge mask.

        Args:
            binary: Binary image (ridges = 1)

        Returns:
            Skeleton image
        """
        min_deletions = 0
        if self.config.early_termination:
            min_deletions = min_deletions_for_continue(
                binary.size,
                self.config.min_deletion_fraction,
                self.config.min_deletions_floor
            )

        return zhang_suen_thinning(binary, self.config.max_iterations, min_deletions)

    def process(self, image: np.ndarray) -> np.ndarray:
        """
        Binarize and thin a grayscale fingerprint image.

        Args:
            image: Grayscale working image

        Returns:
            Skeleton image
        """
        return self.thin(binarize_image(image))

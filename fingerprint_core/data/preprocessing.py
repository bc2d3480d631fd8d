"""
Image preprocessing utilities for fingerprint matching.

This module normalizes probe and reference images to a canonical
grayscale working resolution, optionally enhancing raw gallery photos
before resizing.
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from fingerprint_core.utils.config import PreprocessingConfig
from fingerprint_core.utils.logger import get_logger


logger = get_logger(__name__)


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Contact-based reference images are raw photos or scans; contactless probes
# arrive already enhanced by the capture stage. Enhancing only the raw
# references brings both sources to comparable ridge contrast.
#
# Gallery enhancement:
# 1. CLAHE: per-tile histogram equalization with clipped histograms
# 2. Bilateral filter: smooths noise while keeping ridge edges
# 3. Unsharp mask: I_sharp = (1 + a) * I - a * G_sigma(I)
#
# Normalization:
# The larger side is scaled to a fixed size with the aspect ratio kept,
# so ridge spacing in pixels is comparable between sources.
# =============================================================================


def to_uint8(image: np.ndarray) -> np.ndarray:
    """
    Convert an image to 8-bit intensities.

    Float images are assumed to be in [0, 1]; 16-bit images keep their
    high byte.

    Args:
        image: Input image of any numeric dtype

    Returns:
        uint8 image
    """
    if image.dtype == np.uint8:
        return image
    if image.dtype in [np.float32, np.float64]:
        return (image * 255).clip(0, 255).astype(np.uint8)
    if image.dtype == np.uint16:
        return (image >> 8).astype(np.uint8)
    return image.clip(0, 255).astype(np.uint8)


def ensure_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert an image to single-channel grayscale.

    Args:
        image: Grayscale (H x W), BGR (H x W x 3) or BGRA (H x W x 4) image

    Returns:
        Grayscale uint8 image

    Raises:
        ValueError: If the channel layout is not supported
    """
    image = to_uint8(image)

    if image.ndim == 2:
        return image

    if image.ndim == 3:
        channels = image.shape[2]
        if channels == 1:
            return image[:, :, 0]
        if channels == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        if channels == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)

    raise ValueError(f"Unsupported image shape: {image.shape}")


def normalized_dimensions(
    width: int,
    height: int,
    target_size: int
) -> Tuple[int, int]:
    """
    Compute output size with the larger side equal to target_size.

    Args:
        width: Current width
        height: Current height
        target_size: Length of the larger side after resizing

    Returns:
        Tuple of (new_width, new_height)
    """
    aspect_ratio = width / height

    if width > height:
        new_width = target_size
        new_height = int(target_size / aspect_ratio)
    else:
        new_height = target_size
        new_width = int(target_size * aspect_ratio)

    return max(1, new_width), max(1, new_height)


def resize_to_normalized_size(
    image: np.ndarray,
    target_size: int = 500,
    tolerance: int = 10
) -> np.ndarray:
    """
    Resize image so its larger dimension equals target_size.

    Images already within tolerance of the target on both sides are
    returned unchanged.

    Args:
        image: Input image
        target_size: Normalization size in pixels
        tolerance: Size tolerance in pixels

    Returns:
        Resized image
    """
    height, width = image.shape[:2]

    # Nothing to resize; extraction yields an empty feature set
    if height == 0 or width == 0:
        return image

    if abs(width - target_size) < tolerance and abs(height - target_size) < tolerance:
        return image

    new_width, new_height = normalized_dimensions(width, height, target_size)
    return cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_LINEAR)


def adaptive_histogram_equalization(
    image: np.ndarray,
    clip_limit: float = 3.0,
    tile_size: Tuple[int, int] = (8, 8)
) -> np.ndarray:
    """
    Apply Contrast Limited Adaptive Histogram Equalization (CLAHE).

    Args:
        image: Grayscale uint8 image
        clip_limit: Threshold for contrast limiting
        tile_size: Size of the tile grid

    Returns:
        Contrast-normalized image
    """
    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=tuple(tile_size))
    return clahe.apply(image)


def unsharp_mask(
    image: np.ndarray,
    sigma: float = 0.6,
    amount: float = 0.6
) -> np.ndarray:
    """
    Emphasize ridges with an unsharp mask.

    I_sharp = (1 + amount) * I - amount * G_sigma(I)

    Args:
        image: Grayscale uint8 image
        sigma: Gaussian blur sigma
        amount: Sharpening strength

    Returns:
        Sharpened image
    """
    blurred = cv2.GaussianBlur(image, (0, 0), sigma)
    return cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0.0)


def enhance_gallery_image(
    image: np.ndarray,
    config: Optional[PreprocessingConfig] = None
) -> np.ndarray:
    """
    Enhance an unprocessed contact-based photo.

    Pipeline:
    1. Convert to grayscale
    2. CLAHE for contrast normalization
    3. Bilateral filter for edge-preserving noise reduction
    4. Unsharp masking for ridge emphasis

    Args:
        image: Input image
        config: Preprocessing configuration

    Returns:
        Enhanced grayscale image
    """
    config = config or PreprocessingConfig()

    gray = ensure_grayscale(image)
    equalized = adaptive_histogram_equalization(
        gray, config.clahe_clip_limit, config.clahe_tile_size
    )
    denoised = cv2.bilateralFilter(
        equalized,
        config.bilateral_diameter,
        config.bilateral_sigma_color,
        config.bilateral_sigma_space
    )
    return unsharp_mask(denoised, config.unsharp_sigma, config.unsharp_amount)


def _fallback_resize(image: np.ndarray, config: PreprocessingConfig) -> np.ndarray:
    """Plain resize of the original, collapsing channels without OpenCV colour codes."""
    resized = resize_to_normalized_size(
        to_uint8(image), config.normalization_size, config.size_tolerance
    )
    if resized.ndim == 3:
        resized = resized[:, :, :3].mean(axis=2).astype(np.uint8)
    return resized


def preprocess_fingerprint(
    image: np.ndarray,
    from_gallery: bool = False,
    config: Optional[PreprocessingConfig] = None
) -> np.ndarray:
    """
    Normalize a fingerprint image for feature extraction.

    Gallery images are raw photos and get the full enhancement pipeline;
    contactless captures are already enhanced and are only converted to
    grayscale. Both are then resized to the normalization size.

    Args:
        image: Input image (grayscale, BGR or BGRA)
        from_gallery: True for unenhanced contact-based photos
        config: Preprocessing configuration

    Returns:
        Grayscale uint8 image with larger side equal to the normalization size
    """
    config = config or PreprocessingConfig()
    source = "gallery" if from_gallery else "contactless"

    try:
        logger.debug(f"Preprocessing {source} image: {image.shape[1]}x{image.shape[0]}")

        if from_gallery:
            enhanced = enhance_gallery_image(image, config)
        else:
            enhanced = ensure_grayscale(image)

        normalized = resize_to_normalized_size(
            enhanced, config.normalization_size, config.size_tolerance
        )
        logger.debug(f"Preprocessed image size: {normalized.shape[1]}x{normalized.shape[0]}")
        return normalized

    except Exception as e:
        logger.error(f"Error preprocessing {source} image, falling back to plain resize: {e}")
        return _fallback_resize(image, config)


class FingerprintPreprocessor:
    """
    Configurable preprocessor for fingerprint images.

    Encapsulates preprocessing parameters and provides a consistent
    interface for batch processing.
    """

    def __init__(self, config: Optional[PreprocessingConfig] = None):
        """
        Initialize the preprocessor.

        Args:
            config: Preprocessing configuration
        """
        self.config = config or PreprocessingConfig()

    def __call__(self, image: np.ndarray, from_gallery: bool = False) -> np.ndarray:
        """
        Preprocess a fingerprint image.

        Args:
            image: Input image
            from_gallery: True for unenhanced contact-based photos

        Returns:
            Normalized grayscale image
        """
        return preprocess_fingerprint(image, from_gallery, self.config)

    def process_batch(self, images: list, from_gallery: bool = False) -> list:
        """
        Process a batch of images.

        Args:
            images: List of input images
            from_gallery: Source flag applied to every image

        Returns:
            List of normalized images
        """
        return [self(img, from_gallery) for img in images]

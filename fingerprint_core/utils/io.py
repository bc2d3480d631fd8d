"""
I/O utilities for the fingerprint matching core.

Provides functions for loading fingerprint images and persisting
extracted feature sets for diagnostics.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import cv2
import numpy as np


# Supported image extensions
SUPPORTED_EXTENSIONS = {'.tif', '.tiff', '.png', '.jpg', '.jpeg', '.bmp'}


def load_image(
    path: Union[str, Path],
    grayscale: bool = False
) -> np.ndarray:
    """
    Load an image from disk.

    Colour images are returned in OpenCV's BGR channel order; the
    preprocessor converts them to grayscale.

    Args:
        path: Path to the image file
        grayscale: Whether to load as grayscale

    Returns:
        Image as numpy array

    Raises:
        FileNotFoundError: If image file does not exist
        ValueError: If the extension is not supported or the image
            cannot be decoded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported image format: {path.suffix}")

    flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_UNCHANGED
    image = cv2.imread(str(path), flag)

    if image is None:
        raise ValueError(f"Failed to load image: {path}")

    return image


def save_image(image: np.ndarray, path: Union[str, Path]) -> None:
    """
    Save an image to disk.

    Binary masks (0/1) are stretched to 0/255 so they are visible.

    Args:
        image: Image as numpy array
        path: Output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if image.max(initial=0) <= 1:
        image = (image > 0).astype(np.uint8) * 255
    elif image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    cv2.imwrite(str(path), image)


def load_json(path: Union[str, Path]) -> Any:
    """Load a JSON file."""
    with open(path, 'r') as f:
        return json.load(f)


def save_json(data: Any, path: Union[str, Path], indent: int = 2) -> None:
    """Save data to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=indent, default=str)


def save_feature_set(features, path: Union[str, Path]) -> None:
    """
    Save a feature set to a JSON file.

    Args:
        features: FeatureSet to persist
        path: Output path
    """
    save_json(features.to_dict(), path)


def load_feature_set(path: Union[str, Path]):
    """
    Load a feature set written by :func:`save_feature_set`.

    Args:
        path: Path to the JSON file

    Returns:
        FeatureSet instance
    """
    from fingerprint_core.minutiae.minutiae_extraction import FeatureSet

    data: Dict[str, Any] = load_json(path)
    return FeatureSet.from_dict(data)

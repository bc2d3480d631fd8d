"""Tests for image and feature-set I/O."""

import numpy as np
import pytest

from fingerprint_core.utils.io import load_image, save_image


def test_image_round_trip(tmp_path):
    image = np.zeros((20, 30), dtype=np.uint8)
    image[5:10, :] = 200
    path = tmp_path / "nested" / "image.png"

    save_image(image, path)

    np.testing.assert_array_equal(load_image(path), image)


def test_binary_mask_is_stretched(tmp_path):
    mask = np.zeros((10, 10), dtype=np.uint8)
    mask[2:4, 2:4] = 1
    path = tmp_path / "mask.png"

    save_image(mask, path)

    assert set(np.unique(load_image(path, grayscale=True))) == {0, 255}


def test_missing_image(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "missing.png")


def test_unsupported_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("not an image")

    with pytest.raises(ValueError, match="Unsupported"):
        load_image(path)


def test_undecodable_image(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"not a png")

    with pytest.raises(ValueError, match="Failed to load"):
        load_image(path)

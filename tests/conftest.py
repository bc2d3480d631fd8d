"""
Shared fixtures: synthetic ridge images and hand-built minutiae sets.
"""

import cv2
import numpy as np
import pytest

from fingerprint_core.minutiae.minutiae_extraction import FeatureSet, Minutia, MinutiaeType


ENDING = MinutiaeType.ENDING
BIFURCATION = MinutiaeType.BIFURCATION


def make_minutiae(points, minutiae_type=ENDING):
    """Build minutiae from (x, y, angle) triples."""
    return [Minutia(x, y, angle, minutiae_type) for x, y, angle in points]


@pytest.fixture
def ridge_image():
    """Dark horizontal ridges on a light background, 400x400 BGR."""
    image = np.full((400, 400), 255, dtype=np.uint8)
    for y in range(40, 361, 16):
        cv2.line(image, (40, y), (360, y), 0, 5)
    return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)


@pytest.fixture
def distinct_set():
    """
    Six clustered endings whose orientations differ pairwise by more than
    0.5 rad, so only a minutia and its own copy score above acceptance.
    """
    angles = [0.0, 0.52, 1.04, 1.56, 2.08, 2.6]
    positions = [(100, 100), (120, 100), (140, 100), (100, 120), (120, 120), (140, 120)]
    return FeatureSet(tuple(
        Minutia(x, y, a, ENDING) for (x, y), a in zip(positions, angles)
    ), (500, 500))


@pytest.fixture
def two_pair_scenario():
    """
    Two ten-minutia sets sharing exactly one pair of neighboring endings.

    The remaining probe minutiae are bifurcations and the remaining
    reference minutiae are isolated endings, so neither can be accepted.
    """
    shared = [(100, 100, 0.0), (120, 100, 0.0)]

    probe = make_minutiae(shared) + make_minutiae(
        [(300 + 50 * k, 400, 0.0) for k in range(8)], BIFURCATION
    )
    reference = make_minutiae(shared) + make_minutiae(
        [(300 + 50 * k, 200, 0.0) for k in range(8)]
    )
    return FeatureSet(tuple(probe), (800, 500)), FeatureSet(tuple(reference), (800, 500))


@pytest.fixture
def line_skeleton():
    """One-pixel horizontal ridge from x=10 to x=39 on row 25."""
    skeleton = np.zeros((50, 50), dtype=np.uint8)
    skeleton[25, 10:40] = 1
    return skeleton


@pytest.fixture
def t_skeleton():
    """One-pixel T junction: a horizontal ridge with a ridge branching down."""
    skeleton = np.zeros((50, 50), dtype=np.uint8)
    skeleton[25, 10:41] = 1
    skeleton[26:41, 25] = 1
    return skeleton

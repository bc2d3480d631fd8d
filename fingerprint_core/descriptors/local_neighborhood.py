"""
Local neighborhood descriptors for minutiae.

Each minutia is described by the distances and relative orientations of
its nearest neighboring minutiae. These quantities do not change under
rotation and translation, so descriptors can be compared without first
aligning the two fingerprints.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from fingerprint_core.minutiae.minutiae_extraction import Minutia
from fingerprint_core.utils.config import DescriptorConfig


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# For a minutia m = (x, y, θ) and a neighbor n = (x', y', θ'):
#
#     d(m, n)  = sqrt((x - x')² + (y - y')²)
#     Δθ(m, n) = wrap(θ' - θ),  wrap into [-π, π)
#
# Only neighbors with d ≤ R are considered, and at most K of the nearest
# are kept. This bounds the descriptor size, so comparing two
# descriptors costs O(K²) regardless of how dense the minutiae are.
# =============================================================================


Neighbor = Tuple[float, float]


@dataclass(frozen=True)
class MinutiaDescriptor:
    """
    A minutia and its encoded local neighborhood.

    Attributes:
        minutia: The described minutia
        neighbors: (distance, relative_angle) pairs sorted by distance
    """
    minutia: Minutia
    neighbors: Tuple[Neighbor, ...] = ()

    def __len__(self) -> int:
        return len(self.neighbors)


def normalize_angle(angle: float) -> float:
    """
    Wrap an angle into [-π, π).

    Args:
        angle: Angle in radians

    Returns:
        Equivalent angle in [-π, π)
    """
    wrapped = (angle + math.pi) % (2 * math.pi) - math.pi
    return wrapped if wrapped < math.pi else -math.pi


def compute_descriptor(
    index: int,
    minutiae: Sequence[Minutia],
    radius: float = 40.0,
    max_neighbors: int = 8
) -> MinutiaDescriptor:
    """
    Build the descriptor of one minutia.

    Args:
        index: Index of the described minutia
        minutiae: Full minutiae set
        radius: Search radius in pixels
        max_neighbors: Maximum number of neighbors to keep

    Returns:
        MinutiaDescriptor
    """
    center = minutiae[index]
    neighbors: List[Neighbor] = []

    for j, other in enumerate(minutiae):
        if j == index:
            continue

        distance = math.hypot(other.x - center.x, other.y - center.y)
        if distance > radius:
            continue

        neighbors.append((distance, normalize_angle(other.angle - center.angle)))

    neighbors.sort(key=lambda n: n[0])

    return MinutiaDescriptor(center, tuple(neighbors[:max_neighbors]))


def build_descriptors(
    minutiae: Sequence[Minutia],
    config: Optional[DescriptorConfig] = None
) -> List[MinutiaDescriptor]:
    """
    Build descriptors for every minutia of a feature set.

    Args:
        minutiae: Minutiae (a FeatureSet or any sequence)
        config: Descriptor configuration

    Returns:
        Descriptors in the same order as the minutiae
    """
    config = config or DescriptorConfig()
    minutiae = list(minutiae)

    return [
        compute_descriptor(i, minutiae, config.radius, config.max_neighbors)
        for i in range(len(minutiae))
    ]

"""Propagation Bounded Context - Geometry helpers.

Pure 3D helpers shared by the augmentation engines. Coordinates are
converted to numpy vectors for arithmetic and back to new Coordinate
values; inputs are never modified.
"""

from __future__ import annotations

import math

import numpy as np

from domain.propagation.settings import DEFAULT_SETTINGS, PropagationSettings
from domain.propagation.value_objects import Coordinate


def distance(a: Coordinate, b: Coordinate) -> float:
    """Return the 3D Euclidean distance between two coordinates in metres."""
    return float(np.linalg.norm(b.as_array() - a.as_array()))


def mirror(point: Coordinate, through: Coordinate) -> Coordinate:
    """Reflect ``point`` through ``through`` (component-wise ``2*through - point``).

    Mirroring a point through its ground projection yields its image
    relative to the ground plane. Applying it twice returns the point.
    """
    return Coordinate.from_array(2.0 * through.as_array() - point.as_array())


def ray_curve_length(
    d: float, settings: PropagationSettings = DEFAULT_SETTINGS
) -> float:
    """Length of the circular arc replacing a straight ray of length ``d``.

    Under favorable conditions rays bend downward and are modeled as arcs
    of radius ``gamma = max(1000, 8 * d)``. The radius floor bounds
    curvature for short rays; the ``8 * d`` scaling keeps
    ``d / (2 * gamma) <= 1/16``, well inside the domain of ``asin``.

    Args:
        d: Straight-line distance in metres (non-negative)
        settings: Radius floor and scaling factor

    Returns:
        Arc length in metres, never shorter than ``d``

    Raises:
        ValueError: If d is negative or not finite

    Example:
        >>> round(ray_curve_length(500.0), 2)
        500.33
    """
    if not math.isfinite(d) or d < 0:
        raise ValueError(f"Distance must be finite and non-negative, got {d}")

    gamma = max(settings.min_curvature_radius_m, settings.curvature_radius_factor * d)
    arc = 2 * gamma * math.asin(d / (2 * gamma))

    # An arc is never shorter than its chord; guard against rounding
    return max(d, arc)

"""Propagation Bounded Context - Error Hierarchy.

Custom exceptions for propagation path augmentation.

Structural invariants of the value objects are enforced at construction
time (pydantic raises ValidationError). The errors below cover what can
only be detected while building or augmenting a path.
"""

from __future__ import annotations


class PropagationError(Exception):
    """Base error for propagation path operations."""


class InvalidPathError(PropagationError):
    """Path inputs are incomplete or structurally inconsistent."""


class DegenerateGeometryError(PropagationError):
    """Geometry cannot support the requested operation (e.g. zero-length line)."""


# ---------------------------------------------------------------------------
# Numeric domain errors
# ---------------------------------------------------------------------------
class DegenerateHeightError(PropagationError):
    """Effective heights of a segment do not sum to a positive value.

    The curvature test ratio divides by ``zs + zr``; a non-positive sum
    would yield an infinite or negative ratio.

    Attributes:
        segment_index: Index of the offending segment
        zs: Effective source height of the segment
        zr: Effective receiver height of the segment
    """

    def __init__(self, segment_index: int, zs: float, zr: float) -> None:
        self.segment_index = segment_index
        self.zs = zs
        self.zr = zr
        super().__init__(
            f"Segment {segment_index}: effective heights zs={zs:.6f}, zr={zr:.6f} "
            f"must sum to a positive value"
        )

"""Propagation Bounded Context - Value Objects.

Immutable data structures describing a single propagation path (input)
and its augmented geometry (output).
All validation occurs at construction time via Pydantic.

Coordinates are frozen values: deriving a ground-projected or mirrored
point always builds a new Coordinate, so a PathPoint shared by several
paths can never be altered by augmenting one of them.
"""

from __future__ import annotations

import math
from enum import Enum

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.propagation.errors import DegenerateGeometryError

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------
# Tolerance for floating-point consistency checks between derived fields
DERIVED_TOLERANCE_M = 1e-9


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------
class Coordinate(BaseModel):
    """Cartesian 3D position in metres (Value Object).

    Invariants:
        x, y and z are finite
    """

    x: float
    y: float
    z: float

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_finite(self) -> "Coordinate":
        if not all(math.isfinite(v) for v in (self.x, self.y, self.z)):
            raise ValueError(
                f"Coordinate components must be finite: ({self.x}, {self.y}, {self.z})"
            )
        return self

    @classmethod
    def from_array(cls, vector: NDArray[np.float64]) -> "Coordinate":
        """Build a Coordinate from a 3-element vector."""
        return cls(x=float(vector[0]), y=float(vector[1]), z=float(vector[2]))

    def as_array(self) -> NDArray[np.float64]:
        """Return a new float64 vector (callers may modify it freely)."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def shifted_z(self, dz: float) -> "Coordinate":
        """Return a copy of this coordinate moved vertically by ``dz``."""
        return Coordinate(x=self.x, y=self.y, z=self.z + dz)


# ---------------------------------------------------------------------------
# LineSegment
# ---------------------------------------------------------------------------
class LineSegment(BaseModel):
    """Straight segment between two coordinates (Value Object)."""

    start: Coordinate
    end: Coordinate

    model_config = ConfigDict(frozen=True)

    def length(self) -> float:
        """Return the 3D length of the segment."""
        return float(np.linalg.norm(self.end.as_array() - self.start.as_array()))

    def project(self, point: Coordinate) -> Coordinate:
        """Orthogonally project ``point`` onto the line through start and end.

        The projection is not clamped to the segment: the segment only
        defines the supporting line.

        Raises:
            DegenerateGeometryError: If start and end coincide
        """
        length = self.length()
        if length == 0.0:
            raise DegenerateGeometryError(
                "Cannot project onto a zero-length line segment"
            )
        origin = self.start.as_array()
        direction = self.end.as_array() - origin
        factor = float(np.dot(point.as_array() - origin, direction)) / length**2
        return Coordinate.from_array(origin + factor * direction)


# ---------------------------------------------------------------------------
# Input entities
# ---------------------------------------------------------------------------
class PointKind(str, Enum):
    """Role of a point along the propagation path."""

    SOURCE = "source"
    REFLECTION = "reflection"
    VERTICAL_DIFFRACTION = "vertical_diffraction"
    HORIZONTAL_DIFFRACTION = "horizontal_diffraction"
    RECEIVER = "receiver"


class PathPoint(BaseModel):
    """Position along the path as delivered by the ray tracer (Value Object).

    Invariants:
        PP-1: gs in [0, 1]
        PP-2: alpha_wall in [0, 1]
        PP-3: altitude is finite
    """

    coordinate: Coordinate
    altitude: float = Field(default=0.0, allow_inf_nan=False)  # Ground-floor offset
    gs: float = Field(default=0.0, ge=0, le=1)  # Ground porosity
    alpha_wall: float = Field(default=0.0, ge=0, le=1)  # Wall absorption
    kind: PointKind

    model_config = ConfigDict(frozen=True)


class GroundSegment(BaseModel):
    """Ground sub-path between two consecutive points (Value Object).

    ``gw`` and ``gm`` are optional ground coefficients supplied by the
    caller; they are carried unchanged to the augmented segment.
    """

    g_path: float = Field(ge=0, le=1)
    reference_line: LineSegment  # Mean ground line under the segment
    gw: float | None = Field(default=None, ge=0, le=1)
    gm: float | None = Field(default=None, ge=0, le=1)

    model_config = ConfigDict(frozen=True)


class SourceReceiverRay(BaseModel):
    """Caller-supplied straight line between the true source and receiver."""

    line: LineSegment

    model_config = ConfigDict(frozen=True)


class PropagationPath(BaseModel):
    """Ordered points, ground segments and initial ray of one path (Value Object).

    Invariants:
        PATH-1: len(points) >= 2
        PATH-2: len(segments) == len(points) - 1
        PATH-3: points[0] is the SOURCE, points[-1] the RECEIVER
        PATH-4: interior points are neither SOURCE nor RECEIVER
        PATH-5: ray joins the source and receiver coordinates
    """

    points: tuple[PathPoint, ...]
    segments: tuple[GroundSegment, ...]
    ray: SourceReceiverRay
    favorable: bool = False  # Downward-refracting atmosphere (curved rays)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_structure(self) -> "PropagationPath":
        """Validate all PropagationPath invariants."""
        # PATH-1
        if len(self.points) < 2:
            raise ValueError(f"Path must have >= 2 points, got {len(self.points)}")

        # PATH-2
        if len(self.segments) != len(self.points) - 1:
            raise ValueError(
                f"Path with {len(self.points)} points needs {len(self.points) - 1} "
                f"segments, got {len(self.segments)}"
            )

        # PATH-3
        if self.points[0].kind is not PointKind.SOURCE:
            raise ValueError(
                f"First point must be SOURCE, got {self.points[0].kind.name}"
            )
        if self.points[-1].kind is not PointKind.RECEIVER:
            raise ValueError(
                f"Last point must be RECEIVER, got {self.points[-1].kind.name}"
            )

        # PATH-4
        for i, point in enumerate(self.points[1:-1], start=1):
            if point.kind in (PointKind.SOURCE, PointKind.RECEIVER):
                raise ValueError(f"Interior point {i} cannot be {point.kind.name}")

        # PATH-5
        if (
            self.ray.line.start != self.points[0].coordinate
            or self.ray.line.end != self.points[-1].coordinate
        ):
            raise ValueError(
                "Ray must join the source and receiver coordinates, got "
                f"{self.ray.line.start} -> {self.ray.line.end}"
            )

        return self

    @property
    def source(self) -> PathPoint:
        return self.points[0]

    @property
    def receiver(self) -> PathPoint:
        return self.points[-1]

    @property
    def interior_points(self) -> tuple[PathPoint, ...]:
        """Reflection and diffraction points strictly between source and receiver."""
        return self.points[1:-1]


# ---------------------------------------------------------------------------
# Augmented (output) entities
# ---------------------------------------------------------------------------
class AugmentedSegment(BaseModel):
    """Ground segment with its derived heights, distances and coefficients.

    Invariants:
        AS-1: id_pt_final == id_pt_start + 1
        AS-2: d, dc, dp >= 0
        AS-3: dc >= d
    """

    id_pt_start: int = Field(ge=0)
    id_pt_final: int = Field(ge=1)
    g_path: float
    gw: float | None = None
    gm: float | None = None
    zs: float  # Effective source height above mean ground
    zr: float  # Effective receiver height above mean ground
    zs_prime: float  # zs with meteorological correction
    zr_prime: float  # zr with meteorological correction
    test_form: float  # dp / (30 * (zs + zr))
    test_form_prime: float  # dp / (30 * (zs' + zr'))
    g_path_prime: float  # Ground coefficient mixed with source gs
    d: float = Field(ge=0)  # Direct distance
    dc: float = Field(ge=0)  # Direct distance, curved if favorable
    dp: float = Field(ge=0)  # Distance on the mean ground plane

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_segment(self) -> "AugmentedSegment":
        # AS-1
        if self.id_pt_final != self.id_pt_start + 1:
            raise ValueError(
                f"Segment must span consecutive points, got "
                f"{self.id_pt_start} -> {self.id_pt_final}"
            )
        # AS-3
        if self.dc < self.d - DERIVED_TOLERANCE_M:
            raise ValueError(f"Curved distance {self.dc} shorter than direct {self.d}")
        return self


class AugmentedPoint(BaseModel):
    """Path point with its position in the path.

    Per-point derived attributes (e.g. local impedance) will live here.
    """

    index: int = Field(ge=0)
    point: PathPoint

    model_config = ConfigDict(frozen=True)


class RayKind(str, Enum):
    """Which endpoints of a whole-path ray are mirrored through the ground."""

    DIRECT = "direct"  # S - R
    IMAGE_RECEIVER = "image_receiver"  # S - R'
    IMAGE_SOURCE = "image_source"  # S' - R


class AugmentedRay(BaseModel):
    """Whole-path ray alternative with its distances.

    Invariants:
        AR-1: d, dc, dp, d_path >= 0
        AR-2: delta == d_path - dc
    """

    kind: RayKind
    line: LineSegment
    d: float = Field(ge=0)  # Direct distance between the endpoints
    dc: float = Field(ge=0)  # Direct distance, curved if favorable
    dp: float = Field(ge=0)  # Distance between ground projections of S and R
    d_path: float = Field(ge=0)  # Length through the diffraction points
    e_length: float | None = None  # Length between first and last diffraction point
    delta: float  # Path-length difference d_path - dc

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_delta(self) -> "AugmentedRay":
        # AR-2
        if abs(self.delta - (self.d_path - self.dc)) > DERIVED_TOLERANCE_M:
            raise ValueError(
                f"delta ({self.delta}) must equal d_path - dc ({self.d_path - self.dc})"
            )
        return self


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------
class SegmentStage(BaseModel):
    """Output of the segment augmentation phase."""

    path: PropagationPath
    segments: tuple[AugmentedSegment, ...]

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_stage(self) -> "SegmentStage":
        if len(self.segments) != len(self.path.segments):
            raise ValueError(
                f"Expected {len(self.path.segments)} augmented segments, "
                f"got {len(self.segments)}"
            )
        return self


class PointStage(BaseModel):
    """Output of the point augmentation phase (requires a SegmentStage)."""

    segment_stage: SegmentStage
    points: tuple[AugmentedPoint, ...]

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_stage(self) -> "PointStage":
        expected = len(self.segment_stage.path.points)
        if len(self.points) != expected:
            raise ValueError(
                f"Expected {expected} augmented points, got {len(self.points)}"
            )
        return self

    @property
    def path(self) -> PropagationPath:
        return self.segment_stage.path


class AugmentedPath(BaseModel):
    """Fully augmented propagation path (Value Object).

    Invariants:
        AP-1: one augmented segment per input segment
        AP-2: one augmented point per input point
        AP-3: exactly three rays, ordered DIRECT, IMAGE_RECEIVER, IMAGE_SOURCE
    """

    path: PropagationPath
    segments: tuple[AugmentedSegment, ...]
    points: tuple[AugmentedPoint, ...]
    rays: tuple[AugmentedRay, ...]

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_path(self) -> "AugmentedPath":
        # AP-1
        if len(self.segments) != len(self.path.segments):
            raise ValueError("Augmented segment count does not match the path")
        # AP-2
        if len(self.points) != len(self.path.points):
            raise ValueError("Augmented point count does not match the path")
        # AP-3
        kinds = tuple(ray.kind for ray in self.rays)
        expected = (RayKind.DIRECT, RayKind.IMAGE_RECEIVER, RayKind.IMAGE_SOURCE)
        if kinds != expected:
            raise ValueError(f"Rays must be {[k.name for k in expected]}, got {kinds}")
        return self

    @property
    def favorable(self) -> bool:
        return self.path.favorable

    @property
    def direct(self) -> AugmentedRay:
        return self.rays[0]

    @property
    def image_receiver(self) -> AugmentedRay:
        return self.rays[1]

    @property
    def image_source(self) -> AugmentedRay:
        return self.rays[2]

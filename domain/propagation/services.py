"""Propagation Bounded Context - Domain Services.

Pure domain logic augmenting a PropagationPath with the geometric
quantities used by the attenuation formulas. NO I/O operations.

The pipeline runs three phases in a fixed order:

    augment_segments -> augment_points -> augment_rays

Each phase only accepts the output of the previous one, so the order is
enforced by the types. Production code calls ``augment_path`` (or
``PropagationPathBuilder.augment``); the individual phases are public for
testing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from domain.propagation.errors import DegenerateHeightError, InvalidPathError
from domain.propagation.geometry import distance, mirror, ray_curve_length
from domain.propagation.settings import DEFAULT_SETTINGS, PropagationSettings
from domain.propagation.value_objects import (
    AugmentedPath,
    AugmentedPoint,
    AugmentedRay,
    AugmentedSegment,
    Coordinate,
    GroundSegment,
    LineSegment,
    PathPoint,
    PointKind,
    PointStage,
    PropagationPath,
    RayKind,
    SegmentStage,
    SourceReceiverRay,
)

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Segment Augmentation
# ---------------------------------------------------------------------------
def corrected_heights(
    zs: float, zr: float, dp: float, settings: PropagationSettings = DEFAULT_SETTINGS
) -> tuple[float, float]:
    """Apply the second-order meteorological correction to effective heights.

    Args:
        zs: Effective source height (zs + zr must be positive)
        zr: Effective receiver height
        dp: Distance on the mean ground plane
        settings: alpha0 and turbulence coefficient

    Returns:
        Tuple of (zs_prime, zr_prime)
    """
    total = zs + zr
    delta_zt = settings.turbulence_coefficient * dp / total
    delta_zs = settings.alpha0 * (zs / total) ** 2 * (dp**2 / 2)
    delta_zr = settings.alpha0 * (zr / total) ** 2 * (dp**2 / 2)
    return zs + delta_zs + delta_zt, zr + delta_zr + delta_zt


def mixed_ground_coefficient(test_form: float, g_path: float, gs: float) -> float:
    """Blend the segment ground coefficient with the source ground porosity.

    Close to the source (test_form <= 1) the source ground weighs in;
    otherwise the segment coefficient is kept unchanged.
    """
    if test_form <= 1:
        return test_form * g_path + (1 - test_form) * gs
    return g_path


def _augment_segment(
    index: int,
    segment: GroundSegment,
    start: PathPoint,
    end: PathPoint,
    source_gs: float,
    favorable: bool,
    settings: PropagationSettings,
) -> AugmentedSegment:
    zs = start.altitude + start.coordinate.z
    zr = end.altitude + end.coordinate.z
    if zs + zr <= 0:
        logger.warning(
            "Segment %d has non-positive height sum zs=%s zr=%s", index, zs, zr
        )
        raise DegenerateHeightError(index, zs, zr)

    # Ground projection builds new coordinates; the points keep their height
    start_ground = start.coordinate.shifted_z(-zs)
    end_ground = end.coordinate.shifted_z(-zr)

    dp = distance(start_ground, end_ground)
    d = distance(start.coordinate, end.coordinate)
    dc = ray_curve_length(d, settings) if favorable else d

    test_form = dp / (settings.test_form_factor * (zs + zr))
    zs_prime, zr_prime = corrected_heights(zs, zr, dp, settings)
    test_form_prime = dp / (settings.test_form_factor * (zs_prime + zr_prime))

    return AugmentedSegment(
        id_pt_start=index,
        id_pt_final=index + 1,
        g_path=segment.g_path,
        gw=segment.gw,
        gm=segment.gm,
        zs=zs,
        zr=zr,
        zs_prime=zs_prime,
        zr_prime=zr_prime,
        test_form=test_form,
        test_form_prime=test_form_prime,
        g_path_prime=mixed_ground_coefficient(test_form, segment.g_path, source_gs),
        d=d,
        dc=dc,
        dp=dp,
    )


def augment_segments(
    path: PropagationPath, settings: PropagationSettings = DEFAULT_SETTINGS
) -> SegmentStage:
    """Compute heights, distances and ground coefficients of every segment.

    Segment i spans points i and i+1. The ground porosity mixed into
    ``g_path_prime`` is always the one of the path's source point.

    Raises:
        DegenerateHeightError: If a segment's zs + zr is not positive
    """
    source_gs = path.source.gs
    segments = tuple(
        _augment_segment(
            i,
            segment,
            path.points[i],
            path.points[i + 1],
            source_gs,
            path.favorable,
            settings,
        )
        for i, segment in enumerate(path.segments)
    )
    logger.debug(
        "Augmented %d segments (favorable=%s)", len(segments), path.favorable
    )
    return SegmentStage(path=path, segments=segments)


# ---------------------------------------------------------------------------
# Point Augmentation
# ---------------------------------------------------------------------------
def augment_points(
    stage: SegmentStage, settings: PropagationSettings = DEFAULT_SETTINGS
) -> PointStage:
    """Attach per-point derived attributes.

    No attribute is derived yet; the phase only indexes the points so that
    point-level quantities can be added without reordering the pipeline.
    """
    points = tuple(
        AugmentedPoint(index=i, point=point)
        for i, point in enumerate(stage.path.points)
    )
    logger.debug("Augmented %d points", len(points))
    return PointStage(segment_stage=stage, points=points)


# ---------------------------------------------------------------------------
# Global Ray Augmentation
# ---------------------------------------------------------------------------
def _path_length(
    start: Coordinate,
    end: Coordinate,
    interior: tuple[Coordinate, ...],
    inner: float,
    leg: Callable[[Coordinate, Coordinate], float],
) -> float:
    """Length from start to end through the interior points."""
    if not interior:
        return leg(start, end)
    return inner + leg(start, interior[0]) + leg(interior[-1], end)


def augment_rays(
    stage: PointStage, settings: PropagationSettings = DEFAULT_SETTINGS
) -> AugmentedPath:
    """Build the direct and the two ground-image rays of the whole path.

    Source and receiver are projected onto the mean ground line of the
    first segment and mirrored through their projections. The rays are
    returned in the order S-R, S-R', S'-R.

    Under favorable conditions every leg is replaced by its curved length
    and ``dc`` is the curved direct distance; otherwise ``dc == d``.

    Raises:
        DegenerateGeometryError: If the first segment's reference line has
            zero length
    """
    path = stage.path
    favorable = path.favorable

    def leg(a: Coordinate, b: Coordinate) -> float:
        straight = distance(a, b)
        return ray_curve_length(straight, settings) if favorable else straight

    ground_line = path.segments[0].reference_line
    source = path.source.coordinate
    receiver = path.receiver.coordinate
    source_ground = ground_line.project(source)
    receiver_ground = ground_line.project(receiver)
    source_image = mirror(source, source_ground)
    receiver_image = mirror(receiver, receiver_ground)

    dp = distance(source_ground, receiver_ground)

    interior = tuple(p.coordinate for p in path.interior_points)
    inner = sum((leg(a, b) for a, b in zip(interior, interior[1:])), 0.0)

    # Diffraction length is only reported past the minimum point count
    min_points = 2 if favorable else 3
    e_length = inner if len(path.points) > min_points else None

    alternatives = (
        (RayKind.DIRECT, path.ray.line),
        (RayKind.IMAGE_RECEIVER, LineSegment(start=source, end=receiver_image)),
        (RayKind.IMAGE_SOURCE, LineSegment(start=source_image, end=receiver)),
    )

    rays: list[AugmentedRay] = []
    for kind, line in alternatives:
        d = distance(line.start, line.end)
        dc = ray_curve_length(d, settings) if favorable else d
        d_path = _path_length(line.start, line.end, interior, inner, leg)
        rays.append(
            AugmentedRay(
                kind=kind,
                line=line,
                d=d,
                dc=dc,
                dp=dp,
                d_path=d_path,
                e_length=e_length,
                delta=d_path - dc,
            )
        )

    logger.debug(
        "Augmented rays: d=%.3f dp=%.3f d_path=%.3f (favorable=%s)",
        rays[0].d,
        dp,
        rays[0].d_path,
        favorable,
    )

    return AugmentedPath(
        path=path,
        segments=stage.segment_stage.segments,
        points=stage.points,
        rays=tuple(rays),
    )


# ---------------------------------------------------------------------------
# Main Service: augment_path
# ---------------------------------------------------------------------------
def augment_path(
    path: PropagationPath, settings: PropagationSettings | None = None
) -> AugmentedPath:
    """Run the full augmentation pipeline on a propagation path.

    Runs segment, point and global ray augmentation exactly once, in that
    order. The input path is never modified, so calling this twice with the
    same path returns equal results.

    Args:
        path: Validated propagation path from the ray tracer
        settings: Model constants. If None, DEFAULT_SETTINGS

    Returns:
        AugmentedPath with per-segment and per-ray quantities

    Raises:
        DegenerateHeightError: If a segment's zs + zr is not positive
        DegenerateGeometryError: If the first reference line has zero length

    Example:
        >>> augmented = augment_path(path)
        >>> print(f"gPath': {augmented.segments[0].g_path_prime:.3f}")
        >>> print(f"delta: {augmented.direct.delta:.3f}")
    """
    if settings is None:
        settings = DEFAULT_SETTINGS

    segment_stage = augment_segments(path, settings)
    point_stage = augment_points(segment_stage, settings)
    return augment_rays(point_stage, settings)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------
class PropagationPathBuilder:
    """Collects raw ray-tracer output and builds a PropagationPath.

    Example:
        >>> builder = PropagationPathBuilder(favorable=True)
        >>> builder.add_point(source).add_point(receiver)
        >>> builder.add_segment(GroundSegment(g_path=0.5, reference_line=ground))
        >>> augmented = builder.augment()
    """

    def __init__(self, favorable: bool = False) -> None:
        self._favorable = favorable
        self._points: list[PathPoint] = []
        self._segments: list[GroundSegment] = []
        self._ray: SourceReceiverRay | None = None

    def favorable(self, favorable: bool = True) -> "PropagationPathBuilder":
        self._favorable = favorable
        return self

    def add_point(self, point: PathPoint) -> "PropagationPathBuilder":
        self._points.append(point)
        return self

    def add_segment(self, segment: GroundSegment) -> "PropagationPathBuilder":
        self._segments.append(segment)
        return self

    def with_ray(self, ray: SourceReceiverRay) -> "PropagationPathBuilder":
        self._ray = ray
        return self

    def build(self) -> PropagationPath:
        """Return a validated PropagationPath.

        When no ray was given, the direct ray joins the first and last
        point coordinates.

        Raises:
            InvalidPathError: If no source or receiver point was added
            ValueError: If the collected inputs violate a path invariant
        """
        if len(self._points) < 2:
            raise InvalidPathError(
                f"Path needs a source and a receiver, got {len(self._points)} point(s)"
            )
        if self._points[0].kind is not PointKind.SOURCE:
            raise InvalidPathError("First point added must be the source")

        ray = self._ray
        if ray is None:
            ray = SourceReceiverRay(
                line=LineSegment(
                    start=self._points[0].coordinate, end=self._points[-1].coordinate
                )
            )

        return PropagationPath(
            points=tuple(self._points),
            segments=tuple(self._segments),
            ray=ray,
            favorable=self._favorable,
        )

    def augment(self, settings: PropagationSettings | None = None) -> AugmentedPath:
        """Build the path and run the augmentation pipeline."""
        return augment_path(self.build(), settings)

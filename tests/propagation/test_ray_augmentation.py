"""Tests for the point and global ray augmentation phases.

Reference geometry (see tests/conftest_utils.py):
- two_point_path: S=(0,0,1), R=(100,0,1), flat ground at z=0
- diffracted_path: adds a 10 m edge at x=50 (|S D| = sqrt(2581))
- double_diffracted_path: edges at x=40 and x=60 (|S D1| = 41, |D1 D2| = 20)
"""

from __future__ import annotations

import math

import pytest

from domain.propagation.errors import DegenerateGeometryError
from domain.propagation.geometry import ray_curve_length
from domain.propagation.services import augment_points, augment_rays, augment_segments
from domain.propagation.value_objects import (
    AugmentedPath,
    Coordinate,
    GroundSegment,
    LineSegment,
    PropagationPath,
    RayKind,
)
from tests.conftest_utils import (
    coord,
    diffracted_path,
    double_diffracted_path,
    make_path,
    two_point_path,
)


def xyz(point: Coordinate) -> tuple[float, float, float]:
    return (point.x, point.y, point.z)


def run_rays(path: PropagationPath) -> AugmentedPath:
    """Run the phases in pipeline order up to the global rays."""
    return augment_rays(augment_points(augment_segments(path)))


# ===========================================================================
# Point augmentation
# ===========================================================================
def test_point_phase_indexes_every_point(diffracted: PropagationPath):
    stage = augment_points(augment_segments(diffracted))

    assert [p.index for p in stage.points] == [0, 1, 2]
    assert tuple(p.point for p in stage.points) == diffracted.points
    assert stage.path is diffracted


# ===========================================================================
# Ray alternatives
# ===========================================================================
def test_three_rays_in_fixed_order(straight_path: PropagationPath):
    result = run_rays(straight_path)

    assert [r.kind for r in result.rays] == [
        RayKind.DIRECT,
        RayKind.IMAGE_RECEIVER,
        RayKind.IMAGE_SOURCE,
    ]
    assert result.direct.line == straight_path.ray.line


def test_image_rays_use_mirrored_endpoints(straight_path: PropagationPath):
    result = run_rays(straight_path)

    assert result.image_receiver.line.start == coord(0.0, 0.0, 1.0)
    assert xyz(result.image_receiver.line.end) == pytest.approx((100.0, 0.0, -1.0))
    assert xyz(result.image_source.line.start) == pytest.approx((0.0, 0.0, -1.0))
    assert result.image_source.line.end == coord(100.0, 0.0, 1.0)


def test_two_point_ray_distances(straight_path: PropagationPath):
    result = run_rays(straight_path)

    assert result.direct.d == pytest.approx(100.0)
    assert result.image_receiver.d == pytest.approx(math.sqrt(100.0**2 + 2.0**2))
    assert result.image_source.d == pytest.approx(math.sqrt(100.0**2 + 2.0**2))
    for ray in result.rays:
        assert ray.dp == pytest.approx(100.0)
        # No diffraction point: the path is the direct leg
        assert ray.d_path == pytest.approx(ray.d)
        assert ray.delta == pytest.approx(0.0)
        assert ray.e_length is None


def test_mean_plane_distance_is_shared(diffracted: PropagationPath):
    result = run_rays(diffracted)
    assert result.direct.dp == result.image_receiver.dp == result.image_source.dp


def test_unfavorable_dc_equals_d():
    for path in (two_point_path(), diffracted_path(), double_diffracted_path()):
        for ray in run_rays(path).rays:
            assert ray.dc == ray.d


def test_favorable_dc_is_curved():
    for path in (
        two_point_path(favorable=True),
        diffracted_path(favorable=True),
        double_diffracted_path(favorable=True),
    ):
        for ray in run_rays(path).rays:
            assert ray.dc == pytest.approx(ray_curve_length(ray.d))
            assert ray.dc >= ray.d


# ===========================================================================
# Path length through diffraction points
# ===========================================================================
def test_path_length_through_single_edge(diffracted: PropagationPath):
    result = run_rays(diffracted)
    leg = math.sqrt(50.0**2 + 9.0**2)
    image_leg = math.sqrt(50.0**2 + 11.0**2)

    assert result.direct.d_path == pytest.approx(2 * leg)
    assert result.direct.delta == pytest.approx(2 * leg - 100.0)
    assert result.image_receiver.d_path == pytest.approx(leg + image_leg)
    assert result.image_source.d_path == pytest.approx(leg + image_leg)


def test_path_length_through_two_edges():
    result = run_rays(double_diffracted_path())

    assert result.direct.d_path == pytest.approx(41.0 + 20.0 + 41.0)
    assert result.direct.delta == pytest.approx(2.0)


def test_favorable_legs_are_curved():
    result = run_rays(double_diffracted_path(favorable=True))
    expected = 2 * ray_curve_length(41.0) + ray_curve_length(20.0)

    assert result.direct.d_path == pytest.approx(expected)
    assert result.direct.delta == pytest.approx(expected - ray_curve_length(100.0))


# ===========================================================================
# Diffraction excess length
# ===========================================================================
def test_e_length_unfavorable_needs_two_interior_points(diffracted: PropagationPath):
    assert all(r.e_length is None for r in run_rays(diffracted).rays)

    result = run_rays(double_diffracted_path())
    assert [r.e_length for r in result.rays] == pytest.approx([20.0, 20.0, 20.0])


def test_e_length_favorable_needs_one_interior_point():
    short = run_rays(two_point_path(favorable=True))
    assert all(r.e_length is None for r in short.rays)

    single = run_rays(diffracted_path(favorable=True))
    assert [r.e_length for r in single.rays] == [0.0, 0.0, 0.0]

    double = run_rays(double_diffracted_path(favorable=True))
    assert double.direct.e_length == pytest.approx(ray_curve_length(20.0))


# ===========================================================================
# Ground reference line
# ===========================================================================
def test_rays_mirror_through_lowered_ground():
    path = diffracted_path()
    ground = LineSegment(start=coord(0.0, 0.0, -1.0), end=coord(100.0, 0.0, -1.0))
    result = run_rays(make_path(list(path.points), [0.2, 0.8], ground=ground))

    assert xyz(result.image_source.line.start) == pytest.approx((0.0, 0.0, -3.0))
    assert result.image_source.d == pytest.approx(math.sqrt(100.0**2 + 4.0**2))
    assert result.direct.dp == pytest.approx(100.0)


def test_only_first_segment_line_is_used():
    path = diffracted_path()
    other = LineSegment(start=coord(0.0, 5.0, 3.0), end=coord(100.0, -5.0, 7.0))
    altered = path.model_copy(
        update={
            "segments": (
                path.segments[0],
                GroundSegment(g_path=0.8, reference_line=other),
            )
        }
    )

    assert run_rays(altered).rays == run_rays(path).rays


def test_zero_length_ground_line_raises():
    path = two_point_path()
    point = coord(0.0, 0.0, 0.0)
    degenerate = make_path(
        list(path.points), [0.5], ground=LineSegment(start=point, end=point)
    )

    with pytest.raises(DegenerateGeometryError):
        run_rays(degenerate)

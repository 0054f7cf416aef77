"""Root pytest configuration for all tests.

Provides fixtures for the reference paths used across the propagation
tests. Paths are plain value objects, so fixtures are function-scoped and
cheap to rebuild.
"""

import pytest

from domain.propagation.value_objects import PropagationPath
from tests.conftest_utils import diffracted_path, two_point_path


@pytest.fixture
def straight_path() -> PropagationPath:
    """Two-point path under homogeneous (unfavorable) conditions."""
    return two_point_path(favorable=False)


@pytest.fixture
def favorable_straight_path() -> PropagationPath:
    """Two-point path under favorable (downward-refracting) conditions."""
    return two_point_path(favorable=True)


@pytest.fixture
def diffracted() -> PropagationPath:
    """Three-point path with one diffraction edge, unfavorable."""
    return diffracted_path(favorable=False)

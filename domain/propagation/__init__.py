"""Propagation Bounded Context.

Responsible for the geometry of a single sound propagation path:
- Value Objects: Coordinate, LineSegment, PathPoint, GroundSegment,
  PropagationPath, AugmentedSegment, AugmentedRay, AugmentedPath
- Services: augment_path (segment -> point -> global ray pipeline),
  PropagationPathBuilder
"""

from domain.propagation.services import PropagationPathBuilder, augment_path

__all__ = ["PropagationPathBuilder", "augment_path"]

"""Noise Path Domain Layer.

This package contains the core computation logic organized by bounded contexts:
- propagation: Propagation path geometry (heights, distances, ground mixing,
  mirrored rays)
"""

from domain import propagation

__all__ = ["propagation"]

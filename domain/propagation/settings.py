"""Propagation Bounded Context - Settings.

Numeric constants of the meteorological model, grouped in an immutable
settings object so callers can override them per computation.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------
ALPHA0 = 2e-4  # Second-order height correction for favorable conditions
TURBULENCE_COEFFICIENT = 6e-3  # Height correction due to turbulence
TEST_FORM_FACTOR = 30.0  # dp / (30 * (zs + zr)) curvature test ratio
MIN_CURVATURE_RADIUS_M = 1000.0  # Radius floor of a curved ray
CURVATURE_RADIUS_FACTOR = 8.0  # Radius grows as 8 * d beyond the floor


class PropagationSettings(BaseModel):
    """Constants used by the augmentation engines (Value Object).

    Defaults reproduce the reference meteorological model. All values are
    strictly positive.
    """

    alpha0: float = Field(default=ALPHA0, gt=0)
    turbulence_coefficient: float = Field(default=TURBULENCE_COEFFICIENT, gt=0)
    test_form_factor: float = Field(default=TEST_FORM_FACTOR, gt=0)
    min_curvature_radius_m: float = Field(default=MIN_CURVATURE_RADIUS_M, gt=0)
    curvature_radius_factor: float = Field(default=CURVATURE_RADIUS_FACTOR, gt=0)

    model_config = ConfigDict(frozen=True)


DEFAULT_SETTINGS = PropagationSettings()

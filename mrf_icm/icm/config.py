"""
MRF Configuration

Options recognised by the MRF image filter and its ICM controller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..errors import ConfigurationError


class ErrorPolicy(Enum):
    """How the per-pass error compared against error_tolerance is computed."""
    RATIO = "ratio"
    """Changed elements divided by total elements."""

    COUNT = "count"
    """Raw number of changed elements."""


@dataclass
class MRFConfig:
    """
    Configuration for MRF label refinement.

    Attributes:
        n_classes: Number of classes (required, > 0)
        max_iterations: Maximum number of ICM passes
        error_tolerance: Stop once the pass error is <= this value
        neighborhood_radius: Scalar radius for every dimension, or one per dimension
        neighborhood_weights: Flattened weight table. None selects the default
            table, which only exists for a 3-D radius-1 neighborhood.
        error_policy: Error metric compared against error_tolerance
        record_energy: Compute the total energy after every pass
    """
    n_classes: int
    """Number of classes labels are drawn from."""

    max_iterations: int = 50
    """Maximum number of ICM passes (default: 50)."""

    error_tolerance: float = 1e-3
    """Convergence threshold on the pass error (default: 1e-3)."""

    neighborhood_radius: Union[int, Sequence[int]] = 1
    """Neighborhood radius (default: 1 in every dimension)."""

    neighborhood_weights: Optional[Sequence[float]] = None
    """Neighbor weights in kernel-index order (default: built-in 3x3x3 table)."""

    error_policy: ErrorPolicy = ErrorPolicy.RATIO
    """Error metric (default: changed/total ratio)."""

    record_energy: bool = False
    """Record total energy per pass in the run history."""

    def __post_init__(self):
        """Validate configuration parameters."""
        if isinstance(self.error_policy, str):
            try:
                self.error_policy = ErrorPolicy(self.error_policy)
            except ValueError:
                raise ConfigurationError(
                    f"error_policy must be one of {[p.value for p in ErrorPolicy]}, "
                    f"got '{self.error_policy}'"
                )
        if self.n_classes is None or int(self.n_classes) <= 0:
            raise ConfigurationError(f"n_classes must be > 0, got {self.n_classes}")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if not self.error_tolerance >= 0:
            raise ConfigurationError(
                f"error_tolerance must be >= 0, got {self.error_tolerance}"
            )
        if self.neighborhood_weights is not None:
            self.neighborhood_weights = tuple(float(w) for w in self.neighborhood_weights)

    def describe(self) -> Dict[str, Any]:
        """Plain-dict view of the configuration, suitable for JSON."""
        radius = self.neighborhood_radius
        radius = int(radius) if np.isscalar(radius) else [int(r) for r in radius]
        return {
            'n_classes': int(self.n_classes),
            'max_iterations': int(self.max_iterations),
            'error_tolerance': float(self.error_tolerance),
            'neighborhood_radius': radius,
            'neighborhood_weights': (
                None if self.neighborhood_weights is None else list(self.neighborhood_weights)
            ),
            'error_policy': self.error_policy.value,
            'record_energy': bool(self.record_energy),
        }

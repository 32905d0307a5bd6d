"""
Neighbor influence weights for the MRF energy.

A weight table holds one nonnegative weight per position of the
(2r + 1) x ... x (2r + 1) neighborhood box, addressed by kernel index
(see window.kernel_offsets). The center entry is never used: an element
does not influence its own label.
"""

from typing import Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ConfigurationError
from .window import Radius, kernel_offsets, kernel_shape, neighborhood_size, normalize_radius


# Default 3x3x3 table for volumes stored as (slice, row, col).
# Previous and next slices: 1.3, 1.5 at the same in-plane location.
# Current slice: 1.7, center 0.
DEFAULT_RADIUS_3D: Radius = (1, 1, 1)
DEFAULT_WEIGHTS_3D: Tuple[float, ...] = (
    1.3, 1.3, 1.3,
    1.3, 1.5, 1.3,
    1.3, 1.3, 1.3,

    1.7, 1.7, 1.7,
    1.7, 0.0, 1.7,
    1.7, 1.7, 1.7,

    1.3, 1.3, 1.3,
    1.3, 1.5, 1.3,
    1.3, 1.3, 1.3,
)


class NeighborWeightTable:
    """
    Flattened weight table for a fixed neighborhood radius.

    Example:
        >>> table = NeighborWeightTable.configure((1, 1, 1))   # default table
        >>> table.weight_at(4)
        1.5
        >>> table = uniform_weights((1, 1), value=0.5)         # 8-neighborhood
        >>> len(table)
        9
    """

    def __init__(self, radius: Sequence[int], weights: Sequence[float]):
        """
        Args:
            radius: Per-dimension neighborhood radius
            weights: One weight per kernel position, in kernel-index order

        Raises:
            ConfigurationError: If the weight count does not match the
                neighborhood size, or a weight is negative or non-finite
        """
        self._radius = normalize_radius(radius)
        values = np.array(weights, dtype=np.float64).ravel()

        expected = neighborhood_size(self._radius)
        if values.size != expected:
            raise ConfigurationError(
                f"Weight table has {values.size} entries, neighborhood of radius "
                f"{self._radius} needs {expected}"
            )
        if not np.all(np.isfinite(values)):
            raise ConfigurationError("Neighborhood weights must be finite")
        if np.any(values < 0):
            raise ConfigurationError(
                f"Neighborhood weights must be nonnegative, got min {values.min()}"
            )

        self._weights = values
        self._weights.setflags(write=False)
        self._offsets = kernel_offsets(self._radius)

    @classmethod
    def configure(
        cls,
        radius: Sequence[int],
        weights: Optional[Sequence[float]] = None
    ) -> 'NeighborWeightTable':
        """
        Build a table, falling back to the default 3x3x3 table.

        Args:
            radius: Per-dimension neighborhood radius
            weights: Explicit weights. If None, the default table is used,
                which only exists for radius (1, 1, 1).

        Raises:
            ConfigurationError: If weights are missing for a radius other than
                (1, 1, 1), or do not match the neighborhood size
        """
        radius = normalize_radius(radius)
        if weights is None:
            if radius != DEFAULT_RADIUS_3D:
                raise ConfigurationError(
                    f"No default neighborhood weights for radius {radius}; "
                    f"only {DEFAULT_RADIUS_3D} has one. Provide neighborhood_weights."
                )
            weights = DEFAULT_WEIGHTS_3D
        return cls(radius, weights)

    @classmethod
    def from_kernel(cls, kernel: np.ndarray) -> 'NeighborWeightTable':
        """
        Build a table from a kernel-shaped array, e.g. a 3x3 grid of weights.

        Raises:
            ConfigurationError: If any kernel extent is even
        """
        kernel = np.asarray(kernel, dtype=np.float64)
        if kernel.ndim == 0 or any(s % 2 == 0 for s in kernel.shape):
            raise ConfigurationError(
                f"Kernel extents must be odd, got shape {kernel.shape}"
            )
        radius = tuple(s // 2 for s in kernel.shape)
        return cls(radius, kernel.ravel())

    @property
    def radius(self) -> Radius:
        return self._radius

    @property
    def ndim(self) -> int:
        return len(self._radius)

    @property
    def size(self) -> int:
        return self._weights.size

    @property
    def kernel_shape(self) -> Tuple[int, ...]:
        return kernel_shape(self._radius)

    @property
    def center_index(self) -> int:
        return self.size // 2

    @property
    def weights(self) -> Tuple[float, ...]:
        return tuple(float(w) for w in self._weights)

    def __len__(self) -> int:
        return self.size

    def weight_at(self, index: int) -> float:
        """Weight of the offset with the given full-kernel index."""
        return float(self._weights[index])

    def as_kernel(self) -> np.ndarray:
        """Weights reshaped to the neighborhood box."""
        return self._weights.reshape(self.kernel_shape).copy()

    def neighbors(self) -> Iterator[Tuple[int, Tuple[int, ...], float]]:
        """Yield (index, offset, weight) for every non-center position."""
        center = self.center_index
        for index, offset in enumerate(self._offsets):
            if index != center:
                yield index, offset, float(self._weights[index])

    def __repr__(self) -> str:
        return f"NeighborWeightTable(radius={self._radius}, size={self.size})"


def uniform_weights(
    radius: Union[int, Sequence[int]],
    value: float = 1.0,
    ndim: Optional[int] = None
) -> NeighborWeightTable:
    """
    Table with the same weight at every non-center position.

    Args:
        radius: Per-dimension radius, or a scalar together with ndim
        value: Weight for every neighbor
        ndim: Dimensionality used to broadcast a scalar radius

    Example:
        >>> table = uniform_weights(1, value=2.0, ndim=2)
        >>> table.as_kernel()
        array([[2., 2., 2.],
               [2., 0., 2.],
               [2., 2., 2.]])
    """
    radius = normalize_radius(radius, ndim)
    weights = np.full(neighborhood_size(radius), float(value))
    weights[weights.size // 2] = 0.0
    return NeighborWeightTable(radius, weights)

"""
Neighborhood windows over N-dimensional label images.

Offsets inside a radius box are enumerated lexicographically in array axis
order (last axis varies fastest). The position of an offset in that
enumeration is its kernel index, which is how weight tables are addressed.
Near the image border a window only contains the in-bounds neighbors, but
each one keeps its full-kernel index.
"""

from dataclasses import dataclass
from itertools import product
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ConfigurationError, DimensionMismatchError


Radius = Tuple[int, ...]
Coordinate = Tuple[int, ...]


def normalize_radius(
    radius: Union[int, Sequence[int]],
    ndim: Optional[int] = None
) -> Radius:
    """
    Convert a scalar or per-dimension radius to a tuple of ints.

    Args:
        radius: Single radius applied to every dimension, or one per dimension
        ndim: Image dimensionality. Required when radius is a scalar.

    Returns:
        Per-dimension radius tuple

    Raises:
        ConfigurationError: If a radius is negative or ndim is missing
        DimensionMismatchError: If the radius length differs from ndim
    """
    if np.isscalar(radius):
        if ndim is None:
            raise ConfigurationError(
                "ndim is required to broadcast a scalar neighborhood radius"
            )
        radius = (int(radius),) * ndim
    else:
        radius = tuple(int(r) for r in radius)
        if ndim is not None and len(radius) != ndim:
            raise DimensionMismatchError(
                f"Neighborhood radius {radius} has {len(radius)} dimensions, "
                f"image has {ndim}"
            )

    if len(radius) == 0:
        raise ConfigurationError("Neighborhood radius must have at least one dimension")
    if any(r < 0 for r in radius):
        raise ConfigurationError(f"Neighborhood radius must be non-negative, got {radius}")

    return radius


def kernel_shape(radius: Radius) -> Tuple[int, ...]:
    """Extent of the neighborhood box, (2r + 1) per dimension."""
    return tuple(2 * r + 1 for r in radius)


def neighborhood_size(radius: Radius) -> int:
    """Number of positions in the neighborhood box, center included."""
    return int(np.prod(kernel_shape(radius)))


def kernel_offsets(radius: Radius) -> List[Coordinate]:
    """
    Relative offsets of the neighborhood box in kernel-index order.

    Example:
        >>> kernel_offsets((1,))
        [(-1,), (0,), (1,)]
    """
    return list(product(*(range(-r, r + 1) for r in radius)))


@dataclass(frozen=True)
class NeighborhoodWindow:
    """
    In-bounds neighbors of one element.

    Attributes:
        center: Coordinate of the element the window is centered on
        coords: Neighbor coordinates (center excluded), in kernel-index order
        offset_indices: Full-kernel index of each neighbor's offset
    """
    center: Coordinate
    coords: Tuple[Coordinate, ...]
    offset_indices: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.coords)

    def __iter__(self) -> Iterator[Tuple[int, Coordinate]]:
        return iter(zip(self.offset_indices, self.coords))


def neighborhood_window(
    center: Sequence[int],
    radius: Radius,
    shape: Sequence[int]
) -> NeighborhoodWindow:
    """
    Build the window of valid neighbors around center.

    Args:
        center: Element coordinate, one int per dimension
        radius: Per-dimension radius
        shape: Region shape used for bounds checking

    Returns:
        NeighborhoodWindow holding only in-bounds neighbors

    Raises:
        DimensionMismatchError: If center, radius and shape disagree on ndim
        IndexError: If center itself lies outside the region
    """
    center = tuple(int(c) for c in center)
    shape = tuple(shape)
    if not (len(center) == len(radius) == len(shape)):
        raise DimensionMismatchError(
            f"center {center}, radius {radius} and shape {shape} "
            f"must have the same number of dimensions"
        )
    if any(c < 0 or c >= s for c, s in zip(center, shape)):
        raise IndexError(f"Coordinate {center} outside region of shape {shape}")

    center_index = neighborhood_size(radius) // 2
    coords = []
    indices = []
    for index, offset in enumerate(kernel_offsets(radius)):
        if index == center_index:
            continue
        neighbor = tuple(c + o for c, o in zip(center, offset))
        if all(0 <= n < s for n, s in zip(neighbor, shape)):
            coords.append(neighbor)
            indices.append(index)

    return NeighborhoodWindow(center=center, coords=tuple(coords), offset_indices=tuple(indices))

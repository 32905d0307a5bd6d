"""
Neighborhood geometry and neighbor influence weights.
"""

from .window import (
    NeighborhoodWindow,
    kernel_offsets,
    kernel_shape,
    neighborhood_size,
    neighborhood_window,
    normalize_radius,
)
from .weights import DEFAULT_WEIGHTS_3D, NeighborWeightTable, uniform_weights

__all__ = [
    'NeighborhoodWindow',
    'kernel_offsets',
    'kernel_shape',
    'neighborhood_size',
    'neighborhood_window',
    'normalize_radius',
    'DEFAULT_WEIGHTS_3D',
    'NeighborWeightTable',
    'uniform_weights',
]

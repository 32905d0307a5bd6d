"""
MRF energy evaluation.

For an element x and a class c the energy is

    E(x, c) = d(x, c) + sum_o w(o) * [label(x + o) != c]

where d is the classifier distance and the sum runs over the in-bounds,
non-center offsets of the neighborhood box. The selected label is the
argmin of E over classes, lowest class index on ties.

Two forms are provided: per-element pure functions (local_energies,
best_label) and the vectorised EnergyEvaluator used by the ICM sweep.
Both accumulate neighbor penalties in kernel-index order, so they give
bit-identical energies.
"""

from typing import Sequence, Tuple

import numpy as np

from ..errors import ConfigurationError, DimensionMismatchError, NumericalError
from ..neighborhood.weights import NeighborWeightTable
from ..neighborhood.window import NeighborhoodWindow, neighborhood_window


def check_distances(distances: np.ndarray) -> np.ndarray:
    """
    Validate classifier distances as float64.

    Raises:
        NumericalError: If any distance is NaN, infinite or negative
    """
    distances = np.asarray(distances, dtype=np.float64)
    if not np.all(np.isfinite(distances)):
        n_bad = int(np.count_nonzero(~np.isfinite(distances)))
        raise NumericalError(f"Classifier produced {n_bad} non-finite distance(s)")
    if np.any(distances < 0):
        raise NumericalError(
            f"Classifier distances must be nonnegative, got min {distances.min()}"
        )
    return distances


def local_energies(
    labels: np.ndarray,
    window: NeighborhoodWindow,
    distances: Sequence[float],
    weights: NeighborWeightTable
) -> np.ndarray:
    """
    Energy of every class for the element at the window's center.

    Args:
        labels: Current label image
        window: In-bounds neighbors of the element
        distances: Per-class distances of the element, shape (K,)
        weights: Weight table, looked up by full-kernel index

    Returns:
        energies: Array of shape (K,)
    """
    energies = check_distances(distances).copy()
    classes = np.arange(energies.size)
    for index, coord in window:
        weight = weights.weight_at(index)
        energies += weight * (labels[coord] != classes)
    return energies


def best_label(
    labels: np.ndarray,
    window: NeighborhoodWindow,
    distances: Sequence[float],
    weights: NeighborWeightTable
) -> Tuple[int, bool]:
    """
    Minimum-energy class for the element at the window's center.

    Returns:
        (label, changed): the selected class, lowest index on ties, and
        whether it differs from the element's current label
    """
    energies = local_energies(labels, window, distances, weights)
    label = int(np.argmin(energies))
    return label, label != int(labels[window.center])


class EnergyEvaluator:
    """
    Vectorised energy evaluation over sets of elements.

    Example:
        >>> evaluator = EnergyEvaluator(uniform_weights((1, 1)), n_classes=2)
        >>> energies = evaluator.region_energies(labels, distance_map)  # (2, H, W)
        >>> new_labels, changed = evaluator.evaluate(labels, distance_map, mask)
    """

    def __init__(self, weights: NeighborWeightTable, n_classes: int):
        if n_classes <= 0:
            raise ConfigurationError(f"n_classes must be > 0, got {n_classes}")
        self.weights = weights
        self.n_classes = int(n_classes)
        # Zero weights add exactly 0.0, so skipping them keeps results identical.
        self._neighbors = [
            (offset, weight) for _, offset, weight in weights.neighbors() if weight != 0.0
        ]

    def _check(self, labels: np.ndarray, distance_map: np.ndarray) -> None:
        if labels.ndim != self.weights.ndim:
            raise DimensionMismatchError(
                f"Label image has {labels.ndim} dimensions, weight table has {self.weights.ndim}"
            )
        if distance_map.shape != (self.n_classes,) + labels.shape:
            raise ConfigurationError(
                f"Distance map shape {distance_map.shape} does not match "
                f"({self.n_classes},) + {labels.shape}"
            )

    def energies_at(
        self,
        labels: np.ndarray,
        distance_map: np.ndarray,
        coords: Tuple[np.ndarray, ...]
    ) -> np.ndarray:
        """
        Class energies at a set of elements.

        Args:
            labels: Current label image, shape S
            distance_map: Per-class distances, shape (K,) + S
            coords: Index arrays as returned by np.nonzero, one per dimension

        Returns:
            energies: Array of shape (K, n_elements)
        """
        self._check(labels, distance_map)
        shape = labels.shape
        n = coords[0].size if coords else 0
        classes = np.arange(self.n_classes)[:, None]

        energies = np.array(distance_map[(slice(None),) + tuple(coords)], dtype=np.float64)
        neighbor_labels = np.empty(n, dtype=labels.dtype)

        for offset, weight in self._neighbors:
            shifted = [c + o for c, o in zip(coords, offset)]
            valid = np.ones(n, dtype=bool)
            for axis_coords, extent in zip(shifted, shape):
                valid &= (axis_coords >= 0) & (axis_coords < extent)
            if not valid.any():
                continue
            neighbor_labels[valid] = labels[tuple(c[valid] for c in shifted)]
            mismatch = valid & (neighbor_labels != classes)
            energies += weight * mismatch

        return energies

    def region_energies(self, labels: np.ndarray, distance_map: np.ndarray) -> np.ndarray:
        """Class energies for every element, shape (K,) + labels.shape."""
        coords = np.nonzero(np.ones(labels.shape, dtype=bool))
        energies = self.energies_at(labels, distance_map, coords)
        return energies.reshape((self.n_classes,) + labels.shape)

    def evaluate(
        self,
        labels: np.ndarray,
        distance_map: np.ndarray,
        mask: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        One synchronous ICM update restricted to mask.

        Every decision reads the given labels only; the input is not modified.

        Returns:
            (new_labels, changed): the updated label image (intp, so any
            class index fits) and a boolean image of elements whose label
            changed
        """
        coords = np.nonzero(mask)
        new_labels = np.array(labels, dtype=np.intp)
        changed = np.zeros(labels.shape, dtype=bool)
        if coords[0].size == 0:
            return new_labels, changed

        energies = self.energies_at(labels, distance_map, coords)
        selected = np.argmin(energies, axis=0)
        changed[coords] = selected != labels[coords]
        new_labels[coords] = selected
        return new_labels, changed

    def evaluate_element(
        self,
        labels: np.ndarray,
        distance_map: np.ndarray,
        coord: Sequence[int]
    ) -> Tuple[int, bool]:
        """Per-element form of evaluate, built on best_label."""
        self._check(labels, distance_map)
        window = neighborhood_window(coord, self.weights.radius, labels.shape)
        distances = distance_map[(slice(None),) + tuple(int(c) for c in coord)]
        return best_label(labels, window, distances, self.weights)

    def total_energy(self, labels: np.ndarray, distance_map: np.ndarray) -> float:
        """Sum over all elements of the energy of their current label."""
        energies = self.region_energies(labels, distance_map)
        own = np.take_along_axis(energies, labels[None].astype(np.intp), axis=0)
        return float(own.sum())

"""
Classifier interface consumed by the MRF filter.

A classifier maps an image to a distance map of shape
(n_classes, *region_shape): the statistical distance of every element to
every class. Lower is closer. The initial labelling is the per-element
argmin of that map.
"""

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from ..errors import ConfigurationError


class Classifier(ABC):
    """Abstract source of per-class distances."""

    @property
    @abstractmethod
    def n_classes(self) -> int:
        """Number of classes distances are reported for."""

    @abstractmethod
    def distance_map(self, image: np.ndarray) -> np.ndarray:
        """
        Distances of every element to every class.

        Args:
            image: Input samples

        Returns:
            distances: Array of shape (n_classes, *region_shape)
        """

    def distances(self, image: np.ndarray, coord: Sequence[int]) -> np.ndarray:
        """Per-class distance vector of a single element."""
        return self.distance_map(image)[(slice(None),) + tuple(int(c) for c in coord)]

    def initial_labels(self, image: np.ndarray) -> np.ndarray:
        """Minimum-distance class of every element (lowest index on ties)."""
        return np.argmin(self.distance_map(image), axis=0)

    def initial_label(self, image: np.ndarray, coord: Sequence[int]) -> int:
        return int(np.argmin(self.distances(image, coord)))


class DistanceMapClassifier(Classifier):
    """
    Classifier backed by a precomputed distance map.

    Useful when distances come from an external model, or in tests.

    Args:
        distance_map: Array of shape (n_classes, *region_shape)
    """

    def __init__(self, distance_map: np.ndarray):
        distance_map = np.asarray(distance_map, dtype=np.float64)
        if distance_map.ndim < 2:
            raise ConfigurationError(
                f"Distance map must have shape (n_classes, *region), got {distance_map.shape}"
            )
        if distance_map.shape[0] == 0:
            raise ConfigurationError("Distance map must describe at least one class")
        self._distance_map = distance_map

    @property
    def n_classes(self) -> int:
        return self._distance_map.shape[0]

    def distance_map(self, image: np.ndarray) -> np.ndarray:
        region_shape = self._distance_map.shape[1:]
        image = np.asarray(image)
        if image.shape[:len(region_shape)] != region_shape:
            raise ConfigurationError(
                f"Image shape {image.shape} doesn't match distance map region {region_shape}"
            )
        return self._distance_map

"""
Per-element change tracking for ICM passes.

An element is re-examined on the next pass only if it, or a neighbor
within the neighborhood radius, changed label on the current pass.
"""

from typing import Sequence, Tuple

import numpy as np
from scipy import ndimage

from ..neighborhood.window import kernel_shape, normalize_radius


class ChangeTracker:
    """
    Status image recording which elements changed on the last pass.

    Status is 1 for changed (or, after initialize(), "eligible") and 0 for
    unchanged.
    """

    def __init__(self, region_shape: Sequence[int], radius: Sequence[int]):
        self.region_shape = tuple(int(s) for s in region_shape)
        self.radius = normalize_radius(radius, len(self.region_shape))
        self._footprint = np.ones(kernel_shape(self.radius), dtype=bool)
        self._status = np.ones(self.region_shape, dtype=np.int8)

    def initialize(self) -> None:
        """Mark every element eligible."""
        self._status.fill(1)

    def mark_changed(self, coord: Sequence[int]) -> None:
        self._status[tuple(coord)] = 1

    def mark_unchanged(self, coord: Sequence[int]) -> None:
        self._status[tuple(coord)] = 0

    def commit(self, changed: np.ndarray) -> None:
        """Replace all flags with the outcome of a completed pass."""
        changed = np.asarray(changed)
        if changed.shape != self.region_shape:
            raise ValueError(
                f"Changed mask shape {changed.shape} doesn't match region {self.region_shape}"
            )
        self._status = changed.astype(np.int8)

    @property
    def status(self) -> np.ndarray:
        return self._status.copy()

    @property
    def changed_count(self) -> int:
        return int(np.count_nonzero(self._status))

    def eligible_mask(self) -> np.ndarray:
        """Elements that changed, or have a changed neighbor inside the radius box."""
        return ndimage.binary_dilation(self._status.astype(bool), structure=self._footprint)

    def is_eligible_for_next_pass(self, coord: Sequence[int]) -> bool:
        coord = tuple(int(c) for c in coord)
        window: Tuple[slice, ...] = tuple(
            slice(max(c - r, 0), min(c + r + 1, s))
            for c, r, s in zip(coord, self.radius, self.region_shape)
        )
        return bool(self._status[window].any())

"""
MRF image filter: validation, seeding and minimisation.

The filter owns the Initializing step. It checks the configuration,
classifier and image shapes, computes the per-class distances once, seeds
the label image and hands both to a Minimizer (ICM by default). All checks
run before any label buffer is copied.
"""

import logging
import threading
from typing import Callable, Optional

import numpy as np

from ..classifier.base import Classifier
from ..energy.evaluator import EnergyEvaluator, check_distances
from ..errors import ConfigurationError
from ..neighborhood.weights import NeighborWeightTable
from ..neighborhood.window import normalize_radius
from .config import MRFConfig
from .controller import ICMController, ICMState, Minimizer, MRFResult, PassReport


logger = logging.getLogger(__name__)


class MRFImageFilter:
    """
    Markov Random Field labeller.

    Classifies elements by combining each element's classifier distance to
    every class with the labels of its neighbors, weighted by a
    neighborhood weight table, and minimising the result with ICM.

    Example:
        >>> config = MRFConfig(n_classes=3, max_iterations=20)
        >>> mrf = MRFImageFilter(config, classifier=GaussianClassifier(means, covs))
        >>> result = mrf.run(volume)
        >>> result.labels.shape == volume.shape
        True

    Args:
        config: Filter configuration
        classifier: Source of per-class distances and initial labels
        minimizer_factory: Builds the minimisation strategy from the
            evaluator and config. Defaults to ICMController.
        on_pass: Forwarded to the default ICMController
        on_evaluate: Forwarded to the default ICMController
    """

    def __init__(
        self,
        config: MRFConfig,
        classifier: Optional[Classifier] = None,
        minimizer_factory: Optional[Callable[[EnergyEvaluator, MRFConfig], Minimizer]] = None,
        on_pass: Optional[Callable[[PassReport], None]] = None,
        on_evaluate: Optional[Callable[[int, np.ndarray], None]] = None
    ):
        self.config = config
        self.classifier = classifier
        self.minimizer_factory = minimizer_factory
        self.on_pass = on_pass
        self.on_evaluate = on_evaluate
        self._weight_table: Optional[NeighborWeightTable] = None
        self._minimizer: Optional[Minimizer] = None
        self._stop_requested = threading.Event()

    def set_classifier(self, classifier: Classifier) -> 'MRFImageFilter':
        self.classifier = classifier
        return self

    @property
    def weight_table(self) -> NeighborWeightTable:
        """
        Weight table resolved for the last run.

        Raises:
            RuntimeError: If run() has not been called yet
        """
        if self._weight_table is None:
            raise RuntimeError("Must call run() before accessing weight_table")
        return self._weight_table

    @property
    def state(self) -> ICMState:
        if self._minimizer is None:
            return ICMState.INITIALIZING
        return self._minimizer.state

    def stop(self) -> None:
        """
        Request early termination; honoured between passes.

        A request made while run() is still validating or seeding is kept
        and applies once the first pass commits. Each run() starts with the
        request cleared.
        """
        self._stop_requested.set()
        if self._minimizer is not None:
            self._minimizer.request_stop()

    def _build_minimizer(self, evaluator: EnergyEvaluator) -> Minimizer:
        if self.minimizer_factory is not None:
            return self.minimizer_factory(evaluator, self.config)
        return ICMController(
            evaluator, self.config, on_pass=self.on_pass, on_evaluate=self.on_evaluate,
            stop_event=self._stop_requested
        )

    def run(self, image: np.ndarray, initial_labels: Optional[np.ndarray] = None) -> MRFResult:
        """
        Refine labels for image.

        Args:
            image: Input samples. Leading axes are the region; a trailing
                feature axis is allowed when the classifier expects one.
            initial_labels: Seed labels. If None, each element starts at the
                classifier's minimum-distance class.

        Returns:
            MRFResult with final labels, terminal state and pass history

        Raises:
            ConfigurationError: Missing classifier, bad distance map shape,
                empty region, mismatched region shapes, or out-of-range
                initial labels
            DimensionMismatchError: Radius or weights don't fit the image's dimensionality
            NumericalError: Non-finite or negative classifier distances
        """
        self._stop_requested.clear()
        if self.classifier is None:
            raise ConfigurationError("A classifier must be set before run()")
        if self.classifier.n_classes != self.config.n_classes:
            raise ConfigurationError(
                f"Classifier has {self.classifier.n_classes} classes, "
                f"config expects {self.config.n_classes}"
            )

        image = np.asarray(image)
        distance_map = check_distances(self.classifier.distance_map(image))
        if distance_map.ndim < 2 or distance_map.shape[0] != self.config.n_classes:
            raise ConfigurationError(
                f"Distance map must have shape (n_classes, *region), got {distance_map.shape}"
            )
        region_shape = distance_map.shape[1:]
        if 0 in region_shape:
            raise ConfigurationError(f"Region must not be empty, got shape {region_shape}")
        ndim = len(region_shape)
        if image.shape[:ndim] != region_shape:
            raise ConfigurationError(
                f"Image shape {image.shape} doesn't match region shape {region_shape}"
            )

        radius = normalize_radius(self.config.neighborhood_radius, ndim)
        table = NeighborWeightTable.configure(radius, self.config.neighborhood_weights)

        if initial_labels is None:
            labels = np.argmin(distance_map, axis=0)
        else:
            labels = np.asarray(initial_labels)
            if labels.shape != region_shape:
                raise ConfigurationError(
                    f"Initial labels shape {labels.shape} doesn't match region shape {region_shape}"
                )
            if not np.issubdtype(labels.dtype, np.integer):
                raise ConfigurationError(f"Initial labels must be integers, got {labels.dtype}")
            if labels.size and (labels.min() < 0 or labels.max() >= self.config.n_classes):
                raise ConfigurationError(
                    f"Initial labels must lie in [0, {self.config.n_classes}), "
                    f"got [{labels.min()}, {labels.max()}]"
                )
            labels = labels.astype(np.intp)

        self._weight_table = table
        evaluator = EnergyEvaluator(table, self.config.n_classes)
        self._minimizer = self._build_minimizer(evaluator)
        if self._stop_requested.is_set():
            self._minimizer.request_stop()
        logger.info(
            "MRF run: region %s, %d classes, radius %s",
            region_shape, self.config.n_classes, radius
        )
        return self._minimizer.minimize(labels, distance_map)

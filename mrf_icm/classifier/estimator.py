"""
Adapter for fitted scikit-learn estimators.

Wraps a model that was already fitted elsewhere (fitting is the caller's
job) and exposes its per-class scores as distances:

- predict_proba(X) -> distance = -log(p)
- transform(X)     -> distance used as-is (e.g. KMeans distance to centroids)
"""

import numpy as np
from sklearn.exceptions import NotFittedError
from sklearn.utils.validation import check_is_fitted

from ..errors import ConfigurationError
from .base import Classifier


# Probability floor so that -log(p) stays finite.
_MIN_PROBABILITY = 1e-300


class EstimatorClassifier(Classifier):
    """
    Distances from a fitted scikit-learn classifier or clusterer.

    Example:
        >>> from sklearn.cluster import KMeans
        >>> km = KMeans(n_clusters=3, n_init=10, random_state=42).fit(pixels)
        >>> clf = EstimatorClassifier(km)
        >>> clf.distance_map(image).shape     # image (H, W, 3)
        (3, H, W)

    Args:
        estimator: Fitted estimator with predict_proba or transform
        multichannel: Whether the image carries a trailing feature axis.
            If False every element is a single feature.

    Raises:
        ConfigurationError: If the estimator is not fitted, or exposes
            neither predict_proba nor transform
    """

    def __init__(self, estimator, multichannel: bool = True):
        try:
            check_is_fitted(estimator)
        except NotFittedError as e:
            raise ConfigurationError(f"Estimator must be fitted before use: {e}")
        if not (hasattr(estimator, 'predict_proba') or hasattr(estimator, 'transform')):
            raise ConfigurationError(
                f"{type(estimator).__name__} has neither predict_proba nor transform"
            )
        self.estimator = estimator
        self.multichannel = bool(multichannel)
        self._n_classes = self._infer_n_classes(estimator)

    @staticmethod
    def _infer_n_classes(estimator) -> int:
        if hasattr(estimator, 'classes_'):
            return len(estimator.classes_)
        if hasattr(estimator, 'cluster_centers_'):
            return len(estimator.cluster_centers_)
        if hasattr(estimator, 'n_components'):
            return int(estimator.n_components)
        raise ConfigurationError(
            f"Cannot infer number of classes from {type(estimator).__name__}"
        )

    @property
    def n_classes(self) -> int:
        return self._n_classes

    def distance_map(self, image: np.ndarray) -> np.ndarray:
        image = np.asarray(image, dtype=np.float64)
        if self.multichannel:
            if image.ndim < 2:
                raise ConfigurationError(
                    f"Multichannel image needs a trailing feature axis, got shape {image.shape}"
                )
            region_shape = image.shape[:-1]
            samples = image.reshape(-1, image.shape[-1])
        else:
            region_shape = image.shape
            samples = image.reshape(-1, 1)

        if hasattr(self.estimator, 'predict_proba'):
            proba = self.estimator.predict_proba(samples)
            scores = -np.log(np.clip(proba, _MIN_PROBABILITY, 1.0))
        else:
            scores = self.estimator.transform(samples)

        if scores.shape[1] != self._n_classes:
            raise ConfigurationError(
                f"Estimator returned {scores.shape[1]} scores per sample, "
                f"expected {self._n_classes}"
            )
        return np.ascontiguousarray(scores.T).reshape((self._n_classes,) + region_shape)

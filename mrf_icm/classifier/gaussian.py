"""
Gaussian (Mahalanobis distance) classifier.

Class statistics are supplied by the caller; this module does not
estimate them. The distance of a sample x to class k is the squared
Mahalanobis distance (x - mu_k)^T Sigma_k^-1 (x - mu_k).
"""

from typing import Optional, Sequence

import numpy as np

from ..errors import ConfigurationError
from .base import Classifier


class GaussianClassifier(Classifier):
    """
    Squared Mahalanobis distance to per-class Gaussian models.

    Example:
        >>> # Two intensity classes for a grayscale volume
        >>> clf = GaussianClassifier(means=[[0.0], [100.0]], covariances=[[[25.0]], [[25.0]]])
        >>> clf.distance_map(volume).shape
        (2, 16, 64, 64)

    Args:
        means: Class means, shape (K, F)
        covariances: Class covariance matrices, shape (K, F, F)
        multichannel: Whether the image carries a trailing feature axis.
            Defaults to F > 1.

    Raises:
        ConfigurationError: If shapes disagree, a value is non-finite,
            or a covariance matrix is singular
    """

    def __init__(
        self,
        means: Sequence[Sequence[float]],
        covariances: Sequence[Sequence[Sequence[float]]],
        multichannel: Optional[bool] = None
    ):
        means = np.atleast_2d(np.asarray(means, dtype=np.float64))
        covariances = np.asarray(covariances, dtype=np.float64)
        k, f = means.shape
        if covariances.shape != (k, f, f):
            raise ConfigurationError(
                f"Covariances must have shape {(k, f, f)}, got {covariances.shape}"
            )
        if not (np.all(np.isfinite(means)) and np.all(np.isfinite(covariances))):
            raise ConfigurationError("Class means and covariances must be finite")

        try:
            inverse = np.linalg.inv(covariances)
        except np.linalg.LinAlgError as e:
            raise ConfigurationError(f"Singular class covariance matrix: {e}")

        self.means = means
        self.covariances = covariances
        self._inverse = inverse
        self.multichannel = f > 1 if multichannel is None else bool(multichannel)
        if not self.multichannel and f != 1:
            raise ConfigurationError(
                f"Single-channel images need 1 feature per class, means have {f}"
            )

    @property
    def n_classes(self) -> int:
        return self.means.shape[0]

    @property
    def n_features(self) -> int:
        return self.means.shape[1]

    def distance_map(self, image: np.ndarray) -> np.ndarray:
        image = np.asarray(image, dtype=np.float64)
        if self.multichannel:
            if image.ndim < 2 or image.shape[-1] != self.n_features:
                raise ConfigurationError(
                    f"Image must end with a feature axis of size {self.n_features}, "
                    f"got shape {image.shape}"
                )
            region_shape = image.shape[:-1]
        else:
            region_shape = image.shape

        samples = image.reshape(-1, self.n_features)
        distances = np.empty((self.n_classes, samples.shape[0]), dtype=np.float64)
        for k in range(self.n_classes):
            diff = samples - self.means[k]
            distances[k] = np.einsum('nf,fg,ng->n', diff, self._inverse[k], diff)

        # Rounding can leave tiny negatives for samples sitting on the mean.
        np.maximum(distances, 0.0, out=distances)
        return distances.reshape((self.n_classes,) + region_shape)

"""
Classifiers that supply per-class distances to the MRF filter.
"""

from .base import Classifier, DistanceMapClassifier
from .gaussian import GaussianClassifier
from .estimator import EstimatorClassifier

__all__ = ['Classifier', 'DistanceMapClassifier', 'GaussianClassifier', 'EstimatorClassifier']

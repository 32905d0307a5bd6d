"""
mrf_icm - Markov Random Field label refinement with Iterated Conditional Modes.

Takes an initial per-element classification and per-class statistical
distances from a classifier, and refines the labels by minimising

    E(x, c) = d(x, c) + sum over neighbors o of w(o) * [label(x + o) != c]

with synchronous ICM passes until the fraction of changed elements drops
to a tolerance or an iteration budget is spent.
"""

from .errors import ConfigurationError, DimensionMismatchError, MRFError, NumericalError
from .neighborhood import NeighborWeightTable, neighborhood_window, uniform_weights
from .energy import EnergyEvaluator, best_label
from .icm import (
    ChangeTracker,
    ErrorPolicy,
    ICMController,
    ICMState,
    MRFConfig,
    MRFImageFilter,
    MRFResult,
    PassReport,
)
from .classifier import Classifier, DistanceMapClassifier, EstimatorClassifier, GaussianClassifier
from .logger import configure_logging

__all__ = [
    'ConfigurationError',
    'DimensionMismatchError',
    'MRFError',
    'NumericalError',
    'NeighborWeightTable',
    'neighborhood_window',
    'uniform_weights',
    'EnergyEvaluator',
    'best_label',
    'ChangeTracker',
    'ErrorPolicy',
    'ICMController',
    'ICMState',
    'MRFConfig',
    'MRFImageFilter',
    'MRFResult',
    'PassReport',
    'Classifier',
    'DistanceMapClassifier',
    'EstimatorClassifier',
    'GaussianClassifier',
    'configure_logging',
]

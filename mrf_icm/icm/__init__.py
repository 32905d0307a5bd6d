"""
Iterated Conditional Modes minimisation and the MRF image filter.

Example:
    >>> from mrf_icm.icm import MRFConfig, MRFImageFilter
    >>> from mrf_icm.classifier import GaussianClassifier
    >>>
    >>> config = MRFConfig(n_classes=2, max_iterations=10)
    >>> mrf = MRFImageFilter(config, classifier=GaussianClassifier([[0.0], [1.0]], [[[0.1]], [[0.1]]]))
    >>> result = mrf.run(volume)
    >>> print(result.state, result.n_passes, result.changed_count)
"""

from .config import ErrorPolicy, MRFConfig
from .tracker import ChangeTracker
from .controller import ICMController, ICMState, Minimizer, MRFResult, PassReport
from .filter import MRFImageFilter

__all__ = [
    'ErrorPolicy',
    'MRFConfig',
    'ChangeTracker',
    'ICMController',
    'ICMState',
    'Minimizer',
    'MRFResult',
    'PassReport',
    'MRFImageFilter',
]

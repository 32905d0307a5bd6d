"""
Error types raised by the MRF labelling pipeline.

All configuration problems are detected before any label buffer is
allocated, so a raised ConfigurationError never leaves partial state.
"""


class MRFError(Exception):
    """Base class for every error raised by mrf_icm."""


class ConfigurationError(MRFError, ValueError):
    """Invalid or missing configuration (classes, weights, classifier, shapes)."""


class DimensionMismatchError(ConfigurationError):
    """Radius or weight table dimensionality differs from the image's."""


class NumericalError(MRFError, ArithmeticError):
    """A class distance is non-finite or negative."""

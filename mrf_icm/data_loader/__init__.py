"""
Persistence of MRF runs.

Components:
- RunParameters: configuration of the run
- RunResults: terminal state, pass count, changed count and per-pass history
- RunSnapshot: metadata + parameters + results
- DataLoader: saves and loads runs in a directory
"""

from .snapshot import RunParameters, RunResults, RunSnapshot
from .json_loader import DataLoader

__all__ = ['RunParameters', 'RunResults', 'RunSnapshot', 'DataLoader']

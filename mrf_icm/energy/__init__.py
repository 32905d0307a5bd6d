"""
Label energy: classifier distance plus weighted neighbor disagreement.
"""

from .evaluator import EnergyEvaluator, best_label, check_distances, local_energies

__all__ = ['EnergyEvaluator', 'best_label', 'check_distances', 'local_energies']

"""
Visualization utilities for MRF label images and ICM runs.
"""

from .image_grid import plot_label_grid, plot_label_slices, plot_pass_history

__all__ = ['plot_label_grid', 'plot_label_slices', 'plot_pass_history']

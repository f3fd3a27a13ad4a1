"""Plotting utilities for fitted blueprints and tuning results."""

from .blueprint_plots import plot_bake_comparison
from .pca_plots import plot_explained_variance, plot_loadings_heatmap
from .tuning_plots import plot_tune_results


__all__ = [
    "plot_bake_comparison",
    "plot_explained_variance",
    "plot_loadings_heatmap",
    "plot_tune_results",
]

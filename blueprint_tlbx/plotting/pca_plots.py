"""Plots for fitted PCA steps."""

from __future__ import annotations

from collections.abc import Sequence

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.figure import Figure

from blueprint_tlbx.blueprint import FittedBlueprint
from blueprint_tlbx.steps.pca import PCAParameters


def pca_parameters(fitted: FittedBlueprint | PCAParameters, index: int | None = None) -> PCAParameters:
    """Pick the parameters of a PCA step from a fitted blueprint.

    Args:
        fitted: Fitted blueprint, or PCA parameters that are returned as they are.
        index: Zero-based step position; defaults to the last PCA step.

    Raises:
        ValueError: If the selected step is not a PCA step.
    """
    if isinstance(fitted, PCAParameters):
        return fitted
    candidates = [i for i, params in enumerate(fitted.parameters) if isinstance(params, PCAParameters)]
    if index is None:
        if not candidates:
            raise ValueError("Fitted blueprint has no PCA step")
        index = candidates[-1]
    if index not in candidates:
        raise ValueError(f"Step {index} is not a PCA step; PCA steps are at {candidates}")
    return fitted.parameters[index]


def plot_explained_variance(
    fitted: FittedBlueprint | PCAParameters,
    index: int | None = None,
    figsize: tuple[int, int] = (10, 6),
) -> Figure:
    """Scree plot: explained ratio bars with the cumulative curve.

    Combines [:func:`seaborn.barplot`](https://seaborn.pydata.org/generated/seaborn.barplot.html) and
    [:func:`seaborn.lineplot`](https://seaborn.pydata.org/generated/seaborn.lineplot.html). Bars of
    retained components are highlighted and the cut-off is marked.
    """
    params = pca_parameters(fitted, index)
    explained = params.explained_variance()
    x = np.arange(len(explained))
    palette = {pc: "steelblue" if i < params.n_components else "lightgray" for i, pc in enumerate(explained["PC"])}

    fig, ax1 = plt.subplots(figsize=figsize)
    sns.barplot(
        x=explained["PC"],
        y=explained["explained_ratio"],
        hue=explained["PC"],
        palette=palette,
        legend=False,
        ax=ax1,
    )
    ax1.set_xlabel("Principal Component")
    ax1.set_ylabel("Explained Ratio", color="blue")
    ax1.tick_params(axis="y", labelcolor="blue")

    ax2 = ax1.twinx()
    sns.lineplot(x=x, y=explained["cumulative_ratio"], marker="o", color="red", ax=ax2)
    ax2.axvline(params.n_components - 0.5, color="black", linestyle="--", linewidth=1)
    ax2.set_ylabel("Cumulative Variance Explained", color="red")
    ax2.set_yticks(np.arange(0, 1.1, 0.1))
    ax2.tick_params(axis="y", labelcolor="red")

    ax1.set_xticks(x)
    ax1.set_xticklabels(explained["PC"])
    ax1.set_title(f"PCA Explained Variance ({params.n_components} components retained)")
    ax1.grid(True, alpha=0.2)
    fig.tight_layout()
    return fig


def plot_loadings_heatmap(
    fitted: FittedBlueprint | PCAParameters,
    index: int | None = None,
    top_n_features: int | None = None,
    pc_subset: Sequence[str] | None = None,
    figsize: tuple[int, int] = (12, 6),
) -> Figure:
    """Heatmap of the retained loadings, features ordered by L2 norm across components.

    Args:
        fitted: Fitted blueprint or PCA parameters.
        index: Zero-based PCA step position (default: last PCA step).
        top_n_features: Limit to the strongest features.
        pc_subset: Component names to show (default: all retained).
        figsize: Figure size.
    """
    loadings = pca_parameters(fitted, index).loadings_frame()
    if pc_subset is not None:
        missing = [pc for pc in pc_subset if pc not in loadings.columns]
        if missing:
            raise ValueError(f"Requested components {missing} not available. Available: {list(loadings.columns)}")
        loadings = loadings[list(pc_subset)]
    ranked = (loadings.pow(2).sum(axis=1) ** 0.5).sort_values(ascending=False).index
    if top_n_features is not None:
        ranked = ranked[:top_n_features]

    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(loadings.loc[ranked], annot=True, fmt=".2f", cmap="coolwarm", center=0, ax=ax)
    ax.set_title(f"PCA Loadings for Top {top_n_features or 'All'} Features")
    fig.tight_layout()
    return fig

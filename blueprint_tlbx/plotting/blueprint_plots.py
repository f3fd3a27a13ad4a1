"""Before/after views of a fitted blueprint."""

from __future__ import annotations

import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.figure import Figure

from blueprint_tlbx.blueprint import DataLike, FittedBlueprint
from blueprint_tlbx.data.dataset import Dataset


def plot_bake_comparison(
    fitted: FittedBlueprint,
    data: DataLike,
    figsize: tuple[int, int] = (20, 10),
) -> Figure:
    """Boxplots of the numeric columns before and after applying ``fitted``.

    Args:
        fitted: Fitted blueprint.
        data: Raw data to bake.
        figsize: Figure size (width, height).

    Returns:
        matplotlib Figure object
    """
    raw = data if isinstance(data, Dataset) else Dataset(data)
    baked = fitted.apply(data)
    raw_cols = [col.name for col in raw.schema if not col.ctype.is_nominal]
    baked_cols = [col.name for col in baked.schema if not col.ctype.is_nominal]

    fig, axs = plt.subplots(2, 1, figsize=figsize)

    sns.boxplot(data=raw.df[raw_cols], ax=axs[0])
    axs[0].tick_params(axis="x", rotation=45)
    axs[0].set_title("Raw")

    sns.boxplot(data=baked.df[baked_cols], ax=axs[1])
    axs[1].tick_params(axis="x", rotation=45)
    axs[1].set_title("Baked")

    fig.tight_layout()
    return fig

"""Grid search diagnostics."""

from __future__ import annotations

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure

from blueprint_tlbx.tuning import TuneResult


def plot_tune_results(
    result: TuneResult,
    param: str | None = None,
    metrics: list[str] | None = None,
    figsize: tuple[int, int] = (10, 4),
) -> Figure:
    """Mean resampled metric versus a tuned parameter, one panel per metric.

    Error bars show one standard error.

    Args:
        result: Output of :func:`~blueprint_tlbx.tuning.tune_grid`.
        param: Parameter on the x axis (default: the first tuned parameter).
        metrics: Metrics to show (default: all collected metrics).
        figsize: Size of one panel row.
    """
    if not result.param_names:
        raise ValueError("Result has no tuned parameters to plot against")
    param = param or result.param_names[0]
    if param not in result.param_names:
        raise ValueError(f"Unknown parameter '{param}'. Available: {list(result.param_names)}")

    summary = result.collect_metrics()
    metrics = metrics or sorted(summary["metric"].unique())
    fig, axes = plt.subplots(1, len(metrics), figsize=figsize, squeeze=False)
    for ax, metric in zip(axes[0], metrics, strict=True):
        sub = summary[summary["metric"] == metric].sort_values(param)
        x = pd.to_numeric(sub[param], errors="coerce")
        x = sub[param].astype(str) if x.isna().any() else x
        ax.errorbar(x, sub["mean"], yerr=sub["std_err"].fillna(0), fmt="none", ecolor="gray", capsize=3)
        sns.lineplot(x=x, y=sub["mean"], marker="o", ax=ax)
        ax.set_xlabel(param)
        ax.set_ylabel(f"mean {metric}")
        ax.set_title(metric)
        ax.grid(True, alpha=0.2)
    fig.tight_layout()
    return fig

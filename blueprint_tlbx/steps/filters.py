"""Variance filters that drop uninformative columns."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

import pandas as pd

from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError

from .base import BaseStep, StepParameters, check_fraction


@dataclass(frozen=True)
class FilterParameters(StepParameters):
    removed: tuple[str, ...]


class _DropColumnsMixin:
    """``apply`` for steps whose only effect is dropping fitted columns."""

    def apply(self, dataset: Dataset, params: FilterParameters) -> Dataset:
        df = dataset.df
        return dataset.with_df(df.drop(columns=[col for col in params.removed if col in df.columns]))

    def required_columns(self, params: FilterParameters) -> tuple[str, ...]:
        # Dropping a column that is already absent is a no-op.
        return ()


@dataclass(frozen=True)
class StepZeroVariance(_DropColumnsMixin, BaseStep):
    """Remove columns holding a single distinct value (or only missing values)."""

    kind: ClassVar[str] = "zv"
    params_type: ClassVar[type[StepParameters]] = FilterParameters

    def fit(self, dataset: Dataset) -> FilterParameters:
        cols = self.select(dataset)
        df = dataset.df
        removed = [col for col in cols if df[col].nunique(dropna=True) <= 1]
        return FilterParameters(columns=tuple(cols), removed=tuple(removed))


@dataclass(frozen=True)
class NZVParameters(FilterParameters):
    freq_ratio: Mapping[str, float | None]
    unique_ratio: Mapping[str, float]


def frequency_ratio(series: pd.Series) -> float | None:
    """Count of the most frequent value over the count of the second most frequent.

    Returns None when the column holds at most one distinct value.
    """
    counts = series.value_counts(dropna=True)
    if len(counts) < 2:
        return None
    return float(counts.iloc[0] / counts.iloc[1])


@dataclass(frozen=True)
class StepNearZeroVariance(_DropColumnsMixin, BaseStep):
    """Remove columns whose distribution is concentrated on very few values.

    A column is flagged when its frequency ratio (most common / second most
    common count) is at least ``freq_cut`` and its unique ratio (distinct
    values / rows) is at most ``unique_cut``. Columns with a single distinct
    value are always flagged.

    Attributes:
        freq_cut: Frequency-ratio cutoff (default: 95/5, so a 95:5 split is flagged).
        unique_cut: Unique-ratio cutoff as a fraction of rows (default: 0.10).

    Example:
        >>> step = StepNearZeroVariance(all_predictors())
        >>> params = step.fit(dataset)
        >>> params.removed
        ('pool_quality',)
    """

    kind: ClassVar[str] = "nzv"
    params_type: ClassVar[type[StepParameters]] = NZVParameters

    freq_cut: float = 95 / 5
    unique_cut: float = 0.10

    def validate(self) -> None:
        if self.freq_cut < 1:
            raise ConfigurationError(f"freq_cut must be >= 1, got {self.freq_cut}")
        check_fraction("unique_cut", self.unique_cut)

    def fit(self, dataset: Dataset) -> NZVParameters:
        cols = self.select(dataset)
        df = dataset.df
        n_rows = max(len(df), 1)

        removed: list[str] = []
        freq_ratios: dict[str, float | None] = {}
        unique_ratios: dict[str, float] = {}
        for col in cols:
            ratio = frequency_ratio(df[col])
            unique = df[col].nunique(dropna=True) / n_rows
            freq_ratios[col] = ratio
            unique_ratios[col] = float(unique)
            if ratio is None or (ratio >= self.freq_cut and unique <= self.unique_cut):
                removed.append(col)

        return NZVParameters(
            columns=tuple(cols),
            removed=tuple(removed),
            freq_ratio=freq_ratios,
            unique_ratio=unique_ratios,
        )

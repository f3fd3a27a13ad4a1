"""Collapse rare categorical levels into a single replacement label."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

import pandas as pd

from blueprint_tlbx.data.columns import ColumnMetadata, ColumnType
from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError

from .base import BaseStep, StepParameters, as_labels, level_vocabulary


@dataclass(frozen=True)
class OtherParameters(StepParameters):
    retained: Mapping[str, tuple[str, ...]]
    """Levels kept per column, in vocabulary order."""


@dataclass(frozen=True)
class StepOther(BaseStep):
    """Pool infrequent levels into ``other``.

    Levels whose share of the non-missing reference values is below
    ``threshold`` are replaced by ``other`` at apply time, as is every level
    that never occurred in the reference data. Missing values stay missing.

    Attributes:
        threshold: Minimum relative frequency in ``(0, 1)``, or an integer
            minimum count (>= 1).
        other: Replacement label.
    """

    kind: ClassVar[str] = "other"
    params_type: ClassVar[type[StepParameters]] = OtherParameters

    threshold: float = 0.05
    other: str = "other"

    def validate(self) -> None:
        if self.threshold <= 0:
            raise ConfigurationError(f"threshold must be positive, got {self.threshold}")
        if self.threshold >= 1 and float(self.threshold) != int(self.threshold):
            raise ConfigurationError(f"A count threshold must be an integer, got {self.threshold}")

    def fit(self, dataset: Dataset) -> OtherParameters:
        cols = self.select(dataset, numeric=False)
        retained: dict[str, tuple[str, ...]] = {}
        for col in cols:
            labels = as_labels(dataset.column(col)).dropna()
            counts = labels.value_counts()
            share = counts if self.threshold >= 1 else counts / max(len(labels), 1)
            keep = set(share[share >= self.threshold].index)
            vocabulary = level_vocabulary(dataset, col)
            kept = tuple(level for level in vocabulary if level in keep)
            if self.other in kept:
                raise ConfigurationError(
                    f"Replacement label '{self.other}' collides with a retained level of column '{col}'",
                )
            retained[col] = kept
        return OtherParameters(columns=tuple(cols), retained=retained)

    def apply(self, dataset: Dataset, params: OtherParameters) -> Dataset:
        df = dataset.df
        new_meta = []
        for col in params.columns:
            kept = list(params.retained[col])
            labels = as_labels(df[col])
            lumped = labels.where(labels.isna() | labels.isin(kept), self.other)
            levels = [*kept, self.other]
            df[col] = pd.Categorical(lumped, categories=levels)
            meta = dataset.schema[col]
            new_meta.append(ColumnMetadata(col, ColumnType.CATEGORICAL, meta.role, tuple(levels)))
        return dataset.with_df(df, new_meta)

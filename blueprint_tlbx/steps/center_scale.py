"""Centering and scaling steps."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

import numpy as np
import pandas as pd

from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError, DivisionByZeroError

from .base import BaseStep, StepParameters


def _column_sd(frame: pd.DataFrame, ddof: int) -> dict[str, float]:
    sds = frame.std(ddof=ddof).to_dict()
    degenerate = [col for col, sd in sds.items() if not np.isfinite(sd) or sd == 0]
    if degenerate:
        raise DivisionByZeroError(
            f"Standard deviation is zero or undefined for columns {degenerate}; cannot scale.",
        )
    return {col: float(sd) for col, sd in sds.items()}


@dataclass(frozen=True)
class CenterParameters(StepParameters):
    means: Mapping[str, float]


@dataclass(frozen=True)
class StepCenter(BaseStep):
    """Subtract the reference mean: :math:`x - \\bar{x}`."""

    kind: ClassVar[str] = "center"
    params_type: ClassVar[type[StepParameters]] = CenterParameters

    def fit(self, dataset: Dataset) -> CenterParameters:
        cols = self.select(dataset, numeric=True)
        means = dataset.df[cols].mean()
        return CenterParameters(columns=tuple(cols), means={col: float(means[col]) for col in cols})

    def apply(self, dataset: Dataset, params: CenterParameters) -> Dataset:
        df = dataset.df
        for col in params.columns:
            df[col] = df[col] - params.means[col]
        return dataset.with_df(df)


@dataclass(frozen=True)
class ScaleParameters(StepParameters):
    sds: Mapping[str, float]


@dataclass(frozen=True)
class StepScale(BaseStep):
    """Divide by the reference standard deviation.

    Attributes:
        ddof: Delta degrees of freedom for the standard deviation (1 = sample sd).
    """

    kind: ClassVar[str] = "scale"
    params_type: ClassVar[type[StepParameters]] = ScaleParameters

    ddof: int = 1

    def validate(self) -> None:
        if self.ddof not in (0, 1):
            raise ConfigurationError(f"ddof must be 0 or 1, got {self.ddof}")

    def fit(self, dataset: Dataset) -> ScaleParameters:
        """Estimate per-column standard deviations.

        Raises:
            DivisionByZeroError: If a selected column is constant in the reference data.
        """
        cols = self.select(dataset, numeric=True)
        return ScaleParameters(columns=tuple(cols), sds=_column_sd(dataset.df[cols], self.ddof))

    def apply(self, dataset: Dataset, params: ScaleParameters) -> Dataset:
        df = dataset.df
        for col in params.columns:
            df[col] = df[col] / params.sds[col]
        return dataset.with_df(df)


@dataclass(frozen=True)
class NormalizeParameters(StepParameters):
    means: Mapping[str, float]
    sds: Mapping[str, float]


@dataclass(frozen=True)
class StepNormalize(BaseStep):
    r"""Center and scale in one step: :math:`(x - \bar{x}) / s`.

    Equivalent to :class:`StepCenter` followed by :class:`StepScale`, with both
    statistics taken from the same reference data.
    """

    kind: ClassVar[str] = "normalize"
    params_type: ClassVar[type[StepParameters]] = NormalizeParameters

    ddof: int = 1

    def validate(self) -> None:
        if self.ddof not in (0, 1):
            raise ConfigurationError(f"ddof must be 0 or 1, got {self.ddof}")

    def fit(self, dataset: Dataset) -> NormalizeParameters:
        cols = self.select(dataset, numeric=True)
        frame = dataset.df[cols]
        means = frame.mean()
        return NormalizeParameters(
            columns=tuple(cols),
            means={col: float(means[col]) for col in cols},
            sds=_column_sd(frame, self.ddof),
        )

    def apply(self, dataset: Dataset, params: NormalizeParameters) -> Dataset:
        df = dataset.df
        for col in params.columns:
            df[col] = (df[col] - params.means[col]) / params.sds[col]
        return dataset.with_df(df)

r"""Power transforms: log, Box-Cox and Yeo-Johnson.

Box-Cox and Yeo-Johnson estimate one :math:`\lambda` per column by maximising
the profile log-likelihood of the transformed reference column under a normal
model (:func:`scipy.stats.boxcox_llf`, :func:`scipy.stats.yeojohnson_llf`)
with a bounded 1-D search (:func:`scipy.optimize.minimize_scalar`).

Box-Cox requires strictly positive values; Yeo-Johnson accepts zero and
negative values. See [Box & Cox (1964)](https://www.jstor.org/stable/2984418)
and [Yeo & Johnson (2000)](https://www.jstor.org/stable/2673623).
"""

from __future__ import annotations

import math
from abc import abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import ClassVar

import numpy as np
import pandas as pd
from scipy import optimize, special, stats

from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError, InvalidDomainError

from .base import BaseStep, StepParameters


def _check_positive(series: pd.Series, step: str, offset: float = 0.0) -> None:
    values = series.dropna() + offset
    if (values <= 0).any():
        raise InvalidDomainError(
            f"Step '{step}' requires strictly positive values in column '{series.name}'; "
            f"minimum is {float(values.min())}",
        )


def _estimate_lambda(
    values: np.ndarray,
    llf: Callable[[float, np.ndarray], float],
    limits: tuple[float, float],
) -> float:
    """Maximise ``llf`` over ``lambda`` within ``limits``."""
    res = optimize.minimize_scalar(lambda lmb: -llf(lmb, values), bounds=limits, method="bounded")
    return float(res.x)


def _check_limits(limits: tuple[float, float]) -> tuple[float, float]:
    if len(limits) != 2 or not limits[0] < limits[1]:
        raise ConfigurationError(f"limits must be an increasing pair, got {limits}")
    return float(limits[0]), float(limits[1])


@dataclass(frozen=True)
class LogParameters(StepParameters):
    pass


@dataclass(frozen=True)
class StepLog(BaseStep):
    """Logarithm with optional offset: :math:`\\log_b(x + c)`.

    Attributes:
        base: Logarithm base (default: natural log).
        offset: Constant added before taking the log.

    Raises:
        InvalidDomainError: On fit or apply, if any ``x + offset <= 0``.
    """

    kind: ClassVar[str] = "log"
    params_type: ClassVar[type[StepParameters]] = LogParameters

    base: float = math.e
    offset: float = 0.0

    def validate(self) -> None:
        if self.base <= 0 or self.base == 1:
            raise ConfigurationError(f"log base must be positive and != 1, got {self.base}")

    def fit(self, dataset: Dataset) -> LogParameters:
        cols = self.select(dataset, numeric=True)
        for col in cols:
            _check_positive(dataset.column(col), self.kind, self.offset)
        return LogParameters(columns=tuple(cols))

    def apply(self, dataset: Dataset, params: LogParameters) -> Dataset:
        df = dataset.df
        for col in params.columns:
            _check_positive(df[col], self.kind, self.offset)
            df[col] = np.log(df[col] + self.offset) / math.log(self.base)
        return dataset.with_df(df)


@dataclass(frozen=True)
class LambdaParameters(StepParameters):
    lambdas: Mapping[str, float | None]
    """Estimated lambda per column; None marks columns left untransformed."""


@dataclass(frozen=True)
class _LambdaStep(BaseStep):
    """Shared fit logic for lambda-parametrised transforms."""

    params_type: ClassVar[type[StepParameters]] = LambdaParameters
    _llf: ClassVar[Callable[[float, np.ndarray], float]]

    limits: tuple[float, float] = (-5.0, 5.0)
    num_unique: int = 5

    def validate(self) -> None:
        object.__setattr__(self, "limits", _check_limits(tuple(self.limits)))
        if self.num_unique < 2:
            raise ConfigurationError(f"num_unique must be at least 2, got {self.num_unique}")

    def _check_domain(self, series: pd.Series) -> None:
        """Raise InvalidDomainError if ``series`` cannot be transformed."""

    @abstractmethod
    def _transform(self, values: np.ndarray, lmbda: float) -> np.ndarray:
        """Transform the non-missing ``values`` with ``lmbda``."""
        ...

    def fit(self, dataset: Dataset) -> LambdaParameters:
        cols = self.select(dataset, numeric=True)
        lambdas: dict[str, float | None] = {}
        for col in cols:
            series = dataset.column(col)
            self._check_domain(series)
            values = series.dropna().to_numpy(dtype=float)
            if np.unique(values).size < self.num_unique:
                lambdas[col] = None
                continue
            lambdas[col] = _estimate_lambda(values, type(self)._llf, self.limits)
        return LambdaParameters(columns=tuple(cols), lambdas=lambdas)

    def apply(self, dataset: Dataset, params: LambdaParameters) -> Dataset:
        df = dataset.df
        for col in params.columns:
            lmbda = params.lambdas[col]
            if lmbda is None:
                continue
            self._check_domain(df[col])
            series = df[col].astype(float)
            mask = series.notna()
            series.loc[mask] = self._transform(series[mask].to_numpy(), lmbda)
            df[col] = series
        return dataset.with_df(df)


@dataclass(frozen=True)
class StepBoxCox(_LambdaStep):
    r"""Box-Cox transform :math:`(x^\lambda - 1)/\lambda` (:math:`\log x` at :math:`\lambda = 0`).

    Attributes:
        limits: Search interval for lambda.
        num_unique: Columns with fewer distinct values are left untouched.
    """

    kind: ClassVar[str] = "boxcox"
    _llf: ClassVar[Callable[[float, np.ndarray], float]] = staticmethod(stats.boxcox_llf)

    def _check_domain(self, series: pd.Series) -> None:
        _check_positive(series, self.kind)

    def _transform(self, values: np.ndarray, lmbda: float) -> np.ndarray:
        return special.boxcox(values, lmbda)


@dataclass(frozen=True)
class StepYeoJohnson(_LambdaStep):
    """Yeo-Johnson transform, defined for the whole real line.

    Attributes:
        limits: Search interval for lambda.
        num_unique: Columns with fewer distinct values are left untouched.
    """

    kind: ClassVar[str] = "yeojohnson"
    _llf: ClassVar[Callable[[float, np.ndarray], float]] = staticmethod(stats.yeojohnson_llf)

    def _transform(self, values: np.ndarray, lmbda: float) -> np.ndarray:
        return stats.yeojohnson(values, lmbda=lmbda)

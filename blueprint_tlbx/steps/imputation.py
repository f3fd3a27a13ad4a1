"""Missing-value imputation steps.

Every imputer learns from the non-missing values of the reference dataset
only and fills missing entries at apply time; observed entries are never
modified.
"""

from __future__ import annotations

import base64
import io
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Self

import joblib
import numpy as np
import pandas as pd
from scipy import stats
from sklearn.ensemble import BaggingClassifier, BaggingRegressor
from sklearn.impute import KNNImputer
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError, InvalidDomainError
from blueprint_tlbx.selectors import SelectorLike, all_predictors, as_selector, names

from .base import BaseStep, StepParameters, as_labels, check_fraction


def _fill(dataset: Dataset, values: Mapping[str, Any]) -> Dataset:
    df = dataset.df
    for col, value in values.items():
        if dataset.schema[col].ctype.is_nominal:
            df[col] = as_labels(df[col]).fillna(value)
        else:
            df[col] = df[col].fillna(value)
    return dataset.with_df(df)


def _require_observed(series: pd.Series, step: str) -> pd.Series:
    observed = series.dropna()
    if observed.empty:
        raise InvalidDomainError(f"Step '{step}' cannot impute column '{series.name}': no observed values")
    return observed


@dataclass(frozen=True)
class FillParameters(StepParameters):
    values: Mapping[str, Any]


@dataclass(frozen=True)
class StepImputeMean(BaseStep):
    """Fill missing numeric values with the (optionally trimmed) reference mean.

    Attributes:
        trim: Fraction cut from each tail before averaging, in ``[0, 0.5)``.
    """

    kind: ClassVar[str] = "impute_mean"
    params_type: ClassVar[type[StepParameters]] = FillParameters

    trim: float = 0.0

    def validate(self) -> None:
        if not 0 <= self.trim < 0.5:
            raise ConfigurationError(f"trim must lie in [0, 0.5), got {self.trim}")

    def fit(self, dataset: Dataset) -> FillParameters:
        cols = self.select(dataset, numeric=True)
        values = {
            col: float(stats.trim_mean(_require_observed(dataset.column(col), self.kind), self.trim)) for col in cols
        }
        return FillParameters(columns=tuple(cols), values=values)

    def apply(self, dataset: Dataset, params: FillParameters) -> Dataset:
        return _fill(dataset, params.values)


@dataclass(frozen=True)
class StepImputeMedian(BaseStep):
    """Fill missing numeric values with the reference median."""

    kind: ClassVar[str] = "impute_median"
    params_type: ClassVar[type[StepParameters]] = FillParameters

    def fit(self, dataset: Dataset) -> FillParameters:
        cols = self.select(dataset, numeric=True)
        values = {col: float(_require_observed(dataset.column(col), self.kind).median()) for col in cols}
        return FillParameters(columns=tuple(cols), values=values)

    def apply(self, dataset: Dataset, params: FillParameters) -> Dataset:
        return _fill(dataset, params.values)


@dataclass(frozen=True)
class StepImputeMode(BaseStep):
    """Fill missing values with the most frequent reference value.

    Works for numeric and nominal columns. Ties resolve to the smallest value
    (lexicographically smallest label for nominal columns).
    """

    kind: ClassVar[str] = "impute_mode"
    params_type: ClassVar[type[StepParameters]] = FillParameters

    def fit(self, dataset: Dataset) -> FillParameters:
        cols = self.select(dataset)
        values: dict[str, Any] = {}
        for col in cols:
            series = dataset.column(col)
            if dataset.schema[col].ctype.is_nominal:
                series = as_labels(series)
            mode = _require_observed(series, self.kind).mode().iloc[0]
            values[col] = mode.item() if isinstance(mode, np.generic) else mode
        return FillParameters(columns=tuple(cols), values=values)

    def apply(self, dataset: Dataset, params: FillParameters) -> Dataset:
        return _fill(dataset, params.values)


@dataclass(frozen=True)
class KnnParameters(StepParameters):
    donor_columns: tuple[str, ...]
    """Column layout of ``donors``: imputed columns followed by the extra predictors."""
    donors: tuple[tuple[float, ...], ...]
    """Reference rows used as neighbour candidates (may contain NaN)."""


@dataclass(frozen=True)
class StepImputeKnn(BaseStep):
    """Fill missing numeric values from the ``neighbors`` nearest reference rows.

    Distances use :class:`sklearn.impute.KNNImputer`'s NaN-aware Euclidean
    metric over the imputed columns plus ``impute_with``; the donor pool is
    the reference data only.

    Attributes:
        impute_with: Numeric columns used to measure similarity.
        neighbors: Number of donors averaged per missing entry.
    """

    kind: ClassVar[str] = "impute_knn"
    params_type: ClassVar[type[StepParameters]] = KnnParameters

    impute_with: SelectorLike = field(default_factory=all_predictors)
    neighbors: int = 5

    def validate(self) -> None:
        object.__setattr__(self, "impute_with", as_selector(self.impute_with))
        if int(self.neighbors) != self.neighbors or self.neighbors < 1:
            raise ConfigurationError(f"neighbors must be a positive integer, got {self.neighbors}")

    def fit(self, dataset: Dataset) -> KnnParameters:
        cols = self.select(dataset, numeric=True)
        schema = dataset.schema
        extra = [
            col
            for col in self.impute_with.resolve(schema)
            if col not in cols and not schema[col].ctype.is_nominal
        ]
        donor_columns = [*cols, *extra]
        donors = dataset.df[donor_columns].to_numpy(dtype=float)
        return KnnParameters(columns=tuple(cols), donor_columns=tuple(donor_columns), donors=donors)

    def required_columns(self, params: KnnParameters) -> tuple[str, ...]:
        return params.donor_columns

    def apply(self, dataset: Dataset, params: KnnParameters) -> Dataset:
        df = dataset.df
        rows = df[list(params.columns)].isna().any(axis=1).to_numpy()
        if not rows.any():
            return dataset.with_df(df)

        donor_columns = list(params.donor_columns)
        imputer = KNNImputer(n_neighbors=int(self.neighbors), keep_empty_features=True)
        imputer.fit(np.asarray(params.donors, dtype=float).reshape(-1, len(donor_columns)))
        filled = imputer.transform(df.loc[rows, donor_columns].to_numpy(dtype=float))
        for i, col in enumerate(params.columns):
            column = df[col].to_numpy(dtype=float)
            subset = column[rows]
            missing = np.isnan(subset)
            subset[missing] = filled[missing, i]
            column[rows] = subset
            df[col] = column
        return dataset.with_df(df)

    @classmethod
    def restore(cls, config: Mapping[str, Any], params: KnnParameters) -> Self:
        extra = params.donor_columns[len(params.columns) :]
        return cls(names(*params.columns), impute_with=names(*extra), **config)


def _dump_estimator(model: object) -> str:
    buffer = io.BytesIO()
    joblib.dump(model, buffer)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _load_estimator(payload: str) -> Any:
    return joblib.load(io.BytesIO(base64.b64decode(payload)))


@dataclass(frozen=True)
class BagParameters(StepParameters):
    predictors: Mapping[str, tuple[str, ...]]
    """Predictor columns per imputed column."""
    fill_values: Mapping[str, float]
    """Reference medians used to pre-fill missing predictor values."""
    models: Mapping[str, str]
    """Base64-encoded joblib payload of the bagged tree ensemble per imputed column."""


@dataclass(frozen=True)
class StepImputeBag(BaseStep):
    """Fill missing values with predictions of bagged decision trees.

    One ensemble is trained per imputed column on the reference rows where
    that column is observed. Numeric targets use
    :class:`~sklearn.ensemble.BaggingRegressor`, nominal targets
    :class:`~sklearn.ensemble.BaggingClassifier`. Missing predictor values
    are pre-filled with their reference medians, both when training and when
    predicting.

    Attributes:
        impute_with: Numeric predictor columns.
        trees: Number of bagged trees.
        sample_fraction: Fraction of reference rows drawn for each tree.
        seed: Random seed for reproducible ensembles.
    """

    kind: ClassVar[str] = "impute_bag"
    params_type: ClassVar[type[StepParameters]] = BagParameters

    impute_with: SelectorLike = field(default_factory=all_predictors)
    trees: int = 25
    sample_fraction: float = 1.0
    seed: int = 0

    def validate(self) -> None:
        object.__setattr__(self, "impute_with", as_selector(self.impute_with))
        if int(self.trees) != self.trees or self.trees < 1:
            raise ConfigurationError(f"trees must be a positive integer, got {self.trees}")
        check_fraction("sample_fraction", self.sample_fraction, inclusive_low=False)

    def _design(self, df: pd.DataFrame, predictors: list[str], fill_values: Mapping[str, float]) -> np.ndarray:
        return df[predictors].fillna(dict(fill_values)).to_numpy(dtype=float)

    def fit(self, dataset: Dataset) -> BagParameters:
        cols = self.select(dataset)
        schema = dataset.schema
        df = dataset.df
        numeric = [col for col in self.impute_with.resolve(schema) if not schema[col].ctype.is_nominal]

        fill_values = {col: float(df[col].median()) for col in numeric}
        predictors: dict[str, tuple[str, ...]] = {}
        models: dict[str, str] = {}
        for col in cols:
            preds = [p for p in numeric if p != col]
            if not preds:
                raise ConfigurationError(f"Step '{self.kind}' has no numeric predictors for column '{col}'")
            nominal = schema[col].ctype.is_nominal
            target = as_labels(df[col]) if nominal else df[col]
            _require_observed(target, self.kind)
            observed = target.notna().to_numpy()

            ensemble_cls, tree_cls = (
                (BaggingClassifier, DecisionTreeClassifier) if nominal else (BaggingRegressor, DecisionTreeRegressor)
            )
            model = ensemble_cls(
                estimator=tree_cls(random_state=self.seed),
                n_estimators=int(self.trees),
                max_samples=self.sample_fraction,
                random_state=self.seed,
            )
            model.fit(self._design(df.loc[observed], preds, fill_values), target.loc[observed].to_numpy())
            predictors[col] = tuple(preds)
            models[col] = _dump_estimator(model)

        return BagParameters(columns=tuple(cols), predictors=predictors, fill_values=fill_values, models=models)

    def required_columns(self, params: BagParameters) -> tuple[str, ...]:
        needed = dict.fromkeys(params.columns)
        for preds in params.predictors.values():
            needed.update(dict.fromkeys(preds))
        return tuple(needed)

    def apply(self, dataset: Dataset, params: BagParameters) -> Dataset:
        df = dataset.df
        for col in params.columns:
            nominal = dataset.schema[col].ctype.is_nominal
            current = as_labels(df[col]) if nominal else df[col]
            missing = current.isna().to_numpy()
            if missing.any():
                model = _load_estimator(params.models[col])
                design = self._design(df.loc[missing], list(params.predictors[col]), params.fill_values)
                current = current.astype(object) if nominal else current.astype(float)
                current.loc[missing] = model.predict(design)
            df[col] = current
        return dataset.with_df(df)

    @classmethod
    def restore(cls, config: Mapping[str, Any], params: BagParameters) -> Self:
        extra = dict.fromkeys(p for preds in params.predictors.values() for p in preds)
        return cls(names(*params.columns), impute_with=names(*extra), **config)

"""Train/test splits and resampling schemes.

Every scheme returns :class:`Resample` objects holding positional row indices.
The rows themselves are only materialised by :meth:`Resample.analysis` and
:meth:`Resample.assessment`, so one resample can be reused on aligned frames.

Example:
    >>> split = initial_split(df, prop=0.8, strata="sale_price", seed=42)
    >>> train, test = split.training(df), split.testing(df)
    >>> folds = vfold_cv(train, v=10, strata="sale_price", seed=42)
    >>> [len(fold.assessment(train)) for fold in folds]
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import (
    KFold,
    RepeatedKFold,
    RepeatedStratifiedKFold,
    StratifiedKFold,
    train_test_split,
)

from .data.dataset import Dataset
from .errors import ConfigurationError


@dataclass(frozen=True)
class Resample:
    """One analysis/assessment partition of a dataset.

    Attributes:
        id: Label such as ``"Fold03"`` or ``"Bootstrap12"``.
        analysis_idx: Positional indices of the rows used for fitting.
        assessment_idx: Positional indices of the held-out rows.
    """

    id: str
    analysis_idx: tuple[int, ...]
    assessment_idx: tuple[int, ...]

    def analysis(self, data: pd.DataFrame | Dataset) -> pd.DataFrame | Dataset:
        """Rows used for fitting, with a fresh ``RangeIndex``."""
        return _take(data, self.analysis_idx)

    def assessment(self, data: pd.DataFrame | Dataset) -> pd.DataFrame | Dataset:
        """Held-out rows, with a fresh ``RangeIndex``."""
        return _take(data, self.assessment_idx)

    training = analysis
    testing = assessment


def _take(data: pd.DataFrame | Dataset, idx: tuple[int, ...]) -> pd.DataFrame | Dataset:
    if isinstance(data, Dataset):
        return data.with_df(data.df.iloc[list(idx)].reset_index(drop=True))
    return data.iloc[list(idx)].reset_index(drop=True)


def _column(data: pd.DataFrame | Dataset, name: str) -> pd.Series:
    return data.column(name) if isinstance(data, Dataset) else data[name]


def _strata_labels(data: pd.DataFrame | Dataset, strata: str, breaks: int) -> np.ndarray:
    """Group labels for stratified sampling.

    Numeric columns are binned into ``breaks`` quantile groups; nominal columns
    are used as they are.
    """
    y = _column(data, strata)
    if y.isna().any():
        raise ConfigurationError(f"Stratification column '{strata}' contains missing values")
    if pd.api.types.is_numeric_dtype(y) and not pd.api.types.is_bool_dtype(y):
        if breaks < 2:
            raise ConfigurationError(f"breaks must be at least 2, got {breaks}")
        return pd.qcut(y, q=breaks, labels=False, duplicates="drop").to_numpy()
    return y.astype(str).to_numpy()


def _check_prop(prop: float) -> None:
    if not 0 < prop < 1:
        raise ConfigurationError(f"prop must lie in (0, 1), got {prop}")


def initial_split(
    data: pd.DataFrame | Dataset,
    prop: float = 0.75,
    strata: str | None = None,
    breaks: int = 4,
    seed: int | None = None,
) -> Resample:
    """Random training/testing split, optionally stratified.

    Args:
        data: Data to split.
        prop: Share of rows used for training.
        strata: Column whose distribution is balanced across the split.
        breaks: Number of quantile bins when ``strata`` is numeric.
        seed: Random seed.

    Returns:
        Resample with ``training``/``testing`` accessors.
    """
    _check_prop(prop)
    positions = np.arange(len(data))
    labels = None if strata is None else _strata_labels(data, strata, breaks)
    train, test = train_test_split(positions, train_size=prop, stratify=labels, random_state=seed)
    return Resample("Split", tuple(sorted(train.tolist())), tuple(sorted(test.tolist())))


def initial_time_split(data: pd.DataFrame | Dataset, prop: float = 0.75) -> Resample:
    """Use the first ``prop`` share of rows for training and the rest for testing.

    Rows are expected to be sorted by time already.
    """
    _check_prop(prop)
    n = len(data)
    n_train = int(np.floor(n * prop))
    return Resample("Split", tuple(range(n_train)), tuple(range(n_train, n)))


def vfold_cv(
    data: pd.DataFrame | Dataset,
    v: int = 10,
    repeats: int = 1,
    strata: str | None = None,
    breaks: int = 4,
    seed: int | None = None,
) -> list[Resample]:
    """V-fold cross-validation, optionally repeated and stratified.

    Uses :class:`~sklearn.model_selection.KFold` (or its stratified and
    repeated variants) with shuffling.

    Returns:
        ``v * repeats`` resamples labelled ``Fold01`` (or ``Repeat1/Fold01``).
    """
    if v < 2:
        raise ConfigurationError(f"v must be at least 2, got {v}")
    if repeats < 1:
        raise ConfigurationError(f"repeats must be at least 1, got {repeats}")

    positions = np.arange(len(data))
    labels = None if strata is None else _strata_labels(data, strata, breaks)
    if repeats == 1:
        splitter = (
            KFold(n_splits=v, shuffle=True, random_state=seed)
            if labels is None
            else StratifiedKFold(n_splits=v, shuffle=True, random_state=seed)
        )
    else:
        splitter = (
            RepeatedKFold(n_splits=v, n_repeats=repeats, random_state=seed)
            if labels is None
            else RepeatedStratifiedKFold(n_splits=v, n_repeats=repeats, random_state=seed)
        )

    width = max(len(str(v)), 2)
    resamples = []
    for i, (analysis, assessment) in enumerate(splitter.split(positions, labels)):
        fold_id = f"Fold{i % v + 1:0{width}d}"
        if repeats > 1:
            fold_id = f"Repeat{i // v + 1}/{fold_id}"
        resamples.append(Resample(fold_id, tuple(analysis.tolist()), tuple(assessment.tolist())))
    return resamples


def bootstraps(data: pd.DataFrame | Dataset, times: int = 25, seed: int | None = None) -> list[Resample]:
    """Bootstrap resamples: analysis rows drawn with replacement, out-of-bag rows for assessment."""
    if times < 1:
        raise ConfigurationError(f"times must be at least 1, got {times}")
    n = len(data)
    rng = np.random.default_rng(seed)
    width = max(len(str(times)), 2)
    resamples = []
    for i in range(times):
        drawn = rng.integers(0, n, size=n)
        out_of_bag = np.setdiff1d(np.arange(n), drawn)
        resamples.append(Resample(f"Bootstrap{i + 1:0{width}d}", tuple(drawn.tolist()), tuple(out_of_bag.tolist())))
    return resamples


__all__ = ["Resample", "bootstraps", "initial_split", "initial_time_split", "vfold_cv"]

"""Categorical encoders: indicator (dummy / one-hot) and integer codes.

Both encoders fix a level vocabulary per column at fit time. A level that was
not seen at fit time is handled according to ``unseen``:

- ``"zero"``: the value falls into an unknown bucket (all indicator columns
  0 for :class:`StepDummy`, the reserved unknown code for :class:`StepInteger`).
- ``"error"``: :class:`~blueprint_tlbx.errors.UnseenLevelError` is raised.

The output schema never depends on the apply-time data.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar, Literal

import numpy as np
import pandas as pd

from blueprint_tlbx.data.columns import ColumnMetadata, ColumnType
from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError, UnseenLevelError

from .base import BaseStep, StepParameters, as_labels, level_vocabulary


UnseenPolicy = Literal["zero", "error"]


def _check_unseen(labels: pd.Series, levels: list[str], column: str, policy: UnseenPolicy) -> None:
    unseen = sorted(set(labels.dropna()) - set(levels))
    if unseen and policy == "error":
        raise UnseenLevelError(f"Column '{column}' contains levels not seen at fit time: {unseen}")


def _validate_policy(policy: str) -> None:
    if policy not in ("zero", "error"):
        raise ConfigurationError(f"unseen must be 'zero' or 'error', got {policy!r}")


@dataclass(frozen=True)
class EncodingParameters(StepParameters):
    levels: Mapping[str, tuple[str, ...]]


@dataclass(frozen=True)
class StepDummy(BaseStep):
    """Replace each nominal column by numeric indicator columns named ``{column}_{level}``.

    With ``one_hot=False`` (dummy coding) the first level is the reference and
    gets no column; with ``one_hot=True`` every level gets a column. Missing
    values yield NaN in every indicator column of that row.

    Attributes:
        one_hot: Emit a column for every level instead of dropping the first.
        unseen: Policy for levels absent at fit time.
        sep: Separator between column name and level in the new names.
    """

    kind: ClassVar[str] = "dummy"
    params_type: ClassVar[type[StepParameters]] = EncodingParameters

    one_hot: bool = False
    unseen: UnseenPolicy = "zero"
    sep: str = "_"

    def validate(self) -> None:
        _validate_policy(self.unseen)

    def fit(self, dataset: Dataset) -> EncodingParameters:
        cols = self.select(dataset, numeric=False)
        params = EncodingParameters(
            columns=tuple(cols),
            levels={col: tuple(level_vocabulary(dataset, col)) for col in cols},
        )
        kept = [name for name in dataset.columns if name not in params.columns]
        seen = set(kept)
        for col in cols:
            for name in self.indicator_names(params, col):
                if name in seen:
                    raise ConfigurationError(
                        f"Indicator column '{name}' for column '{col}' collides with an existing column; "
                        f"choose another sep (currently {self.sep!r})",
                    )
                seen.add(name)
        return params

    def indicator_names(self, params: EncodingParameters, column: str) -> list[str]:
        """Names of the indicator columns produced for ``column``."""
        levels = list(params.levels[column])
        encoded = levels if self.one_hot else levels[1:]
        return [f"{column}{self.sep}{level}" for level in encoded]

    def apply(self, dataset: Dataset, params: EncodingParameters) -> Dataset:
        df = dataset.df
        new_meta = []
        indicators: list[pd.DataFrame] = []
        for col in params.columns:
            levels = list(params.levels[col])
            labels = as_labels(df[col])
            _check_unseen(labels, levels, col, self.unseen)

            encoded = levels if self.one_hot else levels[1:]
            missing = labels.isna().to_numpy()
            block = {}
            for level, name in zip(encoded, self.indicator_names(params, col), strict=True):
                values = (labels == level).to_numpy(dtype=float)
                values[missing] = np.nan
                block[name] = values
            indicators.append(pd.DataFrame(block, index=df.index))

            role = dataset.schema[col].role
            new_meta.extend(ColumnMetadata(name, ColumnType.NUMERIC, role) for name in block)

        out = pd.concat([df.drop(columns=list(params.columns)), *indicators], axis=1)
        return dataset.with_df(out, new_meta)


@dataclass(frozen=True)
class StepInteger(BaseStep):
    """Replace each nominal column by integer level codes.

    Codes follow the fitted vocabulary order: ``1..n`` with ``0`` for unseen
    levels, or ``0..n-1`` with ``n`` for unseen levels when ``zero_based``.
    Missing values stay missing.

    Attributes:
        zero_based: Start codes at 0 instead of 1.
        unseen: Policy for levels absent at fit time.
    """

    kind: ClassVar[str] = "integer"
    params_type: ClassVar[type[StepParameters]] = EncodingParameters

    zero_based: bool = False
    unseen: UnseenPolicy = "zero"

    def validate(self) -> None:
        _validate_policy(self.unseen)

    def fit(self, dataset: Dataset) -> EncodingParameters:
        cols = self.select(dataset, numeric=False)
        return EncodingParameters(
            columns=tuple(cols),
            levels={col: tuple(level_vocabulary(dataset, col)) for col in cols},
        )

    def apply(self, dataset: Dataset, params: EncodingParameters) -> Dataset:
        df = dataset.df
        new_meta = []
        for col in params.columns:
            levels = list(params.levels[col])
            labels = as_labels(df[col])
            _check_unseen(labels, levels, col, self.unseen)

            start = 0 if self.zero_based else 1
            unknown = len(levels) if self.zero_based else 0
            codes = {level: float(i) for i, level in enumerate(levels, start=start)}
            df[col] = labels.map(lambda v: np.nan if pd.isna(v) else codes.get(v, unknown)).astype(float)
            new_meta.append(ColumnMetadata(col, ColumnType.NUMERIC, dataset.schema[col].role))
        return dataset.with_df(df, new_meta)

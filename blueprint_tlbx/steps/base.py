"""Base classes shared by all blueprint steps.

A step is a frozen dataclass holding configuration only. Its :meth:`BaseStep.fit`
reads one reference :class:`Dataset` and returns a :class:`StepParameters`
value; :meth:`BaseStep.apply` replays those parameters on any dataset without
access to the reference data.

### Adding a new step

```python
@dataclass(frozen=True)
class ClipParameters(StepParameters):
    lower: Mapping[str, float]
    upper: Mapping[str, float]


@dataclass(frozen=True)
class StepClip(BaseStep):
    kind: ClassVar[str] = "clip"
    params_type: ClassVar[type[StepParameters]] = ClipParameters

    quantile: float = 0.01

    def fit(self, dataset: Dataset) -> ClipParameters:
        cols = self.select(dataset, numeric=True)
        frame = dataset.df[cols]
        return ClipParameters(
            columns=tuple(cols),
            lower=frame.quantile(self.quantile).to_dict(),
            upper=frame.quantile(1 - self.quantile).to_dict(),
        )

    def apply(self, dataset: Dataset, params: ClipParameters) -> Dataset:
        df = dataset.df
        for col in params.columns:
            df[col] = df[col].clip(params.lower[col], params.upper[col])
        return dataset.with_df(df)
```

Setting ``kind`` registers the class so fitted blueprints can be restored from
their serialized form.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Any, ClassVar, Self

import numpy as np
import pandas as pd

from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError
from blueprint_tlbx.selectors import ColumnSelector, SelectorLike, as_selector, names


STEP_REGISTRY: dict[str, type["BaseStep"]] = {}


def _freeze(value: Any) -> Any:
    """Recursively convert containers to read-only equivalents."""
    if isinstance(value, np.ndarray):
        return _freeze(value.tolist())
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, list | tuple):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Inverse of :func:`_freeze`, producing JSON-compatible containers."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class StepParameters:
    """Parameters learned by a step at fit time.

    Subclasses add one field per learned quantity. Field values must be
    JSON-compatible (numbers, strings, None, lists, string-keyed mappings);
    they are frozen on construction so a fitted blueprint cannot be mutated.

    Attributes:
        columns: Columns the step operates on, frozen at fit time.
    """

    columns: tuple[str, ...]

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, _freeze(getattr(self, f.name)))

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _thaw(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        return cls(**payload)

    def __getstate__(self) -> dict[str, Any]:
        return self.to_dict()

    def __setstate__(self, state: dict[str, Any]) -> None:
        for key, value in state.items():
            object.__setattr__(self, key, _freeze(value))


@dataclass(frozen=True)
class BaseStep(ABC):
    """Abstract base class for blueprint steps.

    Attributes:
        selector: Columns the step acts on; a :class:`ColumnSelector`, a column
            name or a list of names.
    """

    selector: SelectorLike

    kind: ClassVar[str]
    params_type: ClassVar[type[StepParameters]] = StepParameters

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        kind = cls.__dict__.get("kind")
        if isinstance(kind, str):
            STEP_REGISTRY[kind] = cls

    def __post_init__(self) -> None:
        object.__setattr__(self, "selector", as_selector(self.selector))
        self.validate()

    def validate(self) -> None:
        """Check the configuration.

        Raises:
            ConfigurationError: If a configuration value is invalid.
        """

    @abstractmethod
    def fit(self, dataset: Dataset) -> StepParameters:
        """Estimate parameters from the reference dataset."""
        ...

    @abstractmethod
    def apply(self, dataset: Dataset, params: StepParameters) -> Dataset:
        """Transform ``dataset`` using previously fitted ``params``."""
        ...

    def required_columns(self, params: StepParameters) -> tuple[str, ...]:
        """Columns that must be present when the step is applied."""
        return params.columns

    def select(self, dataset: Dataset, *, numeric: bool | None = None) -> list[str]:
        """Resolve the selector against ``dataset`` and check column types.

        Args:
            dataset: Dataset seen at fit time.
            numeric: Require numeric (True) or nominal (False) columns; None accepts both.

        Raises:
            ConfigurationError: If a selected column has the wrong type.
        """
        cols = self.selector.resolve(dataset.schema)
        if numeric is not None:
            wrong = [col for col in cols if dataset.schema[col].ctype.is_nominal == numeric]
            if wrong:
                expected = "numeric" if numeric else "categorical/ordinal"
                raise ConfigurationError(f"Step '{self.kind}' requires {expected} columns; got {wrong}")
        return cols

    # ------------------------------------------------------------------ persistence
    def config(self) -> dict[str, Any]:
        """Configuration values other than selectors."""
        return {
            f.name: _thaw(getattr(self, f.name))
            for f in fields(self)
            if not isinstance(getattr(self, f.name), ColumnSelector)
        }

    @classmethod
    def restore(cls, config: Mapping[str, Any], params: StepParameters) -> Self:
        """Rebuild a step from its configuration and fitted parameters.

        Selectors are replaced by the explicit column names frozen in ``params``.
        """
        return cls(names(*params.columns), **config)


def check_fraction(name: str, value: float, *, inclusive_low: bool = True) -> None:
    """Raise ConfigurationError unless ``value`` lies in ``[0, 1]`` (or ``(0, 1]``)."""
    low_ok = value >= 0 if inclusive_low else value > 0
    if not (low_ok and value <= 1):
        bracket = "[" if inclusive_low else "("
        raise ConfigurationError(f"{name} must lie in {bracket}0, 1], got {value}")


def as_labels(series: pd.Series) -> pd.Series:
    """Map non-missing values to their string labels; missing values stay NaN."""
    return series.astype(str).astype(object).where(series.notna(), np.nan)


def level_vocabulary(dataset: Dataset, column: str) -> list[str]:
    """Ordered level vocabulary of a nominal column.

    Declared categorical order wins (ordinal order for ordinal columns);
    otherwise the observed labels are sorted lexicographically.
    """
    declared = dataset.schema[column].levels
    if declared is not None:
        return list(declared)
    return sorted(as_labels(dataset.column(column)).dropna().unique())


__all__ = [
    "STEP_REGISTRY",
    "BaseStep",
    "StepParameters",
    "as_labels",
    "check_fraction",
    "level_vocabulary",
]

"""Column roles, column types and per-column metadata."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

import pandas as pd


class ColumnRole(StrEnum):
    """Role a column plays in a modeling workflow."""

    OUTCOME = "outcome"
    """Variable to be predicted."""
    PREDICTOR = "predictor"
    """Input feature."""
    IDENTIFIER = "identifier"
    """Row identifier carried along but never modeled (e.g. an id or a date)."""


class ColumnType(StrEnum):
    """Measurement type of a column."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    ORDINAL = "ordinal"
    """Categorical with a meaningful level order."""

    @property
    def is_nominal(self) -> bool:
        """True for categorical and ordinal columns."""
        return self is not ColumnType.NUMERIC

    @classmethod
    def infer(cls, series: pd.Series) -> ColumnType:
        """Infer the column type from a pandas dtype.

        Booleans are treated as categorical; ordered pandas categoricals are ordinal.
        """
        if isinstance(series.dtype, pd.CategoricalDtype):
            return cls.ORDINAL if series.dtype.ordered else cls.CATEGORICAL
        if pd.api.types.is_bool_dtype(series.dtype):
            return cls.CATEGORICAL
        if pd.api.types.is_numeric_dtype(series.dtype):
            return cls.NUMERIC
        return cls.CATEGORICAL


@dataclass(frozen=True)
class ColumnMetadata:
    """Metadata for a dataset column.

    Attributes:
        name: Column name as it appears in the DataFrame.
        ctype: Measurement type.
        role: Modeling role.
        levels: Declared level order for nominal columns backed by a pandas
            categorical; ``None`` when the order is not declared.
    """

    name: str
    ctype: ColumnType
    role: ColumnRole = ColumnRole.PREDICTOR
    levels: tuple[str, ...] | None = None

    @classmethod
    def infer(cls, series: pd.Series, role: ColumnRole | str = ColumnRole.PREDICTOR) -> ColumnMetadata:
        """Build metadata for ``series`` with the given role."""
        ctype = ColumnType.infer(series)
        levels = None
        if isinstance(series.dtype, pd.CategoricalDtype):
            levels = tuple(str(level) for level in series.dtype.categories)
        return cls(name=str(series.name), ctype=ctype, role=ColumnRole(role), levels=levels)

    def with_role(self, role: ColumnRole | str) -> ColumnMetadata:
        """Return a copy carrying ``role``."""
        return replace(self, role=ColumnRole(role))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ctype": str(self.ctype),
            "role": str(self.role),
            "levels": list(self.levels) if self.levels is not None else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ColumnMetadata:
        levels = payload.get("levels")
        return cls(
            name=payload["name"],
            ctype=ColumnType(payload["ctype"]),
            role=ColumnRole(payload["role"]),
            levels=tuple(levels) if levels is not None else None,
        )

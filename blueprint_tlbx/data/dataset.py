"""Dataset: a DataFrame bound to a role-annotated schema."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

import pandas as pd

from blueprint_tlbx.errors import SchemaMismatchError

from .columns import ColumnMetadata, ColumnRole
from .schema import DatasetSchema


class Dataset:
    """Rectangular table of named, typed, role-tagged columns.

    The wrapped frame is never handed out directly: :attr:`df` returns a copy,
    so transformations always produce new ``Dataset`` instances.

    Example:
        >>> ds = Dataset(df, outcome="sale_price")
        >>> ds.schema.outcomes
        ['sale_price']
        >>> ds.summary()
    """

    def __init__(
        self,
        df: pd.DataFrame,
        schema: DatasetSchema | None = None,
        *,
        roles: Mapping[str, ColumnRole | str] | None = None,
        outcome: str | Sequence[str] | None = None,
    ) -> None:
        """Initialize the dataset.

        Args:
            df: Source frame. Column labels are coerced to strings.
            schema: Explicit schema; inferred from ``df`` when omitted.
            roles: Role per column, used only when ``schema`` is omitted.
            outcome: Outcome column(s), used only when ``schema`` is omitted.

        Raises:
            SchemaMismatchError: If ``schema`` does not list exactly the columns of ``df``.
        """
        frame = df.copy()
        frame.columns = [str(c) for c in frame.columns]
        if schema is None:
            schema = DatasetSchema.infer(frame, roles=roles, outcome=outcome)
        elif schema.names != list(frame.columns):
            raise SchemaMismatchError(
                f"Schema columns {schema.names} do not match frame columns {list(frame.columns)}",
            )
        self._df = frame
        self._schema = schema

    @classmethod
    def from_csv(
        cls,
        filepath: str | Path,
        *,
        roles: Mapping[str, ColumnRole | str] | None = None,
        outcome: str | Sequence[str] | None = None,
        **kwargs: object,
    ) -> Dataset:
        """Load a dataset from a CSV file.

        Args:
            filepath: Path to the CSV file.
            roles: Role per column.
            outcome: Outcome column(s).
            **kwargs: Forwarded to :func:`pandas.read_csv`.
        """
        return cls(pd.read_csv(filepath, **kwargs), roles=roles, outcome=outcome)

    @property
    def df(self) -> pd.DataFrame:
        """Copy of the underlying DataFrame."""
        return self._df.copy()

    @property
    def schema(self) -> DatasetSchema:
        return self._schema

    @property
    def columns(self) -> list[str]:
        return list(self._df.columns)

    @property
    def n_rows(self) -> int:
        return len(self._df)

    def __len__(self) -> int:
        return self.n_rows

    @property
    def roles(self) -> dict[str, ColumnRole]:
        return self._schema.roles

    def column(self, name: str) -> pd.Series:
        """Copy of a single column."""
        if name not in self._schema:
            raise SchemaMismatchError(f"Column '{name}' not found. Available: {self.columns}")
        return self._df[name].copy()

    def with_df(self, df: pd.DataFrame, new_columns: Iterable[ColumnMetadata] = ()) -> Dataset:
        """Build a new dataset from ``df``, reusing metadata for known columns.

        Args:
            df: Transformed frame.
            new_columns: Metadata for columns that are new or whose type changed.
                Everything else keeps the metadata (and role) it has in this dataset.
        """
        overrides = {meta.name: meta for meta in new_columns}
        schema = DatasetSchema(
            tuple(overrides[str(c)] if str(c) in overrides else self._schema[str(c)] for c in df.columns),
        )
        return Dataset(df, schema)

    def update_role(self, names: str | Iterable[str], role: ColumnRole | str) -> Dataset:
        """Return a dataset where ``names`` carry ``role``."""
        names = [names] if isinstance(names, str) else list(names)
        return Dataset(self._df, self._schema.update_role(names, role))

    def summary(self) -> pd.DataFrame:
        """One row per column with its type and role."""
        return pd.DataFrame(
            {
                "variable": self._schema.names,
                "type": [str(col.ctype) for col in self._schema],
                "role": [str(col.role) for col in self._schema],
            },
        )

    def __repr__(self) -> str:
        return f"Dataset(n_rows={self.n_rows}, columns={self.columns})"

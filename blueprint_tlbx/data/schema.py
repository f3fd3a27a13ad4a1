"""Ordered column schema shared by datasets and fitted blueprints."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from blueprint_tlbx.errors import SchemaMismatchError

from .columns import ColumnMetadata, ColumnRole, ColumnType


@dataclass(frozen=True)
class DatasetSchema:
    """Ordered, immutable collection of :class:`ColumnMetadata`.

    Example:
        >>> schema = DatasetSchema.infer(df, outcome="price")
        >>> schema.outcomes
        ['price']
    """

    columns: tuple[ColumnMetadata, ...]

    def __post_init__(self) -> None:
        names = [col.name for col in self.columns]
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise SchemaMismatchError(f"Duplicate column names in schema: {dupes}")

    @classmethod
    def infer(
        cls,
        df: pd.DataFrame,
        roles: Mapping[str, ColumnRole | str] | None = None,
        outcome: str | Sequence[str] | None = None,
    ) -> DatasetSchema:
        """Infer a schema from a DataFrame.

        Args:
            df: Source frame; column types are inferred from dtypes.
            roles: Explicit role per column name. Unlisted columns are predictors.
            outcome: Shortcut for assigning the outcome role to one or more columns.

        Raises:
            SchemaMismatchError: If ``roles`` or ``outcome`` mention unknown columns.
        """
        assigned: dict[str, ColumnRole] = {str(k): ColumnRole(v) for k, v in (roles or {}).items()}
        if outcome is not None:
            for name in [outcome] if isinstance(outcome, str) else outcome:
                assigned[name] = ColumnRole.OUTCOME

        unknown = set(assigned) - {str(c) for c in df.columns}
        if unknown:
            raise SchemaMismatchError(f"Role assigned to unknown columns: {sorted(unknown)}")

        return cls(
            tuple(
                ColumnMetadata.infer(df[col], role=assigned.get(str(col), ColumnRole.PREDICTOR))
                for col in df.columns
            ),
        )

    # ------------------------------------------------------------------ lookup
    @property
    def names(self) -> list[str]:
        return [col.name for col in self.columns]

    def __iter__(self) -> Iterator[ColumnMetadata]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def __contains__(self, name: object) -> bool:
        return any(col.name == name for col in self.columns)

    def __getitem__(self, name: str) -> ColumnMetadata:
        for col in self.columns:
            if col.name == name:
                return col
        raise SchemaMismatchError(f"Column '{name}' not found in schema. Available: {self.names}")

    def with_role(self, role: ColumnRole | str) -> list[str]:
        """Names of columns carrying ``role``."""
        return [col.name for col in self.columns if col.role == ColumnRole(role)]

    @property
    def outcomes(self) -> list[str]:
        return self.with_role(ColumnRole.OUTCOME)

    @property
    def predictors(self) -> list[str]:
        return self.with_role(ColumnRole.PREDICTOR)

    @property
    def roles(self) -> dict[str, ColumnRole]:
        return {col.name: col.role for col in self.columns}

    # ------------------------------------------------------------------ derivation
    def update_role(self, names: Iterable[str], role: ColumnRole | str) -> DatasetSchema:
        """Return a schema where ``names`` carry ``role``."""
        targets = set(names)
        missing = targets - set(self.names)
        if missing:
            raise SchemaMismatchError(f"Cannot update role of unknown columns: {sorted(missing)}")
        return DatasetSchema(tuple(col.with_role(role) if col.name in targets else col for col in self.columns))

    def subset(self, names: Iterable[str]) -> DatasetSchema:
        """Schema restricted to ``names`` in the given order."""
        return DatasetSchema(tuple(self[name] for name in names))

    def is_compatible(self, name: str, ctype: ColumnType) -> bool:
        """Whether a column of type ``ctype`` can stand in for column ``name``.

        Categorical and ordinal columns are interchangeable; numeric must stay numeric.
        """
        expected = self[name].ctype
        return expected.is_nominal == ctype.is_nominal

    # ------------------------------------------------------------------ persistence
    def to_dict(self) -> list[dict[str, Any]]:
        return [col.to_dict() for col in self.columns]

    @classmethod
    def from_dict(cls, payload: Iterable[dict[str, Any]]) -> DatasetSchema:
        return cls(tuple(ColumnMetadata.from_dict(item) for item in payload))

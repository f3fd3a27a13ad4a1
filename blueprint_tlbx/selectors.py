"""Role-aware column selectors.

Selectors are predicates over :class:`ColumnMetadata` that can be combined with
``&``, ``|``, ``-`` and ``~``. A step resolves its selector once, against the
schema it sees at fit time, and stores the resulting column names.

Example:
    >>> from blueprint_tlbx.selectors import all_numeric_predictors, names
    >>> selector = all_numeric_predictors() - names("year")
    >>> selector.resolve(dataset.schema)
    ['lot_area', 'gr_liv_area']
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .data.columns import ColumnMetadata, ColumnRole, ColumnType
from .data.schema import DatasetSchema
from .errors import SchemaMismatchError


@dataclass(frozen=True)
class ColumnSelector:
    """Predicate over column metadata with a readable description.

    Attributes:
        predicate: Returns True for selected columns.
        description: Human-readable form, used in ``repr`` and ``tidy()`` tables.
        required: Names that must exist in the schema (explicit selections).
    """

    predicate: Callable[[ColumnMetadata], bool] = field(compare=False)
    description: str
    required: tuple[str, ...] = ()

    def resolve(self, schema: DatasetSchema) -> list[str]:
        """Return the selected column names in schema order.

        Raises:
            SchemaMismatchError: If an explicitly named column is absent.
        """
        missing = [name for name in self.required if name not in schema]
        if missing:
            raise SchemaMismatchError(f"Selector {self.description} names unknown columns: {missing}")
        return [col.name for col in schema if self.predicate(col)]

    def __and__(self, other: ColumnSelector) -> ColumnSelector:
        return ColumnSelector(
            lambda col: self.predicate(col) and other.predicate(col),
            f"({self.description} & {other.description})",
            (*self.required, *other.required),
        )

    def __or__(self, other: ColumnSelector) -> ColumnSelector:
        return ColumnSelector(
            lambda col: self.predicate(col) or other.predicate(col),
            f"({self.description} | {other.description})",
            (*self.required, *other.required),
        )

    def __sub__(self, other: ColumnSelector) -> ColumnSelector:
        return ColumnSelector(
            lambda col: self.predicate(col) and not other.predicate(col),
            f"({self.description} - {other.description})",
            self.required,
        )

    def __invert__(self) -> ColumnSelector:
        return ColumnSelector(lambda col: not self.predicate(col), f"~{self.description}")

    def __repr__(self) -> str:
        return self.description


SelectorLike = ColumnSelector | str | Iterable[str]


def as_selector(value: SelectorLike) -> ColumnSelector:
    """Coerce a column name or list of names into a selector."""
    if isinstance(value, ColumnSelector):
        return value
    if isinstance(value, str):
        return names(value)
    return names(*value)


def names(*cols: str) -> ColumnSelector:
    """Select columns by explicit name."""
    wanted = tuple(str(c) for c in cols)
    return ColumnSelector(lambda col: col.name in wanted, f"names({', '.join(wanted)})", wanted)


def has_role(role: ColumnRole | str) -> ColumnSelector:
    role = ColumnRole(role)
    return ColumnSelector(lambda col: col.role == role, f"has_role({role})")


def has_type(*types: ColumnType | str) -> ColumnSelector:
    wanted = tuple(ColumnType(t) for t in types)
    return ColumnSelector(lambda col: col.ctype in wanted, f"has_type({', '.join(wanted)})")


def matches(pattern: str) -> ColumnSelector:
    """Select columns whose name matches the regular expression ``pattern``."""
    regex = re.compile(pattern)
    return ColumnSelector(lambda col: regex.search(col.name) is not None, f"matches({pattern!r})")


def everything() -> ColumnSelector:
    return ColumnSelector(lambda col: True, "everything()")


def all_numeric() -> ColumnSelector:
    return ColumnSelector(lambda col: col.ctype is ColumnType.NUMERIC, "all_numeric()")


def all_nominal() -> ColumnSelector:
    return ColumnSelector(lambda col: col.ctype.is_nominal, "all_nominal()")


def all_predictors() -> ColumnSelector:
    return ColumnSelector(lambda col: col.role is ColumnRole.PREDICTOR, "all_predictors()")


def all_outcomes() -> ColumnSelector:
    return ColumnSelector(lambda col: col.role is ColumnRole.OUTCOME, "all_outcomes()")


def all_numeric_predictors() -> ColumnSelector:
    return ColumnSelector(
        lambda col: col.role is ColumnRole.PREDICTOR and col.ctype is ColumnType.NUMERIC,
        "all_numeric_predictors()",
    )


def all_nominal_predictors() -> ColumnSelector:
    return ColumnSelector(
        lambda col: col.role is ColumnRole.PREDICTOR and col.ctype.is_nominal,
        "all_nominal_predictors()",
    )


__all__ = [
    "ColumnSelector",
    "SelectorLike",
    "all_nominal",
    "all_nominal_predictors",
    "all_numeric",
    "all_numeric_predictors",
    "all_outcomes",
    "all_predictors",
    "as_selector",
    "everything",
    "has_role",
    "has_type",
    "matches",
    "names",
]

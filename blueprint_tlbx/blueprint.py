"""Blueprint (declarative step list) and FittedBlueprint (replayable result).

A :class:`Blueprint` fixes the role assignment of a template dataset and
collects an ordered list of steps. :meth:`Blueprint.fit` estimates every step
on one reference dataset, threading the progressively transformed data through
the chain, and returns an immutable :class:`FittedBlueprint` that can be
applied to any number of datasets with a compatible schema.

Example:
    >>> bp = (
    ...     Blueprint.from_data(train, outcome="sale_price")
    ...     .add_step(StepNearZeroVariance(all_predictors()))
    ...     .add_step(StepNormalize(all_numeric_predictors()))
    ... )
    >>> fitted = bp.fit(train)
    >>> fitted.apply(test).df.head()
    >>> fitted.save("artifacts/blueprint.json")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import pandas as pd

from .data.columns import ColumnMetadata, ColumnRole
from .data.dataset import Dataset
from .data.schema import DatasetSchema
from .errors import ConfigurationError, SchemaMismatchError
from .selectors import SelectorLike, as_selector
from .steps.base import STEP_REGISTRY, BaseStep, StepParameters


logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

DataLike = pd.DataFrame | Dataset


def _conform(data: DataLike, schema: DatasetSchema, required: Sequence[str]) -> Dataset:
    """Bind ``data`` to the roles of ``schema``.

    Columns unknown to ``schema`` are dropped; the others keep the schema's
    order and role, with their type inferred from ``data``.

    Raises:
        SchemaMismatchError: If a ``required`` column is missing or has an
            incompatible type.
    """
    df = data.df if isinstance(data, Dataset) else data.copy()
    df.columns = [str(c) for c in df.columns]

    missing = [name for name in required if name not in df.columns]
    if missing:
        raise SchemaMismatchError(f"Missing required columns: {missing}")

    ignored = [c for c in df.columns if c not in schema]
    if ignored:
        logger.debug("Ignoring columns unknown to the blueprint: %s", ignored)

    keep = [name for name in schema.names if name in df.columns]
    columns: list[ColumnMetadata] = []
    mismatched: list[str] = []
    for name in keep:
        meta = ColumnMetadata.infer(df[name], role=schema[name].role)
        if name in required and not schema.is_compatible(name, meta.ctype):
            mismatched.append(f"{name} (expected {schema[name].ctype}, got {meta.ctype})")
        columns.append(meta)
    if mismatched:
        raise SchemaMismatchError(f"Incompatible column types: {', '.join(mismatched)}")

    return Dataset(df[keep], DatasetSchema(tuple(columns)))


@dataclass(frozen=True)
class Blueprint:
    """Ordered, declarative list of steps bound to a role assignment.

    Instances are immutable; :meth:`add_step` returns a new blueprint.

    Attributes:
        schema: Template schema fixing column names, types and roles.
        steps: Steps in application order.
    """

    schema: DatasetSchema
    steps: tuple[BaseStep, ...] = ()

    @classmethod
    def from_data(
        cls,
        data: DataLike,
        outcome: str | Sequence[str] | None = None,
        roles: Mapping[str, ColumnRole | str] | None = None,
    ) -> Blueprint:
        """Create an empty blueprint from a template dataset.

        Args:
            data: Template frame or dataset; only its columns, types and roles are used.
            outcome: Outcome column(s).
            roles: Explicit role per column (e.g. ``{"id": "identifier"}``).
        """
        if isinstance(data, Dataset):
            schema = data.schema
            for name, role in (roles or {}).items():
                schema = schema.update_role([name], role)
            if outcome is not None:
                schema = schema.update_role([outcome] if isinstance(outcome, str) else outcome, ColumnRole.OUTCOME)
        else:
            schema = DatasetSchema.infer(data, roles=roles, outcome=outcome)
        return cls(schema)

    def add_step(self, step: BaseStep) -> Blueprint:
        """Return a new blueprint with ``step`` appended."""
        if not isinstance(step, BaseStep):
            raise ConfigurationError(f"Expected a step instance, got {type(step).__name__}")
        return replace(self, steps=(*self.steps, step))

    def summary(self) -> pd.DataFrame:
        """One row per template column: variable, type, role."""
        return pd.DataFrame(
            {
                "variable": self.schema.names,
                "type": [str(col.ctype) for col in self.schema],
                "role": [str(col.role) for col in self.schema],
            },
        )

    def tidy(self) -> pd.DataFrame:
        """One row per step: number, kind and selector (nothing is fitted yet)."""
        return pd.DataFrame(
            {
                "number": range(1, len(self.steps) + 1),
                "kind": [step.kind for step in self.steps],
                "selector": [repr(step.selector) for step in self.steps],
                "trained": False,
            },
        )

    def fit(self, data: DataLike) -> FittedBlueprint:
        """Estimate every step on ``data`` and freeze the result.

        Each step is fitted on the output of the previous steps applied to the
        reference data. The first failing step aborts the whole fit.

        Args:
            data: Reference dataset; must contain every template column.

        Returns:
            FittedBlueprint holding the learned parameters and the schema after each step.

        Raises:
            SchemaMismatchError: If ``data`` does not match the template.
            BlueprintError: Propagated from the first failing step.
        """
        dataset = _conform(data, self.schema, self.schema.names)
        schemas = [dataset.schema]
        parameters: list[StepParameters] = []

        for i, step in enumerate(self.steps, start=1):
            try:
                params = step.fit(dataset)
                dataset = step.apply(dataset, params)
            except Exception as exc:
                exc.add_note(f"Raised by step {i} ({step.kind}) while fitting the blueprint")
                raise
            logger.debug("Fitted step %d/%d (%s) on %d columns", i, len(self.steps), step.kind, len(params.columns))
            parameters.append(params)
            schemas.append(dataset.schema)

        logger.info(
            "Fitted blueprint with %d steps on %d rows: %d -> %d columns",
            len(self.steps),
            dataset.n_rows,
            len(schemas[0]),
            len(schemas[-1]),
        )
        return FittedBlueprint(steps=self.steps, parameters=tuple(parameters), schemas=tuple(schemas))


@dataclass(frozen=True)
class FittedBlueprint:
    """Immutable result of fitting a :class:`Blueprint`.

    Attributes:
        steps: Fitted steps in application order.
        parameters: Learned parameters, one per step.
        schemas: Fit-time schema before the first step and after each step.
    """

    steps: tuple[BaseStep, ...]
    parameters: tuple[StepParameters, ...]
    schemas: tuple[DatasetSchema, ...]

    def __post_init__(self) -> None:
        if len(self.parameters) != len(self.steps) or len(self.schemas) != len(self.steps) + 1:
            raise ConfigurationError(
                f"Inconsistent fitted blueprint: {len(self.steps)} steps, "
                f"{len(self.parameters)} parameter sets, {len(self.schemas)} schemas",
            )

    @property
    def input_schema(self) -> DatasetSchema:
        return self.schemas[0]

    @property
    def output_schema(self) -> DatasetSchema:
        return self.schemas[-1]

    def required_inputs(self) -> list[str]:
        """Raw input columns some step needs at apply time.

        Columns created by an earlier step are excluded.
        """
        produced: set[str] = set()
        needed: dict[str, None] = {}
        for i, (step, params) in enumerate(zip(self.steps, self.parameters, strict=True)):
            needed.update(dict.fromkeys(name for name in step.required_columns(params) if name not in produced))
            produced |= set(self.schemas[i + 1].names) - set(self.schemas[i].names)
        return list(needed)

    def validate(self, data: DataLike) -> Dataset:
        """Check that ``data`` can be replayed and bind it to the fit-time roles.

        Nothing is transformed: every column a step needs must exist in
        ``data`` with a type compatible with the fit-time type.

        Raises:
            SchemaMismatchError: If a required column is missing or has an incompatible type.
        """
        return _conform(data, self.input_schema, self.required_inputs())

    def apply(self, data: DataLike) -> Dataset:
        """Replay every step on ``data`` with the stored parameters.

        Raises:
            SchemaMismatchError: Before any step runs, if ``data`` is incompatible.
            BlueprintError: Propagated from the first failing step.
        """
        dataset = self.validate(data)
        for i, (step, params) in enumerate(zip(self.steps, self.parameters, strict=True), start=1):
            try:
                dataset = step.apply(dataset, params)
            except Exception as exc:
                exc.add_note(f"Raised by step {i} ({step.kind}) while applying the blueprint")
                raise
        logger.debug("Applied blueprint to %d rows", dataset.n_rows)
        return dataset

    def bake(self, data: DataLike, columns: SelectorLike | None = None) -> pd.DataFrame:
        """Apply and return the resulting frame, optionally restricted to ``columns``."""
        dataset = self.apply(data)
        if columns is None:
            return dataset.df
        return dataset.df[as_selector(columns).resolve(dataset.schema)]

    def tidy(self) -> pd.DataFrame:
        """One row per step: number, kind, fitted columns and selector."""
        return pd.DataFrame(
            {
                "number": range(1, len(self.steps) + 1),
                "kind": [step.kind for step in self.steps],
                "columns": [list(params.columns) for params in self.parameters],
                "selector": [repr(step.selector) for step in self.steps],
                "trained": True,
            },
        )

    # ------------------------------------------------------------------ persistence
    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation of the steps, parameters and schemas."""
        return {
            "format_version": FORMAT_VERSION,
            "steps": [
                {"kind": step.kind, "config": step.config(), "params": params.to_dict()}
                for step, params in zip(self.steps, self.parameters, strict=True)
            ],
            "schemas": [schema.to_dict() for schema in self.schemas],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> FittedBlueprint:
        """Restore a fitted blueprint produced by :meth:`to_dict`.

        Selectors are restored as the explicit column names frozen at fit time.

        Raises:
            ConfigurationError: On an unknown format version or step kind.
        """
        version = payload.get("format_version")
        if version != FORMAT_VERSION:
            raise ConfigurationError(f"Unsupported blueprint format version: {version}")

        steps: list[BaseStep] = []
        parameters: list[StepParameters] = []
        for entry in payload["steps"]:
            step_cls = STEP_REGISTRY.get(entry["kind"])
            if step_cls is None:
                raise ConfigurationError(f"Unknown step kind '{entry['kind']}'. Known: {sorted(STEP_REGISTRY)}")
            params = step_cls.params_type.from_dict(entry["params"])
            steps.append(step_cls.restore(entry["config"], params))
            parameters.append(params)

        return cls(
            steps=tuple(steps),
            parameters=tuple(parameters),
            schemas=tuple(DatasetSchema.from_dict(schema) for schema in payload["schemas"]),
        )

    def save(self, path: str | Path) -> Path:
        """Write the fitted blueprint as a JSON document and return its path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.info("Saved fitted blueprint with %d steps to %s", len(self.steps), path)
        return path

    @classmethod
    def load(cls, path: str | Path) -> FittedBlueprint:
        """Read a fitted blueprint written by :meth:`save`."""
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


__all__ = ["Blueprint", "FittedBlueprint"]

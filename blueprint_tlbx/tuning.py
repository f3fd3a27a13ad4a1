"""Resampled evaluation and grid search of blueprint + model workflows.

Each (grid point, resample) pair is evaluated independently: the blueprint is
fitted on the analysis rows only, the model is trained on the baked analysis
rows and scored on the baked assessment rows. Evaluations share no state and
run in parallel with :class:`joblib.Parallel`.

Grid keys address either the model (any scikit-learn ``set_params`` name) or
a step field, written ``blueprint__<kind>__<field>`` (e.g.
``blueprint__pca__num_comp``).

Example:
    >>> folds = vfold_cv(train, v=5, seed=1)
    >>> res = tune_grid(bp, KNeighborsRegressor(), train, folds, grid={"n_neighbors": range(1, 21)})
    >>> res.show_best("rmse", n=3)
    >>> best = res.select_best("rmse")
    >>> final = last_fit(bp, KNeighborsRegressor(**best), df, split)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, fields, replace
from typing import Any, Literal

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.base import clone
from sklearn.metrics import accuracy_score, mean_absolute_error, mean_squared_error
from sklearn.model_selection import ParameterGrid

from .blueprint import Blueprint, FittedBlueprint
from .data.dataset import Dataset
from .errors import ConfigurationError
from .resampling import Resample


logger = logging.getLogger(__name__)

STEP_PARAM_PREFIX = "blueprint__"


def _rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def _rsq(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Squared Pearson correlation between truth and prediction."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if np.std(y_true) == 0 or np.std(y_pred) == 0:
        return float("nan")
    return float(np.corrcoef(y_true, y_pred)[0, 1] ** 2)


@dataclass(frozen=True)
class Metric:
    """Named scoring function with its optimisation direction."""

    name: str
    fn: Callable[[np.ndarray, np.ndarray], float]
    direction: Literal["minimize", "maximize"]

    def __call__(self, y_true: np.ndarray, y_pred: np.ndarray) -> float:
        return float(self.fn(y_true, y_pred))


METRICS: dict[str, Metric] = {
    "rmse": Metric("rmse", _rmse, "minimize"),
    "mae": Metric("mae", mean_absolute_error, "minimize"),
    "rsq": Metric("rsq", _rsq, "maximize"),
    "accuracy": Metric("accuracy", accuracy_score, "maximize"),
}


def _resolve_metrics(metrics: Iterable[str]) -> list[Metric]:
    resolved = []
    for name in metrics:
        if name not in METRICS:
            raise ConfigurationError(f"Unknown metric '{name}'. Available: {sorted(METRICS)}")
        resolved.append(METRICS[name])
    if not resolved:
        raise ConfigurationError("At least one metric is required")
    return resolved


@dataclass
class TuneConfig:
    """Execution settings for resampled evaluation.

    Attributes:
        n_jobs: Number of joblib workers (``-1`` uses all cores).
        backend: joblib backend name; None picks joblib's default (loky).
        seed: Seed assigned to the model's ``random_state`` when it has one.
        verbose: joblib verbosity.
    """

    n_jobs: int = 1
    backend: str | None = None
    seed: int | None = None
    verbose: int = 0


DEFAULT_TUNE_CFG = TuneConfig()


def split_xy(dataset: Dataset) -> tuple[pd.DataFrame, pd.Series]:
    """Split a baked dataset into its predictor matrix and outcome.

    Raises:
        ConfigurationError: Unless there is exactly one outcome and all
            predictors are numeric.
    """
    outcomes = dataset.schema.outcomes
    if len(outcomes) != 1:
        raise ConfigurationError(f"Exactly one outcome column is required, got {outcomes}")
    predictors = dataset.schema.predictors
    nominal = [name for name in predictors if dataset.schema[name].ctype.is_nominal]
    if nominal:
        raise ConfigurationError(f"Predictors must be numeric after baking; encode {nominal} first")
    df = dataset.df
    return df[predictors], df[outcomes[0]]


def _split_params(params: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    step_params = {k: v for k, v in params.items() if k.startswith(STEP_PARAM_PREFIX)}
    model_params = {k: v for k, v in params.items() if not k.startswith(STEP_PARAM_PREFIX)}
    return step_params, model_params


def configure_blueprint(blueprint: Blueprint, step_params: Mapping[str, Any]) -> Blueprint:
    """Return ``blueprint`` with ``blueprint__<kind>__<field>`` values applied.

    Every step of the given kind receives the value.

    Raises:
        ConfigurationError: If no step has that kind or field.
    """
    steps = list(blueprint.steps)
    for key, value in step_params.items():
        try:
            kind, field_name = key.removeprefix(STEP_PARAM_PREFIX).split("__", 1)
        except ValueError as exc:
            raise ConfigurationError(f"Step parameters are named 'blueprint__<kind>__<field>', got '{key}'") from exc
        targets = [i for i, step in enumerate(steps) if step.kind == kind]
        if not targets:
            raise ConfigurationError(f"Blueprint has no '{kind}' step for parameter '{key}'")
        for i in targets:
            if field_name not in {f.name for f in fields(steps[i])}:
                raise ConfigurationError(f"Step '{kind}' has no field '{field_name}'")
            steps[i] = replace(steps[i], **{field_name: value})
    return replace(blueprint, steps=tuple(steps))


def _make_model(model: Any, model_params: Mapping[str, Any], config: TuneConfig) -> Any:
    estimator = clone(model)
    if config.seed is not None and "random_state" in estimator.get_params():
        estimator.set_params(random_state=config.seed)
    return estimator.set_params(**model_params)


def _fit_and_score(
    blueprint: Blueprint,
    model: Any,
    train: pd.DataFrame | Dataset,
    test: pd.DataFrame | Dataset,
    metrics: Sequence[Metric],
    config: TuneConfig,
    params: Mapping[str, Any],
) -> tuple[FittedBlueprint, Any, dict[str, float], pd.DataFrame]:
    step_params, model_params = _split_params(params)
    fitted = configure_blueprint(blueprint, step_params).fit(train)
    X_train, y_train = split_xy(fitted.apply(train))
    X_test, y_test = split_xy(fitted.apply(test))
    estimator = _make_model(model, model_params, config).fit(X_train.to_numpy(), y_train.to_numpy())
    predictions = pd.DataFrame({".pred": estimator.predict(X_test.to_numpy()), "truth": y_test.to_numpy()})
    truth, pred = predictions["truth"].to_numpy(), predictions[".pred"].to_numpy()
    scores = {metric.name: metric(truth, pred) for metric in metrics}
    return fitted, estimator, scores, predictions


def _evaluate(
    blueprint: Blueprint,
    model: Any,
    data: pd.DataFrame | Dataset,
    resample: Resample,
    config_id: str,
    params: Mapping[str, Any],
    metrics: Sequence[Metric],
    config: TuneConfig,
) -> list[dict[str, Any]]:
    """Score one grid point on one resample; returns one row per metric."""
    _, _, scores, _ = _fit_and_score(
        blueprint,
        model,
        resample.analysis(data),
        resample.assessment(data),
        metrics,
        config,
        params,
    )
    return [
        {"config": config_id, **params, "id": resample.id, "metric": name, "estimate": value}
        for name, value in scores.items()
    ]


@dataclass(frozen=True)
class TuneResult:
    """Per-resample metrics of a grid search.

    Attributes:
        metrics: One row per (grid point, resample, metric).
        param_names: Tuned parameter names (columns of ``metrics``).
        n_evaluations: Number of (grid point, resample) pairs requested.
        complete: False when the search was cancelled before every
            evaluation finished.
    """

    metrics: pd.DataFrame
    param_names: tuple[str, ...]
    n_evaluations: int
    complete: bool = True

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """Aggregate metrics per grid point (mean, n, standard error).

        Args:
            summarize: If False, return the per-resample rows unchanged.
        """
        if not summarize:
            return self.metrics.copy()
        if self.metrics.empty:
            return pd.DataFrame(columns=["config", *self.param_names, "metric", "mean", "n", "std_err"])
        summary = (
            self.metrics.groupby(["config", "metric"], sort=True)["estimate"]
            .agg(mean="mean", n="count", std_err="sem")
            .reset_index()
        )
        params = self.metrics.drop_duplicates("config")[["config", *self.param_names]]
        return params.merge(summary, on="config")[["config", *self.param_names, "metric", "mean", "n", "std_err"]]

    def show_best(self, metric: str, n: int = 5) -> pd.DataFrame:
        """Top ``n`` grid points for ``metric``, best first."""
        direction = _resolve_metrics([metric])[0].direction
        summary = self.collect_metrics()
        summary = summary[summary["metric"] == metric]
        if summary.empty:
            raise ConfigurationError(f"No results for metric '{metric}'")
        ordered = summary.sort_values(["mean", "config"], ascending=[direction == "minimize", True], kind="stable")
        return ordered.head(n).reset_index(drop=True)

    def select_best(self, metric: str) -> dict[str, Any]:
        """Parameter values of the best grid point for ``metric``."""
        best = self.show_best(metric, n=1).iloc[0]
        return {name: _as_python(best[name]) for name in self.param_names}


def _as_python(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


GridLike = Mapping[str, Iterable[Any]] | Iterable[Mapping[str, Any]] | pd.DataFrame


def _expand_grid(grid: GridLike) -> list[dict[str, Any]]:
    if isinstance(grid, pd.DataFrame):
        return [{k: _as_python(v) for k, v in row.items()} for row in grid.to_dict(orient="records")]
    if isinstance(grid, Mapping):
        return list(ParameterGrid({k: list(v) for k, v in grid.items()}))
    return [dict(point) for point in grid]


def tune_grid(
    blueprint: Blueprint,
    model: Any,
    data: pd.DataFrame | Dataset,
    resamples: Sequence[Resample],
    grid: GridLike,
    metrics: Iterable[str] = ("rmse", "rsq"),
    config: TuneConfig = DEFAULT_TUNE_CFG,
    cancel: threading.Event | None = None,
) -> TuneResult:
    """Evaluate every grid point on every resample.

    Args:
        blueprint: Unfitted blueprint; refitted on every analysis set.
        model: scikit-learn style estimator; cloned for every evaluation.
        data: Data the resamples index into.
        resamples: Output of :func:`vfold_cv`, :func:`bootstraps`, ...
        grid: Mapping of parameter -> values (full cross product), a list of
            parameter dicts, or a DataFrame with one row per grid point.
        metrics: Metric names from :data:`METRICS`.
        config: Parallelism and seeding.
        cancel: When set, outstanding evaluations are abandoned; finished
            ones are kept and the result is marked incomplete.

    Returns:
        TuneResult with one metrics row per (grid point, resample, metric).
    """
    scorers = _resolve_metrics(metrics)
    points = _expand_grid(grid)
    if not points:
        raise ConfigurationError("The tuning grid is empty")
    if not resamples:
        raise ConfigurationError("At least one resample is required")
    param_names = tuple(dict.fromkeys(name for point in points for name in point))
    width = max(len(str(len(points))), 2)
    tasks = [(f"Config{c + 1:0{width}d}", point, resample) for c, point in enumerate(points) for resample in resamples]

    logger.info(
        "Evaluating %d grid points x %d resamples with n_jobs=%d",
        len(points),
        len(resamples),
        config.n_jobs,
    )
    parallel = Parallel(n_jobs=config.n_jobs, backend=config.backend, verbose=config.verbose, return_as="generator")
    results = parallel(
        delayed(_evaluate)(blueprint, model, data, resample, config_id, point, scorers, config)
        for config_id, point, resample in tasks
    )

    rows: list[dict[str, Any]] = []
    completed = 0
    try:
        for evaluation in results:
            rows.extend(evaluation)
            completed += 1
            if cancel is not None and cancel.is_set() and completed < len(tasks):
                logger.warning("Tuning cancelled after %d of %d evaluations", completed, len(tasks))
                break
    finally:
        results.close()

    metrics_frame = pd.DataFrame(rows, columns=["config", *param_names, "id", "metric", "estimate"])
    return TuneResult(
        metrics=metrics_frame,
        param_names=param_names,
        n_evaluations=len(tasks),
        complete=completed == len(tasks),
    )


def fit_resamples(
    blueprint: Blueprint,
    model: Any,
    data: pd.DataFrame | Dataset,
    resamples: Sequence[Resample],
    metrics: Iterable[str] = ("rmse", "rsq"),
    config: TuneConfig = DEFAULT_TUNE_CFG,
    cancel: threading.Event | None = None,
) -> TuneResult:
    """Evaluate one fixed workflow on every resample (a grid with a single empty point)."""
    return tune_grid(blueprint, model, data, resamples, [{}], metrics=metrics, config=config, cancel=cancel)


@dataclass(frozen=True)
class LastFitResult:
    """Final fit on the training rows, scored once on the testing rows."""

    blueprint: FittedBlueprint
    model: Any
    metrics: pd.DataFrame
    predictions: pd.DataFrame


def last_fit(
    blueprint: Blueprint,
    model: Any,
    data: pd.DataFrame | Dataset,
    split: Resample,
    metrics: Iterable[str] = ("rmse", "rsq"),
    params: Mapping[str, Any] | None = None,
    config: TuneConfig = DEFAULT_TUNE_CFG,
) -> LastFitResult:
    """Fit on ``split.training(data)`` and evaluate on ``split.testing(data)``.

    Args:
        params: Grid point to use, typically :meth:`TuneResult.select_best`.
    """
    train, test = split.training(data), split.testing(data)
    fitted, estimator, scores, predictions = _fit_and_score(
        blueprint,
        model,
        train,
        test,
        _resolve_metrics(metrics),
        config,
        params or {},
    )
    logger.info("Last fit: %s", ", ".join(f"{name}={value:.4g}" for name, value in scores.items()))
    return LastFitResult(
        blueprint=fitted,
        model=estimator,
        metrics=pd.DataFrame({"metric": list(scores), "estimate": list(scores.values())}),
        predictions=predictions,
    )


__all__ = [
    "DEFAULT_TUNE_CFG",
    "METRICS",
    "LastFitResult",
    "Metric",
    "TuneConfig",
    "TuneResult",
    "configure_blueprint",
    "fit_resamples",
    "last_fit",
    "split_xy",
    "tune_grid",
]

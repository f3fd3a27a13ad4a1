from .blueprint import Blueprint, FittedBlueprint
from .data import ColumnMetadata, ColumnRole, ColumnType, Dataset, DatasetSchema
from .errors import (
    BlueprintError,
    ConfigurationError,
    DivisionByZeroError,
    InvalidDomainError,
    SchemaMismatchError,
    UnseenLevelError,
)
from .resampling import Resample, bootstraps, initial_split, initial_time_split, vfold_cv
from .selectors import (
    ColumnSelector,
    all_nominal,
    all_nominal_predictors,
    all_numeric,
    all_numeric_predictors,
    all_outcomes,
    all_predictors,
    everything,
    has_role,
    has_type,
    matches,
    names,
)
from .steps import (
    StepBoxCox,
    StepCenter,
    StepDummy,
    StepImputeBag,
    StepImputeKnn,
    StepImputeMean,
    StepImputeMedian,
    StepImputeMode,
    StepInteger,
    StepLog,
    StepNearZeroVariance,
    StepNormalize,
    StepOther,
    StepPCA,
    StepScale,
    StepYeoJohnson,
    StepZeroVariance,
)
from .tuning import TuneConfig, TuneResult, fit_resamples, last_fit, tune_grid


__all__ = [
    "Blueprint",
    "BlueprintError",
    "ColumnMetadata",
    "ColumnRole",
    "ColumnSelector",
    "ColumnType",
    "ConfigurationError",
    "Dataset",
    "DatasetSchema",
    "DivisionByZeroError",
    "FittedBlueprint",
    "InvalidDomainError",
    "Resample",
    "SchemaMismatchError",
    "StepBoxCox",
    "StepCenter",
    "StepDummy",
    "StepImputeBag",
    "StepImputeKnn",
    "StepImputeMean",
    "StepImputeMedian",
    "StepImputeMode",
    "StepInteger",
    "StepLog",
    "StepNearZeroVariance",
    "StepNormalize",
    "StepOther",
    "StepPCA",
    "StepScale",
    "StepYeoJohnson",
    "StepZeroVariance",
    "TuneConfig",
    "TuneResult",
    "UnseenLevelError",
    "all_nominal",
    "all_nominal_predictors",
    "all_numeric",
    "all_numeric_predictors",
    "all_outcomes",
    "all_predictors",
    "bootstraps",
    "everything",
    "fit_resamples",
    "has_role",
    "has_type",
    "initial_split",
    "initial_time_split",
    "last_fit",
    "matches",
    "names",
    "tune_grid",
    "vfold_cv",
]

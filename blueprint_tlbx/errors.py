"""Exception hierarchy raised by blueprint fitting and application."""


class BlueprintError(Exception):
    """Base class for all errors raised by the toolbox."""


class ConfigurationError(BlueprintError, ValueError):
    """Invalid step configuration (e.g. a threshold outside ``[0, 1]``)."""


class DivisionByZeroError(ConfigurationError, ZeroDivisionError):
    """A scale parameter estimated at fit time is exactly zero."""


class InvalidDomainError(BlueprintError, ValueError):
    """A transform precondition is violated (e.g. non-positive input to ``log``)."""


class SchemaMismatchError(BlueprintError, ValueError):
    """A dataset is incompatible with the schema a blueprint was fitted on."""


class UnseenLevelError(BlueprintError, ValueError):
    """A categorical level is absent from the fit-time vocabulary."""


__all__ = [
    "BlueprintError",
    "ConfigurationError",
    "DivisionByZeroError",
    "InvalidDomainError",
    "SchemaMismatchError",
    "UnseenLevelError",
]

"""Exception hierarchy for NCA input, configuration, and computation errors.

Every class derives from :class:`ValueError` so callers catching the
generic validation error keep working.

Input and configuration errors abort a run before any computation starts.
Computation errors are scoped to one parameter of one subject-occasion and
are recorded as missing values by the population aggregator.
"""

from __future__ import annotations


class NCAInputError(ValueError):
    """Malformed input data (fatal to the load step)."""


class MissingColumnError(NCAInputError):
    """A mapped column is absent from the input table."""


class NonMonotonicTimeError(NCAInputError):
    """Duplicate or decreasing timestamps within one subject-occasion."""


class ConfigurationError(ValueError):
    """Invalid analysis configuration (unknown parameter, method, option)."""


class NCAComputationError(ValueError):
    """A parameter cannot be computed for one subject-occasion."""


class InsufficientPointsError(NCAComputationError):
    """Too few usable points (e.g. fewer than 2 for the terminal regression)."""


class NoDoseEventError(NCAComputationError):
    """The series has no dose event matching the requested index."""


class UndefinedParameterError(NCAComputationError):
    """The parameter is mathematically undefined for this profile."""

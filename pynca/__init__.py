"""
PyNCA: non-compartmental pharmacokinetic analysis for Python.

Loads per-subject concentration-time data, computes NCA parameters (AUC,
Cmax, lambda_z, half-life, clearance, volumes, accumulation) one series at a
time, aggregates them across a population, and exports the report as
delimited text.

Usage:
    from pynca import data, nca, population
"""

__version__ = "0.1.0"

from pynca import data
from pynca import nca
from pynca import population
from pynca._errors import (
    ConfigurationError,
    InsufficientPointsError,
    MissingColumnError,
    NCAComputationError,
    NCAInputError,
    NoDoseEventError,
    NonMonotonicTimeError,
    UndefinedParameterError,
)

__all__ = [
    "__version__",
    "data",
    "nca",
    "population",
    "NCAInputError",
    "MissingColumnError",
    "NonMonotonicTimeError",
    "ConfigurationError",
    "NCAComputationError",
    "InsufficientPointsError",
    "NoDoseEventError",
    "UndefinedParameterError",
]

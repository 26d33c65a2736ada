"""
Non-compartmental pharmacokinetic analysis (NCA).

Pure per-series functions for AUC, AUMC, Cmax/Tmax, terminal elimination
(lambda_z), half-life, clearance, volumes of distribution, mean residence
time, accumulation and dosing-interval metrics, plus the registry that maps
parameter names to those functions.

Validates against: R packages PKNCA, NonCompart.
"""

from pynca.nca._common import LambdaZResult, NCAResult
from pynca.nca._auc import (
    VALID_METHODS,
    auc,
    auc_inf,
    auc_last,
    auc_pct_extrap,
    aumc,
    aumc_inf,
    aumc_last,
)
from pynca.nca._lambdaz import (
    lambdaz,
    lambdaz_adjr2,
    lambdaz_fit,
    lambdaz_intercept,
    lambdaz_npoints,
    lambdaz_r2,
    lambdaz_timefirst,
)
from pynca.nca._params import (
    accumulation_index,
    c0,
    cavg,
    cl,
    clast,
    cmax,
    cmin,
    fluctuation,
    mrt,
    normalize_dose,
    swing,
    thalf,
    tlast,
    tmax,
    tmin,
    vss,
    vz,
)
from pynca.nca._registry import PARAMETERS, ParameterSpec, resolve
from pynca.nca._nca import DEFAULT_PARAMETERS, nca

__all__ = [
    "NCAResult",
    "LambdaZResult",
    "VALID_METHODS",
    "PARAMETERS",
    "DEFAULT_PARAMETERS",
    "ParameterSpec",
    "resolve",
    "nca",
    "auc",
    "auc_last",
    "auc_inf",
    "auc_pct_extrap",
    "aumc",
    "aumc_last",
    "aumc_inf",
    "lambdaz_fit",
    "lambdaz",
    "lambdaz_r2",
    "lambdaz_adjr2",
    "lambdaz_intercept",
    "lambdaz_npoints",
    "lambdaz_timefirst",
    "cmax",
    "tmax",
    "cmin",
    "tmin",
    "clast",
    "tlast",
    "c0",
    "thalf",
    "cl",
    "vz",
    "mrt",
    "vss",
    "accumulation_index",
    "cavg",
    "fluctuation",
    "swing",
    "normalize_dose",
]

"""Terminal elimination rate constant (lambda_z).

Log-linear regression of ln(C) on time over the terminal phase.  By default
the window is chosen automatically among the last ``threshold`` positive
points after Cmax; callers may instead pin the regression to explicit point
indices (``idxs``) or explicit sampling times (``slopetimes``).

Window selection follows the usual best-fit rule: every window of the last
k points (k >= 3, or 2 when only 2 points exist) is fitted, the best
adjusted R-squared wins, and fits within ``ADJ_R2_TOLERANCE`` of the best
are resolved in favour of the one using the most points.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pynca._errors import (
    ConfigurationError,
    InsufficientPointsError,
    UndefinedParameterError,
)
from pynca.data import SubjectSeries
from pynca.nca._common import LambdaZResult, _find_last_measurable, _profile

DEFAULT_THRESHOLD = 10
ADJ_R2_TOLERANCE = 1e-4


def _check_lambdaz_options(
    threshold: int | None,
    idxs: object,
    slopetimes: object,
) -> None:
    """At most one of the window options may be given."""
    given = [
        name
        for name, value in (("threshold", threshold), ("idxs", idxs), ("slopetimes", slopetimes))
        if value is not None
    ]
    if len(given) > 1:
        raise ConfigurationError(
            f"lambda_z window options are mutually exclusive, got {given}"
        )
    if threshold is not None and (int(threshold) != threshold or threshold < 2):
        raise ConfigurationError(f"threshold must be an integer >= 2, got {threshold!r}")
    for name, value in (("idxs", idxs), ("slopetimes", slopetimes)):
        if value is not None and len(np.atleast_1d(value)) < 2:
            raise ConfigurationError(f"{name} must list at least 2 points")


def _fit(time: NDArray[np.float64], log_conc: NDArray[np.float64]) -> LambdaZResult:
    """Single log-linear regression."""
    n_fit = len(time)
    slope, intercept, r_value, _, _ = stats.linregress(time, log_conc)
    r_sq = r_value ** 2
    if n_fit > 2:
        r_sq_adj = 1.0 - (1.0 - r_sq) * (n_fit - 1) / (n_fit - 2)
    else:
        r_sq_adj = float("nan")
    return LambdaZResult(
        lambda_z=float(-slope),
        r_squared=float(r_sq),
        adj_r_squared=float(r_sq_adj),
        intercept=float(intercept),
        n_points=n_fit,
        time_first=float(time[0]),
    )


def _auto_candidates(concentration: NDArray[np.float64]) -> NDArray[np.intp]:
    """Positive points after Cmax; Cmax itself joins when fewer than 3 remain."""
    idx_last = _find_last_measurable(concentration)
    if idx_last < 0:
        return np.array([], dtype=np.intp)
    idx_cmax = int(np.argmax(concentration))

    after = np.arange(idx_cmax + 1, idx_last + 1)
    after = after[concentration[after] > 0]
    if len(after) < 3:
        after = np.arange(idx_cmax, idx_last + 1)
        after = after[concentration[after] > 0]
    return after


def _select_window(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    candidates: NDArray[np.intp],
    threshold: int,
) -> LambdaZResult:
    """Best adjusted R-squared over trailing windows, largest window on ties."""
    n = len(candidates)
    fits = []
    for n_try in range(min(3, n, threshold), min(threshold, n) + 1):
        idx_use = candidates[-n_try:]
        fits.append(_fit(time[idx_use], np.log(concentration[idx_use])))

    if len(fits) == 1:
        return fits[0]
    best = max(f.adj_r_squared for f in fits)
    eligible = [f for f in fits if f.adj_r_squared >= best - ADJ_R2_TOLERANCE]
    return max(eligible, key=lambda f: f.n_points)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def lambdaz_fit(
    series: SubjectSeries,
    *,
    threshold: int | None = None,
    idxs: list[int] | NDArray[np.integer] | None = None,
    slopetimes: list[float] | NDArray[np.floating] | None = None,
) -> LambdaZResult:
    """Fit the terminal elimination phase of one series.

    Parameters
    ----------
    series : SubjectSeries
    threshold : int or None
        Largest window considered by the automatic search (default 10).
    idxs : sequence of int or None
        Explicit 0-based indices into the effective profile (observed
        points, in time order).
    slopetimes : sequence of float or None
        Explicit sampling times to regress on.

    Returns
    -------
    LambdaZResult

    Raises
    ------
    ConfigurationError
        More than one of *threshold*, *idxs*, *slopetimes* given.
    InsufficientPointsError
        Fewer than 2 positive points remain for the regression.
    UndefinedParameterError
        Requested points do not exist, or the fitted slope is not negative.
    """
    _check_lambdaz_options(threshold, idxs, slopetimes)
    time, conc = _profile(series)

    if idxs is not None:
        chosen = np.asarray(idxs, dtype=np.intp)
        if np.any(chosen < 0) or np.any(chosen >= len(time)):
            raise UndefinedParameterError(
                f"idxs {list(chosen)} out of range for a profile of {len(time)} points"
            )
        chosen = np.unique(chosen)
    elif slopetimes is not None:
        wanted = np.asarray(slopetimes, dtype=np.float64)
        absent = wanted[~np.isin(wanted, time)]
        if len(absent) > 0:
            raise UndefinedParameterError(
                f"slopetimes {list(absent)} are not sampling times of this profile"
            )
        chosen = np.where(np.isin(time, wanted))[0]
    else:
        chosen = None

    if chosen is not None:
        chosen = chosen[conc[chosen] > 0]
        if len(chosen) < 2:
            raise InsufficientPointsError(
                f"lambda_z needs at least 2 positive points, got {len(chosen)}"
            )
        result = _fit(time[chosen], np.log(conc[chosen]))
    else:
        candidates = _auto_candidates(conc)
        if len(candidates) < 2:
            raise InsufficientPointsError(
                f"lambda_z needs at least 2 positive terminal points, got {len(candidates)}"
            )
        limit = DEFAULT_THRESHOLD if threshold is None else int(threshold)
        result = _select_window(time, conc, candidates, limit)

    # lambda_z must be positive (slope should be negative for elimination)
    if not result.lambda_z > 0:
        raise UndefinedParameterError(
            f"terminal phase is not declining (fitted slope {-result.lambda_z:.4g})"
        )
    return result


def lambdaz(series: SubjectSeries, **options) -> float:
    """Terminal elimination rate constant.  Options as :func:`lambdaz_fit`."""
    return lambdaz_fit(series, **options).lambda_z


def lambdaz_r2(series: SubjectSeries, **options) -> float:
    return lambdaz_fit(series, **options).r_squared


def lambdaz_adjr2(series: SubjectSeries, **options) -> float:
    return lambdaz_fit(series, **options).adj_r_squared


def lambdaz_intercept(series: SubjectSeries, **options) -> float:
    return lambdaz_fit(series, **options).intercept


def lambdaz_npoints(series: SubjectSeries, **options) -> int:
    return lambdaz_fit(series, **options).n_points


def lambdaz_timefirst(series: SubjectSeries, **options) -> float:
    return lambdaz_fit(series, **options).time_first

"""Area under the concentration-time curve (AUC) and first-moment curve (AUMC).

Three integration rules are supported:

``'linear'``
    Linear trapezoidal throughout (the default).
``'linear-up/log-down'``
    Linear trapezoidal on non-decreasing segments, log-linear trapezoidal
    on decreasing segments.
``'log-linear'``
    Log-linear trapezoidal throughout.

Log steps fall back to linear when either concentration is non-positive or
both are equal, since the logarithm is undefined or the formula degenerate.

AUC to infinity adds the tail ``Clast / lambda_z``; partial intervals
interpolate concentrations at the boundaries with the same rule and, past
Tlast, integrate the fitted mono-exponential tail.

References
----------
Gabrielsson & Weiner (2000). *Pharmacokinetic and Pharmacodynamic
Data Analysis*, 3rd ed.

Gibaldi & Perrier (1982). *Pharmacokinetics*, 2nd ed.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pynca._errors import (
    ConfigurationError,
    InsufficientPointsError,
    UndefinedParameterError,
)
from pynca.data import SubjectSeries
from pynca.nca._common import _find_last_measurable, _profile
from pynca.nca._lambdaz import lambdaz_fit

VALID_METHODS = ("linear", "linear-up/log-down", "log-linear")
VALID_AUCTYPES = ("inf", "last")


# ---------------------------------------------------------------------------
# Option validation
# ---------------------------------------------------------------------------

def _check_method(method: str) -> None:
    if method not in VALID_METHODS:
        raise ConfigurationError(
            f"method must be one of {VALID_METHODS}, got {method!r}"
        )


def _check_auctype(auctype: str) -> None:
    if auctype not in VALID_AUCTYPES:
        raise ConfigurationError(
            f"auctype must be one of {VALID_AUCTYPES}, got {auctype!r}"
        )


def _check_interval(interval: tuple[float, float]) -> tuple[float, float]:
    try:
        start, end = (float(x) for x in interval)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"interval must be a (start, end) pair, got {interval!r}"
        ) from None
    if not (0.0 <= start < end):
        raise ConfigurationError(
            f"interval must satisfy 0 <= start < end, got ({start}, {end})"
        )
    return start, end


# ---------------------------------------------------------------------------
# Segment rules
# ---------------------------------------------------------------------------

def _use_log(c1: float, c2: float, method: str) -> bool:
    """Whether the segment (c1 -> c2) is integrated on the log scale."""
    if c1 <= 0 or c2 <= 0 or c1 == c2:
        return False
    if method == "log-linear":
        return True
    if method == "linear-up/log-down":
        return c2 < c1
    return False


def _auc_linear_segment(t1: float, t2: float, c1: float, c2: float) -> float:
    """Linear trapezoidal AUC for a single interval."""
    return 0.5 * (c1 + c2) * (t2 - t1)


def _auc_loglinear_segment(t1: float, t2: float, c1: float, c2: float) -> float:
    """Log-linear trapezoidal AUC: (C1 - C2) * (t2 - t1) / ln(C1/C2)."""
    return (c1 - c2) * (t2 - t1) / np.log(c1 / c2)


def _aumc_linear_segment(t1: float, t2: float, c1: float, c2: float) -> float:
    """Linear trapezoidal AUMC: 0.5 * (t1*C1 + t2*C2) * (t2 - t1)."""
    return 0.5 * (t1 * c1 + t2 * c2) * (t2 - t1)


def _aumc_loglinear_segment(t1: float, t2: float, c1: float, c2: float) -> float:
    """Log-linear trapezoidal AUMC for a single interval.

    For C(t) = C1 * exp(-k*(t-t1)) where k = ln(C1/C2)/(t2-t1):
    AUMC = (t1*C1 - t2*C2)/k + (C1 - C2)/k^2
    """
    k = np.log(c1 / c2) / (t2 - t1)
    return (t1 * c1 - t2 * c2) / k + (c1 - c2) / (k * k)


def _compute_segments(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    method: str,
    moment: bool = False,
) -> NDArray[np.float64]:
    """Per-interval AUC (or AUMC when *moment*) contributions, length n-1."""
    if moment:
        linear, loglinear = _aumc_linear_segment, _aumc_loglinear_segment
    else:
        linear, loglinear = _auc_linear_segment, _auc_loglinear_segment

    n = len(time)
    segments = np.empty(max(n - 1, 0), dtype=np.float64)
    for i in range(n - 1):
        t1, t2 = time[i], time[i + 1]
        c1, c2 = concentration[i], concentration[i + 1]
        if _use_log(c1, c2, method):
            segments[i] = loglinear(t1, t2, c1, c2)
        else:
            segments[i] = linear(t1, t2, c1, c2)
    return segments


def _interpolate_at(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    t: float,
    method: str,
) -> float:
    """Concentration at *t*, interpolated with the segment rule."""
    idx = int(np.searchsorted(time, t, side="left"))
    if idx < len(time) and time[idx] == t:
        return float(concentration[idx])
    if idx == 0 or idx == len(time):
        raise UndefinedParameterError(
            f"t={t} lies outside the observed range [{time[0]}, {time[-1]}]"
        )
    t1, t2 = time[idx - 1], time[idx]
    c1, c2 = concentration[idx - 1], concentration[idx]
    frac = (t - t1) / (t2 - t1)
    if _use_log(c1, c2, method):
        return float(c1 * np.exp(np.log(c2 / c1) * frac))
    return float(c1 + (c2 - c1) * frac)


def _tail(
    clast: float,
    tlast: float,
    lambda_z: float,
    start: float,
    end: float,
    moment: bool,
) -> float:
    """Integral of the mono-exponential tail Clast*exp(-lz*(t-tlast)) over [start, end]."""

    def decay(t: float) -> float:
        return 0.0 if np.isinf(t) else float(np.exp(-lambda_z * (t - tlast)))

    if not moment:
        return clast / lambda_z * (decay(start) - decay(end))

    def first_moment(t: float) -> float:
        if np.isinf(t):
            return 0.0
        return decay(t) * (t / lambda_z + 1.0 / lambda_z ** 2)

    return clast * (first_moment(start) - first_moment(end))


# ---------------------------------------------------------------------------
# Integration
# ---------------------------------------------------------------------------

def _area_between(
    series: SubjectSeries,
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    start: float,
    end: float,
    method: str,
    moment: bool,
    extrapolate: bool,
    lambdaz_options: dict,
) -> float:
    if start < time[0]:
        raise UndefinedParameterError(
            f"interval start {start} precedes the first observation at t={time[0]}"
        )
    idx_last = _find_last_measurable(concentration)
    if idx_last < 0:
        return 0.0
    tlast, clast = time[idx_last], concentration[idx_last]

    area = 0.0
    if start < tlast:
        seg_end = min(end, tlast)
        t_obs = time[: idx_last + 1]
        c_obs = concentration[: idx_last + 1]
        inside = (t_obs > start) & (t_obs < seg_end)
        t_win = np.concatenate(([start], t_obs[inside], [seg_end]))
        c_win = np.concatenate((
            [_interpolate_at(t_obs, c_obs, start, method)],
            c_obs[inside],
            [_interpolate_at(t_obs, c_obs, seg_end, method)],
        ))
        area += float(np.sum(_compute_segments(t_win, c_win, method, moment)))

    if end > tlast and extrapolate:
        lz = lambdaz_fit(series, **lambdaz_options).lambda_z
        area += _tail(clast, tlast, lz, max(start, tlast), end, moment)
    return area


def _integrate(
    series: SubjectSeries,
    *,
    auctype: str,
    method: str,
    interval: tuple[float, float] | None,
    moment: bool,
    lambdaz_options: dict,
) -> float:
    _check_method(method)
    _check_auctype(auctype)
    time, conc = _profile(series)
    extrapolate = auctype == "inf"

    if interval is not None:
        start, end = _check_interval(interval)
        return _area_between(
            series, time, conc, start, end, method, moment, extrapolate, lambdaz_options
        )

    idx_last = _find_last_measurable(conc)
    if idx_last < 0:
        if extrapolate:
            raise InsufficientPointsError(
                "no measurable concentrations; cannot extrapolate to infinity"
            )
        return 0.0

    area = float(np.sum(
        _compute_segments(time[: idx_last + 1], conc[: idx_last + 1], method, moment)
    ))
    if extrapolate:
        lz = lambdaz_fit(series, **lambdaz_options).lambda_z
        tlast, clast = time[idx_last], conc[idx_last]
        area += _tail(clast, tlast, lz, tlast, np.inf, moment)
    return area


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def auc(
    series: SubjectSeries,
    *,
    auctype: str = "inf",
    method: str = "linear",
    interval: tuple[float, float] | None = None,
    **lambdaz_options,
) -> float:
    """Area under the concentration-time curve.

    Parameters
    ----------
    series : SubjectSeries
    auctype : str
        ``'last'`` integrates from the first observation to Tlast;
        ``'inf'`` adds the extrapolated tail ``Clast / lambda_z``.
    method : str
        ``'linear'``, ``'linear-up/log-down'`` or ``'log-linear'``.
    interval : (start, end) or None
        Partial AUC over ``[start, end]``.  *end* may be ``inf``.  The part
        past Tlast is extrapolated with lambda_z for ``auctype='inf'`` and
        dropped for ``auctype='last'``.
    **lambdaz_options
        ``threshold``, ``idxs`` or ``slopetimes``, passed to
        :func:`lambdaz_fit` when extrapolating.

    Returns
    -------
    float
    """
    return _integrate(
        series, auctype=auctype, method=method, interval=interval,
        moment=False, lambdaz_options=lambdaz_options,
    )


def auc_last(series: SubjectSeries, *, method: str = "linear",
             interval: tuple[float, float] | None = None) -> float:
    """AUC from the first observation to the last measurable concentration."""
    return auc(series, auctype="last", method=method, interval=interval)


def auc_inf(series: SubjectSeries, *, method: str = "linear", **lambdaz_options) -> float:
    """AUC extrapolated to infinity."""
    return auc(series, auctype="inf", method=method, **lambdaz_options)


def aumc(
    series: SubjectSeries,
    *,
    auctype: str = "inf",
    method: str = "linear",
    interval: tuple[float, float] | None = None,
    **lambdaz_options,
) -> float:
    """Area under the first-moment curve ``t * C(t)``.

    Same options as :func:`auc`; the infinite tail is
    ``Clast * Tlast / lambda_z + Clast / lambda_z**2``.
    """
    return _integrate(
        series, auctype=auctype, method=method, interval=interval,
        moment=True, lambdaz_options=lambdaz_options,
    )


def aumc_last(series: SubjectSeries, *, method: str = "linear",
              interval: tuple[float, float] | None = None) -> float:
    return aumc(series, auctype="last", method=method, interval=interval)


def aumc_inf(series: SubjectSeries, *, method: str = "linear", **lambdaz_options) -> float:
    return aumc(series, auctype="inf", method=method, **lambdaz_options)


def auc_pct_extrap(series: SubjectSeries, *, method: str = "linear", **lambdaz_options) -> float:
    """Percent of AUC_inf extrapolated past Tlast: 100 * (AUC_inf - AUC_last) / AUC_inf."""
    last = auc_last(series, method=method)
    inf = auc_inf(series, method=method, **lambdaz_options)
    if inf <= 0:
        raise UndefinedParameterError("AUC_inf is zero; extrapolated percent undefined")
    return 100.0 * (inf - last) / inf

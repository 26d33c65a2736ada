"""Observed and derived NCA parameters.

Every function takes one :class:`SubjectSeries` and returns a scalar.
Parameters that cannot be computed raise a subclass of
:class:`NCAComputationError`; callers computing whole populations record
those as missing values.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pynca._errors import UndefinedParameterError
from pynca.data import SubjectSeries
from pynca.nca._auc import _check_interval, auc, auc_inf, aumc_inf
from pynca.nca._common import _find_last_measurable, _profile
from pynca.nca._lambdaz import lambdaz_fit


# ---------------------------------------------------------------------------
# Observed extremes
# ---------------------------------------------------------------------------

def _window(
    series: SubjectSeries, interval: tuple[float, float] | None
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Profile restricted to observations inside *interval* (inclusive)."""
    time, conc = _profile(series)
    if interval is None:
        return time, conc
    start, end = _check_interval(interval)
    keep = (time >= start) & (time <= end)
    if not np.any(keep):
        raise UndefinedParameterError(
            f"no observations within interval ({start}, {end})"
        )
    return time[keep], conc[keep]


def cmax(series: SubjectSeries, *, interval: tuple[float, float] | None = None) -> float:
    """Peak observed concentration."""
    _, conc = _window(series, interval)
    return float(np.max(conc))


def tmax(series: SubjectSeries, *, interval: tuple[float, float] | None = None) -> float:
    """Time of peak concentration (first occurrence)."""
    time, conc = _window(series, interval)
    return float(time[int(np.argmax(conc))])


def cmin(series: SubjectSeries, *, interval: tuple[float, float] | None = None) -> float:
    """Lowest observed concentration."""
    _, conc = _window(series, interval)
    return float(np.min(conc))


def tmin(series: SubjectSeries, *, interval: tuple[float, float] | None = None) -> float:
    """Time of lowest concentration (first occurrence)."""
    time, conc = _window(series, interval)
    return float(time[int(np.argmin(conc))])


def _last_measurable(series: SubjectSeries) -> tuple[float, float]:
    time, conc = _profile(series)
    idx_last = _find_last_measurable(conc)
    if idx_last < 0:
        raise UndefinedParameterError("no concentration above the quantification limit")
    return float(time[idx_last]), float(conc[idx_last])


def clast(series: SubjectSeries) -> float:
    """Last concentration above the quantification limit."""
    return _last_measurable(series)[1]


def tlast(series: SubjectSeries) -> float:
    """Time of :func:`clast`."""
    return _last_measurable(series)[0]


def c0(series: SubjectSeries, *, ithdose: int = 0) -> float:
    """Concentration at the dose time.

    The observation at the dose time is used when it is positive; otherwise
    the first two positive concentrations after the dose are back-
    extrapolated log-linearly (when declining) or the first one is taken.
    """
    dose_time = series.dose(ithdose).time
    time, conc = _profile(series)
    at_dose = np.where(time == dose_time)[0]
    if len(at_dose) > 0 and conc[at_dose[0]] > 0:
        return float(conc[at_dose[0]])

    after = np.where((time > dose_time) & (conc > 0))[0]
    if len(after) == 0:
        raise UndefinedParameterError("no positive concentration after the dose")
    if len(after) == 1:
        return float(conc[after[0]])
    i1, i2 = after[0], after[1]
    c1, c2 = conc[i1], conc[i2]
    if c2 >= c1:
        return float(c1)
    slope = np.log(c2 / c1) / (time[i2] - time[i1])
    return float(c1 * np.exp(-slope * (time[i1] - dose_time)))


# ---------------------------------------------------------------------------
# Terminal-phase derived
# ---------------------------------------------------------------------------

def thalf(series: SubjectSeries, **lambdaz_options) -> float:
    """Terminal half-life: ln(2) / lambda_z."""
    return float(np.log(2) / lambdaz_fit(series, **lambdaz_options).lambda_z)


def cl(
    series: SubjectSeries,
    *,
    ithdose: int = 0,
    method: str = "linear",
    **lambdaz_options,
) -> float:
    """Clearance: dose / AUC_inf (CL/F for extravascular doses)."""
    amount = series.dose(ithdose).amount
    area = auc_inf(series, method=method, **lambdaz_options)
    if area <= 0:
        raise UndefinedParameterError("AUC_inf is zero; clearance undefined")
    return amount / area


def vz(
    series: SubjectSeries,
    *,
    ithdose: int = 0,
    method: str = "linear",
    **lambdaz_options,
) -> float:
    """Terminal volume of distribution: CL / lambda_z."""
    clearance = cl(series, ithdose=ithdose, method=method, **lambdaz_options)
    return clearance / lambdaz_fit(series, **lambdaz_options).lambda_z


def mrt(
    series: SubjectSeries,
    *,
    ithdose: int = 0,
    method: str = "linear",
    **lambdaz_options,
) -> float:
    """Mean residence time: AUMC_inf / AUC_inf, less half the infusion duration."""
    area = auc_inf(series, method=method, **lambdaz_options)
    if area <= 0:
        raise UndefinedParameterError("AUC_inf is zero; MRT undefined")
    moment = aumc_inf(series, method=method, **lambdaz_options)
    duration = series.dose(ithdose).duration if series.doses else 0.0
    return moment / area - duration / 2.0


def vss(
    series: SubjectSeries,
    *,
    ithdose: int = 0,
    method: str = "linear",
    **lambdaz_options,
) -> float:
    """Steady-state volume of distribution: CL * MRT."""
    clearance = cl(series, ithdose=ithdose, method=method, **lambdaz_options)
    return clearance * mrt(series, ithdose=ithdose, method=method, **lambdaz_options)


# ---------------------------------------------------------------------------
# Dosing-interval parameters
# ---------------------------------------------------------------------------

def _tau(series: SubjectSeries, ithdose: int, tau: float | None) -> tuple[float, float]:
    """(dose time, tau) for the reference dose."""
    event = series.dose(ithdose)
    tau = event.ii if tau is None else tau
    if tau is None or not tau > 0:
        raise UndefinedParameterError(
            f"no positive interdose interval for subject {series.subject!r}"
        )
    return event.time, float(tau)


def _dosing_interval(series: SubjectSeries, start: float, tau: float) -> tuple[float, float]:
    """``(start, start + tau)``; the observations must cover the whole interval."""
    time, _ = _profile(series)
    end = start + tau
    if end > time[-1]:
        raise UndefinedParameterError(
            f"dosing interval ({start}, {end}) extends past the last observation "
            f"at t={time[-1]}"
        )
    return start, end


def accumulation_index(
    series: SubjectSeries,
    *,
    tau: float | None = None,
    method: str = "linear",
    **lambdaz_options,
) -> float:
    """Exposure at steady state relative to the first dose.

    With two or more doses in the series this is the observed ratio
    ``AUC(last dose, last dose + tau) / AUC(first dose, first dose + tau)``;
    both intervals must be fully observed.  With a single dose the predicted
    ratio ``1 / (1 - exp(-lambda_z * tau))`` is returned.
    """
    first_time, tau = _tau(series, 0, tau)
    if len(series.doses) < 2:
        lz = lambdaz_fit(series, **lambdaz_options).lambda_z
        return float(1.0 / (1.0 - np.exp(-lz * tau)))

    steady_interval = _dosing_interval(series, series.dose(-1).time, tau)
    first_interval = _dosing_interval(series, first_time, tau)
    first = auc(series, auctype="last", method=method, interval=first_interval)
    steady = auc(series, auctype="last", method=method, interval=steady_interval)
    if first <= 0:
        raise UndefinedParameterError("AUC over the first dosing interval is zero")
    return steady / first


def cavg(
    series: SubjectSeries,
    *,
    ithdose: int = 0,
    tau: float | None = None,
    method: str = "linear",
) -> float:
    """Average concentration over the dosing interval: AUC_tau / tau."""
    start, tau = _tau(series, ithdose, tau)
    interval = _dosing_interval(series, start, tau)
    return auc(series, auctype="last", method=method, interval=interval) / tau


def fluctuation(
    series: SubjectSeries,
    *,
    ithdose: int = 0,
    tau: float | None = None,
    method: str = "linear",
) -> float:
    """Peak-trough fluctuation over tau, in percent: 100 * (Cmax - Cmin) / Cavg."""
    start, tau = _tau(series, ithdose, tau)
    interval = _dosing_interval(series, start, tau)
    average = cavg(series, ithdose=ithdose, tau=tau, method=method)
    if average <= 0:
        raise UndefinedParameterError("Cavg is zero; fluctuation undefined")
    return 100.0 * (cmax(series, interval=interval) - cmin(series, interval=interval)) / average


def swing(
    series: SubjectSeries,
    *,
    ithdose: int = 0,
    tau: float | None = None,
) -> float:
    """Swing over tau: (Cmax - Cmin) / Cmin."""
    start, tau = _tau(series, ithdose, tau)
    interval = _dosing_interval(series, start, tau)
    trough = cmin(series, interval=interval)
    if trough <= 0:
        raise UndefinedParameterError("Cmin is zero; swing undefined")
    return (cmax(series, interval=interval) - trough) / trough


# ---------------------------------------------------------------------------
# Dose normalisation
# ---------------------------------------------------------------------------

def normalize_dose(value: float, series: SubjectSeries, ithdose: int = 0) -> float:
    """Divide an already computed parameter *value* by the dose amount.

    Raises
    ------
    NoDoseEventError
        The series has no dose event at *ithdose*.
    UndefinedParameterError
        The dose amount is zero.
    """
    amount = series.dose(ithdose).amount
    if amount == 0:
        raise UndefinedParameterError("dose amount is zero")
    return value / amount

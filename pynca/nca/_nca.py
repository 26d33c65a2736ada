"""Non-compartmental pharmacokinetic analysis (NCA) of one series.

Evaluates a list of registered parameters on one subject-occasion and
collects the values into an :class:`NCAResult`.  A parameter that cannot be
computed is recorded as missing together with the reason; configuration
errors are raised before anything is computed.

Validates against: R ``PKNCA::pk.nca()``, ``NonCompart::sNCA()``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pynca._errors import NCAComputationError
from pynca.data import SubjectSeries
from pynca.nca._common import NCAResult, _as_cell
from pynca.nca._registry import ParameterSpec, build_plan, compute_parameter

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS = (
    "cmax",
    "tmax",
    "tlast",
    "clast",
    "auc_last",
    "auc_inf",
    "auc_pct_extrap",
    "lambdaz",
    "lambdaz_r2",
    "thalf",
    "cl",
    "vz",
    "vss",
)


def _compute_row(
    series: SubjectSeries,
    plan: tuple[tuple[str, ParameterSpec, dict], ...],
) -> NCAResult:
    """Evaluate every planned parameter on *series*, one cell at a time."""
    values: dict[str, float | int | None] = {}
    errors: dict[str, str] = {}
    for name, spec, options in plan:
        try:
            value = _as_cell(compute_parameter(series, spec, options))
        except NCAComputationError as exc:
            value = None
            errors[name] = f"{type(exc).__name__}: {exc}"
        else:
            if value is None:
                errors[name] = "non-finite result"
        if value is None:
            logger.debug(
                "subject %r occasion %r: %s missing (%s)",
                series.subject, series.occasion, name, errors[name],
            )
        values[name] = value
    return NCAResult(
        subject=series.subject,
        occasion=series.occasion,
        values=values,
        errors=errors,
    )


def nca(
    series: SubjectSeries,
    parameters: list[str] | tuple[str, ...] = DEFAULT_PARAMETERS,
    options: Mapping[str, Mapping[str, object]] | None = None,
    **common_options,
) -> NCAResult:
    """Non-compartmental pharmacokinetic analysis of one subject-occasion.

    Parameters
    ----------
    series : SubjectSeries
        Concentration-time profile and doses (see
        :meth:`SubjectSeries.from_arrays` for plain arrays).
    parameters : sequence of str
        Registered parameter names, in output order.
    options : mapping or None
        Per-parameter keyword options, e.g. ``{"auc": {"interval": (0, 12)}}``.
    **common_options
        Options applied to every parameter that accepts them, e.g.
        ``method='linear-up/log-down'`` or ``threshold=5``.

    Returns
    -------
    NCAResult
        Value per parameter; ``None`` with a reason in ``errors`` when the
        parameter could not be computed.

    Raises
    ------
    ConfigurationError
        Unknown parameter or invalid option.

    Notes
    -----
    CPU-only.  PK data is always small (typically 10-20 time points per
    subject).
    """
    plan = build_plan(parameters, options, common_options)
    return _compute_row(series, plan)

"""Parameter registry: name -> pure computation function.

The registry is an explicit mapping resolved once when an analysis is
configured.  Each entry declares the keyword options its function accepts
so that unknown names and invalid options are rejected before any
computation starts.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

import numpy as np

from pynca._errors import ConfigurationError
from pynca.data import SubjectSeries
from pynca.nca import _auc, _lambdaz, _params
from pynca.nca._auc import _check_auctype, _check_interval, _check_method
from pynca.nca._lambdaz import _check_lambdaz_options

_LAMBDAZ = frozenset({"threshold", "idxs", "slopetimes"})

# Accepted by every parameter: divide the result by the reference dose
NORMALIZE_OPTIONS = frozenset({"dose_normalize", "ithdose"})


@dataclass(frozen=True)
class ParameterSpec:
    """A registered parameter: its function and accepted keyword options."""

    func: Callable[..., float]
    options: frozenset[str] = frozenset()


PARAMETERS: dict[str, ParameterSpec] = {
    # observed
    "cmax": ParameterSpec(_params.cmax, frozenset({"interval"})),
    "tmax": ParameterSpec(_params.tmax, frozenset({"interval"})),
    "cmin": ParameterSpec(_params.cmin, frozenset({"interval"})),
    "tmin": ParameterSpec(_params.tmin, frozenset({"interval"})),
    "clast": ParameterSpec(_params.clast),
    "tlast": ParameterSpec(_params.tlast),
    "c0": ParameterSpec(_params.c0, frozenset({"ithdose"})),
    # areas
    "auc": ParameterSpec(_auc.auc, frozenset({"auctype", "method", "interval"}) | _LAMBDAZ),
    "auc_last": ParameterSpec(_auc.auc_last, frozenset({"method", "interval"})),
    "auc_inf": ParameterSpec(_auc.auc_inf, frozenset({"method"}) | _LAMBDAZ),
    "auc_pct_extrap": ParameterSpec(_auc.auc_pct_extrap, frozenset({"method"}) | _LAMBDAZ),
    "aumc": ParameterSpec(_auc.aumc, frozenset({"auctype", "method", "interval"}) | _LAMBDAZ),
    "aumc_last": ParameterSpec(_auc.aumc_last, frozenset({"method", "interval"})),
    "aumc_inf": ParameterSpec(_auc.aumc_inf, frozenset({"method"}) | _LAMBDAZ),
    # terminal phase
    "lambdaz": ParameterSpec(_lambdaz.lambdaz, _LAMBDAZ),
    "lambdaz_r2": ParameterSpec(_lambdaz.lambdaz_r2, _LAMBDAZ),
    "lambdaz_adjr2": ParameterSpec(_lambdaz.lambdaz_adjr2, _LAMBDAZ),
    "lambdaz_intercept": ParameterSpec(_lambdaz.lambdaz_intercept, _LAMBDAZ),
    "lambdaz_npoints": ParameterSpec(_lambdaz.lambdaz_npoints, _LAMBDAZ),
    "lambdaz_timefirst": ParameterSpec(_lambdaz.lambdaz_timefirst, _LAMBDAZ),
    "thalf": ParameterSpec(_params.thalf, _LAMBDAZ),
    # dose-derived
    "cl": ParameterSpec(_params.cl, frozenset({"ithdose", "method"}) | _LAMBDAZ),
    "vz": ParameterSpec(_params.vz, frozenset({"ithdose", "method"}) | _LAMBDAZ),
    "mrt": ParameterSpec(_params.mrt, frozenset({"ithdose", "method"}) | _LAMBDAZ),
    "vss": ParameterSpec(_params.vss, frozenset({"ithdose", "method"}) | _LAMBDAZ),
    # dosing interval
    "accumulation_index": ParameterSpec(
        _params.accumulation_index, frozenset({"tau", "method"}) | _LAMBDAZ
    ),
    "cavg": ParameterSpec(_params.cavg, frozenset({"ithdose", "tau", "method"})),
    "fluctuation": ParameterSpec(_params.fluctuation, frozenset({"ithdose", "tau", "method"})),
    "swing": ParameterSpec(_params.swing, frozenset({"ithdose", "tau"})),
}


# ---------------------------------------------------------------------------
# Resolution and validation
# ---------------------------------------------------------------------------

def resolve(name: str) -> ParameterSpec:
    """Registry entry for *name*."""
    try:
        return PARAMETERS[name]
    except KeyError:
        raise ConfigurationError(
            f"unknown parameter {name!r}; valid parameters are {sorted(PARAMETERS)}"
        ) from None


def _check_options(name: str, spec: ParameterSpec, options: Mapping[str, object]) -> None:
    unknown = set(options) - spec.options - NORMALIZE_OPTIONS
    if unknown:
        raise ConfigurationError(
            f"parameter {name!r} does not accept option(s) {sorted(unknown)}; "
            f"accepted: {sorted(spec.options | NORMALIZE_OPTIONS)}"
        )
    if "method" in options:
        _check_method(options["method"])
    if "auctype" in options:
        _check_auctype(options["auctype"])
    if "interval" in options and options["interval"] is not None:
        _check_interval(options["interval"])
    _check_lambdaz_options(
        options.get("threshold"), options.get("idxs"), options.get("slopetimes")
    )
    ithdose = options.get("ithdose", 0)
    if isinstance(ithdose, bool) or not isinstance(ithdose, (int, np.integer)):
        raise ConfigurationError(f"ithdose must be an integer, got {ithdose!r}")
    tau = options.get("tau")
    if tau is not None:
        try:
            positive = bool(tau > 0)
        except (TypeError, ValueError):
            positive = False
        if isinstance(tau, bool) or not positive:
            raise ConfigurationError(f"tau must be a positive number, got {tau!r}")


def build_plan(
    parameters: list[str] | tuple[str, ...],
    options: Mapping[str, Mapping[str, object]] | None = None,
    common: Mapping[str, object] | None = None,
) -> tuple[tuple[str, ParameterSpec, dict], ...]:
    """Resolve and validate parameters into ``(name, spec, options)`` triples.

    *common* options apply to every parameter that accepts them;
    per-parameter *options* override them.  A per-parameter lambda_z
    window option replaces any common one.

    Raises
    ------
    ConfigurationError
        Unknown parameter, unknown or invalid option, duplicate parameter,
        or a common option no requested parameter accepts.
    """
    options = dict(options or {})
    common = dict(common or {})
    parameters = list(parameters)

    if not parameters:
        raise ConfigurationError("at least one parameter must be requested")
    if len(set(parameters)) != len(parameters):
        raise ConfigurationError(f"duplicate parameters requested: {parameters}")
    stray = set(options) - set(parameters)
    if stray:
        raise ConfigurationError(f"options given for unrequested parameter(s) {sorted(stray)}")

    plan = []
    used_common: set[str] = set()
    for name in parameters:
        spec = resolve(name)
        accepted = spec.options | NORMALIZE_OPTIONS
        own = dict(options.get(name, {}))
        merged = {k: v for k, v in common.items() if k in accepted}
        used_common.update(merged)
        if _LAMBDAZ & own.keys():
            merged = {k: v for k, v in merged.items() if k not in _LAMBDAZ}
        merged.update(own)
        _check_options(name, spec, merged)
        plan.append((name, spec, merged))

    unused = set(common) - used_common
    if unused:
        raise ConfigurationError(
            f"common option(s) {sorted(unused)} not accepted by any requested parameter"
        )
    return tuple(plan)


def compute_parameter(
    series: SubjectSeries, spec: ParameterSpec, options: Mapping[str, object]
) -> float:
    """Evaluate one registered parameter on one series."""
    kwargs = {k: v for k, v in options.items() if k in spec.options}
    value = spec.func(series, **kwargs)
    if options.get("dose_normalize"):
        value = _params.normalize_dose(value, series, options.get("ithdose", 0))
    return value

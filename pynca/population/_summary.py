"""Descriptive statistics of NCA parameters across a population.

Arithmetic statistics use every computed value; the geometric mean and
geometric CV use the strictly positive values only (log scale).
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from scipy import stats

from pynca._errors import ConfigurationError
from pynca.population._common import PopulationReport

SUMMARY_COLUMNS = (
    "n", "n_missing", "mean", "sd", "cv_pct",
    "geomean", "geo_cv_pct", "median", "min", "max",
)


def _describe(values: np.ndarray, n_missing: int) -> dict[str, float]:
    n = len(values)
    out = dict.fromkeys(SUMMARY_COLUMNS, np.nan)
    out["n"] = n
    out["n_missing"] = n_missing
    if n == 0:
        return out

    out["mean"] = float(np.mean(values))
    out["median"] = float(np.median(values))
    out["min"] = float(np.min(values))
    out["max"] = float(np.max(values))
    if n > 1:
        out["sd"] = float(np.std(values, ddof=1))
        if out["mean"] != 0:
            out["cv_pct"] = 100.0 * out["sd"] / abs(out["mean"])

    positive = values[values > 0]
    if len(positive) > 0:
        out["geomean"] = float(stats.gmean(positive))
    if len(positive) > 1:
        # Geometric CV% = 100 * sqrt(exp(s^2) - 1), s = SD of log values
        s = np.std(np.log(positive), ddof=1)
        out["geo_cv_pct"] = float(100.0 * np.sqrt(np.expm1(s ** 2)))
    return out


def summarize(
    report: PopulationReport,
    parameters: list[str] | tuple[str, ...] | None = None,
) -> pd.DataFrame:
    """Summary statistics per parameter.

    Parameters
    ----------
    report : PopulationReport
    parameters : sequence of str or None
        Parameters to summarise (default: all, in report order).

    Returns
    -------
    DataFrame
        Indexed by parameter name, columns ``n``, ``n_missing``, ``mean``,
        ``sd``, ``cv_pct``, ``geomean``, ``geo_cv_pct``, ``median``, ``min``,
        ``max``.
    """
    parameters = report.parameters if parameters is None else tuple(parameters)
    unknown = [p for p in parameters if p not in report.parameters]
    if unknown:
        raise ConfigurationError(f"parameters {unknown} are not in the report")

    records = {}
    for name in parameters:
        cells = [row.values[name] for row in report.rows]
        values = np.array([v for v in cells if v is not None], dtype=np.float64)
        records[name] = _describe(values, n_missing=len(cells) - len(values))
    return pd.DataFrame.from_dict(
        records, orient="index", columns=list(SUMMARY_COLUMNS)
    )

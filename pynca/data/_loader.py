"""Load per-subject concentration-time series from tabular data.

Rows are grouped by (subject id, occasion), sorted by time, and turned into
:class:`SubjectSeries` records.  Rows carrying a positive dose amount become
:class:`DoseEvent` entries; rows with a dose amount and no concentration are
dose-only rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path

import numpy as np
import pandas as pd

from pynca._errors import MissingColumnError, NCAInputError, NonMonotonicTimeError
from pynca.data._common import (
    DoseEvent,
    SubjectSeries,
    _apply_lloq,
    _normalize_route,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnMap:
    """Mapping from record fields to input column names.

    ``id``, ``time`` and ``conc`` are required.  Optional fields set to
    ``None`` are treated as absent from the input.
    """

    id: str = "id"
    time: str = "time"
    conc: str = "conc"
    amt: str | None = None
    route: str | None = None
    occasion: str | None = None
    ii: str | None = None
    duration: str | None = None


# ---------------------------------------------------------------------------
# Column handling
# ---------------------------------------------------------------------------

def _check_columns(frame: pd.DataFrame, columns: ColumnMap) -> None:
    """Every mapped column must exist in *frame*."""
    missing = [
        f"{f.name}={getattr(columns, f.name)!r}"
        for f in fields(columns)
        if getattr(columns, f.name) is not None
        and getattr(columns, f.name) not in frame.columns
    ]
    if missing:
        raise MissingColumnError(
            f"Mapped column(s) not found in input: {', '.join(missing)}; "
            f"available columns: {list(frame.columns)}"
        )


def _numeric(frame: pd.DataFrame, column: str) -> pd.Series:
    """Parse *column* as float; empty cells become NaN."""
    try:
        return pd.to_numeric(frame[column], errors="raise").astype(np.float64)
    except (ValueError, TypeError) as exc:
        raise NCAInputError(
            f"column {column!r} contains a non-numeric value: {exc}"
        ) from exc


# ---------------------------------------------------------------------------
# Per-group construction
# ---------------------------------------------------------------------------

def _build_doses(
    group: pd.DataFrame, route: str, ii: float | None
) -> tuple[DoseEvent, ...]:
    dose_rows = group[group["_amt"].notna() & (group["_amt"] > 0)]
    doses = []
    for _, row in dose_rows.sort_values("_time", kind="stable").iterrows():
        row_ii = row["_ii"] if not np.isnan(row["_ii"]) else ii
        doses.append(
            DoseEvent(
                time=float(row["_time"]),
                amount=float(row["_amt"]),
                route=route if pd.isna(row["_route"]) else _normalize_route(row["_route"]),
                ii=None if row_ii is None else float(row_ii),
                duration=0.0 if np.isnan(row["_duration"]) else float(row["_duration"]),
            )
        )
    return tuple(doses)


def _build_series(
    key: tuple,
    group: pd.DataFrame,
    *,
    route: str,
    ii: float | None,
    lloq: float,
    blq: str,
) -> SubjectSeries:
    subject, occasion = key
    if pd.isna(occasion):
        occasion = None
    is_dose = group["_amt"].notna() & (group["_amt"] > 0)
    obs = group[~(is_dose & group["_conc"].isna())]
    obs = obs.sort_values("_time", kind="stable")

    time = obs["_time"].to_numpy()
    if np.any(np.diff(time) == 0):
        dupes = sorted(set(time[1:][np.diff(time) == 0]))
        raise NonMonotonicTimeError(
            f"Duplicate time points {dupes} for subject {subject!r}, "
            f"occasion {occasion!r}"
        )

    return SubjectSeries(
        subject=subject,
        occasion=occasion,
        points=_apply_lloq(time, obs["_conc"].to_numpy(), lloq, blq),
        doses=_build_doses(group, route, ii),
        lloq=float(lloq),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_series(
    data: pd.DataFrame | str | Path,
    columns: ColumnMap | None = None,
    *,
    ii: float | None = None,
    route: str = "ev",
    lloq: float = 0.0,
    blq: str = "drop",
    sep: str = ",",
) -> list[SubjectSeries]:
    """Load subject-occasion series from a table.

    Parameters
    ----------
    data : DataFrame or path
        Long-format table, one row per observation or dose.  Paths are read
        with :func:`pandas.read_csv`.
    columns : ColumnMap or None
        Column mapping (default: ``id``, ``time``, ``conc`` only).
    ii : float or None
        Interdose interval applied to every dose unless the ``ii`` column
        gives a value for that row.
    route : str
        Route for doses without a route column value (``'iv'``, ``'ev'``,
        ``'oral'``, ...).
    lloq : float
        Lower limit of quantification (default 0: no points affected).
    blq : str
        ``'drop'`` removes points below *lloq*; ``'flag'`` keeps them as
        zero-valued BLQ points.
    sep : str
        Field delimiter when *data* is a path.

    Returns
    -------
    list of SubjectSeries
        In order of first appearance of each (id, occasion).

    Raises
    ------
    MissingColumnError
        A mapped column is absent.
    NonMonotonicTimeError
        Duplicate timestamps remain for a subject-occasion after sorting.
    NCAInputError
        Unparseable numeric field, unknown route, or bad BLQ policy.
    """
    if columns is None:
        columns = ColumnMap()
    if blq not in ("drop", "flag"):
        raise NCAInputError(f"blq must be 'drop' or 'flag', got {blq!r}")
    if lloq < 0:
        raise NCAInputError(f"lloq must be non-negative, got {lloq}")
    route = _normalize_route(route)

    frame = pd.read_csv(data, sep=sep) if isinstance(data, (str, Path)) else data
    _check_columns(frame, columns)

    work = pd.DataFrame(
        {
            "_id": frame[columns.id],
            "_time": _numeric(frame, columns.time),
            "_conc": _numeric(frame, columns.conc),
        }
    )
    work["_occ"] = frame[columns.occasion] if columns.occasion else None
    for name, col in (("_amt", columns.amt), ("_ii", columns.ii), ("_duration", columns.duration)):
        work[name] = _numeric(frame, col) if col else np.nan
    work["_route"] = frame[columns.route] if columns.route else None

    if work["_time"].isna().any():
        raise NCAInputError(f"column {columns.time!r} has empty time values")

    series = [
        _build_series(key, group, route=route, ii=ii, lloq=lloq, blq=blq)
        for key, group in work.groupby(["_id", "_occ"], sort=False, dropna=False)
    ]
    logger.debug("Loaded %d subject-occasion series from %d rows", len(series), len(frame))
    return series

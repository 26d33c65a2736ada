"""Delimited-text export and import of population reports.

One row per subject-occasion; the header lists ``id``, ``occasion`` and the
parameters in the caller's order.  Missing cells are written as empty
fields, never as a numeric sentinel.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

from pynca._errors import ConfigurationError, NCAInputError
from pynca.nca import NCAResult
from pynca.population._common import ID_COLUMN, OCCASION_COLUMN, PopulationReport

logger = logging.getLogger(__name__)

MISSING = ""


def write_report(
    report: PopulationReport,
    path_or_buf: str | Path | io.TextIOBase | None = None,
    *,
    columns: list[str] | tuple[str, ...] | None = None,
    sep: str = ",",
    float_format: str | None = None,
) -> str | None:
    """Write *report* as delimited text.

    Parameters
    ----------
    report : PopulationReport
    path_or_buf : path, text buffer or None
        Destination.  When ``None`` the text is returned.
    columns : sequence of str or None
        Parameter columns in output order (default: the report's order).
        Must be a subset of the report's parameters.
    sep : str
        Field delimiter.
    float_format : str or None
        Format for floating point values, e.g. ``'%.6g'``.

    Returns
    -------
    str or None
    """
    columns = report.parameters if columns is None else tuple(columns)
    unknown = [c for c in columns if c not in report.parameters]
    if unknown:
        raise ConfigurationError(
            f"columns {unknown} are not parameters of this report {list(report.parameters)}"
        )
    if len(set(columns)) != len(columns):
        raise ConfigurationError(f"duplicate columns requested: {list(columns)}")

    frame = report.to_frame(columns)
    logger.debug("Writing report: %d row(s), %d column(s)", len(frame), len(columns))
    return frame.to_csv(
        path_or_buf, sep=sep, index=False, na_rep=MISSING, float_format=float_format
    )


def read_report(
    path_or_buf: str | Path | io.TextIOBase,
    *,
    sep: str = ",",
) -> PopulationReport:
    """Parse text written by :func:`write_report`.

    Subject ids and occasions are read back as strings; empty fields become
    ``None``.  Missing-value reasons are not part of the text format.
    """
    frame = pd.read_csv(
        path_or_buf,
        sep=sep,
        dtype={ID_COLUMN: str, OCCASION_COLUMN: str},
        keep_default_na=False,
        na_values=[MISSING],
    )
    if list(frame.columns[:2]) != [ID_COLUMN, OCCASION_COLUMN]:
        raise NCAInputError(
            f"report must start with columns {ID_COLUMN!r}, {OCCASION_COLUMN!r}; "
            f"got {list(frame.columns[:2])}"
        )
    parameters = tuple(frame.columns[2:])
    for name in parameters:
        try:
            frame[name] = pd.to_numeric(frame[name], errors="raise")
        except (ValueError, TypeError) as exc:
            raise NCAInputError(f"column {name!r} contains a non-numeric value: {exc}") from exc

    rows = []
    for record in frame.to_dict(orient="records"):
        occasion = record[OCCASION_COLUMN]
        rows.append(
            NCAResult(
                subject=record[ID_COLUMN],
                occasion=None if pd.isna(occasion) else occasion,
                values={
                    name: None if pd.isna(record[name]) else float(record[name])
                    for name in parameters
                },
            )
        )
    return PopulationReport(parameters=parameters, rows=tuple(rows))

"""Shared result types for population NCA."""

from __future__ import annotations

from collections.abc import Hashable, Iterator
from dataclasses import dataclass

import numpy as np
import pandas as pd

from pynca.nca import NCAResult

ID_COLUMN = "id"
OCCASION_COLUMN = "occasion"


@dataclass(frozen=True)
class PopulationReport:
    """NCA results for a population, one row per subject-occasion.

    Rows keep the order of the input series.  Every row carries every
    requested parameter; cells that could not be computed are ``None``.
    """

    parameters: tuple[str, ...]
    rows: tuple[NCAResult, ...]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[NCAResult]:
        return iter(self.rows)

    @property
    def failed_rows(self) -> tuple[tuple[Hashable, Hashable | None], ...]:
        """Keys of rows in which no parameter could be computed."""
        return tuple(
            row.key for row in self.rows
            if all(row.values[p] is None for p in self.parameters)
        )

    @property
    def complete(self) -> bool:
        """Whether every cell of the report was computed."""
        return not any(row.missing for row in self.rows)

    def diagnostics(self) -> list[tuple[Hashable, Hashable | None, str, str]]:
        """``(subject, occasion, parameter, reason)`` for every missing cell."""
        return [
            (row.subject, row.occasion, name, reason)
            for row in self.rows
            for name, reason in row.errors.items()
        ]

    def to_frame(self, columns: list[str] | tuple[str, ...] | None = None) -> pd.DataFrame:
        """Report as a DataFrame: ``id``, ``occasion``, then *columns*.

        Missing cells are NaN.
        """
        columns = self.parameters if columns is None else tuple(columns)
        records = [
            {
                ID_COLUMN: row.subject,
                OCCASION_COLUMN: row.occasion,
                **{
                    name: np.nan if row.values[name] is None else row.values[name]
                    for name in columns
                },
            }
            for row in self.rows
        ]
        return pd.DataFrame.from_records(
            records, columns=[ID_COLUMN, OCCASION_COLUMN, *columns]
        )

    def summary(self) -> str:
        """Human-readable summary."""
        n_cells = len(self.rows) * len(self.parameters)
        n_missing = sum(len(row.missing) for row in self.rows)
        lines = [
            "Population NCA",
            "=" * 40,
            f"Subject-occasions : {len(self.rows)}",
            f"Parameters       : {', '.join(self.parameters)}",
            f"Missing cells    : {n_missing} of {n_cells}",
            f"Failed rows      : {len(self.failed_rows)}",
        ]
        return "\n".join(lines)

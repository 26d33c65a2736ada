"""Population NCA: every requested parameter for every subject-occasion.

Each subject-occasion is an independent task.  Tasks only read their own
series and write their own slot of a pre-sized output buffer, so rows come
out in input order whatever order the workers finish in.

**serial**: loops over the series in the calling thread.

**thread** / **process**: dispatches one task per series to a
``concurrent.futures`` pool and joins on all of them before assembling the
report.  Registry functions are module-level, so they pickle cleanly into
worker processes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from concurrent.futures import (
    Executor,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)

from pynca._errors import ConfigurationError, NCAComputationError
from pynca.data import SubjectSeries
from pynca.nca import DEFAULT_PARAMETERS, NCAResult
from pynca.nca._nca import _compute_row
from pynca.nca._registry import build_plan
from pynca.population._common import PopulationReport

logger = logging.getLogger(__name__)

VALID_BACKENDS = ("serial", "thread", "process", "auto")

# Below this many series a process pool costs more than it saves
_AUTO_PROCESS_MIN = 200


def _run_serial(series: Sequence[SubjectSeries], plan: tuple) -> list[NCAResult]:
    return [_compute_row(s, plan) for s in series]


def _run_pool(
    executor: Executor, series: Sequence[SubjectSeries], plan: tuple
) -> list[NCAResult]:
    """Submit one task per series; place results by original index."""
    rows: list[NCAResult | None] = [None] * len(series)
    with executor:
        futures = {executor.submit(_compute_row, s, plan): i for i, s in enumerate(series)}
        for future in as_completed(futures):
            rows[futures[future]] = future.result()
    return rows


class PopulationAggregator:
    """Compute a fixed set of NCA parameters across a population.

    Parameters and options are resolved against the registry and validated
    at construction, so configuration errors surface before any series is
    touched.

    Parameters
    ----------
    parameters : sequence of str
        Registered parameter names; also the column order of the report.
    options : mapping or None
        Per-parameter keyword options, e.g.
        ``{"lambdaz": {"idxs": [3, 4, 5, 6]}, "auc": {"interval": (0, 12)}}``.
    backend : str
        ``'serial'``, ``'thread'``, ``'process'`` or ``'auto'`` (process pool
        for large populations, otherwise serial).
    max_workers : int or None
        Pool size for the thread/process backends.
    strict : bool
        Raise :class:`NCAComputationError` when every parameter of a row
        fails, instead of keeping the all-missing row.
    **common_options
        Options applied to every parameter that accepts them.
    """

    def __init__(
        self,
        parameters: Sequence[str] = DEFAULT_PARAMETERS,
        options: Mapping[str, Mapping[str, object]] | None = None,
        *,
        backend: str = "serial",
        max_workers: int | None = None,
        strict: bool = False,
        **common_options,
    ) -> None:
        if backend not in VALID_BACKENDS:
            raise ConfigurationError(
                f"backend must be one of {VALID_BACKENDS}, got {backend!r}"
            )
        if max_workers is not None and max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")
        self._plan = build_plan(parameters, options, common_options)
        self.parameters = tuple(name for name, _, _ in self._plan)
        self.backend = backend
        self.max_workers = max_workers
        self.strict = strict

    def _resolve_backend(self, n_series: int) -> str:
        if self.backend != "auto":
            return self.backend
        if n_series >= _AUTO_PROCESS_MIN and (os.cpu_count() or 1) > 1:
            return "process"
        return "serial"

    def run(self, series: Sequence[SubjectSeries]) -> PopulationReport:
        """Compute the report for *series*, rows in input order."""
        series = list(series)
        for s in series:
            if not isinstance(s, SubjectSeries):
                raise TypeError(f"expected SubjectSeries, got {type(s).__name__}")

        backend = self._resolve_backend(len(series))
        if backend == "serial" or len(series) <= 1:
            rows = _run_serial(series, self._plan)
        elif backend == "thread":
            rows = _run_pool(ThreadPoolExecutor(self.max_workers), series, self._plan)
        else:
            rows = _run_pool(ProcessPoolExecutor(self.max_workers), series, self._plan)

        report = PopulationReport(parameters=self.parameters, rows=tuple(rows))
        for key in report.failed_rows:
            if self.strict:
                raise NCAComputationError(
                    f"every parameter failed for subject {key[0]!r}, occasion {key[1]!r}"
                )
            logger.warning(
                "every parameter failed for subject %r, occasion %r", key[0], key[1]
            )
        logger.info(
            "Population NCA: %d subject-occasion(s), %d parameter(s), "
            "%d missing cell(s), backend=%s",
            len(report), len(self.parameters), len(report.diagnostics()), backend,
        )
        return report


def nca_population(
    series: Sequence[SubjectSeries],
    parameters: Sequence[str] = DEFAULT_PARAMETERS,
    options: Mapping[str, Mapping[str, object]] | None = None,
    *,
    backend: str = "serial",
    max_workers: int | None = None,
    strict: bool = False,
    **common_options,
) -> PopulationReport:
    """Population NCA in one call.  See :class:`PopulationAggregator`."""
    aggregator = PopulationAggregator(
        parameters,
        options,
        backend=backend,
        max_workers=max_workers,
        strict=strict,
        **common_options,
    )
    return aggregator.run(series)

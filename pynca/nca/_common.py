"""Shared result types and profile helpers for non-compartmental analysis."""

from __future__ import annotations

import math
from collections.abc import Hashable, Mapping
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from pynca._errors import InsufficientPointsError
from pynca.data import SubjectSeries


@dataclass(frozen=True)
class LambdaZResult:
    """Terminal log-linear regression of ln(C) on time."""

    lambda_z: float  # negative of the fitted slope
    r_squared: float
    adj_r_squared: float  # NaN when only 2 points were used
    intercept: float  # on the ln(C) scale
    n_points: int
    time_first: float  # time of the first point in the window


@dataclass(frozen=True)
class NCAResult:
    """NCA parameters for one subject-occasion.

    ``values`` maps each requested parameter to its value, or ``None`` when
    it could not be computed; ``errors`` holds the reason for every
    ``None``.
    """

    subject: Hashable
    occasion: Hashable | None
    values: Mapping[str, float | int | None]
    errors: Mapping[str, str] = field(default_factory=dict)

    def __getitem__(self, name: str) -> float | int | None:
        return self.values[name]

    @property
    def key(self) -> tuple[Hashable, Hashable | None]:
        return (self.subject, self.occasion)

    @property
    def parameters(self) -> tuple[str, ...]:
        return tuple(self.values)

    @property
    def missing(self) -> tuple[str, ...]:
        return tuple(name for name, v in self.values.items() if v is None)

    def summary(self) -> str:
        """Human-readable PK summary."""
        label = f"subject {self.subject}"
        if self.occasion is not None:
            label += f", occasion {self.occasion}"
        lines = [f"Non-Compartmental Analysis ({label})", ""]
        width = max((len(name) for name in self.values), default=0)
        for name, value in self.values.items():
            shown = "missing" if value is None else f"{value:.4g}"
            lines.append(f"  {name:<{width}s} = {shown}")
        if self.errors:
            lines.append("")
            for name, reason in self.errors.items():
                lines.append(f"  {name}: {reason}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Profile helpers
# ---------------------------------------------------------------------------

def _profile(series: SubjectSeries) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Effective profile; at least one observed point is required."""
    time, conc = series.profile()
    if time.shape[0] == 0:
        raise InsufficientPointsError(
            f"subject {series.subject!r} (occasion {series.occasion!r}) "
            f"has no observed concentrations"
        )
    return time, conc


def _find_last_measurable(concentration: NDArray[np.float64]) -> int:
    """Index of last positive concentration (Clast), -1 if none."""
    nonzero = np.where(concentration > 0)[0]
    if len(nonzero) == 0:
        return -1
    return int(nonzero[-1])


def _as_cell(value: object) -> float | int | None:
    """Coerce a computed value to a report cell; non-finite becomes None."""
    if value is None:
        return None
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        return int(value)
    value = float(value)
    return value if math.isfinite(value) else None

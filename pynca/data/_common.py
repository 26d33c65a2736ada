"""Shared record types for concentration-time data."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from pynca._errors import NCAInputError, NoDoseEventError, NonMonotonicTimeError

VALID_ROUTES = ("iv", "ev")

# Accepted spellings in input data, normalised to VALID_ROUTES
_ROUTE_ALIASES = {
    "iv": "iv",
    "intravenous": "iv",
    "ev": "ev",
    "extravascular": "ev",
    "oral": "ev",
    "po": "ev",
}


def _normalize_route(route: str) -> str:
    key = str(route).strip().lower()
    if key not in _ROUTE_ALIASES:
        raise NCAInputError(
            f"route must be one of {sorted(_ROUTE_ALIASES)}, got {route!r}"
        )
    return _ROUTE_ALIASES[key]


@dataclass(frozen=True)
class TimePoint:
    """One observation.  ``concentration`` is NaN when not observed."""

    time: float
    concentration: float
    blq: bool = False  # kept below the LLOQ; treated as zero


@dataclass(frozen=True)
class DoseEvent:
    """One administered dose."""

    time: float
    amount: float
    route: str = "ev"  # 'iv' or 'ev' (extravascular / oral)
    ii: float | None = None  # interdose interval (tau)
    duration: float = 0.0  # infusion duration, 0 for a bolus


@dataclass(frozen=True)
class SubjectSeries:
    """Concentration-time profile and dosing for one subject, one occasion.

    Attributes
    ----------
    subject : hashable
        Subject identifier.
    occasion : hashable or None
        Occasion label, ``None`` when the data carries no occasions.
    points : tuple of TimePoint
        Observations, strictly increasing in time.
    doses : tuple of DoseEvent
        Dose events in time order.
    lloq : float
        Lower limit of quantification the series was loaded with.
    """

    subject: Hashable
    occasion: Hashable | None
    points: tuple[TimePoint, ...]
    doses: tuple[DoseEvent, ...] = ()
    lloq: float = 0.0

    def __post_init__(self) -> None:
        times = np.array([p.time for p in self.points], dtype=np.float64)
        if np.any(times < 0):
            raise NCAInputError(
                f"time values must be non-negative (subject {self.subject!r}, "
                f"occasion {self.occasion!r})"
            )
        if any(p.concentration < 0 for p in self.points):
            raise NCAInputError(
                f"concentration values must be non-negative (subject "
                f"{self.subject!r}, occasion {self.occasion!r})"
            )
        if np.any(np.diff(times) <= 0):
            raise NonMonotonicTimeError(
                f"time values must be strictly increasing (subject "
                f"{self.subject!r}, occasion {self.occasion!r})"
            )

    @property
    def key(self) -> tuple[Hashable, Hashable | None]:
        return (self.subject, self.occasion)

    @property
    def route(self) -> str:
        """Route of the first dose (``'ev'`` when there are no doses)."""
        return self.doses[0].route if self.doses else "ev"

    def profile(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Effective ``(time, concentration)`` arrays used for computation.

        Unobserved points are removed; BLQ-flagged points count as zero.
        """
        pts = [p for p in self.points if not np.isnan(p.concentration)]
        time = np.array([p.time for p in pts], dtype=np.float64)
        conc = np.array(
            [0.0 if p.blq else p.concentration for p in pts], dtype=np.float64
        )
        return time, conc

    def dose(self, ithdose: int = 0) -> DoseEvent:
        """Dose event at index *ithdose* (0-based, negative counts from the end)."""
        if not self.doses:
            raise NoDoseEventError(
                f"subject {self.subject!r} (occasion {self.occasion!r}) has no dose events"
            )
        try:
            event = self.doses[ithdose]
        except IndexError:
            raise NoDoseEventError(
                f"dose index {ithdose} out of range: subject {self.subject!r} "
                f"has {len(self.doses)} dose event(s)"
            ) from None
        first_obs = next(
            (p.time for p in self.points if not np.isnan(p.concentration)), None
        )
        if first_obs is not None and self.doses[0].time > first_obs:
            raise NoDoseEventError(
                f"subject {self.subject!r}: first dose at t={self.doses[0].time} "
                f"follows the first observation at t={first_obs}"
            )
        return event

    @classmethod
    def from_arrays(
        cls,
        time: NDArray[np.floating],
        concentration: NDArray[np.floating],
        *,
        subject: Hashable = 1,
        occasion: Hashable | None = None,
        dose: float | None = None,
        dose_time: float = 0.0,
        route: str = "ev",
        ii: float | None = None,
        duration: float = 0.0,
        lloq: float = 0.0,
        blq: str = "drop",
    ) -> SubjectSeries:
        """Build a single-dose series from time and concentration arrays.

        Points are sorted by time; concentrations below *lloq* after the first
        quantifiable one are dropped (``blq='drop'``) or kept as zero-valued
        BLQ points (``blq='flag'``).  Leading BLQ points always stay as zeros.
        """
        time = np.asarray(time, dtype=np.float64).ravel()
        concentration = np.asarray(concentration, dtype=np.float64).ravel()

        if time.shape[0] != concentration.shape[0]:
            raise NCAInputError(
                f"time and concentration must have equal length, "
                f"got {time.shape[0]} and {concentration.shape[0]}"
            )

        order = np.argsort(time, kind="stable")
        if np.any(np.diff(time[order]) == 0):
            raise NonMonotonicTimeError(
                "Duplicate time points detected; merge or remove them"
            )

        points = _apply_lloq(time[order], concentration[order], lloq, blq)
        doses: tuple[DoseEvent, ...] = ()
        if dose is not None:
            doses = (
                DoseEvent(
                    time=float(dose_time),
                    amount=float(dose),
                    route=_normalize_route(route),
                    ii=ii,
                    duration=float(duration),
                ),
            )
        return cls(
            subject=subject,
            occasion=occasion,
            points=points,
            doses=doses,
            lloq=float(lloq),
        )


def _apply_lloq(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    lloq: float,
    blq: str,
) -> tuple[TimePoint, ...]:
    """Turn sorted arrays into TimePoints under the BLQ policy.

    BLQ points before the first quantifiable concentration are always kept
    (as zeros); ``'drop'`` removes only later BLQ points.  A series with no
    quantifiable concentration keeps every point as BLQ.
    """
    if blq not in ("drop", "flag"):
        raise NCAInputError(f"blq must be 'drop' or 'flag', got {blq!r}")
    if np.any(concentration < 0):
        raise NCAInputError("concentration values must be non-negative")

    below = ~np.isnan(concentration) & (concentration < lloq)
    quantified = np.where(~np.isnan(concentration) & ~below)[0]
    first_quantified = quantified[0] if len(quantified) > 0 else len(concentration)

    points = []
    for i, (t, c) in enumerate(zip(time, concentration)):
        if below[i] and blq == "drop" and i > first_quantified:
            continue
        points.append(TimePoint(time=float(t), concentration=float(c), blq=bool(below[i])))
    return tuple(points)

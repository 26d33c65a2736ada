"""
Subject time-series records and the tabular loader.

Long-format concentration-time tables (one row per observation or dose)
are normalised into one read-only :class:`SubjectSeries` per subject and
occasion.
"""

from pynca.data._common import DoseEvent, SubjectSeries, TimePoint, VALID_ROUTES
from pynca.data._loader import ColumnMap, load_series

__all__ = [
    "TimePoint",
    "DoseEvent",
    "SubjectSeries",
    "VALID_ROUTES",
    "ColumnMap",
    "load_series",
]

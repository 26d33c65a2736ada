"""
Population NCA across subjects and occasions.

Applies the NCA parameter registry to every subject-occasion series
(serially or on a thread/process pool), assembles the results into a
:class:`PopulationReport`, exports it as delimited text, and summarises
parameters across the population.
"""

from pynca.population._common import PopulationReport
from pynca.population._aggregate import PopulationAggregator, nca_population
from pynca.population._export import read_report, write_report
from pynca.population._summary import summarize

__all__ = [
    "PopulationReport",
    "PopulationAggregator",
    "nca_population",
    "write_report",
    "read_report",
    "summarize",
]

"""Tests for delimited-text export of population reports."""

import io

import numpy as np
import pytest

from pynca import ConfigurationError, NCAInputError
from pynca.data import SubjectSeries
from pynca.nca import NCAResult
from pynca.population import PopulationReport, nca_population, read_report, write_report


@pytest.fixture
def report():
    return PopulationReport(
        parameters=("cmax", "tmax", "thalf"),
        rows=(
            NCAResult(subject=1, occasion=None, values={"cmax": 8.0, "tmax": 1.0, "thalf": 6.5}),
            NCAResult(
                subject=2, occasion=None,
                values={"cmax": 0.0, "tmax": 0.0, "thalf": None},
                errors={"thalf": "InsufficientPointsError: no terminal phase"},
            ),
            NCAResult(subject=3, occasion=None, values={"cmax": 4.5, "tmax": 2.0, "thalf": 3.25}),
        ),
    )


@pytest.fixture
def occasion_report():
    return PopulationReport(
        parameters=("cmax",),
        rows=(
            NCAResult(subject="A", occasion=1, values={"cmax": 2.0}),
            NCAResult(subject="A", occasion=2, values={"cmax": None}),
        ),
    )


class TestWriteReport:
    """Header, column order and missing cells."""

    def test_returns_text(self, report):
        text = write_report(report)
        assert text.splitlines() == [
            "id,occasion,cmax,tmax,thalf",
            "1,,8.0,1.0,6.5",
            "2,,0.0,0.0,",
            "3,,4.5,2.0,3.25",
        ]

    def test_missing_is_empty_not_sentinel(self, report):
        line = write_report(report).splitlines()[2]
        assert line.endswith(",")
        for sentinel in ("nan", "NaN", "-1", "None"):
            assert sentinel not in line

    def test_column_order(self, report):
        text = write_report(report, columns=["thalf", "cmax"])
        assert text.splitlines()[0] == "id,occasion,thalf,cmax"
        assert text.splitlines()[1] == "1,,6.5,8.0"

    def test_occasions_written(self, occasion_report):
        assert write_report(occasion_report).splitlines()[1:] == ["A,1,2.0", "A,2,"]

    def test_separator(self, report):
        assert write_report(report, sep="\t").splitlines()[0] == "id\toccasion\tcmax\ttmax\tthalf"

    def test_float_format(self, report):
        assert write_report(report, float_format="%.3f").splitlines()[1] == "1,,8.000,1.000,6.500"

    def test_to_path(self, report, tmp_path):
        path = tmp_path / "nca.csv"
        assert write_report(report, path) is None
        assert path.read_text().splitlines()[0] == "id,occasion,cmax,tmax,thalf"

    def test_to_buffer(self, report):
        buf = io.StringIO()
        write_report(report, buf)
        assert buf.getvalue() == write_report(report)

    def test_unknown_column(self, report):
        with pytest.raises(ConfigurationError, match="auc_inf"):
            write_report(report, columns=["cmax", "auc_inf"])

    def test_duplicate_column(self, report):
        with pytest.raises(ConfigurationError, match="duplicate"):
            write_report(report, columns=["cmax", "cmax"])


class TestReadReport:
    """Parsing exported text back into a report."""

    def test_missing_pattern_preserved(self, report):
        parsed = read_report(io.StringIO(write_report(report)))
        assert parsed.parameters == report.parameters
        assert [row.missing for row in parsed] == [row.missing for row in report]

    def test_values_preserved(self, report):
        parsed = read_report(io.StringIO(write_report(report)))
        for got, want in zip(parsed, report):
            for name in report.parameters:
                if want[name] is None:
                    assert got[name] is None
                else:
                    assert got[name] == pytest.approx(want[name])

    def test_ids_read_as_strings(self, report):
        parsed = read_report(io.StringIO(write_report(report)))
        assert [row.key for row in parsed] == [("1", None), ("2", None), ("3", None)]

    def test_occasions(self, occasion_report):
        parsed = read_report(io.StringIO(write_report(occasion_report)))
        assert [row.key for row in parsed] == [("A", "1"), ("A", "2")]
        assert parsed.rows[1]["cmax"] is None

    def test_from_path_with_separator(self, report, tmp_path):
        path = tmp_path / "nca.tsv"
        write_report(report, path, sep="\t")
        parsed = read_report(path, sep="\t")
        assert len(parsed) == 3

    def test_wrong_leading_columns(self):
        with pytest.raises(NCAInputError, match="must start with"):
            read_report(io.StringIO("subject,cmax\n1,2.0\n"))

    def test_non_numeric_value(self):
        with pytest.raises(NCAInputError, match="non-numeric"):
            read_report(io.StringIO("id,occasion,cmax\n1,,high\n"))


class TestEndToEnd:
    """Aggregate, export, re-import."""

    def test_population_round_trip(self):
        time = np.array([0, 1, 2, 4, 8, 12, 24], dtype=float)
        series = [
            SubjectSeries.from_arrays(time, np.array([0, 8, 6, 4, 2, 1, 0.3]), subject=1, dose=100),
            SubjectSeries.from_arrays(time, np.zeros(7), subject=2, dose=100),
        ]
        report = nca_population(series, ["cmax", "auc_last", "thalf", "cl"])
        parsed = read_report(io.StringIO(write_report(report)))
        assert [row.missing for row in parsed] == [(), ("thalf", "cl")]
        assert parsed.rows[0]["auc_last"] == pytest.approx(46.8)

"""Tests for the tabular concentration-time loader."""

import numpy as np
import pandas as pd
import pytest

from pynca import MissingColumnError, NCAInputError, NonMonotonicTimeError
from pynca.data import ColumnMap, SubjectSeries, load_series


@pytest.fixture
def nm_table():
    """Long-format table: dose rows (AMT, no DV) and observation rows, unsorted."""
    return pd.DataFrame({
        "ID":    [1,      1,   1,   1,   1,   2,      2,    2,    2],
        "TIME":  [0,      2,   0,   1,   4,   0,      4,    0.5,  1],
        "DV":    [np.nan, 6.0, 0.0, 8.0, 4.0, np.nan, 2.5,  9.0,  7.0],
        "AMT":   [100,    0,   0,   0,   0,   50,     0,    0,    0],
        "ROUTE": ["oral", None, None, None, None, "IV", None, None, None],
    })


@pytest.fixture
def nm_columns():
    return ColumnMap(id="ID", time="TIME", conc="DV", amt="AMT", route="ROUTE")


class TestLoadSeries:
    """Grouping, sorting, dose extraction."""

    def test_one_series_per_subject(self, nm_table, nm_columns):
        series = load_series(nm_table, nm_columns)
        assert len(series) == 2
        assert all(isinstance(s, SubjectSeries) for s in series)
        assert [s.subject for s in series] == [1, 2]
        assert [s.occasion for s in series] == [None, None]

    def test_sorted_by_time(self, nm_table, nm_columns):
        first, second = load_series(nm_table, nm_columns)
        np.testing.assert_array_equal(first.profile()[0], [0, 1, 2, 4])
        np.testing.assert_array_equal(first.profile()[1], [0, 8, 6, 4])
        np.testing.assert_array_equal(second.profile()[0], [0.5, 1, 4])

    def test_dose_rows_become_events(self, nm_table, nm_columns):
        first, second = load_series(nm_table, nm_columns)
        assert len(first.doses) == 1
        assert first.doses[0].amount == 100.0
        assert first.doses[0].time == 0.0
        assert first.route == "ev"
        assert second.route == "iv"

    def test_dose_only_rows_not_observations(self, nm_table, nm_columns):
        first, _ = load_series(nm_table, nm_columns)
        assert len(first.points) == 4

    def test_default_route(self, nm_table):
        columns = ColumnMap(id="ID", time="TIME", conc="DV", amt="AMT")
        series = load_series(nm_table, columns, route="iv")
        assert [s.route for s in series] == ["iv", "iv"]

    def test_no_dose_column(self, nm_table):
        columns = ColumnMap(id="ID", time="TIME", conc="DV")
        table = nm_table[nm_table["AMT"] == 0]
        series = load_series(table, columns)
        assert all(s.doses == () for s in series)

    def test_interdose_interval(self, nm_table, nm_columns):
        series = load_series(nm_table, nm_columns, ii=12)
        assert [s.doses[0].ii for s in series] == [12.0, 12.0]

    def test_interdose_interval_column(self, nm_table):
        table = nm_table.assign(II=[24, 0, 0, 0, 0, np.nan, 0, 0, 0])
        columns = ColumnMap(id="ID", time="TIME", conc="DV", amt="AMT", ii="II")
        first, second = load_series(table, columns, ii=12)
        assert first.doses[0].ii == 24.0
        assert second.doses[0].ii == 12.0

    def test_infusion_duration(self, nm_table):
        table = nm_table.assign(DUR=[np.nan, 0, 0, 0, 0, 1.0, 0, 0, 0])
        columns = ColumnMap(id="ID", time="TIME", conc="DV", amt="AMT", duration="DUR")
        first, second = load_series(table, columns)
        assert first.doses[0].duration == 0.0
        assert second.doses[0].duration == 1.0

    def test_occasions_split_series(self):
        table = pd.DataFrame({
            "id":   [1, 1, 1, 1, 1, 1],
            "occ":  [1, 1, 1, 2, 2, 2],
            "time": [0, 1, 2, 0, 1, 2],
            "conc": [0, 5, 3, 0, 6, 4],
        })
        series = load_series(table, ColumnMap(occasion="occ"))
        assert [s.key for s in series] == [(1, 1), (1, 2)]

    def test_first_appearance_order(self):
        table = pd.DataFrame({
            "id":   ["b", "a", "b", "a"],
            "time": [0, 0, 1, 1],
            "conc": [1.0, 2.0, 0.5, 1.0],
        })
        assert [s.subject for s in load_series(table)] == ["b", "a"]

    def test_from_csv_path(self, nm_table, nm_columns, tmp_path):
        path = tmp_path / "pk.csv"
        nm_table.to_csv(path, index=False)
        series = load_series(path, nm_columns)
        assert len(series) == 2
        np.testing.assert_array_equal(series[0].profile()[1], [0, 8, 6, 4])

    def test_tab_delimited(self, nm_table, nm_columns, tmp_path):
        path = tmp_path / "pk.tsv"
        nm_table.to_csv(path, index=False, sep="\t")
        assert len(load_series(str(path), nm_columns, sep="\t")) == 2


class TestLoaderBLQ:
    """LLOQ policy applied while loading."""

    @pytest.fixture
    def table(self):
        return pd.DataFrame({
            "id":   [1, 1, 1, 1],
            "time": [0, 1, 2, 4],
            "conc": [0.01, 5.0, 2.0, 0.02],
        })

    def test_drop(self, table):
        """Pre-dose BLQ stays as zero, trailing BLQ is removed."""
        (s,) = load_series(table, lloq=0.05)
        np.testing.assert_array_equal(s.profile()[0], [0, 1, 2])
        np.testing.assert_array_equal(s.profile()[1], [0.0, 5.0, 2.0])

    def test_pre_dose_zero_kept(self, nm_table, nm_columns):
        first, _ = load_series(nm_table, nm_columns, lloq=0.5)
        np.testing.assert_array_equal(first.profile()[0], [0, 1, 2, 4])
        assert first.points[0].blq

    def test_negative_concentration(self, table):
        with pytest.raises(NCAInputError, match="non-negative"):
            load_series(table.assign(conc=[0.0, 5.0, -2.0, 1.0]))

    def test_flag(self, table):
        (s,) = load_series(table, lloq=0.05, blq="flag")
        np.testing.assert_array_equal(s.profile()[1], [0.0, 5.0, 2.0, 0.0])
        assert s.lloq == 0.05

    def test_bad_policy(self, table):
        with pytest.raises(NCAInputError, match="blq"):
            load_series(table, blq="half")

    def test_negative_lloq(self, table):
        with pytest.raises(NCAInputError, match="lloq"):
            load_series(table, lloq=-1)


class TestLoaderErrors:
    """Malformed input aborts the load."""

    def test_missing_required_column(self, nm_table):
        with pytest.raises(MissingColumnError, match="conc='conc'"):
            load_series(nm_table, ColumnMap(id="ID", time="TIME"))

    def test_missing_optional_column(self, nm_table):
        columns = ColumnMap(id="ID", time="TIME", conc="DV", occasion="OCC")
        with pytest.raises(MissingColumnError, match="OCC"):
            load_series(nm_table, columns)

    def test_duplicate_times(self):
        table = pd.DataFrame({"id": [1, 1, 1], "time": [0, 1, 1], "conc": [0, 5, 4]})
        with pytest.raises(NonMonotonicTimeError, match="Duplicate"):
            load_series(table)

    def test_duplicates_in_other_subject_are_independent(self):
        table = pd.DataFrame({"id": [1, 2, 1, 2], "time": [0, 0, 1, 1], "conc": [0, 1, 5, 4]})
        assert len(load_series(table)) == 2

    def test_non_numeric_concentration(self):
        table = pd.DataFrame({"id": [1, 1], "time": [0, 1], "conc": ["0", "BLQ"]})
        with pytest.raises(NCAInputError, match="non-numeric"):
            load_series(table)

    def test_empty_time(self):
        table = pd.DataFrame({"id": [1, 1], "time": [0, np.nan], "conc": [0, 1]})
        with pytest.raises(NCAInputError, match="empty time"):
            load_series(table)

    def test_unknown_route(self, nm_table, nm_columns):
        table = nm_table.assign(ROUTE=["sc", None, None, None, None, "iv", None, None, None])
        with pytest.raises(NCAInputError, match="route"):
            load_series(table, nm_columns)

    def test_errors_are_value_errors(self, nm_table):
        with pytest.raises(ValueError):
            load_series(nm_table, ColumnMap(id="ID", time="TIME"))

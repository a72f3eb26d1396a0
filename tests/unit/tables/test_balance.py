"""Unit tests for balance table construction."""

import logging

import numpy as np
import pandas as pd
import pytest

from balancetable.balance import build_balance_body, datasummary_balance
from balancetable.errors import (
    InvalidArgumentError,
    InvalidGroupingError,
    TooManyLevelsError,
    UnsupportedOutputError,
)
from balancetable.models import HeaderSpan


def test_numeric_only_vs(mtcars):
    """Test an all-numeric table grouped by engine shape."""
    tab = datasummary_balance("~vs", mtcars, output="dataframe")
    assert tab.shape == (10, 7)
    assert list(tab.columns) == [
        " ",
        "0 (N=18) Mean",
        "0 (N=18) Std. Dev.",
        "1 (N=14) Mean",
        "1 (N=14) Std. Dev.",
        "Diff. in Means",
        "Std. Error",
    ]
    labels = ["mpg", "cyl", "disp", "hp", "drat", "wt", "qsec", "am", "gear", "carb"]
    assert list(tab[" "]) == labels


def test_numeric_body_metadata(mtcars):
    """Test inner names, spans and flat header of a numeric table."""
    body = build_balance_body("~am", mtcars)
    stats = ["Mean", "Std. Dev."]
    assert body.columns == [" ", *stats, *stats, "Diff. in Means", "Std. Error"]
    assert body.meta.spans == (
        (
            HeaderSpan(" ", 1),
            HeaderSpan("0 (N=19)", 2),
            HeaderSpan("1 (N=13)", 2),
            HeaderSpan(" ", 2),
        ),
    )
    assert body.meta.flat_header[1] == "0 (N=19) Mean"
    assert body.meta.hrule == ()


def test_numeric_cells(mtcars):
    """Test the mpg row carries means, deviations and the difference."""
    body = build_balance_body("~am", mtcars)
    assert body.rows()[0] == ["mpg", "17.147", "3.834", "24.392", "6.167", "7.245", "1.923"]


def test_all_categorical(mtcars_factors):
    """Test a table with only categorical columns has no difference columns."""
    data = mtcars_factors[["am", "cyl", "vs", "gear"]]
    tab = datasummary_balance("~am", data, output="dataframe")
    assert tab.shape == (8, 6)
    assert list(tab.columns) == [" ", "  ", "0 (N=19) N", "0 (N=19) %", "1 (N=13) N", "1 (N=13) %"]
    assert list(tab[" "]) == ["cyl", "", "", "vs", "", "gear", "", ""]
    assert list(tab["  "]) == ["4", "6", "8", "0", "1", "3", "4", "5"]


def test_mixed_layout(mtcars_factors):
    """Test numeric rows, a separator row and categorical rows."""
    body = build_balance_body("~am", mtcars_factors)
    assert (body.n_rows, body.n_cols) == (16, 8)
    rows = body.rows()
    assert rows[0][:2] == ["mpg", ""]
    assert rows[7] == ["", "", "N", "%", "N", "%", "", ""]
    assert rows[8][:4] == ["cyl", "4", "3", "15.8"]
    # Categorical rows leave the difference columns blank
    assert rows[8][-2:] == ["", ""]
    assert body.meta.hrule == (6, 10, 12)
    assert body.columns[:2] == [" ", "  "]


def test_three_groups_without_difference(mtcars_factors, caplog):
    """Test a three-level grouping drops the difference columns."""
    with caplog.at_level(logging.INFO, logger="balancetable.balance"):
        body = build_balance_body("~gear", mtcars_factors, dinm=True)
    assert (body.n_rows, body.n_cols) == (14, 8)
    assert "exactly two groups" in caplog.text

    off = build_balance_body("~gear", mtcars_factors, dinm=False)
    assert (off.n_rows, off.n_cols) == (14, 8)


def test_dinm_disabled(mtcars):
    """Test dinm=False removes the difference columns."""
    body = build_balance_body("~am", mtcars, dinm=False)
    assert body.n_cols == 5
    assert len(body.meta.spans[0]) == 3


def test_single_numeric_column(mtcars):
    """Test a single numeric column gives one row."""
    tab = datasummary_balance("~am", mtcars[["am", "mpg"]], output="dataframe")
    assert tab.shape == (1, 7)
    assert tab.iloc[0, 0] == "mpg"


def test_single_factor_column(mtcars_factors):
    """Test a single categorical column uses levels as row labels."""
    tab = datasummary_balance("~am", mtcars_factors[["am", "gear"]], output="dataframe")
    assert tab.shape == (3, 5)
    assert tab.iloc[0, 0] == "3"
    assert list(tab.iloc[:, 1]) == ["15", "4", "0"]


def test_p_value_statistic(mtcars):
    """Test the trailing column can report p-values."""
    tab = datasummary_balance("~am", mtcars, output="dataframe", dinm_statistic="p.value")
    assert tab.columns[-1] == "p"
    assert tab.iloc[0, -1] == "0.001"


def test_invalid_dinm_statistic(mtcars):
    """Test unknown precision statistics are rejected."""
    with pytest.raises(InvalidArgumentError):
        build_balance_body("~am", mtcars, dinm_statistic="t.value")


def test_custom_fmt(mtcars_factors):
    """Test fmt applies to numeric cells but not to counts."""
    tab = datasummary_balance("~am", mtcars_factors, output="dataframe", fmt="%.2f")
    assert tab.iloc[0, 2] == "17.15"
    gear = tab.index[tab[" "] == "gear"][0]
    assert list(tab.loc[gear:gear + 2, "0 (N=19) Mean"]) == ["15", "4", "0"]


def test_category_counts_sum_to_group_size(mtcars_factors):
    """Test a three-level column yields three rows whose counts sum to N."""
    tab = datasummary_balance("~am", mtcars_factors[["am", "gear"]], output="dataframe")
    assert len(tab) == 3
    assert sum(int(n) for n in tab["0 (N=19) N"]) == 19
    assert sum(int(n) for n in tab["1 (N=13) N"]) == 13


def test_too_many_levels(mtcars):
    """Test a high-cardinality categorical column is rejected."""
    data = pd.DataFrame({"g": [0, 1] * 50, "id": [f"id{i}" for i in range(100)]})
    with pytest.raises(TooManyLevelsError) as excinfo:
        datasummary_balance("~g", data, output="dataframe")
    assert excinfo.value.column == "id"


def test_invalid_grouping(mtcars):
    """Test malformed or unknown grouping variables are rejected."""
    with pytest.raises(InvalidGroupingError):
        datasummary_balance("~am + vs", mtcars)
    with pytest.raises(InvalidGroupingError):
        datasummary_balance("~nope", mtcars)


def test_unsupported_output_checked_first(mtcars):
    """Test an unknown output fails before the table is built."""
    with pytest.raises(UnsupportedOutputError):
        datasummary_balance("~nope", mtcars, output="table.xyz")


def test_data_must_be_dataframe():
    """Test non-DataFrame data is rejected."""
    with pytest.raises(InvalidArgumentError):
        build_balance_body("~am", {"am": [0, 1]})


def test_reserved_columns_excluded(mtcars):
    """Test cluster identifiers feed the estimator but are not summarized."""
    data = mtcars.copy()
    data["clusters"] = data["cyl"]
    body = build_balance_body("~am", data)
    labels = [row[0] for row in body.rows()]
    assert "clusters" not in labels
    assert len(labels) == 10
    mpg = body.rows()[0]
    assert mpg[5] == "7.245"
    assert mpg[6] != "1.923"


def test_missing_group_rows_dropped(mtcars, caplog):
    """Test rows with a missing grouping value are dropped with a warning."""
    data = mtcars.copy()
    data["am"] = data["am"].astype(float)
    data.iloc[0, data.columns.get_loc("am")] = np.nan
    with caplog.at_level(logging.WARNING, logger="balancetable.balance"):
        tab = datasummary_balance("~am", data, output="dataframe")
    assert "Dropping 1 rows" in caplog.text
    assert "1 (N=12) Mean" in tab.columns


def test_undefined_difference_left_blank(mtcars, caplog):
    """Test a column missing in one group gets blank difference cells."""
    data = mtcars[["am", "mpg"]].copy()
    data["extra"] = np.where(data["am"] == 1, np.nan, 1.0)
    with caplog.at_level(logging.WARNING, logger="balancetable.balance"):
        body = build_balance_body("~am", data)
    extra = body.rows()[1]
    assert extra[0] == "extra"
    assert extra[-2:] == ["", ""]
    assert "Leaving difference in means blank" in caplog.text


def test_single_group(mtcars):
    """Test a single group still gives a valid table."""
    data = mtcars[mtcars["am"] == 0]
    body = build_balance_body("~am", data)
    assert body.n_cols == 3
    assert body.columns == [" ", "Mean", "Std. Dev."]


def test_no_summarisable_columns(mtcars):
    """Test a dataset with only the grouping column gives an empty body."""
    body = build_balance_body("~am", mtcars[["am"]])
    assert body.n_rows == 0
    assert body.n_cols == 5
    assert sum(s.width for s in body.meta.spans[0]) == body.n_cols


def test_numeric_with_single_factor(mtcars_factors):
    """Test one categorical column beside numeric ones keeps a single label column."""
    data = mtcars_factors[["am", "mpg", "gear"]]
    tab = datasummary_balance("~am", data, output="dataframe", fmt="%.2f")
    assert tab.shape == (5, 7)
    assert list(tab.iloc[:, 0]) == ["mpg", "", "3", "4", "5"]
    assert list(tab.iloc[:, 1]) == ["17.15", "N", "15", "4", "0"]
    assert list(tab.columns[:2]) == [" ", "0 (N=19) Mean"]

    body = build_balance_body("~am", data)
    assert body.meta.spans[0][0] == HeaderSpan(" ", 1)
    assert body.meta.hrule == (0,)

"""Data model for balance tables.

The table body is a grid of formatted strings. Structural metadata (flat
header fallback, rule positions, header spans) lives in an explicit
``TableMetadata`` carried next to the grid and threaded through every
transformation.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from balancetable.config import config
from balancetable.errors import InvalidGroupingError, TooManyLevelsError

__all__ = [
    "AugmentationSpec",
    "ColumnKind",
    "Group",
    "GroupingSelector",
    "HeaderSpan",
    "StatisticKind",
    "StatisticRow",
    "SummaryBlock",
    "TableBody",
    "TableMetadata",
    "column_kind",
    "column_levels",
    "level_label",
]

_FORMULA_RE = re.compile(r"^\s*~\s*([A-Za-z_.][A-Za-z0-9_.]*)\s*$")


class StatisticKind(str, Enum):
    """Kind of statistic held by a statistic row or sub-column."""

    MEAN = "mean"
    STD_DEV = "std_dev"
    COUNT = "count"
    PERCENT = "percent"
    DIFF_IN_MEANS = "diff_in_means"
    STD_ERROR = "std_error"
    P_VALUE = "p_value"

    @property
    def label(self) -> str:
        """Display label, configurable in config.yaml."""
        return config.label(self.value, _DEFAULT_LABELS[self])


_DEFAULT_LABELS = {
    StatisticKind.MEAN: "Mean",
    StatisticKind.STD_DEV: "Std. Dev.",
    StatisticKind.COUNT: "N",
    StatisticKind.PERCENT: "%",
    StatisticKind.DIFF_IN_MEANS: "Diff. in Means",
    StatisticKind.STD_ERROR: "Std. Error",
    StatisticKind.P_VALUE: "p",
}


class ColumnKind(str, Enum):
    """How a source column is summarized."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


def column_kind(series: pd.Series) -> ColumnKind:
    """Classify a column: numeric and boolean columns get Mean/Std. Dev."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return ColumnKind.CATEGORICAL
    if is_bool_dtype(series) or is_numeric_dtype(series):
        return ColumnKind.NUMERIC
    return ColumnKind.CATEGORICAL


def column_levels(series: pd.Series) -> list[Any]:
    """Distinct levels of a categorical-like column.

    ``category`` columns keep all declared categories in declared order,
    including unused ones. Other columns use their sorted distinct non-missing
    values.

    Args:
        series: Column to inspect

    Returns:
        List of levels

    """
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.categories)
    values = series.dropna().unique()
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


def level_label(value: Any) -> str:
    """Display form of a level; integral floats print without ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class Group:
    """One level of the grouping variable."""

    value: Any
    size: int

    @property
    def label(self) -> str:
        """Display label, e.g. ``"0 (N=18)"``."""
        return f"{level_label(self.value)} (N={self.size})"


@dataclass(frozen=True)
class GroupingSelector:
    """Typed selector for the grouping column.

    Example:
        selector = GroupingSelector.parse("~am")
        groups = selector.resolve(data)

    """

    column: str

    def __post_init__(self) -> None:
        """Reject empty column names at construction time."""
        if not isinstance(self.column, str) or not self.column.strip():
            raise InvalidGroupingError("Grouping column name cannot be empty")

    @classmethod
    def parse(cls, expression: str | GroupingSelector) -> GroupingSelector:
        """Parse a one-sided formula naming exactly one variable.

        Args:
            expression: Formula such as ``"~am"``, or an existing selector

        Returns:
            GroupingSelector for the named column

        Raises:
            InvalidGroupingError: If the expression is not ``~<one variable>``

        """
        if isinstance(expression, GroupingSelector):
            return expression
        if not isinstance(expression, str):
            raise InvalidGroupingError(
                f"Grouping must be a formula string like '~group', got {type(expression).__name__}"
            )
        match = _FORMULA_RE.match(expression)
        if match is None:
            raise InvalidGroupingError(
                f"Grouping formula {expression!r} must be one-sided and name exactly one "
                "variable, e.g. '~treatment'"
            )
        return cls(match.group(1))

    def resolve(self, data: pd.DataFrame, max_levels: int | None = None) -> list[Group]:
        """Resolve the selector against a dataset.

        Args:
            data: Dataset to group
            max_levels: Level ceiling (default from config)

        Returns:
            Groups in display order

        Raises:
            InvalidGroupingError: If the column is absent
            TooManyLevelsError: If the column has too many distinct levels

        """
        if max_levels is None:
            max_levels = config.max_levels
        if self.column not in data.columns:
            raise InvalidGroupingError(
                f"Grouping variable '{self.column}' is not a column of the dataset"
            )
        series = data[self.column]
        levels = column_levels(series)
        if len(levels) > max_levels:
            raise TooManyLevelsError(self.column, len(levels), max_levels)
        counts = series.value_counts(dropna=True)
        return [Group(value=level, size=int(counts.get(level, 0))) for level in levels]


@dataclass(frozen=True)
class StatisticRow:
    """One statistic for one source column, with a cell per group."""

    column: str
    kind: StatisticKind
    cells: tuple[str, ...]
    level: Any = None


@dataclass(frozen=True)
class SummaryBlock:
    """All statistic rows computed for one source column."""

    column: str
    kind: ColumnKind
    rows: tuple[StatisticRow, ...]
    levels: tuple[Any, ...] = ()

    def cells(self, kind: StatisticKind, level: Any = None) -> tuple[str, ...]:
        """Cells of the row with the given kind (and level, for categorical blocks)."""
        for row in self.rows:
            if row.kind == kind and (level is None or row.level == level):
                return row.cells
        raise KeyError(f"No {kind.value} row for column '{self.column}' level {level!r}")


@dataclass(frozen=True)
class HeaderSpan:
    """Outer header label covering ``width`` adjacent columns."""

    label: str
    width: int


@dataclass(frozen=True)
class TableMetadata:
    """Structural metadata attached to a table body.

    Attributes:
        flat_header: Single-level column names for span-incapable backends
        hrule: 0-based row indices after which a horizontal rule is drawn
        spans: Header levels, outermost first; each level's widths sum to
            the column count
        provenance: Whether the body carries term/statistic identity columns

    """

    flat_header: tuple[str, ...] | None = None
    hrule: tuple[int, ...] = ()
    spans: tuple[tuple[HeaderSpan, ...], ...] | None = None
    provenance: bool = False


@dataclass(frozen=True)
class TableBody:
    """Grid of formatted string cells plus its metadata."""

    data: pd.DataFrame
    meta: TableMetadata = field(default_factory=TableMetadata)

    @property
    def n_rows(self) -> int:
        """Number of body rows."""
        return len(self.data)

    @property
    def n_cols(self) -> int:
        """Number of body columns."""
        return self.data.shape[1]

    @property
    def columns(self) -> list[str]:
        """Current column names."""
        return [str(c) for c in self.data.columns]

    def with_data(self, data: pd.DataFrame, **meta_changes: Any) -> TableBody:
        """New body with a replaced grid and optionally updated metadata."""
        return TableBody(data=data, meta=replace(self.meta, **meta_changes))

    def with_columns(self, names: Sequence[str]) -> TableBody:
        """New body with renamed columns."""
        data = self.data.copy()
        data.columns = list(names)
        return TableBody(data=data, meta=self.meta)

    def flattened(self) -> TableBody:
        """Replace column names by the flat header fallback and drop spans."""
        if self.meta.flat_header is None:
            return self
        data = self.data.copy()
        data.columns = list(self.meta.flat_header)
        return TableBody(data=data, meta=replace(self.meta, spans=None))

    def rows(self) -> list[list[str]]:
        """Cells as a list of rows."""
        return [list(map(str, row)) for row in self.data.itertuples(index=False, name=None)]


@dataclass(frozen=True)
class AugmentationSpec:
    """Extra rows or columns to inject, with optional insertion positions.

    ``position`` holds one 0-based index per inserted row/column; ``None``
    entries (or a missing vector) append at the end.
    """

    data: pd.DataFrame
    position: tuple[int | None, ...] | None = None

    @classmethod
    def from_frame(cls, data: pd.DataFrame | AugmentationSpec) -> AugmentationSpec:
        """Build from a DataFrame, reading ``data.attrs["position"]``."""
        if isinstance(data, AugmentationSpec):
            return data
        position = data.attrs.get("position")
        if position is not None:
            position = tuple(None if pd.isna(p) else int(p) for p in position)
        return cls(data=data, position=position)

    def position_at(self, i: int) -> int | None:
        """Insertion index for the i-th element, or None to append."""
        if self.position is None or i >= len(self.position):
            return None
        return self.position[i]

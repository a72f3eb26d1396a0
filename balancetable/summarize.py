"""Per-group descriptive statistics.

Numeric and boolean columns are summarized by mean and standard deviation;
categorical columns by count and percentage per level.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd

from balancetable.config import config
from balancetable.errors import TooManyLevelsError
from balancetable.formatting import Fmt, format_count, format_number, format_percent
from balancetable.models import (
    ColumnKind,
    Group,
    StatisticKind,
    StatisticRow,
    SummaryBlock,
    column_kind,
    column_levels,
)

logger = logging.getLogger(__name__)

__all__ = ["summarize", "summarize_column"]


def _group_masks(data: pd.DataFrame, grouping: str, groups: Sequence[Group]) -> list[pd.Series]:
    return [data[grouping] == group.value for group in groups]


def _numeric_block(
    series: pd.Series, masks: list[pd.Series], fmt: Fmt
) -> tuple[StatisticRow, StatisticRow]:
    values = pd.Series(series.to_numpy(dtype=float, na_value=np.nan), index=series.index)
    means = []
    stds = []
    for mask in masks:
        subset = values[mask].dropna()
        means.append(format_number(subset.mean() if len(subset) > 0 else np.nan, fmt))
        stds.append(format_number(subset.std(ddof=1) if len(subset) > 1 else np.nan, fmt))
    column = str(series.name)
    return (
        StatisticRow(column=column, kind=StatisticKind.MEAN, cells=tuple(means)),
        StatisticRow(column=column, kind=StatisticKind.STD_DEV, cells=tuple(stds)),
    )


def _categorical_block(
    series: pd.Series,
    levels: list,
    masks: list[pd.Series],
    groups: Sequence[Group],
) -> list[StatisticRow]:
    decimals = config.percent_decimals
    column = str(series.name)
    rows = []
    for level in levels:
        counts = []
        percents = []
        for mask, group in zip(masks, groups):
            n = int((series[mask] == level).sum())
            counts.append(format_count(n))
            pct = 100.0 * n / group.size if group.size > 0 else np.nan
            percents.append(format_percent(pct, decimals))
        rows.append(
            StatisticRow(column=column, kind=StatisticKind.COUNT, cells=tuple(counts), level=level)
        )
        rows.append(
            StatisticRow(
                column=column, kind=StatisticKind.PERCENT, cells=tuple(percents), level=level
            )
        )
    return rows


def summarize_column(
    data: pd.DataFrame,
    column: str,
    groups: Sequence[Group],
    grouping: str,
    fmt: Fmt | None = None,
    max_levels: int | None = None,
) -> SummaryBlock:
    """Summarize one source column across groups.

    Args:
        data: Dataset (rows with a missing grouping value already dropped)
        column: Column to summarize
        groups: Groups of the grouping column, in display order
        grouping: Name of the grouping column
        fmt: Numeric format directive (default from config)
        max_levels: Level ceiling for categorical columns (default from config)

    Returns:
        SummaryBlock with Mean/Std. Dev. rows for numeric columns or a
        Count/Percent row pair per level for categorical columns

    Raises:
        TooManyLevelsError: If a categorical column exceeds the level ceiling

    """
    if fmt is None:
        fmt = config.fmt
    if max_levels is None:
        max_levels = config.max_levels

    series = data[column]
    masks = _group_masks(data, grouping, groups)
    kind = column_kind(series)

    if kind == ColumnKind.NUMERIC:
        rows = _numeric_block(series, masks, fmt)
        return SummaryBlock(column=column, kind=kind, rows=tuple(rows))

    levels = column_levels(series)
    if len(levels) > max_levels:
        raise TooManyLevelsError(column, len(levels), max_levels)
    rows = _categorical_block(series, levels, masks, groups)
    return SummaryBlock(column=column, kind=kind, rows=tuple(rows), levels=tuple(levels))


def summarize(
    data: pd.DataFrame,
    grouping: str,
    groups: Sequence[Group],
    columns: Sequence[str],
    fmt: Fmt | None = None,
    max_levels: int | None = None,
) -> list[SummaryBlock]:
    """Summarize several columns, preserving dataset column order.

    Level ceilings are checked for every categorical column before any
    statistic is computed.

    Args:
        data: Dataset
        grouping: Name of the grouping column
        groups: Groups of the grouping column
        columns: Columns to summarize
        fmt: Numeric format directive (default from config)
        max_levels: Level ceiling (default from config)

    Returns:
        One SummaryBlock per column

    """
    if max_levels is None:
        max_levels = config.max_levels

    ordered = [c for c in data.columns if c in set(columns)]
    for column in ordered:
        if column_kind(data[column]) == ColumnKind.CATEGORICAL:
            n_levels = len(column_levels(data[column]))
            if n_levels > max_levels:
                raise TooManyLevelsError(str(column), n_levels, max_levels)

    logger.debug("Summarizing %d columns across %d groups", len(ordered), len(groups))
    return [
        summarize_column(data, column, groups, grouping, fmt=fmt, max_levels=max_levels)
        for column in ordered
    ]

"""Balance table construction.

Builds a table comparing descriptive statistics of every column across the
levels of a grouping variable, optionally with a difference-in-means test
between exactly two groups, and hands it to the output factory.
"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from balancetable.config import OutputDefaults, config
from balancetable.errors import InvalidArgumentError, UndefinedDifferenceError
from balancetable.formatting import Fmt, format_number, validate_fmt
from balancetable.models import (
    AugmentationSpec,
    ColumnKind,
    Group,
    GroupingSelector,
    HeaderSpan,
    StatisticKind,
    SummaryBlock,
    TableBody,
    TableMetadata,
    level_label,
)
from balancetable.output import factory, resolve_output
from balancetable.stats import DifferenceResult, DinmStatistic, difference_in_means
from balancetable.summarize import summarize

logger = logging.getLogger(__name__)

__all__ = ["build_balance_body", "datasummary_balance"]

_LABEL_NAMES = (" ", "  ")


def _parse_dinm_statistic(value: str | DinmStatistic) -> DinmStatistic:
    try:
        return DinmStatistic(value)
    except ValueError as e:
        choices = ", ".join(repr(s.value) for s in DinmStatistic)
        raise InvalidArgumentError(
            f"dinm_statistic must be one of {choices}, got {value!r}"
        ) from e


def _difference_cells(
    data: pd.DataFrame,
    column: str,
    grouping: str,
    statistic: DinmStatistic,
    fmt: Fmt,
) -> list[str]:
    """Formatted [estimate, precision] cells; blank when undefined."""
    clusters = config.reserved_clusters if config.reserved_clusters in data.columns else None
    blocks = config.reserved_blocks if config.reserved_blocks in data.columns else None
    try:
        result: DifferenceResult = difference_in_means(
            data, column, grouping, clusters=clusters, blocks=blocks
        )
    except UndefinedDifferenceError as e:
        logger.warning("Leaving difference in means blank for '%s': %s", column, e)
        return ["", ""]
    return [format_number(result.estimate, fmt), format_number(result.statistic(statistic), fmt)]


def _group_data(data: pd.DataFrame, grouping: str) -> pd.DataFrame:
    missing = data[grouping].isna()
    if missing.any():
        logger.warning(
            f"Dropping {int(missing.sum())} rows with a missing value of grouping "
            f"variable '{grouping}'"
        )
        return data.loc[~missing]
    return data


def build_balance_body(
    grouping: str | GroupingSelector,
    data: pd.DataFrame,
    fmt: Fmt | None = None,
    dinm: bool = True,
    dinm_statistic: str | DinmStatistic = DinmStatistic.STD_ERROR,
) -> TableBody:
    """Build the balance table body and its header metadata.

    Numeric columns produce one row each (Mean and Std. Dev. per group);
    categorical columns produce one row per level (N and % per group).
    Numeric rows come first. When both kinds are present, a separator row
    labels the categorical sub-columns.

    Args:
        grouping: One-sided formula such as ``"~treatment"`` or a selector
        data: Dataset
        fmt: Numeric format directive (default from config)
        dinm: Whether to append difference-in-means columns
        dinm_statistic: ``"std.error"`` or ``"p.value"``

    Returns:
        TableBody with inner column names, one header span level, a flat
        header fallback and horizontal rule positions

    Raises:
        InvalidGroupingError: If the grouping does not resolve to one column
        TooManyLevelsError: If the grouping or a categorical column has too
            many levels

    """
    if not isinstance(data, pd.DataFrame):
        raise InvalidArgumentError(f"data must be a pandas DataFrame, got {type(data).__name__}")
    fmt = validate_fmt(config.fmt if fmt is None else fmt)
    statistic = _parse_dinm_statistic(dinm_statistic)

    selector = GroupingSelector.parse(grouping)
    groups = selector.resolve(data)
    column = selector.column
    data = _group_data(data, column)

    reserved = {column, config.reserved_clusters, config.reserved_blocks}
    sources = [str(c) for c in data.columns if c not in reserved]
    blocks = summarize(data, column, groups, sources, fmt=fmt)

    numeric = [b for b in blocks if b.kind == ColumnKind.NUMERIC]
    categorical = [b for b in blocks if b.kind == ColumnKind.CATEGORICAL]

    use_dinm = dinm and len(numeric) > 0
    if use_dinm and len(groups) != 2:
        logger.info(
            "Difference in means requires exactly two groups; '%s' has %d, skipping",
            column,
            len(groups),
        )
        use_dinm = False

    return _assemble(data, column, groups, numeric, categorical, use_dinm, statistic, fmt)


def _assemble(
    data: pd.DataFrame,
    grouping: str,
    groups: list[Group],
    numeric: list[SummaryBlock],
    categorical: list[SummaryBlock],
    use_dinm: bool,
    statistic: DinmStatistic,
    fmt: Fmt,
) -> TableBody:
    two_labels = len(categorical) > 1
    n_label = 2 if two_labels else 1
    label_blank = [""] * n_label

    if numeric or not categorical:
        stat_kinds = (StatisticKind.MEAN, StatisticKind.STD_DEV)
    else:
        stat_kinds = (StatisticKind.COUNT, StatisticKind.PERCENT)
    dinm_labels = [StatisticKind.DIFF_IN_MEANS.label, statistic.label] if use_dinm else []
    dinm_blank = [""] * len(dinm_labels)

    rows: list[list[str]] = []
    hrule: list[int] = []

    for block in numeric:
        cells = list(zip(block.cells(StatisticKind.MEAN), block.cells(StatisticKind.STD_DEV)))
        row = [block.column] + label_blank[1:]
        for mean, std in cells:
            row.extend([mean, std])
        if use_dinm:
            row.extend(_difference_cells(data, block.column, grouping, statistic, fmt))
        rows.append(row)

    if numeric and categorical:
        hrule.append(len(rows) - 1)
        separator = list(label_blank)
        for _ in groups:
            separator.extend([StatisticKind.COUNT.label, StatisticKind.PERCENT.label])
        rows.append(separator + dinm_blank)

    for i, block in enumerate(categorical):
        for j, level in enumerate(block.levels):
            counts = block.cells(StatisticKind.COUNT, level)
            percents = block.cells(StatisticKind.PERCENT, level)
            if two_labels:
                row = [block.column if j == 0 else "", level_label(level)]
            else:
                row = [level_label(level)]
            for n, pct in zip(counts, percents):
                row.extend([n, pct])
            rows.append(row + dinm_blank)
        if i < len(categorical) - 1 and block.levels:
            hrule.append(len(rows) - 1)

    inner = list(_LABEL_NAMES[:n_label])
    flat = list(_LABEL_NAMES[:n_label])
    spans = [HeaderSpan(" ", n_label)]
    for group in groups:
        for kind in stat_kinds:
            inner.append(kind.label)
            flat.append(f"{group.label} {kind.label}")
        spans.append(HeaderSpan(group.label, len(stat_kinds)))
    inner.extend(dinm_labels)
    flat.extend(dinm_labels)
    if dinm_labels:
        spans.append(HeaderSpan(" ", len(dinm_labels)))

    frame = pd.DataFrame(rows, columns=range(len(inner)), dtype=object)
    frame.columns = inner
    meta = TableMetadata(
        flat_header=tuple(flat),
        hrule=tuple(hrule),
        spans=(tuple(spans),),
    )
    logger.debug(
        "Assembled balance body: %d rows x %d columns, rules after rows %s",
        len(rows),
        len(inner),
        hrule,
    )
    return TableBody(data=frame, meta=meta)


def datasummary_balance(
    grouping: str | GroupingSelector,
    data: pd.DataFrame,
    output: str = "default",
    fmt: Fmt | None = None,
    title: str | None = None,
    notes: str | list[str] | None = None,
    align: str | None = None,
    add_columns: pd.DataFrame | AugmentationSpec | None = None,
    add_rows: pd.DataFrame | AugmentationSpec | None = None,
    dinm: bool = True,
    dinm_statistic: str | DinmStatistic = DinmStatistic.STD_ERROR,
    defaults: OutputDefaults | None = None,
) -> Any:
    """Build a balance table and render it.

    Args:
        grouping: One-sided formula naming the grouping column, e.g. ``"~am"``
        data: Dataset
        output: Backend keyword (``"dataframe"``, ``"markdown"``, ``"latex"``,
            ``"html"``, ``"styler"``, ``"tabulate"``, ``"office"``,
            ``"default"``) or a file path whose extension selects the format
        fmt: Numeric format directive, e.g. ``"%.3f"`` or ``2``
        title: Table caption
        notes: Note or list of notes printed under the table
        align: One alignment character (l, c, r) per column
        add_columns: Extra columns to inject
        add_rows: Extra rows to inject
        dinm: Whether to compute differences in means (two groups only)
        dinm_statistic: ``"std.error"`` or ``"p.value"``
        defaults: Output defaults (default from config)

    Returns:
        The backend's table object, or None when writing to a file

    Examples:
        >>> tab = datasummary_balance("~am", mtcars, output="dataframe")
        >>> list(tab.columns)[:2]
        [' ', '0 (N=19) Mean']

    """
    fmt = validate_fmt(config.fmt if fmt is None else fmt)
    # Resolve the destination first so a bad output fails before any work
    resolve_output(output, defaults)
    body = build_balance_body(grouping, data, fmt=fmt, dinm=dinm, dinm_statistic=dinm_statistic)
    return factory(
        body,
        output=output,
        fmt=fmt,
        title=title,
        notes=notes,
        align=align,
        add_columns=add_columns,
        add_rows=add_rows,
        defaults=defaults,
    )

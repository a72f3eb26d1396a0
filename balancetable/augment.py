"""Injection of extra rows and columns into a table body.

Augmentation only inserts: existing cells are never changed or reordered.
Header spans, the flat header fallback and rule positions are updated in the
same pass so the metadata stays consistent with the grid.
"""

from __future__ import annotations

import logging

import pandas as pd

from balancetable.config import config
from balancetable.errors import AugmentationShapeError
from balancetable.formatting import Fmt, format_series
from balancetable.models import AugmentationSpec, HeaderSpan, TableBody

logger = logging.getLogger(__name__)

__all__ = ["add_columns", "add_rows", "insert_span"]

_PROVENANCE_COLUMNS = ("term", "statistic")


def insert_span(
    level: tuple[HeaderSpan, ...], position: int | None, width: int = 1
) -> tuple[HeaderSpan, ...]:
    """Insert a blank span into one header level.

    Args:
        level: Spans of one header level
        position: Column index where columns are inserted, or None to append
        width: Number of inserted columns

    Returns:
        Updated level. An insertion at a span boundary adds a blank span; an
        insertion strictly inside a span widens that span.

    """
    spans = list(level)
    if position is None:
        return tuple(spans + [HeaderSpan("", width)])

    start = 0
    for i, span in enumerate(spans):
        if position == start:
            spans.insert(i, HeaderSpan("", width))
            return tuple(spans)
        if start < position < start + span.width:
            spans[i] = HeaderSpan(span.label, span.width + width)
            return tuple(spans)
        start += span.width
    spans.append(HeaderSpan("", width))
    return tuple(spans)


def _check_position(position: int, limit: int, what: str) -> None:
    if position < 0 or position > limit:
        raise AugmentationShapeError(
            f"{what} position {position} is out of range; expected 0 to {limit}"
        )


def add_columns(
    body: TableBody, spec: AugmentationSpec | pd.DataFrame | None, fmt: Fmt
) -> TableBody:
    """Insert extra columns into a table body.

    Args:
        body: Table body
        spec: Extra columns, with optional insertion positions
        fmt: Numeric format directive for numeric columns

    Returns:
        New TableBody. Short columns are padded with empty cells.

    Raises:
        AugmentationShapeError: If the extra frame has no rows or columns, has more
            rows than the body, or a position is out of range

    """
    if spec is None:
        return body
    spec = AugmentationSpec.from_frame(spec)
    extra = spec.data
    if extra.shape[1] == 0 or len(extra) == 0:
        raise AugmentationShapeError("add_columns must contain at least one row and one column")
    if len(extra) > body.n_rows:
        raise AugmentationShapeError(
            f"add_columns has {len(extra)} rows but the table has only {body.n_rows}"
        )

    data = body.data.copy()
    names = body.columns
    flat = list(body.meta.flat_header) if body.meta.flat_header is not None else None
    spans = [tuple(level) for level in body.meta.spans] if body.meta.spans is not None else None
    gap = body.n_rows - len(extra)
    all_appended = all(spec.position_at(i) is None for i in range(extra.shape[1]))

    for i, name in enumerate(extra.columns):
        cells = format_series(extra.iloc[:, i], fmt) + [""] * gap
        position = spec.position_at(i)
        if position is None:
            position = len(names)
        else:
            _check_position(position, len(names), "add_columns")
        if spans is not None and not all_appended:
            spans = [insert_span(level, position) for level in spans]
        data.insert(position, str(name), cells, allow_duplicates=True)
        names.insert(position, str(name))
        if flat is not None:
            flat.insert(position, str(name))

    if spans is not None and all_appended:
        spans = [insert_span(level, None, extra.shape[1]) for level in spans]

    data.columns = names
    logger.debug("Inserted %d columns", extra.shape[1])
    return body.with_data(
        data,
        flat_header=tuple(flat) if flat is not None else None,
        spans=tuple(spans) if spans is not None else None,
    )


def _tag_provenance(extra: pd.DataFrame) -> pd.DataFrame:
    """Add the group marker before ``term`` and an empty ``statistic`` after it."""
    tagged = extra.copy()
    if "term" not in tagged.columns:
        tagged = tagged.rename(columns={tagged.columns[0]: "term"})
    term_at = list(tagged.columns).index("term")
    tagged.insert(term_at, "group", config.provenance_marker)
    tagged.insert(term_at + 2, "statistic", "")
    return tagged


def add_rows(
    body: TableBody,
    spec: AugmentationSpec | pd.DataFrame | None,
    fmt: Fmt,
    keep_provenance: bool = False,
) -> TableBody:
    """Insert extra rows into a table body.

    Args:
        body: Table body
        spec: Extra rows, with optional insertion positions
        fmt: Numeric format directive for numeric columns
        keep_provenance: Whether term/statistic identity columns of the body
            are kept in the output; inserted rows are then tagged with the
            provenance marker and an empty statistic label

    Returns:
        New TableBody; rule positions at or after an insertion point shift

    Raises:
        AugmentationShapeError: If the extra frame is empty, its column count differs
            from the body's, or a position is out of range

    """
    if spec is None:
        return body
    spec = AugmentationSpec.from_frame(spec)
    extra = spec.data
    if len(extra) == 0:
        raise AugmentationShapeError("add_rows must contain at least one row")

    has_provenance = body.meta.provenance or all(c in body.columns for c in _PROVENANCE_COLUMNS)
    if keep_provenance and has_provenance:
        if "statistic" not in extra.columns and extra.shape[1] == body.n_cols - 2:
            extra = _tag_provenance(extra)

    if extra.shape[1] != body.n_cols:
        raise AugmentationShapeError(
            f"add_rows has {extra.shape[1]} columns but the table has {body.n_cols}"
        )

    converted = [format_series(extra.iloc[:, j], fmt) for j in range(extra.shape[1])]
    new_rows = [list(row) for row in zip(*converted)]

    rows = body.rows()
    hrule = list(body.meta.hrule)
    for i, row in enumerate(new_rows):
        position = spec.position_at(i)
        if position is None:
            rows.append(row)
            continue
        _check_position(position, len(rows), "add_rows")
        rows.insert(position, row)
        hrule = [h + 1 if h >= position else h for h in hrule]

    data = pd.DataFrame(rows, columns=range(body.n_cols), dtype=object)
    data.columns = body.columns
    logger.debug("Inserted %d rows", len(new_rows))
    return body.with_data(data, hrule=tuple(hrule))

"""Cell formatting helpers shared by the builder, augmenter and dispatcher."""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype, is_scalar

from balancetable.errors import InvalidArgumentError

__all__ = [
    "format_cell",
    "format_count",
    "format_number",
    "format_percent",
    "format_series",
    "pad_duplicates",
    "validate_fmt",
]

Fmt = str | int


def validate_fmt(fmt: Any) -> Fmt:
    """Validate a numeric format directive.

    Args:
        fmt: printf-style string containing ``%`` (e.g. ``"%.3f"``) or a
            non-negative int giving the number of decimal places

    Returns:
        The validated directive

    Raises:
        InvalidArgumentError: If the directive is neither form

    """
    if isinstance(fmt, bool):
        raise InvalidArgumentError(f"fmt must be a format string or int, got {fmt!r}")
    if isinstance(fmt, int):
        if fmt < 0:
            raise InvalidArgumentError(f"fmt must be a non-negative number of decimals, got {fmt}")
        return fmt
    if isinstance(fmt, str) and "%" in fmt:
        try:
            fmt % 1.0
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid format string {fmt!r}: {e}") from e
        return fmt
    raise InvalidArgumentError(f"fmt must be a format string such as '%.3f' or an int, got {fmt!r}")


def format_number(value: Any, fmt: Fmt) -> str:
    """Format a single number, returning an empty string for missing values."""
    if value is None:
        return ""
    number = float(value)
    if math.isnan(number):
        return ""
    if isinstance(fmt, int):
        return f"{number:.{fmt}f}"
    return fmt % number


def format_count(value: int) -> str:
    """Format an integer count."""
    return str(int(value))


def format_percent(value: float, decimals: int) -> str:
    """Format a percentage with a fixed number of decimals."""
    if math.isnan(value):
        return ""
    return f"{value:.{decimals}f}"


def format_cell(value: Any, fmt: Fmt) -> str:
    """Format one injected cell: numbers via ``fmt``, everything else via ``str``."""
    if value is None or (is_scalar(value) and pd.isna(value)):
        return ""
    if isinstance(value, (bool, np.bool_)):
        return str(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return format_number(value, fmt)
    return str(value)


def format_series(series: pd.Series, fmt: Fmt) -> list[str]:
    """Format a whole column of injected values.

    Numeric (non-boolean) columns are formatted with ``fmt``; mixed object
    columns are formatted cell by cell. Missing values become empty strings.

    Args:
        series: Column to format
        fmt: Numeric format directive

    Returns:
        List of formatted cells

    """
    if is_numeric_dtype(series) and not is_bool_dtype(series):
        return [format_number(v, fmt) for v in series]
    return [format_cell(v, fmt) for v in series]


def pad_duplicates(names: Iterable[str]) -> list[str]:
    """De-duplicate column names by padding repeats with trailing spaces.

    The first occurrence is kept as is; later occurrences get one more space
    until the name is unique, so ``[" ", " "]`` becomes ``[" ", "  "]``.

    Args:
        names: Column names in order

    Returns:
        Unique column names

    """
    seen: set[str] = set()
    result = []
    for name in names:
        candidate = str(name)
        while candidate in seen:
            candidate += " "
        seen.add(candidate)
        result.append(candidate)
    return result

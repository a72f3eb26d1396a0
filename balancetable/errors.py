"""Exception taxonomy for balance table construction and rendering.

Structural errors (grouping, level ceiling, output resolution, augmentation
shape, argument validation) abort the whole call. ``UndefinedDifferenceError``
is soft: callers catch it per cell and leave the cell blank.
"""

from __future__ import annotations

__all__ = [
    "AugmentationShapeError",
    "BalanceTableError",
    "InvalidArgumentError",
    "InvalidGroupingError",
    "TooManyLevelsError",
    "UndefinedDifferenceError",
    "UnsupportedOutputError",
]


class BalanceTableError(Exception):
    """Base class for all balancetable errors."""

    pass


class InvalidGroupingError(BalanceTableError):
    """Raised when the grouping expression does not name exactly one present column."""

    pass


class TooManyLevelsError(BalanceTableError):
    """Raised when a grouping or categorical column has too many distinct levels."""

    def __init__(self, column: str, n_levels: int, max_levels: int) -> None:
        """Initialize with the offending column.

        Args:
            column: Name of the offending column
            n_levels: Number of distinct levels found
            max_levels: Configured ceiling

        """
        self.column = column
        self.n_levels = n_levels
        self.max_levels = max_levels
        super().__init__(
            f"Column '{column}' has {n_levels} distinct levels, more than the "
            f"maximum of {max_levels}. Each level becomes a table block; convert "
            "the column to numeric or drop it before summarizing."
        )


class UnsupportedOutputError(BalanceTableError):
    """Raised when an output keyword or file extension cannot be resolved."""

    pass


class AugmentationShapeError(BalanceTableError):
    """Raised when extra rows or columns do not fit the table body."""

    pass


class UndefinedDifferenceError(BalanceTableError):
    """Raised when a difference in means cannot be estimated for a column."""

    pass


class InvalidArgumentError(BalanceTableError):
    """Raised when a formatting or rendering argument is malformed."""

    pass

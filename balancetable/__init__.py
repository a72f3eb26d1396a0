"""Balance tables for pandas DataFrames.

Summarizes every column of a dataset across the levels of a grouping
variable, optionally with differences in means between two groups, and
renders the result as a DataFrame, Markdown, LaTeX, HTML, text grid, Word,
PowerPoint or image table.
"""

from balancetable.balance import build_balance_body, datasummary_balance
from balancetable.config import OutputDefaults, TableConfig, config
from balancetable.errors import (
    AugmentationShapeError,
    BalanceTableError,
    InvalidArgumentError,
    InvalidGroupingError,
    TooManyLevelsError,
    UndefinedDifferenceError,
    UnsupportedOutputError,
)
from balancetable.models import AugmentationSpec, GroupingSelector, TableBody, TableMetadata
from balancetable.output import factory, resolve_output
from balancetable.stats import DifferenceResult, DinmStatistic, difference_in_means

__version__ = "0.1.0"

__all__ = [
    "AugmentationShapeError",
    "AugmentationSpec",
    "BalanceTableError",
    "DifferenceResult",
    "DinmStatistic",
    "GroupingSelector",
    "InvalidArgumentError",
    "InvalidGroupingError",
    "OutputDefaults",
    "TableBody",
    "TableConfig",
    "TableMetadata",
    "TooManyLevelsError",
    "UndefinedDifferenceError",
    "UnsupportedOutputError",
    "build_balance_body",
    "config",
    "datasummary_balance",
    "difference_in_means",
    "factory",
    "resolve_output",
]

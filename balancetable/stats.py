"""Difference-in-means estimation between two groups.

Supports plain (Welch), cluster-robust and block-stratified designs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.regression.linear_model import OLS
from statsmodels.tools import add_constant

from balancetable.errors import UndefinedDifferenceError
from balancetable.models import StatisticKind, column_levels

logger = logging.getLogger(__name__)

__all__ = [
    "DifferenceResult",
    "DinmStatistic",
    "cluster_robust_difference",
    "difference_in_means",
    "welch_difference",
]


class DinmStatistic(str, Enum):
    """Precision statistic reported next to the difference in means."""

    STD_ERROR = "std.error"
    P_VALUE = "p.value"

    @property
    def kind(self) -> StatisticKind:
        """Statistic kind of the trailing column."""
        if self is DinmStatistic.P_VALUE:
            return StatisticKind.P_VALUE
        return StatisticKind.STD_ERROR

    @property
    def label(self) -> str:
        """Trailing column label."""
        return self.kind.label


@dataclass(frozen=True)
class DifferenceResult:
    """Point estimate and precision of a difference in means."""

    estimate: float
    std_error: float
    p_value: float
    df: float

    def statistic(self, which: DinmStatistic) -> float:
        """Value of the requested precision statistic."""
        if which is DinmStatistic.P_VALUE:
            return self.p_value
        return self.std_error


def _two_sided_p(estimate: float, std_error: float, df: float) -> float:
    if not np.isfinite(std_error) or std_error <= 0 or not np.isfinite(df) or df <= 0:
        return np.nan
    return float(2 * stats.t.sf(abs(estimate / std_error), df))


def welch_difference(control: np.ndarray, treated: np.ndarray) -> DifferenceResult:
    """Difference in means with a Welch (unequal variance) standard error.

    Args:
        control: Outcomes of the first group
        treated: Outcomes of the second group

    Returns:
        DifferenceResult for mean(treated) - mean(control). The standard
        error is NaN when either group has fewer than two observations.

    """
    n0, n1 = len(control), len(treated)
    estimate = float(np.mean(treated) - np.mean(control))
    if n0 < 2 or n1 < 2:
        return DifferenceResult(estimate, np.nan, np.nan, np.nan)

    v0 = float(np.var(control, ddof=1)) / n0
    v1 = float(np.var(treated, ddof=1)) / n1
    std_error = float(np.sqrt(v0 + v1))
    if v0 + v1 == 0:
        return DifferenceResult(estimate, std_error, np.nan, np.nan)

    # Welch-Satterthwaite degrees of freedom
    df = (v0 + v1) ** 2 / (v0**2 / (n0 - 1) + v1**2 / (n1 - 1))
    return DifferenceResult(estimate, std_error, _two_sided_p(estimate, std_error, df), df)


def cluster_robust_difference(
    outcome: np.ndarray, treated: np.ndarray, clusters: np.ndarray
) -> DifferenceResult:
    """Difference in means with a CR1 cluster-robust standard error.

    Fits ``outcome ~ 1 + treated`` by OLS with statsmodels' cluster
    covariance, which applies the G/(G-1) * (N-1)/(N-K) small-sample
    correction. Inference uses a t distribution with G-1 degrees of freedom.

    Args:
        outcome: Outcome values
        treated: 0/1 treatment indicator
        clusters: Cluster identifiers (any hashable values)

    Returns:
        DifferenceResult for the treatment coefficient

    """
    codes, uniques = pd.factorize(clusters)
    n_clusters = len(uniques)
    x = add_constant(treated.astype(float), has_constant="add")
    if n_clusters < 2:
        fit = OLS(outcome, x).fit()
        return DifferenceResult(float(fit.params[1]), np.nan, np.nan, np.nan)

    fit = OLS(outcome, x).fit(cov_type="cluster", cov_kwds={"groups": codes}, use_t=True)
    estimate = float(fit.params[1])
    std_error = float(fit.bse[1])
    df = float(n_clusters - 1)
    return DifferenceResult(estimate, std_error, _two_sided_p(estimate, std_error, df), df)


def _blocked_difference(
    frame: pd.DataFrame, with_clusters: bool
) -> DifferenceResult:
    """Block-weighted difference in means (stratified design)."""
    n_total = len(frame)
    estimates = []
    weights = []
    variances = []
    sizes = []
    cluster_count = 0
    small_blocks = False

    for block, part in frame.groupby("block", sort=True, observed=True):
        control = part.loc[part["treated"] == 0, "y"].to_numpy()
        treated = part.loc[part["treated"] == 1, "y"].to_numpy()
        if len(control) == 0 or len(treated) == 0:
            raise UndefinedDifferenceError(
                f"Block '{block}' does not contain observations from both groups"
            )
        if with_clusters:
            result = cluster_robust_difference(
                part["y"].to_numpy(), part["treated"].to_numpy(), part["cluster"].to_numpy()
            )
            cluster_count += part["cluster"].nunique()
        else:
            result = welch_difference(control, treated)
            small_blocks = small_blocks or len(control) < 2 or len(treated) < 2
        estimates.append(result.estimate)
        variances.append(result.std_error**2)
        sizes.append(len(part))
        weights.append(len(part) / n_total)

    est = np.array(estimates)
    w = np.array(weights)
    n_b = np.array(sizes, dtype=float)
    n_blocks = len(est)
    estimate = float(np.sum(w * est))

    if small_blocks:
        # Matched-pair style blocks: between-block variance (Imai 2008)
        if n_blocks < 2:
            return DifferenceResult(estimate, np.nan, np.nan, np.nan)
        variance = (
            n_blocks
            / ((n_blocks - 1) * n_total**2)
            * np.sum((n_b * est - n_total * estimate / n_blocks) ** 2)
        )
        df = float(n_blocks - 1)
    else:
        variance = float(np.sum(w**2 * np.array(variances)))
        if with_clusters:
            df = float(cluster_count - 2 * n_blocks)
        else:
            df = float(n_total - 2 * n_blocks)

    std_error = float(np.sqrt(variance))
    return DifferenceResult(estimate, std_error, _two_sided_p(estimate, std_error, df), df)


def difference_in_means(
    data: pd.DataFrame,
    outcome: str,
    treatment: str,
    clusters: str | None = None,
    blocks: str | None = None,
) -> DifferenceResult:
    """Estimate the difference in means of ``outcome`` between two groups.

    The estimate is mean(second group) - mean(first group), with groups
    ordered like the grouping column's levels.

    Args:
        data: Dataset
        outcome: Numeric outcome column
        treatment: Grouping column with exactly two levels
        clusters: Optional column of cluster identifiers
        blocks: Optional column of block (stratum) identifiers

    Returns:
        DifferenceResult

    Raises:
        UndefinedDifferenceError: If the grouping column does not have exactly
            two levels, or either group has no non-missing outcome

    """
    levels = column_levels(data[treatment])
    if len(levels) != 2:
        raise UndefinedDifferenceError(
            f"Difference in means needs exactly two groups, '{treatment}' has {len(levels)}"
        )

    frame = pd.DataFrame(
        {
            "y": data[outcome].to_numpy(dtype=float, na_value=np.nan),
            "treated": (data[treatment] == levels[1]).astype(int).to_numpy(),
            "present": data[treatment].notna().to_numpy(),
        },
        index=data.index,
    )
    if clusters is not None:
        frame["cluster"] = data[clusters].to_numpy()
    if blocks is not None:
        frame["block"] = data[blocks].to_numpy()
    frame = frame[frame["present"]].dropna()

    control = frame.loc[frame["treated"] == 0, "y"].to_numpy()
    treated = frame.loc[frame["treated"] == 1, "y"].to_numpy()
    if len(control) == 0 or len(treated) == 0:
        raise UndefinedDifferenceError(
            f"Column '{outcome}' has no observations in one of the groups of '{treatment}'"
        )

    if blocks is not None:
        return _blocked_difference(frame, with_clusters=clusters is not None)
    if clusters is not None:
        return cluster_robust_difference(
            frame["y"].to_numpy(), frame["treated"].to_numpy(), frame["cluster"].to_numpy()
        )
    return welch_difference(control, treated)
